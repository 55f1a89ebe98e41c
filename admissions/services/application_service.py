"""Submission intake, public status lookup and application queries."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import func, or_, update
from sqlalchemy.orm import Session, joinedload, selectinload

from admissions.core.structured_logging import build_log_context
from admissions.db.enums import EmailType, SubmissionSource
from admissions.db.models import (
    ApplicationEmail,
    ApplicationForm,
    ApplicationNote,
    ApplicationStatusHistory,
    StudentApplication,
)
from admissions.db.types import as_utc, is_object_id
from admissions.schemas.applications import ApplicationSubmit, PublicNote, PublicStatus
from admissions.services import form_service, notification_service
from admissions.services.email_sender import EmailSender
from admissions.utils.pagination import PaginationParams, apply_sort, paginate_query

logger = logging.getLogger(__name__)

SUBMISSION_RECEIVED_MESSAGE = (
    "Thank you for your application. We will review it and get back to you soon."
)

APPLICATION_SORT_COLUMNS = {
    "createdAt": StudentApplication.created_at,
    "updatedAt": StudentApplication.updated_at,
    "status": StudentApplication.status,
    "priority": StudentApplication.priority,
    "lastContactDate": StudentApplication.last_contact_date,
}


class ApplicationServiceError(Exception):
    """Base exception for application service errors."""

    pass


class ApplicationNotFoundError(ApplicationServiceError):
    """Application not found."""

    pass


class FormUnavailableError(ApplicationServiceError):
    """Target form is missing or inactive."""

    pass


class DeadlinePassedError(ApplicationServiceError):
    """Form submission deadline is in the past."""

    pass


class CapacityReachedError(ApplicationServiceError):
    """Form has accepted its maximum number of submissions."""

    pass


class DuplicateSubmissionError(ApplicationServiceError):
    """Applicant email already submitted to a single-submission form."""

    pass


class InvalidSubmissionError(ApplicationServiceError):
    """Payload or request failed a business rule."""

    pass


class StaffNotFoundError(ApplicationServiceError):
    """Assignee is not an active staff member."""

    pass


class EmailDeliveryError(ApplicationServiceError):
    """An explicitly requested email could not be delivered."""

    pass


class InvalidBulkActionError(ApplicationServiceError):
    """Bulk action is missing the data it needs."""

    pass


# =============================================================================
# Intake
# =============================================================================


def _check_admission(db: Session, form: ApplicationForm | None, email: str | None) -> ApplicationForm:
    """Run the admission guards in order. Returns the form on success."""
    if form is None or not form.is_active:
        raise FormUnavailableError("Form not found or inactive")
    if form_service.deadline_passed(form):
        raise DeadlinePassedError("Submission deadline has passed")
    if form.max_capacity is not None and form.submissions >= form.max_capacity:
        raise CapacityReachedError("Form has reached maximum capacity")
    if not form.allow_multiple_submissions and email:
        existing = (
            db.query(StudentApplication.id)
            .filter(
                StudentApplication.form_id == form.id,
                StudentApplication.student_email == email,
            )
            .first()
        )
        if existing:
            raise DuplicateSubmissionError(
                "You have already submitted an application for this form"
            )
    return form


def submit_application(
    db: Session,
    form_id: str,
    data: ApplicationSubmit,
    sender: EmailSender,
    *,
    ip_address: str | None = None,
    user_agent: str | None = None,
    source: SubmissionSource = SubmissionSource.WEBSITE,
) -> StudentApplication:
    """
    Accept a submission for a form.

    The insert and the counter increment share one transaction. The increment
    is conditional on remaining capacity, so concurrent submissions cannot
    overshoot max_capacity. Notification emails go out after the commit and
    never affect the outcome.
    """
    if data.form_data is None and data.student_info is None:
        raise InvalidSubmissionError("Application data must include formData or studentInfo")

    student_info = (
        data.student_info.model_dump(by_alias=True, exclude_none=True)
        if data.student_info
        else {}
    )
    email = student_info.get("email")
    if email:
        email = str(email).strip().lower()
        student_info["email"] = email

    form = _check_admission(db, form_service.get_form(db, form_id), email)

    application = StudentApplication(
        form_id=form.id,
        student_info=student_info,
        student_email=email,
        academic_info=data.academic_info,
        course_preferences=data.course_preferences,
        documents=data.documents or [],
        form_data=data.form_data or {},
        tags=data.tags or [],
        submission_source=source.value,
        ip_address=ip_address,
        user_agent=(user_agent or "")[:500] or None,
    )
    db.add(application)

    result = db.execute(
        update(ApplicationForm)
        .where(
            ApplicationForm.id == form.id,
            or_(
                ApplicationForm.max_capacity.is_(None),
                ApplicationForm.submissions < ApplicationForm.max_capacity,
            ),
        )
        .values(submissions=ApplicationForm.submissions + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.rollback()
        raise CapacityReachedError("Form has reached maximum capacity")

    db.commit()
    db.refresh(application)
    db.refresh(form)
    logger.info(
        "Application submitted",
        extra=build_log_context(form_id=form.id, application_id=application.id),
    )

    _send_submission_notifications(db, form, application, sender)
    return application


def _send_submission_notifications(
    db: Session,
    form: ApplicationForm,
    application: StudentApplication,
    sender: EmailSender,
) -> None:
    if not form.notifications_enabled:
        return

    info = application.student_info or {}
    email = application.student_email

    if form.auto_reply_subject and email:
        delivered = notification_service.try_send(
            sender,
            email,
            form.auto_reply_subject,
            form.auto_reply_message or notification_service.DEFAULT_AUTO_REPLY_MESSAGE,
            application_id=application.id,
            form_id=form.id,
        )
        db.add(
            ApplicationEmail(
                application_id=application.id,
                email_type=EmailType.WELCOME.value,
                subject=form.auto_reply_subject,
                delivered=delivered,
            )
        )
        db.commit()

    if form.admin_emails:
        subject, body = notification_service.compose_admin_notice(
            form.name, info.get("fullName"), email
        )
        for admin_email in form.admin_emails:
            notification_service.try_send(
                sender,
                admin_email,
                subject,
                body,
                application_id=application.id,
                form_id=form.id,
            )


def get_public_status(db: Session, email: str, form_id: str) -> PublicStatus:
    """Latest submission for (email, form), stripped to applicant-safe data."""
    if not is_object_id(form_id):
        raise ApplicationNotFoundError("Application not found")
    application = (
        db.query(StudentApplication)
        .options(
            joinedload(StudentApplication.form),
            selectinload(StudentApplication.review_notes),
            selectinload(StudentApplication.emails_sent),
        )
        .filter(
            StudentApplication.student_email == email.strip().lower(),
            StudentApplication.form_id == form_id.lower(),
        )
        .order_by(StudentApplication.created_at.desc())
        .first()
    )
    if application is None:
        raise ApplicationNotFoundError("Application not found")

    delivered = [entry for entry in application.emails_sent if entry.delivered]
    return PublicStatus(
        status=application.status,
        submitted_at=as_utc(application.created_at),
        form_name=application.form.name,
        public_notes=[
            PublicNote(note=note.note, added_at=as_utc(note.added_at))
            for note in application.review_notes
            if not note.is_internal
        ],
        last_contact=as_utc(delivered[-1].sent_at) if delivered else None,
    )


# =============================================================================
# Queries
# =============================================================================


def get_application(db: Session, application_id: str) -> StudentApplication | None:
    """Load an application with everything the detail view renders."""
    if not is_object_id(application_id):
        return None
    return (
        db.query(StudentApplication)
        .options(
            joinedload(StudentApplication.form),
            joinedload(StudentApplication.assigned_to),
            selectinload(StudentApplication.review_notes).joinedload(ApplicationNote.added_by),
            selectinload(StudentApplication.status_history).joinedload(
                ApplicationStatusHistory.changed_by
            ),
            selectinload(StudentApplication.emails_sent).joinedload(ApplicationEmail.sent_by),
        )
        .filter(StudentApplication.id == application_id.lower())
        .first()
    )


def require_application(db: Session, application_id: str) -> StudentApplication:
    application = get_application(db, application_id)
    if application is None:
        raise ApplicationNotFoundError("Application not found")
    return application


def list_applications(
    db: Session,
    pagination: PaginationParams,
    *,
    include_archived: bool = False,
    status: str | None = None,
    priority: str | None = None,
    form_id: str | None = None,
    assigned_to: str | None = None,
    search: str | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
) -> tuple[list[StudentApplication], int]:
    query = db.query(StudentApplication).options(
        joinedload(StudentApplication.form),
        joinedload(StudentApplication.assigned_to),
        selectinload(StudentApplication.review_notes).joinedload(ApplicationNote.added_by),
    )
    if not include_archived:
        query = query.filter(StudentApplication.is_archived.is_(False))
    if status:
        query = query.filter(StudentApplication.status == status)
    if priority:
        query = query.filter(StudentApplication.priority == priority)
    if form_id:
        query = query.filter(StudentApplication.form_id == form_id.lower())
    if assigned_to:
        query = query.filter(StudentApplication.assigned_to_user_id == assigned_to.lower())
    if search:
        term = search.lower()
        query = query.filter(
            or_(
                func.lower(StudentApplication.student_info["fullName"].as_string()).contains(
                    term, autoescape=True
                ),
                StudentApplication.student_email.contains(term, autoescape=True),
                func.lower(StudentApplication.student_info["phoneNumber"].as_string()).contains(
                    term, autoescape=True
                ),
            )
        )
    if date_from:
        query = query.filter(StudentApplication.created_at >= as_utc(date_from))
    if date_to:
        query = query.filter(StudentApplication.created_at <= as_utc(date_to))

    query = apply_sort(query, APPLICATION_SORT_COLUMNS, pagination)
    return paginate_query(query, pagination)
