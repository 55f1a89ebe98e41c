"""Review lifecycle for submitted applications.

Status changes, notes, assignment, applicant email, archiving, bulk actions
and statistics. Status values form a flat set: any status may follow any
other, and every UpdateStatus call is recorded in the history table.
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timedelta

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from admissions.core.structured_logging import build_log_context
from admissions.db.enums import ROLES_CAN_REVIEW_APPLICATIONS, BulkAction, EmailType
from admissions.db.models import (
    ApplicationEmail,
    ApplicationForm,
    ApplicationNote,
    ApplicationStatusHistory,
    StudentApplication,
    User,
)
from admissions.db.types import as_utc, utcnow
from admissions.schemas.applications import (
    ApplicationStats,
    BulkOperation,
    BulkResult,
    CustomEmail,
    DailyCount,
    FormCount,
    PriorityCount,
    StatusCount,
    StatusUpdate,
)
from admissions.services import notification_service
from admissions.services.application_service import (
    EmailDeliveryError,
    InvalidBulkActionError,
    InvalidSubmissionError,
    StaffNotFoundError,
    require_application,
)
from admissions.services.email_sender import EmailSender, EmailSendError

logger = logging.getLogger(__name__)

DEFAULT_ASSIGNMENT_NOTE = "Application assigned to staff member"
DEFAULT_BULK_STATUS_REASON = "Bulk status update"
RECENT_ACTIVITY_DAYS = 30


def _append_note(
    db: Session, application: StudentApplication, note: str, actor_id: str, is_internal: bool = True
) -> ApplicationNote:
    entry = ApplicationNote(
        application_id=application.id,
        note=note,
        added_by_user_id=actor_id,
        is_internal=is_internal,
    )
    db.add(entry)
    return entry


def _record_email(
    db: Session,
    application: StudentApplication,
    email_type: EmailType,
    subject: str,
    actor_id: str | None,
    delivered: bool,
) -> None:
    db.add(
        ApplicationEmail(
            application_id=application.id,
            email_type=email_type.value,
            subject=subject,
            sent_by_user_id=actor_id,
            delivered=delivered,
        )
    )
    if delivered:
        application.last_contact_date = utcnow()


def _require_staff(db: Session, user_id: str) -> User:
    user = db.get(User, user_id)
    if (
        user is None
        or not user.is_active
        or user.role not in {role.value for role in ROLES_CAN_REVIEW_APPLICATIONS}
    ):
        raise StaffNotFoundError("Staff member not found")
    return user


def update_status(
    db: Session,
    application_id: str,
    actor_id: str,
    data: StatusUpdate,
    sender: EmailSender,
) -> StudentApplication:
    """Set a new status, log the transition and notify the applicant."""
    application = require_application(db, application_id)
    previous = application.status
    new_status = data.status.value

    db.add(
        ApplicationStatusHistory(
            application_id=application.id,
            previous_status=previous,
            new_status=new_status,
            reason=data.reason,
            changed_by_user_id=actor_id,
        )
    )
    application.status = new_status
    if data.notes and data.notes.strip():
        _append_note(db, application, data.notes.strip(), actor_id, is_internal=True)
    db.commit()
    logger.info(
        "Application status changed %s -> %s",
        previous,
        new_status,
        extra=build_log_context(user_id=actor_id, application_id=application.id),
    )

    if data.send_email and application.student_email:
        subject, body = notification_service.compose_status_email(
            new_status,
            application.form.name,
            (application.student_info or {}).get("fullName"),
            data.reason,
        )
        delivered = notification_service.try_send(
            sender, application.student_email, subject, body, application_id=application.id
        )
        _record_email(db, application, EmailType.STATUS_UPDATE, subject, actor_id, delivered)
        db.commit()

    db.expire_all()
    return require_application(db, application.id)


def add_note(
    db: Session, application_id: str, actor_id: str, note: str, is_internal: bool = True
) -> list[ApplicationNote]:
    """Append a reviewer note and return the full note list."""
    note = note.strip()
    if not note:
        raise InvalidSubmissionError("Note content is required")
    if len(note) > 1000:
        raise InvalidSubmissionError("Note must be at most 1000 characters")
    application = require_application(db, application_id)
    _append_note(db, application, note, actor_id, is_internal)
    db.commit()
    db.expire_all()
    return list(require_application(db, application.id).review_notes)


def assign(
    db: Session,
    application_id: str,
    actor_id: str,
    assigned_to: str | None,
    notes: str | None = None,
) -> StudentApplication:
    """Set or clear the assignee. Assigning also leaves an internal note."""
    application = require_application(db, application_id)
    if assigned_to:
        staff = _require_staff(db, assigned_to)
        application.assigned_to_user_id = staff.id
        _append_note(db, application, (notes or "").strip() or DEFAULT_ASSIGNMENT_NOTE, actor_id)
    else:
        application.assigned_to_user_id = None
    db.commit()
    db.expire_all()
    return require_application(db, application.id)


def send_custom_email(
    db: Session,
    application_id: str,
    actor_id: str,
    actor_email: str | None,
    data: CustomEmail,
    sender: EmailSender,
) -> StudentApplication:
    """
    Send a free-form email to the applicant.

    Unlike automatic notifications, a failed send is reported to the caller.
    The attempt is logged on the application either way.
    """
    application = require_application(db, application_id)
    if not application.student_email:
        raise InvalidSubmissionError("Application has no applicant email address")

    try:
        sender.send(application.student_email, data.subject, data.message)
    except EmailSendError as exc:
        logger.warning(
            "Custom email failed: %s",
            exc,
            extra=build_log_context(user_id=actor_id, application_id=application.id),
        )
        _record_email(db, application, EmailType.CUSTOM, data.subject, actor_id, delivered=False)
        db.commit()
        raise EmailDeliveryError("Failed to send email") from exc

    if data.copy_to_admin and actor_email:
        subject, body = notification_service.compose_admin_copy(
            data.subject,
            data.message,
            (application.student_info or {}).get("fullName"),
            application.student_email,
        )
        notification_service.try_send(
            sender, actor_email, subject, body, application_id=application.id
        )

    _record_email(db, application, EmailType.CUSTOM, data.subject, actor_id, delivered=True)
    db.commit()
    db.expire_all()
    return require_application(db, application.id)


def toggle_archive(db: Session, application_id: str, archive: bool = True) -> StudentApplication:
    """Set the archive flag. Repeating the same value is a no-op."""
    application = require_application(db, application_id)
    application.is_archived = archive
    db.commit()
    db.expire_all()
    return require_application(db, application.id)


# =============================================================================
# Bulk
# =============================================================================


def bulk_action(db: Session, actor_id: str, operation: BulkOperation) -> BulkResult:
    """
    Apply one action to many applications in a single transaction.

    matchedCount counts ids that exist; modifiedCount counts rows whose value
    actually changed. Status changes write one history row per changed
    application.
    """
    ids = list(dict.fromkeys(operation.application_ids))
    data = operation.data
    matched = (
        db.query(func.count(StudentApplication.id))
        .filter(StudentApplication.id.in_(ids))
        .scalar()
        or 0
    )
    now = utcnow()
    stmt = update(StudentApplication).where(StudentApplication.id.in_(ids))

    if operation.action == BulkAction.UPDATE_STATUS:
        if data.status is None:
            raise InvalidBulkActionError("Status is required for bulk status update")
        new_status = data.status.value
        changed = db.execute(
            select(StudentApplication.id, StudentApplication.status).where(
                StudentApplication.id.in_(ids), StudentApplication.status != new_status
            )
        ).all()
        for row_id, previous in changed:
            db.add(
                ApplicationStatusHistory(
                    application_id=row_id,
                    previous_status=previous,
                    new_status=new_status,
                    reason=data.reason or DEFAULT_BULK_STATUS_REASON,
                    changed_by_user_id=actor_id,
                    changed_at=now,
                )
            )
        stmt = stmt.where(StudentApplication.status != new_status).values(status=new_status)

    elif operation.action == BulkAction.ASSIGN:
        assignee = _require_staff(db, data.assigned_to).id if data.assigned_to else None
        stmt = stmt.where(
            StudentApplication.assigned_to_user_id.is_distinct_from(assignee)
        ).values(assigned_to_user_id=assignee)

    elif operation.action == BulkAction.ARCHIVE:
        archive = data.archive is not False
        stmt = stmt.where(StudentApplication.is_archived != archive).values(is_archived=archive)

    elif operation.action == BulkAction.SET_PRIORITY:
        if data.priority is None:
            raise InvalidBulkActionError("Priority is required for bulk priority update")
        priority = data.priority.value
        stmt = stmt.where(StudentApplication.priority != priority).values(priority=priority)

    else:
        raise InvalidBulkActionError("Invalid bulk action")

    result = db.execute(
        stmt.values(updated_at=now).execution_options(synchronize_session=False)
    )
    db.commit()
    db.expire_all()
    logger.info(
        "Bulk %s matched=%s modified=%s",
        operation.action.value,
        matched,
        result.rowcount,
        extra=build_log_context(user_id=actor_id),
    )
    return BulkResult(matched_count=matched, modified_count=result.rowcount)


# =============================================================================
# Statistics
# =============================================================================


def get_stats(
    db: Session,
    *,
    form_id: str | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
) -> ApplicationStats:
    """Breakdowns over non-archived applications."""
    filters = [StudentApplication.is_archived.is_(False)]
    if form_id:
        filters.append(StudentApplication.form_id == form_id.lower())
    if date_from:
        filters.append(StudentApplication.created_at >= as_utc(date_from))
    if date_to:
        filters.append(StudentApplication.created_at <= as_utc(date_to))

    total = db.query(func.count(StudentApplication.id)).filter(*filters).scalar() or 0

    by_status = (
        db.query(StudentApplication.status, func.count(StudentApplication.id))
        .filter(*filters)
        .group_by(StudentApplication.status)
        .order_by(StudentApplication.status)
        .all()
    )
    by_priority = (
        db.query(StudentApplication.priority, func.count(StudentApplication.id))
        .filter(*filters)
        .group_by(StudentApplication.priority)
        .order_by(StudentApplication.priority)
        .all()
    )
    by_form = (
        db.query(ApplicationForm.id, ApplicationForm.name, func.count(StudentApplication.id))
        .join(ApplicationForm, ApplicationForm.id == StudentApplication.form_id)
        .filter(*filters)
        .group_by(ApplicationForm.id, ApplicationForm.name)
        .order_by(func.count(StudentApplication.id).desc())
        .all()
    )

    since = utcnow() - timedelta(days=RECENT_ACTIVITY_DAYS)
    created = (
        db.query(StudentApplication.created_at)
        .filter(*filters, StudentApplication.created_at >= since)
        .all()
    )
    daily = Counter(as_utc(row[0]).date().isoformat() for row in created)

    return ApplicationStats(
        total_applications=total,
        status_breakdown=[StatusCount(status=s, count=c) for s, c in by_status],
        priority_breakdown=[PriorityCount(priority=p, count=c) for p, c in by_priority],
        form_breakdown=[
            FormCount(form_id=fid, form_name=name, count=c) for fid, name, c in by_form
        ],
        recent_activity=[DailyCount(date=day, count=daily[day]) for day in sorted(daily)],
    )
