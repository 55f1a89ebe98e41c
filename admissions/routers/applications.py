"""Application review endpoints (staff)."""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from admissions.core.deps import get_db, get_email_sender, require_csrf_header, require_roles
from admissions.db.enums import ROLES_CAN_REVIEW_APPLICATIONS, ApplicationPriority, ApplicationStatus
from admissions.db.types import as_utc
from admissions.schemas.applications import (
    ApplicationListData,
    ApplicationRead,
    ApplicationSummary,
    ArchiveToggle,
    AssignmentUpdate,
    BulkOperation,
    CommunicationRead,
    CustomEmail,
    EmailLogRead,
    FormBrief,
    NoteCreate,
    NoteRead,
    StatusHistoryRead,
    StatusUpdate,
)
from admissions.schemas.auth import UserSession
from admissions.schemas.common import UserBrief, envelope
from admissions.services import application_service, review_service
from admissions.services.application_service import (
    ApplicationNotFoundError,
    EmailDeliveryError,
    InvalidBulkActionError,
    InvalidSubmissionError,
    StaffNotFoundError,
)
from admissions.services.email_sender import EmailSender
from admissions.utils.pagination import PaginationParams, build_summary, get_pagination

router = APIRouter()

require_reviewer = require_roles(ROLES_CAN_REVIEW_APPLICATIONS)


def _user_brief(user) -> UserBrief | None:
    if user is None:
        return None
    return UserBrief(id=user.id, name=user.name, email=user.email)


def _note_read(note) -> NoteRead:
    return NoteRead(
        id=note.id,
        note=note.note,
        is_internal=note.is_internal,
        added_by=_user_brief(note.added_by),
        added_at=as_utc(note.added_at),
    )


def _summary_fields(application) -> dict:
    form = application.form
    return {
        "id": application.id,
        "application_form": FormBrief(
            id=form.id, name=form.name, slug=form.slug, category=form.category
        )
        if form
        else None,
        "student_info": application.student_info or {},
        "status": application.status,
        "priority": application.priority,
        "assigned_to": _user_brief(application.assigned_to),
        "is_archived": application.is_archived,
        "submission_source": application.submission_source,
        "review_notes": [_note_read(note) for note in application.review_notes],
        "created_at": as_utc(application.created_at),
        "updated_at": as_utc(application.updated_at),
    }


def _application_summary(application) -> ApplicationSummary:
    return ApplicationSummary(**_summary_fields(application))


def _application_read(application) -> ApplicationRead:
    return ApplicationRead(
        **_summary_fields(application),
        academic_info=application.academic_info,
        course_preferences=application.course_preferences,
        documents=application.documents or [],
        form_data=application.form_data or {},
        status_history=[
            StatusHistoryRead(
                previous_status=entry.previous_status,
                new_status=entry.new_status,
                reason=entry.reason,
                changed_by=_user_brief(entry.changed_by),
                changed_at=as_utc(entry.changed_at),
            )
            for entry in application.status_history
        ],
        communication=CommunicationRead(
            emails_sent=[
                EmailLogRead(
                    type=entry.email_type,
                    subject=entry.subject,
                    delivered=entry.delivered,
                    sent_by=_user_brief(entry.sent_by),
                    sent_at=as_utc(entry.sent_at),
                )
                for entry in application.emails_sent
            ],
            last_contact_date=as_utc(application.last_contact_date),
        ),
        ip_address=application.ip_address,
        user_agent=application.user_agent,
        tags=application.tags or [],
    )


@router.get("")
def list_applications(
    status: ApplicationStatus | None = Query(None),
    priority: ApplicationPriority | None = Query(None),
    form_id: str | None = Query(None, alias="formId"),
    assigned_to: str | None = Query(None, alias="assignedTo"),
    search: str | None = Query(None, max_length=200),
    date_from: datetime | None = Query(None, alias="dateFrom"),
    date_to: datetime | None = Query(None, alias="dateTo"),
    include_archived: bool = Query(False, alias="includeArchived"),
    pagination: PaginationParams = Depends(get_pagination),
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_reviewer),
):
    applications, total = application_service.list_applications(
        db,
        pagination,
        include_archived=include_archived,
        status=status.value if status else None,
        priority=priority.value if priority else None,
        form_id=form_id,
        assigned_to=assigned_to,
        search=search,
        date_from=date_from,
        date_to=date_to,
    )
    data = ApplicationListData(
        applications=[_application_summary(a) for a in applications],
        pagination=build_summary(total, len(applications), pagination),
    )
    return envelope("Applications retrieved successfully", data)


@router.get("/stats")
def application_stats(
    form_id: str | None = Query(None, alias="formId"),
    date_from: datetime | None = Query(None, alias="dateFrom"),
    date_to: datetime | None = Query(None, alias="dateTo"),
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_reviewer),
):
    stats = review_service.get_stats(db, form_id=form_id, date_from=date_from, date_to=date_to)
    return envelope("Statistics retrieved successfully", stats)


@router.post("/bulk", dependencies=[Depends(require_csrf_header)])
def bulk_action(
    data: BulkOperation,
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_reviewer),
):
    try:
        result = review_service.bulk_action(db, session.user_id, data)
    except InvalidBulkActionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StaffNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return envelope(f"Bulk {data.action.value} completed successfully", result)


@router.get("/{application_id}")
def get_application(
    application_id: str,
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_reviewer),
):
    application = application_service.get_application(db, application_id)
    if application is None:
        raise HTTPException(status_code=404, detail="Application not found")
    return envelope(
        "Application retrieved successfully", {"application": _application_read(application)}
    )


@router.put("/{application_id}/status", dependencies=[Depends(require_csrf_header)])
def update_status(
    application_id: str,
    data: StatusUpdate,
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_reviewer),
    sender: EmailSender = Depends(get_email_sender),
):
    try:
        application = review_service.update_status(
            db, application_id, session.user_id, data, sender
        )
    except ApplicationNotFoundError:
        raise HTTPException(status_code=404, detail="Application not found")
    return envelope(
        "Application status updated successfully",
        {"application": _application_read(application)},
    )


@router.put("/{application_id}/assign", dependencies=[Depends(require_csrf_header)])
def assign_application(
    application_id: str,
    data: AssignmentUpdate,
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_reviewer),
):
    try:
        application = review_service.assign(
            db, application_id, session.user_id, data.assigned_to, data.notes
        )
    except ApplicationNotFoundError:
        raise HTTPException(status_code=404, detail="Application not found")
    except StaffNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return envelope(
        "Application assigned successfully", {"application": _application_read(application)}
    )


@router.post("/{application_id}/notes", dependencies=[Depends(require_csrf_header)])
def add_note(
    application_id: str,
    data: NoteCreate,
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_reviewer),
):
    try:
        notes = review_service.add_note(
            db, application_id, session.user_id, data.note, data.is_internal
        )
    except ApplicationNotFoundError:
        raise HTTPException(status_code=404, detail="Application not found")
    except InvalidSubmissionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return envelope("Note added successfully", {"notes": [_note_read(note) for note in notes]})


@router.post("/{application_id}/send-email", dependencies=[Depends(require_csrf_header)])
def send_email(
    application_id: str,
    data: CustomEmail,
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_reviewer),
    sender: EmailSender = Depends(get_email_sender),
):
    try:
        review_service.send_custom_email(
            db, application_id, session.user_id, session.email, data, sender
        )
    except ApplicationNotFoundError:
        raise HTTPException(status_code=404, detail="Application not found")
    except InvalidSubmissionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except EmailDeliveryError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return envelope("Email sent successfully")


@router.put("/{application_id}/archive", dependencies=[Depends(require_csrf_header)])
def toggle_archive(
    application_id: str,
    data: ArchiveToggle | None = None,
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_reviewer),
):
    archive = data.archive if data else True
    try:
        application = review_service.toggle_archive(db, application_id, archive)
    except ApplicationNotFoundError:
        raise HTTPException(status_code=404, detail="Application not found")
    return envelope(
        f"Application {'archived' if archive else 'unarchived'} successfully",
        {"application": _application_read(application)},
    )
