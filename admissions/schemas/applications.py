"""Schemas for student applications and their review lifecycle."""

from datetime import datetime
from typing import Any

from pydantic import ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from admissions.db.enums import ApplicationPriority, ApplicationStatus, BulkAction
from admissions.db.types import is_object_id
from admissions.schemas.common import CamelModel, PaginationSummary, UserBrief


def _check_object_id(value: str | None) -> str | None:
    if value is None:
        return None
    if not is_object_id(value):
        raise ValueError("Invalid ID")
    return value.lower()


# =============================================================================
# Intake
# =============================================================================


class StudentInfo(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    full_name: str | None = Field(None, min_length=1)
    email: EmailStr | None = None
    phone_number: str | None = Field(None, min_length=1)
    date_of_birth: str | None = None
    address: dict[str, Any] | None = None
    emergency_contact: dict[str, Any] | None = None


class ApplicationSubmit(CamelModel):
    student_info: StudentInfo | None = None
    academic_info: dict[str, Any] | None = None
    course_preferences: dict[str, Any] | None = None
    documents: list[dict[str, Any]] | None = None
    form_data: dict[str, Any] | None = None
    tags: list[str] | None = None


class SubmitResult(CamelModel):
    application_id: str
    message: str


class PublicNote(CamelModel):
    note: str
    added_at: datetime


class PublicStatus(CamelModel):
    status: str
    submitted_at: datetime
    form_name: str
    public_notes: list[PublicNote]
    last_contact: datetime | None


# =============================================================================
# Review actions
# =============================================================================


class StatusUpdate(CamelModel):
    status: ApplicationStatus
    reason: str | None = Field(None, max_length=500)
    notes: str | None = Field(None, max_length=1000)
    send_email: bool = True


class AssignmentUpdate(CamelModel):
    assigned_to: str | None = None
    notes: str | None = Field(None, max_length=500)

    @field_validator("assigned_to")
    @classmethod
    def check_assignee(cls, value: str | None) -> str | None:
        return _check_object_id(value)


class NoteCreate(CamelModel):
    note: str = Field(..., min_length=1, max_length=1000)
    is_internal: bool = True

    @field_validator("note")
    @classmethod
    def check_note(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Note content is required")
        return value


class CustomEmail(CamelModel):
    subject: str = Field(..., min_length=3, max_length=200)
    message: str = Field(..., min_length=10, max_length=5000)
    copy_to_admin: bool = False


class ArchiveToggle(CamelModel):
    archive: bool = True


class BulkData(CamelModel):
    status: ApplicationStatus | None = None
    reason: str | None = None
    assigned_to: str | None = None
    archive: bool | None = None
    priority: ApplicationPriority | None = None

    @field_validator("assigned_to")
    @classmethod
    def check_assignee(cls, value: str | None) -> str | None:
        return _check_object_id(value)


class BulkOperation(CamelModel):
    action: BulkAction
    application_ids: list[str] = Field(..., min_length=1)
    data: BulkData = Field(default_factory=BulkData)

    @field_validator("application_ids")
    @classmethod
    def check_ids(cls, value: list[str]) -> list[str]:
        for item in value:
            if not is_object_id(item):
                raise ValueError(f"Invalid application ID: {item}")
        return [item.lower() for item in value]


class BulkResult(CamelModel):
    matched_count: int
    modified_count: int


# =============================================================================
# Read models
# =============================================================================


class FormBrief(CamelModel):
    id: str
    name: str
    slug: str
    category: str


class NoteRead(CamelModel):
    id: str
    note: str
    is_internal: bool
    added_by: UserBrief | None
    added_at: datetime


class StatusHistoryRead(CamelModel):
    previous_status: str | None
    new_status: str
    reason: str | None
    changed_by: UserBrief | None
    changed_at: datetime


class EmailLogRead(CamelModel):
    type: str
    subject: str
    delivered: bool
    sent_by: UserBrief | None
    sent_at: datetime


class CommunicationRead(CamelModel):
    emails_sent: list[EmailLogRead]
    last_contact_date: datetime | None


class ApplicationSummary(CamelModel):
    id: str
    application_form: FormBrief | None
    student_info: dict[str, Any]
    status: str
    priority: str
    assigned_to: UserBrief | None
    is_archived: bool
    submission_source: str
    review_notes: list[NoteRead]
    created_at: datetime
    updated_at: datetime


class ApplicationRead(ApplicationSummary):
    academic_info: dict[str, Any] | None
    course_preferences: dict[str, Any] | None
    documents: list[dict[str, Any]]
    form_data: dict[str, Any]
    status_history: list[StatusHistoryRead]
    communication: CommunicationRead
    ip_address: str | None
    user_agent: str | None
    tags: list[str]


class ApplicationListData(CamelModel):
    applications: list[ApplicationSummary]
    pagination: PaginationSummary


# =============================================================================
# Statistics
# =============================================================================


class StatusCount(CamelModel):
    status: str
    count: int


class PriorityCount(CamelModel):
    priority: str
    count: int


class FormCount(CamelModel):
    form_id: str
    form_name: str
    count: int


class DailyCount(CamelModel):
    date: str  # YYYY-MM-DD (UTC)
    count: int


class ApplicationStats(CamelModel):
    total_applications: int
    status_breakdown: list[StatusCount]
    priority_breakdown: list[PriorityCount]
    form_breakdown: list[FormCount]
    recent_activity: list[DailyCount]
