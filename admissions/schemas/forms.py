"""Schemas for application form definitions."""

from datetime import datetime

from pydantic import EmailStr, Field, field_validator

from admissions.db.enums import FieldType, FormCategory
from admissions.db.types import is_object_id
from admissions.schemas.common import CamelModel, PaginationSummary, ReadModel, UserBrief


class FieldOption(CamelModel):
    # Options missing either part are dropped when the field list is cleaned
    value: str | None = None
    label: str | None = None


class FieldValidation(CamelModel):
    min: float | None = None
    max: float | None = None
    min_length: int | None = None
    max_length: int | None = None
    pattern: str | None = None


class FieldSpec(CamelModel):
    name: str = Field(..., min_length=1, max_length=50)
    label: str = Field(..., min_length=1, max_length=100)
    type: FieldType
    required: bool = False
    options: list[FieldOption] | None = None
    placeholder: str | None = None
    help_text: str | None = None
    validation: FieldValidation | None = None
    order: int | None = None


class FormSettingsIn(CamelModel):
    allow_multiple_submissions: bool | None = None
    max_submissions: int | None = Field(None, ge=1)
    max_capacity: int | None = Field(None, gt=0)
    submission_deadline: datetime | None = None
    requires_approval: bool | None = None


class AutoReplyTemplate(CamelModel):
    subject: str | None = Field(None, max_length=200)
    message: str | None = None


class EmailNotificationsIn(CamelModel):
    enabled: bool | None = None
    admin_emails: list[EmailStr] | None = None
    auto_reply_template: AutoReplyTemplate | None = None


def _normalize_language(value: str | None) -> str | None:
    """Empty string means general; anything else must be a 24-hex id."""
    if value is None or value == "":
        return None
    if not is_object_id(value):
        raise ValueError("Invalid language ID")
    return value.lower()


class FormCreate(CamelModel):
    name: str = Field(..., min_length=3, max_length=100)
    description: str | None = Field(None, max_length=500)
    fields: list[FieldSpec] = Field(..., min_length=1)
    category: FormCategory | None = None
    language: str | None = None
    is_active: bool | None = None
    email_notifications: EmailNotificationsIn | None = None
    settings: FormSettingsIn | None = None

    @field_validator("language")
    @classmethod
    def check_language(cls, value: str | None) -> str | None:
        return _normalize_language(value)

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Form name is required")
        return value


class FormUpdate(CamelModel):
    """Partial update. The slug is not accepted: it never changes after creation."""

    name: str | None = Field(None, min_length=3, max_length=100)
    description: str | None = Field(None, max_length=500)
    fields: list[FieldSpec] | None = Field(None, min_length=1)
    category: FormCategory | None = None
    language: str | None = None
    is_active: bool | None = None
    email_notifications: EmailNotificationsIn | None = None
    settings: FormSettingsIn | None = None

    @field_validator("language")
    @classmethod
    def check_language(cls, value: str | None) -> str | None:
        return _normalize_language(value)

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            raise ValueError("Form name cannot be empty")
        return value


class FormDuplicate(CamelModel):
    name: str | None = Field(None, min_length=3, max_length=100)


# =============================================================================
# Read models
# =============================================================================


class LanguageBrief(ReadModel):
    id: str
    name: str
    code: str
    flag: str | None = None


class FormSettingsRead(CamelModel):
    allow_multiple_submissions: bool
    max_submissions: int
    max_capacity: int | None
    submission_deadline: datetime | None
    requires_approval: bool


class EmailNotificationsRead(CamelModel):
    enabled: bool
    admin_emails: list[str]
    auto_reply_template: AutoReplyTemplate


class FormRead(CamelModel):
    id: str
    name: str
    slug: str
    description: str | None
    fields: list[dict]
    category: str
    language: LanguageBrief | None
    is_language_specific: bool
    form_type: str
    settings: FormSettingsRead
    email_notifications: EmailNotificationsRead
    is_active: bool
    submissions: int
    created_by: UserBrief | None
    updated_by: UserBrief | None
    created_at: datetime
    updated_at: datetime


class FormListData(CamelModel):
    forms: list[FormRead]
    pagination: PaginationSummary


class PublicFormRead(CamelModel):
    """Applicant-facing subset of a form."""

    id: str
    name: str
    slug: str
    description: str | None
    fields: list[dict]
    category: str
    language: LanguageBrief | None
    submission_deadline: datetime | None


class LanguageOption(ReadModel):
    id: str
    name: str
    code: str
    flag: str | None = None
    is_active: bool
