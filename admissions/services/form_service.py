"""Form definition service: CRUD, slugs, duplication and public lookup."""

from __future__ import annotations

import logging
import re
from typing import Any

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from admissions.db.enums import FormCategory
from admissions.db.models import ApplicationForm, Language, StudentApplication
from admissions.db.types import as_utc, is_object_id, utcnow
from admissions.schemas.forms import (
    EmailNotificationsIn,
    FieldSpec,
    FormCreate,
    FormSettingsIn,
    FormUpdate,
)
from admissions.services.notification_service import (
    DEFAULT_AUTO_REPLY_MESSAGE,
    default_auto_reply_subject,
)
from admissions.utils.pagination import PaginationParams, apply_sort, paginate_query

logger = logging.getLogger(__name__)

MAX_SLUG_ATTEMPTS = 5
GENERAL_LANGUAGE_FILTERS = {"general", "null"}

FORM_SORT_COLUMNS = {
    "createdAt": ApplicationForm.created_at,
    "updatedAt": ApplicationForm.updated_at,
    "name": ApplicationForm.name,
    "category": ApplicationForm.category,
    "submissions": ApplicationForm.submissions,
    "isActive": ApplicationForm.is_active,
}


class FormServiceError(Exception):
    """Base exception for form service errors."""

    pass


class FormNotFoundError(FormServiceError):
    """Form not found (or not publicly visible)."""

    pass


class DuplicateFormNameError(FormServiceError):
    """A form with the same name already exists."""

    pass


class FormInUseError(FormServiceError):
    """Form still has submissions and cannot be hard-deleted."""

    def __init__(self, application_count: int):
        self.application_count = application_count
        super().__init__(
            f"Cannot permanently delete form. It has {application_count} associated applications."
        )


class InvalidFormError(FormServiceError):
    """Form definition failed a business rule after schema validation."""

    pass


class FormDeadlinePassedError(FormServiceError):
    """The form no longer accepts submissions."""

    pass


# =============================================================================
# Slugs
# =============================================================================


def generate_slug(name: str) -> str:
    """Derive a URL-safe slug: [a-z0-9-] only, never empty."""
    slug = name.lower()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    slug = slug.strip("-")
    return slug or "form"


def next_available_slug(db: Session, base: str) -> str:
    """Return `base` or the first free `base-N` suffix."""
    taken = {
        row[0]
        for row in db.query(ApplicationForm.slug)
        .filter(or_(ApplicationForm.slug == base, ApplicationForm.slug.like(f"{base}-%")))
        .all()
    }
    if base not in taken:
        return base
    counter = 1
    while f"{base}-{counter}" in taken:
        counter += 1
    return f"{base}-{counter}"


def _slug_exists(db: Session, slug: str) -> bool:
    return db.query(ApplicationForm.id).filter(ApplicationForm.slug == slug).first() is not None


def _insert_with_unique_slug(db: Session, values: dict[str, Any]) -> ApplicationForm:
    """
    Insert a new form, letting the unique index arbitrate slug races.

    On a slug conflict the transaction is rolled back and the slug re-derived.
    """
    base = generate_slug(values["name"])
    for attempt in range(1, MAX_SLUG_ATTEMPTS + 1):
        slug = next_available_slug(db, base)
        form = ApplicationForm(slug=slug, **values)
        db.add(form)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            if not _slug_exists(db, slug):
                raise
            logger.info("Slug conflict on insert, retrying attempt=%s", attempt)
            continue
        db.refresh(form)
        return form
    raise InvalidFormError("Could not allocate a unique slug for this form")


# =============================================================================
# Cleaning
# =============================================================================


def clean_fields(fields: list[FieldSpec]) -> list[dict[str, Any]]:
    """Normalize field descriptors into the stored JSON shape."""
    cleaned: list[dict[str, Any]] = []
    for index, field in enumerate(fields):
        validation = {}
        if field.validation is not None:
            for key, value in field.validation.model_dump(by_alias=True).items():
                if value is not None and value != "":
                    validation[key] = value
        options = [
            {"value": option.value, "label": option.label}
            for option in (field.options or [])
            if option.value and option.label
        ]
        name = field.name.strip() or f"field_{index + 1}"
        label = field.label.strip() or f"Field {index + 1}"
        cleaned.append(
            {
                "name": name,
                "label": label,
                "type": field.type.value,
                "required": bool(field.required),
                "placeholder": (field.placeholder or "").strip(),
                "helpText": (field.help_text or "").strip(),
                "order": field.order if field.order is not None else index,
                "options": options,
                "validation": validation,
            }
        )
    return cleaned


def _settings_columns(settings_in: FormSettingsIn | None) -> dict[str, Any]:
    """Column values for a full settings block (create/duplicate)."""
    settings_in = settings_in or FormSettingsIn()
    return {
        "allow_multiple_submissions": bool(settings_in.allow_multiple_submissions),
        "max_submissions": settings_in.max_submissions or 1,
        "requires_approval": settings_in.requires_approval is not False,
        "max_capacity": settings_in.max_capacity or None,
        "submission_deadline": as_utc(settings_in.submission_deadline),
    }


def _notification_columns(
    notifications: EmailNotificationsIn | None, form_name: str
) -> dict[str, Any]:
    if notifications is None:
        return {
            "notifications_enabled": True,
            "admin_emails": [],
            "auto_reply_subject": default_auto_reply_subject(form_name),
            "auto_reply_message": DEFAULT_AUTO_REPLY_MESSAGE,
        }
    template = notifications.auto_reply_template
    return {
        "notifications_enabled": notifications.enabled is not False,
        "admin_emails": [str(email).lower() for email in notifications.admin_emails or []],
        "auto_reply_subject": (template.subject or None) if template else None,
        "auto_reply_message": (template.message or None) if template else None,
    }


def _check_language(db: Session, language_id: str | None) -> None:
    if language_id is None:
        return
    if db.get(Language, language_id) is None:
        raise InvalidFormError(f"Language not found: {language_id}")


def _name_taken(db: Session, name: str, exclude_id: str | None = None) -> bool:
    query = db.query(ApplicationForm.id).filter(
        func.lower(ApplicationForm.name) == name.strip().lower()
    )
    if exclude_id:
        query = query.filter(ApplicationForm.id != exclude_id)
    return query.first() is not None


# =============================================================================
# CRUD
# =============================================================================


def create_form(db: Session, user_id: str, data: FormCreate) -> ApplicationForm:
    """Create a form definition with a unique slug."""
    name = data.name.strip()
    if _name_taken(db, name):
        raise DuplicateFormNameError("A form with this name already exists")

    fields = clean_fields(data.fields)
    if not fields:
        raise InvalidFormError("No valid fields provided after data cleaning")
    _check_language(db, data.language)

    values: dict[str, Any] = {
        "name": name,
        "description": (data.description or "").strip(),
        "fields": fields,
        "category": (data.category or FormCategory.GENERAL).value,
        "language_id": data.language,
        "is_active": data.is_active if data.is_active is not None else True,
        "created_by_user_id": user_id,
        **_settings_columns(data.settings),
        **_notification_columns(data.email_notifications, name),
    }
    form = _insert_with_unique_slug(db, values)
    logger.info("Form created form_id=%s slug=%s", form.id, form.slug)
    return form


def get_form(db: Session, form_id: str) -> ApplicationForm | None:
    if not is_object_id(form_id):
        return None
    return db.get(ApplicationForm, form_id.lower())


def resolve_form(db: Session, identifier: str) -> ApplicationForm:
    """Look up by id first (when the identifier looks like one), then by slug."""
    form = get_form(db, identifier) if is_object_id(identifier) else None
    if form is None:
        form = db.query(ApplicationForm).filter(ApplicationForm.slug == identifier).first()
    if form is None:
        raise FormNotFoundError("Form not found")
    return form


def _form_query(db: Session):
    return db.query(ApplicationForm).options(
        joinedload(ApplicationForm.language),
        joinedload(ApplicationForm.created_by),
        joinedload(ApplicationForm.updated_by),
    )


def list_forms(
    db: Session,
    pagination: PaginationParams,
    *,
    category: str | None = None,
    is_active: bool | None = None,
    language: str | None = None,
    search: str | None = None,
) -> tuple[list[ApplicationForm], int]:
    query = _form_query(db)
    if category:
        query = query.filter(ApplicationForm.category == category)
    if is_active is not None:
        query = query.filter(ApplicationForm.is_active == is_active)
    if language:
        if language in GENERAL_LANGUAGE_FILTERS:
            query = query.filter(ApplicationForm.language_id.is_(None))
        else:
            query = query.filter(ApplicationForm.language_id == language.lower())
    if search:
        term = search.lower()
        query = query.filter(
            or_(
                func.lower(ApplicationForm.name).contains(term, autoescape=True),
                func.lower(func.coalesce(ApplicationForm.description, "")).contains(
                    term, autoescape=True
                ),
            )
        )
    query = apply_sort(query, FORM_SORT_COLUMNS, pagination)
    return paginate_query(query, pagination)


def update_form(db: Session, form_id: str, user_id: str, data: FormUpdate) -> ApplicationForm:
    """Partial update. Never touches the slug."""
    form = get_form(db, form_id)
    if form is None:
        raise FormNotFoundError("Form not found")

    if data.name is not None:
        name = data.name.strip()
        if name.lower() != form.name.lower() and _name_taken(db, name, exclude_id=form.id):
            raise DuplicateFormNameError("A form with this name already exists")
        form.name = name
    if data.description is not None:
        form.description = data.description.strip()
    if data.fields is not None:
        fields = clean_fields(data.fields)
        if not fields:
            raise InvalidFormError("At least one form field is required")
        form.fields = fields
    if data.category is not None:
        form.category = data.category.value
    if "language" in data.model_fields_set:
        _check_language(db, data.language)
        form.language_id = data.language
    if data.is_active is not None:
        form.is_active = data.is_active

    if data.settings is not None:
        for key, value in data.settings.model_dump(exclude_unset=True).items():
            if key == "submission_deadline":
                value = as_utc(value)
            elif key == "max_submissions":
                value = value or 1
            elif key in ("allow_multiple_submissions", "requires_approval"):
                if value is None:
                    continue
            setattr(form, key, value)

    if data.email_notifications is not None:
        notifications = data.email_notifications
        if notifications.enabled is not None:
            form.notifications_enabled = notifications.enabled
        if notifications.admin_emails is not None:
            form.admin_emails = [str(email).lower() for email in notifications.admin_emails]
        if notifications.auto_reply_template is not None:
            form.auto_reply_subject = notifications.auto_reply_template.subject or None
            form.auto_reply_message = notifications.auto_reply_template.message or None

    form.updated_by_user_id = user_id
    db.commit()
    db.refresh(form)
    logger.info("Form updated form_id=%s", form.id)
    return form


def count_applications(db: Session, form_id: str) -> int:
    return (
        db.query(func.count(StudentApplication.id))
        .filter(StudentApplication.form_id == form_id)
        .scalar()
        or 0
    )


def delete_form(
    db: Session, form_id: str, user_id: str, *, permanent: bool = False
) -> ApplicationForm | None:
    """
    Deactivate a form, or hard-delete it when it has no submissions.

    Returns the deactivated form, or None after a hard delete.
    """
    form = get_form(db, form_id)
    if form is None:
        raise FormNotFoundError("Form not found")

    if permanent:
        application_count = count_applications(db, form.id)
        if application_count > 0:
            raise FormInUseError(application_count)
        db.delete(form)
        db.commit()
        logger.info("Form permanently deleted form_id=%s", form_id)
        return None

    form.is_active = False
    form.updated_by_user_id = user_id
    db.commit()
    db.refresh(form)
    logger.info("Form deactivated form_id=%s", form.id)
    return form


def duplicate_form(
    db: Session, form_id: str, user_id: str, name: str | None = None
) -> ApplicationForm:
    """Copy a form under a fresh slug with its submission counter reset."""
    original = get_form(db, form_id)
    if original is None:
        raise FormNotFoundError("Original form not found")

    values: dict[str, Any] = {
        "name": (name or "").strip() or f"{original.name} (Copy)",
        "description": original.description,
        "fields": [dict(field) for field in original.fields],
        "category": original.category,
        "language_id": original.language_id,
        "is_active": original.is_active,
        "allow_multiple_submissions": original.allow_multiple_submissions,
        "max_submissions": original.max_submissions,
        "max_capacity": original.max_capacity,
        "submission_deadline": original.submission_deadline,
        "requires_approval": original.requires_approval,
        "notifications_enabled": original.notifications_enabled,
        "admin_emails": list(original.admin_emails or []),
        "auto_reply_subject": original.auto_reply_subject,
        "auto_reply_message": original.auto_reply_message,
        "submissions": 0,
        "created_by_user_id": user_id,
    }
    form = _insert_with_unique_slug(db, values)
    logger.info("Form duplicated source_id=%s form_id=%s", form_id, form.id)
    return form


# =============================================================================
# Language views
# =============================================================================


def list_languages(db: Session) -> list[Language]:
    return (
        db.query(Language)
        .filter(Language.is_active.is_(True))
        .order_by(Language.name.asc())
        .all()
    )


def list_forms_by_language(
    db: Session, language_id: str, *, active_only: bool = True
) -> list[ApplicationForm]:
    query = _form_query(db).filter(ApplicationForm.language_id == language_id.lower())
    if active_only:
        query = query.filter(ApplicationForm.is_active.is_(True))
    return query.order_by(ApplicationForm.created_at.desc()).all()


def list_general_forms(db: Session, *, active_only: bool = True) -> list[ApplicationForm]:
    query = _form_query(db).filter(ApplicationForm.language_id.is_(None))
    if active_only:
        query = query.filter(ApplicationForm.is_active.is_(True))
    return query.order_by(ApplicationForm.created_at.desc()).all()


# =============================================================================
# Public
# =============================================================================


def deadline_passed(form: ApplicationForm) -> bool:
    deadline = as_utc(form.submission_deadline)
    return deadline is not None and utcnow() > deadline


def get_public_form(db: Session, slug: str) -> ApplicationForm:
    """Active form by slug, as long as it is still accepting submissions."""
    form = (
        db.query(ApplicationForm)
        .options(joinedload(ApplicationForm.language))
        .filter(ApplicationForm.slug == slug, ApplicationForm.is_active.is_(True))
        .first()
    )
    if form is None:
        raise FormNotFoundError("Form not found or inactive")
    if deadline_passed(form):
        raise FormDeadlinePassedError("Submission deadline has passed")
    return form
