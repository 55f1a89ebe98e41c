"""Tests for form definition service: create, update, delete, duplicate, views."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from admissions.db.models import StudentApplication
from admissions.schemas.forms import FormCreate, FormUpdate
from admissions.services import form_service
from admissions.services.form_service import (
    DuplicateFormNameError,
    FormDeadlinePassedError,
    FormInUseError,
    FormNotFoundError,
    InvalidFormError,
)
from admissions.utils.pagination import PaginationParams

from conftest import form_payload


def _add_application(db, form, email="a@x.com"):
    application = StudentApplication(
        form_id=form.id, student_info={"email": email}, student_email=email
    )
    db.add(application)
    db.commit()
    return application


# =============================================================================
# Create
# =============================================================================


def test_create_applies_defaults(make_form, admin_user):
    form = make_form("IELTS Prep")

    assert form.category == "general"
    assert form.is_active is True
    assert form.submissions == 0
    assert form.language_id is None
    assert form.form_type == "General"
    assert form.is_language_specific is False
    assert form.allow_multiple_submissions is False
    assert form.max_submissions == 1
    assert form.max_capacity is None
    assert form.requires_approval is True
    assert form.notifications_enabled is True
    assert form.admin_emails == []
    assert form.auto_reply_subject == "Thank you for your application to IELTS Prep"
    assert form.created_by_user_id == admin_user.id


def test_create_cleans_fields(make_form):
    form = make_form(
        "Course Enrolment",
        fields=[
            {
                "name": "  level ",
                "label": " Level ",
                "type": "select",
                "options": [
                    {"value": "a1", "label": "A1"},
                    {"value": "", "label": "Empty value"},
                    {"value": "b1"},
                ],
                "validation": {"minLength": None, "maxLength": 20, "pattern": ""},
            },
            {"name": "notes", "label": "Notes", "type": "textarea", "order": 7},
        ],
    )

    level, notes = form.fields
    assert level["name"] == "level"
    assert level["label"] == "Level"
    assert level["order"] == 0
    assert level["options"] == [{"value": "a1", "label": "A1"}]
    assert level["validation"] == {"maxLength": 20}
    assert level["required"] is False
    assert notes["order"] == 7
    assert notes["helpText"] == ""


def test_create_rejects_existing_name_case_insensitive(make_form):
    make_form("IELTS Prep")
    with pytest.raises(DuplicateFormNameError):
        make_form("ielts prep")


def test_create_with_unknown_language_rejected(make_form):
    with pytest.raises(InvalidFormError):
        make_form("French A1", language="0" * 24)


def test_create_schema_validation():
    with pytest.raises(ValidationError):
        FormCreate.model_validate(form_payload("ab"))
    with pytest.raises(ValidationError):
        FormCreate.model_validate(form_payload("Valid Name", fields=[]))
    with pytest.raises(ValidationError):
        FormCreate.model_validate(
            form_payload("Valid Name", fields=[{"name": "x", "label": "X", "type": "signature"}])
        )
    with pytest.raises(ValidationError):
        FormCreate.model_validate(form_payload("Valid Name", language="not-an-id"))


def test_create_language_specific(make_form, language):
    form = make_form("English B2", language=language.id, category="language-course")
    assert form.language_id == language.id
    assert form.is_language_specific is True
    assert form.form_type == "Language-Specific"


def test_empty_language_string_means_general(make_form):
    form = make_form("General Consultation", language="")
    assert form.language_id is None


# =============================================================================
# Read
# =============================================================================


def test_resolve_by_id_then_slug(db, make_form):
    form = make_form("IELTS Prep")
    assert form_service.resolve_form(db, form.id).id == form.id
    assert form_service.resolve_form(db, form.id.upper()).id == form.id
    assert form_service.resolve_form(db, "ielts-prep").id == form.id
    with pytest.raises(FormNotFoundError):
        form_service.resolve_form(db, "missing-form")


def test_list_filters_and_pagination(db, make_form, language):
    make_form("IELTS Prep", category="test-preparation")
    make_form("TOEFL Prep", category="test-preparation", isActive=False)
    make_form("English A1", category="language-course", language=language.id)

    forms, total = form_service.list_forms(
        db, PaginationParams(), category="test-preparation"
    )
    assert total == 2

    forms, total = form_service.list_forms(db, PaginationParams(), is_active=False)
    assert [f.name for f in forms] == ["TOEFL Prep"]

    forms, total = form_service.list_forms(db, PaginationParams(), language="general")
    assert total == 2
    forms, total = form_service.list_forms(db, PaginationParams(), language=language.id)
    assert [f.name for f in forms] == ["English A1"]

    forms, total = form_service.list_forms(db, PaginationParams(), search="prep")
    assert total == 2

    forms, total = form_service.list_forms(
        db, PaginationParams(page=2, limit=2, sort_by="name", sort_order="asc")
    )
    assert total == 3
    assert [f.name for f in forms] == ["TOEFL Prep"]


def test_language_views(db, make_form, language):
    make_form("English A1", language=language.id)
    make_form("English B1", language=language.id, isActive=False)
    make_form("General Consultation")

    assert [l.code for l in form_service.list_languages(db)] == ["en"]
    assert len(form_service.list_forms_by_language(db, language.id)) == 1
    assert len(form_service.list_forms_by_language(db, language.id, active_only=False)) == 2
    general = form_service.list_general_forms(db)
    assert [f.name for f in general] == ["General Consultation"]


# =============================================================================
# Update
# =============================================================================


def test_update_partial_merge(db, make_form, admin_user, counsellor_user):
    form = make_form("IELTS Prep", settings={"maxCapacity": 10})
    updated = form_service.update_form(
        db,
        form.id,
        counsellor_user.id,
        FormUpdate.model_validate(
            {
                "description": "Six week course",
                "settings": {"allowMultipleSubmissions": True},
                "emailNotifications": {"adminEmails": ["Office@Langzy.com"]},
            }
        ),
    )
    assert updated.description == "Six week course"
    assert updated.allow_multiple_submissions is True
    assert updated.max_capacity == 10
    assert updated.admin_emails == ["office@langzy.com"]
    assert updated.name == "IELTS Prep"
    assert updated.updated_by_user_id == counsellor_user.id


def test_update_rename_checks_conflict(db, make_form, admin_user):
    make_form("IELTS Prep")
    other = make_form("TOEFL Prep")
    with pytest.raises(DuplicateFormNameError):
        form_service.update_form(db, other.id, admin_user.id, FormUpdate(name="IELTS PREP"))

    # Changing only the case of its own name is allowed
    renamed = form_service.update_form(db, other.id, admin_user.id, FormUpdate(name="toefl prep"))
    assert renamed.name == "toefl prep"


def test_update_clears_capacity(db, make_form, admin_user):
    form = make_form("IELTS Prep", settings={"maxCapacity": 10})
    updated = form_service.update_form(
        db, form.id, admin_user.id, FormUpdate.model_validate({"settings": {"maxCapacity": None}})
    )
    assert updated.max_capacity is None


def test_update_missing_form(db, admin_user):
    with pytest.raises(FormNotFoundError):
        form_service.update_form(db, "0" * 24, admin_user.id, FormUpdate(name="Anything"))


# =============================================================================
# Delete
# =============================================================================


def test_soft_delete_deactivates(db, make_form, admin_user):
    form = make_form("IELTS Prep")
    result = form_service.delete_form(db, form.id, admin_user.id)
    assert result is not None
    assert result.is_active is False
    assert form_service.get_form(db, form.id) is not None


def test_hard_delete_blocked_with_submissions(db, make_form, admin_user):
    form = make_form("IELTS Prep")
    _add_application(db, form, "a@x.com")
    _add_application(db, form, "b@x.com")

    with pytest.raises(FormInUseError) as exc_info:
        form_service.delete_form(db, form.id, admin_user.id, permanent=True)
    assert exc_info.value.application_count == 2
    assert "2 associated applications" in str(exc_info.value)
    assert form_service.get_form(db, form.id) is not None


def test_hard_delete_without_submissions(db, make_form, admin_user):
    form = make_form("IELTS Prep")
    form_id = form.id
    assert form_service.delete_form(db, form_id, admin_user.id, permanent=True) is None
    assert form_service.get_form(db, form_id) is None


# =============================================================================
# Duplicate
# =============================================================================


def test_duplicate_copies_config_and_resets_counter(db, make_form, admin_user, counsellor_user, language):
    original = make_form(
        "IELTS Prep",
        language=language.id,
        category="test-preparation",
        settings={"maxCapacity": 5, "allowMultipleSubmissions": True},
        emailNotifications={"adminEmails": ["office@langzy.com"]},
    )
    original.submissions = 3
    db.commit()

    copy = form_service.duplicate_form(db, original.id, counsellor_user.id)

    assert copy.id != original.id
    assert copy.name == "IELTS Prep (Copy)"
    assert copy.slug == "ielts-prep-copy"
    assert copy.submissions == 0
    assert copy.fields == original.fields
    assert copy.category == "test-preparation"
    assert copy.language_id == language.id
    assert copy.max_capacity == 5
    assert copy.allow_multiple_submissions is True
    assert copy.admin_emails == ["office@langzy.com"]
    assert copy.created_by_user_id == counsellor_user.id


def test_duplicate_missing_form(db, admin_user):
    with pytest.raises(FormNotFoundError):
        form_service.duplicate_form(db, "0" * 24, admin_user.id)


# =============================================================================
# Public view
# =============================================================================


def test_public_form_visibility(db, make_form, admin_user):
    form = make_form("IELTS Prep")
    assert form_service.get_public_form(db, "ielts-prep").id == form.id

    form_service.delete_form(db, form.id, admin_user.id)
    with pytest.raises(FormNotFoundError):
        form_service.get_public_form(db, "ielts-prep")


def test_public_form_after_deadline(db, make_form):
    past = datetime.now(timezone.utc) - timedelta(days=1)
    make_form("IELTS Prep", settings={"submissionDeadline": past.isoformat()})
    with pytest.raises(FormDeadlinePassedError):
        form_service.get_public_form(db, "ielts-prep")
