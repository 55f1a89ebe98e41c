"""Tests for form slug derivation and uniqueness."""

import re

import pytest

from admissions.schemas.forms import FormCreate
from admissions.services import form_service

from conftest import form_payload


SLUG_RE = re.compile(r"^[a-z0-9-]+$")


@pytest.mark.parametrize(
    "name,expected",
    [
        ("IELTS Prep", "ielts-prep"),
        ("  Spanish   A1 -- Evening  ", "spanish-a1-evening"),
        ("TOEFL® (2025 intake)!", "toefl-2025-intake"),
        ("---", "form"),
        ("日本語コース", "form"),
        ("Consultation_Request", "consultationrequest"),
    ],
)
def test_generate_slug(name, expected):
    slug = form_service.generate_slug(name)
    assert slug == expected
    assert SLUG_RE.match(slug)
    assert not slug.startswith("-") and not slug.endswith("-")


def test_names_with_same_slug_base_get_distinct_slugs(make_form):
    first = make_form("IELTS Prep")
    second = make_form("IELTS Prep!")
    third = make_form("IELTS  Prep?")

    assert first.slug == "ielts-prep"
    assert second.slug == "ielts-prep-1"
    assert third.slug == "ielts-prep-2"


def test_duplicate_with_identical_name_gets_distinct_slug(db, make_form, admin_user):
    original = make_form("IELTS Prep")
    copy = form_service.duplicate_form(db, original.id, admin_user.id, name="IELTS Prep")

    assert copy.name == original.name
    assert copy.slug != original.slug
    assert SLUG_RE.match(copy.slug)


def test_next_available_slug_fills_first_gap(db, make_form):
    make_form("Evening Class")
    make_form("Evening Class!")
    assert form_service.next_available_slug(db, "evening-class") == "evening-class-2"
    assert form_service.next_available_slug(db, "morning-class") == "morning-class"


def test_slug_conflict_on_insert_is_retried(db, make_form, admin_user, monkeypatch):
    """A concurrent writer taking the slug between lookup and insert triggers a retry."""
    make_form("IELTS Prep")
    real_next = form_service.next_available_slug
    calls = []

    def stale_lookup(session, base):
        calls.append(base)
        if len(calls) == 1:
            return base  # already taken: simulates losing the race
        return real_next(session, base)

    monkeypatch.setattr(form_service, "next_available_slug", stale_lookup)

    form = form_service.create_form(
        db, admin_user.id, FormCreate.model_validate(form_payload("IELTS Prep!!"))
    )

    assert len(calls) == 2
    assert form.slug == "ielts-prep-1"


def test_slug_never_changes_on_update(db, make_form, admin_user):
    from admissions.schemas.forms import FormUpdate

    form = make_form("IELTS Prep")
    updated = form_service.update_form(
        db, form.id, admin_user.id, FormUpdate(name="IELTS Academic Prep")
    )
    assert updated.name == "IELTS Academic Prep"
    assert updated.slug == "ielts-prep"
