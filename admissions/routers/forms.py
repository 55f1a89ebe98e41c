"""Form definition endpoints (admin)."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from admissions.core.deps import get_db, require_csrf_header, require_roles
from admissions.db.enums import ROLES_CAN_MANAGE_FORMS, FormCategory
from admissions.db.types import as_utc
from admissions.schemas.auth import UserSession
from admissions.schemas.common import UserBrief, envelope
from admissions.schemas.forms import (
    AutoReplyTemplate,
    EmailNotificationsRead,
    FormCreate,
    FormDuplicate,
    FormListData,
    FormRead,
    FormSettingsRead,
    FormUpdate,
    LanguageBrief,
    LanguageOption,
    PublicFormRead,
)
from admissions.services import form_service
from admissions.services.form_service import (
    DuplicateFormNameError,
    FormInUseError,
    FormNotFoundError,
    InvalidFormError,
)
from admissions.utils.pagination import PaginationParams, build_summary, get_pagination

router = APIRouter()

require_form_manager = require_roles(ROLES_CAN_MANAGE_FORMS)


def _user_brief(user) -> UserBrief | None:
    if user is None:
        return None
    return UserBrief(id=user.id, name=user.name, email=user.email)


def _language_brief(language) -> LanguageBrief | None:
    if language is None:
        return None
    return LanguageBrief(id=language.id, name=language.name, code=language.code, flag=language.flag)


def form_read(form) -> FormRead:
    return FormRead(
        id=form.id,
        name=form.name,
        slug=form.slug,
        description=form.description,
        fields=form.fields or [],
        category=form.category,
        language=_language_brief(form.language),
        is_language_specific=form.is_language_specific,
        form_type=form.form_type,
        settings=FormSettingsRead(
            allow_multiple_submissions=form.allow_multiple_submissions,
            max_submissions=form.max_submissions,
            max_capacity=form.max_capacity,
            submission_deadline=as_utc(form.submission_deadline),
            requires_approval=form.requires_approval,
        ),
        email_notifications=EmailNotificationsRead(
            enabled=form.notifications_enabled,
            admin_emails=form.admin_emails or [],
            auto_reply_template=AutoReplyTemplate(
                subject=form.auto_reply_subject, message=form.auto_reply_message
            ),
        ),
        is_active=form.is_active,
        submissions=form.submissions,
        created_by=_user_brief(form.created_by),
        updated_by=_user_brief(form.updated_by),
        created_at=as_utc(form.created_at),
        updated_at=as_utc(form.updated_at),
    )


def public_form_read(form) -> PublicFormRead:
    return PublicFormRead(
        id=form.id,
        name=form.name,
        slug=form.slug,
        description=form.description,
        fields=sorted(form.fields or [], key=lambda field: field.get("order", 0)),
        category=form.category,
        language=_language_brief(form.language),
        submission_deadline=as_utc(form.submission_deadline),
    )


# =============================================================================
# Static routes (declared before /{identifier})
# =============================================================================


@router.post("/create", status_code=201, dependencies=[Depends(require_csrf_header)])
def create_form(
    data: FormCreate,
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_form_manager),
):
    try:
        form = form_service.create_form(db, session.user_id, data)
    except DuplicateFormNameError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except InvalidFormError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return envelope("Form created successfully", {"form": form_read(form)})


@router.get("")
def list_forms(
    category: FormCategory | None = Query(None),
    is_active: bool | None = Query(None, alias="isActive"),
    language: str | None = Query(None),
    search: str | None = Query(None, max_length=200),
    pagination: PaginationParams = Depends(get_pagination),
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_form_manager),
):
    forms, total = form_service.list_forms(
        db,
        pagination,
        category=category.value if category else None,
        is_active=is_active,
        language=language,
        search=search,
    )
    data = FormListData(
        forms=[form_read(form) for form in forms],
        pagination=build_summary(total, len(forms), pagination),
    )
    return envelope("Forms retrieved successfully", data)


@router.get("/languages")
def list_languages(
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_form_manager),
):
    languages = [
        LanguageOption.model_validate(language) for language in form_service.list_languages(db)
    ]
    return envelope("Languages retrieved successfully", {"languages": languages})


@router.get("/general")
def list_general_forms(
    active_only: bool = Query(True, alias="activeOnly"),
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_form_manager),
):
    forms = form_service.list_general_forms(db, active_only=active_only)
    return envelope(
        "General forms retrieved successfully",
        {"forms": [form_read(form) for form in forms], "count": len(forms)},
    )


@router.get("/by-language/{language_id}")
def list_forms_by_language(
    language_id: str,
    active_only: bool = Query(True, alias="activeOnly"),
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_form_manager),
):
    forms = form_service.list_forms_by_language(db, language_id, active_only=active_only)
    return envelope(
        "Language-specific forms retrieved successfully",
        {"forms": [form_read(form) for form in forms], "count": len(forms)},
    )


# =============================================================================
# Single form
# =============================================================================


@router.get("/{identifier}")
def get_form(
    identifier: str,
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_form_manager),
):
    try:
        form = form_service.resolve_form(db, identifier)
    except FormNotFoundError:
        raise HTTPException(status_code=404, detail="Form not found")
    return envelope("Form retrieved successfully", {"form": form_read(form)})


@router.put("/{form_id}", dependencies=[Depends(require_csrf_header)])
def update_form(
    form_id: str,
    data: FormUpdate,
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_form_manager),
):
    try:
        form = form_service.update_form(db, form_id, session.user_id, data)
    except FormNotFoundError:
        raise HTTPException(status_code=404, detail="Form not found")
    except DuplicateFormNameError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except InvalidFormError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return envelope("Form updated successfully", {"form": form_read(form)})


@router.delete("/{form_id}", dependencies=[Depends(require_csrf_header)])
def delete_form(
    form_id: str,
    permanent: bool = Query(False),
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_form_manager),
):
    try:
        form = form_service.delete_form(db, form_id, session.user_id, permanent=permanent)
    except FormNotFoundError:
        raise HTTPException(status_code=404, detail="Form not found")
    except FormInUseError as e:
        raise HTTPException(
            status_code=400,
            detail={"message": str(e), "data": {"applicationCount": e.application_count}},
        )
    if form is None:
        return envelope("Form permanently deleted")
    return envelope("Form deactivated successfully", {"form": form_read(form)})


@router.post("/{form_id}/duplicate", status_code=201, dependencies=[Depends(require_csrf_header)])
def duplicate_form(
    form_id: str,
    data: FormDuplicate | None = None,
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_form_manager),
):
    try:
        form = form_service.duplicate_form(
            db, form_id, session.user_id, data.name if data else None
        )
    except FormNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidFormError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return envelope("Form duplicated successfully", {"form": form_read(form)})
