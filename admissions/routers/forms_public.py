"""Public (unauthenticated) form endpoints: view, submit, status check."""

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from admissions.core.deps import get_db, get_email_sender
from admissions.core.rate_limit import SUBMIT_LIMIT, limiter
from admissions.routers.forms import public_form_read
from admissions.schemas.applications import ApplicationSubmit, SubmitResult
from admissions.schemas.common import envelope
from admissions.services import application_service, form_service
from admissions.services.application_service import (
    ApplicationNotFoundError,
    CapacityReachedError,
    DeadlinePassedError,
    DuplicateSubmissionError,
    FormUnavailableError,
    InvalidSubmissionError,
)
from admissions.services.email_sender import EmailSender
from admissions.services.form_service import FormDeadlinePassedError, FormNotFoundError
from admissions.utils.request_meta import get_client_ip, get_user_agent

router = APIRouter()


@router.get("/public/applications/status/{email}/{form_id}")
def check_application_status(
    email: str,
    form_id: str,
    db: Session = Depends(get_db),
):
    """Let an applicant see where their application stands."""
    try:
        status = application_service.get_public_status(db, email, form_id)
    except ApplicationNotFoundError:
        raise HTTPException(status_code=404, detail="Application not found")
    return envelope("Application status retrieved successfully", status)


@router.get("/public/{slug}")
def get_public_form(slug: str, db: Session = Depends(get_db)):
    try:
        form = form_service.get_public_form(db, slug)
    except FormNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except FormDeadlinePassedError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return envelope("Form retrieved successfully", {"form": public_form_read(form)})


@router.post("/{form_id}/submit", status_code=201)
@limiter.limit(SUBMIT_LIMIT)
def submit_application(
    request: Request,
    form_id: str,
    data: ApplicationSubmit,
    db: Session = Depends(get_db),
    sender: EmailSender = Depends(get_email_sender),
):
    try:
        application = application_service.submit_application(
            db,
            form_id,
            data,
            sender,
            ip_address=get_client_ip(request),
            user_agent=get_user_agent(request),
        )
    except FormUnavailableError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (
        DeadlinePassedError,
        CapacityReachedError,
        DuplicateSubmissionError,
        InvalidSubmissionError,
    ) as e:
        raise HTTPException(status_code=400, detail=str(e))

    result = SubmitResult(
        application_id=application.id,
        message=application_service.SUBMISSION_RECEIVED_MESSAGE,
    )
    return envelope("Application submitted successfully", result)
