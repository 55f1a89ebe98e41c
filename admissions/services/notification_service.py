"""Applicant/admin email composition and best-effort dispatch."""

from __future__ import annotations

import logging

from admissions.core.config import settings
from admissions.core.structured_logging import build_log_context
from admissions.db.enums import ApplicationStatus
from admissions.services.email_sender import EmailSender

logger = logging.getLogger(__name__)

DEFAULT_AUTO_REPLY_MESSAGE = "We have received your application and will review it shortly."

# status -> (subject prefix, opening line, fallback closing line)
_STATUS_TEMPLATES: dict[str, tuple[str, str, str]] = {
    ApplicationStatus.APPROVED.value: (
        "Application Approved",
        "Congratulations! Your application for {form} has been approved.",
        "We will contact you soon with next steps.",
    ),
    ApplicationStatus.REJECTED.value: (
        "Application Update",
        "Thank you for your application for {form}. After careful review, we regret "
        "to inform you that we cannot proceed with your application at this time.",
        "We encourage you to apply again in the future.",
    ),
    ApplicationStatus.WAITLISTED.value: (
        "Application Waitlisted",
        "Your application for {form} has been placed on our waitlist.",
        "We will contact you if a spot becomes available.",
    ),
    ApplicationStatus.UNDER_REVIEW.value: (
        "Application Under Review",
        "Your application for {form} is currently under review.",
        "We will update you on the status soon.",
    ),
}


def _signature() -> str:
    return f"Best regards,\n{settings.EMAIL_BRAND_NAME} Team"


def default_auto_reply_subject(form_name: str) -> str:
    return f"Thank you for your application to {form_name}"


def compose_status_email(
    status: str, form_name: str, full_name: str | None, reason: str | None
) -> tuple[str, str]:
    """Return (subject, body) for a status change notification."""
    name = full_name or "Applicant"
    template = _STATUS_TEMPLATES.get(status)
    if template:
        prefix, opening, fallback = template
        subject = f"{prefix} - {form_name}"
        body = (
            f"Dear {name},\n\n{opening.format(form=form_name)}\n\n"
            f"{reason or fallback}\n\n{_signature()}"
        )
        return subject, body

    subject = f"Application Status Update - {form_name}"
    body = (
        f"Dear {name},\n\nYour application status has been updated to: "
        f"{status[:1].upper() + status[1:]}\n\n{reason or ''}\n\n{_signature()}"
    )
    return subject, body


def compose_admin_notice(form_name: str, full_name: str | None, email: str | None) -> tuple[str, str]:
    subject = f"New Application Received: {form_name}"
    body = (
        f"A new application has been submitted for {form_name} by "
        f"{full_name or 'an applicant'} ({email or 'no email provided'})."
    )
    return subject, body


def compose_admin_copy(
    subject: str, message: str, full_name: str | None, email: str
) -> tuple[str, str]:
    return (
        f"Copy: {subject}",
        f"This is a copy of the email sent to {full_name or 'the applicant'} ({email}):\n\n{message}",
    )


def try_send(
    sender: EmailSender,
    to_email: str,
    subject: str,
    message: str,
    *,
    application_id: str | None = None,
    form_id: str | None = None,
) -> bool:
    """
    Send without letting delivery problems escape.

    Returns True when the provider accepted the message.
    """
    try:
        sender.send(to_email, subject, message)
    except Exception:
        logger.exception(
            "Notification email failed",
            extra=build_log_context(application_id=application_id, form_id=form_id),
        )
        return False
    return True
