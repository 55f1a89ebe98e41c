"""Structured logging helpers (PII-safe)."""

import logging
from typing import Any

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for the API process."""
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(level.upper())
        return
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


def build_log_context(
    *,
    user_id: str | None = None,
    form_id: str | None = None,
    application_id: str | None = None,
    route: str | None = None,
    method: str | None = None,
) -> dict[str, Any]:
    """Return a PII-safe log context dict (identifiers only, never applicant data)."""
    context: dict[str, Any] = {}
    if user_id:
        context["user_id"] = user_id
    if form_id:
        context["form_id"] = form_id
    if application_id:
        context["application_id"] = application_id
    if route:
        context["route"] = route
    if method:
        context["method"] = method
    return context
