"""Rate limiting configuration for public endpoints."""

import os

from slowapi import Limiter
from slowapi.util import get_remote_address

from admissions.core.config import settings

IS_TESTING = os.getenv("TESTING", "").lower() in ("1", "true", "yes")

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri="memory://" if IS_TESTING else settings.RATE_LIMIT_STORAGE_URI,
    enabled=not IS_TESTING and settings.RATE_LIMIT_SUBMIT > 0,
)

SUBMIT_LIMIT = f"{max(settings.RATE_LIMIT_SUBMIT, 1)}/minute"
