"""Shared column types and identifier helpers."""

from __future__ import annotations

import os
import re
import time
from datetime import datetime, timezone

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB

# JSONB on PostgreSQL, plain JSON on every other backend (SQLite in tests).
JsonDocument = JSON().with_variant(JSONB(), "postgresql")

OBJECT_ID_RE = re.compile(r"^[0-9a-fA-F]{24}$")


def new_object_id() -> str:
    """Return a 24-char hex id: 4-byte big-endian timestamp + 8 random bytes."""
    return f"{int(time.time()):08x}{os.urandom(8).hex()}"


def is_object_id(value: str | None) -> bool:
    return bool(value) and OBJECT_ID_RE.match(value) is not None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive datetimes (SQLite) as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
