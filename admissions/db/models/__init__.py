"""ORM models. Importing this package registers every table on Base.metadata."""

from admissions.db.models.auth import User
from admissions.db.models.catalog import Language
from admissions.db.models.forms import ApplicationForm
from admissions.db.models.applications import (
    ApplicationEmail,
    ApplicationNote,
    ApplicationStatusHistory,
    StudentApplication,
)

__all__ = [
    "ApplicationEmail",
    "ApplicationForm",
    "ApplicationNote",
    "ApplicationStatusHistory",
    "Language",
    "StudentApplication",
    "User",
]
