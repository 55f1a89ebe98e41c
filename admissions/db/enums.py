"""Enum definitions for application constants."""

from enum import Enum


class Role(str, Enum):
    """
    User roles.

    - ADMIN: manages form definitions and reviews applications
    - COUNSELLOR: reviews applications (status, notes, assignment, emails)
    - TUTOR / STUDENT: no access to the admissions back office
    """

    ADMIN = "admin"
    COUNSELLOR = "counsellor"
    TUTOR = "tutor"
    STUDENT = "student"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_


ROLES_CAN_MANAGE_FORMS = {Role.ADMIN}
ROLES_CAN_REVIEW_APPLICATIONS = {Role.ADMIN, Role.COUNSELLOR}


class FieldType(str, Enum):
    """Input types a form field may declare."""

    TEXT = "text"
    EMAIL = "email"
    TEL = "tel"
    NUMBER = "number"
    TEXTAREA = "textarea"
    SELECT = "select"
    MULTISELECT = "multiselect"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    DATE = "date"
    FILE = "file"
    URL = "url"
    PASSWORD = "password"
    COLOR = "color"
    RANGE = "range"
    TIME = "time"


class FormCategory(str, Enum):
    LANGUAGE_COURSE = "language-course"
    TEST_PREPARATION = "test-preparation"
    CONSULTATION = "consultation"
    GENERAL = "general"


class ApplicationStatus(str, Enum):
    """
    Review status of a submitted application.

    The set is flat: any status may move to any other, and none is terminal.
    """

    PENDING = "pending"
    UNDER_REVIEW = "under-review"
    APPROVED = "approved"
    REJECTED = "rejected"
    WAITLISTED = "waitlisted"
    CANCELLED = "cancelled"


class ApplicationPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class SubmissionSource(str, Enum):
    WEBSITE = "website"
    ADMIN_PANEL = "admin-panel"
    MOBILE_APP = "mobile-app"
    AGENT = "agent"


class EmailType(str, Enum):
    """Kinds of applicant communication recorded on an application."""

    WELCOME = "welcome"
    STATUS_UPDATE = "status-update"
    APPROVAL = "approval"
    REJECTION = "rejection"
    REMINDER = "reminder"
    CUSTOM = "custom"


class BulkAction(str, Enum):
    UPDATE_STATUS = "updateStatus"
    ASSIGN = "assign"
    ARCHIVE = "archive"
    SET_PRIORITY = "setPriority"


DEFAULT_APPLICATION_STATUS = ApplicationStatus.PENDING
DEFAULT_APPLICATION_PRIORITY = ApplicationPriority.MEDIUM
