"""SQLAlchemy ORM models."""

from __future__ import annotations

from typing import TYPE_CHECKING

from datetime import datetime

from sqlalchemy import ForeignKey, Index, String, Text, func, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from admissions.db.base import Base
from admissions.db.enums import (
    DEFAULT_APPLICATION_PRIORITY,
    DEFAULT_APPLICATION_STATUS,
    SubmissionSource,
)
from admissions.db.types import JsonDocument, new_object_id, utcnow

if TYPE_CHECKING:
    from admissions.db.models import ApplicationForm, User


class StudentApplication(Base):
    """A submission against an application form."""

    __tablename__ = "student_applications"
    __table_args__ = (
        Index("idx_student_applications_form_email", "form_id", "student_email"),
        Index("idx_student_applications_status", "status"),
        Index("idx_student_applications_created_at", "created_at"),
        Index("idx_student_applications_assigned", "assigned_to_user_id"),
    )

    id: Mapped[str] = mapped_column(String(24), primary_key=True, default=new_object_id)
    # RESTRICT: forms with submissions cannot be hard-deleted
    form_id: Mapped[str] = mapped_column(
        String(24),
        ForeignKey("application_forms.id", ondelete="RESTRICT"),
        nullable=False,
    )

    student_info: Mapped[dict] = mapped_column(JsonDocument, default=dict, nullable=False)
    # Lower-cased copy of student_info.email
    student_email: Mapped[str | None] = mapped_column(String(254), nullable=True)
    academic_info: Mapped[dict | None] = mapped_column(JsonDocument, nullable=True)
    course_preferences: Mapped[dict | None] = mapped_column(JsonDocument, nullable=True)
    documents: Mapped[list] = mapped_column(JsonDocument, default=list, nullable=False)
    form_data: Mapped[dict] = mapped_column(JsonDocument, default=dict, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        default=DEFAULT_APPLICATION_STATUS.value,
        server_default=text(f"'{DEFAULT_APPLICATION_STATUS.value}'"),
        nullable=False,
    )
    priority: Mapped[str] = mapped_column(
        String(10),
        default=DEFAULT_APPLICATION_PRIORITY.value,
        server_default=text(f"'{DEFAULT_APPLICATION_PRIORITY.value}'"),
        nullable=False,
    )
    assigned_to_user_id: Mapped[str | None] = mapped_column(
        String(24), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    last_contact_date: Mapped[datetime | None] = mapped_column(nullable=True)

    # Source metadata
    submission_source: Mapped[str] = mapped_column(
        String(20),
        default=SubmissionSource.WEBSITE.value,
        server_default=text(f"'{SubmissionSource.WEBSITE.value}'"),
        nullable=False,
    )
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(500), nullable=True)
    tags: Mapped[list] = mapped_column(JsonDocument, default=list, nullable=False)

    is_archived: Mapped[bool] = mapped_column(
        default=False, server_default=text("false"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )

    form: Mapped["ApplicationForm"] = relationship()
    assigned_to: Mapped["User | None"] = relationship(foreign_keys=[assigned_to_user_id])
    review_notes: Mapped[list["ApplicationNote"]] = relationship(
        back_populates="application",
        cascade="all, delete-orphan",
        order_by="ApplicationNote.added_at",
    )
    status_history: Mapped[list["ApplicationStatusHistory"]] = relationship(
        back_populates="application",
        cascade="all, delete-orphan",
        order_by="ApplicationStatusHistory.changed_at",
    )
    emails_sent: Mapped[list["ApplicationEmail"]] = relationship(
        back_populates="application",
        cascade="all, delete-orphan",
        order_by="ApplicationEmail.sent_at",
    )


class ApplicationStatusHistory(Base):
    """Append-only log of status transitions."""

    __tablename__ = "application_status_history"
    __table_args__ = (Index("idx_application_status_history_app", "application_id"),)

    id: Mapped[str] = mapped_column(String(24), primary_key=True, default=new_object_id)
    application_id: Mapped[str] = mapped_column(
        String(24),
        ForeignKey("student_applications.id", ondelete="CASCADE"),
        nullable=False,
    )
    previous_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    new_status: Mapped[str] = mapped_column(String(20), nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    changed_by_user_id: Mapped[str | None] = mapped_column(
        String(24), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    changed_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )

    application: Mapped["StudentApplication"] = relationship(back_populates="status_history")
    changed_by: Mapped["User | None"] = relationship()


class ApplicationNote(Base):
    """Reviewer note. Internal notes are never shown to the applicant."""

    __tablename__ = "application_notes"
    __table_args__ = (Index("idx_application_notes_app", "application_id"),)

    id: Mapped[str] = mapped_column(String(24), primary_key=True, default=new_object_id)
    application_id: Mapped[str] = mapped_column(
        String(24),
        ForeignKey("student_applications.id", ondelete="CASCADE"),
        nullable=False,
    )
    note: Mapped[str] = mapped_column(Text, nullable=False)
    is_internal: Mapped[bool] = mapped_column(
        default=True, server_default=text("true"), nullable=False
    )
    added_by_user_id: Mapped[str | None] = mapped_column(
        String(24), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    added_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )

    application: Mapped["StudentApplication"] = relationship(back_populates="review_notes")
    added_by: Mapped["User | None"] = relationship()


class ApplicationEmail(Base):
    """Communication log entry for an email sent to the applicant."""

    __tablename__ = "application_emails"
    __table_args__ = (Index("idx_application_emails_app", "application_id"),)

    id: Mapped[str] = mapped_column(String(24), primary_key=True, default=new_object_id)
    application_id: Mapped[str] = mapped_column(
        String(24),
        ForeignKey("student_applications.id", ondelete="CASCADE"),
        nullable=False,
    )
    email_type: Mapped[str] = mapped_column(String(20), nullable=False)
    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    delivered: Mapped[bool] = mapped_column(
        default=True, server_default=text("true"), nullable=False
    )
    sent_by_user_id: Mapped[str | None] = mapped_column(
        String(24), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    sent_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )

    application: Mapped["StudentApplication"] = relationship(back_populates="emails_sent")
    sent_by: Mapped["User | None"] = relationship()
