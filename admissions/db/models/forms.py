"""SQLAlchemy ORM models."""

from __future__ import annotations

from typing import TYPE_CHECKING

from datetime import datetime

from sqlalchemy import ForeignKey, Index, Integer, String, Text, func, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from admissions.db.base import Base
from admissions.db.enums import FormCategory
from admissions.db.types import JsonDocument, new_object_id, utcnow

if TYPE_CHECKING:
    from admissions.db.models import Language, User


class ApplicationForm(Base):
    """Dynamic application form definition."""

    __tablename__ = "application_forms"
    __table_args__ = (
        Index("idx_application_forms_category_active", "category", "is_active"),
        Index("idx_application_forms_language", "language_id"),
        Index("idx_application_forms_created_at", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(24), primary_key=True, default=new_object_id)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    # Globally unique, assigned once on create (or duplicate) and never changed
    slug: Mapped[str] = mapped_column(String(150), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Ordered list of field descriptors
    fields: Mapped[list] = mapped_column(JsonDocument, default=list, nullable=False)

    category: Mapped[str] = mapped_column(
        String(30),
        default=FormCategory.GENERAL.value,
        server_default=text(f"'{FormCategory.GENERAL.value}'"),
        nullable=False,
    )
    # NULL means a general form
    language_id: Mapped[str | None] = mapped_column(
        String(24), ForeignKey("languages.id", ondelete="SET NULL"), nullable=True
    )

    # Submission policy
    allow_multiple_submissions: Mapped[bool] = mapped_column(
        default=False, server_default=text("false"), nullable=False
    )
    max_submissions: Mapped[int] = mapped_column(
        Integer, default=1, server_default=text("1"), nullable=False
    )
    max_capacity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    submission_deadline: Mapped[datetime | None] = mapped_column(nullable=True)
    requires_approval: Mapped[bool] = mapped_column(
        default=True, server_default=text("true"), nullable=False
    )

    # Email notifications
    notifications_enabled: Mapped[bool] = mapped_column(
        default=True, server_default=text("true"), nullable=False
    )
    admin_emails: Mapped[list] = mapped_column(JsonDocument, default=list, nullable=False)
    auto_reply_subject: Mapped[str | None] = mapped_column(String(200), nullable=True)
    auto_reply_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_active: Mapped[bool] = mapped_column(
        default=True, server_default=text("true"), nullable=False
    )
    # Denormalized count of accepted submissions, only ever incremented
    submissions: Mapped[int] = mapped_column(
        Integer, default=0, server_default=text("0"), nullable=False
    )

    created_by_user_id: Mapped[str] = mapped_column(
        String(24), ForeignKey("users.id"), nullable=False
    )
    updated_by_user_id: Mapped[str | None] = mapped_column(
        String(24), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )

    language: Mapped["Language | None"] = relationship()
    created_by: Mapped["User"] = relationship(foreign_keys=[created_by_user_id])
    updated_by: Mapped["User | None"] = relationship(foreign_keys=[updated_by_user_id])

    @property
    def is_language_specific(self) -> bool:
        return self.language_id is not None

    @property
    def form_type(self) -> str:
        return "Language-Specific" if self.language_id else "General"
