"""Activity model - calls, meetings, tasks and notes assigned to users."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, UUIDMixin, TimestampMixin, as_utc, utcnow
from .enums import ActivityType, Priority, enum_type


class Activity(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "activity"

    title: Mapped[str] = mapped_column(String(300))
    description: Mapped[str | None] = mapped_column(Text, default=None)
    type: Mapped[ActivityType] = mapped_column(enum_type(ActivityType), index=True)
    priority: Mapped[Priority] = mapped_column(enum_type(Priority), default=Priority.MEDIUM)
    due_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    is_completed: Mapped[bool] = mapped_column(Boolean, default=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)

    assignee_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("user.id", ondelete="SET NULL"), default=None, index=True
    )
    created_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("user.id", ondelete="SET NULL"), default=None, index=True
    )
    contact_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("contact.id", ondelete="SET NULL"), default=None, index=True
    )
    deal_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("deal.id", ondelete="SET NULL"), default=None, index=True
    )
    lead_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("lead.id", ondelete="SET NULL"), default=None, index=True
    )

    # Relationships
    assignee: Mapped["User | None"] = relationship(foreign_keys=[assignee_id])  # noqa: F821
    created_by: Mapped["User | None"] = relationship(foreign_keys=[created_by_id])  # noqa: F821
    contact: Mapped["Contact | None"] = relationship()  # noqa: F821
    deal: Mapped["Deal | None"] = relationship()  # noqa: F821
    lead: Mapped["Lead | None"] = relationship()  # noqa: F821

    def is_overdue_at(self, now: datetime) -> bool:
        due = as_utc(self.due_date)
        return not self.is_completed and due is not None and due < as_utc(now)

    @property
    def is_overdue(self) -> bool:
        return self.is_overdue_at(utcnow())

    def __repr__(self) -> str:
        return f"<Activity {self.type.value} {self.title!r}>"
