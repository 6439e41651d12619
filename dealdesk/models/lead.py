"""Lead model - an unqualified prospect that may be converted into a deal."""

from __future__ import annotations

import uuid
from decimal import Decimal

from sqlalchemy import ForeignKey, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, UUIDMixin, TimestampMixin, OwnerMixin, TagsMixin
from .enums import LeadSource, LeadStatus, enum_type


class Lead(UUIDMixin, TimestampMixin, OwnerMixin, TagsMixin, Base):
    __tablename__ = "lead"

    title: Mapped[str] = mapped_column(String(300))
    # Contact fields are copied at creation time and never synced back.
    first_name: Mapped[str] = mapped_column(String(100))
    last_name: Mapped[str] = mapped_column(String(100))
    email: Mapped[str | None] = mapped_column(String(255), default=None, index=True)
    phone: Mapped[str | None] = mapped_column(String(50), default=None)
    company: Mapped[str | None] = mapped_column(String(200), default=None)
    position: Mapped[str | None] = mapped_column(String(200), default=None)
    source: Mapped[LeadSource | None] = mapped_column(enum_type(LeadSource), default=None)
    status: Mapped[LeadStatus] = mapped_column(
        enum_type(LeadStatus), default=LeadStatus.NEW, index=True
    )
    value: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), default=None)
    notes: Mapped[str | None] = mapped_column(Text, default=None)
    contact_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("contact.id", ondelete="SET NULL"), default=None, index=True
    )

    # Relationships
    owner: Mapped["User | None"] = relationship()  # noqa: F821
    contact: Mapped["Contact | None"] = relationship()  # noqa: F821
    deal: Mapped["Deal | None"] = relationship(back_populates="lead")  # noqa: F821

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p)

    def __repr__(self) -> str:
        return f"<Lead {self.title!r} ({self.status.value})>"
