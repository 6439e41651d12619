"""Deal model - a tracked opportunity moving through the pipeline stages."""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy import Date, ForeignKey, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, UUIDMixin, TimestampMixin, OwnerMixin, TagsMixin
from .enums import DealStage, enum_type


class Deal(UUIDMixin, TimestampMixin, OwnerMixin, TagsMixin, Base):
    __tablename__ = "deal"

    title: Mapped[str] = mapped_column(String(300))
    value: Mapped[Decimal] = mapped_column(Numeric(14, 2))
    stage: Mapped[DealStage] = mapped_column(
        enum_type(DealStage), default=DealStage.PROSPECTING, index=True
    )
    probability: Mapped[int] = mapped_column(Integer, default=10)
    expected_close_date: Mapped[date | None] = mapped_column(Date, default=None)
    actual_close_date: Mapped[date | None] = mapped_column(Date, default=None)
    source: Mapped[str | None] = mapped_column(String(100), default=None)
    notes: Mapped[str | None] = mapped_column(Text, default=None)
    contact_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("contact.id", ondelete="SET NULL"), default=None, index=True
    )
    # A lead converts into at most one deal.
    lead_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("lead.id", ondelete="SET NULL"), default=None, unique=True
    )

    # Relationships
    owner: Mapped["User | None"] = relationship()  # noqa: F821
    contact: Mapped["Contact | None"] = relationship()  # noqa: F821
    lead: Mapped["Lead | None"] = relationship(back_populates="deal")  # noqa: F821

    @property
    def weighted_value(self) -> int:
        from ..pipeline import weighted_value

        return weighted_value(self.value, self.probability)

    def __repr__(self) -> str:
        return f"<Deal {self.title!r} ({self.stage.value} {self.probability}%)>"
