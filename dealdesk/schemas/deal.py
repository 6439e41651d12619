"""Deal schemas."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from ..models.enums import DealStage
from .contact import ContactRef
from .lead import LeadRef
from .user import UserRef


class DealCreate(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    value: Decimal = Field(gt=0)
    stage: DealStage = DealStage.PROSPECTING
    probability: int | None = Field(default=None, ge=0, le=100)
    expected_close_date: date | None = None
    actual_close_date: date | None = None
    source: str | None = None
    notes: str | None = None
    tags: list[str] = Field(default_factory=list)
    contact_id: uuid.UUID | None = None
    lead_id: uuid.UUID | None = None


class DealUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=300)
    value: Decimal | None = Field(default=None, gt=0)
    stage: DealStage | None = None
    probability: int | None = Field(default=None, ge=0, le=100)
    expected_close_date: date | None = None
    actual_close_date: date | None = None
    source: str | None = None
    notes: str | None = None
    tags: list[str] | None = None
    contact_id: uuid.UUID | None = None


class DealStageChange(BaseModel):
    stage: DealStage
    probability: int | None = Field(default=None, ge=0, le=100)


class DealFromContact(BaseModel):
    """Overrides for a deal created from an existing contact."""

    title: str | None = Field(default=None, min_length=1, max_length=300)
    value: Decimal = Field(gt=0)
    stage: DealStage = DealStage.PROSPECTING
    probability: int | None = Field(default=None, ge=0, le=100)
    expected_close_date: date | None = None
    notes: str | None = None
    tags: list[str] | None = None


class DealRead(BaseModel):
    id: uuid.UUID
    title: str
    value: float
    stage: DealStage
    probability: int
    weighted_value: int
    expected_close_date: date | None = None
    actual_close_date: date | None = None
    source: str | None = None
    notes: str | None = None
    tags: list[str] = Field(default_factory=list)
    owner_id: uuid.UUID | None = None
    owner: UserRef | None = None
    contact_id: uuid.UUID | None = None
    contact: ContactRef | None = None
    lead_id: uuid.UUID | None = None
    lead: LeadRef | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class DealRef(BaseModel):
    id: uuid.UUID
    title: str
    stage: DealStage

    model_config = {"from_attributes": True}
