"""Lead schemas, including the lead-to-deal conversion input."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, EmailStr, Field

from ..models.enums import DealStage, LeadSource, LeadStatus
from .contact import ContactRef
from .user import UserRef


class LeadCreate(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: EmailStr | None = None
    phone: str | None = None
    company: str | None = None
    position: str | None = None
    source: LeadSource | None = None
    status: LeadStatus = LeadStatus.NEW
    value: Decimal | None = Field(default=None, ge=0)
    notes: str | None = None
    tags: list[str] = Field(default_factory=list)
    contact_id: uuid.UUID | None = None


class LeadUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=300)
    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, min_length=1, max_length=100)
    email: EmailStr | None = None
    phone: str | None = None
    company: str | None = None
    position: str | None = None
    source: LeadSource | None = None
    status: LeadStatus | None = None
    value: Decimal | None = Field(default=None, ge=0)
    notes: str | None = None
    tags: list[str] | None = None
    contact_id: uuid.UUID | None = None


class LeadFromContact(BaseModel):
    """Overrides for a lead created from an existing contact."""

    title: str | None = Field(default=None, min_length=1, max_length=300)
    source: LeadSource | None = None
    status: LeadStatus | None = None
    value: Decimal | None = Field(default=None, ge=0)
    notes: str | None = None
    tags: list[str] | None = None


class LeadConversion(BaseModel):
    """Caller overrides applied on top of the defaults derived from the lead."""

    title: str | None = Field(default=None, max_length=300)
    value: Decimal | None = None
    stage: DealStage | None = None
    probability: int | None = Field(default=None, ge=0, le=100)
    expected_close_date: date | None = None
    source: str | None = None
    notes: str | None = None
    tags: list[str] | None = None
    contact_id: uuid.UUID | None = None


class LeadRead(BaseModel):
    id: uuid.UUID
    title: str
    first_name: str
    last_name: str
    email: str | None = None
    phone: str | None = None
    company: str | None = None
    position: str | None = None
    source: LeadSource | None = None
    status: LeadStatus
    value: float | None = None
    notes: str | None = None
    tags: list[str] = Field(default_factory=list)
    owner_id: uuid.UUID | None = None
    owner: UserRef | None = None
    contact_id: uuid.UUID | None = None
    contact: ContactRef | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class LeadRef(BaseModel):
    id: uuid.UUID
    title: str
    status: LeadStatus

    model_config = {"from_attributes": True}
