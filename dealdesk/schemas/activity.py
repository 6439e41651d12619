"""Activity schemas."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from ..models.enums import ActivityType, Priority
from .contact import ContactRef
from .deal import DealRef
from .lead import LeadRef
from .user import UserRef


class ActivityCreate(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    description: str | None = None
    type: ActivityType
    priority: Priority = Priority.MEDIUM
    # ISO timestamp, or a YYYY-MM-DD date combined with due_time (HH:MM, UTC).
    due_date: str | None = None
    due_time: str | None = None
    assignee_id: uuid.UUID | None = None
    contact_id: uuid.UUID | None = None
    deal_id: uuid.UUID | None = None
    lead_id: uuid.UUID | None = None


class ActivityUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=300)
    description: str | None = None
    type: ActivityType | None = None
    priority: Priority | None = None
    due_date: str | None = None
    due_time: str | None = None
    is_completed: bool | None = None
    assignee_id: uuid.UUID | None = None
    contact_id: uuid.UUID | None = None
    deal_id: uuid.UUID | None = None
    lead_id: uuid.UUID | None = None


class ActivityCompletion(BaseModel):
    is_completed: bool


class ActivityRead(BaseModel):
    id: uuid.UUID
    title: str
    description: str | None = None
    type: ActivityType
    priority: Priority
    due_date: datetime | None = None
    is_completed: bool
    completed_at: datetime | None = None
    is_overdue: bool
    assignee_id: uuid.UUID | None = None
    assignee: UserRef | None = None
    created_by_id: uuid.UUID | None = None
    created_by: UserRef | None = None
    contact_id: uuid.UUID | None = None
    contact: ContactRef | None = None
    deal_id: uuid.UUID | None = None
    deal: DealRef | None = None
    lead_id: uuid.UUID | None = None
    lead: LeadRef | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}
