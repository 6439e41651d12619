"""DealDesk models - re-exports all models and Base.metadata."""

from .base import Base, UUIDMixin, TimestampMixin, OwnerMixin, TagsMixin
from .enums import ActivityType, DealStage, LeadSource, LeadStatus, Priority, Role
from .user import User
from .contact import Contact
from .lead import Lead
from .deal import Deal
from .activity import Activity

__all__ = [
    "Base",
    "UUIDMixin",
    "TimestampMixin",
    "OwnerMixin",
    "TagsMixin",
    "ActivityType",
    "DealStage",
    "LeadSource",
    "LeadStatus",
    "Priority",
    "Role",
    "User",
    "Contact",
    "Lead",
    "Deal",
    "Activity",
]
