"""DealDesk - CRM pipeline service (contacts, leads, deals, activities, users)."""

__version__ = "0.1.0"
