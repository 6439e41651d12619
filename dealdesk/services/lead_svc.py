"""Lead service - CRUD, leads created from contacts and lead-to-deal conversion."""

from __future__ import annotations

import logging
import re
import uuid
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..errors import ConflictError, NotFound, ValidationError
from ..models.activity import Activity
from ..models.contact import Contact
from ..models.deal import Deal
from ..models.enums import DealStage, LeadSource, LeadStatus
from ..models.lead import Lead
from ..pipeline import move_stage
from ..schemas.lead import LeadConversion, LeadCreate, LeadFromContact, LeadUpdate
from ..security.policy import Actor, Permission, ensure_access, require_permission
from .contact_svc import require_contact
from .deal_svc import add_deal
from .query import (
    Page,
    apply_search,
    apply_sort,
    clear_references,
    ensure_exists,
    fetch_page,
    scope_to_actor,
)

log = logging.getLogger(__name__)

SORTABLE = ("created_at", "updated_at", "title", "status", "value", "last_name", "company")
SEARCH_COLUMNS = (
    Lead.title,
    Lead.first_name,
    Lead.last_name,
    Lead.email,
    Lead.company,
)

_REQUIRED = frozenset({"title", "first_name", "last_name", "status", "tags"})
_LEAD_WORD = re.compile(r"lead", re.IGNORECASE)


def _with_relations(stmt):
    return stmt.options(
        selectinload(Lead.owner),
        selectinload(Lead.contact),
        selectinload(Lead.deal),
    )


async def load_lead(db: AsyncSession, lead_id: uuid.UUID) -> Lead | None:
    stmt = _with_relations(select(Lead).where(Lead.id == lead_id)).execution_options(
        populate_existing=True
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def require_lead(db: AsyncSession, lead_id: uuid.UUID) -> Lead:
    lead = await load_lead(db, lead_id)
    if lead is None:
        raise NotFound("Lead not found")
    return lead


async def list_leads(
    db: AsyncSession,
    actor: Actor,
    *,
    status: LeadStatus | None = None,
    source: LeadSource | None = None,
    search: str | None = None,
    page: int | None = 1,
    limit: int | None = None,
    sort_by: str | None = None,
    sort_order: str | None = None,
) -> Page:
    require_permission(actor, Permission.LEADS_READ)
    stmt = scope_to_actor(select(Lead), Lead, actor)
    if status is not None:
        stmt = stmt.where(Lead.status == status)
    if source is not None:
        stmt = stmt.where(Lead.source == source)
    stmt = apply_search(stmt, SEARCH_COLUMNS, search)
    stmt = apply_sort(stmt, Lead, SORTABLE, sort_by, sort_order)
    return await fetch_page(db, _with_relations(stmt), page=page, limit=limit)


async def get_lead(db: AsyncSession, actor: Actor, lead_id: uuid.UUID) -> Lead:
    require_permission(actor, Permission.LEADS_READ)
    lead = await require_lead(db, lead_id)
    ensure_access(actor, lead, "read")
    return lead


async def _add_lead(db: AsyncSession, actor: Actor, lead: Lead) -> Lead:
    lead.owner_id = actor.id
    db.add(lead)
    await db.commit()
    log.info("Lead %s created by %s", lead.id, actor.id)
    return await require_lead(db, lead.id)


async def create_lead(db: AsyncSession, actor: Actor, data: LeadCreate) -> Lead:
    require_permission(actor, Permission.LEADS_CREATE)
    await ensure_exists(db, Contact, data.contact_id, "contact_id")
    return await _add_lead(db, actor, Lead(**data.model_dump()))


async def update_lead(
    db: AsyncSession, actor: Actor, lead_id: uuid.UUID, data: LeadUpdate
) -> Lead:
    """Any status may follow any other; there is no transition table."""
    require_permission(actor, Permission.LEADS_UPDATE)
    lead = await require_lead(db, lead_id)
    ensure_access(actor, lead, "update")

    changes = {
        k: v
        for k, v in data.model_dump(exclude_unset=True).items()
        if v is not None or k not in _REQUIRED
    }
    if "contact_id" in changes:
        await ensure_exists(db, Contact, changes["contact_id"], "contact_id")
    previous = lead.status
    for key, value in changes.items():
        setattr(lead, key, value)

    await db.commit()
    if lead.status != previous:
        log.info(
            "Lead %s status %s -> %s by %s", lead.id, previous.value, lead.status.value, actor.id
        )
    return await require_lead(db, lead.id)


async def delete_lead(db: AsyncSession, actor: Actor, lead_id: uuid.UUID) -> None:
    require_permission(actor, Permission.LEADS_DELETE)
    lead = await require_lead(db, lead_id)
    ensure_access(actor, lead, "delete")
    await clear_references(db, lead.id, Deal.lead_id, Activity.lead_id)
    await db.delete(lead)
    await db.commit()
    log.info("Lead %s deleted by %s", lead_id, actor.id)


async def create_lead_from_contact(
    db: AsyncSession,
    actor: Actor,
    contact_id: uuid.UUID,
    overrides: LeadFromContact | None = None,
) -> Lead:
    """Start a lead from a contact. Contact fields are copied, not linked live."""
    require_permission(actor, Permission.LEADS_CREATE)
    contact = await require_contact(db, contact_id)
    ensure_access(actor, contact, "read")

    values = {
        "title": f"{contact.first_name} {contact.last_name} - "
        f"{contact.company or 'New Opportunity'}",
        "first_name": contact.first_name,
        "last_name": contact.last_name,
        "email": contact.email,
        "phone": contact.phone,
        "company": contact.company,
        "position": contact.position,
        "source": None,
        "status": LeadStatus.NEW,
        "value": None,
        "notes": f"Lead created from contact: {contact.first_name} {contact.last_name}",
        "tags": list(contact.tags or []),
        "contact_id": contact.id,
    }
    if overrides is not None:
        values.update(overrides.model_dump(exclude_none=True))
    return await _add_lead(db, actor, Lead(**values))


# ── Conversion ─────────────────────────────────────────────────────────────

def conversion_title(lead: Lead) -> str:
    if _LEAD_WORD.search(lead.title or ""):
        return _LEAD_WORD.sub("Deal", lead.title, count=1)
    name = lead.company or lead.full_name or lead.title
    return f"{name} - Deal"


def conversion_defaults(lead: Lead) -> dict:
    """Deal fields derived from a lead before caller overrides are applied."""
    return {
        "title": conversion_title(lead),
        "value": lead.value or Decimal(0),
        "stage": DealStage.PROSPECTING,
        "probability": None,
        "expected_close_date": None,
        "source": lead.source.value if lead.source else "Lead Conversion",
        "notes": f"Converted from lead: {lead.title}\n\n"
        f"Original lead notes: {lead.notes or 'No notes'}",
        "tags": list(lead.tags or []),
        "contact_id": lead.contact_id,
    }


async def convert_lead_to_deal(
    db: AsyncSession,
    actor: Actor,
    lead_id: uuid.UUID,
    overrides: LeadConversion | None = None,
) -> Deal:
    """Create a deal from a lead. The lead itself is left untouched."""
    lead = await require_lead(db, lead_id)
    ensure_access(actor, lead, "read")
    require_permission(actor, Permission.DEALS_CREATE)
    if lead.deal is not None:
        raise ConflictError("Lead has already been converted to a deal")

    values = conversion_defaults(lead)
    if overrides is not None:
        values.update(overrides.model_dump(exclude_none=True))

    title = (values["title"] or "").strip()
    if not title:
        raise ValidationError("Deal title is required", field="title")
    if Decimal(values["value"]) <= 0:
        raise ValidationError("Deal value must be greater than zero", field="value")
    await ensure_exists(db, Contact, values["contact_id"], "contact_id")

    stage = values.pop("stage")
    probability = values.pop("probability")
    deal = Deal(lead_id=lead.id, **{**values, "title": title})
    move_stage(deal, stage, probability)
    deal = await add_deal(db, actor, deal)
    log.info("Lead %s converted to deal %s by %s", lead.id, deal.id, actor.id)
    return deal
