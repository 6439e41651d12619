"""Deal service - pipeline CRUD, stage moves and deals created from contacts."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..errors import ConflictError, NotFound
from ..models.activity import Activity
from ..models.contact import Contact
from ..models.deal import Deal
from ..models.enums import DealStage
from ..models.lead import Lead
from ..pipeline import move_stage, validate_probability
from ..schemas.deal import DealCreate, DealFromContact, DealUpdate
from ..security.policy import Actor, Permission, ensure_access, require_permission
from .contact_svc import require_contact
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

SORTABLE = (
    "created_at",
    "updated_at",
    "title",
    "value",
    "stage",
    "probability",
    "expected_close_date",
)
SEARCH_COLUMNS = (Deal.title, Deal.source, Deal.notes)

# Columns that may not be cleared by sending null in an update.
_REQUIRED = frozenset({"title", "value", "stage", "probability", "tags"})


def _with_relations(stmt):
    return stmt.options(
        selectinload(Deal.owner),
        selectinload(Deal.contact),
        selectinload(Deal.lead),
    )


async def load_deal(db: AsyncSession, deal_id: uuid.UUID) -> Deal | None:
    stmt = _with_relations(select(Deal).where(Deal.id == deal_id)).execution_options(
        populate_existing=True
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def require_deal(db: AsyncSession, deal_id: uuid.UUID) -> Deal:
    deal = await load_deal(db, deal_id)
    if deal is None:
        raise NotFound("Deal not found")
    return deal


async def _ensure_lead_unconverted(db: AsyncSession, lead_id: uuid.UUID | None) -> None:
    if lead_id is None:
        return
    await ensure_exists(db, Lead, lead_id, "lead_id")
    result = await db.execute(select(Deal.id).where(Deal.lead_id == lead_id))
    if result.scalar_one_or_none() is not None:
        raise ConflictError("Lead has already been converted to a deal")


async def list_deals(
    db: AsyncSession,
    actor: Actor,
    *,
    stage: DealStage | None = None,
    search: str | None = None,
    page: int | None = 1,
    limit: int | None = None,
    sort_by: str | None = None,
    sort_order: str | None = None,
) -> Page:
    require_permission(actor, Permission.DEALS_READ)
    stmt = scope_to_actor(select(Deal), Deal, actor)
    if stage is not None:
        stmt = stmt.where(Deal.stage == stage)
    stmt = apply_search(stmt, SEARCH_COLUMNS, search)
    stmt = apply_sort(stmt, Deal, SORTABLE, sort_by, sort_order)
    return await fetch_page(db, _with_relations(stmt), page=page, limit=limit)


async def get_deal(db: AsyncSession, actor: Actor, deal_id: uuid.UUID) -> Deal:
    require_permission(actor, Permission.DEALS_READ)
    deal = await require_deal(db, deal_id)
    ensure_access(actor, deal, "read")
    return deal


async def add_deal(db: AsyncSession, actor: Actor, deal: Deal) -> Deal:
    """Persist a new deal owned by ``actor`` and return it with relations loaded."""
    deal.owner_id = actor.id
    db.add(deal)
    await db.commit()
    log.info(
        "Deal %s created by %s (%s %s%%)", deal.id, actor.id, deal.stage.value, deal.probability
    )
    return await require_deal(db, deal.id)


async def create_deal(db: AsyncSession, actor: Actor, data: DealCreate) -> Deal:
    require_permission(actor, Permission.DEALS_CREATE)
    await ensure_exists(db, Contact, data.contact_id, "contact_id")
    await _ensure_lead_unconverted(db, data.lead_id)

    values = data.model_dump(exclude={"stage", "probability"})
    deal = Deal(**values)
    move_stage(deal, data.stage, data.probability)
    return await add_deal(db, actor, deal)


async def update_deal(
    db: AsyncSession, actor: Actor, deal_id: uuid.UUID, data: DealUpdate
) -> Deal:
    """Full update. A stage change without a probability resets it to the stage default."""
    require_permission(actor, Permission.DEALS_UPDATE)
    deal = await require_deal(db, deal_id)
    ensure_access(actor, deal, "update")

    changes = {
        k: v
        for k, v in data.model_dump(exclude_unset=True).items()
        if v is not None or k not in _REQUIRED
    }
    if "contact_id" in changes:
        await ensure_exists(db, Contact, changes["contact_id"], "contact_id")

    stage = changes.pop("stage", None)
    probability = changes.pop("probability", None)
    for key, value in changes.items():
        setattr(deal, key, value)
    if stage is not None and stage != deal.stage:
        previous = deal.stage
        move_stage(deal, stage, probability)
        log.info(
            "Deal %s moved %s -> %s (%s%%) by %s",
            deal.id,
            previous.value,
            deal.stage.value,
            deal.probability,
            actor.id,
        )
    elif probability is not None:
        deal.probability = validate_probability(probability)

    await db.commit()
    return await require_deal(db, deal.id)


async def change_stage(
    db: AsyncSession,
    actor: Actor,
    deal_id: uuid.UUID,
    stage: DealStage,
    probability: int | None = None,
) -> Deal:
    require_permission(actor, Permission.DEALS_UPDATE)
    deal = await require_deal(db, deal_id)
    ensure_access(actor, deal, "update")

    previous = deal.stage
    move_stage(deal, stage, probability)
    await db.commit()
    log.info(
        "Deal %s moved %s -> %s (%s%%) by %s",
        deal.id,
        previous.value,
        deal.stage.value,
        deal.probability,
        actor.id,
    )
    return await require_deal(db, deal.id)


async def delete_deal(db: AsyncSession, actor: Actor, deal_id: uuid.UUID) -> None:
    require_permission(actor, Permission.DEALS_DELETE)
    deal = await require_deal(db, deal_id)
    ensure_access(actor, deal, "delete")
    await clear_references(db, deal.id, Activity.deal_id)
    await db.delete(deal)
    await db.commit()
    log.info("Deal %s deleted by %s", deal_id, actor.id)


async def create_deal_from_contact(
    db: AsyncSession, actor: Actor, contact_id: uuid.UUID, data: DealFromContact
) -> Deal:
    require_permission(actor, Permission.DEALS_CREATE)
    contact = await require_contact(db, contact_id)
    ensure_access(actor, contact, "read")

    notes = f"Deal created from contact: {contact.first_name} {contact.last_name}"
    if contact.company:
        notes += f" from {contact.company}"
    deal = Deal(
        title=data.title or f"{contact.company or contact.full_name} - New Deal",
        value=data.value,
        expected_close_date=data.expected_close_date,
        source="Contact",
        notes=data.notes if data.notes is not None else notes,
        tags=list(data.tags if data.tags is not None else contact.tags or []),
        contact_id=contact.id,
    )
    move_stage(deal, data.stage, data.probability)
    return await add_deal(db, actor, deal)
