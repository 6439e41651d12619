"""Test deal service and stage moves."""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from dealdesk.errors import ConflictError, PermissionDenied, ValidationError
from dealdesk.models.enums import ActivityType, DealStage
from dealdesk.models.user import User
from dealdesk.schemas.activity import ActivityCreate
from dealdesk.schemas.contact import ContactCreate
from dealdesk.schemas.deal import DealCreate, DealFromContact, DealUpdate
from dealdesk.schemas.lead import LeadCreate
from dealdesk.services import activity_svc, contact_svc, deal_svc, lead_svc


def _deal(**overrides) -> DealCreate:
    data = {"title": "Platform rollout", "value": Decimal("1000")}
    data.update(overrides)
    return DealCreate(**data)


@pytest.mark.asyncio
async def test_create_deal_uses_stage_default(db: AsyncSession, rep: User, as_actor):
    deal = await deal_svc.create_deal(db, as_actor(rep), _deal(stage=DealStage.NEGOTIATION))
    assert deal.probability == 75
    assert deal.weighted_value == 750
    assert deal.owner_id == rep.id
    assert deal.owner.id == rep.id


@pytest.mark.asyncio
async def test_create_deal_explicit_probability(db: AsyncSession, rep: User, as_actor):
    deal = await deal_svc.create_deal(db, as_actor(rep), _deal(probability=42))
    assert deal.stage == DealStage.PROSPECTING
    assert deal.probability == 42


@pytest.mark.asyncio
async def test_create_deal_for_converted_lead_conflicts(db: AsyncSession, rep: User, as_actor):
    lead = await lead_svc.create_lead(
        db, as_actor(rep), LeadCreate(title="L", first_name="A", last_name="B", value=Decimal("5"))
    )
    await lead_svc.convert_lead_to_deal(db, as_actor(rep), lead.id)
    with pytest.raises(ConflictError):
        await deal_svc.create_deal(db, as_actor(rep), _deal(lead_id=lead.id))


@pytest.mark.asyncio
async def test_move_to_closed_won(db: AsyncSession, rep: User, as_actor):
    deal = await deal_svc.create_deal(
        db, as_actor(rep), _deal(value=Decimal("80000"), stage=DealStage.NEGOTIATION)
    )
    moved = await deal_svc.change_stage(db, as_actor(rep), deal.id, DealStage.CLOSED_WON)
    assert moved.stage == DealStage.CLOSED_WON
    assert moved.probability == 100
    assert moved.weighted_value == 80000
    assert moved.actual_close_date is None


@pytest.mark.asyncio
async def test_change_stage_validates_probability(db: AsyncSession, rep: User, as_actor):
    deal = await deal_svc.create_deal(db, as_actor(rep), _deal())
    with pytest.raises(ValidationError):
        await deal_svc.change_stage(db, as_actor(rep), deal.id, DealStage.PROPOSAL, 150)


@pytest.mark.asyncio
async def test_update_deal_stage_change_resets_probability(
    db: AsyncSession, rep: User, as_actor
):
    deal = await deal_svc.create_deal(db, as_actor(rep), _deal(probability=90))
    updated = await deal_svc.update_deal(
        db, as_actor(rep), deal.id, DealUpdate(stage=DealStage.QUALIFICATION)
    )
    assert updated.probability == 25

    kept = await deal_svc.update_deal(db, as_actor(rep), deal.id, DealUpdate(title="Renamed"))
    assert kept.title == "Renamed"
    assert kept.probability == 25

    explicit = await deal_svc.update_deal(
        db, as_actor(rep), deal.id, DealUpdate(stage=DealStage.PROPOSAL, probability=55)
    )
    assert explicit.stage == DealStage.PROPOSAL
    assert explicit.probability == 55


@pytest.mark.asyncio
async def test_update_deal_logs_stage_move(db: AsyncSession, rep: User, as_actor, caplog):
    deal = await deal_svc.create_deal(db, as_actor(rep), _deal())
    caplog.set_level(logging.INFO, logger="dealdesk.services.deal_svc")

    await deal_svc.update_deal(db, as_actor(rep), deal.id, DealUpdate(title="No move"))
    assert not [r for r in caplog.records if "moved" in r.getMessage()]

    await deal_svc.update_deal(
        db, as_actor(rep), deal.id, DealUpdate(stage=DealStage.NEEDS_ANALYSIS)
    )
    moves = [r.getMessage() for r in caplog.records if "moved" in r.getMessage()]
    assert moves == [f"Deal {deal.id} moved PROSPECTING -> NEEDS_ANALYSIS (40%) by {rep.id}"]


@pytest.mark.asyncio
async def test_list_deals_by_stage_and_scope(
    db: AsyncSession, rep: User, other_rep: User, manager: User, as_actor
):
    await deal_svc.create_deal(db, as_actor(rep), _deal(stage=DealStage.PROPOSAL))
    await deal_svc.create_deal(db, as_actor(rep), _deal())
    await deal_svc.create_deal(db, as_actor(other_rep), _deal(stage=DealStage.PROPOSAL))

    mine = await deal_svc.list_deals(db, as_actor(rep), stage=DealStage.PROPOSAL)
    assert mine.total == 1
    everyone = await deal_svc.list_deals(db, as_actor(manager), stage=DealStage.PROPOSAL)
    assert everyone.total == 2


@pytest.mark.asyncio
async def test_rep_cannot_move_foreign_deal(
    db: AsyncSession, rep: User, other_rep: User, as_actor
):
    deal = await deal_svc.create_deal(db, as_actor(other_rep), _deal())
    with pytest.raises(PermissionDenied):
        await deal_svc.change_stage(db, as_actor(rep), deal.id, DealStage.CLOSED_WON)


@pytest.mark.asyncio
async def test_delete_deal_detaches_activities(db: AsyncSession, rep: User, as_actor):
    deal = await deal_svc.create_deal(db, as_actor(rep), _deal())
    activity = await activity_svc.create_activity(
        db, as_actor(rep), ActivityCreate(title="Demo", type=ActivityType.MEETING, deal_id=deal.id)
    )
    await deal_svc.delete_deal(db, as_actor(rep), deal.id)
    reloaded = await activity_svc.get_activity(db, as_actor(rep), activity.id)
    assert reloaded.deal_id is None


@pytest.mark.asyncio
async def test_create_deal_from_contact(db: AsyncSession, rep: User, as_actor):
    contact = await contact_svc.create_contact(
        db,
        as_actor(rep),
        ContactCreate(first_name="Jane", last_name="Doe", company="Acme", tags=["x"]),
    )
    deal = await deal_svc.create_deal_from_contact(
        db, as_actor(rep), contact.id, DealFromContact(value=Decimal("300"))
    )
    assert deal.title == "Acme - New Deal"
    assert deal.source == "Contact"
    assert deal.notes == "Deal created from contact: Jane Doe from Acme"
    assert deal.contact_id == contact.id
    assert deal.tags == ["x"]
    assert deal.probability == 10

    solo = await contact_svc.create_contact(
        db, as_actor(rep), ContactCreate(first_name="Sam", last_name="Roe")
    )
    deal = await deal_svc.create_deal_from_contact(
        db, as_actor(rep), solo.id, DealFromContact(value=Decimal("1"))
    )
    assert deal.title == "Sam Roe - New Deal"
    assert deal.notes == "Deal created from contact: Sam Roe"


@pytest.mark.asyncio
async def test_create_deal_unknown_contact(db: AsyncSession, rep: User, as_actor):
    with pytest.raises(ValidationError):
        await deal_svc.create_deal(db, as_actor(rep), _deal(contact_id=uuid.uuid4()))
