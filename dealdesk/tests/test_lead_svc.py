"""Test lead service, leads from contacts and lead-to-deal conversion."""

from __future__ import annotations

import uuid
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from dealdesk.errors import ConflictError, NotFound, PermissionDenied, ValidationError
from dealdesk.models.enums import DealStage, LeadSource, LeadStatus
from dealdesk.models.lead import Lead
from dealdesk.models.user import User
from dealdesk.schemas.contact import ContactCreate
from dealdesk.schemas.lead import LeadConversion, LeadCreate, LeadFromContact, LeadUpdate
from dealdesk.services import contact_svc, lead_svc


def _lead(**overrides) -> LeadCreate:
    data = {"title": "CRM for Acme", "first_name": "Dana", "last_name": "Reyes"}
    data.update(overrides)
    return LeadCreate(**data)


@pytest.mark.asyncio
async def test_create_lead_defaults(db: AsyncSession, rep: User, as_actor):
    lead = await lead_svc.create_lead(db, as_actor(rep), _lead())
    assert lead.status == LeadStatus.NEW
    assert lead.owner_id == rep.id
    assert lead.tags == []
    assert lead.deal is None


@pytest.mark.asyncio
async def test_create_lead_with_unknown_contact(db: AsyncSession, rep: User, as_actor):
    with pytest.raises(ValidationError) as exc:
        await lead_svc.create_lead(db, as_actor(rep), _lead(contact_id=uuid.uuid4()))
    assert exc.value.details[0]["field"] == "contact_id"


@pytest.mark.asyncio
async def test_any_status_transition_allowed(db: AsyncSession, rep: User, as_actor):
    lead = await lead_svc.create_lead(db, as_actor(rep), _lead(status=LeadStatus.CLOSED_LOST))
    updated = await lead_svc.update_lead(
        db, as_actor(rep), lead.id, LeadUpdate(status=LeadStatus.NEW)
    )
    assert updated.status == LeadStatus.NEW


@pytest.mark.asyncio
async def test_list_leads_filters(db: AsyncSession, rep: User, other_rep: User, as_actor):
    await lead_svc.create_lead(db, as_actor(rep), _lead(status=LeadStatus.QUALIFIED))
    await lead_svc.create_lead(db, as_actor(rep), _lead(title="Other"))
    await lead_svc.create_lead(db, as_actor(other_rep), _lead(status=LeadStatus.QUALIFIED))

    page = await lead_svc.list_leads(db, as_actor(rep), status=LeadStatus.QUALIFIED)
    assert page.total == 1
    assert page.items[0].owner_id == rep.id


@pytest.mark.asyncio
async def test_rep_cannot_delete_foreign_lead(
    db: AsyncSession, rep: User, other_rep: User, as_actor
):
    lead = await lead_svc.create_lead(db, as_actor(other_rep), _lead())
    with pytest.raises(PermissionDenied):
        await lead_svc.delete_lead(db, as_actor(rep), lead.id)
    await lead_svc.delete_lead(db, as_actor(other_rep), lead.id)
    with pytest.raises(NotFound):
        await lead_svc.get_lead(db, as_actor(other_rep), lead.id)


@pytest.mark.asyncio
async def test_create_lead_from_contact(db: AsyncSession, rep: User, as_actor):
    contact = await contact_svc.create_contact(
        db,
        as_actor(rep),
        ContactCreate(
            first_name="Jane", last_name="Doe", email="jane@acme.io", company="Acme", tags=["t"]
        ),
    )
    lead = await lead_svc.create_lead_from_contact(db, as_actor(rep), contact.id)
    assert lead.title == "Jane Doe - Acme"
    assert lead.email == "jane@acme.io"
    assert lead.company == "Acme"
    assert lead.status == LeadStatus.NEW
    assert lead.notes == "Lead created from contact: Jane Doe"
    assert lead.contact_id == contact.id
    assert lead.tags == ["t"]

    no_company = await contact_svc.create_contact(
        db, as_actor(rep), ContactCreate(first_name="Sam", last_name="Roe")
    )
    lead = await lead_svc.create_lead_from_contact(
        db, as_actor(rep), no_company.id, LeadFromContact(source=LeadSource.REFERRAL)
    )
    assert lead.title == "Sam Roe - New Opportunity"
    assert lead.source == LeadSource.REFERRAL


@pytest.mark.asyncio
async def test_convert_lead_defaults(db: AsyncSession, rep: User, as_actor):
    lead = await lead_svc.create_lead(
        db,
        as_actor(rep),
        _lead(title="Website lead", value=Decimal("2500"), notes="Hot", tags=["web"]),
    )
    deal = await lead_svc.convert_lead_to_deal(db, as_actor(rep), lead.id)

    assert deal.title == "Website Deal"
    assert deal.value == Decimal("2500")
    assert deal.stage == DealStage.PROSPECTING
    assert deal.probability == 10
    assert deal.source == "Lead Conversion"
    assert deal.notes == "Converted from lead: Website lead\n\nOriginal lead notes: Hot"
    assert deal.tags == ["web"]
    assert deal.lead_id == lead.id
    assert deal.owner_id == rep.id


@pytest.mark.asyncio
async def test_convert_lead_title_fallback_and_source(db: AsyncSession, rep: User, as_actor):
    lead = await lead_svc.create_lead(
        db,
        as_actor(rep),
        _lead(company="Acme", source=LeadSource.EVENT, value=Decimal("10")),
    )
    deal = await lead_svc.convert_lead_to_deal(db, as_actor(rep), lead.id)
    assert deal.title == "Acme - Deal"
    assert deal.source == "EVENT"
    assert deal.notes.endswith("Original lead notes: No notes")


@pytest.mark.asyncio
async def test_convert_lead_overrides(db: AsyncSession, rep: User, as_actor):
    lead = await lead_svc.create_lead(db, as_actor(rep), _lead(value=Decimal("100")))
    deal = await lead_svc.convert_lead_to_deal(
        db,
        as_actor(rep),
        lead.id,
        LeadConversion(title="Custom", value=Decimal("900"), stage=DealStage.PROPOSAL),
    )
    assert deal.title == "Custom"
    assert deal.value == Decimal("900")
    assert deal.stage == DealStage.PROPOSAL
    assert deal.probability == 60


@pytest.mark.asyncio
async def test_convert_requires_positive_value(db: AsyncSession, rep: User, as_actor):
    lead = await lead_svc.create_lead(db, as_actor(rep), _lead())
    with pytest.raises(ValidationError) as exc:
        await lead_svc.convert_lead_to_deal(db, as_actor(rep), lead.id)
    assert exc.value.details[0]["field"] == "value"


@pytest.mark.asyncio
async def test_convert_requires_title(db: AsyncSession, rep: User, as_actor):
    lead = await lead_svc.create_lead(db, as_actor(rep), _lead(value=Decimal("5")))
    with pytest.raises(ValidationError):
        await lead_svc.convert_lead_to_deal(
            db, as_actor(rep), lead.id, LeadConversion(title="   ")
        )


@pytest.mark.asyncio
async def test_convert_twice_conflicts(db: AsyncSession, rep: User, as_actor):
    lead = await lead_svc.create_lead(db, as_actor(rep), _lead(value=Decimal("5")))
    await lead_svc.convert_lead_to_deal(db, as_actor(rep), lead.id)
    with pytest.raises(ConflictError):
        await lead_svc.convert_lead_to_deal(db, as_actor(rep), lead.id)


@pytest.mark.asyncio
async def test_convert_leaves_lead_untouched(db: AsyncSession, rep: User, as_actor):
    lead = await lead_svc.create_lead(
        db, as_actor(rep), _lead(value=Decimal("5"), status=LeadStatus.QUALIFIED)
    )
    await lead_svc.convert_lead_to_deal(db, as_actor(rep), lead.id)
    reloaded = await lead_svc.get_lead(db, as_actor(rep), lead.id)
    assert reloaded.status == LeadStatus.QUALIFIED
    assert reloaded.value == Decimal("5")
    assert reloaded.deal is not None


@pytest.mark.asyncio
async def test_convert_permission_checks(
    db: AsyncSession, rep: User, other_rep: User, viewer: User, as_actor
):
    lead = await lead_svc.create_lead(db, as_actor(rep), _lead(value=Decimal("5")))
    with pytest.raises(PermissionDenied):
        await lead_svc.convert_lead_to_deal(db, as_actor(other_rep), lead.id)
    with pytest.raises(PermissionDenied):
        await lead_svc.convert_lead_to_deal(db, as_actor(viewer), lead.id)
    with pytest.raises(NotFound):
        await lead_svc.convert_lead_to_deal(db, as_actor(rep), uuid.uuid4())


def test_conversion_title_variants():
    assert lead_svc.conversion_title(Lead(title="Big LEAD here", first_name="a", last_name="b")) == (
        "Big Deal here"
    )
    assert lead_svc.conversion_title(
        Lead(title="Expansion", first_name="Ann", last_name="Lee", company=None)
    ) == "Ann Lee - Deal"
