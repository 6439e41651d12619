"""Contact API, including owner transfer and leads/deals started from a contact."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..deps import ListParams, get_actor, list_params
from ..schemas.common import dump, dump_page, ok
from ..schemas.contact import ContactCreate, ContactRead, ContactTransfer, ContactUpdate
from ..schemas.deal import DealFromContact, DealRead
from ..schemas.lead import LeadFromContact, LeadRead
from ..security.policy import Actor
from ..services import contact_svc, deal_svc, lead_svc

router = APIRouter(prefix="/api/contacts", tags=["contacts"])


@router.get("")
async def list_contacts(
    params: ListParams = Depends(list_params),
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    page = await contact_svc.list_contacts(db, actor, **params.as_kwargs())
    return dump_page("contacts", ContactRead, page)


@router.post("", status_code=201)
async def create_contact(
    data: ContactCreate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    return ok(dump(ContactRead, await contact_svc.create_contact(db, actor, data)))


@router.get("/{contact_id}")
async def get_contact(
    contact_id: uuid.UUID,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    return ok(dump(ContactRead, await contact_svc.get_contact(db, actor, contact_id)))


@router.put("/{contact_id}")
async def update_contact(
    contact_id: uuid.UUID,
    data: ContactUpdate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    return ok(dump(ContactRead, await contact_svc.update_contact(db, actor, contact_id, data)))


@router.delete("/{contact_id}")
async def delete_contact(
    contact_id: uuid.UUID,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    await contact_svc.delete_contact(db, actor, contact_id)
    return ok({"deleted": True})


@router.post("/{contact_id}/transfer")
async def transfer_contact(
    contact_id: uuid.UUID,
    data: ContactTransfer,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    contact = await contact_svc.transfer_contact(db, actor, contact_id, data.owner_id)
    return ok(dump(ContactRead, contact))


@router.post("/{contact_id}/leads", status_code=201)
async def create_lead_from_contact(
    contact_id: uuid.UUID,
    data: LeadFromContact | None = Body(None),
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    lead = await lead_svc.create_lead_from_contact(db, actor, contact_id, data)
    return ok(dump(LeadRead, lead))


@router.post("/{contact_id}/deals", status_code=201)
async def create_deal_from_contact(
    contact_id: uuid.UUID,
    data: DealFromContact,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    deal = await deal_svc.create_deal_from_contact(db, actor, contact_id, data)
    return ok(dump(DealRead, deal))
