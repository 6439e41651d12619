"""Lead API and lead-to-deal conversion."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..deps import ListParams, get_actor, list_params
from ..models.enums import LeadSource, LeadStatus
from ..schemas.common import dump, dump_page, ok
from ..schemas.deal import DealRead
from ..schemas.lead import LeadConversion, LeadCreate, LeadRead, LeadUpdate
from ..security.policy import Actor
from ..services import lead_svc

router = APIRouter(prefix="/api/leads", tags=["leads"])


@router.get("")
async def list_leads(
    status: LeadStatus | None = None,
    source: LeadSource | None = None,
    params: ListParams = Depends(list_params),
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    page = await lead_svc.list_leads(db, actor, status=status, source=source, **params.as_kwargs())
    return dump_page("leads", LeadRead, page)


@router.post("", status_code=201)
async def create_lead(
    data: LeadCreate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    return ok(dump(LeadRead, await lead_svc.create_lead(db, actor, data)))


@router.get("/{lead_id}")
async def get_lead(
    lead_id: uuid.UUID,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    return ok(dump(LeadRead, await lead_svc.get_lead(db, actor, lead_id)))


@router.put("/{lead_id}")
async def update_lead(
    lead_id: uuid.UUID,
    data: LeadUpdate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    return ok(dump(LeadRead, await lead_svc.update_lead(db, actor, lead_id, data)))


@router.delete("/{lead_id}")
async def delete_lead(
    lead_id: uuid.UUID,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    await lead_svc.delete_lead(db, actor, lead_id)
    return ok({"deleted": True})


@router.post("/{lead_id}/convert", status_code=201)
async def convert_lead(
    lead_id: uuid.UUID,
    data: LeadConversion | None = Body(None),
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    deal = await lead_svc.convert_lead_to_deal(db, actor, lead_id, data)
    return ok(dump(DealRead, deal))
