"""Deal API. PATCH moves a deal between pipeline stages."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..deps import ListParams, get_actor, list_params
from ..models.enums import DealStage
from ..schemas.common import dump, dump_page, ok
from ..schemas.deal import DealCreate, DealRead, DealStageChange, DealUpdate
from ..security.policy import Actor
from ..services import deal_svc

router = APIRouter(prefix="/api/deals", tags=["deals"])


@router.get("")
async def list_deals(
    stage: DealStage | None = None,
    params: ListParams = Depends(list_params),
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    page = await deal_svc.list_deals(db, actor, stage=stage, **params.as_kwargs())
    return dump_page("deals", DealRead, page)


@router.post("", status_code=201)
async def create_deal(
    data: DealCreate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    return ok(dump(DealRead, await deal_svc.create_deal(db, actor, data)))


@router.get("/{deal_id}")
async def get_deal(
    deal_id: uuid.UUID,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    return ok(dump(DealRead, await deal_svc.get_deal(db, actor, deal_id)))


@router.put("/{deal_id}")
async def update_deal(
    deal_id: uuid.UUID,
    data: DealUpdate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    return ok(dump(DealRead, await deal_svc.update_deal(db, actor, deal_id, data)))


@router.patch("/{deal_id}")
async def move_deal(
    deal_id: uuid.UUID,
    data: DealStageChange,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    deal = await deal_svc.change_stage(db, actor, deal_id, data.stage, data.probability)
    return ok(dump(DealRead, deal))


@router.delete("/{deal_id}")
async def delete_deal(
    deal_id: uuid.UUID,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    await deal_svc.delete_deal(db, actor, deal_id)
    return ok({"deleted": True})
