"""Activity API. PATCH toggles completion."""

from __future__ import annotations

import uuid
from typing import Literal

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..deps import ListParams, get_actor, list_params
from ..models.enums import ActivityType, Priority
from ..schemas.activity import ActivityCompletion, ActivityCreate, ActivityRead, ActivityUpdate
from ..schemas.common import dump, dump_page, ok
from ..security.policy import Actor
from ..services import activity_svc

router = APIRouter(prefix="/api/activities", tags=["activities"])


@router.get("")
async def list_activities(
    type: ActivityType | None = None,
    priority: Priority | None = None,
    status: Literal["completed", "pending", "overdue"] | None = None,
    contact_id: uuid.UUID | None = None,
    deal_id: uuid.UUID | None = None,
    lead_id: uuid.UUID | None = None,
    params: ListParams = Depends(list_params),
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    page = await activity_svc.list_activities(
        db,
        actor,
        type=type,
        priority=priority,
        status=status,
        contact_id=contact_id,
        deal_id=deal_id,
        lead_id=lead_id,
        **params.as_kwargs(),
    )
    return dump_page("activities", ActivityRead, page)


@router.post("", status_code=201)
async def create_activity(
    data: ActivityCreate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    return ok(dump(ActivityRead, await activity_svc.create_activity(db, actor, data)))


@router.get("/{activity_id}")
async def get_activity(
    activity_id: uuid.UUID,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    return ok(dump(ActivityRead, await activity_svc.get_activity(db, actor, activity_id)))


@router.put("/{activity_id}")
async def update_activity(
    activity_id: uuid.UUID,
    data: ActivityUpdate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    activity = await activity_svc.update_activity(db, actor, activity_id, data)
    return ok(dump(ActivityRead, activity))


@router.patch("/{activity_id}")
async def toggle_completion(
    activity_id: uuid.UUID,
    data: ActivityCompletion,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    activity = await activity_svc.set_completed(db, actor, activity_id, data.is_completed)
    return ok(dump(ActivityRead, activity))


@router.delete("/{activity_id}")
async def delete_activity(
    activity_id: uuid.UUID,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    await activity_svc.delete_activity(db, actor, activity_id)
    return ok({"deleted": True})
