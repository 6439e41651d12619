"""User management API."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..deps import ListParams, get_actor, list_params
from ..models.enums import Role
from ..schemas.common import dump, dump_page, ok
from ..schemas.user import UserCreate, UserPatch, UserRead, UserUpdate
from ..security.policy import Actor
from ..services import user_svc

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("")
async def list_users(
    role: Role | None = None,
    is_active: bool | None = None,
    params: ListParams = Depends(list_params),
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    page = await user_svc.list_users(db, actor, role=role, is_active=is_active, **params.as_kwargs())
    return dump_page("users", UserRead, page)


@router.post("", status_code=201)
async def create_user(
    data: UserCreate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    user = await user_svc.create_user(db, actor, data)
    return ok(dump(UserRead, user))


@router.get("/{user_id}")
async def get_user(
    user_id: uuid.UUID,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    return ok(dump(UserRead, await user_svc.get_user(db, actor, user_id)))


@router.put("/{user_id}")
async def update_user(
    user_id: uuid.UUID,
    data: UserUpdate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    return ok(dump(UserRead, await user_svc.update_user(db, actor, user_id, data)))


@router.patch("/{user_id}")
async def patch_user(
    user_id: uuid.UUID,
    data: UserPatch,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    return ok(dump(UserRead, await user_svc.patch_user(db, actor, user_id, data)))


@router.delete("/{user_id}")
async def delete_user(
    user_id: uuid.UUID,
    transfer_user_id: uuid.UUID | None = None,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    counts = await user_svc.delete_user(db, actor, user_id, transfer_user_id)
    return ok({"deleted": True, "reassigned": counts})
