"""User service - listing, profile edits, role management and deletion with transfer."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import ConflictError, NotFound, PermissionDenied, ValidationError
from ..models.activity import Activity
from ..models.contact import Contact
from ..models.deal import Deal
from ..models.enums import Role
from ..models.lead import Lead
from ..models.user import User
from ..schemas.user import UserCreate, UserPatch, UserUpdate
from ..security.passwords import hash_password
from ..security.policy import (
    Actor,
    Permission,
    can_assign_role,
    can_edit_profile,
    can_manage_user,
    ensure_not_self_deactivation,
    require_permission,
)
from .query import Page, apply_search, apply_sort, fetch_page

log = logging.getLogger(__name__)

SORTABLE = ("created_at", "updated_at", "name", "email", "role")


def _normalize_email(email: str) -> str:
    return email.strip().lower()


async def get_user_row(db: AsyncSession, user_id: uuid.UUID) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == _normalize_email(email)))
    return result.scalar_one_or_none()


async def _require_user(db: AsyncSession, user_id: uuid.UUID) -> User:
    user = await get_user_row(db, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


async def _ensure_email_free(
    db: AsyncSession, email: str, exclude_id: uuid.UUID | None = None
) -> None:
    existing = await get_user_by_email(db, email)
    if existing is not None and existing.id != exclude_id:
        raise ConflictError("A user with this email already exists")


async def list_users(
    db: AsyncSession,
    actor: Actor,
    *,
    role: Role | None = None,
    is_active: bool | None = None,
    search: str | None = None,
    page: int | None = 1,
    limit: int | None = None,
    sort_by: str | None = None,
    sort_order: str | None = None,
) -> Page:
    require_permission(actor, Permission.USERS_READ)
    stmt = select(User)
    if role is not None:
        stmt = stmt.where(User.role == role)
    if is_active is not None:
        stmt = stmt.where(User.is_active == is_active)
    stmt = apply_search(stmt, (User.name, User.email), search)
    stmt = apply_sort(stmt, User, SORTABLE, sort_by, sort_order)
    return await fetch_page(db, stmt, page=page, limit=limit)


async def get_user(db: AsyncSession, actor: Actor, user_id: uuid.UUID) -> User:
    """Privileged actors see anyone; everyone else only sees themselves."""
    require_permission(actor, Permission.USERS_READ)
    user = await _require_user(db, user_id)
    if not actor.is_privileged and actor.id != user.id:
        raise PermissionDenied()
    return user


async def create_user(db: AsyncSession, actor: Actor, data: UserCreate) -> User:
    require_permission(actor, Permission.USERS_CREATE)
    email = _normalize_email(data.email)
    await _ensure_email_free(db, email)

    user = User(
        name=data.name.strip(),
        email=email,
        role=data.role,
        is_active=data.is_active,
        password_hash=hash_password(data.password) if data.password else None,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    log.info("User %s (%s) created by %s", user.id, user.role.value, actor.id)
    return user


def _apply_role(actor: Actor, user: User, role: Role) -> None:
    if role == user.role:
        return
    if not can_assign_role(actor, user, role):
        raise PermissionDenied()
    log.info("User %s role %s -> %s by %s", user.id, user.role.value, role.value, actor.id)
    user.role = role


def _apply_active(actor: Actor, user: User, is_active: bool) -> None:
    if is_active == user.is_active:
        return
    ensure_not_self_deactivation(actor, user.id, is_active)
    if not can_manage_user(actor, user):
        raise PermissionDenied()
    log.info(
        "User %s %s by %s", user.id, "activated" if is_active else "deactivated", actor.id
    )
    user.is_active = is_active


async def update_user(
    db: AsyncSession, actor: Actor, user_id: uuid.UUID, data: UserUpdate
) -> User:
    user = await _require_user(db, user_id)
    changes = data.model_dump(exclude_unset=True)

    profile = {k: v for k, v in changes.items() if k in {"name", "email", "password"} and v is not None}
    if profile:
        if not can_edit_profile(actor, user):
            raise PermissionDenied()
        if "name" in profile:
            user.name = profile["name"].strip()
        if "email" in profile:
            email = _normalize_email(profile["email"])
            await _ensure_email_free(db, email, exclude_id=user.id)
            user.email = email
        if "password" in profile:
            user.password_hash = hash_password(profile["password"])

    if changes.get("role") is not None:
        _apply_role(actor, user, changes["role"])
    if changes.get("is_active") is not None:
        _apply_active(actor, user, changes["is_active"])

    await db.commit()
    await db.refresh(user)
    return user


async def patch_user(
    db: AsyncSession, actor: Actor, user_id: uuid.UUID, data: UserPatch
) -> User:
    """Apply role and/or activation changes in one commit."""
    user = await _require_user(db, user_id)
    if data.role is None and data.is_active is None:
        raise ValidationError("Nothing to update", field="role")
    if data.role is not None:
        _apply_role(actor, user, data.role)
    if data.is_active is not None:
        _apply_active(actor, user, data.is_active)
    await db.commit()
    await db.refresh(user)
    return user


async def change_role(db: AsyncSession, actor: Actor, user_id: uuid.UUID, role: Role) -> User:
    return await patch_user(db, actor, user_id, UserPatch(role=role))


async def set_active(db: AsyncSession, actor: Actor, user_id: uuid.UUID, is_active: bool) -> User:
    return await patch_user(db, actor, user_id, UserPatch(is_active=is_active))


async def delete_user(
    db: AsyncSession,
    actor: Actor,
    user_id: uuid.UUID,
    transfer_user_id: uuid.UUID | None = None,
) -> dict[str, int | str | None]:
    """Delete a user, handing their records to ``transfer_user_id`` or unassigning them.

    Returns how many rows of each kind were reassigned.
    """
    user = await _require_user(db, user_id)
    if actor.id == user.id:
        raise ValidationError("You cannot delete your own account", field="id")
    if not can_manage_user(actor, user):
        raise PermissionDenied()

    new_owner = None
    if transfer_user_id is not None:
        target = await get_user_row(db, transfer_user_id)
        if target is None or target.id == user.id or not target.is_active:
            raise ValidationError(
                "Records can only be transferred to another active user",
                field="transfer_user_id",
            )
        new_owner = target.id

    counts: dict[str, int | str | None] = {}
    reassignments = (
        ("contacts", Contact, Contact.owner_id),
        ("leads", Lead, Lead.owner_id),
        ("deals", Deal, Deal.owner_id),
        ("activities_assigned", Activity, Activity.assignee_id),
        ("activities_created", Activity, Activity.created_by_id),
    )
    for key, model, column in reassignments:
        result = await db.execute(
            update(model)
            .where(column == user.id)
            .values({column.key: new_owner})
        )
        counts[key] = result.rowcount or 0

    await db.delete(user)
    await db.commit()
    counts["transferred_to"] = str(new_owner) if new_owner else None
    log.info("User %s deleted by %s, records %s", user_id, actor.id, counts)
    return counts
