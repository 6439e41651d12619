"""Test user service: role management, deactivation and deletion with transfer."""

from __future__ import annotations

import uuid
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from dealdesk.errors import ConflictError, NotFound, PermissionDenied, ValidationError
from dealdesk.models.enums import ActivityType, Role
from dealdesk.models.user import User
from dealdesk.schemas.activity import ActivityCreate
from dealdesk.schemas.contact import ContactCreate
from dealdesk.schemas.deal import DealCreate
from dealdesk.schemas.lead import LeadCreate
from dealdesk.schemas.user import UserCreate, UserPatch, UserUpdate
from dealdesk.security.passwords import verify_password
from dealdesk.services import activity_svc, contact_svc, deal_svc, lead_svc, user_svc


@pytest.mark.asyncio
async def test_admin_creates_user(db: AsyncSession, admin: User, as_actor):
    user = await user_svc.create_user(
        db,
        as_actor(admin),
        UserCreate(name="New Rep", email="New.Rep@Example.com", password="longenough"),
    )
    assert user.email == "new.rep@example.com"
    assert user.role == Role.REP
    assert verify_password("longenough", user.password_hash)


@pytest.mark.asyncio
async def test_manager_cannot_create_user(db: AsyncSession, manager: User, as_actor):
    with pytest.raises(PermissionDenied):
        await user_svc.create_user(
            db, as_actor(manager), UserCreate(name="X", email="x@example.com")
        )


@pytest.mark.asyncio
async def test_duplicate_email_conflicts(db: AsyncSession, admin: User, rep: User, as_actor):
    with pytest.raises(ConflictError):
        await user_svc.create_user(
            db, as_actor(admin), UserCreate(name="Dup", email="REP@example.com")
        )


@pytest.mark.asyncio
async def test_list_users_filters_by_role(
    db: AsyncSession, admin: User, rep: User, other_rep: User, viewer: User, as_actor
):
    page = await user_svc.list_users(db, as_actor(viewer), role=Role.REP)
    assert page.total == 2
    assert {u.email for u in page.items} == {"rep@example.com", "rep2@example.com"}


@pytest.mark.asyncio
async def test_rep_only_sees_self(db: AsyncSession, rep: User, other_rep: User, as_actor):
    me = await user_svc.get_user(db, as_actor(rep), rep.id)
    assert me.id == rep.id
    with pytest.raises(PermissionDenied):
        await user_svc.get_user(db, as_actor(rep), other_rep.id)


@pytest.mark.asyncio
async def test_get_missing_user(db: AsyncSession, admin: User, as_actor):
    with pytest.raises(NotFound):
        await user_svc.get_user(db, as_actor(admin), uuid.uuid4())


@pytest.mark.asyncio
async def test_manager_role_changes(db: AsyncSession, manager: User, rep: User, as_actor):
    with pytest.raises(PermissionDenied):
        await user_svc.change_role(db, as_actor(manager), rep.id, Role.ADMIN)

    updated = await user_svc.change_role(db, as_actor(manager), rep.id, Role.READ_ONLY)
    assert updated.role == Role.READ_ONLY


@pytest.mark.asyncio
async def test_admin_cannot_change_own_role(db: AsyncSession, admin: User, as_actor):
    with pytest.raises(PermissionDenied):
        await user_svc.change_role(db, as_actor(admin), admin.id, Role.REP)


@pytest.mark.asyncio
async def test_self_deactivation_rejected(db: AsyncSession, admin: User, as_actor):
    with pytest.raises(ValidationError):
        await user_svc.set_active(db, as_actor(admin), admin.id, False)


@pytest.mark.asyncio
async def test_manager_deactivates_rep(db: AsyncSession, manager: User, rep: User, as_actor):
    updated = await user_svc.set_active(db, as_actor(manager), rep.id, False)
    assert updated.is_active is False


@pytest.mark.asyncio
async def test_manager_cannot_deactivate_admin(
    db: AsyncSession, manager: User, admin: User, as_actor
):
    with pytest.raises(PermissionDenied):
        await user_svc.patch_user(db, as_actor(manager), admin.id, UserPatch(is_active=False))


@pytest.mark.asyncio
async def test_profile_edit_rules(db: AsyncSession, rep: User, other_rep: User, as_actor):
    updated = await user_svc.update_user(db, as_actor(rep), rep.id, UserUpdate(name="Rita R."))
    assert updated.name == "Rita R."
    with pytest.raises(PermissionDenied):
        await user_svc.update_user(db, as_actor(rep), other_rep.id, UserUpdate(name="Nope"))
    with pytest.raises(ConflictError):
        await user_svc.update_user(
            db, as_actor(rep), rep.id, UserUpdate(email="rep2@example.com")
        )


async def _owned_records(db: AsyncSession, actor) -> None:
    contact = await contact_svc.create_contact(
        db, actor, ContactCreate(first_name="Lee", last_name="Park")
    )
    await lead_svc.create_lead(
        db, actor, LeadCreate(title="Lead", first_name="Lee", last_name="Park")
    )
    await deal_svc.create_deal(
        db, actor, DealCreate(title="Deal", value=Decimal("100"), contact_id=contact.id)
    )
    await activity_svc.create_activity(
        db, actor, ActivityCreate(title="Call", type=ActivityType.CALL)
    )


@pytest.mark.asyncio
async def test_delete_user_transfers_records(
    db: AsyncSession, admin: User, rep: User, other_rep: User, as_actor
):
    await _owned_records(db, as_actor(rep))

    counts = await user_svc.delete_user(db, as_actor(admin), rep.id, other_rep.id)
    assert counts["contacts"] == 1
    assert counts["leads"] == 1
    assert counts["deals"] == 1
    assert counts["activities_assigned"] == 1
    assert counts["activities_created"] == 1
    assert counts["transferred_to"] == str(other_rep.id)

    page = await deal_svc.list_deals(db, as_actor(other_rep))
    assert page.total == 1
    assert page.items[0].owner_id == other_rep.id
    assert await user_svc.get_user_row(db, rep.id) is None


@pytest.mark.asyncio
async def test_delete_user_without_transfer_unassigns(
    db: AsyncSession, admin: User, rep: User, as_actor
):
    await _owned_records(db, as_actor(rep))

    counts = await user_svc.delete_user(db, as_actor(admin), rep.id)
    assert counts["transferred_to"] is None

    page = await lead_svc.list_leads(db, as_actor(admin))
    assert page.items[0].owner_id is None


@pytest.mark.asyncio
async def test_delete_user_guards(
    db: AsyncSession, admin: User, manager: User, rep: User, as_actor
):
    with pytest.raises(ValidationError):
        await user_svc.delete_user(db, as_actor(admin), admin.id)
    with pytest.raises(PermissionDenied):
        await user_svc.delete_user(db, as_actor(manager), admin.id)
    with pytest.raises(ValidationError):
        await user_svc.delete_user(db, as_actor(admin), rep.id, rep.id)
    with pytest.raises(ValidationError):
        await user_svc.delete_user(db, as_actor(admin), rep.id, uuid.uuid4())
    with pytest.raises(NotFound):
        await user_svc.delete_user(db, as_actor(admin), uuid.uuid4())
