"""Contact service - CRUD, search and owner transfer."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..errors import ConflictError, NotFound, PermissionDenied, ValidationError
from ..models.activity import Activity
from ..models.contact import Contact
from ..models.deal import Deal
from ..models.lead import Lead
from ..schemas.contact import ContactCreate, ContactUpdate
from ..security.policy import Actor, Permission, ensure_access, require_permission
from .query import Page, apply_search, apply_sort, clear_references, fetch_page, scope_to_actor
from .user_svc import get_user_row

log = logging.getLogger(__name__)

SORTABLE = ("created_at", "updated_at", "first_name", "last_name", "email", "company")
SEARCH_COLUMNS = (
    Contact.first_name,
    Contact.last_name,
    Contact.email,
    Contact.phone,
    Contact.company,
)


async def _load(db: AsyncSession, contact_id: uuid.UUID) -> Contact | None:
    stmt = (
        select(Contact)
        .where(Contact.id == contact_id)
        .options(selectinload(Contact.owner))
        .execution_options(populate_existing=True)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def require_contact(db: AsyncSession, contact_id: uuid.UUID) -> Contact:
    contact = await _load(db, contact_id)
    if contact is None:
        raise NotFound("Contact not found")
    return contact


async def _ensure_email_free(
    db: AsyncSession, email: str | None, exclude_id: uuid.UUID | None = None
) -> None:
    if not email:
        return
    result = await db.execute(select(Contact.id).where(Contact.email == email))
    existing = result.scalar_one_or_none()
    if existing is not None and existing != exclude_id:
        raise ConflictError("A contact with this email already exists")


async def list_contacts(
    db: AsyncSession,
    actor: Actor,
    *,
    search: str | None = None,
    page: int | None = 1,
    limit: int | None = None,
    sort_by: str | None = None,
    sort_order: str | None = None,
) -> Page:
    require_permission(actor, Permission.CONTACTS_READ)
    stmt = scope_to_actor(select(Contact), Contact, actor)
    stmt = apply_search(stmt, SEARCH_COLUMNS, search)
    stmt = apply_sort(stmt, Contact, SORTABLE, sort_by, sort_order)
    stmt = stmt.options(selectinload(Contact.owner))
    return await fetch_page(db, stmt, page=page, limit=limit)


async def get_contact(db: AsyncSession, actor: Actor, contact_id: uuid.UUID) -> Contact:
    require_permission(actor, Permission.CONTACTS_READ)
    contact = await require_contact(db, contact_id)
    ensure_access(actor, contact, "read")
    return contact


async def create_contact(db: AsyncSession, actor: Actor, data: ContactCreate) -> Contact:
    require_permission(actor, Permission.CONTACTS_CREATE)
    values = data.model_dump()
    if values.get("email"):
        values["email"] = values["email"].lower()
    await _ensure_email_free(db, values.get("email"))

    contact = Contact(owner_id=actor.id, **values)
    db.add(contact)
    await db.commit()
    log.info("Contact %s created by %s", contact.id, actor.id)
    return await require_contact(db, contact.id)


async def update_contact(
    db: AsyncSession, actor: Actor, contact_id: uuid.UUID, data: ContactUpdate
) -> Contact:
    require_permission(actor, Permission.CONTACTS_UPDATE)
    contact = await require_contact(db, contact_id)
    ensure_access(actor, contact, "update")

    changes = data.model_dump(exclude_unset=True)
    if changes.get("email"):
        changes["email"] = changes["email"].lower()
        await _ensure_email_free(db, changes["email"], exclude_id=contact.id)
    if "tags" in changes and changes["tags"] is None:
        changes.pop("tags")
    for key, value in changes.items():
        setattr(contact, key, value)

    await db.commit()
    return await require_contact(db, contact.id)


async def delete_contact(db: AsyncSession, actor: Actor, contact_id: uuid.UUID) -> None:
    require_permission(actor, Permission.CONTACTS_DELETE)
    contact = await require_contact(db, contact_id)
    ensure_access(actor, contact, "delete")
    await clear_references(db, contact.id, Lead.contact_id, Deal.contact_id, Activity.contact_id)
    await db.delete(contact)
    await db.commit()
    log.info("Contact %s deleted by %s", contact_id, actor.id)


async def transfer_contact(
    db: AsyncSession, actor: Actor, contact_id: uuid.UUID, new_owner_id: uuid.UUID
) -> Contact:
    """Reassign a contact to another active user. Managers and admins only."""
    if not actor.is_privileged:
        raise PermissionDenied()
    contact = await require_contact(db, contact_id)
    new_owner = await get_user_row(db, new_owner_id)
    if new_owner is None or not new_owner.is_active:
        raise ValidationError("New owner must be an active user", field="owner_id")

    previous = contact.owner_id
    contact.owner_id = new_owner.id
    await db.commit()
    log.info(
        "Contact %s transferred from %s to %s by %s", contact.id, previous, new_owner.id, actor.id
    )
    return await require_contact(db, contact.id)
