"""Authorization policy: record ownership, role capabilities and role management.

Everything here is pure. The acting user is always passed in explicitly as an
``Actor``; callers fetch the record first, so a missing record is reported as
not found before any permission check runs.
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass
from typing import Any

from ..errors import PermissionDenied, ValidationError
from ..models.enums import Role

PRIVILEGED_ROLES = frozenset({Role.ADMIN, Role.MANAGER})
RECORD_ACTIONS = ("read", "update", "delete")

# Attributes that tie a record to a user; a record exposes whichever apply.
OWNERSHIP_FIELDS = ("owner_id", "assignee_id", "created_by_id")


@dataclass(frozen=True)
class Actor:
    id: uuid.UUID
    role: Role

    @property
    def is_privileged(self) -> bool:
        return is_privileged(self.role)


def is_privileged(role: Role | str) -> bool:
    return Role(role) in PRIVILEGED_ROLES


def owner_ids(record: Any) -> set[uuid.UUID]:
    ids = set()
    for field in OWNERSHIP_FIELDS:
        value = getattr(record, field, None)
        if value is not None:
            ids.add(value)
    return ids


def can_access(actor: Actor, record: Any, action: str = "read") -> bool:
    if action not in RECORD_ACTIONS:
        raise ValueError(f"Unknown record action: {action!r}")
    if actor.is_privileged:
        return True
    return actor.id in owner_ids(record)


def ensure_access(actor: Actor, record: Any, action: str = "read") -> None:
    if not can_access(actor, record, action):
        raise PermissionDenied()


# ── Capabilities ───────────────────────────────────────────────────────────

class Permission(str, enum.Enum):
    CONTACTS_READ = "contacts.read"
    CONTACTS_CREATE = "contacts.create"
    CONTACTS_UPDATE = "contacts.update"
    CONTACTS_DELETE = "contacts.delete"
    LEADS_READ = "leads.read"
    LEADS_CREATE = "leads.create"
    LEADS_UPDATE = "leads.update"
    LEADS_DELETE = "leads.delete"
    DEALS_READ = "deals.read"
    DEALS_CREATE = "deals.create"
    DEALS_UPDATE = "deals.update"
    DEALS_DELETE = "deals.delete"
    ACTIVITIES_READ = "activities.read"
    ACTIVITIES_CREATE = "activities.create"
    ACTIVITIES_UPDATE = "activities.update"
    ACTIVITIES_DELETE = "activities.delete"
    USERS_READ = "users.read"
    USERS_CREATE = "users.create"
    USERS_UPDATE = "users.update"
    USERS_DELETE = "users.delete"
    REPORTS_READ = "reports.read"


_RECORD_PERMISSIONS = frozenset(
    p for p in Permission if p.value.split(".")[0] in {"contacts", "leads", "deals", "activities"}
)
_READ_PERMISSIONS = frozenset(p for p in _RECORD_PERMISSIONS if p.value.endswith(".read"))

ROLE_PERMISSIONS: dict[Role, frozenset[Permission]] = {
    Role.ADMIN: frozenset(Permission),
    Role.MANAGER: frozenset(Permission) - {Permission.USERS_CREATE},
    # Reps may delete too, but ownership still gates every record they touch.
    Role.REP: _RECORD_PERMISSIONS | {Permission.USERS_READ},
    Role.READ_ONLY: _READ_PERMISSIONS | {Permission.USERS_READ, Permission.REPORTS_READ},
}


def has_permission(role: Role | str, permission: Permission | str) -> bool:
    return Permission(permission) in ROLE_PERMISSIONS.get(Role(role), frozenset())


def require_permission(actor: Actor, permission: Permission | str) -> None:
    if not has_permission(actor.role, permission):
        raise PermissionDenied()


# ── Role management ────────────────────────────────────────────────────────

_JUNIOR_ROLES = frozenset({Role.REP, Role.READ_ONLY})


def can_assign_role(actor: Actor, target: Any, new_role: Role | str) -> bool:
    """Whether ``actor`` may give ``target`` the role ``new_role``.

    Nobody changes their own role. Admins assign anything; managers only move
    reps and read-only users between those two roles.
    """
    if actor.id == target.id:
        return False
    if actor.role == Role.ADMIN:
        return True
    if actor.role == Role.MANAGER:
        return Role(target.role) in _JUNIOR_ROLES and Role(new_role) in _JUNIOR_ROLES
    return False


def can_manage_user(actor: Actor, target: Any) -> bool:
    """Deactivation and deletion rights over another account."""
    if actor.role == Role.ADMIN:
        return True
    if actor.role == Role.MANAGER:
        return Role(target.role) in _JUNIOR_ROLES
    return False


def can_edit_profile(actor: Actor, target: Any) -> bool:
    if actor.id == target.id or actor.role == Role.ADMIN:
        return True
    return actor.role == Role.MANAGER and Role(target.role) != Role.ADMIN


def ensure_not_self_deactivation(actor: Actor, target_id: uuid.UUID, is_active: bool) -> None:
    if actor.id == target_id and not is_active:
        raise ValidationError("You cannot deactivate your own account", field="is_active")
