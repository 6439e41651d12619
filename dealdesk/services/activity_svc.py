"""Activity service - CRUD, list filters and the completion toggle."""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, time, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..errors import NotFound, ValidationError
from ..models.activity import Activity
from ..models.base import as_utc, utcnow
from ..models.contact import Contact
from ..models.deal import Deal
from ..models.enums import ActivityType, Priority
from ..models.lead import Lead
from ..models.user import User
from ..schemas.activity import ActivityCreate, ActivityUpdate
from ..security.policy import Actor, Permission, ensure_access, require_permission
from .query import Page, apply_search, apply_sort, ensure_exists, fetch_page, scope_to_actor

log = logging.getLogger(__name__)

SORTABLE = ("created_at", "updated_at", "due_date", "priority", "title", "type")
SEARCH_COLUMNS = (Activity.title, Activity.description)
STATUS_FILTERS = ("completed", "pending", "overdue")
DEFAULT_DUE_TIME = time(23, 59)

_REQUIRED = frozenset({"title", "type", "priority", "is_completed"})


# ── Pure helpers ───────────────────────────────────────────────────────────

def parse_due_time(value: str | None) -> time:
    if value is None or not value.strip():
        return DEFAULT_DUE_TIME
    try:
        hours, minutes = value.strip().split(":")[:2]
        return time(int(hours), int(minutes))
    except ValueError:
        raise ValidationError("Due time must be HH:MM", field="due_time") from None


def parse_due_date(value: object, due_time: str | None = None) -> datetime | None:
    """Coerce a due date into an aware UTC datetime.

    Accepts a datetime, an ISO timestamp, or a plain date (``YYYY-MM-DD``)
    combined with ``due_time`` which defaults to 23:59 UTC.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return as_utc(value)

    if isinstance(value, date):
        return datetime.combine(value, parse_due_time(due_time), tzinfo=timezone.utc)

    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        try:
            if len(raw) == 10:
                return datetime.combine(
                    date.fromisoformat(raw), parse_due_time(due_time), tzinfo=timezone.utc
                )
            if raw.endswith(("Z", "z")):
                raw = raw[:-1] + "+00:00"
            return as_utc(datetime.fromisoformat(raw))
        except ValueError:
            raise ValidationError("Invalid due date", field="due_date") from None

    raise ValidationError("Invalid due date", field="due_date")


def is_overdue(activity: Activity, now: datetime | None = None) -> bool:
    return activity.is_overdue_at(now or utcnow())


def mark_completed(activity: Activity, completed: bool, now: datetime | None = None) -> Activity:
    """Set the completion flag and stamp or clear ``completed_at`` with it."""
    activity.is_completed = completed
    activity.completed_at = (now or utcnow()) if completed else None
    return activity


# ── Queries ────────────────────────────────────────────────────────────────

def _with_relations(stmt):
    return stmt.options(
        selectinload(Activity.assignee),
        selectinload(Activity.created_by),
        selectinload(Activity.contact),
        selectinload(Activity.deal),
        selectinload(Activity.lead),
    )


async def load_activity(db: AsyncSession, activity_id: uuid.UUID) -> Activity | None:
    stmt = _with_relations(select(Activity).where(Activity.id == activity_id)).execution_options(
        populate_existing=True
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def require_activity(db: AsyncSession, activity_id: uuid.UUID) -> Activity:
    activity = await load_activity(db, activity_id)
    if activity is None:
        raise NotFound("Activity not found")
    return activity


async def _ensure_links(db: AsyncSession, values: dict) -> None:
    links = (
        ("assignee_id", User),
        ("contact_id", Contact),
        ("deal_id", Deal),
        ("lead_id", Lead),
    )
    for field, model in links:
        if field in values:
            await ensure_exists(db, model, values[field], field)


async def list_activities(
    db: AsyncSession,
    actor: Actor,
    *,
    type: ActivityType | None = None,
    priority: Priority | None = None,
    status: str | None = None,
    contact_id: uuid.UUID | None = None,
    deal_id: uuid.UUID | None = None,
    lead_id: uuid.UUID | None = None,
    search: str | None = None,
    page: int | None = 1,
    limit: int | None = None,
    sort_by: str | None = None,
    sort_order: str | None = None,
    now: datetime | None = None,
) -> Page:
    require_permission(actor, Permission.ACTIVITIES_READ)
    stmt = scope_to_actor(select(Activity), Activity, actor)
    if type is not None:
        stmt = stmt.where(Activity.type == type)
    if priority is not None:
        stmt = stmt.where(Activity.priority == priority)
    if contact_id is not None:
        stmt = stmt.where(Activity.contact_id == contact_id)
    if deal_id is not None:
        stmt = stmt.where(Activity.deal_id == deal_id)
    if lead_id is not None:
        stmt = stmt.where(Activity.lead_id == lead_id)

    if status == "completed":
        stmt = stmt.where(Activity.is_completed.is_(True))
    elif status == "pending":
        stmt = stmt.where(Activity.is_completed.is_(False))
    elif status == "overdue":
        stmt = stmt.where(
            Activity.is_completed.is_(False),
            Activity.due_date.is_not(None),
            Activity.due_date < (now or utcnow()),
        )
    elif status:
        raise ValidationError(
            f"Status must be one of {', '.join(STATUS_FILTERS)}", field="status"
        )

    stmt = apply_search(stmt, SEARCH_COLUMNS, search)
    stmt = apply_sort(stmt, Activity, SORTABLE, sort_by, sort_order)
    return await fetch_page(db, _with_relations(stmt), page=page, limit=limit)


async def get_activity(db: AsyncSession, actor: Actor, activity_id: uuid.UUID) -> Activity:
    require_permission(actor, Permission.ACTIVITIES_READ)
    activity = await require_activity(db, activity_id)
    ensure_access(actor, activity, "read")
    return activity


async def create_activity(db: AsyncSession, actor: Actor, data: ActivityCreate) -> Activity:
    """Create an activity; the creator is the actor and assignee defaults to them."""
    require_permission(actor, Permission.ACTIVITIES_CREATE)
    values = data.model_dump(exclude={"due_date", "due_time"})
    if values.get("assignee_id") is None:
        values["assignee_id"] = actor.id
    await _ensure_links(db, values)

    activity = Activity(
        created_by_id=actor.id,
        due_date=parse_due_date(data.due_date, data.due_time),
        **values,
    )
    db.add(activity)
    await db.commit()
    log.info("Activity %s created by %s", activity.id, actor.id)
    return await require_activity(db, activity.id)


async def update_activity(
    db: AsyncSession, actor: Actor, activity_id: uuid.UUID, data: ActivityUpdate
) -> Activity:
    """Full update.

    ``is_completed`` may be set here, but ``completed_at`` is only maintained
    by ``set_completed``.
    """
    require_permission(actor, Permission.ACTIVITIES_UPDATE)
    activity = await require_activity(db, activity_id)
    ensure_access(actor, activity, "update")

    changes = {
        k: v
        for k, v in data.model_dump(exclude_unset=True).items()
        if v is not None or k not in _REQUIRED
    }
    due_date = changes.pop("due_date", None)
    due_time = changes.pop("due_time", None)
    if "due_date" in data.model_fields_set:
        activity.due_date = parse_due_date(due_date, due_time)
    elif due_time is not None and activity.due_date is not None:
        current = as_utc(activity.due_date)
        activity.due_date = datetime.combine(
            current.date(), parse_due_time(due_time), tzinfo=timezone.utc
        )

    await _ensure_links(db, changes)
    for key, value in changes.items():
        setattr(activity, key, value)

    await db.commit()
    return await require_activity(db, activity.id)


async def set_completed(
    db: AsyncSession, actor: Actor, activity_id: uuid.UUID, completed: bool
) -> Activity:
    require_permission(actor, Permission.ACTIVITIES_UPDATE)
    activity = await require_activity(db, activity_id)
    ensure_access(actor, activity, "update")

    mark_completed(activity, completed)
    await db.commit()
    log.info(
        "Activity %s marked %s by %s",
        activity.id,
        "completed" if completed else "pending",
        actor.id,
    )
    return await require_activity(db, activity.id)


async def delete_activity(db: AsyncSession, actor: Actor, activity_id: uuid.UUID) -> None:
    require_permission(actor, Permission.ACTIVITIES_DELETE)
    activity = await require_activity(db, activity_id)
    ensure_access(actor, activity, "delete")
    await db.delete(activity)
    await db.commit()
    log.info("Activity %s deleted by %s", activity_id, actor.id)
