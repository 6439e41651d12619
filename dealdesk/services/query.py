"""Shared list-query helpers: ownership scoping, search, sorting and paging."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from sqlalchemy import Select, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..errors import ValidationError
from ..security.policy import OWNERSHIP_FIELDS, Actor


def scope_to_actor(stmt: Select, model: Any, actor: Actor) -> Select:
    """Restrict non-privileged actors to rows they own, created or are assigned."""
    if actor.is_privileged:
        return stmt
    columns = [getattr(model, f) for f in OWNERSHIP_FIELDS if hasattr(model, f)]
    return stmt.where(or_(*(col == actor.id for col in columns)))


def apply_search(stmt: Select, columns: Iterable[Any], search: str | None) -> Select:
    if not search or not search.strip():
        return stmt
    q = f"%{search.strip()}%"
    return stmt.where(or_(*(col.ilike(q) for col in columns)))


def clamp_limit(limit: int | None) -> int:
    if not limit or limit < 1:
        return settings.page_size_default
    return min(limit, settings.page_size_max)


def clamp_page(page: int | None) -> int:
    return page if page and page > 0 else 1


def apply_sort(
    stmt: Select,
    model: Any,
    sortable: Iterable[str],
    sort_by: str | None,
    sort_order: str | None,
) -> Select:
    key = sort_by or "created_at"
    if key not in sortable:
        raise ValidationError(f"Cannot sort by {key!r}", field="sort_by")
    order = (sort_order or "desc").lower()
    if order not in {"asc", "desc"}:
        raise ValidationError("Sort order must be 'asc' or 'desc'", field="sort_order")
    column = getattr(model, key)
    # Tie-break on id so pages are stable when timestamps collide.
    if order == "asc":
        return stmt.order_by(column.asc(), model.id.asc())
    return stmt.order_by(column.desc(), model.id.desc())


async def count_rows(db: AsyncSession, stmt: Select) -> int:
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    return (await db.execute(count_stmt)).scalar() or 0


@dataclass
class Page:
    items: list[Any]
    total: int
    page: int
    limit: int


async def fetch_page(
    db: AsyncSession, stmt: Select, *, page: int | None, limit: int | None
) -> Page:
    """Run ``stmt`` for one page after clamping page and limit."""
    page = clamp_page(page)
    limit = clamp_limit(limit)
    total = await count_rows(db, stmt)
    result = await db.execute(stmt.offset((page - 1) * limit).limit(limit))
    return Page(items=list(result.scalars().all()), total=total, page=page, limit=limit)


async def clear_references(db: AsyncSession, record_id: Any, *columns: Any) -> None:
    """Null out foreign keys pointing at a record about to be deleted.

    SQLite does not enforce ``ON DELETE SET NULL`` unless foreign keys are
    switched on, so do it explicitly for every backend.
    """
    for column in columns:
        await db.execute(
            update(column.class_).where(column == record_id).values({column.key: None})
        )


async def ensure_exists(db: AsyncSession, model: Any, record_id: Any, field: str) -> None:
    """Raise ``ValidationError`` on ``field`` when ``record_id`` names no row."""
    if record_id is None:
        return
    result = await db.execute(select(model.id).where(model.id == record_id))
    if result.scalar_one_or_none() is None:
        raise ValidationError(f"{model.__name__} not found", field=field)
