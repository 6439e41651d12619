"""Reporting - pipeline summary, activity statistics and dashboard metrics.

Figures are scoped like the list endpoints: managers and admins see every
record, everyone else only what they own, created or are assigned.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.activity import Activity
from ..models.base import utcnow
from ..models.contact import Contact
from ..models.deal import Deal
from ..models.enums import DealStage
from ..models.lead import Lead
from ..pipeline import STAGE_PROBABILITY, weighted_value
from ..security.policy import Actor, Permission, require_permission
from .query import count_rows, scope_to_actor


def _percent(part: int, whole: int) -> float:
    return round(part / whole * 100, 1) if whole else 0.0


def _money(amount: Decimal) -> float:
    return float(round(amount, 2))


async def pipeline_summary(db: AsyncSession, actor: Actor) -> dict:
    require_permission(actor, Permission.REPORTS_READ)
    stmt = scope_to_actor(select(Deal.stage, Deal.value, Deal.probability), Deal, actor)
    rows = (await db.execute(stmt)).all()

    by_stage = {
        stage: {"count": 0, "total_value": Decimal(0), "weighted_value": 0} for stage in DealStage
    }
    for stage, value, probability in rows:
        bucket = by_stage[DealStage(stage)]
        bucket["count"] += 1
        bucket["total_value"] += Decimal(value or 0)
        bucket["weighted_value"] += weighted_value(value, probability)

    total_value = sum((b["total_value"] for b in by_stage.values()), Decimal(0))
    total = len(rows)
    won = by_stage[DealStage.CLOSED_WON]["count"]
    lost = by_stage[DealStage.CLOSED_LOST]["count"]
    return {
        "stages": [
            {
                "stage": stage.value,
                "default_probability": STAGE_PROBABILITY[stage],
                "count": bucket["count"],
                "total_value": _money(bucket["total_value"]),
                "weighted_value": bucket["weighted_value"],
            }
            for stage, bucket in by_stage.items()
        ],
        "total_deals": total,
        "total_value": _money(total_value),
        "weighted_total": sum(b["weighted_value"] for b in by_stage.values()),
        "average_value": _money(total_value / total) if total else 0.0,
        "closed_won": won,
        "closed_lost": lost,
        "win_rate": _percent(won, won + lost),
    }


async def activity_stats(db: AsyncSession, actor: Actor, now: datetime | None = None) -> dict:
    require_permission(actor, Permission.ACTIVITIES_READ)
    base = scope_to_actor(select(Activity.id), Activity, actor)
    now = now or utcnow()

    total = await count_rows(db, base)
    completed = await count_rows(db, base.where(Activity.is_completed.is_(True)))
    overdue = await count_rows(
        db,
        base.where(
            Activity.is_completed.is_(False),
            Activity.due_date.is_not(None),
            Activity.due_date < now,
        ),
    )
    return {
        "total": total,
        "completed": completed,
        "pending": total - completed,
        "overdue": overdue,
        "completion_rate": _percent(completed, total),
    }


async def dashboard_metrics(db: AsyncSession, actor: Actor) -> dict:
    require_permission(actor, Permission.DEALS_READ)
    contacts = await count_rows(db, scope_to_actor(select(Contact.id), Contact, actor))
    leads = await count_rows(db, scope_to_actor(select(Lead.id), Lead, actor))
    activities = await count_rows(db, scope_to_actor(select(Activity.id), Activity, actor))

    values = (await db.execute(scope_to_actor(select(Deal.value), Deal, actor))).scalars().all()
    deal_total = sum((Decimal(v or 0) for v in values), Decimal(0))
    return {
        "contacts": contacts,
        "leads": leads,
        "deals": len(values),
        "activities": activities,
        "total_deal_value": _money(deal_total),
        "average_deal_value": _money(deal_total / len(values)) if values else 0.0,
    }
