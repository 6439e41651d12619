"""Reporting endpoints backing the dashboard."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..deps import get_actor
from ..schemas.common import ok
from ..security.policy import Actor
from ..services import report_svc

router = APIRouter(prefix="/api", tags=["reports"])


@router.get("/reports/pipeline")
async def pipeline_report(actor: Actor = Depends(get_actor), db: AsyncSession = Depends(get_db)):
    return ok(await report_svc.pipeline_summary(db, actor))


@router.get("/reports/activities")
async def activity_report(actor: Actor = Depends(get_actor), db: AsyncSession = Depends(get_db)):
    return ok(await report_svc.activity_stats(db, actor))


@router.get("/dashboard")
async def dashboard(actor: Actor = Depends(get_actor), db: AsyncSession = Depends(get_db)):
    return ok(await report_svc.dashboard_metrics(db, actor))
