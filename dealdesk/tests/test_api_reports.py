"""Test reporting routes."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

from dealdesk.models.user import User


@pytest.mark.asyncio
async def test_pipeline_report(client: AsyncClient, manager: User, rep: User, auth):
    await client.post(
        "/api/deals", json={"title": "A", "value": 1000, "stage": "CLOSED_WON"}, headers=auth(rep)
    )
    resp = await client.get("/api/reports/pipeline", headers=auth(manager))
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["total_deals"] == 1
    assert data["weighted_total"] == 1000
    assert data["win_rate"] == 100.0

    resp = await client.get("/api/reports/pipeline", headers=auth(rep))
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_activity_report_and_dashboard(client: AsyncClient, rep: User, auth):
    headers = auth(rep)
    await client.post("/api/activities", json={"title": "T", "type": "TASK"}, headers=headers)
    await client.post("/api/contacts", json={"first_name": "A", "last_name": "B"}, headers=headers)

    resp = await client.get("/api/reports/activities", headers=headers)
    assert resp.json()["data"]["total"] == 1

    resp = await client.get("/api/dashboard", headers=headers)
    data = resp.json()["data"]
    assert data["contacts"] == 1
    assert data["activities"] == 1
    assert data["deals"] == 0
