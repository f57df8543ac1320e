"""Health, readiness and version endpoints."""

from __future__ import annotations

import pytest


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


@pytest.mark.asyncio
async def test_version(client):
    response = await client.get("/version")
    data = response.json()
    assert data["version"] == "0.1.0"
    assert "environment" in data


@pytest.mark.asyncio
async def test_ready_reports_each_check(client):
    data = (await client.get("/ready")).json()
    assert data["checks"]["database"] == "ok"
    assert data["checks"]["schema"] == "ok"
    # No Redis in tests
    assert data["checks"]["redis"].startswith("error")
    assert data["status"] == "degraded"


@pytest.mark.asyncio
async def test_ready_without_schema(app, client):
    app.state.schema_ready = False
    data = (await client.get("/ready")).json()
    assert data["checks"]["schema"] != "ok"
    assert data["status"] == "degraded"
