"""Achievement catalog and per-user status endpoints."""

from __future__ import annotations

import pytest

USER = "player-0001"


class TestCatalog:
    @pytest.mark.asyncio
    async def test_list(self, client):
        response = await client.get("/api/v1/achievements")
        assert response.status_code == 200
        ids = [a["id"] for a in response.json()["achievements"]]
        assert ids == ["rising_star", "high_roller", "champion", "consistent", "comeback"]

    @pytest.mark.asyncio
    async def test_by_category(self, client):
        response = await client.get("/api/v1/achievements/categories/milestone")
        assert [a["id"] for a in response.json()["achievements"]] == ["consistent"]

    @pytest.mark.asyncio
    async def test_unknown_category_is_empty(self, client):
        response = await client.get("/api/v1/achievements/categories/unknown")
        assert response.status_code == 200
        assert response.json() == {"achievements": []}

    @pytest.mark.asyncio
    async def test_single(self, client):
        response = await client.get("/api/v1/achievements/comeback")
        assert response.status_code == 200
        assert response.json()["name"] == "Comeback King"

    @pytest.mark.asyncio
    async def test_single_unknown(self, client):
        response = await client.get("/api/v1/achievements/nope")
        assert response.status_code == 404


class TestMyAchievements:
    @pytest.mark.asyncio
    async def test_requires_auth(self, client):
        response = await client.get("/api/v1/users/me/achievements")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_nothing_unlocked(self, client, make_user, auth_headers):
        await make_user()
        data = (await client.get("/api/v1/users/me/achievements", headers=auth_headers(USER))).json()
        assert data["total"] == 5
        assert data["unlocked"] == 0
        assert data["percentage"] == 0.0
        assert not any(a["is_unlocked"] for a in data["achievements"])

    @pytest.mark.asyncio
    async def test_after_round(self, client, make_user, auth_headers):
        await make_user()
        headers = auth_headers(USER)
        await client.post("/api/v1/chips/update", json={"delta": 100, "game_type": "blackjack"}, headers=headers)

        data = (await client.get("/api/v1/users/me/achievements", headers=headers)).json()
        assert data["unlocked"] == 3
        assert data["percentage"] == 60.0
        unlocked = [a for a in data["achievements"] if a["is_unlocked"]]
        assert {a["id"] for a in unlocked} == {"rising_star", "high_roller", "champion"}
        assert all(a["earned_at"] for a in unlocked)
