"""Achievement engine: snapshot assembly, granting, announcements."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from casino.achievements import repository
from casino.achievements.engine import AchievementEngine
from casino.achievements.rules import ACHIEVEMENT_CHECKS, AchievementCheckContext, evaluate
from casino.errors import StorageUnavailable
from casino.stats.service import RoundRecord, record_game_round

USER = "player-0001"


class TestBuildContext:
    @pytest.mark.asyncio
    async def test_snapshot_from_stats(self, db_session, make_user):
        await make_user(USER, chip_balance=3000)
        await make_user("rich-user", chip_balance=90_000)
        await record_game_round(db_session, USER, RoundRecord("blackjack", "win", 250))
        await repository.grant_achievement(db_session, USER, "rising_star")
        await db_session.commit()

        ctx = await AchievementEngine(db_session, None).build_context(
            USER, 3000, recent_win_amount=250, game_type="blackjack"
        )
        assert ctx.overall_rank == 2
        assert ctx.total_wins == 1
        assert ctx.total_hands_played == 1
        assert ctx.biggest_win == 250
        assert ctx.current_chip_balance == 3000
        assert ctx.recent_win_amount == 250
        assert ctx.existing_achievement_ids == frozenset({"rising_star"})


class TestCheckAndGrant:
    @pytest.mark.asyncio
    async def test_grants_in_catalog_order_once(self, db_session, make_user):
        await make_user(chip_balance=10_000)
        engine = AchievementEngine(db_session, None)

        granted = await engine.check_and_grant(USER, 10_000)
        assert [a.id for a in granted] == ["rising_star", "high_roller", "champion"]
        await db_session.commit()

        assert await engine.check_and_grant(USER, 10_000) == []
        assert await repository.get_achievement_count(db_session, USER) == 3

    @pytest.mark.asyncio
    async def test_comeback_after_recovery(self, db_session, make_user):
        await make_user(chip_balance=2000)
        granted = await AchievementEngine(db_session, None).check_and_grant(
            USER, 2000, recent_win_amount=1500, game_type="blackjack"
        )
        assert "comeback" in {a.id for a in granted}

        [earned] = [ua for ua in await repository.get_user_achievements(db_session, USER) if ua.achievement_id == "comeback"]
        assert earned.game_type == "blackjack"

    @pytest.mark.asyncio
    async def test_failing_predicate_is_skipped(self, db_session, make_user):
        await make_user()

        def broken(_ctx: AchievementCheckContext):
            raise ZeroDivisionError

        checks = {**ACHIEVEMENT_CHECKS, "rising_star": broken}
        granted = await AchievementEngine(db_session, None, checks).check_and_grant(USER, 10_000)
        assert [a.id for a in granted] == ["high_roller", "champion"]

    @pytest.mark.asyncio
    async def test_rules_run_through_evaluate(self, db_session, make_user):
        await make_user()
        with patch("casino.achievements.engine.evaluate", wraps=evaluate) as spy:
            granted = await AchievementEngine(db_session, None).check_and_grant(USER, 10_000)

        spy.assert_called_once()
        context = spy.call_args.args[0]
        assert context.user_id == USER
        assert context.current_chip_balance == 10_000
        assert [a.id for a in granted] == ["rising_star", "high_roller", "champion"]

    @pytest.mark.asyncio
    async def test_publishes_granted(self, db_session, make_user):
        await make_user()
        redis = AsyncMock()
        await AchievementEngine(db_session, redis).check_and_grant(USER, 10_000)

        redis.publish.assert_awaited_once()
        channel, message = redis.publish.await_args.args
        assert channel == "pubsub:achievement_earned"
        payload = json.loads(message)
        assert payload["user_id"] == USER
        assert [a["id"] for a in payload["achievements"]] == ["rising_star", "high_roller", "champion"]

    @pytest.mark.asyncio
    async def test_nothing_granted_nothing_published(self, db_session, make_user):
        await make_user("a-user", chip_balance=100)
        for i in range(60):
            await make_user(f"z-user-{i:02d}", chip_balance=50_000)
        redis = AsyncMock()

        assert await AchievementEngine(db_session, redis).check_and_grant("a-user", 100) == []
        redis.publish.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_publish_failure_does_not_raise(self, db_session, make_user):
        await make_user()
        redis = AsyncMock()
        redis.publish.side_effect = ConnectionError("redis down")

        granted = await AchievementEngine(db_session, redis).check_and_grant(USER, 10_000)
        assert len(granted) == 3

    @pytest.mark.asyncio
    async def test_storage_failure_propagates(self, db_session, make_user):
        await make_user()
        with patch(
            "casino.achievements.repository.get_earned_achievement_ids",
            new=AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("gone"))),
        ), pytest.raises(StorageUnavailable):
            await AchievementEngine(db_session, None).check_and_grant(USER, 10_000)


class TestStatus:
    @pytest.mark.asyncio
    async def test_with_status_and_progress(self, db_session, make_user):
        await make_user()
        engine = AchievementEngine(db_session, None)
        await engine.check_and_grant(USER, 10_000)
        await db_session.commit()

        items = await engine.get_achievements_with_status(USER)
        assert [i.achievement.id for i in items] == [
            "rising_star", "high_roller", "champion", "consistent", "comeback",
        ]
        unlocked = await engine.get_unlocked_achievements(USER)
        assert {i.achievement.id for i in unlocked} == {"rising_star", "high_roller", "champion"}
        assert all(i.earned_at is not None for i in unlocked)

        progress = await engine.get_achievement_progress(USER)
        assert progress == {"total": 5, "unlocked": 3, "percentage": 60.0}

    @pytest.mark.asyncio
    async def test_unknown_ids_in_storage_are_ignored(self, db_session, make_user):
        await make_user()
        await repository.grant_achievement(db_session, USER, "retired_badge")
        await db_session.commit()

        assert await repository.get_earned_achievement_ids(db_session, USER) == frozenset()
        assert await AchievementEngine(db_session, None).get_unlocked_achievements(USER) == []

    @pytest.mark.asyncio
    async def test_progress_from_existing_items_skips_second_read(self, db_session, make_user):
        await make_user()
        engine = AchievementEngine(db_session, None)
        await engine.check_and_grant(USER, 10_000)
        await db_session.commit()

        items = await engine.get_achievements_with_status(USER)
        with patch(
            "casino.achievements.repository.get_user_achievements",
            new=AsyncMock(side_effect=AssertionError("unexpected read")),
        ):
            progress = await engine.get_achievement_progress(USER, items)
        assert progress == {"total": 5, "unlocked": 3, "percentage": 60.0}
