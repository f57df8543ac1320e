"""Player statistics and chip leaderboard."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from casino.auth.dependencies import get_current_user, get_optional_user
from casino.config import get_settings
from casino.database import get_session
from casino.db.models import User
from casino.stats.schemas import (
    GameStatsEntry,
    LeaderboardEntry,
    LeaderboardResponse,
    UserStatsResponse,
)
from casino.stats.service import (
    calculate_win_rate,
    get_aggregate_user_stats,
    get_all_user_game_stats,
    get_top_players,
    get_total_player_count,
    get_user_rank,
)

router = APIRouter(prefix="/api/v1", tags=["Stats"])


@router.get("/users/me/stats", response_model=UserStatsResponse)
async def get_my_stats(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Per-game round statistics for the caller, plus totals and rank."""
    rows = await get_all_user_game_stats(db, user.id)
    totals = await get_aggregate_user_stats(db, user.id)

    return UserStatsResponse(
        games=[
            GameStatsEntry(
                game_type=row.game_type,
                total_wins=row.total_wins,
                total_losses=row.total_losses,
                hands_played=row.hands_played,
                biggest_win=row.biggest_win,
                net_profit=row.net_profit,
                win_rate=round(calculate_win_rate(row.total_wins, row.total_losses), 1),
            )
            for row in rows
        ],
        total_wins=totals.total_wins,
        total_losses=totals.total_losses,
        total_hands_played=totals.total_hands_played,
        biggest_win=totals.biggest_win,
        total_net_profit=totals.total_net_profit,
        win_rate=round(calculate_win_rate(totals.total_wins, totals.total_losses), 1),
        rank=await get_user_rank(db, user.id),
    )


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def leaderboard(
    limit: int | None = Query(None, ge=1, le=100),
    user: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_session),
):
    """Top players by chip balance. Authenticated callers also get their own rank."""
    if limit is None:
        limit = get_settings().default_leaderboard_limit

    top = await get_top_players(db, limit)
    return LeaderboardResponse(
        entries=[
            LeaderboardEntry(rank=i, user_id=uid, name=name, chip_balance=balance)
            for i, (uid, name, balance) in enumerate(top, start=1)
        ],
        total_players=await get_total_player_count(db),
        my_rank=await get_user_rank(db, user.id) if user else None,
    )
