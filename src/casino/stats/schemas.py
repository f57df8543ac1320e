"""Pydantic response models for stats and leaderboard endpoints."""

from __future__ import annotations

from pydantic import BaseModel


class GameStatsEntry(BaseModel):
    game_type: str
    total_wins: int
    total_losses: int
    hands_played: int
    biggest_win: int
    net_profit: int
    win_rate: float


class UserStatsResponse(BaseModel):
    games: list[GameStatsEntry]
    total_wins: int
    total_losses: int
    total_hands_played: int
    biggest_win: int
    total_net_profit: int
    win_rate: float
    rank: int | None = None


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: str
    name: str
    chip_balance: int


class LeaderboardResponse(BaseModel):
    entries: list[LeaderboardEntry]
    total_players: int
    my_rank: int | None = None
