"""Request and response models for chip endpoints."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, StrictInt

GameType = Literal["blackjack", "baccarat", "poker"]


class ChipBalanceResponse(BaseModel):
    balance: int


class ChipUpdateRequest(BaseModel):
    delta: StrictInt
    game_type: GameType
    # Balance the client last saw; defaults to the stored balance
    previous_balance: StrictInt | None = Field(default=None, ge=0)
    outcome: Literal["win", "loss", "push"] | None = None
    hand_count: int = Field(default=1, ge=1, le=10)
    wins_increment: int | None = Field(default=None, ge=0, le=10)
    losses_increment: int | None = Field(default=None, ge=0, le=10)
    biggest_win_candidate: int | None = Field(default=None, ge=0)


class EarnedAchievementItem(BaseModel):
    id: str
    name: str
    icon: str


class ChipUpdateResponse(BaseModel):
    success: bool = True
    balance: int
    previous_balance: int
    delta: int
    achievements: list[EarnedAchievementItem] = []
