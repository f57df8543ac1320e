"""Per-game caps on a single chip update.

Rounds are settled client-side, so these caps bound what one request can
move. Payout ceilings: blackjack 4 hands x 1.5 x 10k max bet, baccarat pair
11:1 on a 10k bet with headroom, poker royal flush 250:1 and deep-stack all-ins.
"""

from __future__ import annotations

from typing import NamedTuple

from casino.errors import DeltaExceedsLimit


class GameLimits(NamedTuple):
    max_win: int
    max_loss: int


GAME_LIMITS: dict[str, GameLimits] = {
    "blackjack": GameLimits(max_win=60_000, max_loss=40_000),
    "baccarat": GameLimits(max_win=200_000, max_loss=100_000),
    "poker": GameLimits(max_win=500_000, max_loss=500_000),
}


def check_delta_limits(game_type: str, delta: int) -> None:
    """Raise DeltaExceedsLimit if delta is outside the caps for game_type."""
    limits = GAME_LIMITS.get(game_type, GAME_LIMITS["blackjack"])
    if delta > 0 and delta > limits.max_win:
        raise DeltaExceedsLimit(game_type, limits.max_win, is_win=True)
    if delta < 0 and -delta > limits.max_loss:
        raise DeltaExceedsLimit(game_type, limits.max_loss, is_win=False)
