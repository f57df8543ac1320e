"""Per-user minimum interval between chip updates, backed by Redis key TTLs."""

from __future__ import annotations

import math

from casino.config import get_settings
from casino.errors import UpdateThrottled


def _throttle_key(user_id: str) -> str:
    return f"chips:last_update:{user_id}"


async def check_update_throttle(redis: object, user_id: str) -> None:
    """Raise UpdateThrottled while the previous update's cooldown is running.

    Without Redis (local runs, tests) there is no throttle.
    """
    if redis is None:
        return
    remaining_ms = await redis.pttl(_throttle_key(user_id))  # type: ignore[attr-defined]
    if remaining_ms is not None and remaining_ms > 0:
        raise UpdateThrottled(retry_after=max(1, math.ceil(remaining_ms / 1000)))


async def mark_update(redis: object, user_id: str) -> None:
    """Start the cooldown after a successful update."""
    if redis is None:
        return
    interval_ms = get_settings().chip_update_min_interval_ms
    await redis.set(_throttle_key(user_id), "1", px=interval_ms)  # type: ignore[attr-defined]
