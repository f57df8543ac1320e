"""Bridges achievement announcements on Redis pub/sub to connected players.

The achievement engine publishes every batch of new grants to
``pubsub:achievement_earned``; this bridge turns each batch into toasts on the
earning player's connections.
"""

import asyncio
import json

import redis.asyncio as aioredis
import structlog
from redis.exceptions import RedisError

from casino.economy.ledger import redact_user_id
from casino.notifications.toast_queue import ToastEntry
from casino.ws.manager import ConnectionManager, manager

logger = structlog.get_logger()

ACHIEVEMENT_CHANNEL = "pubsub:achievement_earned"


def parse_achievement_event(data: str | bytes) -> tuple[str, list[ToastEntry]]:
    """Decode an announcement into (user_id, toast entries).

    Raises:
        ValueError: the message is not a well-formed announcement.
    """
    if isinstance(data, bytes):
        data = data.decode()
    try:
        payload = json.loads(data)
        user_id = str(payload["user_id"])
        entries = [
            ToastEntry(id=str(a["id"]), name=str(a["name"]), icon=str(a["icon"]))
            for a in payload["achievements"]
        ]
    except (KeyError, TypeError) as e:
        msg = f"malformed achievement event: {e!r}"
        raise ValueError(msg) from e
    return user_id, entries


class AchievementBridge:
    """Subscribes to achievement announcements and queues toasts for the earner."""

    def __init__(self, redis_client: aioredis.Redis, connections: ConnectionManager = manager) -> None:
        self.redis = redis_client
        self.connections = connections
        self._running = False

    async def start(self) -> None:
        """Listen until stopped or cancelled."""
        self._running = True
        pubsub = self.redis.pubsub()

        try:
            await pubsub.subscribe(ACHIEVEMENT_CHANNEL)
            logger.info("achievement_bridge_started", channel=ACHIEVEMENT_CHANNEL)

            while self._running:
                message = await pubsub.get_message(
                    ignore_subscribe_messages=True,
                    timeout=1.0,
                )
                if message is None:
                    continue

                try:
                    user_id, entries = parse_achievement_event(message.get("data", b""))
                except ValueError:
                    # JSONDecodeError and UnicodeDecodeError are ValueErrors too
                    logger.warning("achievement_event_invalid", channel=ACHIEVEMENT_CHANNEL)
                    continue

                if not entries:
                    continue

                queued = self.connections.enqueue_achievements(user_id, entries)
                if queued > 0:
                    logger.debug(
                        "achievement_toasts_queued",
                        user=redact_user_id(user_id),
                        toasts=len(entries),
                        connections=queued,
                    )

        except asyncio.CancelledError:
            pass
        except RedisError:
            logger.warning("achievement_bridge_unavailable", exc_info=True)
        finally:
            await pubsub.aclose()
            logger.info("achievement_bridge_stopped")

    async def stop(self) -> None:
        """Signal the bridge to stop."""
        self._running = False
