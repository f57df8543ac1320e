"""WebSocket connection manager.

Tracks connected players and gives each connection its own achievement toast
queue. Toast frames are pushed through a per-connection outbox so the queue's
synchronous callbacks never await the socket.
"""

import asyncio
import time
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import structlog
from fastapi import WebSocket

from casino.notifications.toast_queue import AchievementToastQueue, Scheduler, ToastEntry

logger = structlog.get_logger()


class WebSocketToastSurface:
    """Toast surface that turns show/hide/reset into JSON frames for one client."""

    def __init__(self) -> None:
        self.outbox: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self._attached = True

    @property
    def is_attached(self) -> bool:
        return self._attached

    def detach(self) -> None:
        self._attached = False

    def show(self, entry: ToastEntry) -> None:
        self.outbox.put_nowait({
            "type": "achievement_toast",
            "action": "show",
            "achievement": {"id": entry.id, "name": entry.name, "icon": entry.icon},
        })

    def hide(self) -> None:
        self.outbox.put_nowait({"type": "achievement_toast", "action": "hide"})

    def reset(self) -> None:
        self.outbox.put_nowait({"type": "achievement_toast", "action": "reset"})


@dataclass
class ClientConnection:
    """Represents a single WebSocket client."""

    websocket: WebSocket
    user_id: str
    surface: WebSocketToastSurface
    toasts: AchievementToastQueue
    sender: asyncio.Task[None] | None = None
    connected_at: float = field(default_factory=time.time)
    messages_sent: int = 0


class ConnectionManager:
    """Manages all active WebSocket connections."""

    def __init__(self, scheduler: Scheduler | None = None) -> None:
        self._scheduler = scheduler
        self._connections: dict[str, ClientConnection] = {}  # conn_id -> client
        self._user_connections: dict[str, set[str]] = defaultdict(set)  # user_id -> {conn_ids}

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def connect(self, websocket: WebSocket, conn_id: str, user_id: str) -> None:
        """Accept a new WebSocket connection and start its toast sender."""
        await websocket.accept()
        surface = WebSocketToastSurface()
        client = ClientConnection(
            websocket=websocket,
            user_id=user_id,
            surface=surface,
            toasts=AchievementToastQueue(lambda: surface, self._scheduler),
        )
        client.sender = asyncio.create_task(self._send_frames(conn_id, client))
        self._connections[conn_id] = client
        self._user_connections[user_id].add(conn_id)
        logger.info("ws_connected", conn_id=conn_id)

    async def disconnect(self, conn_id: str) -> None:
        """Remove a connection and dispose of its toast queue."""
        client = self._connections.pop(conn_id, None)
        if client is None:
            return

        client.toasts.dispose()
        client.surface.detach()
        if client.sender is not None:
            client.sender.cancel()

        self._user_connections[client.user_id].discard(conn_id)
        if not self._user_connections[client.user_id]:
            del self._user_connections[client.user_id]

        logger.info("ws_disconnected", conn_id=conn_id, messages_sent=client.messages_sent)

    def enqueue_achievements(self, user_id: str, entries: Sequence[ToastEntry]) -> int:
        """Queue toasts on every connection of a user.

        Returns the number of connections the toasts were queued on.
        """
        conn_ids = list(self._user_connections.get(user_id, set()))
        queued = 0
        for conn_id in conn_ids:
            client = self._connections.get(conn_id)
            if client is None:
                continue
            client.toasts.enqueue(entries)
            queued += 1
        return queued

    async def _send_frames(self, conn_id: str, client: ClientConnection) -> None:
        outbox = client.surface.outbox
        while True:
            frame = await outbox.get()
            try:
                if client.surface.is_attached:
                    await client.websocket.send_json(frame)
                    client.messages_sent += 1
            except Exception:
                # The receive loop notices the disconnect; the toast queue drains meanwhile
                logger.debug("ws_send_failed", conn_id=conn_id)
                client.surface.detach()
            finally:
                outbox.task_done()


# Global singleton
manager = ConnectionManager()
