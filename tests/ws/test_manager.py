"""Unit tests for the WebSocket ConnectionManager and its toast surface."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from casino.notifications.toast_queue import ToastEntry, ToastPhase
from casino.ws.manager import ConnectionManager, WebSocketToastSurface

RISING_STAR = ToastEntry("rising_star", "Rising Star", "\U0001f31f")
CHAMPION = ToastEntry("champion", "Champion", "\U0001f451")


class FakeScheduler:
    """call_later that only fires when the test says so."""

    def __init__(self) -> None:
        self.timers: list[FakeTimer] = []

    def call_later(self, delay, callback):
        timer = FakeTimer(callback)
        self.timers.append(timer)
        return timer

    def fire_next(self) -> None:
        timer = next(t for t in self.timers if not t.cancelled and not t.fired)
        timer.fired = True
        timer.callback()


class FakeTimer:
    def __init__(self, callback) -> None:
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def mgr(scheduler: FakeScheduler) -> ConnectionManager:
    """Fresh ConnectionManager for each test."""
    return ConnectionManager(scheduler)


def _make_ws(*, fail_send: bool = False) -> AsyncMock:
    """Create a mock WebSocket."""
    ws = AsyncMock()
    if fail_send:
        ws.send_json = AsyncMock(side_effect=RuntimeError("connection closed"))
    return ws


async def _flush(mgr: ConnectionManager, conn_id: str) -> None:
    await asyncio.wait_for(mgr._connections[conn_id].surface.outbox.join(), timeout=1.0)


def _frames(ws: AsyncMock) -> list[str]:
    return [c.args[0]["action"] for c in ws.send_json.await_args_list]


class TestSurface:
    def test_frames(self) -> None:
        surface = WebSocketToastSurface()
        surface.show(RISING_STAR)
        surface.hide()
        surface.reset()

        frames = [surface.outbox.get_nowait() for _ in range(3)]
        assert frames[0]["achievement"] == {"id": "rising_star", "name": "Rising Star", "icon": "\U0001f31f"}
        assert [f["action"] for f in frames] == ["show", "hide", "reset"]

    def test_detach(self) -> None:
        surface = WebSocketToastSurface()
        assert surface.is_attached is True
        surface.detach()
        assert surface.is_attached is False


class TestConnect:
    @pytest.mark.asyncio
    async def test_connect_registers_client(self, mgr: ConnectionManager) -> None:
        ws = _make_ws()
        await mgr.connect(ws, "conn-1", "player-0001")
        ws.accept.assert_awaited_once()
        assert mgr.connection_count == 1
        await mgr.disconnect("conn-1")

    @pytest.mark.asyncio
    async def test_each_connection_gets_its_own_queue(self, mgr: ConnectionManager) -> None:
        await mgr.connect(_make_ws(), "conn-1", "player-0001")
        await mgr.connect(_make_ws(), "conn-2", "player-0001")
        assert mgr._connections["conn-1"].toasts is not mgr._connections["conn-2"].toasts
        await mgr.disconnect("conn-1")
        await mgr.disconnect("conn-2")


class TestEnqueueAchievements:
    @pytest.mark.asyncio
    async def test_toasts_shown_one_at_a_time(self, mgr: ConnectionManager, scheduler: FakeScheduler) -> None:
        ws = _make_ws()
        await mgr.connect(ws, "conn-1", "player-0001")

        assert mgr.enqueue_achievements("player-0001", [RISING_STAR, CHAMPION]) == 1
        await _flush(mgr, "conn-1")
        assert _frames(ws) == ["show"]

        scheduler.fire_next()  # show elapsed
        scheduler.fire_next()  # transition done
        await _flush(mgr, "conn-1")
        assert _frames(ws) == ["show", "hide", "show"]
        assert ws.send_json.await_args_list[2].args[0]["achievement"]["id"] == "champion"

        scheduler.fire_next()
        scheduler.fire_next()
        await _flush(mgr, "conn-1")
        assert _frames(ws) == ["show", "hide", "show", "hide", "reset"]
        await mgr.disconnect("conn-1")

    @pytest.mark.asyncio
    async def test_every_connection_of_the_user(self, mgr: ConnectionManager) -> None:
        ws1, ws2, stranger = _make_ws(), _make_ws(), _make_ws()
        await mgr.connect(ws1, "conn-1", "player-0001")
        await mgr.connect(ws2, "conn-2", "player-0001")
        await mgr.connect(stranger, "conn-3", "player-0002")

        assert mgr.enqueue_achievements("player-0001", [RISING_STAR]) == 2
        for conn_id in ("conn-1", "conn-2", "conn-3"):
            await _flush(mgr, conn_id)

        ws1.send_json.assert_awaited_once()
        ws2.send_json.assert_awaited_once()
        stranger.send_json.assert_not_awaited()
        for conn_id in ("conn-1", "conn-2", "conn-3"):
            await mgr.disconnect(conn_id)

    @pytest.mark.asyncio
    async def test_user_not_connected(self, mgr: ConnectionManager) -> None:
        assert mgr.enqueue_achievements("nobody", [RISING_STAR]) == 0

    @pytest.mark.asyncio
    async def test_send_failure_drains_queue(self, mgr: ConnectionManager, scheduler: FakeScheduler) -> None:
        ws = _make_ws(fail_send=True)
        await mgr.connect(ws, "conn-1", "player-0001")
        mgr.enqueue_achievements("player-0001", [RISING_STAR, CHAMPION])
        await _flush(mgr, "conn-1")

        client = mgr._connections["conn-1"]
        assert client.surface.is_attached is False
        scheduler.fire_next()
        assert client.toasts.pending == 0
        assert client.toasts.phase is ToastPhase.IDLE
        await mgr.disconnect("conn-1")


class TestDisconnect:
    @pytest.mark.asyncio
    async def test_disconnect_disposes_queue(self, mgr: ConnectionManager, scheduler: FakeScheduler) -> None:
        ws = _make_ws()
        await mgr.connect(ws, "conn-1", "player-0001")
        mgr.enqueue_achievements("player-0001", [RISING_STAR, CHAMPION])
        client = mgr._connections["conn-1"]

        await mgr.disconnect("conn-1")

        assert mgr.connection_count == 0
        assert client.toasts.disposed is True
        assert client.toasts.pending == 0
        assert all(t.cancelled for t in scheduler.timers)
        assert mgr.enqueue_achievements("player-0001", [RISING_STAR]) == 0

    @pytest.mark.asyncio
    async def test_sender_task_cancelled(self, mgr: ConnectionManager) -> None:
        await mgr.connect(_make_ws(), "conn-1", "player-0001")
        sender = mgr._connections["conn-1"].sender

        await mgr.disconnect("conn-1")

        assert sender is not None
        with pytest.raises(asyncio.CancelledError):
            await sender
        assert sender.cancelled()

    @pytest.mark.asyncio
    async def test_disconnect_unknown_is_noop(self, mgr: ConnectionManager) -> None:
        await mgr.disconnect("never-connected")
        assert mgr.connection_count == 0
