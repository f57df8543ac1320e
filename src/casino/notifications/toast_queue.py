"""Achievement toast queue.

Shows simultaneously earned achievements one at a time on a presentation
surface. The queue is a small state machine driven by cancellable timers:

    IDLE -> SHOWING -> TRANSITIONING_OUT -> IDLE

After ``dispose()`` every pending timer is cancelled, the queue is emptied and
any later call is a no-op, so a callback that fires after teardown cannot
touch a surface that no longer exists.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections import deque
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)

DEFAULT_SHOW_DURATION = 4.0
DEFAULT_TRANSITION_DURATION = 0.3


@dataclass(frozen=True)
class ToastEntry:
    id: str
    name: str
    icon: str


class ToastSurface(Protocol):
    """Where toasts are rendered (a DOM node, a websocket client, a test double)."""

    @property
    def is_attached(self) -> bool: ...

    def show(self, entry: ToastEntry) -> None: ...

    def hide(self) -> None: ...

    def reset(self) -> None:
        """Clear content and return to the fully hidden baseline."""
        ...


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class ToastPhase(str, enum.Enum):
    IDLE = "idle"
    SHOWING = "showing"
    TRANSITIONING_OUT = "transitioning_out"


class AchievementToastQueue:
    """FIFO toast presenter. Single-threaded; not persisted."""

    def __init__(
        self,
        get_surface: Callable[[], ToastSurface | None],
        scheduler: Scheduler | None = None,
        *,
        show_duration: float = DEFAULT_SHOW_DURATION,
        transition_duration: float = DEFAULT_TRANSITION_DURATION,
    ) -> None:
        self._get_surface = get_surface
        self._scheduler = scheduler
        self.show_duration = show_duration
        self.transition_duration = transition_duration
        self._queue: deque[ToastEntry] = deque()
        self._phase = ToastPhase.IDLE
        self._timer: TimerHandle | None = None
        self._disposed = False

    @property
    def phase(self) -> ToastPhase:
        return self._phase

    @property
    def pending(self) -> int:
        return len(self._queue)

    @property
    def disposed(self) -> bool:
        return self._disposed

    def enqueue(self, entries: Iterable[ToastEntry]) -> None:
        """Append entries and start showing if idle. Ignored after dispose()."""
        if self._disposed:
            return
        self._queue.extend(entries)
        self._show_next()

    def dispose(self) -> None:
        """Cancel pending timers, drop queued entries and make the queue inert."""
        self._disposed = True
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._queue.clear()
        self._phase = ToastPhase.IDLE

    def _surface(self) -> ToastSurface | None:
        surface = self._get_surface()
        if surface is None or not surface.is_attached:
            return None
        return surface

    def _drain(self) -> None:
        if self._queue:
            logger.debug("Toast surface detached, dropping %d queued toasts", len(self._queue))
        self._queue.clear()
        self._phase = ToastPhase.IDLE

    def _schedule(self, delay: float, callback: Callable[[], None]) -> None:
        scheduler = self._scheduler or asyncio.get_running_loop()
        self._timer = scheduler.call_later(delay, callback)

    def _show_next(self) -> None:
        if self._disposed or self._phase is not ToastPhase.IDLE or not self._queue:
            return

        surface = self._surface()
        if surface is None:
            self._drain()
            return

        entry = self._queue.popleft()
        self._phase = ToastPhase.SHOWING
        surface.show(entry)
        self._schedule(self.show_duration, self._on_show_elapsed)

    def _on_show_elapsed(self) -> None:
        self._timer = None
        if self._disposed:
            return

        surface = self._surface()
        if surface is None:
            self._drain()
            return

        surface.hide()
        self._phase = ToastPhase.TRANSITIONING_OUT
        self._schedule(self.transition_duration, self._on_transition_done)

    def _on_transition_done(self) -> None:
        self._timer = None
        if self._disposed:
            return

        self._phase = ToastPhase.IDLE
        if not self._queue:
            surface = self._surface()
            if surface is not None:
                surface.reset()
            return
        self._show_next()
