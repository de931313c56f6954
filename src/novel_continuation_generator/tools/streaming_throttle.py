"""Coalesce high-frequency streamed text into rate-limited progress updates.

The updater emits the first value immediately, then at most once per
``interval_ms``, always carrying the latest pushed value. A single deferred
emission guarantees the last value is delivered unless ``cancel()`` runs first.
"""

from __future__ import annotations

import asyncio
import math
import time
from typing import Any, Callable, Protocol


class Scheduler(Protocol):
    """Deferred-callback primitive used by :class:`ThrottledUpdater`."""

    def schedule(self, delay_ms: float, callback: Callable[[], None]) -> Any: ...
    def cancel(self, handle: Any) -> None: ...


class AsyncioScheduler:
    """Schedule callbacks on an asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def schedule(self, delay_ms: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(max(0.0, delay_ms) / 1000.0, callback)

    def cancel(self, handle: asyncio.TimerHandle) -> None:
        handle.cancel()


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class ThrottledUpdater:
    """Leading-edge, trailing-guaranteed throttle around *on_update*."""

    def __init__(
        self,
        interval_ms: float,
        on_update: Callable[[str], None],
        *,
        scheduler: Scheduler | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.interval_ms = max(0, math.floor(interval_ms))
        self._on_update = on_update
        self._scheduler = scheduler or AsyncioScheduler()
        self._clock = clock or monotonic_ms
        self._last_emit_at: float | None = None
        self._queued: str | None = None
        self._pending: Any = None

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def _clear_timer(self) -> None:
        if self._pending is not None:
            self._scheduler.cancel(self._pending)
            self._pending = None

    def _emit(self, value: str) -> None:
        self._last_emit_at = self._clock()
        self._on_update(value)

    def _on_timer(self) -> None:
        self._pending = None
        self.flush()

    def push(self, value: str) -> None:
        if self.interval_ms == 0:
            self._emit(value)
            return

        self._queued = value
        if self._last_emit_at is None:
            self.flush()
            return

        elapsed = self._clock() - self._last_emit_at
        if elapsed >= self.interval_ms:
            self.flush()
            return

        # Supersede: never more than one deferred emission.
        self._clear_timer()
        self._pending = self._scheduler.schedule(self.interval_ms - elapsed, self._on_timer)

    def flush(self) -> None:
        """Emit the queued value now, if any."""
        self._clear_timer()
        if self._queued is not None:
            value, self._queued = self._queued, None
            self._emit(value)

    def cancel(self) -> None:
        """Drop the queued value and pending timer without emitting."""
        self._queued = None
        self._clear_timer()

    def __enter__(self) -> ThrottledUpdater:
        return self

    def __exit__(self, *exc: object) -> None:
        self.flush()
        self.cancel()


def create_throttled_updater(
    interval_ms: float,
    on_update: Callable[[str], None],
    *,
    scheduler: Scheduler | None = None,
    clock: Callable[[], float] | None = None,
) -> ThrottledUpdater:
    return ThrottledUpdater(interval_ms, on_update, scheduler=scheduler, clock=clock)
