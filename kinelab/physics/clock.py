"""
Playback clock for scrubbing through a simulation.

The clock is a cooperative, single-threaded state machine. It never blocks;
it asks a frame scheduler for a callback, advances the scrub cursor when the
callback fires, and asks again while still playing. Pausing, resetting or
closing cancels the pending frame and invalidates it, so a callback that
slips through cancellation can no longer touch the cursor.
"""

from __future__ import annotations

import asyncio
import time
from enum import Enum
from typing import Any, Callable, Optional, Protocol

import structlog

from kinelab.physics.kinematics import SimulationConfig, TickMode

logger = structlog.get_logger(__name__)


class PlaybackState(str, Enum):
    """Playback clock states."""

    PAUSED = "paused"
    PLAYING = "playing"


class FrameScheduler(Protocol):
    """Host hook that runs a callback on the next frame."""

    def request_frame(self, callback: Callable[[], None]) -> Any:
        """Schedule callback for the next frame and return a cancel handle."""
        ...

    def cancel_frame(self, handle: Any) -> None:
        """Cancel a previously requested frame. Unknown handles are ignored."""
        ...


class ManualFrameScheduler:
    """
    Frame scheduler pumped explicitly by the host.

    Callbacks requested while a frame runs are deferred to the next frame,
    like a browser's animation-frame queue.
    """

    def __init__(self):
        self._pending: dict[int, Callable[[], None]] = {}
        self._next_handle = 0

    @property
    def pending(self) -> int:
        return len(self._pending)

    def request_frame(self, callback: Callable[[], None]) -> int:
        handle = self._next_handle
        self._next_handle += 1
        self._pending[handle] = callback
        return handle

    def cancel_frame(self, handle: int) -> None:
        self._pending.pop(handle, None)

    def run_frame(self) -> int:
        """Run every callback queued before this frame. Returns how many ran."""
        due = list(self._pending.items())
        self._pending.clear()
        for _, callback in due:
            callback()
        return len(due)


class AsyncioFrameScheduler:
    """Frame scheduler backed by an asyncio event loop timer."""

    def __init__(
        self,
        interval: float = 1 / 60,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self.interval = interval
        self._loop = loop

    def request_frame(self, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(self.interval, callback)

    def cancel_frame(self, handle: asyncio.TimerHandle) -> None:
        handle.cancel()


class PlaybackClock:
    """
    Scrub cursor with play/pause/reset/seek.

    In ``TickMode.FIXED`` every frame advances the cursor by a constant
    virtual increment, so perceived speed follows the host's frame rate.
    In ``TickMode.ELAPSED`` the increment is the measured time since the
    previous frame (scaled by ``speed``).
    """

    def __init__(
        self,
        scheduler: FrameScheduler,
        config: Optional[SimulationConfig] = None,
        time_source: Callable[[], float] = time.monotonic,
    ):
        self.config = config or SimulationConfig()
        self.scheduler = scheduler
        self.time_source = time_source
        self.logger = structlog.get_logger(__name__)

        self._cursor = 0.0
        self._state = PlaybackState.PAUSED
        self._handle: Any = None
        self._generation = 0
        self._last_frame_at: Optional[float] = None
        self._listeners: list[Callable[[float], None]] = []
        self._closed = False

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def is_playing(self) -> bool:
        return self._state == PlaybackState.PLAYING

    @property
    def horizon(self) -> float:
        return self.config.horizon

    def current_time(self) -> float:
        return self._cursor

    def subscribe(self, listener: Callable[[float], None]) -> Callable[[], None]:
        """Register a cursor listener. Returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def play(self) -> None:
        """Start advancing the cursor on each frame."""
        if self._closed:
            raise RuntimeError("PlaybackClock is closed")
        if self.is_playing:
            return

        self._state = PlaybackState.PLAYING
        self._last_frame_at = self.time_source()
        self._arm()
        self.logger.debug("Playback started", cursor=self._cursor)

    def pause(self) -> None:
        if not self.is_playing:
            return
        self._disarm()
        self._state = PlaybackState.PAUSED
        self.logger.debug("Playback paused", cursor=self._cursor)

    def reset(self) -> None:
        """Stop playback and rewind to t=0."""
        self._disarm()
        self._state = PlaybackState.PAUSED
        self._set_cursor(0.0)

    def seek(self, t: float) -> None:
        """Move the cursor, clamped to [0, horizon]. Play state is unchanged."""
        self._set_cursor(min(max(t, 0.0), self.horizon))
        # Restart elapsed measurement so a seek is not counted as play time
        if self.is_playing:
            self._last_frame_at = self.time_source()

    def close(self) -> None:
        """Tear down: cancel any pending frame and drop listeners."""
        self._disarm()
        self._state = PlaybackState.PAUSED
        self._listeners.clear()
        self._closed = True

    def tick(self) -> float:
        """
        Advance the cursor by one frame's increment.

        Called by the scheduled frame callback; hosts driving the clock by
        hand may call it directly. Does nothing while paused.
        """
        if not self.is_playing:
            return self._cursor

        next_time = self._cursor + self._increment()
        if next_time >= self.horizon:
            self._disarm()
            self._state = PlaybackState.PAUSED
            self._set_cursor(self.horizon)
            self.logger.debug("Playback reached horizon", horizon=self.horizon)
        else:
            self._set_cursor(next_time)
        return self._cursor

    def _increment(self) -> float:
        if self.config.tick_mode == TickMode.ELAPSED:
            now = self.time_source()
            last = self._last_frame_at if self._last_frame_at is not None else now
            self._last_frame_at = now
            return max(0.0, now - last) * self.config.speed
        return self.config.tick_increment

    def _arm(self) -> None:
        generation = self._generation
        self._handle = self.scheduler.request_frame(lambda: self._on_frame(generation))

    def _disarm(self) -> None:
        self._generation += 1
        if self._handle is not None:
            self.scheduler.cancel_frame(self._handle)
            self._handle = None

    def _on_frame(self, generation: int) -> None:
        if generation != self._generation or not self.is_playing:
            return
        self._handle = None
        self.tick()
        if self.is_playing:
            self._arm()

    def _set_cursor(self, t: float) -> None:
        self._cursor = t
        for listener in list(self._listeners):
            listener(t)
