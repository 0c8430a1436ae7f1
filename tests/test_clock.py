"""
Tests for the playback clock and frame schedulers.
"""

import asyncio

import pytest

from kinelab.physics.clock import (
    AsyncioFrameScheduler,
    ManualFrameScheduler,
    PlaybackClock,
    PlaybackState,
)
from kinelab.physics.kinematics import SimulationConfig, TickMode


class LeakyScheduler:
    """Scheduler whose cancel does nothing, to simulate a late callback."""

    def __init__(self):
        self.callbacks = []

    def request_frame(self, callback):
        self.callbacks.append(callback)
        return len(self.callbacks) - 1

    def cancel_frame(self, handle):
        pass


class FakeTime:
    """Controllable monotonic time source."""

    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


def run_until_paused(clock, scheduler, max_frames=1000):
    frames = 0
    while clock.is_playing and frames < max_frames:
        scheduler.run_frame()
        frames += 1
    return frames


@pytest.fixture
def scheduler():
    return ManualFrameScheduler()


@pytest.fixture
def clock(scheduler):
    return PlaybackClock(scheduler, SimulationConfig(horizon=1.0))


class TestPlaybackClock:
    """Tests for PlaybackClock state machine."""

    def test_initial_state(self, clock):
        """Test a new clock is paused at zero."""
        assert clock.state == PlaybackState.PAUSED
        assert clock.current_time() == 0.0

    def test_play_advances_each_frame(self, clock, scheduler):
        """Test each frame advances by the fixed increment."""
        clock.play()
        assert clock.state == PlaybackState.PLAYING
        assert scheduler.pending == 1

        scheduler.run_frame()
        assert clock.current_time() == pytest.approx(0.05)
        scheduler.run_frame()
        assert clock.current_time() == pytest.approx(0.10)

    def test_runs_to_horizon_and_pauses(self, clock, scheduler):
        """Test time strictly increases then clamps at the horizon."""
        clock.play()
        seen = []
        while clock.is_playing:
            scheduler.run_frame()
            seen.append(clock.current_time())

        assert all(b > a for a, b in zip(seen, seen[1:]))
        assert clock.current_time() == 1.0
        assert clock.state == PlaybackState.PAUSED
        assert scheduler.pending == 0
        assert len(seen) in (20, 21)

    def test_default_horizon(self, scheduler):
        """Test the default clock plays 20 s in 400 frames."""
        clock = PlaybackClock(scheduler)
        clock.play()
        frames = run_until_paused(clock, scheduler)
        assert clock.current_time() == 20.0
        assert frames in (400, 401)

    def test_play_twice_is_idempotent(self, clock, scheduler):
        """Test a second play does not schedule a second frame."""
        clock.play()
        clock.play()
        assert scheduler.pending == 1

    def test_pause_cancels_pending_frame(self, clock, scheduler):
        """Test pausing removes the scheduled frame."""
        clock.play()
        scheduler.run_frame()
        clock.pause()

        assert clock.state == PlaybackState.PAUSED
        assert scheduler.pending == 0
        assert scheduler.run_frame() == 0
        assert clock.current_time() == pytest.approx(0.05)

    def test_orphaned_callback_is_ignored(self):
        """Test a callback that escaped cancellation cannot move the cursor."""
        leaky = LeakyScheduler()
        clock = PlaybackClock(leaky, SimulationConfig(horizon=1.0))

        clock.play()
        clock.pause()
        leaky.callbacks[0]()
        assert clock.current_time() == 0.0

        clock.play()
        clock.reset()
        leaky.callbacks[1]()
        assert clock.current_time() == 0.0

    def test_stale_callback_after_replay(self):
        """Test an old frame does not double-advance after pause and play."""
        leaky = LeakyScheduler()
        clock = PlaybackClock(leaky, SimulationConfig(horizon=1.0))

        clock.play()
        clock.pause()
        clock.play()
        leaky.callbacks[0]()
        assert clock.current_time() == 0.0

        leaky.callbacks[1]()
        assert clock.current_time() == pytest.approx(0.05)

    @pytest.mark.parametrize("playing", [True, False])
    def test_reset(self, clock, scheduler, playing):
        """Test reset always yields a paused clock at zero."""
        clock.play()
        scheduler.run_frame()
        scheduler.run_frame()
        if not playing:
            clock.pause()

        clock.reset()

        assert clock.current_time() == 0.0
        assert clock.state == PlaybackState.PAUSED
        assert scheduler.pending == 0

    def test_seek_clamps(self, clock):
        """Test seek clamps to [0, horizon]."""
        clock.seek(0.4)
        assert clock.current_time() == 0.4
        clock.seek(-3.0)
        assert clock.current_time() == 0.0
        clock.seek(50.0)
        assert clock.current_time() == 1.0

    def test_seek_keeps_play_state(self, clock, scheduler):
        """Test seek does not change playing or paused."""
        clock.seek(0.5)
        assert clock.state == PlaybackState.PAUSED

        clock.play()
        clock.seek(0.2)
        assert clock.state == PlaybackState.PLAYING
        scheduler.run_frame()
        assert clock.current_time() == pytest.approx(0.25)

    def test_seek_rearms_after_completion(self, clock, scheduler):
        """Test playback can resume after reaching the horizon."""
        clock.play()
        run_until_paused(clock, scheduler)

        clock.seek(0.5)
        clock.play()
        scheduler.run_frame()
        assert clock.current_time() == pytest.approx(0.55)

    def test_tick_while_paused_is_noop(self, clock):
        """Test a manual tick does nothing while paused."""
        assert clock.tick() == 0.0

    def test_close(self, clock, scheduler):
        """Test close cancels the pending frame and refuses further play."""
        clock.play()
        clock.close()

        assert scheduler.pending == 0
        assert clock.state == PlaybackState.PAUSED
        with pytest.raises(RuntimeError):
            clock.play()

    def test_listeners(self, clock, scheduler):
        """Test listeners see every cursor change until unsubscribed."""
        seen = []
        unsubscribe = clock.subscribe(seen.append)

        clock.play()
        scheduler.run_frame()
        clock.seek(0.7)
        unsubscribe()
        clock.reset()

        assert seen == [pytest.approx(0.05), 0.7]


class TestTickModes:
    """Tests for fixed and elapsed tick increments."""

    def test_fixed_ignores_wall_clock(self, scheduler):
        """Test fixed mode advances the same amount however long frames take."""
        now = FakeTime(100.0)
        clock = PlaybackClock(scheduler, SimulationConfig(horizon=5.0), time_source=now)

        clock.play()
        now.now = 103.0
        scheduler.run_frame()
        now.now = 103.001
        scheduler.run_frame()

        assert clock.current_time() == pytest.approx(0.10)

    def test_elapsed_follows_wall_clock(self, scheduler):
        """Test elapsed mode advances by measured time times speed."""
        now = FakeTime(10.0)
        config = SimulationConfig(horizon=5.0, tick_mode=TickMode.ELAPSED, speed=2.0)
        clock = PlaybackClock(scheduler, config, time_source=now)

        clock.play()
        now.now = 10.1
        scheduler.run_frame()
        assert clock.current_time() == pytest.approx(0.2)

        now.now = 10.4
        scheduler.run_frame()
        assert clock.current_time() == pytest.approx(0.8)

    def test_elapsed_excludes_paused_time(self, scheduler):
        """Test time spent paused is not played back."""
        now = FakeTime(0.0)
        config = SimulationConfig(horizon=5.0, tick_mode=TickMode.ELAPSED)
        clock = PlaybackClock(scheduler, config, time_source=now)

        clock.play()
        now.now = 0.5
        scheduler.run_frame()
        clock.pause()

        now.now = 60.0
        clock.play()
        now.now = 60.25
        scheduler.run_frame()

        assert clock.current_time() == pytest.approx(0.75)

    def test_elapsed_clamps_at_horizon(self, scheduler):
        """Test a long frame clamps to the horizon and pauses."""
        now = FakeTime(0.0)
        config = SimulationConfig(horizon=1.0, tick_mode=TickMode.ELAPSED)
        clock = PlaybackClock(scheduler, config, time_source=now)

        clock.play()
        now.now = 3.0
        scheduler.run_frame()

        assert clock.current_time() == 1.0
        assert clock.state == PlaybackState.PAUSED


class TestManualFrameScheduler:
    """Tests for ManualFrameScheduler."""

    def test_requests_during_frame_run_next_frame(self):
        """Test callbacks queued inside a frame wait for the next one."""
        scheduler = ManualFrameScheduler()
        calls = []

        def again():
            calls.append("again")

        def first():
            calls.append("first")
            scheduler.request_frame(again)

        scheduler.request_frame(first)
        assert scheduler.run_frame() == 1
        assert calls == ["first"]
        assert scheduler.run_frame() == 1
        assert calls == ["first", "again"]

    def test_cancel_unknown_handle(self):
        """Test cancelling an unknown handle is ignored."""
        ManualFrameScheduler().cancel_frame(42)


class TestAsyncioFrameScheduler:
    """Tests for the asyncio-backed scheduler."""

    @pytest.mark.asyncio
    async def test_plays_to_horizon(self):
        """Test the clock runs to completion on the event loop."""
        clock = PlaybackClock(
            AsyncioFrameScheduler(interval=0.001),
            SimulationConfig(horizon=0.2),
        )
        clock.play()
        for _ in range(500):
            if not clock.is_playing:
                break
            await asyncio.sleep(0.005)

        assert clock.current_time() == 0.2
        assert clock.state == PlaybackState.PAUSED

    @pytest.mark.asyncio
    async def test_pause_stops_timer(self):
        """Test pausing cancels the pending timer."""
        clock = PlaybackClock(
            AsyncioFrameScheduler(interval=0.01),
            SimulationConfig(horizon=1.0),
        )
        clock.play()
        clock.pause()
        await asyncio.sleep(0.05)
        assert clock.current_time() == 0.0
