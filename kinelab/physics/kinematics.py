"""
Kinematic state calculation and timeline sampling.

This module provides the numerical core of the engine:
- Constant-acceleration motion
- Piecewise-linear velocity integration (trapezoid rule per segment)
- Fixed-step sampling of two bodies over a bounded horizon
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional

import structlog

from kinelab.models.body import Body

logger = structlog.get_logger(__name__)


DEFAULT_STEP = 0.1  # seconds between samples
DEFAULT_HORIZON = 20.0  # seconds
DEFAULT_TICK_INCREMENT = 0.05  # virtual seconds per playback frame

# Absorbs float error in horizon / step so the last grid point is kept
_GRID_EPSILON = 1e-9

# Upper bound on samples per timeline
MAX_SAMPLES = 100_000


class TickMode(str, Enum):
    """How the playback clock derives its per-frame time increment."""

    FIXED = "fixed"  # constant virtual increment per frame
    ELAPSED = "elapsed"  # measured wall-clock time between frames


@dataclass
class SimulationConfig:
    """Configuration for sampling and playback."""

    step: float = DEFAULT_STEP
    horizon: float = DEFAULT_HORIZON
    tick_increment: float = DEFAULT_TICK_INCREMENT
    tick_mode: TickMode = TickMode.FIXED
    speed: float = 1.0  # playback rate multiplier for ELAPSED mode
    frame_interval: float = 1 / 60  # seconds between frames for timer-driven hosts


@dataclass(frozen=True)
class SampledState:
    """Position and velocity of one body at a point in time."""

    t: float
    x: float
    v: float


@dataclass(frozen=True)
class TimelineStep:
    """States of both bodies at one grid time."""

    t: float
    body_a: SampledState
    body_b: SampledState

    @property
    def separation(self) -> float:
        """Signed position difference x_A - x_B."""
        return self.body_a.x - self.body_b.x


@dataclass(frozen=True)
class Timeline:
    """
    Fixed-step sequence of both bodies' states over [0, horizon].

    Immutable and re-iterable; a new Timeline is built whenever a body changes.
    """

    steps: tuple[TimelineStep, ...]
    step: float = DEFAULT_STEP
    horizon: float = DEFAULT_HORIZON

    def __iter__(self) -> Iterator[TimelineStep]:
        return iter(self.steps)

    def __len__(self) -> int:
        return len(self.steps)

    def __getitem__(self, index: int) -> TimelineStep:
        return self.steps[index]

    @property
    def times(self) -> list[float]:
        return [s.t for s in self.steps]

    def to_records(self) -> list[dict]:
        """Plain dict rows for plotting or JSON output."""
        return [
            {
                "t": s.t,
                "body_a": {"x": s.body_a.x, "v": s.body_a.v},
                "body_b": {"x": s.body_b.x, "v": s.body_b.v},
            }
            for s in self.steps
        ]


def evaluate(body: Body, t: float) -> tuple[float, float]:
    """
    Compute (position, velocity) of a body at time t.

    Uses piecewise-velocity integration when the body carries a usable
    velocity graph, constant-acceleration motion otherwise.
    """
    if body.has_usable_graph:
        return _evaluate_graph(body, t)

    x = body.x0 + body.v0 * t + 0.5 * body.a * t * t
    v = body.v0 + body.a * t
    return x, v


def _evaluate_graph(body: Body, t: float) -> tuple[float, float]:
    """Integrate the piecewise-linear velocity graph from 0 to t."""
    points = body.sorted_graph()

    if t <= 0:
        return body.x0, points[0].v

    x = body.x0
    v = 0.0

    for p1, p2 in zip(points, points[1:]):
        if p1.t >= t:
            break

        segment_end = min(p2.t, t)
        dt = segment_end - p1.t
        if dt <= 0:
            continue

        slope = (p2.v - p1.v) / (p2.t - p1.t)
        v_end = p1.v + slope * dt

        # Trapezoid area under the covered part of the segment
        x += ((p1.v + v_end) / 2) * dt
        v = v_end

        if p2.t >= t:
            break

    return x, v


def state_at(body: Body, t: float) -> SampledState:
    """Evaluate a body at t and wrap the result."""
    x, v = evaluate(body, t)
    return SampledState(t=t, x=x, v=v)


def grid_times(step: float = DEFAULT_STEP, horizon: float = DEFAULT_HORIZON) -> list[float]:
    """Grid times 0, step, 2*step, ... up to the last point <= horizon."""
    if step <= 0:
        raise ValueError(f"step must be positive, got {step}")
    if horizon < 0:
        raise ValueError(f"horizon must be non-negative, got {horizon}")

    span = horizon / step + _GRID_EPSILON
    if span >= MAX_SAMPLES:
        raise ValueError(
            f"step {step} over horizon {horizon} exceeds the {MAX_SAMPLES} sample limit"
        )
    count = int(math.floor(span))
    # Index-based so error does not accumulate across ~200 additions
    return [round(k * step, 10) for k in range(count + 1)]


def sample(
    body_a: Body,
    body_b: Body,
    step: float = DEFAULT_STEP,
    horizon: float = DEFAULT_HORIZON,
) -> Timeline:
    """
    Sample both bodies on a fixed time grid.

    Pure and deterministic: identical inputs give identical timelines.
    """
    steps = tuple(
        TimelineStep(t=t, body_a=state_at(body_a, t), body_b=state_at(body_b, t))
        for t in grid_times(step, horizon)
    )
    return Timeline(steps=steps, step=step, horizon=horizon)


class KinematicSimulator:
    """
    Configured front-end to the state calculator and timeline sampler.

    Holds no per-run state; every call recomputes from the body snapshots.
    """

    def __init__(self, config: Optional[SimulationConfig] = None):
        self.config = config or SimulationConfig()
        self.logger = structlog.get_logger(__name__)

    def evaluate(self, body: Body, t: float) -> tuple[float, float]:
        return evaluate(body, t)

    def sample(self, body_a: Body, body_b: Body) -> Timeline:
        """Sample both bodies with the configured step and horizon."""
        timeline = sample(body_a, body_b, self.config.step, self.config.horizon)
        self.logger.debug(
            "Sampled timeline",
            body_a=body_a.id,
            body_b=body_b.id,
            steps=len(timeline),
            step=self.config.step,
            horizon=self.config.horizon,
        )
        return timeline
