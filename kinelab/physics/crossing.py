"""
Crossing detection between two sampled trajectories.

A crossing is the first grid step at which the relative order of the two
positions flips. It is a purely geometric event; no collision response is
modelled.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import structlog

from kinelab.physics.kinematics import Timeline

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CrossingPoint:
    """Time and position (of body A) at the detected crossing."""

    t: float
    x: float

    def to_dict(self) -> dict:
        return {"t": self.t, "x": self.x}


def _has_flipped(prev_a: float, prev_b: float, cur_a: float, cur_b: float) -> bool:
    # Arrival side is inclusive: landing exactly on equality counts as crossed.
    return (prev_a < prev_b and cur_a >= cur_b) or (prev_a > prev_b and cur_a <= cur_b)


def detect_crossing(timeline: Timeline) -> Optional[CrossingPoint]:
    """
    Find the earliest crossing in a timeline.

    Returns None when the bodies never swap order within the horizon.
    Resolution is one sample step; the crossing is reported at the grid
    point where the flip is first observed, not interpolated.
    """
    for prev, cur in zip(timeline.steps, timeline.steps[1:]):
        if _has_flipped(prev.body_a.x, prev.body_b.x, cur.body_a.x, cur.body_b.x):
            return CrossingPoint(t=cur.t, x=cur.body_a.x)
    return None


class CrossingDetector:
    """Thin logging wrapper around :func:`detect_crossing`."""

    def __init__(self):
        self.logger = structlog.get_logger(__name__)

    def detect(self, timeline: Timeline) -> Optional[CrossingPoint]:
        crossing = detect_crossing(timeline)
        if crossing is None:
            self.logger.debug("No crossing within horizon", horizon=timeline.horizon)
        else:
            self.logger.debug("Crossing detected", t=crossing.t, x=crossing.x)
        return crossing
