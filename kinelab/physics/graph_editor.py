"""
Velocity-graph authoring.

Maintains the (t, v) control points of a piecewise-linear velocity graph.
A single pick operation either removes an interior point under the cursor
or inserts a new one; hit testing is done in canvas pixel space so the
tolerance matches what a user sees on screen.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Optional

import structlog

from kinelab.models.body import Body, VelocityGraph, VelocityPoint

logger = structlog.get_logger(__name__)


@dataclass
class GraphEditorConfig:
    """Domain bounds and canvas geometry for the editor."""

    t_max: float = 20.0
    v_min: float = -10.0
    v_max: float = 10.0

    # Canvas used for hit testing
    width: float = 600.0
    height: float = 300.0
    padding: float = 40.0
    hit_radius: float = 10.0  # pixels

    # Inserted coordinates are rounded to this many decimals
    precision: int = 1

    def t_to_px(self, t: float) -> float:
        return self.padding + (t / self.t_max) * (self.width - 2 * self.padding)

    def v_to_px(self, v: float) -> float:
        span = self.v_max - self.v_min
        return self.height - self.padding - ((v - self.v_min) / span) * (self.height - 2 * self.padding)

    def clamp_t(self, t: float) -> float:
        return min(max(t, 0.0), self.t_max)

    def clamp_v(self, v: float) -> float:
        return min(max(v, self.v_min), self.v_max)


class GraphEditor:
    """
    Editable set of velocity control points, always sorted by time.

    The first and last points are anchors and are never removed, and the
    set never drops below two points.
    """

    def __init__(
        self,
        initial_points: Optional[Iterable[VelocityPoint]] = None,
        config: Optional[GraphEditorConfig] = None,
    ):
        self.config = config or GraphEditorConfig()
        self.logger = structlog.get_logger(__name__)

        points = sorted(
            (
                VelocityPoint(t=self.config.clamp_t(p.t), v=self.config.clamp_v(p.v))
                for p in initial_points or ()
            ),
            key=lambda p: p.t,
        )
        if len(points) < 2:
            self.logger.debug("Too few initial points, starting from a flat line", count=len(points))
            points = self._default_points()
        self._points: list[VelocityPoint] = points

    @classmethod
    def for_body(cls, body: Body, config: Optional[GraphEditorConfig] = None) -> GraphEditor:
        """Open an editor on a body's current graph."""
        return cls(body.velocity_graph, config=config)

    @property
    def points(self) -> list[VelocityPoint]:
        return list(self._points)

    def pick(self, t: float, v: float) -> bool:
        """
        Remove the interior point near (t, v), or insert a new point there.

        A hit on an anchor point (or when only two points remain) changes
        nothing. Returns True if the point set changed.
        """
        index = self.find_point(t, v)

        if index is not None:
            last = len(self._points) - 1
            if len(self._points) > 2 and 0 < index < last:
                removed = self._points.pop(index)
                self.logger.debug("Removed control point", t=removed.t, v=removed.v)
                return True
            return False

        point = VelocityPoint(
            t=round(self.config.clamp_t(t), self.config.precision),
            v=round(self.config.clamp_v(v), self.config.precision),
        )
        # sorted() is stable: a new point goes after existing points at the same time
        self._points = sorted(self._points + [point], key=lambda p: p.t)
        self.logger.debug("Inserted control point", t=point.t, v=point.v)
        return True

    def find_point(self, t: float, v: float) -> Optional[int]:
        """Index of the first point within the hit radius of (t, v), if any."""
        cfg = self.config
        x, y = cfg.t_to_px(t), cfg.v_to_px(v)
        for i, p in enumerate(self._points):
            if math.hypot(x - cfg.t_to_px(p.t), y - cfg.v_to_px(p.v)) < cfg.hit_radius:
                return i
        return None

    def reset_points(self) -> None:
        """Replace all points with a flat zero-velocity line."""
        self._points = self._default_points()

    def commit(self) -> VelocityGraph:
        """Snapshot the current points as a velocity graph."""
        return tuple(self._points)

    def apply_to(self, body: Body) -> Body:
        """Return a copy of body driven by the committed graph."""
        return body.with_params(velocity_graph=self.commit(), uses_velocity_graph=True)

    def _default_points(self) -> list[VelocityPoint]:
        return [VelocityPoint(t=0.0, v=0.0), VelocityPoint(t=self.config.t_max, v=0.0)]
