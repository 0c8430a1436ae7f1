"""Body state model - the parameters describing one moving point."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class VelocityPoint(BaseModel):
    """A single (time, velocity) control point of a velocity graph."""

    model_config = ConfigDict(frozen=True)

    t: float = Field(..., allow_inf_nan=False)  # seconds
    v: float = Field(..., allow_inf_nan=False)  # m/s


# Ordered sequence of control points. Producers do not guarantee sortedness.
VelocityGraph = tuple[VelocityPoint, ...]


class Body(BaseModel):
    """
    A point body moving along a line.

    Either constant-acceleration motion from (x0, v0, a), or piecewise-linear
    velocity given by ``velocity_graph`` when ``uses_velocity_graph`` is set.
    Bodies are immutable snapshots; editing produces a new instance.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""

    # Initial conditions
    x0: float = Field(0.0, allow_inf_nan=False)  # m
    v0: float = Field(0.0, allow_inf_nan=False)  # m/s
    a: float = Field(0.0, allow_inf_nan=False)  # m/s^2

    # Piecewise velocity mode
    uses_velocity_graph: bool = False
    velocity_graph: VelocityGraph = ()

    @property
    def has_usable_graph(self) -> bool:
        """Whether piecewise-velocity mode can actually be evaluated."""
        return self.uses_velocity_graph and len(self.velocity_graph) >= 2

    def sorted_graph(self) -> list[VelocityPoint]:
        """Control points sorted ascending by time (stable for ties)."""
        return sorted(self.velocity_graph, key=lambda p: p.t)

    def with_params(self, **changes) -> Body:
        """Return a copy with the given fields replaced."""
        return self.model_copy(update=changes)

    def describe(self) -> str:
        """Short human-readable descriptor used in explanation prompts."""
        if self.has_usable_graph:
            return "moving with variable velocity (custom graph)"
        return f"Start={self.x0:g}m, Vel={self.v0:g}m/s, Acc={self.a:g}m/s^2"


INITIAL_BODY_A = Body(id="A", name="Object A", x0=0.0, v0=5.0, a=0.0)
INITIAL_BODY_B = Body(id="B", name="Object B", x0=50.0, v0=-2.0, a=0.0)
