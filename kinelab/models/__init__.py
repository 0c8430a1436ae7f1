"""Core data models for the kinematics engine."""

from kinelab.models.body import (
    Body,
    VelocityPoint,
    VelocityGraph,
    INITIAL_BODY_A,
    INITIAL_BODY_B,
)

__all__ = [
    "Body",
    "VelocityPoint",
    "VelocityGraph",
    "INITIAL_BODY_A",
    "INITIAL_BODY_B",
]
