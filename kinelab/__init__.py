"""
Kinelab

Kinematics simulation engine for an interactive physics tutor: two point
bodies, their sampled motion, where they meet, and a playback clock to
scrub through it.
"""

from kinelab.engine import SimulationEngine, SimulationSnapshot, FrameView
from kinelab.models.body import Body, VelocityPoint
from kinelab.physics.kinematics import evaluate, sample, Timeline, SimulationConfig
from kinelab.physics.crossing import detect_crossing, CrossingPoint
from kinelab.physics.clock import PlaybackClock
from kinelab.physics.graph_editor import GraphEditor

__version__ = "0.1.0"

__all__ = [
    # Core
    "SimulationEngine",
    "SimulationSnapshot",
    "FrameView",
    # Models
    "Body",
    "VelocityPoint",
    # Physics
    "evaluate",
    "sample",
    "Timeline",
    "SimulationConfig",
    "detect_crossing",
    "CrossingPoint",
    "PlaybackClock",
    "GraphEditor",
]
