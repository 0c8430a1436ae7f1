"""
Kinematics simulation core.

Provides the state calculator, timeline sampler, crossing detector,
playback clock and velocity-graph editor.
"""

from kinelab.physics.kinematics import (
    KinematicSimulator,
    SimulationConfig,
    SampledState,
    Timeline,
    TimelineStep,
    TickMode,
    evaluate,
    sample,
)
from kinelab.physics.crossing import CrossingDetector, CrossingPoint, detect_crossing
from kinelab.physics.clock import (
    PlaybackClock,
    PlaybackState,
    ManualFrameScheduler,
    AsyncioFrameScheduler,
)
from kinelab.physics.graph_editor import GraphEditor, GraphEditorConfig

__all__ = [
    "KinematicSimulator",
    "SimulationConfig",
    "SampledState",
    "Timeline",
    "TimelineStep",
    "TickMode",
    "evaluate",
    "sample",
    "CrossingDetector",
    "CrossingPoint",
    "detect_crossing",
    "PlaybackClock",
    "PlaybackState",
    "ManualFrameScheduler",
    "AsyncioFrameScheduler",
    "GraphEditor",
    "GraphEditorConfig",
]
