"""Simulation engine: owns the derived timeline state and the playback clock."""

from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass
from typing import Callable, Optional

import structlog

from kinelab.models.body import Body, INITIAL_BODY_A, INITIAL_BODY_B
from kinelab.physics.clock import FrameScheduler, ManualFrameScheduler, PlaybackClock
from kinelab.physics.crossing import CrossingDetector, CrossingPoint
from kinelab.physics.kinematics import (
    KinematicSimulator,
    SampledState,
    SimulationConfig,
    Timeline,
    state_at,
)
from kinelab.reasoning.explainer import Language, OutcomeExplainer
from kinelab.reasoning.providers.base import LLMConfig, LLMProvider, LLMProviderType
from kinelab.reasoning.providers.gemini import GeminiProvider

logger = structlog.get_logger()


def get_provider(
    provider_type: str | LLMProviderType = LLMProviderType.GEMINI,
    api_key: str | None = None,
    model: str | None = None,
    **kwargs,
) -> LLMProvider:
    """
    Get an LLM provider instance.

    Args:
        provider_type: Provider type (gemini)
        api_key: API key (defaults to environment variable)
        model: Model to use (defaults to provider's default)
        **kwargs: Additional provider configuration

    Returns:
        Configured LLMProvider instance
    """
    if isinstance(provider_type, str):
        provider_type = LLMProviderType(provider_type.lower())

    env_keys = {
        LLMProviderType.GEMINI: "GEMINI_API_KEY",
    }

    if not api_key:
        api_key = os.environ.get(env_keys.get(provider_type, ""))

    if not api_key:
        raise ValueError(f"API key required for {provider_type.value}")

    config = LLMConfig(
        provider=provider_type,
        api_key=api_key,
        model=model,
        **kwargs,
    )

    providers = {
        LLMProviderType.GEMINI: GeminiProvider,
    }

    provider_class = providers.get(provider_type)
    if not provider_class:
        raise ValueError(f"Unsupported provider: {provider_type}")

    return provider_class(config)


@dataclass(frozen=True)
class SimulationSnapshot:
    """Bodies together with the timeline and crossing derived from them."""

    body_a: Body
    body_b: Body
    timeline: Timeline
    crossing: Optional[CrossingPoint]


@dataclass(frozen=True)
class FrameView:
    """What a renderer needs for one frame at the scrub cursor."""

    t: float
    body_a: SampledState
    body_b: SampledState
    crossing: Optional[CrossingPoint]

    @property
    def crossing_reached(self) -> bool:
        return self.crossing is not None and self.t >= self.crossing.t


class SimulationEngine:
    """
    Main interface for the kinematics engine.

    Keeps one immutable :class:`SimulationSnapshot` that is replaced in a
    single assignment whenever a body changes, so readers never see a
    timeline paired with a crossing computed from different bodies. The
    playback cursor is independent of the snapshot.

    Example:
        ```python
        engine = SimulationEngine()
        engine.set_bodies(body_b=engine.body_b.with_params(v0=-4))
        engine.clock.play()
        frame = engine.frame()
        ```
    """

    def __init__(
        self,
        body_a: Body = INITIAL_BODY_A,
        body_b: Body = INITIAL_BODY_B,
        config: Optional[SimulationConfig] = None,
        scheduler: Optional[FrameScheduler] = None,
        explainer: Optional[OutcomeExplainer] = None,
        on_analysis: Optional[Callable[[str], None]] = None,
        language: Language | str = Language.EN,
    ):
        self.config = config or SimulationConfig()
        self.simulator = KinematicSimulator(self.config)
        self.detector = CrossingDetector()
        self.clock = PlaybackClock(scheduler or ManualFrameScheduler(), self.config)

        self.explainer = explainer
        self.on_analysis = on_analysis
        self.language = Language(language)
        self.logger = structlog.get_logger(__name__)

        self._explanation_tasks: set[asyncio.Task] = set()
        self._snapshot = self._build_snapshot(body_a, body_b)
        self._request_explanation(self._snapshot)

    @property
    def snapshot(self) -> SimulationSnapshot:
        return self._snapshot

    @property
    def body_a(self) -> Body:
        return self._snapshot.body_a

    @property
    def body_b(self) -> Body:
        return self._snapshot.body_b

    @property
    def timeline(self) -> Timeline:
        return self._snapshot.timeline

    @property
    def crossing(self) -> Optional[CrossingPoint]:
        return self._snapshot.crossing

    def set_bodies(
        self,
        body_a: Optional[Body] = None,
        body_b: Optional[Body] = None,
    ) -> SimulationSnapshot:
        """
        Replace one or both bodies and recompute everything derived from them.

        The cursor and play state are left untouched.
        """
        snapshot = self._build_snapshot(
            body_a if body_a is not None else self._snapshot.body_a,
            body_b if body_b is not None else self._snapshot.body_b,
        )
        self._snapshot = snapshot
        self._request_explanation(snapshot)
        return snapshot

    def frame(self) -> FrameView:
        """State of both bodies at the current cursor, from the latest snapshot."""
        snapshot = self._snapshot
        t = self.clock.current_time()
        return FrameView(
            t=t,
            body_a=state_at(snapshot.body_a, t),
            body_b=state_at(snapshot.body_b, t),
            crossing=snapshot.crossing,
        )

    async def explain(self) -> str:
        """Explain the current snapshot's outcome and wait for the answer."""
        if self.explainer is None:
            raise ValueError("No explainer configured")
        snapshot = self._snapshot
        return await self.explainer.explain(
            snapshot.body_a, snapshot.body_b, snapshot.crossing, self.language
        )

    def close(self) -> None:
        """Stop playback and drop any in-flight explanation requests."""
        self.clock.close()
        for task in list(self._explanation_tasks):
            task.cancel()
        self._explanation_tasks.clear()

    def _build_snapshot(self, body_a: Body, body_b: Body) -> SimulationSnapshot:
        timeline = self.simulator.sample(body_a, body_b)
        crossing = self.detector.detect(timeline)
        self.logger.info(
            "Simulation recomputed",
            body_a=body_a.id,
            body_b=body_b.id,
            steps=len(timeline),
            crossing_t=crossing.t if crossing else None,
        )
        return SimulationSnapshot(body_a=body_a, body_b=body_b, timeline=timeline, crossing=crossing)

    def _request_explanation(self, snapshot: SimulationSnapshot) -> None:
        """Fire-and-forget explanation of a snapshot, if a loop is running."""
        if self.explainer is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.logger.debug("No running event loop, skipping explanation")
            return

        task = loop.create_task(self._explain_snapshot(snapshot))
        self._explanation_tasks.add(task)
        task.add_done_callback(self._explanation_tasks.discard)

    async def _explain_snapshot(self, snapshot: SimulationSnapshot) -> None:
        text = await self.explainer.explain(
            snapshot.body_a, snapshot.body_b, snapshot.crossing, self.language
        )
        if snapshot is not self._snapshot:
            self.logger.debug("Discarding explanation for superseded snapshot")
            return
        if self.on_analysis is not None:
            try:
                self.on_analysis(text)
            except Exception as e:
                self.logger.warning("Analysis callback failed", error=str(e))
