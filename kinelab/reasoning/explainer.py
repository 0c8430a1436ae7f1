"""
Natural-language explanation of a simulation outcome.

Builds a short prompt from the two body descriptors and the crossing result
and asks an LLM provider why the bodies do or do not meet. Provider failures
never propagate: the caller always gets a displayable string.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

import structlog

from kinelab.models.body import Body
from kinelab.physics.crossing import CrossingPoint
from kinelab.reasoning.providers.base import LLMProvider

logger = structlog.get_logger(__name__)


FALLBACK_EXPLANATION = "Could not analyze trajectory."
EMPTY_EXPLANATION = "Analyzing trajectory..."

_COMMON_RULES = (
    "IMPORTANT: Do NOT use dollar signs ($) or LaTeX formatting for variables. "
    "Write them in plain text (e.g., 'v(t)', 'a', 'x0')."
)


class Language(str, Enum):
    """Response languages supported by the explainer."""

    EN = "en"
    AR = "ar"
    HE = "he"


def language_instruction(language: Language | str) -> str:
    language = Language(language)
    if language == Language.AR:
        return "Respond in Arabic. " + _COMMON_RULES
    if language == Language.HE:
        return "Respond in Hebrew. " + _COMMON_RULES
    return "Respond in English. " + _COMMON_RULES


def build_outcome_prompt(
    body_a: Body,
    body_b: Body,
    crossing: Optional[CrossingPoint],
    language: Language | str = Language.EN,
) -> str:
    """Prompt asking why the two bodies meet (or never meet)."""
    if crossing is not None:
        outcome = f"They meet at t={crossing.t:.2f}s."
    else:
        outcome = "They never meet."

    return "\n".join([
        "Analyze this kinematic simulation:",
        f"Object A: {body_a.describe()}.",
        f"Object B: {body_b.describe()}.",
        "",
        outcome,
        "",
        "Briefly explain WHY they meet or don't meet using physics concepts "
        "(relative velocity, acceleration gaps). Keep it short (under 50 words).",
        "Constraint: Do NOT use dollar signs ($) for variables. Use plain text.",
        language_instruction(language),
    ])


class OutcomeExplainer:
    """Asks an LLM provider to explain a crossing result."""

    def __init__(self, provider: LLMProvider):
        self.provider = provider
        self.logger = structlog.get_logger(__name__)

    async def explain(
        self,
        body_a: Body,
        body_b: Body,
        crossing: Optional[CrossingPoint],
        language: Language | str = Language.EN,
    ) -> str:
        """
        Explain the outcome in a few sentences.

        Returns a fallback message instead of raising if the provider fails.
        """
        prompt = build_outcome_prompt(body_a, body_b, crossing, language)

        try:
            response = await self.provider.generate(prompt)
        except Exception as e:
            self.logger.warning(
                "Outcome explanation failed",
                provider=self.provider.provider_type.value,
                error=str(e),
            )
            return FALLBACK_EXPLANATION

        self.logger.info(
            "Outcome explained",
            crossed=crossing is not None,
            latency_ms=response.latency_ms,
        )
        return response.text or EMPTY_EXPLANATION
