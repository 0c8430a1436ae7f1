"""
Explanation layer.

Wraps a hosted LLM to turn a simulation outcome into a short
natural-language explanation.
"""

from kinelab.reasoning.explainer import (
    OutcomeExplainer,
    Language,
    build_outcome_prompt,
    FALLBACK_EXPLANATION,
)
from kinelab.reasoning.providers import LLMProvider, LLMConfig, LLMProviderType, GeminiProvider

__all__ = [
    "OutcomeExplainer",
    "Language",
    "build_outcome_prompt",
    "FALLBACK_EXPLANATION",
    "LLMProvider",
    "LLMConfig",
    "LLMProviderType",
    "GeminiProvider",
]
