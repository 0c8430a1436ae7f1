"""LLM providers."""

from kinelab.reasoning.providers.base import (
    LLMProvider,
    LLMProviderType,
    LLMConfig,
    LLMResponse,
)
from kinelab.reasoning.providers.gemini import GeminiProvider

__all__ = [
    "LLMProvider",
    "LLMProviderType",
    "LLMConfig",
    "LLMResponse",
    "GeminiProvider",
]
