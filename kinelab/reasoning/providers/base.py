"""Base LLM provider interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import uuid4


class LLMProviderType(str, Enum):
    """Supported LLM providers."""

    GEMINI = "gemini"


@dataclass
class LLMConfig:
    """Configuration for an LLM provider."""

    provider: LLMProviderType
    api_key: str
    model: str | None = None  # Use provider default if None

    # Generation parameters
    temperature: float = 0.2
    max_tokens: int = 1024
    top_p: float = 0.95

    # Provider-specific options
    options: dict[str, Any] = field(default_factory=dict)


@dataclass
class LLMResponse:
    """Response from an LLM provider."""

    id: str = field(default_factory=lambda: str(uuid4()))

    text: str | None = None
    finish_reason: str | None = None

    # Usage stats
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    # Timing
    latency_ms: float = 0.0
    timestamp: datetime = field(default_factory=datetime.utcnow)

    # Provider info
    provider: str | None = None
    model: str | None = None


class LLMProvider(ABC):
    """Abstract base class for text-generation providers."""

    def __init__(self, config: LLMConfig):
        self.config = config

    @property
    @abstractmethod
    def provider_type(self) -> LLMProviderType:
        """Get the provider type."""
        pass

    @property
    @abstractmethod
    def default_model(self) -> str:
        """Get the default model for this provider."""
        pass

    @property
    def model(self) -> str:
        """Get the model to use."""
        return self.config.model or self.default_model

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        system_instruction: str | None = None,
        **kwargs,
    ) -> LLMResponse:
        """
        Generate a text response for a single prompt.

        Args:
            prompt: User prompt
            system_instruction: Optional system instruction
            **kwargs: Generation overrides (temperature, max_tokens, top_p)

        Returns:
            LLMResponse with the generated text
        """
        pass
