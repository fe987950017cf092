"""Data models for the content writer module."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from src.common.config import LLMSettings


class LLMProvider(str, Enum):
    """Supported LLM providers."""
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


class ContentSource(str, Enum):
    """Where a title/description pair came from."""
    AI = "ai"
    FALLBACK = "fallback"


@dataclass
class SynthesizerConfig:
    """Configuration for the content synthesizer."""
    provider: LLMProvider = LLMProvider.OPENAI
    model: str = ""  # Empty = use default from settings
    temperature: float = 0.4
    max_tokens: int = 1024
    timeout_seconds: float = 30.0

    @classmethod
    def from_settings(cls, llm: LLMSettings) -> SynthesizerConfig:
        provider = LLMProvider(llm.provider)
        model = llm.openai_model if provider == LLMProvider.OPENAI else llm.anthropic_model
        return cls(
            provider=provider,
            model=model,
            temperature=llm.temperature,
            max_tokens=llm.max_tokens,
            timeout_seconds=llm.timeout_seconds,
        )


@dataclass
class CompletionResult:
    """Outcome of one text-completion call."""
    text: str = ""
    provider: str = ""
    model: str = ""
    success: bool = True
    error: Optional[str] = None


@dataclass
class SynthesizedContent:
    """Title/description (and optional slug) for one intent page."""
    title: str
    description: str
    slug: Optional[str] = None
    source: ContentSource = ContentSource.AI
    error: Optional[str] = None  # why the fallback was used

    @property
    def is_fallback(self) -> bool:
        return self.source == ContentSource.FALLBACK
