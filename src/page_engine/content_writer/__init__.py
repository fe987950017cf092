# Content Writer: per-intent title/description synthesis
"""
Content synthesizer for discovery pages.

Asks an LLM (OpenAI or Anthropic) for a title, meta description and slug
per intent, and falls back to deterministic record-based copy whenever the
provider is unavailable or its answer cannot be parsed.
"""

from .client import LLMCompletionClient
from .models import (
    CompletionResult,
    ContentSource,
    LLMProvider,
    SynthesizedContent,
    SynthesizerConfig,
)
from .prompts import SYSTEM_PROMPT, build_profile_prompt, build_synthesis_prompt
from .writer import (
    ContentSynthesizer,
    fallback_content,
    fallback_profile_content,
    parse_synthesis_response,
)

__all__ = [
    "CompletionResult",
    "ContentSource",
    "ContentSynthesizer",
    "LLMCompletionClient",
    "LLMProvider",
    "SYSTEM_PROMPT",
    "SynthesizedContent",
    "SynthesizerConfig",
    "build_profile_prompt",
    "build_synthesis_prompt",
    "fallback_content",
    "fallback_profile_content",
    "parse_synthesis_response",
]
