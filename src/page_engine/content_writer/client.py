"""Text-completion client for OpenAI and Anthropic.

``complete`` never raises for provider trouble: missing keys, SDK/HTTP
errors and empty completions all come back as a failed
``CompletionResult`` so the synthesizer can fall back.
"""

from __future__ import annotations

from typing import Optional

from src.common.config import Credentials
from src.common.logging import setup_logging

from .models import CompletionResult, LLMProvider, SynthesizerConfig

logger = setup_logging(module_name="content_writer.client")


class LLMCompletionClient:
    """Single-attempt chat completion against the configured provider."""

    def __init__(
        self,
        config: SynthesizerConfig | None = None,
        credentials: Optional[Credentials] = None,
    ):
        self.config = config or SynthesizerConfig()
        self.credentials = credentials or Credentials.from_env()

    def complete(self, system_prompt: str, user_prompt: str) -> CompletionResult:
        """Call the configured LLM provider once.

        Args:
            system_prompt: System-level instructions
            user_prompt: User message with data and request

        Returns:
            CompletionResult; success is False on any failure
        """
        provider = self.config.provider
        try:
            if provider == LLMProvider.OPENAI:
                result = self._call_openai(system_prompt, user_prompt)
            else:
                result = self._call_anthropic(system_prompt, user_prompt)
        except Exception as e:
            logger.warning("%s completion failed: %s", provider.value, e)
            return CompletionResult(
                provider=provider.value,
                model=self.config.model,
                success=False,
                error=f"{type(e).__name__}: {e}",
            )

        if result.success and not result.text.strip():
            result.success = False
            result.error = "empty completion"
        return result

    def _call_openai(self, system_prompt: str, user_prompt: str) -> CompletionResult:
        """Call OpenAI chat completions."""
        if not self.credentials.openai_api_key:
            return CompletionResult(
                provider=LLMProvider.OPENAI.value,
                success=False,
                error="OPENAI_API_KEY not set",
            )
        import openai

        client = openai.OpenAI(
            api_key=self.credentials.openai_api_key,
            timeout=self.config.timeout_seconds,
            max_retries=0,
        )
        model = self.config.model or "gpt-4o"

        response = client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens,
            response_format={"type": "json_object"},
        )

        return CompletionResult(
            text=response.choices[0].message.content or "",
            provider=LLMProvider.OPENAI.value,
            model=model,
        )

    def _call_anthropic(self, system_prompt: str, user_prompt: str) -> CompletionResult:
        """Call Anthropic messages."""
        if not self.credentials.anthropic_api_key:
            return CompletionResult(
                provider=LLMProvider.ANTHROPIC.value,
                success=False,
                error="ANTHROPIC_API_KEY not set",
            )
        import anthropic

        client = anthropic.Anthropic(
            api_key=self.credentials.anthropic_api_key,
            timeout=self.config.timeout_seconds,
            max_retries=0,
        )
        model = self.config.model or "claude-sonnet-4-5-20250929"

        response = client.messages.create(
            model=model,
            max_tokens=self.config.max_tokens,
            system=system_prompt,
            messages=[
                {"role": "user", "content": user_prompt},
            ],
            temperature=self.config.temperature,
        )

        text = "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )
        return CompletionResult(
            text=text,
            provider=LLMProvider.ANTHROPIC.value,
            model=model,
        )
