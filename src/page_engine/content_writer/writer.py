"""Content Synthesizer: per-intent page titles and meta descriptions.

The synthesizer asks the LLM once for a JSON object with title,
description and slug. If the provider fails or the answer cannot be
parsed, it substitutes a deterministic template built only from record
fields. Callers can therefore treat ``synthesize`` as always succeeding.

Usage:
    synthesizer = ContentSynthesizer()
    content = synthesizer.synthesize(business, update, Intent.LOCAL)
    content.title, content.description, content.slug
"""

from __future__ import annotations

import json
import re
from typing import Any, Optional, Protocol

from src.common.config import Credentials, settings
from src.common.logging import setup_logging
from src.common.models import BusinessRecord, Intent, UpdateRecord
from src.page_engine.template_engine.models import category_display_name

from .client import LLMCompletionClient
from .models import CompletionResult, ContentSource, SynthesizedContent, SynthesizerConfig
from .prompts import SYSTEM_PROMPT, build_profile_prompt, build_synthesis_prompt

logger = setup_logging(module_name="content_writer")

QUOTE_LIMIT = 160

_FIELD_PATTERNS = {
    name: re.compile(rf'"{name}"\s*:\s*"((?:[^"\\]|\\.)*)"', re.DOTALL)
    for name in ("title", "description", "slug")
}


class CompletionClient(Protocol):
    def complete(self, system_prompt: str, user_prompt: str) -> CompletionResult: ...


class ContentSynthesizer:
    """Generates discovery copy for each intent with a deterministic fallback."""

    def __init__(
        self,
        config: SynthesizerConfig | None = None,
        client: CompletionClient | None = None,
        credentials: Optional[Credentials] = None,
    ):
        self.config = config or SynthesizerConfig.from_settings(settings.llm)
        self.client = client or LLMCompletionClient(self.config, credentials)

    def synthesize(
        self,
        business: BusinessRecord,
        update: UpdateRecord,
        intent: Intent,
    ) -> SynthesizedContent:
        """Title, description and slug suggestion for one intent page.

        Args:
            business: Business record
            update: Update being announced
            intent: Discovery intent

        Returns:
            SynthesizedContent (source=FALLBACK when the LLM path failed)
        """
        intent = Intent(intent)
        prompt = build_synthesis_prompt(business, update, intent)
        return self._complete_or_fallback(
            prompt,
            label=f"{intent.value} page for update {update.id}",
            fallback=lambda: fallback_content(business, update, intent),
        )

    def synthesize_profile(self, business: BusinessRecord) -> SynthesizedContent:
        """Title and description for the standalone business-profile page."""
        return self._complete_or_fallback(
            build_profile_prompt(business),
            label=f"profile page for business {business.id}",
            fallback=lambda: fallback_profile_content(business),
        )

    def _complete_or_fallback(self, prompt: str, label: str, fallback) -> SynthesizedContent:
        result = self.client.complete(SYSTEM_PROMPT, prompt)
        if not result.success:
            logger.warning("LLM unavailable for %s (%s), using fallback", label, result.error)
            return _with_error(fallback(), result.error or "provider error")

        parsed = parse_synthesis_response(result.text)
        if parsed is None:
            logger.warning("Unparsable LLM output for %s, using fallback", label)
            return _with_error(fallback(), "unparsable completion")

        return SynthesizedContent(
            title=parsed["title"],
            description=parsed["description"],
            slug=parsed.get("slug"),
            source=ContentSource.AI,
        )


def _with_error(content: SynthesizedContent, error: str) -> SynthesizedContent:
    content.error = error
    return content


# --- Response parsing ---

def _strip_fences(text: str) -> str:
    """Extract JSON from response (may be wrapped in ```json ... ```)."""
    if "```json" in text:
        return text.split("```json")[1].split("```")[0]
    if "```" in text:
        return text.split("```")[1].split("```")[0]
    return text


def _regex_fields(text: str) -> dict[str, Any]:
    found: dict[str, Any] = {}
    for name, pattern in _FIELD_PATTERNS.items():
        match = pattern.search(text)
        if not match:
            continue
        try:
            found[name] = json.loads(f'"{match.group(1)}"')
        except json.JSONDecodeError:
            found[name] = match.group(1)
    return found


def parse_synthesis_response(text: str) -> Optional[dict[str, str]]:
    """Parse the model's answer into title/description/slug.

    Strict JSON first, then targeted regex extraction of the three
    fields. Title and description must both be non-empty strings.

    Returns:
        Dict with title, description and optional slug, or None
    """
    if not text:
        return None

    data: Any = None
    try:
        data = json.loads(_strip_fences(text).strip())
    except json.JSONDecodeError:
        logger.debug("Strict JSON parse failed, trying field extraction")
    if not isinstance(data, dict):
        data = _regex_fields(text)

    title = data.get("title")
    description = data.get("description")
    if not isinstance(title, str) or not title.strip():
        return None
    if not isinstance(description, str) or not description.strip():
        return None

    parsed = {"title": " ".join(title.split()), "description": " ".join(description.split())}
    slug = data.get("slug")
    if isinstance(slug, str) and slug.strip():
        parsed["slug"] = slug.strip()
    return parsed


# --- Deterministic fallback ---

def _quote(text: Optional[str], limit: int = QUOTE_LIMIT) -> str:
    text = " ".join((text or "").split())
    if len(text) <= limit:
        return text
    cut = text[:limit].rsplit(" ", 1)[0].rstrip(",.;:!?")
    return f"{cut}..."


def _call_to_action(business: BusinessRecord) -> str:
    if business.phone:
        return f"Call {business.phone} for details."
    if business.website:
        return f"Visit {business.website} for details."
    return f"Visit {business.name} in {business.address_city}."


def _location(business: BusinessRecord) -> str:
    return ", ".join(p for p in (business.address_city, business.address_state) if p)


def fallback_content(
    business: BusinessRecord,
    update: UpdateRecord,
    intent: Intent,
) -> SynthesizedContent:
    """Template copy built purely from record fields.

    Same inputs always give the same output; no clock, no randomness.
    """
    name = business.name or ""
    city = business.address_city or ""
    location = _location(business)
    category = category_display_name(business.primary_category)
    quote = _quote(update.content_text)
    said = f' "{quote}"' if quote else ""
    cta = _call_to_action(business)
    intent = Intent(intent)

    if intent == Intent.LOCAL:
        title = f"{category} in {location} - {name}"
        description = f"Looking for {category.lower()} in {location}? {name} has news:{said} {cta}"
    elif intent == Intent.CATEGORY:
        title = f"Professional {category} Services - {name}"
        description = f"{name} provides {category.lower()} services in {location}. Latest update:{said} {cta}"
    elif intent == Intent.BRANDED_LOCAL:
        title = f"{name} {city} - Latest Update"
        description = f"Latest from {name} in {city}:{said} {cta}"
    elif intent == Intent.SERVICE_URGENT:
        title = f"{name} - Available Now in {location}"
        description = f"Need {category.lower()} in {location}? {name} update:{said} {cta}"
    elif intent == Intent.COMPETITIVE:
        title = f"{name} - {category} in {location}"
        description = f"Comparing {category.lower()} options in {location}? {name} shares:{said} {cta}"
    else:
        title = f"{name} - Current Update - {location}"
        description = f"{name} in {location}:{said} {cta}"

    return SynthesizedContent(
        title=" ".join(title.split()),
        description=" ".join(description.split()),
        slug=None,
        source=ContentSource.FALLBACK,
    )


def fallback_profile_content(business: BusinessRecord) -> SynthesizedContent:
    """Template copy for the business-profile page."""
    location = _location(business)
    category = category_display_name(business.primary_category)
    summary = _quote(business.description) or f"{business.name} is a {category.lower()} business in {location}."
    return SynthesizedContent(
        title=f"{business.name} - {category} in {location}",
        description=f"{summary} {_call_to_action(business)}",
        source=ContentSource.FALLBACK,
    )
