"""Prompt templates for per-intent title/description synthesis.

Prompts only ever contain fields that are actually set on the business
and update records, so the model has nothing to embellish from.
"""

from __future__ import annotations

from typing import Optional

from src.common.models import BusinessRecord, Intent, UpdateRecord
from src.page_engine.template_engine.models import category_display_name

TITLE_LENGTH = (50, 150)
DESCRIPTION_LENGTH = (150, 300)
SLUG_LENGTH = (30, 80)

SYSTEM_PROMPT = """You write search and AI-assistant discovery copy for local businesses.

Hard rules:
1. Use ONLY the facts given in the prompt. Do not invent rankings, awards,
   services, locations, prices, ratings or any claim that is not stated.
2. Never call the business "best", "top", "#1" or "leading" unless that
   exact claim appears in the facts.
3. Write in plain, natural English that reads well aloud.
4. Respond with a single JSON object and nothing else."""

INTENT_GUIDANCE: dict[Intent, str] = {
    Intent.DIRECT: (
        "Audience: people searching for this business by name. Lead with the "
        "business name and state the update plainly."
    ),
    Intent.LOCAL: (
        "Audience: people nearby searching for this kind of business "
        "(\"near me\" searches). Lead with the category and the city."
    ),
    Intent.CATEGORY: (
        "Audience: people searching for the service or category itself. Lead "
        "with the service/category; mention the business second."
    ),
    Intent.BRANDED_LOCAL: (
        "Audience: people searching for the business name together with the "
        "city. Combine name and city in the title."
    ),
    Intent.SERVICE_URGENT: (
        "Audience: people who need this service right now. Emphasize current "
        "availability and how to get in touch. Only mention 24/7 or emergency "
        "service if the facts say so."
    ),
    Intent.COMPETITIVE: (
        "Audience: people comparing options in this category. Frame the "
        "business through its stated specialties, awards and certifications "
        "only; make no comparative claims that are not in the facts."
    ),
}

PROFILE_GUIDANCE = (
    "Audience: people looking for an overview of this business. Summarize "
    "what it is, where it is and what it offers."
)


def _join(values: list) -> str:
    labels = []
    for value in values or []:
        if isinstance(value, dict):
            value = value.get("name") or value.get("title")
        if value:
            labels.append(str(value))
    return ", ".join(labels)


def build_business_facts(business: BusinessRecord) -> list[str]:
    """Bullet lines for every populated business field used in copy."""
    facts: list[str] = []

    def add(label: str, value: Optional[str]) -> None:
        if value:
            facts.append(f"- {label}: {value}")

    add("Business name", business.name)
    add("Category", category_display_name(business.primary_category) if business.primary_category else None)
    add("City", business.address_city)
    add("State/region", business.address_state)
    add("Street address", business.address_street)
    add("Description", business.description)
    add("Services", _join(business.services))
    add("Specialties", _join(business.specialties))
    add("Hours", business.hours)
    add("Price level", business.price_positioning)
    add("Service area", business.service_area)
    add("Awards", _join(business.awards))
    add("Certifications", _join(business.certifications))
    add("Phone", business.phone)
    add("Website", business.website)
    if business.established_year:
        add("Established", str(business.established_year))
    return facts


def build_update_facts(update: UpdateRecord) -> list[str]:
    facts = [f"- Update text: {update.content_text.strip()}"] if update.content_text else []
    if update.deal_terms:
        facts.append(f"- Deal terms: {update.deal_terms}")
    if update.special_hours_today:
        facts.append(f"- Special hours today: {update.special_hours_today}")
    return facts


def _output_spec() -> str:
    return (
        "Return JSON with exactly these keys:\n"
        "{\n"
        f'  "title": "{TITLE_LENGTH[0]}-{TITLE_LENGTH[1]} characters",\n'
        f'  "description": "{DESCRIPTION_LENGTH[0]}-{DESCRIPTION_LENGTH[1]} characters, '
        'a meta description that quotes or paraphrases the update",\n'
        f'  "slug": "{SLUG_LENGTH[0]}-{SLUG_LENGTH[1]} characters, lowercase words joined by hyphens"\n'
        "}"
    )


def build_synthesis_prompt(
    business: BusinessRecord,
    update: UpdateRecord,
    intent: Intent,
) -> str:
    """User prompt for one intent page.

    Args:
        business: Business record
        update: Update being announced
        intent: Discovery intent the copy is tuned for

    Returns:
        Prompt string
    """
    lines = [
        f"Write discovery copy for a \"{Intent(intent).value}\" page.",
        INTENT_GUIDANCE[Intent(intent)],
        "",
        "Facts about the business:",
        *build_business_facts(business),
        "",
        "The update:",
        *build_update_facts(update),
        "",
        _output_spec(),
    ]
    return "\n".join(lines)


def build_profile_prompt(business: BusinessRecord) -> str:
    """User prompt for the standalone business-profile page."""
    lines = [
        "Write discovery copy for the business's profile page.",
        PROFILE_GUIDANCE,
        "",
        "Facts about the business:",
        *build_business_facts(business),
        "",
        _output_spec(),
    ]
    return "\n".join(lines)
