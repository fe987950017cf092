"""URL Builder: file paths and semantic slugs per discovery intent.

Two path shapes exist:

    direct, branded-local         /{country}/{region}/{city}/{business}/{slug}
    local, category, service-urgent, competitive
                                  /{country}/{region}/{city}/{category}/{slug}

Slugs come from the AI suggestion when it looks sane, otherwise from
keywords pattern-matched out of the update text plus an intent pattern.

Usage:
    url = build_intent_url("50% off today!", Intent.LOCAL, business)
    url.file_path  # "/us/wa/seattle/food-dining/50-percent-off-today-pizza-near-me"
"""

from __future__ import annotations

import hashlib
import re
import unicodedata
from datetime import datetime
from typing import Optional

from src.common.models import BusinessRecord, Intent, MissingURLFieldsError

from .models import IntentURL

MAX_SLUG_LENGTH = 50
AI_SLUG_MIN_LENGTH = 6
AI_SLUG_MAX_LENGTH = 80

REQUIRED_URL_FIELDS = ("name", "address_city", "address_state")

BUSINESS_PATH_INTENTS = frozenset({Intent.DIRECT, Intent.BRANDED_LOCAL})

_NON_ALNUM = re.compile(r"[^a-z0-9]+")

# --- Keyword patterns ---

_PERCENT_OFF = re.compile(r"(\d{1,3})\s*%\s*off\b", re.IGNORECASE)
_BOGO = re.compile(r"\b(bogo|buy one,? get one)\b", re.IGNORECASE)
_TWENTY_FOUR_SEVEN = re.compile(r"\b24\s*(/|-|\s)?\s*7\b|\b24 hours\b", re.IGNORECASE)

_TEMPORAL_PATTERNS: tuple[tuple[str, re.Pattern], ...] = (
    ("tonight", re.compile(r"\btonight\b", re.IGNORECASE)),
    ("today", re.compile(r"\btoday\b", re.IGNORECASE)),
    ("tomorrow", re.compile(r"\btomorrow\b", re.IGNORECASE)),
    ("this-weekend", re.compile(r"\b(this )?weekend\b", re.IGNORECASE)),
    ("this-week", re.compile(r"\bthis week\b", re.IGNORECASE)),
)

_SEASONAL_PATTERNS: tuple[tuple[str, re.Pattern], ...] = (
    ("christmas", re.compile(r"\b(christmas|xmas)\b", re.IGNORECASE)),
    ("thanksgiving", re.compile(r"\bthanksgiving\b", re.IGNORECASE)),
    ("halloween", re.compile(r"\bhalloween\b", re.IGNORECASE)),
    ("new-year", re.compile(r"\bnew year'?s?\b", re.IGNORECASE)),
    ("holiday", re.compile(r"\bholidays?\b", re.IGNORECASE)),
    ("summer", re.compile(r"\bsummer\b", re.IGNORECASE)),
    ("winter", re.compile(r"\bwinter\b", re.IGNORECASE)),
    ("spring", re.compile(r"\bspring\b", re.IGNORECASE)),
    ("fall", re.compile(r"\b(fall|autumn)\b", re.IGNORECASE)),
)

# Checked in order; first match is the update kind
_KIND_PATTERNS: tuple[tuple[str, re.Pattern], ...] = (
    ("closure", re.compile(r"\b(closed|close|closing|vacation)\b", re.IGNORECASE)),
    ("deal", re.compile(
        r"%\s*off\b|\b(bogo|deals?|discounts?|sale|specials?|promo|promotion|offers?)\b",
        re.IGNORECASE,
    )),
    ("event", re.compile(
        r"\b(events?|live music|performance|happy hour|concert|workshop|tasting)\b",
        re.IGNORECASE,
    )),
    ("menu", re.compile(r"\b(new menu|new items?|menu|introducing|launching)\b", re.IGNORECASE)),
    ("hours", re.compile(r"\b(hours|open late|opening|extended)\b", re.IGNORECASE)),
)

_STOPWORDS = frozenset({
    "a", "an", "and", "are", "at", "be", "by", "for", "from", "has", "have",
    "in", "is", "it", "its", "our", "of", "on", "or", "the", "this", "to",
    "we", "were", "will", "with", "you", "your", "all", "only", "just",
})


# --- Slug primitives ---

def slugify(text: Optional[str], max_length: int = MAX_SLUG_LENGTH) -> str:
    """Lowercase ASCII slug, hyphen-separated, capped at max_length.

    Accents are folded ("San José" -> "san-jose"). When the cap falls in
    the middle of a word the partial word is dropped.
    """
    if not text:
        return ""
    folded = unicodedata.normalize("NFKD", str(text)).encode("ascii", "ignore").decode()
    slug = _NON_ALNUM.sub("-", folded.lower()).strip("-")
    if len(slug) <= max_length:
        return slug
    cut = slug[:max_length]
    if slug[max_length] != "-" and "-" in cut:
        cut = cut.rsplit("-", 1)[0]
    return cut.strip("-")


def normalize_slug(candidate: Optional[str]) -> Optional[str]:
    """Accept an AI-suggested slug if its raw length is within bounds.

    Returns:
        The normalized slug, or None when the suggestion is unusable.
    """
    if not candidate:
        return None
    candidate = candidate.strip()
    if not AI_SLUG_MIN_LENGTH <= len(candidate) <= AI_SLUG_MAX_LENGTH:
        return None
    return slugify(candidate) or None


def require_url_fields(business: BusinessRecord) -> None:
    """Raise MissingURLFieldsError unless name, city and region are present."""
    missing = [
        field_name
        for field_name in REQUIRED_URL_FIELDS
        if not (getattr(business, field_name) or "").strip()
    ]
    if missing:
        raise MissingURLFieldsError(missing, business_id=business.id)


# --- Keyword extraction ---

def classify_update(text: str) -> str:
    """Coarse update kind: closure, deal, event, menu, hours or general."""
    for kind, pattern in _KIND_PATTERNS:
        if pattern.search(text or ""):
            return kind
    return "general"


def _kind_keyword(kind: str, text: str) -> Optional[str]:
    if kind == "closure":
        if re.search(r"\b(until|through|till|back)\b", text, re.IGNORECASE):
            return "closed-until"
        return "temporarily-closed"
    if kind == "event":
        if re.search(r"\bhappy hour\b", text, re.IGNORECASE):
            return "happy-hour"
        if re.search(r"\blive music\b", text, re.IGNORECASE):
            return "live-music"
        return "upcoming-event"
    if kind == "menu":
        return "menu-update"
    if kind == "hours":
        return "hours-update"
    if kind == "deal":
        return "special-offer"
    return None


def _first_match(patterns: tuple[tuple[str, re.Pattern], ...], text: str) -> Optional[str]:
    for keyword, pattern in patterns:
        if pattern.search(text):
            return keyword
    return None


def extract_keywords(text: str) -> list[str]:
    """Semantic keywords found in update text, most specific first.

    Examples:
        "50% off all services today only!" -> ["50-percent-off", "today"]
        "Closed until Monday for vacation" -> ["closed-until"]
    """
    text = text or ""
    keywords: list[str] = []

    percent = _PERCENT_OFF.search(text)
    if percent:
        keywords.append(f"{percent.group(1)}-percent-off")
    if _BOGO.search(text):
        keywords.append("bogo")

    kind = classify_update(text)
    kind_keyword = _kind_keyword(kind, text)
    # A concrete discount already says "deal"
    if kind_keyword and not (kind == "deal" and keywords):
        keywords.append(kind_keyword)

    temporal = _first_match(_TEMPORAL_PATTERNS, text)
    if temporal:
        keywords.append(temporal)
    seasonal = _first_match(_SEASONAL_PATTERNS, text)
    if seasonal and seasonal not in keywords:
        keywords.append(seasonal)

    return keywords


def _fallback_words(text: str, limit: int = 4) -> list[str]:
    words = [w for w in slugify(text, max_length=200).split("-") if w]
    meaningful = [w for w in words if w not in _STOPWORDS and len(w) > 1]
    return meaningful[:limit]


def _service_hint(business: BusinessRecord) -> str:
    if business.services:
        hint = slugify(business.services[0], max_length=24)
        if hint:
            return hint
    return slugify(business.primary_category or "local-business", max_length=24)


def _compose(prefix: list[str], base: list[str], suffix: list[str]) -> str:
    """Join parts, dropping base keywords from the end until it fits."""
    base = list(base)
    while True:
        parts = [p for p in prefix + base + suffix if p]
        # keep first occurrence of each part
        seen: list[str] = []
        for part in parts:
            if part not in seen:
                seen.append(part)
        joined = "-".join(seen)
        if len(joined) <= MAX_SLUG_LENGTH or not base:
            return slugify(joined)
        base.pop()


def _intent_slug(
    intent: Intent,
    text: str,
    business: BusinessRecord,
    year: int,
) -> str:
    base = extract_keywords(text) or _fallback_words(text) or ["update"]
    service = _service_hint(business)

    if intent == Intent.LOCAL:
        slug = _compose([], base[:2], [service, "near-me"])
    elif intent == Intent.CATEGORY:
        slug = _compose([service], base, [])
    elif intent == Intent.BRANDED_LOCAL:
        slug = _compose([], base, [slugify(business.address_city)])
    elif intent == Intent.SERVICE_URGENT:
        urgent = "available-24-7" if _TWENTY_FOUR_SEVEN.search(text) else "emergency"
        slug = _compose([service], base, [urgent])
    elif intent == Intent.COMPETITIVE:
        slug = _compose(["top-rated", service, str(year)], base, [])
    else:
        slug = _compose([], base, [])
    return slug or "update"


# --- Paths ---

def _path_prefix(intent: Intent, business: BusinessRecord) -> str:
    country = slugify(business.country or "us") or "us"
    region = slugify(business.address_state)
    city = slugify(business.address_city)
    if intent in BUSINESS_PATH_INTENTS:
        section = slugify(business.slug or business.name)
    else:
        section = slugify(business.primary_category or "local-business")
    return f"/{country}/{region}/{city}/{section}"


def build_intent_url(
    update_text: str,
    intent: Intent,
    business: BusinessRecord,
    ai_slug: Optional[str] = None,
    year: Optional[int] = None,
) -> IntentURL:
    """Build the file path, slug and variant tag for one intent page.

    Args:
        update_text: Free-text business update
        intent: Discovery intent
        business: Business record (name, city and region required)
        ai_slug: Optional slug suggested by the content synthesizer
        year: Current year for competitive slugs (defaults to now)

    Returns:
        IntentURL

    Raises:
        MissingURLFieldsError: If name, address_city or address_state is empty
    """
    require_url_fields(business)
    intent = Intent(intent)

    slug = normalize_slug(ai_slug)
    if slug is None:
        slug = _intent_slug(intent, update_text, business, year or datetime.now().year)

    return IntentURL(
        file_path=f"{_path_prefix(intent, business)}/{slug}",
        slug=slug,
        page_variant=f"{intent.value}-{classify_update(update_text)}",
    )


def build_profile_url(business: BusinessRecord) -> IntentURL:
    """Path of the standalone business-profile page."""
    require_url_fields(business)
    prefix = _path_prefix(Intent.DIRECT, business)
    section = prefix.rsplit("/", 1)[-1]
    return IntentURL(file_path=prefix, slug=section, page_variant="business-profile")


def content_hash(*parts: str, length: int = 6) -> str:
    """Short stable hex digest used to disambiguate colliding slugs."""
    digest = hashlib.sha1("\x1f".join(p or "" for p in parts).encode("utf-8"))
    return digest.hexdigest()[:length]


def apply_collision_suffix(url: IntentURL, suffix: str) -> IntentURL:
    """Append ``-{suffix}`` to the slug and path, keeping the slug cap."""
    room = MAX_SLUG_LENGTH - len(suffix) - 1
    stem = url.slug if len(url.slug) <= room else url.slug[:room].rstrip("-")
    slug = f"{stem}-{suffix}"
    parent = url.file_path.rsplit("/", 1)[0]
    return IntentURL(
        file_path=f"{parent}/{slug}",
        slug=slug,
        page_variant=url.page_variant,
    )
