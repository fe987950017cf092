"""Freshness tagging for update text.

Every update gets the base ``updated-today`` tag. Further tags are added
for each vocabulary group found in the text, and the tag set decides how
long the page stays marked as fresh:

    happening-now / special-active   now + 24h
    event-today                      next local midnight
    anything else                    now + 7 days
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta, timezone
from typing import Optional

BASE_TAG = "updated-today"

DEFAULT_EXPIRY = timedelta(days=7)
SHORT_EXPIRY = timedelta(hours=24)

_CLOSURE = re.compile(r"\b(closed?|closing|vacation|holidays?)\b", re.IGNORECASE)

# (pattern, tags) in precedence order; closure tags sit between the two groups
_LEADING_RULES: tuple[tuple[re.Pattern, tuple[str, ...]], ...] = (
    (
        re.compile(
            r"%\s*off\b|\b(specials?|deals?|offers?|discounts?|sale|promo|promotion)\b",
            re.IGNORECASE,
        ),
        ("special-active", "limited-time-offer"),
    ),
    (
        re.compile(r"\b(today|tonight|now|this week|weekend)\b", re.IGNORECASE),
        ("happening-now",),
    ),
    (
        re.compile(
            r"\b(emergency|urgent|immediate(ly)?|asap)\b|\b24\s*(/|-|\s)?\s*7\b",
            re.IGNORECASE,
        ),
        ("emergency-available", "immediate-service"),
    ),
)

_TRAILING_RULES: tuple[tuple[re.Pattern, tuple[str, ...]], ...] = (
    (
        re.compile(r"\b(events?|live music|performance|happy hour)\b", re.IGNORECASE),
        ("event-today",),
    ),
    (
        re.compile(r"\b(new menu|new items?|introducing|launching)\b", re.IGNORECASE),
        ("new-offerings",),
    ),
)

_TEMPORARY = re.compile(r"\b(temporarily|until|back)\b", re.IGNORECASE)
_HOLIDAY = re.compile(r"\bholidays?\b", re.IGNORECASE)


@dataclass
class FreshnessResult:
    """Tags for one update and the instant they stop applying."""
    tags: list[str] = field(default_factory=list)
    expires_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "tags": list(self.tags),
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }


def detect_dynamic_tags(text: str) -> list[str]:
    """Ordered, de-duplicated tags for update text; always starts with BASE_TAG."""
    text = text or ""
    tags = [BASE_TAG]

    def add(*new_tags: str) -> None:
        for tag in new_tags:
            if tag not in tags:
                tags.append(tag)

    for pattern, rule_tags in _LEADING_RULES:
        if pattern.search(text):
            add(*rule_tags)

    if _CLOSURE.search(text):
        if _TEMPORARY.search(text):
            add("temporarily-closed")
        if _HOLIDAY.search(text):
            add("holiday-hours")

    for pattern, rule_tags in _TRAILING_RULES:
        if pattern.search(text):
            add(*rule_tags)

    return tags


def _next_midnight(now: datetime) -> datetime:
    tomorrow = (now + timedelta(days=1)).date()
    return datetime.combine(tomorrow, time.min, tzinfo=now.tzinfo)


def calculate_tag_expiration(tags: list[str], now: Optional[datetime] = None) -> datetime:
    """Expiry instant for a tag set.

    Args:
        tags: Output of detect_dynamic_tags
        now: Reference time; its tzinfo defines "local midnight"

    Returns:
        Timezone-aware expiry datetime
    """
    now = now or datetime.now(timezone.utc)
    if "happening-now" in tags or "special-active" in tags:
        return now + SHORT_EXPIRY
    if "event-today" in tags:
        return _next_midnight(now)
    return now + DEFAULT_EXPIRY


def tag_update(text: str, now: Optional[datetime] = None) -> FreshnessResult:
    """Tag update text and compute when the tags expire."""
    tags = detect_dynamic_tags(text)
    return FreshnessResult(tags=tags, expires_at=calculate_tag_expiration(tags, now))


def is_time_sensitive(tags: list[str]) -> bool:
    """True when the tags carry more than the base freshness marker."""
    return any(tag != BASE_TAG for tag in tags)
