"""
Formatting and availability helpers shared by templates, schema and voice.
"""

import json
import re
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Any, Optional
from urllib.parse import urlsplit

from markupsafe import Markup

from .models import BusinessData

DAY_KEYS = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")
DAY_NAMES = {
    "mon": "Monday",
    "tue": "Tuesday",
    "wed": "Wednesday",
    "thu": "Thursday",
    "fri": "Friday",
    "sat": "Saturday",
    "sun": "Sunday",
}

_TIME_PATTERN = re.compile(r"^\s*(\d{1,2})(?::(\d{2}))?\s*([ap]\.?m\.?)?\s*$", re.IGNORECASE)

# JSON-LD goes inside <script>; these must not appear literally
_SCRIPT_UNSAFE = {"<": "\\u003c", ">": "\\u003e", "&": "\\u0026"}


# --- Text ---

def item_label(value: Any) -> str:
    """Display label for list items that may be plain strings or dicts."""
    if isinstance(value, dict):
        return str(value.get("name") or value.get("title") or "")
    return str(value) if value is not None else ""


def labels(values: Optional[list]) -> list[str]:
    return [label for label in (item_label(v) for v in values or []) if label]


def safe_url(value: Optional[str]) -> str:
    """The URL if it is absolute http(s), otherwise an empty string."""
    url = (value or "").strip()
    try:
        parts = urlsplit(url)
    except ValueError:
        return ""
    if parts.scheme.lower() not in ("http", "https") or not parts.netloc:
        return ""
    return url


def format_phone_display(phone: Optional[str]) -> str:
    """(206) 555-0100 for 10-digit numbers, unchanged otherwise."""
    if not phone:
        return ""
    digits = re.sub(r"\D", "", phone)
    if len(digits) == 10:
        return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"
    if len(digits) == 11 and digits.startswith("1"):
        return f"+1 ({digits[1:4]}) {digits[4:7]}-{digits[7:]}"
    return phone


def tel_href(phone: Optional[str], country_code: Optional[str] = None) -> str:
    """tel: URI for a phone number."""
    if not phone:
        return ""
    digits = re.sub(r"[^\d+]", "", phone)
    if country_code and not digits.startswith("+"):
        code = re.sub(r"\D", "", country_code)
        digits = f"+{code}{digits}"
    return f"tel:{digits}"


def script_safe_json(data: Any) -> Markup:
    """Serialize for an inline <script> block.

    Output is stable (insertion-ordered keys, two-space indent) and never
    contains a literal ``<``, ``>`` or ``&``.
    """
    text = json.dumps(data, indent=2, ensure_ascii=False)
    for char, escaped in _SCRIPT_UNSAFE.items():
        text = text.replace(char, escaped)
    return Markup(text)


# --- Dates ---

def parse_iso(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def format_display_date(value: Any) -> str:
    """Long date such as "October 19, 2026" from an ISO string or datetime."""
    parsed = value if isinstance(value, datetime) else parse_iso(value)
    if parsed is None:
        return ""
    return f"{parsed.strftime('%B')} {parsed.day}, {parsed.year}"


def urgency_level(expires_at: Optional[str], now: datetime) -> str:
    """high (<= 6h left), medium (<= 24h), low otherwise or unknown."""
    expiry = parse_iso(expires_at)
    if expiry is None:
        return "low"
    if expiry.tzinfo is None and now.tzinfo is not None:
        expiry = expiry.replace(tzinfo=now.tzinfo)
    remaining = expiry - now
    if remaining <= timedelta(hours=6):
        return "high"
    if remaining <= timedelta(hours=24):
        return "medium"
    return "low"


# --- Hours ---

def parse_clock(value: Optional[str]) -> Optional[time]:
    """Parse "09:00", "9", "9:30pm" or "9 PM" into a time."""
    if not value:
        return None
    match = _TIME_PATTERN.match(str(value))
    if not match:
        return None
    hour = int(match.group(1))
    minute = int(match.group(2) or 0)
    meridiem = (match.group(3) or "").lower().replace(".", "")
    if meridiem == "pm" and hour < 12:
        hour += 12
    elif meridiem == "am" and hour == 12:
        hour = 0
    if hour == 24:
        hour = 0
    if not (0 <= hour < 24 and 0 <= minute < 60):
        return None
    return time(hour, minute)


def format_clock(value: Optional[time]) -> str:
    """12-hour label, e.g. "10:00 PM"."""
    if value is None:
        return ""
    hour = value.hour % 12 or 12
    suffix = "AM" if value.hour < 12 else "PM"
    return f"{hour}:{value.minute:02d} {suffix}"


def day_key(now: datetime) -> str:
    return DAY_KEYS[now.weekday()]


def todays_hours(business: BusinessData, now: datetime) -> Optional[dict]:
    """Structured-hours entry for now's weekday, if one is recorded."""
    hours = business.structured_hours or {}
    entry = hours.get(day_key(now))
    return entry if isinstance(entry, dict) else None


def weekly_hours(business: BusinessData) -> list[dict]:
    """Rows of {day, label} in Monday-first order for the hours table."""
    rows = []
    for key in DAY_KEYS:
        entry = (business.structured_hours or {}).get(key)
        if not isinstance(entry, dict):
            continue
        if entry.get("closed"):
            rows.append({"day": DAY_NAMES[key], "label": "Closed"})
            continue
        opens, closes = parse_clock(entry.get("open")), parse_clock(entry.get("close"))
        if opens and closes:
            rows.append({"day": DAY_NAMES[key], "label": f"{format_clock(opens)} - {format_clock(closes)}"})
    return rows


@dataclass
class Availability:
    """Open/closed state at a given instant."""
    state: str  # open, closed, closed_emergency, closed_holiday, temporarily_closed, unknown
    label: str
    closes_at: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.state == "open"

    @property
    def is_override(self) -> bool:
        return self.state in ("closed_emergency", "closed_holiday", "temporarily_closed")


_OVERRIDE_LABELS = {
    "closed_emergency": "Temporarily closed due to an emergency",
    "closed_holiday": "Closed today for a holiday",
    "temporarily_closed": "Temporarily closed",
}


def availability(business: BusinessData, now: datetime) -> Availability:
    """Current availability from the status override and structured hours.

    A previous-day entry that closes past midnight keeps the business open
    into the early hours. Without an override or structured hours for today
    the state is "unknown"; nothing is assumed.
    """
    if business.status_override in _OVERRIDE_LABELS:
        return Availability(state=business.status_override, label=_OVERRIDE_LABELS[business.status_override])

    current = now.time().replace(tzinfo=None)

    # previous day's shift running past midnight
    previous = todays_hours(business, now - timedelta(days=1))
    if previous and not previous.get("closed"):
        opened, closed = parse_clock(previous.get("open")), parse_clock(previous.get("close"))
        if opened is not None and closed is not None and closed < opened and current < closed:
            closing = format_clock(closed)
            return Availability(state="open", label=f"Open now until {closing}", closes_at=closing)

    entry = todays_hours(business, now)
    if entry is None:
        return Availability(state="unknown", label="")
    if entry.get("closed"):
        return Availability(state="closed", label="Closed today")

    opens, closes = parse_clock(entry.get("open")), parse_clock(entry.get("close"))
    if opens is None or closes is None:
        return Availability(state="unknown", label="")

    if closes > opens:
        is_open = opens <= current < closes
    else:
        # past midnight close, e.g. 18:00-02:00
        is_open = current >= opens
    if is_open:
        closing = format_clock(closes)
        return Availability(state="open", label=f"Open now until {closing}", closes_at=closing)
    return Availability(state="closed", label="Closed now")
