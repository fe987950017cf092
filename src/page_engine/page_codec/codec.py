"""Page Data Codec: PageData <-> compact storage dict.

    compact = compress(page)        # what goes into generated_pages.page_data
    page = expand(compact)          # what the template engine renders

Empty values (None, "", [], {}, 0, False) compress to omitted keys.
Everything else survives ``expand(compress(page))`` with type and value
intact.
"""

from __future__ import annotations

import copy
import json
from typing import Any, Optional, Union

from src.page_engine.template_engine.models import (
    DEFAULT_COUNTRY,
    DEFAULT_PAYMENT_METHODS,
    BusinessData,
    FAQEntry,
    IntentData,
    PageData,
    SEOData,
    UpdateData,
)

from .models import CompactPageData

# canonical field -> compact key
BUSINESS_KEYS: dict[str, str] = {
    "id": "id",
    "slug": "slug",
    "name": "n",
    "address_city": "c",
    "address_state": "s",
    "address_street": "st",
    "zip_code": "z",
    "country": "country",
    "phone": "p",
    "phone_country_code": "pcc",
    "email": "e",
    "website": "w",
    "description": "d",
    "primary_category": "cat",
    "services": "srv",
    "specialties": "sp",
    "hours": "h",
    "structured_hours": "sh",
    "price_positioning": "pr",
    "payment_methods": "pm",
    "service_area": "sa",
    "service_area_details": "sad",
    "awards": "aw",
    "certifications": "cert",
    "latitude": "lat",
    "longitude": "lng",
    "languages_spoken": "lang",
    "accessibility_features": "acc",
    "parking_info": "park",
    "enhanced_parking_info": "epark",
    "review_summary": "rev",
    "status_override": "stat",
    "business_faqs": "faqs",
    "featured_items": "feat",
    "social_media": "social",
    "established_year": "est",
}

UPDATE_KEYS: dict[str, str] = {
    "id": "id",
    "content_text": "t",
    "created_at": "ca",
    "expires_at": "ea",
    "special_hours_today": "sh",
    "deal_terms": "dt",
    "update_category": "cat",
    "update_faqs": "faqs",
}

SEO_KEYS: dict[str, str] = {"title": "title", "description": "description"}

INTENT_KEYS: dict[str, str] = {
    "type": "type",
    "file_path": "filePath",
    "slug": "slug",
    "page_variant": "pageVariant",
}

_FAQ_FIELDS = {"business_faqs", "update_faqs"}


def _present(value: Any) -> bool:
    """False for None and for falsy scalars/containers."""
    if value is None:
        return False
    if isinstance(value, (str, list, tuple, dict, set)):
        return len(value) > 0
    return bool(value)


def _compress_faq(faq: FAQEntry) -> dict:
    data: dict[str, Any] = {"question": faq.question, "answer": faq.answer}
    if faq.category:
        data["category"] = faq.category
    if faq.voice_search_triggers:
        data["voiceSearchTriggers"] = list(faq.voice_search_triggers)
    return data


def _expand_faq(data: dict) -> FAQEntry:
    return FAQEntry(
        question=data["question"],
        answer=data["answer"],
        category=data.get("category"),
        voice_search_triggers=list(data.get("voiceSearchTriggers") or []),
    )


def _compress_group(obj: Any, keys: dict[str, str]) -> dict:
    group: dict[str, Any] = {}
    for field_name, short in keys.items():
        value = getattr(obj, field_name)
        if not _present(value):
            continue
        if field_name in _FAQ_FIELDS:
            group[short] = [_compress_faq(faq) for faq in value]
        else:
            group[short] = copy.deepcopy(value)
    return group


def _expand_group(group: dict, keys: dict[str, str]) -> dict:
    values: dict[str, Any] = {}
    for field_name, short in keys.items():
        if short not in group:
            continue
        value = group[short]
        if field_name in _FAQ_FIELDS:
            value = [_expand_faq(item) for item in value]
        values[field_name] = value
    return values


def compress(page: PageData) -> dict:
    """Compress canonical page data into the short-keyed storage dict.

    Args:
        page: Canonical page data

    Returns:
        JSON-ready dict with groups b, u, seo, i, f (empty groups omitted)
    """
    raw: dict[str, Any] = {}

    business = _compress_group(page.business, BUSINESS_KEYS)
    if business:
        raw["b"] = business
    if page.update is not None:
        update = _compress_group(page.update, UPDATE_KEYS)
        if update:
            raw["u"] = update
    seo = _compress_group(page.seo, SEO_KEYS)
    if seo:
        raw["seo"] = seo
    intent = _compress_group(page.intent, INTENT_KEYS)
    if intent:
        raw["i"] = intent
    if page.faqs:
        raw["f"] = [_compress_faq(faq) for faq in page.faqs]

    return CompactPageData.model_validate(raw).dump()


def expand(compact: Union[dict, CompactPageData, None]) -> PageData:
    """Expand a compact storage dict back into canonical page data.

    Absent fields come back as None, except payment_methods (defaults to
    Cash/Credit Card) and country (defaults to "US").

    Args:
        compact: Stored page_data (dict or already-validated model)

    Returns:
        PageData
    """
    if compact is None:
        compact = {}
    if isinstance(compact, CompactPageData):
        compact = compact.dump()
    else:
        compact = CompactPageData.model_validate(compact).dump()

    business_values = _expand_group(compact.get("b", {}), BUSINESS_KEYS)
    business_values.setdefault("payment_methods", list(DEFAULT_PAYMENT_METHODS))
    business_values.setdefault("country", DEFAULT_COUNTRY)
    business = BusinessData(**business_values)

    update: Optional[UpdateData] = None
    if "u" in compact:
        update = UpdateData(**_expand_group(compact["u"], UPDATE_KEYS))

    faqs = [_expand_faq(item) for item in compact.get("f", [])] or None

    return PageData(
        business=business,
        update=update,
        seo=SEOData(**_expand_group(compact.get("seo", {}), SEO_KEYS)),
        intent=IntentData(**_expand_group(compact.get("i", {}), INTENT_KEYS)),
        faqs=faqs,
    )


def compressed_size_bytes(compact: dict) -> int:
    """Byte length of the compact dict as stored JSON."""
    return len(json.dumps(compact, separators=(",", ":"), ensure_ascii=False).encode("utf-8"))
