"""Compact (on-disk) page data model.

Every field is optional: a missing key means "absent", never null. The
models only ever serialize with ``exclude_none=True``.

Key map (business ``b``):
    n name, c address_city, s address_state, st address_street, z zip_code,
    p phone, pcc phone_country_code, e email, w website, d description,
    cat primary_category, srv services, sp specialties, h hours,
    sh structured_hours, pr price_positioning, pm payment_methods,
    sa service_area, sad service_area_details, aw awards, cert certifications,
    lat/lng coordinates, lang languages_spoken, acc accessibility_features,
    park parking_info, epark enhanced_parking_info, rev review_summary,
    stat status_override, faqs business_faqs, feat featured_items,
    social social_media, est established_year

Key map (update ``u``):
    t content_text, ca created_at, ea expires_at, sh special_hours_today,
    dt deal_terms, cat update_category, faqs update_faqs
"""

from __future__ import annotations

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

Number = Union[int, float]


class _Compact(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    def dump(self) -> dict:
        return self.model_dump(exclude_none=True, by_alias=True)


class CompactFAQ(_Compact):
    question: str
    answer: str
    category: Optional[str] = None
    voice_search_triggers: Optional[list[str]] = Field(default=None, alias="voiceSearchTriggers")


class CompactBusiness(_Compact):
    id: Optional[str] = None
    slug: Optional[str] = None
    n: Optional[str] = None
    c: Optional[str] = None
    s: Optional[str] = None
    st: Optional[str] = None
    z: Optional[str] = None
    country: Optional[str] = None
    p: Optional[str] = None
    pcc: Optional[str] = None
    e: Optional[str] = None
    w: Optional[str] = None
    d: Optional[str] = None
    cat: Optional[str] = None
    srv: Optional[list[str]] = None
    sp: Optional[list[str]] = None
    h: Optional[str] = None
    sh: Optional[dict[str, Any]] = None
    pr: Optional[str] = None
    pm: Optional[list[str]] = None
    sa: Optional[str] = None
    sad: Optional[Any] = None
    aw: Optional[list[Any]] = None
    cert: Optional[list[Any]] = None
    lat: Optional[Number] = None
    lng: Optional[Number] = None
    lang: Optional[list[str]] = None
    acc: Optional[list[str]] = None
    park: Optional[str] = None
    epark: Optional[Any] = None
    rev: Optional[dict[str, Any]] = None
    stat: Optional[str] = None
    faqs: Optional[list[CompactFAQ]] = None
    feat: Optional[list[Any]] = None
    social: Optional[dict[str, Any]] = None
    est: Optional[Union[int, str]] = None


class CompactUpdate(_Compact):
    id: Optional[str] = None
    t: Optional[str] = None
    ca: Optional[str] = None
    ea: Optional[str] = None
    sh: Optional[str] = None
    dt: Optional[str] = None
    cat: Optional[str] = None
    faqs: Optional[list[CompactFAQ]] = None


class CompactSEO(_Compact):
    title: Optional[str] = None
    description: Optional[str] = None


class CompactIntent(_Compact):
    type: Optional[str] = None
    file_path: Optional[str] = Field(default=None, alias="filePath")
    slug: Optional[str] = None
    page_variant: Optional[str] = Field(default=None, alias="pageVariant")


class CompactPageData(_Compact):
    """Short-keyed mirror of PageData: b, u, seo, i, f."""
    b: Optional[CompactBusiness] = None
    u: Optional[CompactUpdate] = None
    seo: Optional[CompactSEO] = None
    i: Optional[CompactIntent] = None
    f: Optional[list[CompactFAQ]] = None
