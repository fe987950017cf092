"""
Data models for the template engine.
PageData is the canonical (expanded) form of a page's rendering input.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from src.common.models import BusinessRecord, FAQItem, UpdateRecord


CATEGORY_DISPLAY_NAMES: dict[str, str] = {
    "food-dining": "Restaurant & Dining",
    "shopping": "Retail & Shopping",
    "beauty-grooming": "Beauty & Grooming",
    "health-medical": "Healthcare & Medical",
    "repairs-services": "Repair Services",
    "professional-services": "Professional Services",
    "activities-entertainment": "Entertainment & Activities",
    "education-training": "Education & Training",
    "creative-digital": "Creative & Digital Services",
    "transportation-delivery": "Transportation & Delivery",
}

DEFAULT_PAYMENT_METHODS = ["Cash", "Credit Card"]
DEFAULT_COUNTRY = "US"


def _blank_to_none(value: Any) -> Any:
    if value == "" or value == [] or value == {}:
        return None
    return value


def category_display_name(category: Optional[str]) -> str:
    """Human label for a taxonomy value ("food-dining" -> "Restaurant & Dining")."""
    if not category:
        return "Local Business"
    if category in CATEGORY_DISPLAY_NAMES:
        return CATEGORY_DISPLAY_NAMES[category]
    return category.replace("-", " ").replace("_", " ").title()


@dataclass
class FAQEntry:
    """A question/answer pair, optionally tagged with voice trigger phrases."""
    question: str
    answer: str
    category: Optional[str] = None
    voice_search_triggers: list[str] = field(default_factory=list)

    @classmethod
    def from_item(cls, item: FAQItem) -> "FAQEntry":
        return cls(question=item.question, answer=item.answer, category=item.category)

    def to_dict(self) -> dict:
        data: dict[str, Any] = {"question": self.question, "answer": self.answer}
        if self.category:
            data["category"] = self.category
        if self.voice_search_triggers:
            data["voice_search_triggers"] = list(self.voice_search_triggers)
        return data


@dataclass
class BusinessData:
    """Business fields a page can render. Absent fields are None."""
    id: Optional[str] = None
    name: Optional[str] = None
    slug: Optional[str] = None
    address_city: Optional[str] = None
    address_state: Optional[str] = None
    address_street: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None
    phone: Optional[str] = None
    phone_country_code: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    description: Optional[str] = None
    primary_category: Optional[str] = None
    services: Optional[list[str]] = None
    specialties: Optional[list[str]] = None
    hours: Optional[str] = None
    structured_hours: Optional[dict[str, Any]] = None
    price_positioning: Optional[str] = None
    payment_methods: Optional[list[str]] = None
    service_area: Optional[str] = None
    service_area_details: Optional[Any] = None
    awards: Optional[list[Any]] = None
    certifications: Optional[list[Any]] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    languages_spoken: Optional[list[str]] = None
    accessibility_features: Optional[list[str]] = None
    parking_info: Optional[str] = None
    enhanced_parking_info: Optional[Any] = None
    review_summary: Optional[dict[str, Any]] = None
    status_override: Optional[str] = None
    business_faqs: Optional[list[FAQEntry]] = None
    featured_items: Optional[list[Any]] = None
    social_media: Optional[dict[str, Any]] = None
    established_year: Optional[int] = None

    @classmethod
    def from_record(cls, record: BusinessRecord) -> "BusinessData":
        data = record.model_dump(exclude={"business_faqs"})
        faqs = [FAQEntry.from_item(item) for item in record.business_faqs]
        return cls(
            **{
                k: _blank_to_none(v)
                for k, v in data.items()
                if k in cls.__dataclass_fields__
            },
            business_faqs=faqs or None,
        )

    @property
    def category_display(self) -> str:
        return category_display_name(self.primary_category)

    @property
    def location(self) -> str:
        """City and region, e.g. "Seattle, WA"; empty when neither is known."""
        return ", ".join(p for p in (self.address_city, self.address_state) if p)


@dataclass
class UpdateData:
    """The update a page announces."""
    id: Optional[str] = None
    content_text: Optional[str] = None
    created_at: Optional[str] = None
    expires_at: Optional[str] = None
    special_hours_today: Optional[str] = None
    deal_terms: Optional[str] = None
    update_category: Optional[str] = None
    update_faqs: Optional[list[FAQEntry]] = None

    @classmethod
    def from_record(cls, record: UpdateRecord) -> "UpdateData":
        faqs = [FAQEntry.from_item(item) for item in record.update_faqs]
        return cls(
            id=record.id,
            content_text=record.content_text or None,
            created_at=record.created_at,
            expires_at=record.expires_at,
            special_hours_today=record.special_hours_today,
            deal_terms=record.deal_terms,
            update_category=record.update_category,
            update_faqs=faqs or None,
        )


@dataclass
class SEOData:
    """Synthesized title and meta description."""
    title: Optional[str] = None
    description: Optional[str] = None


@dataclass
class IntentData:
    """Which intent the page serves and where it lives."""
    type: Optional[str] = None
    file_path: Optional[str] = None
    slug: Optional[str] = None
    page_variant: Optional[str] = None


@dataclass
class PageData:
    """Complete rendering input for one page."""
    business: BusinessData = field(default_factory=BusinessData)
    update: Optional[UpdateData] = None
    seo: SEOData = field(default_factory=SEOData)
    intent: IntentData = field(default_factory=IntentData)
    faqs: Optional[list[FAQEntry]] = None

    def merged_faqs(self) -> list[FAQEntry]:
        """Business, update and intent FAQs, first occurrence of a question wins."""
        merged: list[FAQEntry] = []
        seen: set[str] = set()
        sources = (
            self.business.business_faqs,
            self.update.update_faqs if self.update else None,
            self.faqs,
        )
        for source in sources:
            for faq in source or []:
                key = " ".join(faq.question.lower().split())
                if not faq.question or not faq.answer or key in seen:
                    continue
                seen.add(key)
                merged.append(faq)
        return merged

    def to_template_context(self) -> dict:
        """Convert to the base Jinja2 template context dictionary."""
        business = self.business
        return {
            "business": business,
            "update": self.update,
            "seo": self.seo,
            "intent": self.intent,
            "category_display": business.category_display,
            "location": business.location,
            "faqs": [faq.to_dict() for faq in self.merged_faqs()],
        }
