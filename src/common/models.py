"""Shared Pydantic data models for the page engine.

These models define the data contracts between the datastore rows
(businesses, updates, generated_pages) and the generation/publish
pipelines. All modules import from here.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# === Enums ===

class Intent(str, Enum):
    """Discovery intents; each update yields one page per intent."""
    DIRECT = "direct"
    LOCAL = "local"
    CATEGORY = "category"
    BRANDED_LOCAL = "branded-local"
    SERVICE_URGENT = "service-urgent"
    COMPETITIVE = "competitive"


ALL_INTENTS: tuple[Intent, ...] = tuple(Intent)


class UpdateStatus(str, Enum):
    """Lifecycle of an update row as seen by the engine."""
    PENDING = "pending"
    PROCESSING = "processing"
    READY_FOR_PREVIEW = "ready-for-preview"
    FAILED = "failed"
    COMPLETED = "completed"


class StatusOverride(str, Enum):
    """Manual availability override set by the business owner."""
    CLOSED_EMERGENCY = "closed_emergency"
    CLOSED_HOLIDAY = "closed_holiday"
    TEMPORARILY_CLOSED = "temporarily_closed"


BUSINESS_CATEGORIES: tuple[str, ...] = (
    "food-dining",
    "shopping",
    "beauty-grooming",
    "health-medical",
    "repairs-services",
    "professional-services",
    "activities-entertainment",
    "education-training",
    "creative-digital",
    "transportation-delivery",
)


# === Errors ===

class PageEngineError(Exception):
    """Base class for errors surfaced to callers of the engine."""


class MissingURLFieldsError(PageEngineError, ValueError):
    """Business record lacks the fields needed to build page URLs."""

    def __init__(self, missing: list[str], business_id: str | None = None):
        self.missing = list(missing)
        self.business_id = business_id
        message = f"missing required URL fields: {', '.join(self.missing)}"
        if business_id:
            message += f" (business {business_id})"
        super().__init__(message)


class PersistenceError(PageEngineError):
    """A datastore write on the core path failed."""


class RecordNotFoundError(PageEngineError, LookupError):
    """A business, update or page id did not resolve to a row."""


# === Records ===

class FAQItem(BaseModel):
    """A question/answer pair as stored on businesses and updates."""
    question: str
    answer: str
    category: Optional[str] = None


class _Record(BaseModel):
    model_config = ConfigDict(extra="ignore")

    @field_validator("*", mode="before")
    @classmethod
    def null_lists_to_empty(cls, value: Any, info) -> Any:
        # Supabase returns NULL for unset array/jsonb columns
        field = cls.model_fields.get(info.field_name)
        if value is None and field is not None and field.default_factory is list:
            return []
        return value


class BusinessRecord(_Record):
    """Row of the `businesses` table, read-only to the engine."""
    id: str
    name: Optional[str] = None
    slug: Optional[str] = None
    primary_category: Optional[str] = None

    address_street: Optional[str] = None
    address_city: Optional[str] = None
    address_state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None

    phone: Optional[str] = None
    phone_country_code: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None

    description: Optional[str] = None
    services: list[str] = Field(default_factory=list)
    specialties: list[str] = Field(default_factory=list)
    hours: Optional[str] = None
    structured_hours: Optional[dict[str, Any]] = None
    price_positioning: Optional[str] = None
    payment_methods: list[str] = Field(default_factory=list)
    service_area: Optional[str] = None
    service_area_details: Optional[Any] = None
    awards: list[Any] = Field(default_factory=list)
    certifications: list[Any] = Field(default_factory=list)
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    languages_spoken: list[str] = Field(default_factory=list)
    accessibility_features: list[str] = Field(default_factory=list)
    parking_info: Optional[str] = None
    enhanced_parking_info: Optional[Any] = None
    review_summary: Optional[dict[str, Any]] = None
    status_override: Optional[str] = None
    business_faqs: list[FAQItem] = Field(default_factory=list)
    featured_items: list[Any] = Field(default_factory=list)
    social_media: Optional[dict[str, Any]] = None
    established_year: Optional[int] = None


class UpdateRecord(_Record):
    """Row of the `updates` table."""
    id: str
    business_id: str
    content_text: str = ""
    created_at: Optional[str] = None
    expires_at: Optional[str] = None
    special_hours_today: Optional[str] = None
    deal_terms: Optional[str] = None
    update_category: Optional[str] = None
    update_faqs: list[FAQItem] = Field(default_factory=list)
    status: Optional[str] = None


class PageRecord(_Record):
    """Row of the `generated_pages` table.

    At most one non-expired row exists per (business_id, file_path).
    """
    id: Optional[str] = None
    business_id: str
    update_id: Optional[str] = None
    file_path: str
    slug: str
    intent_type: Optional[str] = None
    page_variant: Optional[str] = None
    template_id: Optional[str] = None
    generation_batch_id: Optional[str] = None
    title: str = ""
    page_data: dict[str, Any] = Field(default_factory=dict)
    rendered_size_kb: Optional[float] = None
    dynamic_tags: list[str] = Field(default_factory=list)
    tags_expire_at: Optional[str] = None
    published: bool = False
    published_at: Optional[str] = None
    expired: bool = False
    expired_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def to_supabase_dict(self) -> dict:
        """Serialize for Supabase insert/update, omitting None values."""
        return {
            field_name: value
            for field_name, value in self.model_dump().items()
            if value is not None
        }

    def summary(self) -> dict:
        """Short dict used in generation and publish reports."""
        return {
            "id": self.id,
            "url": self.file_path,
            "title": self.title,
            "intent_type": self.intent_type,
            "page_variant": self.page_variant,
        }
