"""
schema.org structured data for rendered pages.

One JSON-LD block per page, ``@graph`` in fixed order:
entity schema, FAQPage (only when FAQs exist), BreadcrumbList, WebPage.
"""

from datetime import datetime
from typing import Any, Optional

from src.common.config import SiteSettings
from src.page_engine.url_builder.builder import slugify

from .helpers import DAY_KEYS, DAY_NAMES, labels, parse_clock, safe_url
from .models import FAQEntry, PageData

SCHEMA_CONTEXT = "https://schema.org"

SCHEMA_TYPES: dict[str, str] = {
    "food-dining": "Restaurant",
    "shopping": "Store",
    "beauty-grooming": "BeautySalon",
    "health-medical": "MedicalBusiness",
    "repairs-services": "AutoRepair",
    "professional-services": "ProfessionalService",
    "activities-entertainment": "EntertainmentBusiness",
    "education-training": "EducationalOrganization",
    "creative-digital": "LocalBusiness",
    "transportation-delivery": "MovingCompany",
}
DEFAULT_SCHEMA_TYPE = "LocalBusiness"

SPEAKABLE_SELECTORS = [".speakable-summary", ".update-content", ".voice-answer"]


def schema_type_for(category: Optional[str]) -> str:
    return SCHEMA_TYPES.get(category or "", DEFAULT_SCHEMA_TYPE)


def clean_schema(value: Any) -> Any:
    """Recursively drop None, empty strings, empty lists and empty dicts."""
    if isinstance(value, dict):
        cleaned = {k: clean_schema(v) for k, v in value.items()}
        return {k: v for k, v in cleaned.items() if not _is_empty(v)}
    if isinstance(value, list):
        cleaned_items = [clean_schema(v) for v in value]
        return [v for v in cleaned_items if not _is_empty(v)]
    return value


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


# --- URLs ---

def page_url(page: PageData, site: SiteSettings) -> str:
    return f"{site.base_url.rstrip('/')}{page.intent.file_path or ''}"


def _geo_paths(page: PageData) -> dict[str, str]:
    business = page.business
    country = slugify(business.country or "us") or "us"
    region = f"/{country}/{slugify(business.address_state)}"
    city = f"{region}/{slugify(business.address_city)}"
    return {
        "region": region,
        "city": city,
        "category": f"{city}/{slugify(business.primary_category or 'local-business')}",
        "business": f"{city}/{slugify(business.slug or business.name)}",
    }


def business_url(page: PageData, site: SiteSettings) -> str:
    return f"{site.base_url.rstrip('/')}{_geo_paths(page)['business']}"


# --- Builders ---

def _opening_hours(page: PageData) -> list[dict]:
    specs = []
    for key in DAY_KEYS:
        entry = (page.business.structured_hours or {}).get(key)
        if not isinstance(entry, dict) or entry.get("closed"):
            continue
        opens, closes = parse_clock(entry.get("open")), parse_clock(entry.get("close"))
        if opens is None or closes is None:
            continue
        specs.append({
            "@type": "OpeningHoursSpecification",
            "dayOfWeek": DAY_NAMES[key],
            "opens": opens.strftime("%H:%M"),
            "closes": closes.strftime("%H:%M"),
        })
    return specs


def _telephone(page: PageData) -> Optional[str]:
    business = page.business
    if not business.phone:
        return None
    if business.phone_country_code and not business.phone.startswith("+"):
        return f"{business.phone_country_code} {business.phone}"
    return business.phone


def _aggregate_rating(page: PageData) -> Optional[dict]:
    review = page.business.review_summary or {}
    rating = review.get("average_rating")
    count = review.get("total_reviews")
    if not rating or not count:
        return None
    return {
        "@type": "AggregateRating",
        "ratingValue": rating,
        "reviewCount": count,
        "bestRating": 5,
    }


def _offer(page: PageData) -> Optional[dict]:
    update = page.update
    if update is None or not update.deal_terms:
        return None
    return {
        "@type": "Offer",
        "description": update.deal_terms,
        "validThrough": update.expires_at,
    }


def build_business_schema(page: PageData, site: SiteSettings) -> dict:
    """Entity schema for the business (Restaurant, Store, ... LocalBusiness)."""
    business = page.business
    url = business_url(page, site)
    geo = None
    if business.latitude is not None and business.longitude is not None:
        geo = {
            "@type": "GeoCoordinates",
            "latitude": business.latitude,
            "longitude": business.longitude,
        }
    services = labels(business.services)
    schema = {
        "@type": schema_type_for(business.primary_category),
        "@id": f"{url}#business",
        "name": business.name,
        "description": business.description,
        "url": safe_url(business.website) or url,
        "telephone": _telephone(page),
        "email": business.email,
        "address": {
            "@type": "PostalAddress",
            "streetAddress": business.address_street,
            "addressLocality": business.address_city,
            "addressRegion": business.address_state,
            "postalCode": business.zip_code,
            "addressCountry": business.country,
        },
        "geo": geo,
        "openingHoursSpecification": _opening_hours(page),
        "priceRange": business.price_positioning,
        "paymentAccepted": ", ".join(business.payment_methods or []),
        "availableLanguage": list(business.languages_spoken or []),
        "areaServed": business.service_area,
        "amenityFeature": [
            {"@type": "LocationFeatureSpecification", "name": feature, "value": True}
            for feature in business.accessibility_features or []
        ],
        "award": labels(business.awards),
        "hasCredential": [
            {"@type": "EducationalOccupationalCredential", "name": name}
            for name in labels(business.certifications)
        ],
        "foundingDate": str(business.established_year) if business.established_year else None,
        "sameAs": [v for v in (business.social_media or {}).values() if isinstance(v, str)],
        "aggregateRating": _aggregate_rating(page),
        "hasOfferCatalog": {
            "@type": "OfferCatalog",
            "name": "Services",
            "itemListElement": [
                {"@type": "Offer", "itemOffered": {"@type": "Service", "name": name}}
                for name in services
            ],
        } if services else None,
        "makesOffer": _offer(page),
    }
    return clean_schema(schema)


def build_faq_schema(faqs: list[FAQEntry]) -> Optional[dict]:
    """FAQPage for merged FAQs; None when there are none."""
    if not faqs:
        return None
    return {
        "@type": "FAQPage",
        "mainEntity": [
            {
                "@type": "Question",
                "name": faq.question,
                "acceptedAnswer": {"@type": "Answer", "text": faq.answer},
            }
            for faq in faqs
        ],
    }


def build_breadcrumb_schema(page: PageData, site: SiteSettings) -> dict:
    """Home -> region -> city -> category -> business."""
    base = site.base_url.rstrip("/")
    business = page.business
    paths = _geo_paths(page)
    crumbs = [
        ("Home", base),
        (business.address_state, f"{base}{paths['region']}"),
        (business.address_city, f"{base}{paths['city']}"),
        (business.category_display, f"{base}{paths['category']}"),
        (business.name, f"{base}{paths['business']}"),
    ]
    return {
        "@type": "BreadcrumbList",
        "itemListElement": [
            {"@type": "ListItem", "position": position, "name": name, "item": item}
            for position, (name, item) in enumerate(
                [(n, i) for n, i in crumbs if n], start=1
            )
        ],
    }


def build_webpage_schema(page: PageData, site: SiteSettings, now: datetime) -> dict:
    """WebPage with publish/modify timestamps and speakable selectors."""
    url = page_url(page, site)
    published = (page.update.created_at if page.update else None) or now.isoformat()
    schema = {
        "@type": "WebPage",
        "@id": f"{url}#webpage",
        "url": url,
        "name": page.seo.title,
        "description": page.seo.description,
        "inLanguage": site.language,
        "datePublished": published,
        "dateModified": now.isoformat(),
        "isPartOf": {"@type": "WebSite", "name": site.site_name, "url": site.base_url},
        "about": {"@id": f"{business_url(page, site)}#business"},
        "speakable": {
            "@type": "SpeakableSpecification",
            "cssSelector": list(SPEAKABLE_SELECTORS),
        },
        "expires": page.update.expires_at if page.update else None,
    }
    return clean_schema(schema)


def build_structured_data(page: PageData, site: SiteSettings, now: datetime) -> dict:
    """Aggregate all schema blocks into one @graph document."""
    graph = [build_business_schema(page, site)]
    faq_schema = build_faq_schema(page.merged_faqs())
    if faq_schema is not None:
        graph.append(faq_schema)
    graph.append(build_breadcrumb_schema(page, site))
    graph.append(build_webpage_schema(page, site, now))
    return {"@context": SCHEMA_CONTEXT, "@graph": graph}
