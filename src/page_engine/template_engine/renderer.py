"""
Template Renderer for discovery pages.
Handles Jinja2 template loading, the intent renderer registry and rendering.
"""

from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Optional
from zoneinfo import ZoneInfo

from jinja2 import Environment, FileSystemLoader, select_autoescape

from src.common.config import SiteSettings, settings
from src.common.models import Intent

from .helpers import (
    availability,
    format_display_date,
    format_phone_display,
    item_label,
    labels,
    safe_url,
    script_safe_json,
    tel_href,
    urgency_level,
    weekly_hours,
)
from .models import PageData
from .schema import build_structured_data, business_url, page_url
from .voice import build_voice_answers, refresh_voice_faqs, voice_triggers_for_intent

BUSINESS_PROFILE = "business"

# Renderer: (page, context) -> (template name, extra context)
RendererFn = Callable[[PageData, dict], tuple[str, dict]]

_RENDERERS: dict[str, RendererFn] = {}


def register_renderer(key: str) -> Callable[[RendererFn], RendererFn]:
    """Register a page renderer under an intent key.

    Raises:
        ValueError: if the key is already registered
    """
    key = str(getattr(key, "value", key))

    def decorator(fn: RendererFn) -> RendererFn:
        if key in _RENDERERS:
            raise ValueError(f"renderer already registered for {key!r}")
        _RENDERERS[key] = fn
        return fn

    return decorator


def get_renderer(key: str) -> RendererFn:
    """Look up a renderer; unknown keys raise KeyError."""
    key = str(getattr(key, "value", key))
    if key not in _RENDERERS:
        raise KeyError(f"no renderer registered for {key!r}")
    return _RENDERERS[key]


def registered_renderers() -> list[str]:
    return list(_RENDERERS)


# --- Intent renderers ---

@register_renderer(Intent.DIRECT)
def _render_direct(page: PageData, context: dict) -> tuple[str, dict]:
    title = page.seo.title or ""
    heading = f"{page.business.name}: {title}" if title else page.business.name
    return "direct.html", {"heading": heading}


@register_renderer(Intent.LOCAL)
def _render_local(page: PageData, context: dict) -> tuple[str, dict]:
    business = page.business
    return "local.html", {
        "heading": f"{business.category_display} Near You in {business.location}",
        "area_served": business.service_area or business.location,
    }


@register_renderer(Intent.CATEGORY)
def _render_category(page: PageData, context: dict) -> tuple[str, dict]:
    return "category.html", {
        "heading": f"Professional {page.business.category_display} Services",
    }


@register_renderer(Intent.BRANDED_LOCAL)
def _render_branded_local(page: PageData, context: dict) -> tuple[str, dict]:
    business = page.business
    return "branded_local.html", {
        "heading": f"{business.name} - {business.location}",
        "update_heading": f"Latest from {business.name}",
    }


@register_renderer(Intent.SERVICE_URGENT)
def _render_service_urgent(page: PageData, context: dict) -> tuple[str, dict]:
    return "service_urgent.html", {
        "heading": f"Immediate {page.business.category_display} Available",
        "phone_emphasis": True,
    }


@register_renderer(Intent.COMPETITIVE)
def _render_competitive(page: PageData, context: dict) -> tuple[str, dict]:
    business = page.business
    return "competitive.html", {
        "heading": f"{business.category_display} Provider - {business.name}",
    }


@register_renderer(BUSINESS_PROFILE)
def _render_business(page: PageData, context: dict) -> tuple[str, dict]:
    return "business.html", {"heading": page.business.name}


# --- Renderer ---

class TemplateRenderer:
    """
    Renders discovery pages and site artifacts using Jinja2 templates.

    Usage:
        renderer = TemplateRenderer()
        html = renderer.render("local", page_data, now=now)
    """

    def __init__(self, templates_dir: Optional[Path] = None, site: Optional[SiteSettings] = None):
        """
        Initialize the template renderer.

        Args:
            templates_dir: Path to templates directory.
                          Defaults to ./templates relative to this file.
            site: Site settings. Defaults to the loaded configuration.
        """
        if templates_dir is None:
            templates_dir = Path(__file__).parent / "templates"

        self.templates_dir = templates_dir
        self.site = site or settings.site
        self.env = Environment(
            loader=FileSystemLoader(str(templates_dir)),
            autoescape=select_autoescape(["html", "xml"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["display_date"] = format_display_date
        self.env.filters["phone_display"] = format_phone_display
        self.env.filters["tel_href"] = tel_href
        self.env.filters["label"] = item_label
        self.env.filters["labels"] = labels
        self.env.filters["safe_url"] = safe_url

    def _localize(self, now: Optional[datetime]) -> datetime:
        zone = ZoneInfo(self.site.timezone)
        if now is None:
            return datetime.now(zone)
        if now.tzinfo is None:
            return now.replace(tzinfo=zone)
        return now.astimezone(zone)

    def _meta(self, page: PageData) -> dict[str, Any]:
        business = page.business
        meta: dict[str, Any] = {
            "title": page.seo.title,
            "description": page.seo.description,
            "canonical": page_url(page, self.site) if page.intent.file_path else None,
            "robots": "index, follow, max-snippet:-1, max-image-preview:large",
            "page_intent": page.intent.type,
            "geo_region": None,
            "geo_placename": business.address_city,
            "geo_position": None,
            "icbm": None,
        }
        if business.address_state:
            country = (business.country or "US").upper()
            meta["geo_region"] = f"{country}-{business.address_state.upper()}"
        if business.latitude is not None and business.longitude is not None:
            meta["geo_position"] = f"{business.latitude};{business.longitude}"
            meta["icbm"] = f"{business.latitude}, {business.longitude}"
        return meta

    def build_context(self, intent: str, page: PageData, now: datetime) -> dict[str, Any]:
        """Shared template context for every renderer.

        Stored voice FAQs are re-answered for `now` so clock-dependent
        answers match the render instant.
        """
        page = replace(page, faqs=refresh_voice_faqs(page, now))
        context = page.to_template_context()
        update = page.update
        context.update({
            "site": self.site,
            "now": now,
            "meta": self._meta(page),
            "page_url": page_url(page, self.site),
            "business_url": business_url(page, self.site),
            "structured_data": script_safe_json(build_structured_data(page, self.site, now)),
            "availability": availability(page.business, now),
            "weekly_hours": weekly_hours(page.business),
            "voice": build_voice_answers(page, now),
            "voice_triggers": voice_triggers_for_intent(intent, page),
            "urgency": urgency_level(update.expires_at if update else None, now),
            "awards": labels(page.business.awards),
            "certifications": labels(page.business.certifications),
            "specialties": labels(page.business.specialties),
            "services": labels(page.business.services),
            "featured_items": labels(page.business.featured_items),
            "phone_emphasis": False,
            "update_heading": "Latest Update",
            "area_served": None,
        })
        return context

    def render(self, intent: str, page: PageData, now: Optional[datetime] = None) -> str:
        """
        Render a complete HTML document for one intent.

        Args:
            intent: Intent key ("direct", "local", ... or "business")
            page: Expanded page data
            now: Render instant; converted to the site timezone

        Returns:
            Rendered HTML string

        Raises:
            KeyError: if no renderer is registered for the intent
        """
        key = str(getattr(intent, "value", intent))
        renderer = get_renderer(key)
        now = self._localize(now)
        context = self.build_context(key, page, now)
        template_name, extra = renderer(page, context)
        context.update(extra)
        return self.env.get_template(template_name).render(**context)

    def render_artifact(self, name: str, context: dict[str, Any]) -> str:
        """
        Render a site artifact template (sitemap.xml, robots.txt).

        Args:
            name: Template file name
            context: Template variables

        Returns:
            Rendered text
        """
        template = self.env.get_template(name)
        return template.render(**context)


def render_page(intent: str, page: PageData, now: Optional[datetime] = None) -> str:
    """
    Convenience function to render one page.

    Args:
        intent: Intent key
        page: Expanded page data
        now: Render instant

    Returns:
        Rendered HTML string
    """
    renderer = TemplateRenderer()
    return renderer.render(intent, page, now=now)
