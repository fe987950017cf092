# Template Engine Module
# Intent renderers, schema.org structured data and voice-search fragments

from .renderer import (
    BUSINESS_PROFILE,
    TemplateRenderer,
    get_renderer,
    register_renderer,
    registered_renderers,
    render_page,
)
from .models import (
    BusinessData,
    FAQEntry,
    IntentData,
    PageData,
    SEOData,
    UpdateData,
    category_display_name,
)
from .schema import build_structured_data, schema_type_for
from .voice import (
    build_voice_answers,
    build_voice_faqs,
    format_phone_for_voice,
    optimize_answer_for_voice,
    refresh_voice_faqs,
    voice_triggers_for_intent,
)

__all__ = [
    "BUSINESS_PROFILE",
    "TemplateRenderer",
    "get_renderer",
    "register_renderer",
    "registered_renderers",
    "render_page",
    "BusinessData",
    "FAQEntry",
    "IntentData",
    "PageData",
    "SEOData",
    "UpdateData",
    "category_display_name",
    "build_structured_data",
    "schema_type_for",
    "build_voice_answers",
    "build_voice_faqs",
    "format_phone_for_voice",
    "optimize_answer_for_voice",
    "refresh_voice_faqs",
    "voice_triggers_for_intent",
]
