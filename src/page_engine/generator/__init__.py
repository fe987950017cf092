# Generator: update -> one stored page per discovery intent
from .models import GenerationSummary, IntentFailure
from .pipeline import PageGenerator, estimate_rendered_size_kb, template_id_for

__all__ = [
    "GenerationSummary",
    "IntentFailure",
    "PageGenerator",
    "estimate_rendered_size_kb",
    "template_id_for",
]
