# URL Builder: intent-aware file paths and semantic slugs
from .builder import (
    apply_collision_suffix,
    build_intent_url,
    build_profile_url,
    content_hash,
    classify_update,
    extract_keywords,
    normalize_slug,
    require_url_fields,
    slugify,
)
from .models import IntentURL

__all__ = [
    "IntentURL",
    "apply_collision_suffix",
    "build_intent_url",
    "build_profile_url",
    "content_hash",
    "classify_update",
    "extract_keywords",
    "normalize_slug",
    "require_url_fields",
    "slugify",
]
