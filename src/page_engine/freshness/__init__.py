# Freshness Tagger: time-sensitivity tags and expiry for update text
from .tagger import (
    BASE_TAG,
    FreshnessResult,
    calculate_tag_expiration,
    detect_dynamic_tags,
    is_time_sensitive,
    tag_update,
)

__all__ = [
    "BASE_TAG",
    "FreshnessResult",
    "calculate_tag_expiration",
    "detect_dynamic_tags",
    "is_time_sensitive",
    "tag_update",
]
