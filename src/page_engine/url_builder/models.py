"""Data models for the URL builder."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class IntentURL:
    """Where one intent page lives."""
    file_path: str  # "/us/wa/seattle/food-dining/50-percent-off-today"
    slug: str
    page_variant: str  # "{intent}-{update kind}"

    def to_dict(self) -> dict:
        return {
            "filePath": self.file_path,
            "slug": self.slug,
            "pageVariant": self.page_variant,
        }
