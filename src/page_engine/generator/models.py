"""Data models for the page generator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from src.common.models import PageRecord


@dataclass
class IntentFailure:
    """An intent whose page could not be built in this batch."""
    intent: str
    error: str


@dataclass
class GenerationSummary:
    """Outcome of one generation run."""
    update_id: Optional[str]
    batch_id: str
    pages: list[PageRecord] = field(default_factory=list)
    failures: list[IntentFailure] = field(default_factory=list)
    fallback_intents: list[str] = field(default_factory=list)

    @property
    def page_ids(self) -> list[str]:
        return [page.id for page in self.pages if page.id]

    def to_dict(self) -> dict:
        return {
            "update_id": self.update_id,
            "batch_id": self.batch_id,
            "pages": [page.summary() for page in self.pages],
            "failures": [{"intent": f.intent, "error": f.error} for f in self.failures],
            "fallback_intents": list(self.fallback_intents),
        }
