"""Data models for the publisher module."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class PublishSelector(BaseModel):
    """Which pages to publish; exactly one selector is used."""
    page_ids: list[str] = Field(default_factory=list)
    batch_id: str | None = None
    publish_all: bool = False

    def is_empty(self) -> bool:
        return not self.page_ids and not self.batch_id and not self.publish_all


class _Report(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class PublishedPages(_Report):
    total: int = 0
    pages: list[dict] = Field(default_factory=list)


class StageResult(_Report):
    """Per-page counters for one publish stage (upload or CDN purge)."""
    attempted: int = 0
    successful: int = 0
    failed: int = 0
    errors: list[str] = Field(default_factory=list)

    def record(self, ok: bool, error: str = "") -> None:
        self.attempted += 1
        if ok:
            self.successful += 1
        else:
            self.failed += 1
            if error:
                self.errors.append(error)


class PublishReport(_Report):
    """Outcome of one publish call; dump with ``to_dict()`` for camelCase keys."""
    published: PublishedPages = Field(default_factory=PublishedPages)
    static_file_generation: StageResult = Field(default_factory=StageResult, alias="staticFileGeneration")
    cache_invalidation: StageResult = Field(default_factory=StageResult, alias="cacheInvalidation")
    sitemap_updated: bool = Field(default=False, alias="sitemapUpdated")

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True)
