"""Generation pipeline: one update in, one page per intent out.

Orchestrates the flow for each intent, in parallel:
synthesize copy -> build URL -> freshness tags -> voice FAQs -> PageData
-> compress -> size estimate

Usage:
    generator = PageGenerator()
    summary = generator.generate_for_update("upd-123")
"""

from __future__ import annotations

import json
import math
import uuid
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from src.common.config import GenerationSettings, SiteSettings, settings
from src.common.datastore import SupabaseDatastore
from src.common.logging import setup_logging
from src.common.models import (
    ALL_INTENTS,
    BusinessRecord,
    Intent,
    PageEngineError,
    PageRecord,
    PersistenceError,
    UpdateRecord,
    UpdateStatus,
)
from src.page_engine.content_writer import ContentSynthesizer, SynthesizedContent
from src.page_engine.freshness import tag_update
from src.page_engine.page_codec import compress
from src.page_engine.template_engine import (
    BUSINESS_PROFILE,
    BusinessData,
    IntentData,
    PageData,
    SEOData,
    UpdateData,
    build_voice_faqs,
)
from src.page_engine.url_builder import (
    IntentURL,
    apply_collision_suffix,
    build_intent_url,
    build_profile_url,
    content_hash,
    require_url_fields,
)

from .models import GenerationSummary, IntentFailure

logger = setup_logging(module_name="generator.pipeline")

TEMPLATE_VERSION = "v1"


def estimate_rendered_size_kb(text: str, business: BusinessRecord, faq_count: int) -> int:
    """Rough size of the rendered document in KB.

    ceil(2 + text/1024 + business json/1024 + 0.5 per FAQ)
    """
    business_json = json.dumps(business.model_dump(), ensure_ascii=False, default=str)
    return math.ceil(2 + len(text or "") / 1024 + len(business_json) / 1024 + 0.5 * faq_count)


def template_id_for(intent: str) -> str:
    return f"{intent}-{TEMPLATE_VERSION}"


@dataclass
class _BuiltPage:
    intent: str
    record: PageRecord
    page: PageData
    content: SynthesizedContent


class PageGenerator:
    """Builds and stores the intent pages for business updates.

    Steps of ``generate_for_update``:
    1. Load update + business and validate URL fields
    2. Mark the update processing
    3. Build all intent pages in parallel (failures isolated per intent)
    4. Resolve path collisions
    5. Save pages (update-or-insert on business_id + file_path)
    6. Mark the update ready-for-preview
    """

    def __init__(
        self,
        datastore: SupabaseDatastore | None = None,
        synthesizer: ContentSynthesizer | None = None,
        config: GenerationSettings | None = None,
        site: SiteSettings | None = None,
    ):
        self.datastore = datastore
        self.synthesizer = synthesizer or ContentSynthesizer()
        self.config = config or settings.generation
        self.site = site or settings.site

    def _store(self) -> SupabaseDatastore:
        if self.datastore is None:
            self.datastore = SupabaseDatastore()
        return self.datastore

    def _now(self, now: Optional[datetime]) -> datetime:
        zone = ZoneInfo(self.site.timezone)
        if now is None:
            return datetime.now(zone)
        return now if now.tzinfo is not None else now.replace(tzinfo=zone)

    # --- Datastore-backed entry points ---

    def generate_for_update(self, update_id: str, now: Optional[datetime] = None) -> GenerationSummary:
        """Generate and save every intent page for one update.

        Args:
            update_id: Update row id
            now: Reference time (defaults to now in the site timezone)

        Returns:
            GenerationSummary with the saved PageRecords

        Raises:
            RecordNotFoundError: Update or business does not exist
            MissingURLFieldsError: Business lacks name, city or region
            PersistenceError: A page could not be saved
        """
        store = self._store()
        update = store.get_update(update_id)
        business = store.get_business(update.business_id)
        # validated before anything is written
        require_url_fields(business)

        store.set_update_status(update_id, UpdateStatus.PROCESSING)
        try:
            summary = self.build_pages(business, update, now=now)
            if not summary.pages:
                raise PageEngineError(f"no pages could be generated for update {update_id}")
            self._resolve_stored_collisions(summary, business, update)
            summary.pages = [store.save_page(page) for page in summary.pages]
        except PageEngineError as e:
            logger.error("Generation failed for update %s: %s", update_id, e)
            self._set_status_quietly(update_id, UpdateStatus.FAILED, error_message=str(e))
            raise

        self._set_status_quietly(update_id, UpdateStatus.READY_FOR_PREVIEW)
        logger.info(
            "Generated %d pages for update %s (batch %s)",
            len(summary.pages), update_id, summary.batch_id,
        )
        return summary

    def generate_profile_page(self, business_id: str, now: Optional[datetime] = None) -> PageRecord:
        """Generate and save the standalone business-profile page."""
        business = self._store().get_business(business_id)
        record = self.build_profile_page(business, now=now)
        saved = self._store().save_page(record)
        logger.info("Saved profile page %s for business %s", saved.file_path, business_id)
        return saved

    def _set_status_quietly(self, update_id: str, status: UpdateStatus, **fields) -> None:
        try:
            self._store().set_update_status(update_id, status, **fields)
        except PersistenceError as e:
            logger.warning("Could not set update %s to %s: %s", update_id, status.value, e)

    def _resolve_stored_collisions(
        self,
        summary: GenerationSummary,
        business: BusinessRecord,
        update: UpdateRecord,
    ) -> None:
        """Suffix pages whose path is held by another update's active page."""
        store = self._store()
        suffix = content_hash(update.id, update.content_text)
        for index, page in enumerate(summary.pages):
            existing = store.find_active_page(business.id, page.file_path)
            if existing is None or existing.update_id == update.id:
                continue
            url = apply_collision_suffix(
                IntentURL(page.file_path, page.slug, page.page_variant or ""), suffix
            )
            logger.info("Path %s taken by update %s, using %s", page.file_path, existing.update_id, url.file_path)
            summary.pages[index] = _relocate(page, url)

    # --- Pure core ---

    def build_pages(
        self,
        business: BusinessRecord,
        update: UpdateRecord,
        now: Optional[datetime] = None,
        batch_id: Optional[str] = None,
    ) -> GenerationSummary:
        """Build one PageRecord per intent without touching the datastore.

        Args:
            business: Business record
            update: Update record
            now: Reference time
            batch_id: Generation batch id (new uuid4 when omitted)

        Returns:
            GenerationSummary; intents that failed are listed in ``failures``

        Raises:
            MissingURLFieldsError: Business lacks name, city or region
        """
        require_url_fields(business)
        now = self._now(now)
        summary = GenerationSummary(update_id=update.id, batch_id=batch_id or str(uuid.uuid4()))

        built: dict[str, _BuiltPage] = {}
        with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
            futures = {
                executor.submit(self._build_intent_page, business, update, intent, summary.batch_id, now): intent
                for intent in ALL_INTENTS
            }
            for future in as_completed(futures):
                intent = futures[future]
                try:
                    built[intent.value] = future.result()
                except Exception as e:
                    logger.error("Intent %s failed for update %s: %s", intent.value, update.id, e)
                    summary.failures.append(IntentFailure(intent=intent.value, error=str(e)))

        # keep intent order stable regardless of completion order
        ordered = [built[intent.value] for intent in ALL_INTENTS if intent.value in built]
        summary.pages = _resolve_batch_collisions([b.record for b in ordered], update)
        summary.fallback_intents = [b.intent for b in ordered if b.content.is_fallback]
        return summary

    def _update_data(self, update: UpdateRecord, now: datetime) -> UpdateData:
        data = UpdateData.from_record(update)
        if data.created_at is None:
            data.created_at = now.isoformat()
        if data.expires_at is None:
            data.expires_at = (now + timedelta(days=self.config.default_expiry_days)).isoformat()
        return data

    def _build_intent_page(
        self,
        business: BusinessRecord,
        update: UpdateRecord,
        intent: Intent,
        batch_id: str,
        now: datetime,
    ) -> _BuiltPage:
        content = self.synthesizer.synthesize(business, update, intent)
        url = build_intent_url(update.content_text, intent, business, ai_slug=content.slug, year=now.year)
        freshness = tag_update(update.content_text, now)

        page = PageData(
            business=BusinessData.from_record(business),
            update=self._update_data(update, now),
            seo=SEOData(title=content.title, description=content.description),
            intent=IntentData(
                type=intent.value,
                file_path=url.file_path,
                slug=url.slug,
                page_variant=url.page_variant,
            ),
        )
        if self.config.include_voice_faqs:
            page.faqs = build_voice_faqs(page, now)

        record = PageRecord(
            business_id=business.id,
            update_id=update.id,
            file_path=url.file_path,
            slug=url.slug,
            intent_type=intent.value,
            page_variant=url.page_variant,
            template_id=template_id_for(intent.value),
            generation_batch_id=batch_id,
            title=content.title,
            page_data=compress(page),
            rendered_size_kb=estimate_rendered_size_kb(
                update.content_text, business, len(page.merged_faqs())
            ),
            dynamic_tags=freshness.tags,
            tags_expire_at=freshness.expires_at.isoformat() if freshness.expires_at else None,
        )
        return _BuiltPage(intent=intent.value, record=record, page=page, content=content)

    def build_profile_page(self, business: BusinessRecord, now: Optional[datetime] = None) -> PageRecord:
        """Build the business-profile PageRecord (no update attached)."""
        require_url_fields(business)
        now = self._now(now)
        content = self.synthesizer.synthesize_profile(business)
        url = build_profile_url(business)

        page = PageData(
            business=BusinessData.from_record(business),
            seo=SEOData(title=content.title, description=content.description),
            intent=IntentData(
                type=BUSINESS_PROFILE,
                file_path=url.file_path,
                slug=url.slug,
                page_variant=url.page_variant,
            ),
        )
        if self.config.include_voice_faqs:
            page.faqs = build_voice_faqs(page, now)

        return PageRecord(
            business_id=business.id,
            update_id=None,
            file_path=url.file_path,
            slug=url.slug,
            intent_type=BUSINESS_PROFILE,
            page_variant=url.page_variant,
            template_id=template_id_for(BUSINESS_PROFILE),
            generation_batch_id=str(uuid.uuid4()),
            title=content.title,
            page_data=compress(page),
            rendered_size_kb=estimate_rendered_size_kb(
                business.description or "", business, len(page.merged_faqs())
            ),
        )


def _relocate(page: PageRecord, url: IntentURL) -> PageRecord:
    """Copy of a page moved to a new path, with the compact intent group kept in sync."""
    page_data = dict(page.page_data)
    intent_group = dict(page_data.get("i", {}))
    intent_group.update({"filePath": url.file_path, "slug": url.slug})
    page_data["i"] = intent_group
    return page.model_copy(update={"file_path": url.file_path, "slug": url.slug, "page_data": page_data})


def _resolve_batch_collisions(pages: list[PageRecord], update: UpdateRecord) -> list[PageRecord]:
    """Suffix later pages in a batch whose path repeats an earlier one."""
    taken: set[str] = set()
    resolved = []
    for page in pages:
        if page.file_path in taken:
            suffix = content_hash(update.id, update.content_text, page.intent_type or "")
            url = apply_collision_suffix(
                IntentURL(page.file_path, page.slug, page.page_variant or ""), suffix
            )
            logger.info("Intent %s collides on %s, using %s", page.intent_type, page.file_path, url.file_path)
            page = _relocate(page, url)
        taken.add(page.file_path)
        resolved.append(page)
    return resolved
