"""Publish orchestrator: flag flip -> static upload -> sitemap/robots -> CDN purge.

Publishing is at-most-once per page: the datastore flip only returns rows
that were still unpublished, and only those rows go on to later stages.
Each later stage is settle-all: every page is attempted and failures are
counted in the report instead of aborting the batch.

Usage:
    orchestrator = PublishOrchestrator()
    report = orchestrator.publish(batch_id="8c1e...")
    print(report.to_dict())
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timezone
from typing import Optional

from src.common.config import PublishSettings, SiteSettings, StorageSettings, settings
from src.common.datastore import SupabaseDatastore
from src.common.logging import setup_logging
from src.common.models import PageRecord, PersistenceError, UpdateStatus
from src.page_engine.page_codec import expand
from src.page_engine.template_engine import TemplateRenderer

from .artifacts import ROBOTS_KEY, SITEMAP_KEY, build_robots, build_sitemap, inject_discovery_meta
from .cdn import CloudflareCDN, PurgeResult
from .models import PublishedPages, PublishReport, PublishSelector
from .storage import SupabaseStorage, UploadResult, page_object_key

logger = setup_logging(module_name="publisher.orchestrator")

SITEMAP_CONTENT_TYPE = "application/xml; charset=utf-8"
ROBOTS_CONTENT_TYPE = "text/plain; charset=utf-8"


class PublishOrchestrator:
    """Publishes generated pages to storage and refreshes the CDN.

    Steps:
    1. Resolve unpublished, unexpired page ids
    2. Conditional flip of the published flag (the only hard failure)
    3. Expand, render, inject meta and upload each page in parallel
    4. Regenerate sitemap.xml and robots.txt
    5. Purge each page URL (plus alias host) in parallel
    6. Mark owning updates completed (best effort)
    """

    def __init__(
        self,
        datastore: SupabaseDatastore | None = None,
        storage: SupabaseStorage | None = None,
        cdn: CloudflareCDN | None = None,
        renderer: TemplateRenderer | None = None,
        config: PublishSettings | None = None,
        storage_config: StorageSettings | None = None,
        site: SiteSettings | None = None,
    ):
        self.site = site or settings.site
        self.config = config or settings.publish
        self.storage_config = storage_config or settings.storage
        self.datastore = datastore or SupabaseDatastore()
        self.storage = storage or SupabaseStorage(config=self.storage_config)
        self.cdn = cdn or CloudflareCDN(site=self.site)
        self.renderer = renderer or TemplateRenderer(site=self.site)

    def page_url(self, page: PageRecord) -> str:
        return f"{self.site.base_url.rstrip('/')}{page.file_path}"

    def publish(
        self,
        page_ids: Optional[list[str]] = None,
        batch_id: Optional[str] = None,
        publish_all: bool = False,
        now: Optional[datetime] = None,
    ) -> PublishReport:
        """Publish pages selected by ids, batch id, or everything pending.

        Args:
            page_ids: Explicit page ids
            batch_id: Generation batch id
            publish_all: Publish every unpublished, unexpired page
            now: Publish instant (defaults to current UTC time)

        Returns:
            PublishReport with per-stage counters

        Raises:
            ValueError: Not exactly one selector given
            PersistenceError: Resolving or flipping the published flag failed
        """
        selector = PublishSelector(page_ids=page_ids or [], batch_id=batch_id, publish_all=publish_all)
        chosen = sum([bool(selector.page_ids), bool(selector.batch_id), selector.publish_all])
        if chosen != 1:
            raise ValueError("Provide exactly one of page_ids, batch_id or publish_all")

        now = now or datetime.now(timezone.utc)
        published_at = now.astimezone(timezone.utc).isoformat()
        report = PublishReport()

        ids = self.datastore.select_unpublished_page_ids(
            page_ids=selector.page_ids or None,
            batch_id=selector.batch_id,
            publish_all=selector.publish_all,
        )
        if not ids:
            logger.info("Nothing to publish")
            return report

        pages = self.datastore.mark_published(ids, published_at)
        report.published = PublishedPages(total=len(pages), pages=[p.summary() for p in pages])
        if not pages:
            logger.info("All %d selected pages were already published", len(ids))
            return report
        logger.info("Flipped %d/%d pages to published", len(pages), len(ids))

        self._upload_pages(pages, published_at, now, report)
        report.sitemap_updated = self._update_site_artifacts()
        self._purge_pages(pages, report)
        self._complete_updates(pages)

        logger.info(
            "Publish complete: %d pages, %d uploaded, %d purged",
            report.published.total,
            report.static_file_generation.successful,
            report.cache_invalidation.successful,
        )
        return report

    # --- Stage 3: static files ---

    def render_page(self, page: PageRecord, published_at: str, now: datetime) -> str:
        """Final HTML for a page as it will be uploaded."""
        html = self.renderer.render(page.intent_type, expand(page.page_data), now=now)
        return inject_discovery_meta(html, self.page_url(page), published_at)

    def _publish_page(self, page: PageRecord, published_at: str, now: datetime) -> UploadResult:
        html = self.render_page(page, published_at, now)
        key = page_object_key(page.file_path, self.storage_config.key_prefix)
        return self.storage.put_object(key, html, self.storage_config.html_content_type)

    def _upload_pages(
        self,
        pages: list[PageRecord],
        published_at: str,
        now: datetime,
        report: PublishReport,
    ) -> None:
        stage = report.static_file_generation
        with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
            futures = {
                executor.submit(self._publish_page, page, published_at, now): page
                for page in pages
            }
            for future in as_completed(futures):
                page = futures[future]
                try:
                    result = future.result()
                except Exception as e:
                    logger.error("Static generation failed for %s: %s", page.file_path, e)
                    stage.record(False, f"{page.file_path}: {e}")
                    continue
                stage.record(result.success, f"{page.file_path}: {result.error}")

    # --- Stage 4: sitemap / robots ---

    def _update_site_artifacts(self) -> bool:
        try:
            live_pages = self.datastore.list_published_pages()
        except PersistenceError as e:
            logger.warning("Sitemap skipped, could not list published pages: %s", e)
            return False

        prefix = self.storage_config.key_prefix
        sitemap = self.storage.put_object(
            f"{prefix}{SITEMAP_KEY}",
            build_sitemap(live_pages, self.site, self.renderer),
            SITEMAP_CONTENT_TYPE,
        )
        robots = self.storage.put_object(
            f"{prefix}{ROBOTS_KEY}",
            build_robots(self.site, self.renderer),
            ROBOTS_CONTENT_TYPE,
        )
        if not (sitemap.success and robots.success):
            logger.warning("Sitemap/robots upload incomplete")
            return False
        logger.info("Sitemap updated with %d URLs", len(live_pages))
        return True

    # --- Stage 5: CDN ---

    def _purge_pages(self, pages: list[PageRecord], report: PublishReport) -> None:
        stage = report.cache_invalidation
        with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
            futures = {
                executor.submit(self.cdn.purge_urls, [self.page_url(page)]): page
                for page in pages
            }
            for future in as_completed(futures):
                page = futures[future]
                try:
                    result: PurgeResult = future.result()
                except Exception as e:
                    logger.error("CDN purge failed for %s: %s", page.file_path, e)
                    stage.record(False, f"{page.file_path}: {e}")
                    continue
                stage.record(result.success, f"{page.file_path}: {result.error}")

    # --- Stage 6: update status ---

    def _complete_updates(self, pages: list[PageRecord]) -> None:
        update_ids = sorted({page.update_id for page in pages if page.update_id})
        for update_id in update_ids:
            try:
                self.datastore.set_update_status(update_id, UpdateStatus.COMPLETED)
            except PersistenceError as e:
                logger.warning("Could not mark update %s completed: %s", update_id, e)
