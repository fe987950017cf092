"""Tests for the publisher.

Tests cover:
- Storage uploads with a mocked Supabase client
- Cloudflare purge with a mocked requests session
- Meta injection, sitemap and robots artifacts
- The publish orchestrator against the in-memory datastore
- The publish CLI exit codes
"""

import sys
from unittest.mock import MagicMock, patch

import pytest
import requests
from bs4 import BeautifulSoup

from conftest import FakeDatastore
from src.common.config import CDNSettings, GenerationSettings, PublishSettings, SiteSettings, StorageSettings
from src.common.models import PageRecord, PersistenceError
from src.page_engine.content_writer import ContentSynthesizer
from src.page_engine.generator import PageGenerator
from src.page_engine.publisher import (
    ROBOTS_DISALLOW,
    CloudflareCDN,
    PublishOrchestrator,
    PublishReport,
    PurgeResult,
    SupabaseStorage,
    UploadResult,
    build_robots,
    build_sitemap,
    inject_discovery_meta,
    page_object_key,
    with_alias_host,
)
from src.page_engine.publisher import main as publish_cli
from src.page_engine.publisher.artifacts import ROBOTS_DIRECTIVES, last_modified
from src.page_engine.template_engine import TemplateRenderer

PUBLISHED_AT = "2026-10-19T19:00:00+00:00"


@pytest.fixture
def renderer(site) -> TemplateRenderer:
    return TemplateRenderer(site=site)


# === Storage ===


class TestStorage:
    def _storage(self, client) -> SupabaseStorage:
        return SupabaseStorage(
            supabase_url="https://x.supabase.co", supabase_key="k",
            config=StorageSettings(), client=client,
        )

    def test_page_object_key(self):
        assert page_object_key("/us/wa/seattle/joes-diner/deal") == "us/wa/seattle/joes-diner/deal/index.html"
        assert page_object_key("/us/wa/seattle/joes-diner", "site/") == "site/us/wa/seattle/joes-diner/index.html"

    def test_put_object_upserts(self):
        client = MagicMock()

        result = self._storage(client).put_object("a/index.html", "<p>café</p>", "text/html; charset=utf-8")

        assert result.success is True
        assert result.public_url == "https://x.supabase.co/storage/v1/object/public/static-pages/a/index.html"
        client.storage.from_.assert_called_once_with("static-pages")
        client.storage.from_.return_value.upload.assert_called_once_with(
            path="a/index.html",
            file="<p>café</p>".encode("utf-8"),
            file_options={
                "content-type": "text/html; charset=utf-8",
                "cache-control": "300",
                "upsert": "true",
            },
        )

    def test_upload_error_becomes_failed_result(self):
        client = MagicMock()
        client.storage.from_.return_value.upload.side_effect = RuntimeError("quota exceeded")

        result = self._storage(client).put_object("a/index.html", b"x")

        assert result.success is False
        assert result.error == "quota exceeded"
        assert result.public_url == ""

    def test_missing_credentials_fail_upload(self):
        storage = SupabaseStorage(supabase_url="", supabase_key="", config=StorageSettings())
        result = storage.put_object("a/index.html", "x")
        assert result.success is False
        assert "SUPABASE_URL" in result.error


# === CDN ===


def _cdn(session, zone_id="zone-1", api_token="token") -> CloudflareCDN:
    return CloudflareCDN(
        zone_id=zone_id, api_token=api_token,
        config=CDNSettings(), site=SiteSettings(), session=session,
    )


class TestCDN:
    def test_alias_host(self):
        assert with_alias_host("https://locraven.com/a", "www.locraven.com") == [
            "https://locraven.com/a", "https://www.locraven.com/a",
        ]
        assert with_alias_host("https://www.locraven.com/a", "www.locraven.com") == ["https://www.locraven.com/a"]
        assert with_alias_host("https://locraven.com/a", "") == ["https://locraven.com/a"]

    def test_purge_posts_both_hosts(self):
        session = MagicMock()
        session.post.return_value.json.return_value = {"success": True, "errors": []}

        result = _cdn(session).purge_urls(["https://locraven.com/us/wa/seattle/joes-diner"])

        assert result.success is True
        session.post.assert_called_once()
        args, kwargs = session.post.call_args
        assert args[0] == "https://api.cloudflare.com/client/v4/zones/zone-1/purge_cache"
        assert kwargs["json"] == {"files": [
            "https://locraven.com/us/wa/seattle/joes-diner",
            "https://www.locraven.com/us/wa/seattle/joes-diner",
        ]}
        assert kwargs["headers"]["Authorization"] == "Bearer token"
        assert kwargs["timeout"] == 10.0

    def test_missing_credentials(self):
        session = MagicMock()
        result = _cdn(session, zone_id="", api_token="").purge_urls(["https://locraven.com/a"])
        assert result.success is False
        session.post.assert_not_called()

    def test_http_error(self):
        session = MagicMock()
        session.post.return_value.raise_for_status.side_effect = requests.exceptions.HTTPError(
            response=MagicMock(status_code=403)
        )
        result = _cdn(session).purge_urls(["https://locraven.com/a"])
        assert result.success is False
        assert result.error == "HTTP 403"

    def test_connection_error(self):
        session = MagicMock()
        session.post.side_effect = requests.exceptions.ConnectionError("dns failure")
        result = _cdn(session).purge_urls(["https://locraven.com/a"])
        assert result.success is False
        assert "dns failure" in result.error

    def test_api_rejection(self):
        session = MagicMock()
        session.post.return_value.json.return_value = {"success": False, "errors": [{"message": "Invalid zone"}]}
        result = _cdn(session).purge_urls(["https://locraven.com/a"])
        assert result.success is False
        assert result.error == "Invalid zone"


# === Artifacts ===


class TestMetaInjection:
    def test_overwrites_existing_tags(self):
        html = (
            "<!DOCTYPE html><html><head><title>x</title>"
            '<meta name="robots" content="noindex">'
            '<link rel="canonical" href="https://old.example/x">'
            "</head><body><p>hi</p></body></html>"
        )

        soup = BeautifulSoup(inject_discovery_meta(html, "https://locraven.com/a", PUBLISHED_AT), "lxml")

        robots = soup.find_all("meta", attrs={"name": "robots"})
        assert len(robots) == 1
        assert robots[0]["content"] == ROBOTS_DIRECTIVES
        assert soup.find("meta", attrs={"name": "googlebot"})["content"] == ROBOTS_DIRECTIVES
        assert soup.find("meta", attrs={"property": "og:url"})["content"] == "https://locraven.com/a"
        assert soup.find("meta", attrs={"property": "article:modified_time"})["content"] == PUBLISHED_AT
        links = soup.find_all("link", attrs={"rel": "canonical"})
        assert len(links) == 1
        assert links[0]["href"] == "https://locraven.com/a"

    def test_adds_head_when_missing(self):
        soup = BeautifulSoup(inject_discovery_meta("<p>hi</p>", "https://locraven.com/a", PUBLISHED_AT), "lxml")
        assert soup.head.find("link", attrs={"rel": "canonical"})["href"] == "https://locraven.com/a"
        assert soup.p.get_text() == "hi"


class TestSiteArtifacts:
    def test_robots(self, site, renderer):
        text = build_robots(site, renderer)
        lines = text.splitlines()

        assert lines[0] == "User-agent: *"
        assert lines[1] == "Allow: /"
        assert lines.count("Allow: /") == 3
        assert lines.count("Disallow: /api/") == 3
        assert "User-agent: GPTBot" in lines
        assert "User-agent: Claude-Web" in lines
        assert "Crawl-delay: 1" in lines and "Crawl-delay: 2" in lines
        assert lines[-1] == "Sitemap: https://locraven.com/sitemap.xml"
        for path in ROBOTS_DISALLOW:
            assert f"Disallow: {path}" in lines

    def test_sitemap(self, site, renderer):
        pages = [
            PageRecord(
                business_id="b1", file_path="/us/wa/seattle/joes-diner", slug="joes-diner",
                intent_type="business", updated_at="2026-10-18T10:00:00+00:00",
            ),
            PageRecord(
                business_id="b1", file_path="/us/wa/seattle/joes-diner/deal", slug="deal",
                intent_type="direct", updated_at="2026-10-19T16:00:00+00:00", published_at=PUBLISHED_AT,
            ),
            PageRecord(business_id="b1", file_path="/us/wa/seattle/food-dining/a&b", slug="a-b", intent_type="local"),
        ]

        urls = BeautifulSoup(build_sitemap(pages, site, renderer), "xml").find_all("url")

        assert [u.loc.get_text() for u in urls] == [
            "https://locraven.com/us/wa/seattle/joes-diner",
            "https://locraven.com/us/wa/seattle/joes-diner/deal",
            "https://locraven.com/us/wa/seattle/food-dining/a&b",
        ]
        assert urls[0].changefreq.get_text() == "weekly"
        assert urls[0].priority.get_text() == "0.9"
        assert urls[1].changefreq.get_text() == "daily"
        assert urls[1].lastmod.get_text() == PUBLISHED_AT
        assert urls[2].lastmod is None

    def test_last_modified_prefers_aware(self):
        page = PageRecord(
            business_id="b1", file_path="/a", slug="a",
            updated_at="2026-10-20T00:00:00", published_at=PUBLISHED_AT,
        )
        assert last_modified(page) == PUBLISHED_AT


# === Orchestrator ===


@pytest.fixture
def stored_pages(fake_store, failing_client, fixed_now):
    generator = PageGenerator(
        datastore=fake_store,
        synthesizer=ContentSynthesizer(client=failing_client),
        config=GenerationSettings(max_workers=2),
    )
    return generator.generate_for_update("upd-0001", now=fixed_now)


@pytest.fixture
def storage():
    storage = MagicMock()
    storage.put_object.side_effect = lambda key, content, content_type: UploadResult(
        key=key, public_url=f"https://cdn.example/{key}", success=True
    )
    return storage


@pytest.fixture
def cdn():
    cdn = MagicMock()
    cdn.purge_urls.side_effect = lambda urls: PurgeResult(urls=list(urls), success=True)
    return cdn


def _orchestrator(store, storage, cdn, site) -> PublishOrchestrator:
    return PublishOrchestrator(
        datastore=store,
        storage=storage,
        cdn=cdn,
        renderer=TemplateRenderer(site=site),
        config=PublishSettings(max_workers=2),
        storage_config=StorageSettings(),
        site=site,
    )


def _uploaded(storage) -> dict:
    return {c.args[0]: c.args for c in storage.put_object.call_args_list}


class TestPublishOrchestrator:
    def test_requires_exactly_one_selector(self, fake_store, storage, cdn, site):
        orchestrator = _orchestrator(fake_store, storage, cdn, site)
        with pytest.raises(ValueError):
            orchestrator.publish()
        with pytest.raises(ValueError):
            orchestrator.publish(page_ids=["p1"], batch_id="b1")

    def test_partial_upload_failure(self, fake_store, stored_pages, storage, cdn, site, fixed_now):
        pages = stored_pages.pages[:3]
        failing_key = page_object_key(pages[1].file_path)

        def put_object(key, content, content_type):
            if key == failing_key:
                return UploadResult(key=key, public_url="", success=False, error="timeout")
            return UploadResult(key=key, public_url=f"https://cdn.example/{key}", success=True)

        storage.put_object.side_effect = put_object

        report = _orchestrator(fake_store, storage, cdn, site).publish(
            page_ids=[p.id for p in pages], now=fixed_now
        )

        assert report.published.total == 3
        assert report.static_file_generation.attempted == 3
        assert report.static_file_generation.successful == 2
        assert report.static_file_generation.failed == 1
        assert report.static_file_generation.errors == [f"{pages[1].file_path}: timeout"]
        assert report.cache_invalidation.successful == 3
        assert report.sitemap_updated is True
        for page in pages:
            assert fake_store.pages[page.id].published is True
            assert fake_store.pages[page.id].published_at == PUBLISHED_AT
        # pages outside the selection stay unpublished
        assert sum(p.published for p in fake_store.pages.values()) == 3

    def test_second_publish_is_noop(self, fake_store, stored_pages, storage, cdn, site, fixed_now):
        orchestrator = _orchestrator(fake_store, storage, cdn, site)
        first = orchestrator.publish(batch_id=stored_pages.batch_id, now=fixed_now)
        uploads = storage.put_object.call_count

        second = orchestrator.publish(batch_id=stored_pages.batch_id, now=fixed_now)

        assert first.published.total == 6
        assert second.published.total == 0
        assert second.sitemap_updated is False
        assert storage.put_object.call_count == uploads

    def test_only_flipped_pages_go_downstream(self, fake_store, stored_pages, storage, cdn, site, fixed_now):
        ids = stored_pages.page_ids
        fake_store.mark_published(ids[:1], PUBLISHED_AT)
        # a racing publisher resolved ids before the flip above
        fake_store.select_unpublished_page_ids = MagicMock(return_value=ids)

        report = _orchestrator(fake_store, storage, cdn, site).publish(publish_all=True, now=fixed_now)

        assert report.published.total == 5
        assert report.static_file_generation.attempted == 5
        assert cdn.purge_urls.call_count == 5

    def test_nothing_to_publish(self, storage, cdn, site):
        report = _orchestrator(FakeDatastore(), storage, cdn, site).publish(publish_all=True)
        assert report.published.total == 0
        assert report.sitemap_updated is False
        storage.put_object.assert_not_called()
        cdn.purge_urls.assert_not_called()

    def test_flip_failure_aborts(self, fake_store, stored_pages, storage, cdn, site):
        fake_store.fail_flip = True
        with pytest.raises(PersistenceError):
            _orchestrator(fake_store, storage, cdn, site).publish(publish_all=True)
        storage.put_object.assert_not_called()

    def test_uploaded_html_and_artifacts(self, fake_store, stored_pages, storage, cdn, site, fixed_now):
        page = stored_pages.pages[0]

        _orchestrator(fake_store, storage, cdn, site).publish(page_ids=[page.id], now=fixed_now)

        uploads = _uploaded(storage)
        key, html, content_type = uploads[page_object_key(page.file_path)]
        assert content_type == "text/html; charset=utf-8"
        soup = BeautifulSoup(html, "lxml")
        assert soup.find("meta", attrs={"property": "article:modified_time"})["content"] == PUBLISHED_AT
        assert soup.find("link", attrs={"rel": "canonical"})["href"] == f"https://locraven.com{page.file_path}"

        _, sitemap, sitemap_type = uploads["sitemap.xml"]
        assert sitemap_type == "application/xml; charset=utf-8"
        assert f"<loc>https://locraven.com{page.file_path}</loc>" in sitemap
        assert sitemap.count("<url>") == 1
        _, robots, robots_type = uploads["robots.txt"]
        assert robots_type == "text/plain; charset=utf-8"
        assert "Sitemap: https://locraven.com/sitemap.xml" in robots

        cdn.purge_urls.assert_called_once_with([f"https://locraven.com{page.file_path}"])

    def test_sitemap_listing_failure_is_not_fatal(self, fake_store, stored_pages, storage, cdn, site, fixed_now):
        fake_store.list_published_pages = MagicMock(side_effect=PersistenceError("read timeout"))

        report = _orchestrator(fake_store, storage, cdn, site).publish(publish_all=True, now=fixed_now)

        assert report.published.total == 6
        assert report.sitemap_updated is False
        assert report.static_file_generation.successful == 6
        assert "sitemap.xml" not in _uploaded(storage)

    def test_updates_marked_completed(self, fake_store, stored_pages, storage, cdn, site, fixed_now):
        _orchestrator(fake_store, storage, cdn, site).publish(publish_all=True, now=fixed_now)
        assert fake_store.statuses[-1][:2] == ("upd-0001", "completed")

    def test_status_failure_does_not_fail_publish(self, fake_store, stored_pages, storage, cdn, site, fixed_now):
        fake_store.fail_status = True
        report = _orchestrator(fake_store, storage, cdn, site).publish(publish_all=True, now=fixed_now)
        assert report.published.total == 6

    def test_report_keys(self, fake_store, stored_pages, storage, cdn, site, fixed_now):
        report = _orchestrator(fake_store, storage, cdn, site).publish(publish_all=True, now=fixed_now)
        data = report.to_dict()
        assert set(data) == {"published", "staticFileGeneration", "cacheInvalidation", "sitemapUpdated"}
        assert data["published"]["total"] == 6
        assert set(data["published"]["pages"][0]) >= {"id", "url", "title"}


# === CLI ===


class TestPublishCLI:
    def _run(self, monkeypatch, report, *argv):
        monkeypatch.setattr(sys, "argv", ["page-engine-publish", *argv])
        with patch.object(publish_cli, "PublishOrchestrator") as orchestrator_cls:
            orchestrator_cls.return_value.publish.return_value = report
            publish_cli.main()
            return orchestrator_cls.return_value.publish

    def test_batch_publish(self, monkeypatch, capsys):
        publish = self._run(monkeypatch, PublishReport(), "--batch-id", "batch-1", "--json")
        publish.assert_called_once_with(page_ids=None, batch_id="batch-1", publish_all=False)
        assert '"staticFileGeneration"' in capsys.readouterr().out

    def test_upload_failures_exit_2(self, monkeypatch):
        report = PublishReport()
        report.static_file_generation.record(False, "/a: timeout")
        with pytest.raises(SystemExit) as exc:
            self._run(monkeypatch, report, "--all")
        assert exc.value.code == 2

    def test_persistence_error_exit_1(self, monkeypatch):
        monkeypatch.setattr(sys, "argv", ["page-engine-publish", "--page-ids", "p1"])
        with patch.object(publish_cli, "PublishOrchestrator") as orchestrator_cls:
            orchestrator_cls.return_value.publish.side_effect = PersistenceError("down")
            with pytest.raises(SystemExit) as exc:
                publish_cli.main()
        assert exc.value.code == 1

    def test_selector_required(self, monkeypatch):
        monkeypatch.setattr(sys, "argv", ["page-engine-publish"])
        with pytest.raises(SystemExit) as exc:
            publish_cli.main()
        assert exc.value.code == 2
