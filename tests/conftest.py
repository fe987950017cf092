"""Shared test fixtures for the page engine."""

import copy
import json
import sys
import uuid
from datetime import datetime
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest

# Ensure src is importable
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.common.config import GenerationSettings, SiteSettings
from src.common.models import (
    BusinessRecord,
    PageRecord,
    PersistenceError,
    RecordNotFoundError,
    UpdateRecord,
)
from src.page_engine.content_writer.models import CompletionResult

FIXTURES_DIR = PROJECT_ROOT / "fixtures"
SITE_TZ = ZoneInfo("America/Los_Angeles")


def _load(name: str) -> dict:
    with open(FIXTURES_DIR / name, "r", encoding="utf-8") as f:
        return json.load(f)


class StubCompletionClient:
    """CompletionClient returning canned results and recording prompts."""

    def __init__(self, results=None, text=None):
        if results is None:
            results = [CompletionResult(text=text or "", provider="openai", model="gpt-4o")]
        self.results = list(results)
        self.calls = []

    def complete(self, system_prompt: str, user_prompt: str) -> CompletionResult:
        self.calls.append((system_prompt, user_prompt))
        if len(self.results) > 1:
            return self.results.pop(0)
        return copy.copy(self.results[0])


class FakeDatastore:
    """In-memory stand-in for SupabaseDatastore with the same semantics.

    ``mark_published`` only returns rows that were still unpublished, like
    the conditional update against Supabase.
    """

    def __init__(self, businesses=None, updates=None):
        self.businesses = {b.id: b for b in businesses or []}
        self.updates = {u.id: u for u in updates or []}
        self.pages: dict[str, PageRecord] = {}
        self.statuses: list[tuple[str, str, dict]] = []
        self.fail_save = False
        self.fail_flip = False
        self.fail_status = False

    def get_business(self, business_id):
        if business_id not in self.businesses:
            raise RecordNotFoundError(f"business {business_id} not found")
        return self.businesses[business_id]

    def get_update(self, update_id):
        if update_id not in self.updates:
            raise RecordNotFoundError(f"update {update_id} not found")
        return self.updates[update_id]

    def set_update_status(self, update_id, status, **fields):
        if self.fail_status:
            raise PersistenceError("status write failed")
        self.statuses.append((update_id, status.value, fields))

    def find_active_page(self, business_id, file_path):
        for page in self.pages.values():
            if page.business_id == business_id and page.file_path == file_path and not page.expired:
                return page
        return None

    def save_page(self, page):
        if self.fail_save:
            raise PersistenceError(f"insert page {page.file_path} failed")
        existing = self.find_active_page(page.business_id, page.file_path)
        if existing is not None:
            saved = page.model_copy(update={
                "id": existing.id,
                "created_at": existing.created_at,
                "published_at": existing.published_at,
                "published": False,
            })
        else:
            saved = page.model_copy(update={"id": str(uuid.uuid4()), "created_at": "2026-10-19T16:00:00+00:00"})
        saved = saved.model_copy(update={"updated_at": "2026-10-19T16:00:00+00:00"})
        self.pages[saved.id] = saved
        return saved

    def get_pages(self, page_ids):
        return [self.pages[i] for i in page_ids if i in self.pages]

    def select_unpublished_page_ids(self, page_ids=None, batch_id=None, publish_all=False):
        if not page_ids and not batch_id and not publish_all:
            raise ValueError("Provide page_ids, batch_id or publish_all")
        candidates = [p for p in self.pages.values() if not p.published and not p.expired]
        if page_ids:
            candidates = [p for p in candidates if p.id in page_ids]
        elif batch_id:
            candidates = [p for p in candidates if p.generation_batch_id == batch_id]
        return [p.id for p in candidates]

    def mark_published(self, page_ids, published_at):
        if self.fail_flip:
            raise PersistenceError("flip published flag failed")
        flipped = []
        for page_id in page_ids:
            page = self.pages.get(page_id)
            if page is None or page.published:
                continue
            page = page.model_copy(update={"published": True, "published_at": published_at, "updated_at": published_at})
            self.pages[page_id] = page
            flipped.append(page)
        return flipped

    def list_published_pages(self):
        return sorted(
            (p for p in self.pages.values() if p.published and not p.expired),
            key=lambda p: p.file_path,
        )


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def fixed_now() -> datetime:
    """Monday 2026-10-19 12:00 in the site timezone."""
    return datetime(2026, 10, 19, 12, 0, tzinfo=SITE_TZ)


@pytest.fixture
def site() -> SiteSettings:
    return SiteSettings()


@pytest.fixture
def business_data() -> dict:
    """Raw business row (Seattle diner, food-dining)."""
    return _load("sample_business.json")


@pytest.fixture
def update_data() -> dict:
    """Raw update row: "50% off all services today only!"."""
    return _load("sample_update.json")


@pytest.fixture
def business(business_data) -> BusinessRecord:
    return BusinessRecord(**business_data)


@pytest.fixture
def update(update_data) -> UpdateRecord:
    return UpdateRecord(**update_data)


@pytest.fixture
def minimal_business() -> BusinessRecord:
    """Only the fields needed to build URLs."""
    return BusinessRecord(
        id="biz-min",
        name="Corner Shop",
        address_city="Portland",
        address_state="OR",
        primary_category="shopping",
    )


@pytest.fixture
def fake_store(business, update) -> FakeDatastore:
    return FakeDatastore(businesses=[business], updates=[update])


@pytest.fixture
def generation_settings() -> GenerationSettings:
    return GenerationSettings(max_workers=2)


@pytest.fixture
def failing_client() -> StubCompletionClient:
    """LLM client whose every call fails."""
    return StubCompletionClient(
        results=[CompletionResult(provider="openai", success=False, error="APIConnectionError: offline")]
    )
