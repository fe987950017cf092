"""Supabase datastore for businesses, updates and generated pages.

All reads and writes on the generation/publish path go through
``SupabaseDatastore``. Failures are raised as ``PersistenceError`` so
callers can abort the unit of work; missing rows raise
``RecordNotFoundError``.

Prerequisites:
    - SUPABASE_URL and SUPABASE_SERVICE_KEY in .env
    - Tables: businesses, updates, generated_pages

Usage:
    from src.common.datastore import SupabaseDatastore

    store = SupabaseDatastore()
    business = store.get_business("b-123")
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from .config import Credentials, SupabaseSettings, settings
from .models import (
    BusinessRecord,
    PageRecord,
    PersistenceError,
    RecordNotFoundError,
    UpdateRecord,
    UpdateStatus,
)

logger = logging.getLogger(__name__)

# Columns a regeneration must not overwrite on an existing row
_PUBLISH_STATE_COLUMNS = ("id", "published_at", "created_at", "expired", "expired_at")


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


class SupabaseDatastore:
    """Thin repository over the Supabase PostgREST client."""

    def __init__(
        self,
        supabase_url: Optional[str] = None,
        supabase_key: Optional[str] = None,
        tables: SupabaseSettings | None = None,
        client: Any = None,
    ):
        creds = Credentials.from_env() if (supabase_url is None or supabase_key is None) else None
        self._url = supabase_url if supabase_url is not None else creds.supabase_url
        self._key = supabase_key if supabase_key is not None else creds.supabase_service_key
        self.tables = tables or settings.supabase
        self._client = client

    def _get_client(self):
        """Lazy-initialize Supabase client."""
        if self._client is not None:
            return self._client
        if not self._url or not self._key:
            raise ValueError(
                "SUPABASE_URL / SUPABASE_SERVICE_KEY must be set in .env. "
                "See config/.env.example."
            )
        from supabase import create_client

        self._client = create_client(self._url, self._key)
        logger.info("Connected to Supabase: %s", self._url)
        return self._client

    def _execute(self, description: str, build_query) -> list[dict]:
        """Run a query builder callable and return its rows.

        Args:
            description: Human-readable label used in errors
            build_query: Callable taking the client, returning a query

        Returns:
            Response rows (possibly empty)

        Raises:
            PersistenceError: On any client or transport failure
        """
        try:
            response = build_query(self._get_client()).execute()
        except Exception as e:
            logger.error("Datastore %s failed: %s", description, e)
            raise PersistenceError(f"{description} failed: {e}") from e
        return list(response.data or [])

    # --- Businesses / updates ---

    def get_business(self, business_id: str) -> BusinessRecord:
        rows = self._execute(
            f"load business {business_id}",
            lambda c: c.table(self.tables.businesses_table)
            .select("*")
            .eq("id", business_id)
            .limit(1),
        )
        if not rows:
            raise RecordNotFoundError(f"business {business_id} not found")
        return BusinessRecord(**rows[0])

    def get_update(self, update_id: str) -> UpdateRecord:
        rows = self._execute(
            f"load update {update_id}",
            lambda c: c.table(self.tables.updates_table)
            .select("*")
            .eq("id", update_id)
            .limit(1),
        )
        if not rows:
            raise RecordNotFoundError(f"update {update_id} not found")
        return UpdateRecord(**rows[0])

    def set_update_status(
        self,
        update_id: str,
        status: UpdateStatus,
        **fields: Any,
    ) -> None:
        """Set an update's status, plus optional extra columns (error_message, ...)."""
        data = {"status": status.value, **fields}
        self._execute(
            f"set status {status.value} on update {update_id}",
            lambda c: c.table(self.tables.updates_table)
            .update(data)
            .eq("id", update_id),
        )

    # --- Generated pages ---

    def find_active_page(self, business_id: str, file_path: str) -> PageRecord | None:
        """Return the non-expired page at (business_id, file_path), if any."""
        rows = self._execute(
            f"look up page {file_path}",
            lambda c: c.table(self.tables.pages_table)
            .select("*")
            .eq("business_id", business_id)
            .eq("file_path", file_path)
            .eq("expired", False)
            .limit(1),
        )
        return PageRecord(**rows[0]) if rows else None

    def save_page(self, page: PageRecord) -> PageRecord:
        """Insert a page, or update the active row already at its path.

        Keeps the one-active-row-per-(business_id, file_path) invariant.
        """
        existing = self.find_active_page(page.business_id, page.file_path)
        now = utc_now_iso()
        data = page.to_supabase_dict()
        data["updated_at"] = now

        if existing is not None:
            for column in _PUBLISH_STATE_COLUMNS:
                data.pop(column, None)
            rows = self._execute(
                f"update page {existing.id}",
                lambda c: c.table(self.tables.pages_table)
                .update(data)
                .eq("id", existing.id),
            )
            logger.info("Updated page %s (%s)", existing.id, page.file_path)
        else:
            data.pop("id", None)
            data.setdefault("created_at", now)
            rows = self._execute(
                f"insert page {page.file_path}",
                lambda c: c.table(self.tables.pages_table).insert(data),
            )
            logger.info("Inserted page %s", page.file_path)

        if not rows:
            raise PersistenceError(f"save of page {page.file_path} returned no row")
        return PageRecord(**rows[0])

    def get_pages(self, page_ids: list[str]) -> list[PageRecord]:
        if not page_ids:
            return []
        rows = self._execute(
            "load pages",
            lambda c: c.table(self.tables.pages_table)
            .select("*")
            .in_("id", page_ids),
        )
        return [PageRecord(**row) for row in rows]

    def select_unpublished_page_ids(
        self,
        page_ids: list[str] | None = None,
        batch_id: str | None = None,
        publish_all: bool = False,
    ) -> list[str]:
        """Resolve publish targets that are neither published nor expired.

        Exactly one selector is honoured, in order: page_ids, batch_id,
        publish_all.

        Raises:
            ValueError: If no selector is given
        """
        if not page_ids and not batch_id and not publish_all:
            raise ValueError("Provide page_ids, batch_id or publish_all")

        def build(c):
            query = (
                c.table(self.tables.pages_table)
                .select("id")
                .eq("published", False)
                .eq("expired", False)
            )
            if page_ids:
                return query.in_("id", page_ids)
            if batch_id:
                return query.eq("generation_batch_id", batch_id)
            return query

        rows = self._execute("resolve unpublished pages", build)
        return [row["id"] for row in rows]

    def mark_published(self, page_ids: list[str], published_at: str) -> list[PageRecord]:
        """Flip published=true for rows still unpublished; return the rows flipped.

        The ``published = false`` filter makes the flip conditional, so of
        two overlapping publish calls only one receives a given row back.
        """
        if not page_ids:
            return []
        rows = self._execute(
            "flip published flag",
            lambda c: c.table(self.tables.pages_table)
            .update({"published": True, "published_at": published_at, "updated_at": published_at})
            .in_("id", page_ids)
            .eq("published", False),
        )
        return [PageRecord(**row) for row in rows]

    def list_published_pages(self) -> list[PageRecord]:
        """All live pages, for the sitemap."""
        rows = self._execute(
            "list published pages",
            lambda c: c.table(self.tables.pages_table)
            .select("id,business_id,update_id,file_path,slug,intent_type,published,published_at,updated_at,expired")
            .eq("published", True)
            .eq("expired", False)
            .order("file_path"),
        )
        return [PageRecord(**row) for row in rows]
