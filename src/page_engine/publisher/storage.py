"""Supabase Storage: upload rendered static files.

Pages, the sitemap and robots.txt land in a public bucket and are served
from there through the CDN. Uploads overwrite (upsert), so republishing
the same key replaces the object.

Prerequisites:
    - A public 'static-pages' bucket in the Supabase dashboard
    - SUPABASE_URL and SUPABASE_SERVICE_KEY in .env

Usage:
    from src.page_engine.publisher.storage import SupabaseStorage

    storage = SupabaseStorage()
    result = storage.put_object("us/wa/seattle/joes-diner/index.html", html, "text/html; charset=utf-8")
    print(result.public_url)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Union

from src.common.config import Credentials, StorageSettings, settings

logger = logging.getLogger(__name__)

CACHE_CONTROL_SECONDS = "300"


@dataclass
class UploadResult:
    """Result of a single object upload."""

    key: str  # Object key relative to the bucket root
    public_url: str
    success: bool
    error: str = ""


def page_object_key(file_path: str, key_prefix: str = "") -> str:
    """Object key for a page: ``{prefix}{file_path without leading slash}/index.html``."""
    return f"{key_prefix}{file_path.strip('/')}/index.html"


class SupabaseStorage:
    """Upload static files to Supabase Storage and build their public URLs."""

    def __init__(
        self,
        supabase_url: Optional[str] = None,
        supabase_key: Optional[str] = None,
        config: StorageSettings | None = None,
        client: Any = None,
    ):
        creds = Credentials.from_env() if (supabase_url is None or supabase_key is None) else None
        self._url = supabase_url if supabase_url is not None else creds.supabase_url
        self._key = supabase_key if supabase_key is not None else creds.supabase_service_key
        self.config = config or settings.storage
        self._client = client

    @property
    def bucket(self) -> str:
        return self.config.bucket

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
        return self._client

    def get_public_url(self, key: str) -> str:
        """Build the public URL for a storage object.

        Args:
            key: Object key relative to bucket root.

        Returns:
            Full public URL (e.g. https://xxx.supabase.co/storage/v1/object/public/static-pages/...)
        """
        url = self._url.rstrip("/")
        return f"{url}/storage/v1/object/public/{self.bucket}/{key}"

    def put_object(
        self,
        key: str,
        content: Union[str, bytes],
        content_type: str = "text/html; charset=utf-8",
    ) -> UploadResult:
        """Upload (or replace) one object.

        Args:
            key: Object key (e.g. "us/wa/seattle/joes-diner/index.html").
            content: Text (encoded as UTF-8) or bytes.
            content_type: MIME type.

        Returns:
            UploadResult; success is False when the upload raised.
        """
        data = content.encode("utf-8") if isinstance(content, str) else content
        try:
            client = self._get_client()
            client.storage.from_(self.bucket).upload(
                path=key,
                file=data,
                file_options={
                    "content-type": content_type,
                    "cache-control": CACHE_CONTROL_SECONDS,
                    "upsert": "true",
                },
            )
        except Exception as e:
            logger.error("Upload failed for %s: %s", key, e)
            return UploadResult(key=key, public_url="", success=False, error=str(e))

        public_url = self.get_public_url(key)
        logger.info("Uploaded: %s -> %s", key, public_url)
        return UploadResult(key=key, public_url=public_url, success=True)
