"""Cloudflare cache purge for published URLs.

Each purge covers the canonical URL and its alias-host twin
(``locraven.com/x`` and ``www.locraven.com/x``), so neither host keeps
serving the stale copy.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import urlsplit, urlunsplit

import requests

from src.common.config import CDNSettings, Credentials, SiteSettings, settings

logger = logging.getLogger(__name__)


@dataclass
class PurgeResult:
    """Result of one purge request."""

    urls: list[str] = field(default_factory=list)
    success: bool = True
    error: str = ""


def with_alias_host(url: str, alias_host: str) -> list[str]:
    """The URL plus the same path on the alias host (deduplicated)."""
    parts = urlsplit(url)
    urls = [url]
    if alias_host and parts.netloc and parts.netloc != alias_host:
        urls.append(urlunsplit(parts._replace(netloc=alias_host)))
    return urls


class CloudflareCDN:
    """Purges cached files by URL through the Cloudflare v4 API."""

    def __init__(
        self,
        zone_id: Optional[str] = None,
        api_token: Optional[str] = None,
        config: CDNSettings | None = None,
        site: SiteSettings | None = None,
        session: requests.Session | None = None,
    ):
        creds = Credentials.from_env() if (zone_id is None or api_token is None) else None
        self._zone_id = zone_id if zone_id is not None else creds.cloudflare_zone_id
        self._api_token = api_token if api_token is not None else creds.cloudflare_api_token
        self.config = config or settings.cdn
        self.site = site or settings.site
        self._session = session or requests.Session()

    def purge_urls(self, urls: list[str]) -> PurgeResult:
        """Purge the given URLs and their alias-host twins.

        Never raises; transport and API errors come back as a failed result.
        """
        targets: list[str] = []
        for url in urls:
            for target in with_alias_host(url, self.site.alias_host):
                if target not in targets:
                    targets.append(target)

        if not self._zone_id or not self._api_token:
            return PurgeResult(urls=targets, success=False, error="CLOUDFLARE_ZONE_ID / CLOUDFLARE_API_TOKEN not set")

        endpoint = f"{self.config.api_base.rstrip('/')}/zones/{self._zone_id}/purge_cache"
        try:
            resp = self._session.post(
                endpoint,
                headers={
                    "Authorization": f"Bearer {self._api_token}",
                    "Content-Type": "application/json",
                },
                json={"files": targets},
                timeout=self.config.timeout_seconds,
            )
            resp.raise_for_status()
            data = resp.json()
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else "?"
            logger.warning("Cloudflare purge returned %s for %s", status, targets)
            return PurgeResult(urls=targets, success=False, error=f"HTTP {status}")
        except (requests.RequestException, ValueError) as e:
            logger.warning("Cloudflare purge failed for %s: %s", targets, e)
            return PurgeResult(urls=targets, success=False, error=str(e))

        if not data.get("success", False):
            errors = "; ".join(str(err.get("message", err)) for err in data.get("errors", []))
            logger.warning("Cloudflare purge rejected for %s: %s", targets, errors)
            return PurgeResult(urls=targets, success=False, error=errors or "purge rejected")

        logger.info("Purged %d URLs", len(targets))
        return PurgeResult(urls=targets, success=True)
