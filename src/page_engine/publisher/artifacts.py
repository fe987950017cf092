"""Static artifacts written next to the pages: meta injection, sitemap, robots.

``inject_discovery_meta`` runs on every rendered page right before upload
and stamps the publish-time values (canonical URL, modified time, crawler
directives) into the document head.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from bs4 import BeautifulSoup

from src.common.config import SiteSettings
from src.common.models import PageRecord
from src.page_engine.template_engine import BUSINESS_PROFILE, TemplateRenderer
from src.page_engine.template_engine.helpers import parse_iso

ROBOTS_DIRECTIVES = "index, follow, max-snippet:-1, max-image-preview:large, max-video-preview:-1"

SITEMAP_KEY = "sitemap.xml"
ROBOTS_KEY = "robots.txt"


@dataclass
class RobotsGroup:
    user_agents: list[str]
    crawl_delay: Optional[int] = None


ROBOTS_GROUPS = [
    RobotsGroup(user_agents=["*"]),
    RobotsGroup(user_agents=["Googlebot", "Bingbot", "Slurp"], crawl_delay=1),
    RobotsGroup(
        user_agents=["ChatGPT-User", "GPTBot", "Claude-Web", "PerplexityBot", "Google-Extended"],
        crawl_delay=2,
    ),
]

ROBOTS_DISALLOW = [
    "/api/",
    "/_next/",
    "/dashboard/",
    "/account/",
    "/auth/",
    "/admin/",
    "/private/",
    "/*.json$",
]


# --- Meta injection ---

def _set_meta(soup: BeautifulSoup, head, content: str, name: str = "", prop: str = "") -> None:
    attrs = {"name": name} if name else {"property": prop}
    tag = head.find("meta", attrs=attrs)
    if tag is None:
        tag = soup.new_tag("meta")
        for key, value in attrs.items():
            tag[key] = value
        head.append(tag)
    tag["content"] = content


def inject_discovery_meta(html_doc: str, url: str, modified_time: str) -> str:
    """Add or overwrite crawler and freshness tags in the document head.

    Args:
        html_doc: Rendered page
        url: Canonical public URL of the page
        modified_time: ISO-8601 publish instant

    Returns:
        The document with robots, googlebot, canonical, og:url and
        article:modified_time set
    """
    soup = BeautifulSoup(html_doc, "lxml")
    head = soup.find("head")
    if head is None:
        head = soup.new_tag("head")
        if soup.html is not None:
            soup.html.insert(0, head)
        else:
            soup.insert(0, head)

    _set_meta(soup, head, ROBOTS_DIRECTIVES, name="robots")
    _set_meta(soup, head, ROBOTS_DIRECTIVES, name="googlebot")
    _set_meta(soup, head, url, prop="og:url")
    _set_meta(soup, head, modified_time, prop="article:modified_time")

    canonical = head.find("link", attrs={"rel": "canonical"})
    if canonical is None:
        canonical = soup.new_tag("link", rel="canonical")
        head.append(canonical)
    canonical["href"] = url

    return str(soup)


# --- Sitemap / robots ---

def last_modified(page: PageRecord) -> Optional[str]:
    """Later of updated_at and published_at, as a W3C datetime."""
    instants = [d for d in (parse_iso(page.updated_at), parse_iso(page.published_at)) if d is not None]
    if not instants:
        return None
    # naive and aware values cannot be compared
    if len({d.tzinfo is None for d in instants}) > 1:
        instants = [d for d in instants if d.tzinfo is not None]
    return max(instants).isoformat()


def sitemap_entries(pages: list[PageRecord], site: SiteSettings) -> list[dict]:
    base = site.base_url.rstrip("/")
    entries = []
    for page in pages:
        profile = page.intent_type == BUSINESS_PROFILE
        entries.append({
            "loc": f"{base}{page.file_path}",
            "lastmod": last_modified(page),
            "changefreq": "weekly" if profile else "daily",
            "priority": "0.9" if profile else "0.7",
        })
    return entries


def build_sitemap(pages: list[PageRecord], site: SiteSettings, renderer: TemplateRenderer) -> str:
    """sitemap.xml with one <url> per published page."""
    return renderer.render_artifact("sitemap.xml", {"entries": sitemap_entries(pages, site)})


def build_robots(site: SiteSettings, renderer: TemplateRenderer) -> str:
    """robots.txt with crawler groups, shared disallow list and sitemap line."""
    return renderer.render_artifact(
        "robots.txt",
        {
            "groups": ROBOTS_GROUPS,
            "disallow": ROBOTS_DISALLOW,
            "sitemap_url": f"{site.base_url.rstrip('/')}/{SITEMAP_KEY}",
        },
    )
