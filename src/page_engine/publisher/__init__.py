# Publisher: flag flip, static upload, sitemap/robots and CDN purge
from .artifacts import (
    ROBOTS_DISALLOW,
    ROBOTS_GROUPS,
    build_robots,
    build_sitemap,
    inject_discovery_meta,
)
from .cdn import CloudflareCDN, PurgeResult, with_alias_host
from .models import PublishedPages, PublishReport, PublishSelector, StageResult
from .orchestrator import PublishOrchestrator
from .storage import SupabaseStorage, UploadResult, page_object_key

__all__ = [
    "CloudflareCDN",
    "PublishOrchestrator",
    "PublishReport",
    "PublishSelector",
    "PublishedPages",
    "PurgeResult",
    "ROBOTS_DISALLOW",
    "ROBOTS_GROUPS",
    "StageResult",
    "SupabaseStorage",
    "UploadResult",
    "build_robots",
    "build_sitemap",
    "inject_discovery_meta",
    "page_object_key",
    "with_alias_host",
]
