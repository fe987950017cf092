"""CLI entry point for publishing generated pages.

Usage:
    python -m src.page_engine.publisher.main --page-ids p-1 p-2
    python -m src.page_engine.publisher.main --batch-id 8c1e0f2a-...
    python -m src.page_engine.publisher.main --all --json
"""

from __future__ import annotations

import argparse
import json
import sys

from src.common.logging import setup_logging
from src.common.models import PersistenceError

from .models import PublishReport
from .orchestrator import PublishOrchestrator

logger = setup_logging(module_name="publisher.main")


def _print_summary(report: PublishReport) -> None:
    static = report.static_file_generation
    cache = report.cache_invalidation
    print(f"\n{'=' * 60}")
    print(f"  Published: {report.published.total} pages")
    print(f"{'=' * 60}")
    for page in report.published.pages:
        print(f"  [{page.get('intent_type')}] {page.get('url')}")
    print(f"\n  Static files: {static.successful}/{static.attempted} uploaded")
    for error in static.errors:
        print(f"    ! {error}")
    print(f"  CDN purge:    {cache.successful}/{cache.attempted} purged")
    for error in cache.errors:
        print(f"    ! {error}")
    print(f"  Sitemap:      {'updated' if report.sitemap_updated else 'not updated'}")
    print()


def main() -> None:
    parser = argparse.ArgumentParser(description="Publish generated discovery pages")
    selector = parser.add_mutually_exclusive_group(required=True)
    selector.add_argument("--page-ids", nargs="+", help="Page ids to publish")
    selector.add_argument("--batch-id", help="Publish every page of a generation batch")
    selector.add_argument("--all", action="store_true", help="Publish every unpublished page")
    parser.add_argument("--json", action="store_true", help="Print the report as JSON")

    args = parser.parse_args()

    orchestrator = PublishOrchestrator()
    try:
        report = orchestrator.publish(
            page_ids=args.page_ids,
            batch_id=args.batch_id,
            publish_all=args.all,
        )
    except PersistenceError as e:
        logger.error("Publish aborted: %s", e)
        sys.exit(1)

    if args.json:
        print(json.dumps(report.to_dict(), ensure_ascii=False, indent=2))
    else:
        _print_summary(report)

    if report.static_file_generation.failed:
        sys.exit(2)


if __name__ == "__main__":
    main()
