"""CLI entry point for page generation.

Usage:
    python -m src.page_engine.generator.main --update-id upd-123
    python -m src.page_engine.generator.main --business-id biz-42 --profile
    python -m src.page_engine.generator.main \
        --business fixtures/sample_business.json --update fixtures/sample_update.json
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from src.common.config import DATA_EXPORTS_DIR, PROJECT_ROOT
from src.common.logging import setup_logging
from src.common.models import BusinessRecord, PageEngineError, UpdateRecord
from src.page_engine.content_writer import ContentSynthesizer, LLMProvider, SynthesizerConfig
from src.page_engine.page_codec import expand
from src.page_engine.template_engine import TemplateRenderer

from .models import GenerationSummary
from .pipeline import PageGenerator

logger = setup_logging(module_name="generator.main")


def _load_json(path: Path) -> dict:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _write_offline(summary: GenerationSummary, output_dir: Path) -> list[Path]:
    """Render each built page to {output_dir}{file_path}/index.html."""
    renderer = TemplateRenderer()
    written = []
    for page in summary.pages:
        html = renderer.render(page.intent_type, expand(page.page_data))
        path = output_dir / page.file_path.lstrip("/") / "index.html"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(html, encoding="utf-8")
        written.append(path)
    return written


def _print_summary(summary: GenerationSummary) -> None:
    print(f"\n{'=' * 60}")
    print(f"  Update: {summary.update_id}")
    print(f"  Batch:  {summary.batch_id}")
    print(f"{'=' * 60}")
    for page in summary.pages:
        print(f"  [{page.intent_type}] {page.file_path}")
        print(f"      {page.title}")
    if summary.fallback_intents:
        print(f"\n  Fallback copy used for: {', '.join(summary.fallback_intents)}")
    for failure in summary.failures:
        print(f"  FAILED [{failure.intent}]: {failure.error}")
    print()


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate discovery pages for a business update")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--update-id", help="Update id to generate pages for (uses Supabase)")
    source.add_argument("--business-id", help="Business id for --profile generation (uses Supabase)")
    parser.add_argument("--profile", action="store_true", help="Generate the business-profile page")
    parser.add_argument(
        "--business",
        type=Path,
        help="Business record JSON for offline generation",
    )
    parser.add_argument(
        "--update",
        type=Path,
        help="Update record JSON for offline generation",
    )
    parser.add_argument(
        "--output",
        type=Path,
        help="Directory for offline HTML output (default: data/exports/pages)",
    )
    parser.add_argument(
        "--provider",
        choices=["openai", "anthropic"],
        help="LLM provider (default: from settings)",
    )
    parser.add_argument("--json", action="store_true", help="Print the summary as JSON")

    args = parser.parse_args()

    synthesizer = None
    if args.provider:
        config = SynthesizerConfig(provider=LLMProvider(args.provider))
        synthesizer = ContentSynthesizer(config=config)
    generator = PageGenerator(synthesizer=synthesizer)

    try:
        if args.update_id:
            summary = generator.generate_for_update(args.update_id)
        elif args.business_id:
            if not args.profile:
                parser.error("--business-id requires --profile")
            page = generator.generate_profile_page(args.business_id)
            print(f"\nProfile page saved: {page.file_path} ({page.id})")
            return
        else:
            business_path = args.business or PROJECT_ROOT / "fixtures" / "sample_business.json"
            update_path = args.update or PROJECT_ROOT / "fixtures" / "sample_update.json"
            if not business_path.exists() or not update_path.exists():
                logger.error("Business/update JSON not found")
                sys.exit(1)
            business = BusinessRecord(**_load_json(business_path))
            update = UpdateRecord(**_load_json(update_path))
            summary = generator.build_pages(business, update)

            output_dir = args.output or DATA_EXPORTS_DIR / "pages"
            written = _write_offline(summary, output_dir)
            logger.info("Wrote %d pages under %s", len(written), output_dir)
    except PageEngineError as e:
        logger.error("Generation failed: %s", e)
        sys.exit(1)

    if args.json:
        print(json.dumps(summary.to_dict(), ensure_ascii=False, indent=2))
    else:
        _print_summary(summary)


if __name__ == "__main__":
    main()
