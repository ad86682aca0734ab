"""
Daily overview command line.

Prints everything that completes today (building extensions, storage rooms,
specializations and the viewer's schoolings), grouped and sorted by time.

Usage examples:
  # Text overview (session cookie from .env / environment)
  python -m daily_overview

  # JSON for other tools
  python -m daily_overview --json

  # Smaller detail-page batches, verbose logging
  OVERVIEW_DETAIL_BATCH_SIZE=2 python -m daily_overview --debug
"""

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime
from typing import List, Optional

from daily_overview.exceptions import SourceFetchError
from daily_overview.models import SECTIONS, AggregationResult, Category
from daily_overview.overview_service import build_cache_manager, build_default_service
from daily_overview.today_filter import local_now, to_local
from shared.config.overview_config import OverviewConfig
from shared.utils.sentry_config import configure_sentry
from shared.utils.structured_logging import log_error

logger = logging.getLogger(__name__)

DATE_FORMAT = "%d.%m.%Y"
DATETIME_FORMAT = "%d.%m.%Y %H:%M"


def render_text(result: AggregationResult, reference_now: datetime) -> str:
    lines = [f"📅 Heutige Fertigstellungen ({to_local(reference_now).strftime(DATE_FORMAT)})"]

    for category in Category:
        section = SECTIONS[category]
        lines.append("")
        lines.append(f"{section.icon} {section.title}")

        events = result[category]
        if not events:
            lines.append(f"  {section.empty_text}")
            continue

        for event in events:
            when = to_local(event.completes_at).strftime(DATETIME_FORMAT)
            if category is Category.SCHOOLING:
                lines.append(f"  {event.label} (Endet am {when})")
            else:
                lines.append(f"  {event.context}: {event.label} (Fertig am {when})")

    return "\n".join(lines)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="daily_overview",
        description="Show today's building and schooling completions",
    )
    parser.add_argument("--json", action="store_true", help="Print the overview as JSON")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    configure_sentry()

    config = OverviewConfig.from_env()
    for warning in config.validate():
        logger.warning(f"Config: {warning}")

    service = build_default_service(config)
    cache = build_cache_manager(config, service)
    reference_now = local_now()

    try:
        result = asyncio.run(cache.get_or_compute(reference_now))
    except SourceFetchError as e:
        log_error(type(e).__name__, str(e), source=e.source, url=e.url)
        print(f"⚠️ Fehler beim Laden der Daten: {e}", file=sys.stderr)
        return 1
    finally:
        service.close()

    if args.json:
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
    else:
        print(render_text(result, reference_now))
    return 0
