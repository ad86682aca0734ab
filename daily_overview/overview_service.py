"""
Path: daily_overview/overview_service.py

One aggregation pass:

    viewer identity + building list (concurrently), then course listing
        -> normalize -> CategoryAggregator (membership for schoolings)
        -> AggregationResult

reference_now is fixed by the caller at pass start and reused for every
relative-time resolution and every calendar-day comparison of the pass.

Any failure of a required source fails the pass with SourceFetchError; nothing
partial is returned. Detail-page failures are absorbed by the resolver.

Usage:
    cache = build_cache_manager(OverviewConfig.from_env())
    result = await cache.get_or_compute()
"""

import asyncio
import logging
import time
from datetime import datetime
from typing import Any, Optional

from daily_overview.aggregator import CategoryAggregator
from daily_overview.cache_manager import CacheManager
from daily_overview.exceptions import SourceFetchError
from daily_overview.membership import MembershipResolver
from daily_overview.models import AggregationResult
from daily_overview.normalizer import normalize
from daily_overview.today_filter import to_local
from shared.config.overview_config import OverviewConfig
from shared.utils.sentry_config import add_pass_context
from shared.utils.structured_logging import (
    clear_logging_context,
    log_pass_complete,
    log_pass_start,
    set_logging_context,
)

logger = logging.getLogger(__name__)


class DailyOverviewService:
    """
    Runs aggregation passes against a set of sources.

    Args:
        sources: Object with coroutine methods viewer_identity(), buildings(),
                 courses() and course_detail(course)
        resolver: Membership resolver; built from the sources when omitted
    """

    def __init__(self, sources: Any, resolver: Optional[MembershipResolver] = None):
        self.sources = sources
        self.resolver = resolver or MembershipResolver(detail_source=sources.course_detail)

    async def _fetch_sources(self):
        try:
            viewer, buildings = await asyncio.gather(
                self.sources.viewer_identity(),
                self.sources.buildings(),
            )
            courses = await self.sources.courses()
        except SourceFetchError:
            raise
        except Exception as e:
            raise SourceFetchError("sources", f"{type(e).__name__}: {e}") from e
        return viewer, buildings, courses

    async def compute(self, reference_now: datetime) -> AggregationResult:
        """
        Run one pass for reference_now.

        Raises:
            SourceFetchError: If the viewer identity, building list or course
                              listing cannot be loaded
        """
        start_time = time.time()
        reference_iso = to_local(reference_now).isoformat()
        log_pass_start(reference_iso)

        viewer, buildings, courses = await self._fetch_sources()
        set_logging_context(viewer_id=viewer.user_id)
        add_pass_context(reference_iso, viewer.user_id)

        try:
            events = normalize([*buildings, *courses], reference_now)

            aggregator = CategoryAggregator(
                self.resolver,
                courses={course.source_ref: course for course in courses},
            )
            result = await aggregator.aggregate(events, reference_now, viewer.user_id, viewer.name)

            log_pass_complete(
                reference_iso,
                counts=result.counts(),
                duration_seconds=round(time.time() - start_time, 3),
                buildings=len(buildings),
                courses=len(courses),
            )
        finally:
            clear_logging_context()
        return result

    def close(self) -> None:
        close = getattr(self.sources, "close", None)
        if close is not None:
            close()


def build_default_service(config: Optional[OverviewConfig] = None) -> DailyOverviewService:
    """Service wired to the Leitstellenspiel sources described by config."""
    from lss_scrapers.lss_client import LssClient
    from lss_scrapers.sources import LssSources

    config = config or OverviewConfig.from_env()
    client = LssClient(config.BASE_URL, cookie=config.SESSION_COOKIE, timeout=config.HTTP_TIMEOUT)
    sources = LssSources(
        client,
        course_mode=config.COURSE_SOURCE_MODE,
        max_workers=config.FETCH_WORKERS,
    )
    resolver = MembershipResolver(
        detail_source=sources.course_detail,
        batch_size=config.DETAIL_BATCH_SIZE,
        loose_instructor_match=config.LOOSE_INSTRUCTOR_MATCH,
    )
    return DailyOverviewService(sources, resolver)


def build_cache_manager(
    config: Optional[OverviewConfig] = None,
    service: Optional[DailyOverviewService] = None,
) -> CacheManager:
    config = config or OverviewConfig.from_env()
    service = service or build_default_service(config)
    return CacheManager(service.compute, validity_window=config.cache_validity)
