"""
Path: daily_overview/aggregator.py

Category Aggregator.

Filters normalized events to "completes today", routes schooling events through
the membership resolver, groups the survivors by category and sorts every
group ascending by completes_at. The sort is stable, so events with equal
completion times keep their discovery order.
"""

import logging
from datetime import datetime
from typing import Dict, List, Mapping, Optional, Sequence

from daily_overview.membership import MembershipResolver
from daily_overview.models import (
    AggregationResult,
    Category,
    CompletionEvent,
    CourseRecord,
)
from daily_overview.today_filter import is_today, to_local

logger = logging.getLogger(__name__)


class CategoryAggregator:
    """
    Builds an AggregationResult for one pass.

    Args:
        resolver: Membership resolver used for schooling events
        courses: Course records of this pass keyed by source_ref
    """

    def __init__(
        self,
        resolver: MembershipResolver,
        courses: Optional[Mapping[str, CourseRecord]] = None,
    ):
        self.resolver = resolver
        self.courses = dict(courses or {})

    async def aggregate(
        self,
        events: Sequence[CompletionEvent],
        reference_now: datetime,
        viewer_id: str,
        viewer_name: str,
    ) -> AggregationResult:
        """
        Group today's events by category.

        Args:
            events: Normalized events in discovery order
            reference_now: Instant captured once at pass start
            viewer_id: Viewer's profile id
            viewer_name: Viewer's display name

        Returns:
            AggregationResult with every category present
        """
        todays = [e for e in events if is_today(e.completes_at, reference_now)]

        candidates: Dict[str, CourseRecord] = {}
        for event in todays:
            if event.category is not Category.SCHOOLING:
                continue
            course = self.courses.get(event.source_ref)
            if course is None:
                logger.warning(f"No course record for schooling event '{event.label}' ({event.source_ref})")
                continue
            candidates.setdefault(event.source_ref, course)

        relevant = set()
        if candidates:
            relevant = await self.resolver.resolve(candidates.values(), viewer_id, viewer_name)

        buckets: Dict[Category, List[CompletionEvent]] = {c: [] for c in Category}
        for event in todays:
            if event.category is Category.SCHOOLING and event.source_ref not in relevant:
                continue
            buckets[event.category].append(event)

        for bucket in buckets.values():
            bucket.sort(key=lambda e: to_local(e.completes_at))

        result = AggregationResult.from_buckets(buckets)
        logger.debug(
            f"Aggregated {len(events)} events -> {len(todays)} today -> "
            f"{result.total} shown ({len(candidates)} schooling candidates, {len(relevant)} relevant)"
        )
        return result
