"""
Path: daily_overview/membership.py

Membership Resolver.

Decides whether a schooling concerns the viewer. The endpoints expose this in
two incompatible ways, and both are supported (OR-combined):

Structured membership
    The course record lists participant ids and/or an instructor id.

Detail-page membership
    Used when the record carries no membership data. The course detail
    document is fetched and its participant profile ids are compared with
    the viewer id. In addition the instructor free text is checked for the
    viewer's display name.

The instructor-name check is a known-imprecise heuristic: with
loose_instructor_match (the default) a raw, case- and accent-sensitive
substring test is used, so short names can over-match. With the flag off the
name has to appear as a whole token.

Detail fetches run with at most batch_size in flight. A failed fetch excludes only
that course; it never fails the pass.
"""

import logging
import re
from typing import Awaitable, Callable, Iterable, List, Optional, Set

from daily_overview.batch_fetch import run_bounded
from daily_overview.exceptions import DetailFetchError
from daily_overview.models import (
    CourseDetail,
    CourseRecord,
    StructuredCourseRecord,
)

logger = logging.getLogger(__name__)

DEFAULT_DETAIL_BATCH_SIZE = 3

DetailSource = Callable[[CourseRecord], Awaitable[CourseDetail]]


def _same_id(left, right) -> bool:
    # Ids arrive as ints from JSON and as strings from hrefs
    return left is not None and right is not None and str(left) == str(right)


def has_structured_membership(course: CourseRecord) -> bool:
    return isinstance(course, StructuredCourseRecord) and (
        bool(course.participant_ids) or course.instructor_id is not None
    )


def structured_membership(course: StructuredCourseRecord, viewer_id: str) -> bool:
    if _same_id(course.instructor_id, viewer_id):
        return True
    return any(_same_id(pid, viewer_id) for pid in course.participant_ids)


def detail_membership(detail: CourseDetail, viewer_id: str) -> bool:
    return any(_same_id(pid, viewer_id) for pid in detail.participant_ids)


def instructor_name_matches(instructor_text: Optional[str], viewer_name: str, loose: bool = True) -> bool:
    """
    Heuristic: does the instructor free text name the viewer?

    loose=True keeps the raw substring comparison, so an empty viewer name
    matches any instructor text. loose=False requires a non-empty name
    delimited by non-word characters. Records without instructor text never
    match.
    """
    if instructor_text is None:
        return False
    if loose:
        return viewer_name in instructor_text
    if not instructor_text or not viewer_name:
        return False
    pattern = r"(?<!\w)" + re.escape(viewer_name) + r"(?!\w)"
    return re.search(pattern, instructor_text) is not None


class MembershipResolver:
    """
    Resolves which schooling records are relevant to the viewer.

    Args:
        detail_source: Coroutine function returning the CourseDetail of a course
        batch_size: Maximum number of detail fetches in flight
        loose_instructor_match: Keep raw substring instructor-name matching
    """

    def __init__(
        self,
        detail_source: Optional[DetailSource] = None,
        batch_size: int = DEFAULT_DETAIL_BATCH_SIZE,
        loose_instructor_match: bool = True,
    ):
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self.detail_source = detail_source
        self.batch_size = batch_size
        self.loose_instructor_match = loose_instructor_match

    def is_relevant_to_viewer(
        self,
        course: CourseRecord,
        viewer_id: str,
        viewer_name: str,
        detail: Optional[CourseDetail] = None,
    ) -> bool:
        """
        Relevance of one course, given its detail document if it was fetched.
        """
        if has_structured_membership(course):
            return structured_membership(course, viewer_id)

        if detail is not None and detail_membership(detail, viewer_id):
            return True

        instructor_text = getattr(course, "instructor_text", None)
        return instructor_name_matches(
            instructor_text, viewer_name, loose=self.loose_instructor_match
        )

    async def _fetch_detail(self, course: CourseRecord) -> CourseDetail:
        try:
            return await self.detail_source(course)
        except Exception as e:
            raise DetailFetchError(course.source_ref, e) from e

    async def resolve(
        self,
        courses: Iterable[CourseRecord],
        viewer_id: str,
        viewer_name: str,
    ) -> Set[str]:
        """
        Return the source_refs of the courses relevant to the viewer.

        Courses without structured membership need a detail fetch; those are
        fetched by batch_size workers. Failed fetches are logged and the
        course is excluded.
        """
        relevant: Set[str] = set()
        needs_detail: List[CourseRecord] = []

        for course in courses:
            if has_structured_membership(course):
                if structured_membership(course, viewer_id):
                    relevant.add(course.source_ref)
            else:
                needs_detail.append(course)

        if not needs_detail:
            return relevant

        if self.detail_source is None:
            logger.warning(
                f"No detail source configured; {len(needs_detail)} courses "
                f"checked by instructor name only"
            )
            for course in needs_detail:
                if self.is_relevant_to_viewer(course, viewer_id, viewer_name):
                    relevant.add(course.source_ref)
            return relevant

        logger.info(
            f"Fetching {len(needs_detail)} schooling detail pages "
            f"(batch_size={self.batch_size})"
        )
        outcomes = await run_bounded(needs_detail, self._fetch_detail, self.batch_size)

        for outcome in outcomes:
            if not outcome.ok:
                logger.warning(f"Excluding course from overview: {outcome.error}")
                continue
            if self.is_relevant_to_viewer(outcome.item, viewer_id, viewer_name, outcome.result):
                relevant.add(outcome.item.source_ref)

        return relevant
