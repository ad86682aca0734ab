"""
Async source adapters for the daily overview.

The engine awaits its sources; the HTTP client is blocking. Each adapter runs
the download + parse in a small thread pool via loop.run_in_executor, so the
event loop only suspends at these I/O boundaries.

Sources:
    viewer_identity()      /api/userinfo
    buildings()            /api/buildings
    courses()              /schoolings (html) or /api/schoolings (api)
    course_detail(course)  detail page of one schooling
"""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Any, Callable, List, Optional, TypeVar

from daily_overview.models import (
    BuildingRecord,
    CourseDetail,
    CourseRecord,
    ListedCourseRecord,
    ViewerIdentity,
)
from lss_scrapers.lss_client import LssClient
from lss_scrapers.parsers import (
    parse_buildings,
    parse_schooling_detail,
    parse_schooling_listing,
    parse_structured_courses,
    parse_userinfo,
)

logger = logging.getLogger(__name__)

T = TypeVar('T')

USERINFO_PATH = "/api/userinfo"
BUILDINGS_PATH = "/api/buildings"
SCHOOLINGS_PATH = "/schoolings"
SCHOOLINGS_API_PATH = "/api/schoolings"


class LssSources:
    """
    Leitstellenspiel implementations of the four overview sources.

    Args:
        client: Blocking LssClient
        course_mode: "html" to scrape the listing, "api" for structured records
        max_workers: Threads bridging the blocking client
    """

    def __init__(self, client: LssClient, course_mode: str = "html", max_workers: int = 4):
        if course_mode not in ("html", "api"):
            raise ValueError(f"Unknown course mode: {course_mode}")
        self.client = client
        self.course_mode = course_mode
        self.max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = None

    def _get_executor(self) -> ThreadPoolExecutor:
        """Get or create the thread pool executor."""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.max_workers,
                thread_name_prefix='lss_fetch'
            )
            logger.debug(f"Created ThreadPoolExecutor with {self.max_workers} workers")
        return self._executor

    async def _run(self, func: Callable[..., T], *args: Any) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._get_executor(), partial(func, *args))

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None

    # ------------------------------------------------------------------ #
    # Blocking fetch + parse
    # ------------------------------------------------------------------ #
    def _load_viewer(self) -> ViewerIdentity:
        return parse_userinfo(self.client.get_json("userinfo", USERINFO_PATH))

    def _load_buildings(self) -> List[BuildingRecord]:
        return parse_buildings(self.client.get_json("buildings", BUILDINGS_PATH))

    def _load_courses(self) -> List[CourseRecord]:
        if self.course_mode == "api":
            return parse_structured_courses(self.client.get_json("courses", SCHOOLINGS_API_PATH))
        html = self.client.get_html("courses", SCHOOLINGS_PATH)
        return parse_schooling_listing(html, self.client.base_url)

    def _load_detail(self, course: CourseRecord) -> CourseDetail:
        if isinstance(course, ListedCourseRecord):
            path = course.detail_url
        else:
            path = f"{SCHOOLINGS_PATH}/{course.course_id}"
        html = self.client.get_html("schooling_detail", path)
        return parse_schooling_detail(html, course.source_ref)

    # ------------------------------------------------------------------ #
    # Async adapters
    # ------------------------------------------------------------------ #
    async def viewer_identity(self) -> ViewerIdentity:
        return await self._run(self._load_viewer)

    async def buildings(self) -> List[BuildingRecord]:
        return await self._run(self._load_buildings)

    async def courses(self) -> List[CourseRecord]:
        return await self._run(self._load_courses)

    async def course_detail(self, course: CourseRecord) -> CourseDetail:
        return await self._run(self._load_detail, course)
