# tests/unit/conftest.py
"""
Shared pytest configuration for unit tests.

Puts the project root at the front of sys.path and provides fake overview
sources plus fixed reference instants.
"""
import asyncio
import os
import sys
from datetime import datetime

import pytest

# Add project root to path FIRST to ensure proper import resolution
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..'))
if project_root in sys.path:
    sys.path.remove(project_root)
sys.path.insert(0, project_root)

from daily_overview.exceptions import SourceFetchError  # noqa: E402
from daily_overview.models import CourseDetail, ViewerIdentity  # noqa: E402


class FakeSources:
    """In-memory overview sources with call counters and injectable failures."""

    def __init__(self, viewer=None, buildings=None, courses=None, details=None):
        self.viewer = viewer or ViewerIdentity(user_id="12345", name="Florian")
        self.buildings_data = list(buildings or [])
        self.courses_data = list(courses or [])
        self.details = dict(details or {})
        self.failing_sources = {}
        self.failing_details = set()
        self.calls = {"viewer_identity": 0, "buildings": 0, "courses": 0}
        self.detail_calls = []
        self.active_details = 0
        self.max_active_details = 0
        self.closed = False

    def _check(self, name):
        self.calls[name] += 1
        if name in self.failing_sources:
            raise self.failing_sources[name]

    async def viewer_identity(self):
        await asyncio.sleep(0)
        self._check("viewer_identity")
        return self.viewer

    async def buildings(self):
        await asyncio.sleep(0)
        self._check("buildings")
        return list(self.buildings_data)

    async def courses(self):
        await asyncio.sleep(0)
        self._check("courses")
        return list(self.courses_data)

    async def course_detail(self, course):
        self.detail_calls.append(course.source_ref)
        self.active_details += 1
        self.max_active_details = max(self.max_active_details, self.active_details)
        try:
            await asyncio.sleep(0)
            if course.source_ref in self.failing_details:
                raise SourceFetchError("schooling_detail", "HTTP 500", course.source_ref)
            return self.details.get(course.source_ref, CourseDetail(source_ref=course.source_ref))
        finally:
            self.active_details -= 1

    def close(self):
        self.closed = True


@pytest.fixture
def fake_sources():
    return FakeSources()


@pytest.fixture
def reference_now():
    """Noon on a fixed day, local time."""
    return datetime(2026, 10, 19, 12, 0, 0).astimezone()


@pytest.fixture
def midnight():
    """Start of the same fixed day, local time."""
    return datetime(2026, 10, 19, 0, 0, 0).astimezone()


@pytest.fixture
def make_sources():
    """FakeSources class, for tests that need populated sources."""
    return FakeSources
