"""
Unit tests for a full aggregation pass over fake sources.

Related: daily_overview/overview_service.py
"""

import asyncio
from datetime import timedelta
from unittest.mock import patch

import pytest

from daily_overview.aggregator import CategoryAggregator
from daily_overview.cache_manager import CacheManager
from daily_overview.exceptions import SourceFetchError
from daily_overview.membership import MembershipResolver
from daily_overview.models import (
    BuildingRecord,
    Category,
    CourseDetail,
    ListedCourseRecord,
    StructuredCourseRecord,
)
from daily_overview.overview_service import (
    DailyOverviewService,
    build_cache_manager,
    build_default_service,
)
from shared.config.overview_config import OverviewConfig
from shared.utils.structured_logging import get_logging_context, set_logging_context


def listed(course_id, seconds, instructor=""):
    return ListedCourseRecord(
        course_id=course_id, name=f"Lehrgang {course_id}", remaining_seconds=seconds,
        instructor_text=instructor, detail_url=f"https://www.leitstellenspiel.de/schoolings/{course_id}",
    )


@pytest.fixture
def populated_sources(make_sources, reference_now):
    soon = (reference_now + timedelta(seconds=3600)).isoformat()
    later = (reference_now + timedelta(hours=2)).isoformat()
    tomorrow = (reference_now + timedelta(days=1)).isoformat()
    buildings = [
        BuildingRecord(
            caption="B",
            storage_upgrades=({"upgrade_type": "initial_containers", "available_at": soon},),
            extensions=({"caption": "Wasserrettung", "available_at": tomorrow},),
        ),
        BuildingRecord(
            caption="Rettungswache Süd",
            extensions=({"caption": "Notarzt", "available_at": later},),
            specialization={"caption": "Großwache", "available_at": soon},
        ),
    ]
    courses = [
        listed("1", 1800),
        listed("2", 900, instructor="Florian Feuerwehr"),
        listed("3", 600),
        listed("4", 86400 * 2),
    ]
    details = {
        courses[0].source_ref: CourseDetail(courses[0].source_ref, ("12345",)),
        courses[2].source_ref: CourseDetail(courses[2].source_ref, ("555",)),
    }
    return make_sources(buildings=buildings, courses=courses, details=details)


class TestCompute:

    def test_full_pass(self, populated_sources, reference_now):
        service = DailyOverviewService(populated_sources)

        result = asyncio.run(service.compute(reference_now))

        storage = result[Category.STORAGE_UPGRADE]
        assert [(e.context, e.label) for e in storage] == [("B", "initial_containers")]
        assert [e.label for e in result[Category.BUILDING_EXTENSION]] == ["Notarzt"]
        assert [e.label for e in result[Category.SPECIALIZATION]] == ["Großwache"]
        # course 2 via instructor name, course 1 via detail page, sorted by end time
        assert [e.label for e in result[Category.SCHOOLING]] == ["Lehrgang 2", "Lehrgang 1"]

    def test_only_todays_courses_fetch_details(self, populated_sources, reference_now):
        service = DailyOverviewService(populated_sources)

        asyncio.run(service.compute(reference_now))

        assert "https://www.leitstellenspiel.de/schoolings/4" not in populated_sources.detail_calls
        assert len(populated_sources.detail_calls) == 3

    def test_remaining_seconds_anchor_on_reference_now(self, populated_sources, reference_now):
        service = DailyOverviewService(populated_sources)

        result = asyncio.run(service.compute(reference_now))

        ends = {e.label: e.completes_at for e in result[Category.SCHOOLING]}
        assert ends["Lehrgang 2"] == reference_now + timedelta(seconds=900)

    def test_detail_failure_does_not_fail_pass(self, populated_sources, reference_now):
        populated_sources.failing_details.add("https://www.leitstellenspiel.de/schoolings/1")
        service = DailyOverviewService(populated_sources)

        result = asyncio.run(service.compute(reference_now))

        assert [e.label for e in result[Category.SCHOOLING]] == ["Lehrgang 2"]
        assert result[Category.STORAGE_UPGRADE] != ()

    @pytest.mark.parametrize("source", ["viewer_identity", "buildings", "courses"])
    def test_required_source_failure_fails_pass(self, populated_sources, reference_now, source):
        populated_sources.failing_sources[source] = SourceFetchError(source, "HTTP 500")
        service = DailyOverviewService(populated_sources)

        with pytest.raises(SourceFetchError):
            asyncio.run(service.compute(reference_now))

    def test_unexpected_source_error_is_wrapped(self, populated_sources, reference_now):
        populated_sources.failing_sources["courses"] = KeyError("tbody")
        service = DailyOverviewService(populated_sources)

        with pytest.raises(SourceFetchError) as exc_info:
            asyncio.run(service.compute(reference_now))

        assert exc_info.value.source == "sources"
        assert isinstance(exc_info.value.__cause__, KeyError)

    def test_structured_instructor_course(self, make_sources, reference_now):
        course = StructuredCourseRecord(
            course_id="77", name="ELW 2", finishes_at=(reference_now + timedelta(hours=1)).isoformat(),
            participant_ids=(), instructor_id="12345",
        )
        sources = make_sources(courses=[course])

        result = asyncio.run(DailyOverviewService(sources).compute(reference_now))

        assert [e.label for e in result[Category.SCHOOLING]] == ["ELW 2"]
        assert sources.detail_calls == []

    def test_close_closes_sources(self, fake_sources):
        DailyOverviewService(fake_sources).close()
        assert fake_sources.closed is True

    def test_logging_context_cleared_after_pass(self, populated_sources, reference_now):
        set_logging_context(run="stale")
        service = DailyOverviewService(populated_sources)

        asyncio.run(service.compute(reference_now))

        assert get_logging_context() == {}

    def test_logging_context_cleared_when_aggregation_fails(self, populated_sources, reference_now):
        seen = {}

        def failing_aggregate(*args, **kwargs):
            seen.update(get_logging_context())
            raise RuntimeError("aggregation broke")

        service = DailyOverviewService(populated_sources)
        with patch.object(CategoryAggregator, "aggregate", side_effect=failing_aggregate):
            with pytest.raises(RuntimeError):
                asyncio.run(service.compute(reference_now))

        assert seen == {"viewer_id": "12345"}
        assert get_logging_context() == {}


class TestWithCache:

    def test_cache_runs_one_pass_within_window(self, populated_sources, reference_now):
        service = DailyOverviewService(populated_sources)
        cache = build_cache_manager(OverviewConfig(), service)

        async def scenario():
            await cache.get_or_compute(reference_now)
            await cache.get_or_compute(reference_now + timedelta(minutes=1))

        asyncio.run(scenario())

        assert populated_sources.calls["buildings"] == 1
        assert isinstance(cache, CacheManager)
        assert cache.validity_window == timedelta(seconds=300)


class TestBuildDefaultService:

    def test_wiring_follows_config(self):
        config = OverviewConfig(
            BASE_URL="https://example.test", DETAIL_BATCH_SIZE=5,
            LOOSE_INSTRUCTOR_MATCH=False, COURSE_SOURCE_MODE="api", FETCH_WORKERS=2,
        )

        service = build_default_service(config)
        try:
            assert isinstance(service.resolver, MembershipResolver)
            assert service.resolver.batch_size == 5
            assert service.resolver.loose_instructor_match is False
            assert service.sources.course_mode == "api"
            assert service.sources.client.base_url == "https://example.test"
        finally:
            service.close()
