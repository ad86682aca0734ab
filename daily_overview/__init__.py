"""
Daily overview engine: today's building upgrades, specializations and
schoolings, grouped by category and served from a short-lived cache.
"""

from daily_overview.aggregator import CategoryAggregator
from daily_overview.cache_manager import CacheEntry, CacheManager, CacheState
from daily_overview.exceptions import (
    DetailFetchError,
    MalformedRecordError,
    OverviewError,
    SourceFetchError,
)
from daily_overview.membership import MembershipResolver
from daily_overview.models import (
    AggregationResult,
    BuildingRecord,
    Category,
    CompletionEvent,
    CourseDetail,
    ListedCourseRecord,
    StructuredCourseRecord,
    ViewerIdentity,
)
from daily_overview.normalizer import normalize
from daily_overview.today_filter import is_today

__all__ = [
    'AggregationResult',
    'BuildingRecord',
    'CacheEntry',
    'CacheManager',
    'CacheState',
    'Category',
    'CategoryAggregator',
    'CompletionEvent',
    'CourseDetail',
    'DetailFetchError',
    'ListedCourseRecord',
    'MalformedRecordError',
    'MembershipResolver',
    'OverviewError',
    'SourceFetchError',
    'StructuredCourseRecord',
    'ViewerIdentity',
    'is_today',
    'normalize',
]
