"""
Path: daily_overview/models.py

Data model of the daily overview engine.

Raw records are a tagged union of the shapes the remote endpoints return
(BuildingRecord, StructuredCourseRecord, ListedCourseRecord). The normalizer
turns each of them into CompletionEvent, the single shape the rest of the
engine works with. AggregationResult is the cached, read-only product.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union


class Category(Enum):
    BUILDING_EXTENSION = "extensions"
    STORAGE_UPGRADE = "storage_upgrades"
    SPECIALIZATION = "specialization"
    SCHOOLING = "schoolings"


@dataclass(frozen=True)
class Section:
    """Display hints for one category."""
    icon: str
    title: str
    empty_text: str


SECTIONS: Dict[Category, Section] = {
    Category.BUILDING_EXTENSION: Section(
        "🏢", "Gebäude-Erweiterungen", "Heute werden keine Gebäude-Erweiterungen fertig."
    ),
    Category.STORAGE_UPGRADE: Section(
        "📦", "Lagerräume", "Heute werden keine Lagerräume fertig."
    ),
    Category.SPECIALIZATION: Section(
        "🔧", "Spezialisierungen", "Heute werden keine Spezialisierungen fertig."
    ),
    Category.SCHOOLING: Section(
        "🎓", "Lehrgänge", "Heute enden keine Lehrgänge."
    ),
}


@dataclass(frozen=True)
class ViewerIdentity:
    user_id: str
    name: str


@dataclass(frozen=True)
class CompletionEvent:
    """
    A discrete fact that some upgrade or course finishes at completes_at.

    context is the owning building caption (None for schoolings).
    source_ref points back at the originating course record and is only
    used for membership lookups.
    """
    category: Category
    label: str
    completes_at: datetime
    context: Optional[str] = None
    source_ref: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'category': self.category.value,
            'label': self.label,
            'context': self.context,
            'completes_at': self.completes_at.isoformat(),
            'source_ref': self.source_ref,
        }


# --------------------------------------------------------------------------- #
# Raw source shapes
# --------------------------------------------------------------------------- #

@dataclass(frozen=True)
class BuildingRecord:
    """
    One entry of the building list.

    extensions / storage_upgrades hold the raw sub-objects as returned by the
    endpoint; specialization is zero-or-one raw sub-object.
    """
    caption: str
    extensions: Tuple[Mapping[str, Any], ...] = ()
    storage_upgrades: Tuple[Mapping[str, Any], ...] = ()
    specialization: Optional[Mapping[str, Any]] = None
    building_id: Optional[str] = None


@dataclass(frozen=True)
class StructuredCourseRecord:
    """
    Course record with explicit membership data.

    finishes_at is either an ISO-8601 string or Unix epoch seconds.
    """
    course_id: str
    name: str
    finishes_at: Union[str, int, float, None]
    participant_ids: Tuple[str, ...] = ()
    instructor_id: Optional[str] = None

    @property
    def source_ref(self) -> str:
        return self.course_id


@dataclass(frozen=True)
class ListedCourseRecord:
    """
    Row of the schooling listing document.

    remaining_seconds is relative to the moment the listing was read; membership
    has to be resolved through the detail page at detail_url.
    """
    course_id: str
    name: str
    remaining_seconds: Optional[int]
    instructor_text: str
    detail_url: str

    @property
    def source_ref(self) -> str:
        return self.detail_url


CourseRecord = Union[StructuredCourseRecord, ListedCourseRecord]
RawRecord = Union[BuildingRecord, StructuredCourseRecord, ListedCourseRecord]


@dataclass(frozen=True)
class CourseDetail:
    """Participant profile ids scanned from a schooling detail page."""
    source_ref: str
    participant_ids: Tuple[str, ...] = ()


# --------------------------------------------------------------------------- #
# Aggregation product
# --------------------------------------------------------------------------- #

@dataclass(frozen=True)
class AggregationResult:
    """
    Read-only mapping Category -> events completing today, ascending by
    completes_at. Every category is present, possibly with an empty tuple.
    """
    buckets: Mapping[Category, Tuple[CompletionEvent, ...]] = field(
        default_factory=lambda: MappingProxyType({c: () for c in Category})
    )

    @classmethod
    def from_buckets(cls, buckets: Mapping[Category, List[CompletionEvent]]) -> "AggregationResult":
        return cls(MappingProxyType({c: tuple(buckets.get(c, ())) for c in Category}))

    def __getitem__(self, category: Category) -> Tuple[CompletionEvent, ...]:
        return self.buckets[category]

    def __iter__(self):
        return iter(Category)

    def counts(self) -> Dict[str, int]:
        return {c.value: len(self.buckets[c]) for c in Category}

    @property
    def total(self) -> int:
        return sum(len(events) for events in self.buckets.values())

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        """Return result as plain dict for JSON export."""
        return {
            c.value: [event.to_dict() for event in self.buckets[c]]
            for c in Category
        }
