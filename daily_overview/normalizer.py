"""
Path: daily_overview/normalizer.py

Event Normalizer.

Turns the raw source records into CompletionEvent. There is one normalizer per
record shape; all of them resolve completes_at to a concrete local instant:

- building sub-objects carry an absolute ISO string or Unix epoch seconds
- structured course records carry an absolute ISO string or Unix epoch seconds
- listing rows carry remaining seconds, resolved against the pass's reference_now

Records without a completion time mean "nothing pending" and are skipped.
Records with unusable fields raise MalformedRecordError internally and are
dropped by normalize().
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from daily_overview.exceptions import MalformedRecordError
from daily_overview.models import (
    BuildingRecord,
    Category,
    CompletionEvent,
    ListedCourseRecord,
    StructuredCourseRecord,
)
from daily_overview.today_filter import to_local

logger = logging.getLogger(__name__)

# Building list fields holding zero-or-many upgrade sub-objects
BUILDING_COLLECTIONS = (
    (Category.BUILDING_EXTENSION, "extensions"),
    (Category.STORAGE_UPGRADE, "storage_upgrades"),
)

COMPLETION_FIELD = "available_at"


def parse_absolute(value: str) -> datetime:
    """Parse an ISO-8601 timestamp (trailing 'Z' allowed) into a local instant."""
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return to_local(datetime.fromisoformat(text))
    except ValueError as e:
        raise MalformedRecordError(f"unparseable timestamp {value!r}") from e


def from_epoch(seconds: float) -> datetime:
    """Unix epoch seconds to a local instant."""
    try:
        return datetime.fromtimestamp(float(seconds)).astimezone()
    except (OverflowError, OSError, ValueError) as e:
        raise MalformedRecordError(f"epoch out of range: {seconds!r}") from e


def from_remaining(seconds: Any, reference_now: datetime) -> datetime:
    """Remaining seconds relative to reference_now."""
    try:
        offset = int(seconds)
    except (TypeError, ValueError) as e:
        raise MalformedRecordError(f"remaining seconds not an integer: {seconds!r}") from e
    return to_local(reference_now + timedelta(seconds=offset))


def resolve_absolute_or_epoch(value: Any) -> datetime:
    """
    Resolve a completion value that is either absolute or epoch seconds.

    Numbers (and digit-only strings) are epoch seconds, other strings are ISO.
    """
    if isinstance(value, bool):
        raise MalformedRecordError(f"boolean is not a timestamp: {value!r}")
    if isinstance(value, (int, float)):
        return from_epoch(value)
    if isinstance(value, str):
        if value.strip().isdigit():
            return from_epoch(int(value.strip()))
        return parse_absolute(value)
    raise MalformedRecordError(f"unsupported timestamp type {type(value).__name__}")


def _resolve_label(item: Mapping[str, Any]) -> str:
    # Some categories only populate the type code
    label = item.get("caption") or item.get("upgrade_type")
    if label is None or label == "":
        raise MalformedRecordError("sub-record has neither caption nor upgrade_type")
    return str(label)


def _building_item_event(
    category: Category, item: Mapping[str, Any], building: BuildingRecord
) -> Optional[CompletionEvent]:
    if not isinstance(item, Mapping):
        raise MalformedRecordError(f"{category.value} entry is not an object")

    completion = item.get(COMPLETION_FIELD)
    if completion is None or completion == "":
        return None

    return CompletionEvent(
        category=category,
        label=_resolve_label(item),
        completes_at=resolve_absolute_or_epoch(completion),
        context=building.caption,
    )


def _normalize_building(record: BuildingRecord, reference_now: datetime) -> List[CompletionEvent]:
    events: List[CompletionEvent] = []

    slots = [
        (category, item)
        for category, attr in BUILDING_COLLECTIONS
        for item in (getattr(record, attr) or ())
    ]
    if record.specialization:
        slots.append((Category.SPECIALIZATION, record.specialization))

    for category, item in slots:
        try:
            event = _building_item_event(category, item, record)
        except MalformedRecordError as e:
            logger.warning(f"Dropping {category.value} entry of building '{record.caption}': {e}")
            continue
        if event is not None:
            events.append(event)

    return events


def _normalize_structured_course(
    record: StructuredCourseRecord, reference_now: datetime
) -> List[CompletionEvent]:
    if record.finishes_at is None or record.finishes_at == "":
        return []
    if not record.name:
        raise MalformedRecordError(f"course {record.course_id} has no name")

    return [CompletionEvent(
        category=Category.SCHOOLING,
        label=record.name,
        completes_at=resolve_absolute_or_epoch(record.finishes_at),
        source_ref=record.source_ref,
    )]


def _normalize_listed_course(
    record: ListedCourseRecord, reference_now: datetime
) -> List[CompletionEvent]:
    if record.remaining_seconds is None:
        return []
    if not record.name:
        raise MalformedRecordError(f"listed course {record.course_id} has no name")

    return [CompletionEvent(
        category=Category.SCHOOLING,
        label=record.name,
        completes_at=from_remaining(record.remaining_seconds, reference_now),
        source_ref=record.source_ref,
    )]


_NORMALIZERS: Dict[type, Callable[[Any, datetime], List[CompletionEvent]]] = {
    BuildingRecord: _normalize_building,
    StructuredCourseRecord: _normalize_structured_course,
    ListedCourseRecord: _normalize_listed_course,
}


def normalize(records: Iterable[Any], reference_now: datetime) -> List[CompletionEvent]:
    """
    Normalize raw source records into completion events, in discovery order.

    Args:
        records: BuildingRecord / StructuredCourseRecord / ListedCourseRecord items
        reference_now: Instant captured at pass start; anchors relative times

    Returns:
        List of CompletionEvent (malformed and empty records dropped)

    Raises:
        TypeError: For a record type no normalizer is registered for
    """
    events: List[CompletionEvent] = []
    dropped = 0

    for record in records:
        normalizer = _NORMALIZERS.get(type(record))
        if normalizer is None:
            raise TypeError(f"No normalizer for record type {type(record).__name__}")
        try:
            events.extend(normalizer(record, reference_now))
        except MalformedRecordError as e:
            dropped += 1
            logger.warning(f"Dropping malformed {type(record).__name__}: {e}")

    logger.debug(f"Normalized {len(events)} events ({dropped} malformed records dropped)")
    return events
