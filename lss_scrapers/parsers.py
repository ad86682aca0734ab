"""
Leitstellenspiel payload parsers
------------------------------------------------------------------------
Turns the raw endpoint payloads into the engine's record shapes.

JSON
  /api/userinfo    -> ViewerIdentity
  /api/buildings   -> [BuildingRecord]
  /api/schoolings  -> [StructuredCourseRecord]   (structured course mode)

HTML (BeautifulSoup)
  /schoolings      -> [ListedCourseRecord]
  /schoolings/<id> -> CourseDetail

Selector constants are kept top-of-file for quick hot-patching.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from daily_overview.exceptions import SourceFetchError
from daily_overview.models import (
    BuildingRecord,
    CourseDetail,
    ListedCourseRecord,
    StructuredCourseRecord,
    ViewerIdentity,
)

logger = logging.getLogger(__name__)

# ------------------------------------------------------------------ #
# Tweak-point constants
# ------------------------------------------------------------------ #
ROW_SELECTOR = "table.table-striped tbody tr"
LISTING_MIN_CELLS = 3          # name | remaining time | instructor
DETAIL_MIN_CELLS = 4           # participant link lives in the third cell
REMAINING_ATTR = "sortvalue"


def last_path_segment(href: str) -> str:
    path = urlparse(href).path.rstrip("/")
    return path.rsplit("/", 1)[-1]


# --------------------------------------------------------------------------- #
# JSON
# --------------------------------------------------------------------------- #
def parse_userinfo(payload: Any) -> ViewerIdentity:
    if not isinstance(payload, Mapping):
        raise SourceFetchError("userinfo", "payload is not an object")

    user_id = payload.get("user_id")
    if user_id is None or user_id == "":
        raise SourceFetchError("userinfo", "payload has no user_id")

    name = payload.get("name") or payload.get("user_name") or ""
    return ViewerIdentity(user_id=str(user_id), name=str(name))


def _as_tuple(value: Any) -> Tuple[Mapping[str, Any], ...]:
    # Absent field, null and [] all mean "nothing pending"
    if not isinstance(value, list):
        return ()
    return tuple(item for item in value if isinstance(item, Mapping))


def parse_buildings(payload: Any) -> List[BuildingRecord]:
    if not isinstance(payload, list):
        raise SourceFetchError("buildings", "payload is not a list")

    buildings: List[BuildingRecord] = []
    for raw in payload:
        if not isinstance(raw, Mapping):
            logger.debug("Skipping non-object building entry: %r", raw)
            continue

        specialization = raw.get("specialization")
        buildings.append(BuildingRecord(
            caption=str(raw.get("caption") or ""),
            extensions=_as_tuple(raw.get("extensions")),
            storage_upgrades=_as_tuple(raw.get("storage_upgrades")),
            specialization=specialization if isinstance(specialization, Mapping) else None,
            building_id=str(raw["id"]) if raw.get("id") is not None else None,
        ))

    logger.info("Parsed %d buildings", len(buildings))
    return buildings


def _participant_id(entry: Any) -> Optional[str]:
    if isinstance(entry, Mapping):
        entry = entry.get("user_id", entry.get("id"))
    if entry is None or entry == "":
        return None
    return str(entry)


def parse_structured_courses(payload: Any) -> List[StructuredCourseRecord]:
    """
    Structured schooling payload: a list (or {"result": [...]}) of objects with
    id, name/education_title, finish_time (ISO) or finish_time_unix (epoch),
    participants and instructor_id.
    """
    if isinstance(payload, Mapping):
        payload = payload.get("result")
    if not isinstance(payload, list):
        raise SourceFetchError("courses", "structured schooling payload is not a list")

    courses: List[StructuredCourseRecord] = []
    for raw in payload:
        if not isinstance(raw, Mapping) or raw.get("id") is None:
            logger.debug("Skipping schooling entry without id: %r", raw)
            continue

        finishes_at = raw.get("finish_time")
        if finishes_at in (None, ""):
            finishes_at = raw.get("finish_time_unix")

        participants = tuple(
            pid for pid in (_participant_id(p) for p in (raw.get("participants") or []))
            if pid is not None
        )
        instructor = raw.get("instructor_id")

        courses.append(StructuredCourseRecord(
            course_id=str(raw["id"]),
            name=str(raw.get("name") or raw.get("education_title") or ""),
            finishes_at=finishes_at,
            participant_ids=participants,
            instructor_id=str(instructor) if instructor not in (None, "") else None,
        ))

    logger.info("Parsed %d structured schoolings", len(courses))
    return courses


# --------------------------------------------------------------------------- #
# HTML
# --------------------------------------------------------------------------- #
def _remaining_seconds(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(float(value.strip()))
    except ValueError:
        logger.debug("Unreadable remaining time %r", value)
        return None


def parse_schooling_listing(html: str, base_url: str) -> List[ListedCourseRecord]:
    soup = BeautifulSoup(html, "html.parser")

    courses: List[ListedCourseRecord] = []
    for tr in soup.select(ROW_SELECTOR):
        tds = tr.find_all("td")
        if len(tds) < LISTING_MIN_CELLS:
            continue

        anchor = tds[0].find("a")
        href = anchor.get("href") if anchor else None
        if not href:
            continue

        detail_url = urljoin(base_url.rstrip("/") + "/", href)
        course_id = last_path_segment(detail_url)
        if not course_id:
            continue

        courses.append(ListedCourseRecord(
            course_id=course_id,
            name=tds[0].get_text(strip=True),
            remaining_seconds=_remaining_seconds(tds[1].get(REMAINING_ATTR)),
            instructor_text=tds[2].get_text(strip=True),
            detail_url=detail_url,
        ))

    logger.info("Parsed %d schooling rows", len(courses))
    return courses


def parse_schooling_detail(html: str, source_ref: str) -> CourseDetail:
    soup = BeautifulSoup(html, "html.parser")

    participant_ids: List[str] = []
    for tr in soup.select(ROW_SELECTOR):
        tds = tr.find_all("td")
        if len(tds) < DETAIL_MIN_CELLS:
            continue
        anchor = tds[2].find("a")
        href = anchor.get("href") if anchor else None
        if not href:
            continue
        profile_id = last_path_segment(href)
        if profile_id:
            participant_ids.append(profile_id)

    return CourseDetail(source_ref=source_ref, participant_ids=tuple(participant_ids))
