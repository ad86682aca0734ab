# daily_overview/today_filter.py
"""
Calendar-day filter.

Two instants are "the same day" when their year/month/day in local time are
equal. This is not a rolling 24-hour window.
"""

from datetime import date, datetime


def local_now() -> datetime:
    """Current local wall-clock time as an aware datetime."""
    return datetime.now().astimezone()


def to_local(instant: datetime) -> datetime:
    """
    Convert an instant to the local zone.

    Naive datetimes are taken to already be local wall-clock time.
    """
    return instant.astimezone()


def local_day(instant: datetime) -> date:
    return to_local(instant).date()


def is_today(instant: datetime, reference_now: datetime) -> bool:
    """True iff instant falls on the same local calendar day as reference_now."""
    return local_day(instant) == local_day(reference_now)
