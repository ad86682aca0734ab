"""
Unit tests for the calendar-day filter.

Same day means equal local year/month/day, not a rolling 24h window.

Related: daily_overview/today_filter.py
"""

from datetime import datetime, timedelta, timezone

from daily_overview.today_filter import is_today, local_day, to_local


class TestIsToday:
    """Test is_today against a fixed reference instant."""

    def test_same_instant_is_today(self, reference_now):
        assert is_today(reference_now, reference_now) is True

    def test_microsecond_before_midnight_is_not_today(self, midnight):
        assert is_today(midnight - timedelta(microseconds=1), midnight) is False

    def test_last_second_of_day_is_today(self, midnight):
        assert is_today(midnight + timedelta(hours=23, minutes=59, seconds=59), midnight) is True

    def test_next_midnight_is_not_today(self, midnight):
        next_midnight = to_local(datetime(2026, 10, 20, 0, 0, 0))
        assert is_today(next_midnight, midnight) is False

    def test_not_a_rolling_window(self, reference_now):
        """Two hours later but past midnight is not today."""
        late_evening = to_local(datetime(2026, 10, 19, 23, 0, 0))
        assert is_today(late_evening + timedelta(hours=2), late_evening) is False

    def test_same_instant_in_utc_is_today(self, reference_now):
        assert is_today(reference_now.astimezone(timezone.utc), reference_now) is True

    def test_naive_values_are_local_wall_clock(self, reference_now):
        assert is_today(datetime(2026, 10, 19, 6, 30), reference_now) is True
        assert is_today(datetime(2026, 10, 18, 23, 59), reference_now) is False


class TestLocalDay:

    def test_local_day(self, reference_now):
        assert local_day(reference_now).isoformat() == "2026-10-19"

    def test_to_local_is_aware(self):
        assert to_local(datetime(2026, 10, 19, 8, 0)).tzinfo is not None
