"""Tests for services.rate_governor."""

from datetime import datetime, timedelta, timezone

import pytest

from app.core.exceptions import BurstLimitExceeded, DailyLimitExceeded, RateLimitExceeded
from app.services.rate_governor import RateGovernor

BURST_MESSAGE = (
    "AI request limit reached: maximum 25 calls within 10 minutes. Please wait and try again."
)
DAILY_MESSAGE = "AI request limit reached: maximum 50 calls per day. Please try again tomorrow."


def _at(hour: int, minute: int = 0, day: int = 27) -> datetime:
    return datetime(2026, 2, day, hour, minute, tzinfo=timezone.utc)


class TestBurstLimit:
    def test_twenty_fifth_call_is_admitted(self, governor: RateGovernor):
        now = _at(10)
        for i in range(25):
            governor.admit(now + timedelta(milliseconds=i))

    def test_twenty_sixth_call_in_window_is_rejected(self, governor: RateGovernor):
        now = _at(10)
        for i in range(25):
            governor.admit(now + timedelta(milliseconds=i))

        with pytest.raises(BurstLimitExceeded) as exc_info:
            governor.admit(now + timedelta(seconds=2))

        assert exc_info.value.message == BURST_MESSAGE
        assert exc_info.value.status_code == 429

    def test_window_slides(self, governor: RateGovernor):
        now = _at(10)
        for i in range(25):
            governor.admit(now + timedelta(milliseconds=i))

        # First timestamp leaves the window exactly 10 minutes later
        governor.admit(now + timedelta(minutes=10))

    def test_rejection_does_not_record(self, governor: RateGovernor):
        now = _at(10)
        for _ in range(25):
            governor.admit(now)
        for _ in range(5):
            with pytest.raises(BurstLimitExceeded):
                governor.admit(now + timedelta(minutes=1))

        assert governor.snapshot(now + timedelta(minutes=1))["daily_remaining"] == 25

    def test_burst_checked_before_daily(self):
        governor = RateGovernor(burst_limit=2, burst_window_seconds=600, daily_limit=2)
        now = _at(10)
        governor.admit(now)
        governor.admit(now)

        # Both caps are exhausted; the burst error wins
        with pytest.raises(BurstLimitExceeded):
            governor.admit(now)

    def test_message_reflects_configured_limits(self):
        governor = RateGovernor(burst_limit=1, burst_window_seconds=300, daily_limit=10)
        governor.admit(_at(10))
        with pytest.raises(BurstLimitExceeded, match="maximum 1 calls within 5 minutes"):
            governor.admit(_at(10, 1))


class TestDailyLimit:
    def test_fiftieth_call_is_admitted_and_fifty_first_rejected(self, governor: RateGovernor):
        start = _at(11)
        step = timedelta(minutes=10)
        for i in range(50):
            governor.admit(start + i * step)

        with pytest.raises(DailyLimitExceeded) as exc_info:
            governor.admit(start + 49 * step + timedelta(milliseconds=1))

        assert exc_info.value.message == DAILY_MESSAGE
        assert isinstance(exc_info.value, RateLimitExceeded)

    def test_counter_resets_on_next_utc_day(self, governor: RateGovernor):
        start = _at(11)
        step = timedelta(minutes=10)
        for i in range(50):
            governor.admit(start + i * step)

        governor.admit(_at(0, 0, day=28))

    def test_day_key_uses_utc(self, governor: RateGovernor):
        start = _at(0, 0, day=28)
        for i in range(50):
            governor.admit(start + i * timedelta(minutes=10))

        # Still the 27th locally, but already the 28th in UTC
        eastern = timezone(timedelta(hours=-5))
        with pytest.raises(DailyLimitExceeded):
            governor.admit(datetime(2026, 2, 27, 20, 0, tzinfo=eastern))


class TestSnapshotAndReset:
    def test_snapshot_reports_remaining(self, governor: RateGovernor):
        now = _at(9)
        for _ in range(3):
            governor.admit(now)

        snap = governor.snapshot(now)
        assert snap == {
            "burst_limit": 25,
            "burst_window_seconds": 600,
            "burst_remaining": 22,
            "daily_limit": 50,
            "daily_remaining": 47,
        }

    def test_snapshot_on_new_day_shows_full_daily_capacity(self, governor: RateGovernor):
        governor.admit(_at(9))
        assert governor.snapshot(_at(9, day=28))["daily_remaining"] == 50

    def test_reset_clears_state(self, governor: RateGovernor):
        now = _at(9)
        for _ in range(25):
            governor.admit(now)
        governor.reset()
        governor.admit(now)
