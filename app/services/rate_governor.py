"""Process-wide governance of AI completion calls.

Two independent caps are enforced before a request reaches the model:

- burst: at most ``burst_limit`` admitted calls in any trailing window
- daily: at most ``daily_limit`` admitted calls per UTC calendar day

State lives in memory only and is lost on restart.
"""

import threading
from collections import deque
from datetime import datetime, timedelta, timezone
from typing import Deque, Dict, Optional

from app.core.config import settings
from app.core.exceptions import BurstLimitExceeded, DailyLimitExceeded


def _utc_day_key(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%d")


class RateGovernor:
    """Sliding-window plus calendar-day limiter for AI calls."""

    def __init__(
        self,
        burst_limit: int = settings.AI_BURST_CALL_LIMIT,
        burst_window_seconds: int = settings.AI_BURST_WINDOW_SECONDS,
        daily_limit: int = settings.AI_DAILY_CALL_LIMIT,
    ):
        self.burst_limit = burst_limit
        self.burst_window = timedelta(seconds=burst_window_seconds)
        self.daily_limit = daily_limit

        self._lock = threading.Lock()
        self._recent: Deque[datetime] = deque()
        self._day_key = ""
        self._day_count = 0

    def _window_label(self) -> str:
        minutes, seconds = divmod(int(self.burst_window.total_seconds()), 60)
        if seconds == 0:
            return f"{minutes} minutes"
        return f"{int(self.burst_window.total_seconds())} seconds"

    def _prune(self, now: datetime) -> None:
        # Callers may pass explicit timestamps out of order, so filter the whole window.
        self._recent = deque(ts for ts in self._recent if now - ts < self.burst_window)

    def _roll_day(self, now: datetime) -> None:
        day_key = _utc_day_key(now)
        if day_key != self._day_key:
            self._day_key = day_key
            self._day_count = 0

    def admit(self, now: Optional[datetime] = None) -> None:
        """Admit and record one AI call, or raise a RateLimitExceeded subclass.

        The burst window is checked before the daily counter; nothing is
        recorded when either check fails.
        """
        now = now or datetime.now(timezone.utc)

        with self._lock:
            self._prune(now)
            if len(self._recent) >= self.burst_limit:
                raise BurstLimitExceeded(
                    f"AI request limit reached: maximum {self.burst_limit} calls within "
                    f"{self._window_label()}. Please wait and try again."
                )

            self._roll_day(now)
            if self._day_count >= self.daily_limit:
                raise DailyLimitExceeded(
                    f"AI request limit reached: maximum {self.daily_limit} calls per day. "
                    f"Please try again tomorrow."
                )

            self._recent.append(now)
            self._day_count += 1

    def snapshot(self, now: Optional[datetime] = None) -> Dict[str, int]:
        """Remaining capacity as of ``now``. Read-only apart from pruning."""
        now = now or datetime.now(timezone.utc)

        with self._lock:
            self._prune(now)
            day_count = self._day_count if self._day_key == _utc_day_key(now) else 0
            return {
                "burst_limit": self.burst_limit,
                "burst_window_seconds": int(self.burst_window.total_seconds()),
                "burst_remaining": max(self.burst_limit - len(self._recent), 0),
                "daily_limit": self.daily_limit,
                "daily_remaining": max(self.daily_limit - day_count, 0),
            }

    def reset(self) -> None:
        with self._lock:
            self._recent.clear()
            self._day_key = ""
            self._day_count = 0


# Shared instance for the running process
rate_governor = RateGovernor()
