"""Named reporting ranges resolved against a reference instant."""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Dict, Optional

from .learning_records import as_utc

DEFAULT_RANGE = "month"

_WINDOW_DAYS: Dict[str, int] = {"week": 7, "month": 30, "quarter": 90}
_MONTHS_BACK: Dict[str, int] = {"month": 1, "quarter": 3}


def normalize_range(range_token: Optional[str]) -> str:
    token = (range_token or "").strip().lower()
    return token if token in _WINDOW_DAYS else DEFAULT_RANGE


def window_days(range_token: Optional[str]) -> int:
    """Number of daily buckets shown for ``range_token``."""
    return _WINDOW_DAYS[normalize_range(range_token)]


def subtract_months(value: datetime, months: int) -> datetime:
    """Step back whole calendar months, clamping the day to the target month length."""
    month_index = value.year * 12 + (value.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


@dataclass(frozen=True)
class TimeWindow:
    range_token: str
    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        """Half-open membership: ``start <= moment < end``."""
        instant = as_utc(moment)
        return as_utc(self.start) <= instant < as_utc(self.end)

    def includes_start(self, moment: datetime) -> bool:
        return as_utc(moment) >= as_utc(self.start)

    @property
    def days(self) -> int:
        return window_days(self.range_token)

    @property
    def today(self) -> date:
        return self.end.date()


def resolve_time_window(range_token: Optional[str], now: datetime) -> TimeWindow:
    token = normalize_range(range_token)
    if token == "week":
        start = now - timedelta(days=7)
    else:
        start = subtract_months(now, _MONTHS_BACK[token])
    return TimeWindow(range_token=token, start=start, end=now)


__all__ = [
    "DEFAULT_RANGE",
    "TimeWindow",
    "normalize_range",
    "resolve_time_window",
    "subtract_months",
    "window_days",
]
