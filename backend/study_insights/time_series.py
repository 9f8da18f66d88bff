"""Dense daily activity buckets over a resolved window."""

from __future__ import annotations

from collections import Counter
from datetime import date, timedelta
from typing import Dict, Iterable, List, Tuple

from .analytics_models import DailyActivityBucket
from .learning_records import Session, TECHNIQUES
from .time_window import TimeWindow


def daily_dates(window: TimeWindow) -> List[date]:
    """Every calendar day from ``today - (days - 1)`` through ``today``."""
    today = window.today
    return [today - timedelta(days=offset) for offset in range(window.days - 1, -1, -1)]


def session_day(session: Session) -> date:
    # Stored timestamps are bucketed as-is; no timezone conversion.
    return session.created_at.date()


def build_daily_activity(sessions: Iterable[Session], window: TimeWindow) -> List[DailyActivityBucket]:
    counts: Counter[Tuple[date, str]] = Counter()
    for session in sessions:
        counts[(session_day(session), session.technique)] += 1

    buckets: List[DailyActivityBucket] = []
    for day in daily_dates(window):
        per_technique: Dict[str, int] = {technique: counts.get((day, technique), 0) for technique in TECHNIQUES}
        buckets.append(
            DailyActivityBucket(
                date=day.isoformat(),
                total=sum(per_technique.values()),
                **per_technique,
            )
        )
    return buckets


__all__ = ["build_daily_activity", "daily_dates", "session_day"]
