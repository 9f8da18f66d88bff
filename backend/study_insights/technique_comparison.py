"""Cross-technique ranking for the comparison chart."""

from __future__ import annotations

from typing import Dict, List, Mapping

from .analytics_models import TechniqueAnalytics, TechniqueComparisonEntry
from .learning_records import TECHNIQUE_LABELS, TECHNIQUES
from .numeric import round_half_up, rounded_percentage, safe_ratio

TECHNIQUE_COLORS: Dict[str, str] = {
    "active_recall": "#10B981",
    "pomodoro": "#3B82F6",
    "feynman": "#EF4444",
    "retrieval_practice": "#8B5CF6",
}


def adoption_rate(distinct_users: int, total_enrolled: int) -> int:
    return rounded_percentage(distinct_users, max(total_enrolled, 1))


def sessions_per_user(sessions: int, distinct_users: int) -> int:
    if distinct_users <= 0:
        return 0
    return round_half_up(safe_ratio(sessions, distinct_users))


def compare_techniques(
    analytics: Mapping[str, TechniqueAnalytics],
    total_enrolled: int,
) -> List[TechniqueComparisonEntry]:
    """Rank techniques by session volume; ties keep the canonical technique order."""
    entries: List[TechniqueComparisonEntry] = []
    for technique in TECHNIQUES:
        summary = analytics.get(technique)
        sessions = summary.total_sessions if summary else 0
        users = summary.user_engagement if summary else 0
        entries.append(
            TechniqueComparisonEntry(
                technique=TECHNIQUE_LABELS[technique],
                key=technique,
                sessions=sessions,
                users=users,
                adoption_rate=adoption_rate(users, total_enrolled),
                sessions_per_user=sessions_per_user(sessions, users),
                color=TECHNIQUE_COLORS[technique],
            )
        )
    return sorted(entries, key=lambda entry: entry.sessions, reverse=True)


__all__ = ["TECHNIQUE_COLORS", "adoption_rate", "compare_techniques", "sessions_per_user"]
