from __future__ import annotations

from datetime import datetime, timezone

from study_insights.learning_records import (
    ActiveRecallPayload,
    PomodoroPayload,
    RetrievalPracticePayload,
    Session,
)
from study_insights.session_normalizer import sessions_by_technique
from study_insights.technique_comparison import adoption_rate, compare_techniques, sessions_per_user
from study_insights.technique_metrics import compute_technique_analytics
from study_insights.time_series import build_daily_activity
from study_insights.time_window import resolve_time_window


def _session(session_id: str, student_id: str, payload, created_at: datetime) -> Session:
    return Session(
        id=session_id,
        student_id=student_id,
        technique=payload.technique,
        status="completed",
        created_at=created_at,
        payload=payload,
    )


def _sessions() -> list[Session]:
    day = datetime(2024, 3, 10, 9)
    return [
        _session("ar-1", "s1", ActiveRecallPayload(), day),
        _session("ar-2", "s1", ActiveRecallPayload(), day),
        _session("ar-3", "s2", ActiveRecallPayload(), datetime(2024, 3, 12, 18)),
        _session("pom-1", "s3", PomodoroPayload(), datetime(2024, 3, 15, 7)),
        _session("pom-2", "s3", PomodoroPayload(), day),
        _session("pom-3", "s3", PomodoroPayload(), day),
        _session("rp-1", "s4", RetrievalPracticePayload(), datetime(2024, 3, 1)),
    ]


def test_comparison_ranks_by_sessions_with_stable_ties() -> None:
    analytics = compute_technique_analytics(sessions_by_technique(_sessions()))

    entries = compare_techniques(analytics, total_enrolled=4)

    assert [entry.key for entry in entries] == ["active_recall", "pomodoro", "retrieval_practice", "feynman"]
    by_key = {entry.key: entry for entry in entries}
    assert by_key["active_recall"].adoption_rate == 50
    assert by_key["active_recall"].sessions_per_user == 2
    assert by_key["pomodoro"].sessions_per_user == 3
    assert by_key["feynman"].adoption_rate == 0
    assert by_key["feynman"].sessions_per_user == 0
    assert by_key["active_recall"].color == "#10B981"
    assert by_key["pomodoro"].color == "#3B82F6"
    assert by_key["feynman"].color == "#EF4444"
    assert by_key["retrieval_practice"].color == "#8B5CF6"
    assert entries[0].to_payload()["adoptionRate"] == 50


def test_adoption_rate_bounds() -> None:
    assert adoption_rate(0, 0) == 0
    assert adoption_rate(0, 12) == 0
    assert adoption_rate(3, 3) == 100
    assert adoption_rate(1, 3) == 33
    assert sessions_per_user(5, 0) == 0


def test_daily_activity_is_dense_over_the_window() -> None:
    window = resolve_time_window("week", datetime(2024, 3, 15, 12, tzinfo=timezone.utc))

    buckets = build_daily_activity(_sessions(), window)

    assert len(buckets) == 7
    assert [bucket.date for bucket in buckets] == [f"2024-03-{day:02d}" for day in range(9, 16)]
    by_date = {bucket.date: bucket for bucket in buckets}
    assert by_date["2024-03-10"].active_recall == 2
    assert by_date["2024-03-10"].pomodoro == 2
    assert by_date["2024-03-10"].total == 4
    assert by_date["2024-03-15"].pomodoro == 1
    assert by_date["2024-03-11"].total == 0
    assert sum(bucket.total for bucket in buckets) == 6
    assert buckets[0].to_payload() == {
        "date": "2024-03-09",
        "activeRecall": 0,
        "pomodoro": 0,
        "feynman": 0,
        "retrievalPractice": 0,
        "total": 0,
    }


def test_quarter_window_has_ninety_buckets() -> None:
    window = resolve_time_window("quarter", datetime(2024, 5, 31, tzinfo=timezone.utc))
    assert len(build_daily_activity([], window)) == 90
