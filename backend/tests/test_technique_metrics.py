from __future__ import annotations

from datetime import datetime

from study_insights.learning_records import (
    ActiveRecallPayload,
    FeynmanExplanation,
    FeynmanPayload,
    PomodoroCycle,
    PomodoroPayload,
    RecallAttempt,
    RetrievalAttempt,
    RetrievalPracticePayload,
    Session,
)
from study_insights.technique_metrics import (
    active_recall_analytics,
    compute_technique_analytics,
    feynman_analytics,
    pomodoro_analytics,
    retrieval_practice_analytics,
)

CREATED = datetime(2024, 3, 10, 9)


def _session(session_id: str, student_id: str, payload, status: str = "completed") -> Session:
    return Session(
        id=session_id,
        student_id=student_id,
        technique=payload.technique,
        status=status,
        created_at=CREATED,
        payload=payload,
    )


def test_active_recall_accuracy_and_duration() -> None:
    sessions = [
        _session(
            "ar-1",
            "s1",
            ActiveRecallPayload(
                attempts=[
                    RecallAttempt(is_correct=True, response_time_seconds=10),
                    RecallAttempt(is_correct=False, response_time_seconds=20),
                    RecallAttempt(is_correct=True, response_time_seconds=None),
                ]
            ),
        ),
        _session(
            "ar-2",
            "s2",
            ActiveRecallPayload(attempts=[RecallAttempt(is_correct=True, response_time_seconds=5)]),
            status="studying",
        ),
    ]

    analytics = active_recall_analytics(sessions)

    assert analytics.total_sessions == 2
    assert analytics.completed_sessions == 1
    assert analytics.user_engagement == 2
    assert analytics.total_attempts == 4
    assert analytics.average_accuracy == 75
    # (10 + 20 + 0 + 5) / 4 = 8.75
    assert analytics.average_session_duration == 9
    assert analytics.session_status_breakdown == {"completed": 1, "preparing": 0, "studying": 1, "paused": 0}


def test_pomodoro_cycle_metrics() -> None:
    cycles = [
        PomodoroCycle(cycle_type="work", duration_minutes=25, focus_score=80, completed_at=CREATED),
        PomodoroCycle(cycle_type="work", duration_minutes=None, focus_score=None),
        PomodoroCycle(cycle_type="short_break", duration_minutes=5, completed_at=CREATED),
        PomodoroCycle(cycle_type="long_break", duration_minutes=15),
    ]

    analytics = pomodoro_analytics([_session("pom-1", "s1", PomodoroPayload(cycles=cycles), status="active")])

    assert analytics.total_cycles == 4
    assert analytics.completed_cycles == 2
    assert analytics.average_focus_score == 80
    assert analytics.average_cycles_per_session == 4
    assert analytics.total_study_time == 50
    assert analytics.break_adherence == 50
    assert analytics.cycle_type_breakdown == {"work": 2, "short_break": 1, "long_break": 1}
    assert analytics.session_status_breakdown["active"] == 1


def test_feynman_means_skip_missing_values() -> None:
    explanations = [
        FeynmanExplanation(overall_score=80, word_count=100),
        FeynmanExplanation(overall_score=None, word_count=151),
        FeynmanExplanation(overall_score=91, word_count=None),
    ]

    analytics = feynman_analytics([_session("fey-1", "s1", FeynmanPayload(explanations=explanations))])

    assert analytics.total_explanations == 3
    assert analytics.average_explanation_score == 86
    assert analytics.average_word_count == 126


def test_retrieval_practice_metrics() -> None:
    sessions = [
        _session(
            "rp-1",
            "s1",
            RetrievalPracticePayload(
                attempts=[
                    RetrievalAttempt(is_correct=True, confidence_level=4, response_time_seconds=10, difficulty="easy"),
                    RetrievalAttempt(is_correct=False, difficulty="hard"),
                ]
            ),
        ),
        _session(
            "rp-2",
            "s1",
            RetrievalPracticePayload(
                attempts=[RetrievalAttempt(is_correct=True, confidence_level=3, response_time_seconds=20)]
            ),
            status="in_progress",
        ),
    ]

    analytics = retrieval_practice_analytics(sessions)

    assert analytics.total_questions == 3
    assert analytics.average_accuracy == 67
    assert analytics.average_confidence == 4
    assert analytics.average_response_time == 15
    assert analytics.questions_per_session == 2
    assert analytics.difficulty_breakdown == {"easy": 1, "medium": 0, "hard": 1}
    assert analytics.user_engagement == 1


def test_empty_collections_report_zeros() -> None:
    analytics = compute_technique_analytics({})

    assert list(analytics) == ["active_recall", "pomodoro", "feynman", "retrieval_practice"]
    pomodoro = analytics["pomodoro"].to_payload()
    assert pomodoro["totalSessions"] == 0
    assert pomodoro["averageFocusScore"] == 0
    assert pomodoro["breakAdherence"] == 0
    assert pomodoro["sessionStatusBreakdown"] == {"completed": 0, "active": 0, "paused": 0, "abandoned": 0}
    assert analytics["retrieval_practice"].questions_per_session == 0


def test_unknown_cycle_and_difficulty_tags_are_left_out_of_breakdowns() -> None:
    pomodoro = pomodoro_analytics(
        [
            _session(
                "pom-1",
                "s1",
                PomodoroPayload(
                    cycles=[
                        PomodoroCycle(cycle_type="work", duration_minutes=25),
                        PomodoroCycle(cycle_type="break", completed_at=CREATED),
                        PomodoroCycle(cycle_type="long_break"),
                    ]
                ),
            )
        ]
    )
    retrieval = retrieval_practice_analytics(
        [
            _session(
                "rp-1",
                "s1",
                RetrievalPracticePayload(
                    attempts=[
                        RetrievalAttempt(is_correct=True, difficulty="Medium"),
                        RetrievalAttempt(is_correct=True, difficulty="easy"),
                    ]
                ),
            )
        ]
    )

    assert pomodoro.total_cycles == 3
    assert pomodoro.cycle_type_breakdown == {"work": 1, "short_break": 0, "long_break": 1}
    # Any non-work cycle is a break for adherence.
    assert pomodoro.break_adherence == 50
    assert retrieval.total_questions == 2
    assert retrieval.difficulty_breakdown == {"easy": 1, "medium": 0, "hard": 0}
