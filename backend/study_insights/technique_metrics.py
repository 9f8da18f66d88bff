"""Per-technique aggregate metrics over normalized sessions."""

from __future__ import annotations

from typing import Callable, Dict, Iterable, List, Sequence, Tuple

from .analytics_models import (
    ActiveRecallAnalytics,
    FeynmanAnalytics,
    PomodoroAnalytics,
    RetrievalPracticeAnalytics,
    TechniqueAnalytics,
)
from .learning_records import (
    ActiveRecallPayload,
    FeynmanExplanation,
    FeynmanPayload,
    PomodoroCycle,
    PomodoroPayload,
    RecallAttempt,
    RetrievalAttempt,
    RetrievalPracticePayload,
    Session,
    TECHNIQUES,
)
from .numeric import round_half_up, rounded_mean, rounded_percentage, safe_ratio

DEFAULT_WORK_CYCLE_MINUTES = 25

SESSION_STATES: Dict[str, Tuple[str, ...]] = {
    "active_recall": ("completed", "preparing", "studying", "paused"),
    "pomodoro": ("completed", "active", "paused", "abandoned"),
    "feynman": ("completed", "explaining", "reviewing", "preparing"),
    "retrieval_practice": ("completed", "in_progress", "paused", "abandoned"),
}

CYCLE_TYPES: Tuple[str, ...] = ("work", "short_break", "long_break")
DIFFICULTY_LEVELS: Tuple[str, ...] = ("easy", "medium", "hard")


def status_breakdown(technique: str, sessions: Sequence[Session]) -> Dict[str, int]:
    breakdown = {state: 0 for state in SESSION_STATES[technique]}
    for session in sessions:
        if session.status in breakdown:
            breakdown[session.status] += 1
    return breakdown


def _common_fields(technique: str, sessions: Sequence[Session]) -> Dict[str, object]:
    return {
        "total_sessions": len(sessions),
        "completed_sessions": sum(1 for session in sessions if session.is_completed),
        "user_engagement": len({session.student_id for session in sessions}),
        "session_status_breakdown": status_breakdown(technique, sessions),
    }


def _recall_attempts(sessions: Iterable[Session]) -> List[RecallAttempt]:
    attempts: List[RecallAttempt] = []
    for session in sessions:
        if isinstance(session.payload, ActiveRecallPayload):
            attempts.extend(session.payload.attempts)
    return attempts


def _pomodoro_cycles(sessions: Iterable[Session]) -> List[PomodoroCycle]:
    cycles: List[PomodoroCycle] = []
    for session in sessions:
        if isinstance(session.payload, PomodoroPayload):
            cycles.extend(session.payload.cycles)
    return cycles


def _feynman_explanations(sessions: Iterable[Session]) -> List[FeynmanExplanation]:
    explanations: List[FeynmanExplanation] = []
    for session in sessions:
        if isinstance(session.payload, FeynmanPayload):
            explanations.extend(session.payload.explanations)
    return explanations


def _retrieval_attempts(sessions: Iterable[Session]) -> List[RetrievalAttempt]:
    attempts: List[RetrievalAttempt] = []
    for session in sessions:
        if isinstance(session.payload, RetrievalPracticePayload):
            attempts.extend(session.payload.attempts)
    return attempts


def active_recall_analytics(sessions: Sequence[Session]) -> ActiveRecallAnalytics:
    attempts = _recall_attempts(sessions)
    correct = sum(1 for attempt in attempts if attempt.is_correct)
    # Missing response times count as zero seconds.
    duration = rounded_mean(attempt.response_time_seconds or 0 for attempt in attempts)
    return ActiveRecallAnalytics(
        total_attempts=len(attempts),
        average_accuracy=rounded_percentage(correct, len(attempts)),
        average_session_duration=duration,
        **_common_fields("active_recall", sessions),
    )


def pomodoro_analytics(sessions: Sequence[Session]) -> PomodoroAnalytics:
    cycles = _pomodoro_cycles(sessions)
    focus_scores = [cycle.focus_score for cycle in cycles if cycle.focus_score is not None]
    work_cycles = [cycle for cycle in cycles if cycle.cycle_type == "work"]
    break_cycles = [cycle for cycle in cycles if cycle.cycle_type != "work"]
    study_time = sum(
        DEFAULT_WORK_CYCLE_MINUTES if cycle.duration_minutes is None else cycle.duration_minutes
        for cycle in work_cycles
    )
    completed_breaks = sum(1 for cycle in break_cycles if cycle.completed_at is not None)
    cycle_breakdown = {cycle_type: 0 for cycle_type in CYCLE_TYPES}
    for cycle in cycles:
        if cycle.cycle_type in cycle_breakdown:
            cycle_breakdown[cycle.cycle_type] += 1
    return PomodoroAnalytics(
        total_cycles=len(cycles),
        completed_cycles=sum(1 for cycle in cycles if cycle.completed_at is not None),
        average_focus_score=rounded_mean(focus_scores),
        average_cycles_per_session=round_half_up(safe_ratio(len(cycles), len(sessions))),
        total_study_time=study_time,
        break_adherence=rounded_percentage(completed_breaks, len(break_cycles)),
        cycle_type_breakdown=cycle_breakdown,
        **_common_fields("pomodoro", sessions),
    )


def feynman_analytics(sessions: Sequence[Session]) -> FeynmanAnalytics:
    explanations = _feynman_explanations(sessions)
    scores = [item.overall_score for item in explanations if item.overall_score is not None]
    word_counts = [item.word_count for item in explanations if item.word_count is not None]
    return FeynmanAnalytics(
        total_explanations=len(explanations),
        average_explanation_score=rounded_mean(scores),
        average_word_count=rounded_mean(word_counts),
        **_common_fields("feynman", sessions),
    )


def retrieval_practice_analytics(sessions: Sequence[Session]) -> RetrievalPracticeAnalytics:
    attempts = _retrieval_attempts(sessions)
    correct = sum(1 for attempt in attempts if attempt.is_correct)
    confidences = [attempt.confidence_level for attempt in attempts if attempt.confidence_level is not None]
    response_times = [
        attempt.response_time_seconds for attempt in attempts if attempt.response_time_seconds is not None
    ]
    difficulty = {level: 0 for level in DIFFICULTY_LEVELS}
    for attempt in attempts:
        if attempt.difficulty in difficulty:
            difficulty[attempt.difficulty] += 1
    return RetrievalPracticeAnalytics(
        total_questions=len(attempts),
        average_accuracy=rounded_percentage(correct, len(attempts)),
        average_confidence=rounded_mean(confidences),
        average_response_time=rounded_mean(response_times),
        questions_per_session=round_half_up(safe_ratio(len(attempts), len(sessions))),
        difficulty_breakdown=difficulty,
        **_common_fields("retrieval_practice", sessions),
    )


CALCULATORS: Dict[str, Callable[[Sequence[Session]], TechniqueAnalytics]] = {
    "active_recall": active_recall_analytics,
    "pomodoro": pomodoro_analytics,
    "feynman": feynman_analytics,
    "retrieval_practice": retrieval_practice_analytics,
}


def compute_technique_analytics(grouped: Dict[str, List[Session]]) -> Dict[str, TechniqueAnalytics]:
    """Run every calculator over its technique's sessions, in canonical order."""
    return {technique: CALCULATORS[technique](grouped.get(technique, [])) for technique in TECHNIQUES}


__all__ = [
    "CALCULATORS",
    "SESSION_STATES",
    "active_recall_analytics",
    "compute_technique_analytics",
    "feynman_analytics",
    "pomodoro_analytics",
    "retrieval_practice_analytics",
    "status_breakdown",
]
