"""Merge the per-technique session collections into one tagged sequence."""

from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from .learning_records import (
    ActiveRecallPayload,
    FeynmanPayload,
    PomodoroPayload,
    RetrievalPracticePayload,
    Session,
    StudySessionRow,
    TECHNIQUES,
    Technique,
    sort_timestamp,
)
from .time_window import TimeWindow

logger = logging.getLogger(__name__)


def _active_recall_payload(row: StudySessionRow) -> ActiveRecallPayload:
    return ActiveRecallPayload(attempts=list(getattr(row, "attempts", ())))


def _pomodoro_payload(row: StudySessionRow) -> PomodoroPayload:
    return PomodoroPayload(cycles=list(getattr(row, "cycles", ())))


def _feynman_payload(row: StudySessionRow) -> FeynmanPayload:
    return FeynmanPayload(explanations=list(getattr(row, "explanations", ())))


def _retrieval_payload(row: StudySessionRow) -> RetrievalPracticePayload:
    return RetrievalPracticePayload(attempts=list(getattr(row, "attempts", ())))


_PAYLOAD_BUILDERS: Dict[str, Callable[[StudySessionRow], object]] = {
    "active_recall": _active_recall_payload,
    "pomodoro": _pomodoro_payload,
    "feynman": _feynman_payload,
    "retrieval_practice": _retrieval_payload,
}


def normalize_sessions(
    collections: Dict[str, Optional[Sequence[StudySessionRow]]],
    window: TimeWindow,
    student_ids: Iterable[str],
) -> List[Session]:
    """Tag every in-window row with its technique and order newest first.

    ``collections`` is keyed by technique; absent or empty collections simply
    contribute no sessions.
    """
    allowed = set(student_ids)
    sessions: List[Session] = []
    dropped = 0
    for technique in TECHNIQUES:
        rows = collections.get(technique) or ()
        build_payload = _PAYLOAD_BUILDERS[technique]
        for row in rows:
            if row.student_id not in allowed or not window.includes_start(row.created_at):
                dropped += 1
                continue
            sessions.append(_to_session(technique, row, build_payload(row)))
    if dropped:
        logger.debug("Dropped %s session rows outside the student set or window", dropped)
    sessions.sort(key=lambda session: sort_timestamp(session.created_at), reverse=True)
    return sessions


def _to_session(technique: Technique, row: StudySessionRow, payload: object) -> Session:
    return Session(
        id=row.id,
        student_id=row.student_id,
        module_id=row.module_id,
        technique=technique,
        status=row.status,
        created_at=row.created_at,
        completed_at=row.completed_at,
        payload=payload,
    )


def sessions_by_technique(sessions: Iterable[Session]) -> Dict[str, List[Session]]:
    grouped: Dict[str, List[Session]] = {technique: [] for technique in TECHNIQUES}
    for session in sessions:
        grouped[session.technique].append(session)
    return grouped


__all__ = ["normalize_sessions", "sessions_by_technique"]
