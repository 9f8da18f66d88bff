"""SQLAlchemy-backed data source for the instructor analytics service."""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime
from typing import Callable, ContextManager, Dict, Iterable, List, Optional, Sequence, Type, TypeVar

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ..db.models import (
    ActiveRecallSessionModel,
    CourseEnrollmentModel,
    CourseModel,
    FeynmanSessionModel,
    ModuleModel,
    PomodoroSessionModel,
    RetrievalPracticeSessionModel,
    StudySessionAnalyticsModel,
    UserModel,
    UserModuleProgressModel,
)
from ..db.session import read_only_scope
from ..errors import DataUnavailable
from ..learning_records import (
    ActiveRecallSessionRow,
    AnalyticsRecord,
    Course,
    CourseModule,
    FeynmanExplanation,
    FeynmanSessionRow,
    Instructor,
    ModuleProgress,
    PomodoroCycle,
    PomodoroSessionRow,
    RecallAttempt,
    RetrievalAttempt,
    RetrievalPracticeSessionRow,
    Student,
    StudySessionRow,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")
M = TypeVar("M")

_SESSION_MODELS: Dict[str, Type] = {
    "active_recall": ActiveRecallSessionModel,
    "pomodoro": PomodoroSessionModel,
    "feynman": FeynmanSessionModel,
    "retrieval_practice": RetrievalPracticeSessionModel,
}

_SESSION_CHILDREN = {
    "active_recall": ActiveRecallSessionModel.attempts,
    "pomodoro": PomodoroSessionModel.cycles,
    "feynman": FeynmanSessionModel.explanations,
    "retrieval_practice": RetrievalPracticeSessionModel.attempts,
}


def _session_fields(model) -> Dict[str, object]:  # type: ignore[no-untyped-def]
    return {
        "id": model.id,
        "student_id": model.user_id,
        "module_id": model.module_id,
        "status": model.status,
        "created_at": model.created_at,
        "started_at": model.started_at,
        "completed_at": model.completed_at,
    }


def _active_recall_row(model: ActiveRecallSessionModel) -> ActiveRecallSessionRow:
    return ActiveRecallSessionRow(
        attempts=[
            RecallAttempt(is_correct=item.is_correct, response_time_seconds=item.response_time_seconds)
            for item in model.attempts
        ],
        **_session_fields(model),
    )


def _pomodoro_row(model: PomodoroSessionModel) -> PomodoroSessionRow:
    return PomodoroSessionRow(
        cycles=[
            PomodoroCycle(
                cycle_type=item.cycle_type,
                duration_minutes=item.duration_minutes,
                focus_score=item.focus_score,
                completed_at=item.completed_at,
            )
            for item in model.cycles
        ],
        **_session_fields(model),
    )


def _feynman_row(model: FeynmanSessionModel) -> FeynmanSessionRow:
    return FeynmanSessionRow(
        explanations=[
            FeynmanExplanation(overall_score=item.overall_score, word_count=item.word_count)
            for item in model.explanations
        ],
        **_session_fields(model),
    )


def _retrieval_row(model: RetrievalPracticeSessionModel) -> RetrievalPracticeSessionRow:
    return RetrievalPracticeSessionRow(
        attempts=[
            RetrievalAttempt(
                is_correct=item.is_correct,
                confidence_level=item.confidence_level,
                response_time_seconds=item.response_time_seconds,
                difficulty=item.difficulty,
            )
            for item in model.attempts
        ],
        **_session_fields(model),
    )


_ROW_BUILDERS: Dict[str, Callable[..., StudySessionRow]] = {
    "active_recall": _active_recall_row,
    "pomodoro": _pomodoro_row,
    "feynman": _feynman_row,
    "retrieval_practice": _retrieval_row,
}


def _valid_rows(source: str, models: Iterable[M], build: Callable[[M], T]) -> List[T]:
    """Build each row, skipping rows whose stored values do not validate."""
    rows: List[T] = []
    for model in models:
        try:
            rows.append(build(model))
        except ValidationError as exc:
            logger.warning("Skipping malformed %s row %s: %s", source, getattr(model, "id", None), exc)
    return rows


class SqlInstructorDataSource:
    """Reads the learning store; every store failure surfaces as ``DataUnavailable``."""

    def __init__(self, session_scope: Optional[Callable[[], ContextManager[Session]]] = None) -> None:
        self._session_scope = session_scope or read_only_scope

    def _read(self, source: str, reader: Callable[[Session], T]) -> T:
        try:
            with self._session_scope() as session:
                return reader(session)
        except SQLAlchemyError as exc:
            logger.warning("Failed to read %s: %s", source, exc)
            raise DataUnavailable(source, str(exc)) from exc

    def get_instructor(self, instructor_id: str) -> Optional[Instructor]:
        def reader(session: Session) -> Optional[Instructor]:
            user = session.get(UserModel, instructor_id)
            if user is None:
                return None
            return Instructor(id=user.id, name=user.name, role=user.role)

        return self._read("instructor", reader)

    def list_courses(self, instructor_id: str) -> List[Course]:
        def reader(session: Session) -> List[Course]:
            stmt = (
                select(CourseModel)
                .where(CourseModel.instructor_id == instructor_id)
                .order_by(CourseModel.created_at, CourseModel.id)
            )
            return [
                Course(
                    id=model.id,
                    title=model.title,
                    description=model.description,
                    status=model.status,
                    created_at=model.created_at,
                    updated_at=model.updated_at,
                )
                for model in session.execute(stmt).scalars()
            ]

        return self._read("courses", reader)

    def list_enrolled_students(self, instructor_id: str, course_ids: Sequence[str]) -> List[Student]:
        def reader(session: Session) -> List[Student]:
            stmt = (
                select(CourseEnrollmentModel, UserModel)
                .join(UserModel, CourseEnrollmentModel.user_id == UserModel.id)
                .join(CourseModel, CourseEnrollmentModel.course_id == CourseModel.id)
                .where(CourseModel.instructor_id == instructor_id)
                .where(CourseEnrollmentModel.course_id.in_(list(course_ids)))
                .order_by(UserModel.name, UserModel.id, CourseEnrollmentModel.id)
            )
            users: Dict[str, UserModel] = {}
            courses: Dict[str, List[str]] = defaultdict(list)
            for enrollment, user in session.execute(stmt).all():
                users.setdefault(user.id, user)
                if enrollment.course_id not in courses[user.id]:
                    courses[user.id].append(enrollment.course_id)
            return [
                Student(
                    id=user.id,
                    name=user.name or "Unknown Student",
                    email=user.email,
                    course_ids=courses[user.id],
                    last_login=user.last_login,
                    enrolled_at=user.created_at,
                )
                for user in users.values()
            ]

        return self._read("enrolled_students", reader)

    def list_modules(self, course_ids: Sequence[str]) -> List[CourseModule]:
        def reader(session: Session) -> List[CourseModule]:
            stmt = (
                select(ModuleModel)
                .where(ModuleModel.course_id.in_(list(course_ids)))
                .order_by(ModuleModel.order_index, ModuleModel.id)
            )
            return [
                CourseModule(
                    id=model.id,
                    course_id=model.course_id,
                    title=model.title,
                    description=model.description,
                    order_index=model.order_index,
                    passing_threshold=model.passing_threshold,
                    available_techniques=list(model.available_techniques or []),
                )
                for model in session.execute(stmt).scalars()
            ]

        return self._read("modules", reader)

    def list_sessions(self, technique: str, student_ids: Sequence[str], since: datetime) -> List[StudySessionRow]:
        model = _SESSION_MODELS[technique]
        build_row = _ROW_BUILDERS[technique]

        def reader(session: Session) -> List[StudySessionRow]:
            stmt = (
                select(model)
                .options(selectinload(_SESSION_CHILDREN[technique]))
                .where(model.user_id.in_(list(student_ids)))
                .where(model.created_at >= since)
                .order_by(model.created_at.desc())
            )
            return _valid_rows(technique, session.execute(stmt).scalars(), build_row)

        return self._read(technique, reader)

    def list_module_progress(self, student_ids: Sequence[str], course_ids: Sequence[str]) -> List[ModuleProgress]:
        def reader(session: Session) -> List[ModuleProgress]:
            stmt = (
                select(UserModuleProgressModel, ModuleModel)
                .join(ModuleModel, UserModuleProgressModel.module_id == ModuleModel.id)
                .where(UserModuleProgressModel.user_id.in_(list(student_ids)))
                .where(ModuleModel.course_id.in_(list(course_ids)))
                .order_by(ModuleModel.order_index, UserModuleProgressModel.id)
            )
            return [
                ModuleProgress(
                    student_id=progress.user_id,
                    module_id=progress.module_id,
                    course_id=module.course_id,
                    module_title=module.title,
                    best_score=progress.best_score,
                    latest_score=progress.latest_score,
                    status=progress.status,
                    passed=progress.passed,
                    attempt_count=progress.attempt_count,
                    needs_remedial=progress.needs_remedial,
                    completed_at=progress.completed_at,
                    last_attempt_at=progress.last_attempt_at,
                )
                for progress, module in session.execute(stmt).all()
            ]

        return self._read("module_progress", reader)

    def list_analytics_records(self, student_ids: Sequence[str], since: datetime) -> List[AnalyticsRecord]:
        def reader(session: Session) -> List[AnalyticsRecord]:
            stmt = (
                select(StudySessionAnalyticsModel)
                .where(StudySessionAnalyticsModel.user_id.in_(list(student_ids)))
                .where(StudySessionAnalyticsModel.created_at >= since)
                .order_by(StudySessionAnalyticsModel.analyzed_at.desc())
            )
            return _valid_rows(
                "analytics_records",
                session.execute(stmt).scalars(),
                lambda model: AnalyticsRecord.model_validate(
                    {
                        "student_id": model.user_id,
                        "session_id": model.session_id,
                        "session_type": model.session_type,
                        "performance_metrics": model.performance_metrics,
                        "learning_patterns": model.learning_patterns,
                        "recommendations": model.recommendations,
                        "analyzed_at": model.analyzed_at,
                        "created_at": model.created_at,
                    }
                ),
            )

        return self._read("analytics_records", reader)


__all__ = ["SqlInstructorDataSource"]
