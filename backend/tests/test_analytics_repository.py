from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from study_insights.aggregation import InstructorAnalyticsService
from study_insights.config import Settings
from study_insights.db.base import Base
from study_insights.db.models import (
    ActiveRecallAttemptModel,
    ActiveRecallSessionModel,
    CourseEnrollmentModel,
    CourseModel,
    ModuleModel,
    PomodoroCycleModel,
    PomodoroSessionModel,
    RetrievalPracticeAttemptModel,
    RetrievalPracticeSessionModel,
    StudySessionAnalyticsModel,
    UserModel,
    UserModuleProgressModel,
)
from study_insights.errors import DataUnavailable
from study_insights.learning_records import Instructor
from study_insights.repositories.analytics_data import SqlInstructorDataSource, _valid_rows

SINCE = datetime(2024, 3, 1, tzinfo=timezone.utc)


def _memory_engine():
    return create_engine(
        "sqlite://",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


def _scope_for(engine):
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, future=True)

    @contextmanager
    def scope() -> Iterator[Session]:
        session = factory()
        try:
            yield session
        finally:
            session.close()

    return scope


def _seed(session: Session) -> None:
    created = datetime(2024, 1, 10, tzinfo=timezone.utc)
    session.add_all(
        [
            UserModel(id="i1", name="Dr. Rivera", role="instructor", created_at=created),
            UserModel(id="i2", name="Dr. Okafor", role="instructor", created_at=created),
            UserModel(id="s1", name="Ada", email="ada@example.com", created_at=created),
            UserModel(id="s2", name="Grace", created_at=created),
            UserModel(id="s3", name="Linus", created_at=created),
        ]
    )
    session.add_all(
        [
            CourseModel(id="c2", instructor_id="i1", title="Chemistry", created_at=datetime(2024, 1, 2)),
            CourseModel(id="c1", instructor_id="i1", title="Biology", created_at=datetime(2024, 1, 1)),
            CourseModel(id="c9", instructor_id="i2", title="Physics", created_at=datetime(2024, 1, 1)),
        ]
    )
    session.flush()
    session.add_all(
        [
            ModuleModel(id="m1", course_id="c1", title="Genetics", order_index=1, available_techniques=["pomodoro"]),
            ModuleModel(id="m0", course_id="c1", title="Cells", order_index=0),
            ModuleModel(id="m9", course_id="c9", title="Optics", order_index=0),
            CourseEnrollmentModel(course_id="c1", user_id="s1"),
            CourseEnrollmentModel(course_id="c2", user_id="s1"),
            CourseEnrollmentModel(course_id="c1", user_id="s2"),
            CourseEnrollmentModel(course_id="c9", user_id="s3"),
        ]
    )
    session.flush()
    session.add_all(
        [
            ActiveRecallSessionModel(
                id="ar-1",
                user_id="s1",
                module_id="m0",
                status="completed",
                created_at=datetime(2024, 3, 14, 9, tzinfo=timezone.utc),
                attempts=[
                    ActiveRecallAttemptModel(is_correct=True, response_time_seconds=12),
                    ActiveRecallAttemptModel(is_correct=False, response_time_seconds=30),
                ],
            ),
            ActiveRecallSessionModel(
                id="ar-old", user_id="s1", created_at=datetime(2024, 1, 20, tzinfo=timezone.utc)
            ),
            PomodoroSessionModel(
                id="pom-1",
                user_id="s2",
                status="completed",
                created_at=datetime(2024, 3, 13, 9, tzinfo=timezone.utc),
                cycles=[PomodoroCycleModel(cycle_type="work", duration_minutes=25, focus_score=88)],
            ),
            UserModuleProgressModel(user_id="s1", module_id="m0", best_score=92, status="completed", passed=True),
            UserModuleProgressModel(user_id="s2", module_id="m1", best_score=55, needs_remedial=True),
            UserModuleProgressModel(user_id="s3", module_id="m9", best_score=80),
            StudySessionAnalyticsModel(
                user_id="s1",
                session_id="ar-1",
                session_type="active_recall",
                performance_metrics={"post_study_accuracy": 75},
                recommendations=[{"title": "Space out reviews", "priority": 1, "confidence_score": 0.9}],
                analyzed_at=datetime(2024, 3, 14, 10, tzinfo=timezone.utc),
                created_at=datetime(2024, 3, 14, 10, tzinfo=timezone.utc),
            ),
        ]
    )
    session.commit()


@pytest.fixture()
def data_source() -> Iterator[SqlInstructorDataSource]:
    engine = _memory_engine()
    Base.metadata.create_all(engine)
    scope = _scope_for(engine)
    with scope() as session:
        _seed(session)
    try:
        yield SqlInstructorDataSource(scope)
    finally:
        engine.dispose()


def test_instructor_and_courses(data_source: SqlInstructorDataSource) -> None:
    instructor = data_source.get_instructor("i1")

    assert instructor is not None
    assert instructor.role == "instructor"
    assert data_source.get_instructor("missing") is None
    assert [course.id for course in data_source.list_courses("i1")] == ["c1", "c2"]


def test_enrolled_students_are_scoped_to_the_instructor(data_source: SqlInstructorDataSource) -> None:
    students = data_source.list_enrolled_students("i1", ["c1", "c2"])

    assert [student.id for student in students] == ["s1", "s2"]
    assert students[0].course_ids == ["c1", "c2"]
    assert students[0].email == "ada@example.com"
    assert students[1].course_ids == ["c1"]
    assert data_source.list_enrolled_students("i1", ["c9"]) == []


def test_modules_follow_order_index(data_source: SqlInstructorDataSource) -> None:
    modules = data_source.list_modules(["c1"])

    assert [module.id for module in modules] == ["m0", "m1"]
    assert modules[1].available_techniques == ["pomodoro"]


def test_sessions_load_children_and_respect_since(data_source: SqlInstructorDataSource) -> None:
    [recall] = data_source.list_sessions("active_recall", ["s1", "s2"], SINCE)
    [pomodoro] = data_source.list_sessions("pomodoro", ["s1", "s2"], SINCE)

    assert recall.id == "ar-1"
    assert recall.module_id == "m0"
    assert [attempt.is_correct for attempt in recall.attempts] == [True, False]
    assert pomodoro.cycles[0].focus_score == 88
    assert data_source.list_sessions("feynman", ["s1"], SINCE) == []


def test_progress_carries_module_metadata(data_source: SqlInstructorDataSource) -> None:
    rows = data_source.list_module_progress(["s1", "s2", "s3"], ["c1"])

    assert [(row.student_id, row.module_title, row.course_id) for row in rows] == [
        ("s1", "Cells", "c1"),
        ("s2", "Genetics", "c1"),
    ]
    assert rows[1].needs_remedial is True


def test_analytics_records_are_normalised(data_source: SqlInstructorDataSource) -> None:
    [record] = data_source.list_analytics_records(["s1"], SINCE)

    assert record.technique == "active_recall"
    assert record.metric("post_study_accuracy") == 75
    assert record.learning_patterns == {}
    assert record.recommendations[0].priority == 1
    assert record.recommendations[0].type == "general"


def test_store_errors_surface_as_data_unavailable() -> None:
    engine = _memory_engine()
    try:
        source = SqlInstructorDataSource(_scope_for(engine))
        with pytest.raises(DataUnavailable) as excinfo:
            source.list_courses("i1")
        assert excinfo.value.source == "courses"
    finally:
        engine.dispose()


def test_service_over_sql_store(data_source: SqlInstructorDataSource) -> None:
    service = InstructorAnalyticsService(data_source, Settings())
    now = datetime(2024, 3, 15, 12, tzinfo=timezone.utc)

    techniques = service.study_techniques("i1", "week", now=now)
    insights = service.insights("i1", "week", now=now)

    assert techniques.active_recall_analytics.total_sessions == 1
    assert techniques.active_recall_analytics.average_accuracy == 50
    assert techniques.pomodoro_analytics.average_focus_score == 88
    assert insights.status == "success"
    assert [profile.student_id for profile in insights.student_risk_profiles] == ["s1", "s2"]
    assert insights.student_interventions[0].student_name == "Ada"


def test_out_of_vocabulary_values_do_not_drop_a_source() -> None:
    engine = _memory_engine()
    Base.metadata.create_all(engine)
    scope = _scope_for(engine)
    with scope() as session:
        _seed(session)
        session.add_all(
            [
                PomodoroSessionModel(
                    id="pom-2",
                    user_id="s2",
                    status="completed",
                    created_at=datetime(2024, 3, 14, 9, tzinfo=timezone.utc),
                    cycles=[
                        PomodoroCycleModel(cycle_type="work", duration_minutes=25, focus_score=70),
                        PomodoroCycleModel(cycle_type="break", duration_minutes=5),
                    ],
                ),
                RetrievalPracticeSessionModel(
                    id="rp-1",
                    user_id="s1",
                    status="completed",
                    created_at=datetime(2024, 3, 14, 11, tzinfo=timezone.utc),
                    attempts=[RetrievalPracticeAttemptModel(is_correct=True, difficulty="Medium")],
                ),
                StudySessionAnalyticsModel(
                    user_id="s2",
                    session_id="pom-2",
                    session_type="pomodoro",
                    recommendations=[{"type": 7, "title": "Pace yourself", "priority": 2}],
                    analyzed_at=datetime(2024, 3, 14, 12, tzinfo=timezone.utc),
                    created_at=datetime(2024, 3, 14, 12, tzinfo=timezone.utc),
                ),
            ]
        )
        session.commit()
    try:
        service = InstructorAnalyticsService(SqlInstructorDataSource(scope), Settings())
        now = datetime(2024, 3, 15, 12, tzinfo=timezone.utc)

        techniques = service.study_techniques("i1", "week", now=now)
        insights = service.insights("i1", "week", now=now)

        assert techniques.degraded_sources == []
        assert techniques.pomodoro_analytics.total_sessions == 2
        assert techniques.pomodoro_analytics.cycle_type_breakdown == {"work": 2, "short_break": 0, "long_break": 0}
        assert techniques.retrieval_practice_analytics.total_questions == 1
        assert techniques.retrieval_practice_analytics.difficulty_breakdown == {"easy": 0, "medium": 0, "hard": 0}
        assert insights.degraded_sources == []
        assert insights.status == "success"
        assert [item.title for item in insights.teaching_recommendations] == ["Space out reviews", "Pace yourself"]
        assert insights.teaching_recommendations[1].type == "7"
    finally:
        engine.dispose()


def test_rows_that_fail_validation_are_skipped(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.WARNING, logger="study_insights.repositories.analytics_data")

    rows = _valid_rows("instructor", [{"id": "i1"}, {"name": "no id"}], Instructor.model_validate)

    assert [row.id for row in rows] == ["i1"]
    assert "Skipping malformed instructor row" in caplog.text
