"""ORM models for the learning-activity store read by the analytics engine."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import JSON

from .base import Base, TimestampMixin, utcnow

JSONType = JSON


def _uuid() -> str:
    return str(uuid.uuid4())


class UserModel(TimestampMixin, Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(String(32), default="student", nullable=False)
    last_login: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    enrollments: Mapped[list["CourseEnrollmentModel"]] = relationship(back_populates="user")


class CourseModel(TimestampMixin, Base):
    __tablename__ = "courses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    instructor_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    status: Mapped[str] = mapped_column(String(32), default="active", nullable=False)

    modules: Mapped[list["ModuleModel"]] = relationship(back_populates="course", cascade="all, delete-orphan")
    enrollments: Mapped[list["CourseEnrollmentModel"]] = relationship(
        back_populates="course", cascade="all, delete-orphan"
    )


class ModuleModel(TimestampMixin, Base):
    __tablename__ = "modules"
    __table_args__ = (Index("ix_modules_course_order", "course_id", "order_index"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    course_id: Mapped[str] = mapped_column(String(36), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    order_index: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    passing_threshold: Mapped[float | None] = mapped_column(Float, nullable=True)
    available_techniques: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)

    course: Mapped[CourseModel] = relationship(back_populates="modules")


class CourseEnrollmentModel(Base):
    __tablename__ = "course_enrollments"
    __table_args__ = (UniqueConstraint("course_id", "user_id", name="uq_course_enrollment"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    course_id: Mapped[str] = mapped_column(String(36), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(String(32), default="active", nullable=False)
    enrolled_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    course: Mapped[CourseModel] = relationship(back_populates="enrollments")
    user: Mapped[UserModel] = relationship(back_populates="enrollments")


class StudySessionColumns:
    """Columns shared by the four per-technique session tables."""

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    module_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("modules.id", ondelete="SET NULL"), nullable=True
    )
    status: Mapped[str] = mapped_column(String(32), default="", nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class ActiveRecallSessionModel(StudySessionColumns, Base):
    __tablename__ = "active_recall_sessions"
    __table_args__ = (Index("ix_active_recall_sessions_user_created", "user_id", "created_at"),)

    attempts: Mapped[list["ActiveRecallAttemptModel"]] = relationship(
        back_populates="session", cascade="all, delete-orphan", order_by="ActiveRecallAttemptModel.id"
    )


class ActiveRecallAttemptModel(Base):
    __tablename__ = "active_recall_attempts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("active_recall_sessions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    is_correct: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    response_time_seconds: Mapped[float | None] = mapped_column(Float, nullable=True)

    session: Mapped[ActiveRecallSessionModel] = relationship(back_populates="attempts")


class PomodoroSessionModel(StudySessionColumns, Base):
    __tablename__ = "pomodoro_sessions"
    __table_args__ = (Index("ix_pomodoro_sessions_user_created", "user_id", "created_at"),)

    cycles: Mapped[list["PomodoroCycleModel"]] = relationship(
        back_populates="session", cascade="all, delete-orphan", order_by="PomodoroCycleModel.id"
    )


class PomodoroCycleModel(Base):
    __tablename__ = "pomodoro_cycles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("pomodoro_sessions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    cycle_type: Mapped[str] = mapped_column(String(16), default="work", nullable=False)
    duration_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    focus_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    session: Mapped[PomodoroSessionModel] = relationship(back_populates="cycles")


class FeynmanSessionModel(StudySessionColumns, Base):
    __tablename__ = "feynman_sessions"
    __table_args__ = (Index("ix_feynman_sessions_user_created", "user_id", "created_at"),)

    explanations: Mapped[list["FeynmanExplanationModel"]] = relationship(
        back_populates="session", cascade="all, delete-orphan", order_by="FeynmanExplanationModel.id"
    )


class FeynmanExplanationModel(Base):
    __tablename__ = "feynman_explanations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("feynman_sessions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    overall_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    word_count: Mapped[int | None] = mapped_column(Integer, nullable=True)

    session: Mapped[FeynmanSessionModel] = relationship(back_populates="explanations")


class RetrievalPracticeSessionModel(StudySessionColumns, Base):
    __tablename__ = "retrieval_practice_sessions"
    __table_args__ = (Index("ix_retrieval_practice_sessions_user_created", "user_id", "created_at"),)

    attempts: Mapped[list["RetrievalPracticeAttemptModel"]] = relationship(
        back_populates="session", cascade="all, delete-orphan", order_by="RetrievalPracticeAttemptModel.id"
    )


class RetrievalPracticeAttemptModel(Base):
    __tablename__ = "retrieval_practice_attempts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("retrieval_practice_sessions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    is_correct: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    confidence_level: Mapped[float | None] = mapped_column(Float, nullable=True)
    response_time_seconds: Mapped[float | None] = mapped_column(Float, nullable=True)
    difficulty: Mapped[str | None] = mapped_column(String(16), nullable=True)

    session: Mapped[RetrievalPracticeSessionModel] = relationship(back_populates="attempts")


class UserModuleProgressModel(Base):
    __tablename__ = "user_module_progress"
    __table_args__ = (UniqueConstraint("user_id", "module_id", name="uq_user_module_progress"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    module_id: Mapped[str] = mapped_column(String(36), ForeignKey("modules.id", ondelete="CASCADE"), nullable=False)
    best_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    latest_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    status: Mapped[str] = mapped_column(String(32), default="not_started", nullable=False)
    passed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    attempt_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    needs_remedial: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_attempt_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    module: Mapped[ModuleModel] = relationship()


class StudySessionAnalyticsModel(Base):
    __tablename__ = "study_session_analytics"
    __table_args__ = (Index("ix_study_session_analytics_user_created", "user_id", "created_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    session_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    session_type: Mapped[str | None] = mapped_column(String(32), nullable=True)
    performance_metrics: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    learning_patterns: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    recommendations: Mapped[list | None] = mapped_column(JSONType, nullable=True)
    analyzed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


__all__ = [
    "ActiveRecallAttemptModel",
    "ActiveRecallSessionModel",
    "CourseEnrollmentModel",
    "CourseModel",
    "FeynmanExplanationModel",
    "FeynmanSessionModel",
    "ModuleModel",
    "PomodoroCycleModel",
    "PomodoroSessionModel",
    "RetrievalPracticeAttemptModel",
    "RetrievalPracticeSessionModel",
    "StudySessionAnalyticsModel",
    "UserModel",
    "UserModuleProgressModel",
]
