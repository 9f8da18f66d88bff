"""Learning-activity schema read by the instructor analytics engine."""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "20261019_01_learning_activity_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    ]


def _session_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("module_id", sa.String(length=36), sa.ForeignKey("modules.id", ondelete="SET NULL"), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        *_timestamps(),
        sa.Column("name", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("role", sa.String(length=32), nullable=False, server_default="student"),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "courses",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        *_timestamps(),
        sa.Column("instructor_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="active"),
    )
    op.create_index("ix_courses_instructor_id", "courses", ["instructor_id"])

    op.create_table(
        "modules",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        *_timestamps(),
        sa.Column("course_id", sa.String(length=36), sa.ForeignKey("courses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("order_index", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("passing_threshold", sa.Float(), nullable=True),
        sa.Column("available_techniques", sa.JSON(), nullable=False),
    )
    op.create_index("ix_modules_course_order", "modules", ["course_id", "order_index"])

    op.create_table(
        "course_enrollments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("course_id", sa.String(length=36), sa.ForeignKey("courses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="active"),
        sa.Column("enrolled_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.UniqueConstraint("course_id", "user_id", name="uq_course_enrollment"),
    )
    op.create_index("ix_course_enrollments_user_id", "course_enrollments", ["user_id"])

    op.create_table("active_recall_sessions", *_session_columns())
    op.create_index("ix_active_recall_sessions_user_created", "active_recall_sessions", ["user_id", "created_at"])
    op.create_table(
        "active_recall_attempts",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "session_id",
            sa.String(length=36),
            sa.ForeignKey("active_recall_sessions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("is_correct", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("response_time_seconds", sa.Float(), nullable=True),
    )
    op.create_index("ix_active_recall_attempts_session_id", "active_recall_attempts", ["session_id"])

    op.create_table("pomodoro_sessions", *_session_columns())
    op.create_index("ix_pomodoro_sessions_user_created", "pomodoro_sessions", ["user_id", "created_at"])
    op.create_table(
        "pomodoro_cycles",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "session_id",
            sa.String(length=36),
            sa.ForeignKey("pomodoro_sessions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("cycle_type", sa.String(length=16), nullable=False, server_default="work"),
        sa.Column("duration_minutes", sa.Integer(), nullable=True),
        sa.Column("focus_score", sa.Float(), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_pomodoro_cycles_session_id", "pomodoro_cycles", ["session_id"])

    op.create_table("feynman_sessions", *_session_columns())
    op.create_index("ix_feynman_sessions_user_created", "feynman_sessions", ["user_id", "created_at"])
    op.create_table(
        "feynman_explanations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "session_id",
            sa.String(length=36),
            sa.ForeignKey("feynman_sessions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("overall_score", sa.Float(), nullable=True),
        sa.Column("word_count", sa.Integer(), nullable=True),
    )
    op.create_index("ix_feynman_explanations_session_id", "feynman_explanations", ["session_id"])

    op.create_table("retrieval_practice_sessions", *_session_columns())
    op.create_index(
        "ix_retrieval_practice_sessions_user_created", "retrieval_practice_sessions", ["user_id", "created_at"]
    )
    op.create_table(
        "retrieval_practice_attempts",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "session_id",
            sa.String(length=36),
            sa.ForeignKey("retrieval_practice_sessions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("is_correct", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("confidence_level", sa.Float(), nullable=True),
        sa.Column("response_time_seconds", sa.Float(), nullable=True),
        sa.Column("difficulty", sa.String(length=16), nullable=True),
    )
    op.create_index("ix_retrieval_practice_attempts_session_id", "retrieval_practice_attempts", ["session_id"])

    op.create_table(
        "user_module_progress",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("module_id", sa.String(length=36), sa.ForeignKey("modules.id", ondelete="CASCADE"), nullable=False),
        sa.Column("best_score", sa.Float(), nullable=True),
        sa.Column("latest_score", sa.Float(), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="not_started"),
        sa.Column("passed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("attempt_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("needs_remedial", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_attempt_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("user_id", "module_id", name="uq_user_module_progress"),
    )
    op.create_index("ix_user_module_progress_user_id", "user_module_progress", ["user_id"])

    op.create_table(
        "study_session_analytics",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("session_id", sa.String(length=36), nullable=True),
        sa.Column("session_type", sa.String(length=32), nullable=True),
        sa.Column("performance_metrics", sa.JSON(), nullable=True),
        sa.Column("learning_patterns", sa.JSON(), nullable=True),
        sa.Column("recommendations", sa.JSON(), nullable=True),
        sa.Column("analyzed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    )
    op.create_index(
        "ix_study_session_analytics_user_created", "study_session_analytics", ["user_id", "created_at"]
    )


def downgrade() -> None:
    op.drop_index("ix_study_session_analytics_user_created", table_name="study_session_analytics")
    op.drop_table("study_session_analytics")
    op.drop_index("ix_user_module_progress_user_id", table_name="user_module_progress")
    op.drop_table("user_module_progress")
    op.drop_index("ix_retrieval_practice_attempts_session_id", table_name="retrieval_practice_attempts")
    op.drop_table("retrieval_practice_attempts")
    op.drop_index("ix_retrieval_practice_sessions_user_created", table_name="retrieval_practice_sessions")
    op.drop_table("retrieval_practice_sessions")
    op.drop_index("ix_feynman_explanations_session_id", table_name="feynman_explanations")
    op.drop_table("feynman_explanations")
    op.drop_index("ix_feynman_sessions_user_created", table_name="feynman_sessions")
    op.drop_table("feynman_sessions")
    op.drop_index("ix_pomodoro_cycles_session_id", table_name="pomodoro_cycles")
    op.drop_table("pomodoro_cycles")
    op.drop_index("ix_pomodoro_sessions_user_created", table_name="pomodoro_sessions")
    op.drop_table("pomodoro_sessions")
    op.drop_index("ix_active_recall_attempts_session_id", table_name="active_recall_attempts")
    op.drop_table("active_recall_attempts")
    op.drop_index("ix_active_recall_sessions_user_created", table_name="active_recall_sessions")
    op.drop_table("active_recall_sessions")
    op.drop_index("ix_course_enrollments_user_id", table_name="course_enrollments")
    op.drop_table("course_enrollments")
    op.drop_index("ix_modules_course_order", table_name="modules")
    op.drop_table("modules")
    op.drop_index("ix_courses_instructor_id", table_name="courses")
    op.drop_table("courses")
    op.drop_table("users")
