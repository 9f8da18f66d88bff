from __future__ import annotations

from datetime import datetime

from study_insights.learning_records import (
    ActiveRecallPayload,
    Course,
    CourseModule,
    ModuleProgress,
    PomodoroPayload,
    Session,
    Student,
)
from study_insights.report_assembler import (
    build_course_reports,
    build_student_reports,
    build_summary,
    difficulty_label,
    engagement_label,
)

COURSES = [
    Course(id="c1", title="Biology", status="active"),
    Course(id="c2", title="Chemistry", status="archived"),
]
MODULES = [
    CourseModule(id="m2", course_id="c1", title="Genetics", order_index=1),
    CourseModule(id="m1", course_id="c1", title="Cells", order_index=0, available_techniques=["pomodoro"]),
]
PROGRESS = [
    ModuleProgress(
        student_id="s1", module_id="m1", course_id="c1", best_score=90, passed=True, status="completed", attempt_count=2
    ),
    ModuleProgress(student_id="s2", module_id="m1", course_id="c1", best_score=50, needs_remedial=True, attempt_count=3),
    ModuleProgress(student_id="s1", module_id="m2", course_id="c1", status="in_progress", attempt_count=1),
]


def _session(session_id: str, module_id, payload, status: str = "completed") -> Session:
    return Session(
        id=session_id,
        student_id="s1",
        module_id=module_id,
        technique=payload.technique,
        status=status,
        created_at=datetime(2024, 3, 10, 9),
        payload=payload,
    )


SESSIONS = [
    _session("a1", "m1", ActiveRecallPayload()),
    _session("a2", "m1", ActiveRecallPayload(), status="studying"),
    _session("p1", "m2", PomodoroPayload()),
    _session("p2", None, PomodoroPayload()),
]


def test_course_reports_carry_module_counts_without_details() -> None:
    reports = build_course_reports(COURSES, MODULES, PROGRESS, SESSIONS, include_details=False)

    biology = reports[0]
    assert biology.modules == 2
    assert biology.total_students == 2
    assert biology.total_sessions == 3
    # (90 + 50 + 0) / 3
    assert biology.average_score == 47
    assert biology.completion_rate == 33
    assert biology.to_payload()["modules"] == 2
    assert reports[1].modules == 0
    assert reports[1].average_score == 0


def test_course_reports_embed_module_reports_with_details() -> None:
    reports = build_course_reports(COURSES, MODULES, PROGRESS, SESSIONS, include_details=True)

    modules = reports[0].modules
    assert isinstance(modules, list)
    assert [module.id for module in modules] == ["m1", "m2"]
    cells = modules[0]
    assert cells.total_students == 2
    assert cells.completed_students == 1
    assert cells.completion_rate == 50
    assert cells.average_score == 70
    assert cells.need_remedial == 1
    assert cells.sessions_by_type == {"active_recall": 2, "pomodoro": 0, "feynman": 0, "retrieval_practice": 0}
    assert cells.score_distribution.excellent == 1
    assert cells.score_distribution.failing == 1
    assert cells.difficulty == "medium"
    assert cells.engagement == "medium"
    payload = reports[0].to_payload()
    assert payload["modules"][0]["availableTechniques"] == ["pomodoro"]
    assert payload["modules"][0]["scoreDistribution"]["needsImprovement"] == 0


def test_summary_rolls_up_course_reports() -> None:
    reports = build_course_reports(COURSES, MODULES, PROGRESS, SESSIONS, include_details=False)

    summary = build_summary(COURSES, MODULES, 2, SESSIONS, reports)

    assert summary.total_courses == 2
    assert summary.active_courses == 1
    assert summary.total_modules == 2
    assert summary.total_sessions == 4
    assert summary.completed_sessions == 3
    assert summary.average_score_across_courses == 24
    assert summary.average_completion_rate == 17
    assert summary.sessions_by_type["pomodoro"] == 2


def test_student_reports_only_list_module_details_when_requested() -> None:
    students = [Student(id="s1", name="Ada", email="ada@example.com"), Student(id="s3", name="Idle")]

    [ada, idle] = build_student_reports(students, COURSES[:1], MODULES, PROGRESS, include_details=False)

    assert ada.overall_progress.total_modules == 2
    assert ada.overall_progress.completed_modules == 1
    assert ada.overall_progress.average_score == 45
    assert ada.overall_progress.total_attempts == 3
    assert ada.course_progress[0].module_details == []
    assert ada.to_payload()["courseProgress"][0]["moduleDetails"] == []
    assert idle.overall_progress.total_modules == 0
    assert idle.course_progress[0].average_score == 0

    [detailed, _] = build_student_reports(students, COURSES[:1], MODULES, PROGRESS, include_details=True)
    details = detailed.course_progress[0].module_details
    assert [detail.module_title for detail in details] == ["Cells", "Genetics"]
    assert details[1].best_score == 0.0


def test_labels() -> None:
    assert difficulty_label(59) == "high"
    assert difficulty_label(75) == "low"
    assert engagement_label(4, 2) == "high"
    assert engagement_label(0, 0) == "low"
