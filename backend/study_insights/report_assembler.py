"""Hierarchical course, module and student reports.

The shape of a report depends on ``include_details``: courses carry a
``modules`` array only when details are requested (the module count
otherwise), and student course reports carry ``moduleDetails`` only when
details are requested (an empty list otherwise).
"""

from __future__ import annotations

from collections import Counter, defaultdict
from typing import Dict, Iterable, List, Mapping, Sequence

from .analytics_models import (
    CourseProgressReport,
    CourseReport,
    ModuleProgressDetail,
    ModuleReport,
    ReportSummary,
    ScoreDistribution,
    StudentOverallProgress,
    StudentProgressReport,
)
from .learning_records import TECHNIQUES, Course, CourseModule, ModuleProgress, Session, Student
from .numeric import rounded_mean, rounded_percentage


def sessions_by_type(sessions: Iterable[Session]) -> Dict[str, int]:
    counts = Counter(session.technique for session in sessions)
    return {technique: counts.get(technique, 0) for technique in TECHNIQUES}


def best_score_mean(rows: Sequence[ModuleProgress]) -> int:
    """Mean best score over every row; rows without a best score count as 0."""
    return rounded_mean(row.best_score or 0 for row in rows)


def score_distribution(rows: Iterable[ModuleProgress]) -> ScoreDistribution:
    distribution = ScoreDistribution()
    for row in rows:
        score = row.score
        if score >= 90:
            distribution.excellent += 1
        elif score >= 80:
            distribution.good += 1
        elif score >= 70:
            distribution.satisfactory += 1
        elif score >= 60:
            distribution.needs_improvement += 1
        else:
            distribution.failing += 1
    return distribution


def difficulty_label(average_score: float) -> str:
    if average_score < 60:
        return "high"
    if average_score < 75:
        return "medium"
    return "low"


def engagement_label(total_sessions: int, total_students: int) -> str:
    if total_students and total_sessions >= 2 * total_students:
        return "high"
    if total_students and total_sessions >= total_students:
        return "medium"
    return "low"


def build_module_report(
    module: CourseModule,
    progress: Sequence[ModuleProgress],
    sessions: Sequence[Session],
) -> ModuleReport:
    average = best_score_mean(progress)
    return ModuleReport(
        id=module.id,
        title=module.title,
        description=module.description,
        order_index=module.order_index,
        passing_threshold=module.passing_threshold,
        available_techniques=list(module.available_techniques),
        total_students=len(progress),
        completed_students=sum(1 for row in progress if row.is_completed),
        completion_rate=rounded_percentage(sum(1 for row in progress if row.is_completed), len(progress)),
        average_score=average,
        need_remedial=sum(1 for row in progress if row.needs_remedial),
        total_sessions=len(sessions),
        sessions_by_type=sessions_by_type(sessions),
        score_distribution=score_distribution(progress),
        difficulty=difficulty_label(average),
        engagement=engagement_label(len(sessions), len(progress)),
    )


def build_course_report(
    course: Course,
    modules: Sequence[CourseModule],
    progress: Sequence[ModuleProgress],
    sessions: Sequence[Session],
    include_details: bool,
) -> CourseReport:
    module_ids = {module.id for module in modules}
    course_progress = [row for row in progress if row.module_id in module_ids]
    course_sessions = [session for session in sessions if session.module_id in module_ids]

    module_reports = [
        build_module_report(
            module,
            [row for row in course_progress if row.module_id == module.id],
            [session for session in course_sessions if session.module_id == module.id],
        )
        for module in modules
    ]
    return CourseReport(
        id=course.id,
        title=course.title,
        description=course.description,
        status=course.status,
        created_at=course.created_at,
        total_modules=len(modules),
        total_students=len({row.student_id for row in course_progress}),
        total_sessions=len(course_sessions),
        average_score=best_score_mean(course_progress),
        completion_rate=rounded_percentage(sum(1 for row in course_progress if row.passed), len(course_progress)),
        modules=module_reports if include_details else len(module_reports),
    )


def build_course_reports(
    courses: Sequence[Course],
    modules: Sequence[CourseModule],
    progress: Sequence[ModuleProgress],
    sessions: Sequence[Session],
    include_details: bool,
) -> List[CourseReport]:
    modules_by_course: Dict[str, List[CourseModule]] = defaultdict(list)
    for module in sorted(modules, key=lambda module: module.order_index):
        modules_by_course[module.course_id].append(module)
    return [
        build_course_report(course, modules_by_course.get(course.id, []), progress, sessions, include_details)
        for course in courses
    ]


def build_summary(
    courses: Sequence[Course],
    modules: Sequence[CourseModule],
    student_count: int,
    sessions: Sequence[Session],
    course_reports: Sequence[CourseReport],
) -> ReportSummary:
    return ReportSummary(
        total_courses=len(courses),
        active_courses=sum(1 for course in courses if course.status == "active"),
        total_modules=len(modules),
        total_students=student_count,
        total_sessions=len(sessions),
        completed_sessions=sum(1 for session in sessions if session.is_completed),
        average_score_across_courses=rounded_mean(report.average_score for report in course_reports),
        average_completion_rate=rounded_mean(report.completion_rate for report in course_reports),
        sessions_by_type=sessions_by_type(sessions),
    )


def _module_detail(row: ModuleProgress, module_titles: Mapping[str, str]) -> ModuleProgressDetail:
    return ModuleProgressDetail(
        module_id=row.module_id,
        module_title=module_titles.get(row.module_id, row.module_title),
        best_score=float(row.best_score or 0),
        latest_score=float(row.latest_score or 0),
        status=row.status,
        passed=row.passed,
        attempt_count=row.attempt_count,
        needs_remedial=row.needs_remedial,
        completed_at=row.completed_at,
        last_attempt_at=row.last_attempt_at,
    )


def build_student_report(
    student: Student,
    courses: Sequence[Course],
    progress: Sequence[ModuleProgress],
    module_titles: Mapping[str, str],
    include_details: bool,
) -> StudentProgressReport:
    course_reports: List[CourseProgressReport] = []
    for course in courses:
        rows = [row for row in progress if row.course_id == course.id]
        course_reports.append(
            CourseProgressReport(
                course_id=course.id,
                course_title=course.title,
                total_modules=len(rows),
                completed_modules=sum(1 for row in rows if row.is_completed),
                average_score=best_score_mean(rows),
                need_remedial=sum(1 for row in rows if row.needs_remedial),
                module_details=[_module_detail(row, module_titles) for row in rows] if include_details else [],
            )
        )
    return StudentProgressReport(
        student_id=student.id,
        student_name=student.name,
        student_email=student.email,
        last_login=student.last_login,
        enrolled_since=student.enrolled_at,
        overall_progress=StudentOverallProgress(
            total_modules=len(progress),
            completed_modules=sum(1 for row in progress if row.is_completed),
            average_score=best_score_mean(progress),
            need_remedial=sum(1 for row in progress if row.needs_remedial),
            total_attempts=sum(row.attempt_count for row in progress),
        ),
        course_progress=course_reports,
    )


def build_student_reports(
    students: Sequence[Student],
    courses: Sequence[Course],
    modules: Sequence[CourseModule],
    progress: Sequence[ModuleProgress],
    include_details: bool,
) -> List[StudentProgressReport]:
    module_titles = {module.id: module.title for module in modules}
    by_student: Dict[str, List[ModuleProgress]] = defaultdict(list)
    for row in progress:
        by_student[row.student_id].append(row)
    return [
        build_student_report(student, courses, by_student.get(student.id, []), module_titles, include_details)
        for student in students
    ]


__all__ = [
    "best_score_mean",
    "build_course_report",
    "build_course_reports",
    "build_module_report",
    "build_student_report",
    "build_student_reports",
    "build_summary",
    "difficulty_label",
    "engagement_label",
    "score_distribution",
    "sessions_by_type",
]
