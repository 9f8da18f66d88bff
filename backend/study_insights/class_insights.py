"""Class-wide engagement and academic summaries for the insights view."""

from __future__ import annotations

from typing import Iterable, List, Sequence

from .analytics_models import ClassPerformanceInsight, PerformanceAlert, StudentRiskProfile, Trend
from .learning_records import Course, ModuleProgress, Session, Student
from .numeric import mean, positive_values, round_half_up, rounded_percentage


def engagement_trend(rate: float) -> Trend:
    if rate >= 70:
        return "positive"
    if rate >= 50:
        return "stable"
    return "concerning"


def academic_trend(average_score: float) -> Trend:
    if average_score >= 75:
        return "positive"
    if average_score >= 60:
        return "stable"
    return "concerning"


def course_active_students(course: Course, students: Sequence[Student], sessions: Sequence[Session]) -> int:
    enrolled = {student.id for student in students if course.id in student.course_ids}
    return len({session.student_id for session in sessions if session.student_id in enrolled})


def course_average_score(course: Course, progress: Iterable[ModuleProgress]) -> float:
    return mean(positive_values(row.score for row in progress if row.course_id == course.id))


def build_class_insights(
    courses: Sequence[Course],
    students: Sequence[Student],
    sessions: Sequence[Session],
    progress: Sequence[ModuleProgress],
    profiles: Sequence[StudentRiskProfile],
    alerts: Sequence[PerformanceAlert],
) -> List[ClassPerformanceInsight]:
    insights: List[ClassPerformanceInsight] = []

    total_students = len(profiles)
    if total_students:
        # Summed per course, so a student in two active courses counts twice;
        # the reported rate is capped at 100.
        active = sum(course_active_students(course, students, sessions) for course in courses)
        rate = min(rounded_percentage(active, total_students), 100)
        high_risk = sum(1 for profile in profiles if profile.risk_level == "high")
        medium_risk = sum(1 for profile in profiles if profile.risk_level == "medium")
        insights.append(
            ClassPerformanceInsight(
                type="engagement_overview",
                title="Class Engagement Overview",
                insight=(
                    f"{rate}% of students are actively engaged. {high_risk} students need immediate "
                    f"attention, {medium_risk} need monitoring."
                ),
                metrics={
                    "totalStudents": total_students,
                    "activeStudents": active,
                    "engagementRate": rate,
                    "atRiskStudents": high_risk,
                    "mediumRiskStudents": medium_risk,
                },
                trend=engagement_trend(rate),
            )
        )

    if courses:
        average = round_half_up(mean(course_average_score(course, progress) for course in courses))
        insights.append(
            ClassPerformanceInsight(
                type="academic_performance",
                title="Academic Performance Summary",
                insight=(
                    f"Average performance across all courses is {average}%. "
                    f"{len(alerts)} modules require attention."
                ),
                metrics={
                    "averageScore": average,
                    "coursesAnalyzed": len(courses),
                    "alertsGenerated": len(alerts),
                },
                trend=academic_trend(average),
            )
        )
    return insights


__all__ = ["academic_trend", "build_class_insights", "engagement_trend"]
