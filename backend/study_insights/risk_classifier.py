"""Per-student risk classification from module progress."""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, List, Sequence

from .analytics_models import RiskLevel, StudentRiskProfile
from .learning_records import ModuleProgress, Student
from .numeric import mean, positive_values, round_half_up

HIGH_RISK_PROGRESS = 30
HIGH_RISK_SCORE = 50
MEDIUM_RISK_PROGRESS = 60
MEDIUM_RISK_SCORE = 70
LOW_PROGRESS_ENGAGEMENT_PENALTY = 30
ENGAGEMENT_PENALTY_THRESHOLD = 50


def completion_percentage(progress: ModuleProgress) -> int:
    if progress.status == "completed":
        return 100
    if progress.passed:
        return 90
    if (progress.best_score or 0) > 70:
        return 80
    return 50


def classify_risk_level(overall_progress: float, average_score: float) -> RiskLevel:
    """Ordered threshold rule; the first matching band wins."""
    if overall_progress < HIGH_RISK_PROGRESS or average_score < HIGH_RISK_SCORE:
        return "high"
    if overall_progress < MEDIUM_RISK_PROGRESS or average_score < MEDIUM_RISK_SCORE:
        return "medium"
    return "low"


def engagement_level(overall_progress: float) -> int:
    penalty = LOW_PROGRESS_ENGAGEMENT_PENALTY if overall_progress < ENGAGEMENT_PENALTY_THRESHOLD else 0
    return max(0, 100 - penalty)


def _risk_reasons(overall_progress: float, average_score: float, module_count: int) -> List[str]:
    if module_count == 0:
        return ["No module progress recorded"]
    reasons: List[str] = []
    if overall_progress < MEDIUM_RISK_PROGRESS:
        reasons.append(f"Overall progress at {round_half_up(overall_progress)}%")
    if average_score < MEDIUM_RISK_SCORE:
        reasons.append(f"Average module score at {round_half_up(average_score)}%")
    return reasons


def build_risk_profile(student: Student, progress_rows: Sequence[ModuleProgress]) -> StudentRiskProfile:
    overall_progress = mean(completion_percentage(row) for row in progress_rows)
    average_score = mean(positive_values(row.score for row in progress_rows))
    return StudentRiskProfile(
        student_id=student.id,
        student_name=student.name,
        course_ids=list(student.course_ids),
        module_count=len(progress_rows),
        overall_progress=round_half_up(overall_progress),
        average_score=round_half_up(average_score),
        risk_level=classify_risk_level(overall_progress, average_score),
        engagement_level=engagement_level(overall_progress),
        reasons=_risk_reasons(overall_progress, average_score, len(progress_rows)),
    )


def classify_students(
    students: Iterable[Student],
    progress: Iterable[ModuleProgress],
) -> List[StudentRiskProfile]:
    """One profile per rostered student, in roster order."""
    by_student: Dict[str, List[ModuleProgress]] = defaultdict(list)
    for row in progress:
        by_student[row.student_id].append(row)
    return [build_risk_profile(student, by_student.get(student.id, [])) for student in students]


__all__ = [
    "build_risk_profile",
    "classify_risk_level",
    "classify_students",
    "completion_percentage",
    "engagement_level",
]
