"""Module-level performance alerts from student progress."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional

from .analytics_models import PerformanceAlert
from .learning_records import CourseModule, ModuleProgress
from .numeric import mean, percentage, positive_values, round_half_up

FAILING_SCORE = 60
REMEDIAL_CEILING = 70
CRITICAL_FAILURE_RATE = 30
WARNING_REMEDIAL_RATE = 40
INFO_AVERAGE_SCORE = 70

SEVERITY_ORDER: Dict[str, int] = {"high": 0, "medium": 1, "low": 2}


@dataclass(frozen=True)
class ModuleOutcome:
    module_id: str
    total_students: int
    failing: int
    remedial: int
    failure_rate: float
    remedial_rate: float
    average_score: float


def module_outcome(module_id: str, rows: List[ModuleProgress]) -> ModuleOutcome:
    total = len(rows)
    failing = sum(1 for row in rows if row.score < FAILING_SCORE)
    # A flagged student scoring 60-69 is counted twice, matching the legacy rule.
    remedial = sum(1 for row in rows if row.needs_remedial) + sum(
        1 for row in rows if FAILING_SCORE <= row.score < REMEDIAL_CEILING
    )
    return ModuleOutcome(
        module_id=module_id,
        total_students=total,
        failing=failing,
        remedial=remedial,
        failure_rate=percentage(failing, total),
        remedial_rate=percentage(remedial, total),
        average_score=mean(positive_values(row.score for row in rows)),
    )


def classify_module(
    outcome: ModuleOutcome,
    title: str,
    course_id: Optional[str] = None,
) -> Optional[PerformanceAlert]:
    """First matching rule wins; ``None`` when the module looks healthy."""
    common = {
        "module_id": outcome.module_id,
        "module_title": title,
        "course_id": course_id,
        "total_students": outcome.total_students,
    }
    if outcome.failure_rate >= CRITICAL_FAILURE_RATE:
        rate = round_half_up(outcome.failure_rate)
        return PerformanceAlert(
            type="critical",
            severity="high",
            title=f"High failure rate in {title}",
            description=f"{rate}% of students are scoring below {FAILING_SCORE}%.",
            metric="failureRate",
            value=rate,
            affected_students=outcome.failing,
            **common,
        )
    if outcome.remedial_rate >= WARNING_REMEDIAL_RATE:
        rate = round_half_up(outcome.remedial_rate)
        return PerformanceAlert(
            type="warning",
            severity="medium",
            title=f"Many students need remedial work in {title}",
            description=f"{rate}% of students need remedial support.",
            metric="remedialRate",
            value=rate,
            affected_students=outcome.remedial,
            **common,
        )
    if outcome.average_score < INFO_AVERAGE_SCORE:
        score = round_half_up(outcome.average_score)
        return PerformanceAlert(
            type="info",
            severity="low",
            title=f"Below-target average in {title}",
            description=f"Average score is {score}%, below the {INFO_AVERAGE_SCORE}% target.",
            metric="avgScore",
            value=score,
            affected_students=outcome.total_students,
            **common,
        )
    return None


def generate_alerts(
    progress: Iterable[ModuleProgress],
    modules: Optional[Mapping[str, CourseModule]] = None,
    limit: Optional[int] = None,
) -> List[PerformanceAlert]:
    modules = modules or {}
    by_module: Dict[str, List[ModuleProgress]] = defaultdict(list)
    for row in progress:
        by_module[row.module_id].append(row)

    alerts: List[PerformanceAlert] = []
    for module_id, rows in by_module.items():
        module = modules.get(module_id)
        title = module.title if module is not None else rows[0].module_title
        course_id = module.course_id if module is not None else rows[0].course_id
        alert = classify_module(module_outcome(module_id, rows), title, course_id)
        if alert is not None:
            alerts.append(alert)

    alerts.sort(key=lambda alert: SEVERITY_ORDER[alert.severity])
    if limit is not None:
        alerts = alerts[:limit]
    return alerts


__all__ = [
    "ModuleOutcome",
    "SEVERITY_ORDER",
    "classify_module",
    "generate_alerts",
    "module_outcome",
]
