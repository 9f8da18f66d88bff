"""Roll upstream recommendations up into per-student intervention verdicts."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .analytics_models import InterventionLevel, StudentIntervention, StudentRiskProfile
from .learning_records import AnalyticsRecord, Recommendation, Student, sort_timestamp

HIGH_PRIORITY_CUTOFF = 2
CRITICAL_PRIORITY = 1
HIGH_PRIORITY_ISSUE_THRESHOLD = 3
DECLINE_THRESHOLD = -20.0
MAX_RECOMMENDED_ACTIONS = 3

INTERVENTION_ORDER: Dict[str, int] = {"urgent": 0, "high": 1, "medium": 2}


@dataclass
class InterventionVerdict:
    student_id: str
    level: InterventionLevel
    high_priority_issues: int = 0
    critical_issues: int = 0
    improvement_trend: float = 0.0
    reasons: List[str] = field(default_factory=list)
    recommended_actions: List[str] = field(default_factory=list)
    last_analyzed: Optional[datetime] = None
    sessions_analyzed: int = 0


def improvement_trend(records: Sequence[AnalyticsRecord]) -> float:
    """Last minus first non-zero improvement sample; ``records`` oldest first."""
    samples = [value for value in (record.metric("improvement_percentage") for record in records) if value]
    if len(samples) < 2:
        return 0.0
    return round(samples[-1] - samples[0], 2)


def intervention_level(critical_issues: int, high_priority_issues: int, trend: float) -> InterventionLevel:
    if critical_issues > 0:
        return "urgent"
    if high_priority_issues >= HIGH_PRIORITY_ISSUE_THRESHOLD:
        return "high"
    if trend < DECLINE_THRESHOLD:
        return "medium"
    return "none"


def _issue_reasons(recommendations: Iterable[Recommendation]) -> List[str]:
    reasons: List[str] = []
    for recommendation in recommendations:
        if recommendation.priority > HIGH_PRIORITY_CUTOFF:
            continue
        label = recommendation.title or recommendation.description
        if label and label not in reasons:
            reasons.append(label)
    return reasons


def evaluate_student(student_id: str, records: Sequence[AnalyticsRecord]) -> InterventionVerdict:
    ordered = sorted(records, key=lambda record: sort_timestamp(record.observed_at))
    recommendations = [recommendation for record in ordered for recommendation in record.recommendations]
    high_priority = sum(1 for item in recommendations if item.priority <= HIGH_PRIORITY_CUTOFF)
    critical = sum(1 for item in recommendations if item.priority == CRITICAL_PRIORITY)
    trend = improvement_trend(ordered)
    level = intervention_level(critical, high_priority, trend)

    reasons = _issue_reasons(recommendations)
    if trend < DECLINE_THRESHOLD:
        reasons.append(f"Performance declined {abs(trend):g}% across analyzed sessions")

    latest = ordered[-1] if ordered else None
    actions: List[str] = []
    if latest is not None:
        actions = [item.actionable_advice for item in latest.recommendations if item.actionable_advice]
    return InterventionVerdict(
        student_id=student_id,
        level=level,
        high_priority_issues=high_priority,
        critical_issues=critical,
        improvement_trend=trend,
        reasons=reasons,
        recommended_actions=actions[:MAX_RECOMMENDED_ACTIONS],
        last_analyzed=latest.observed_at if latest else None,
        sessions_analyzed=len(ordered),
    )


def evaluate_interventions(records: Iterable[AnalyticsRecord]) -> Dict[str, InterventionVerdict]:
    grouped: Dict[str, List[AnalyticsRecord]] = defaultdict(list)
    for record in records:
        grouped[record.student_id].append(record)
    return {student_id: evaluate_student(student_id, items) for student_id, items in grouped.items()}


def apply_verdicts(
    profiles: Sequence[StudentRiskProfile],
    verdicts: Mapping[str, InterventionVerdict],
) -> List[StudentRiskProfile]:
    """Fold intervention verdicts into the risk profiles."""
    updated: List[StudentRiskProfile] = []
    for profile in profiles:
        verdict = verdicts.get(profile.student_id)
        if verdict is None:
            updated.append(profile)
            continue
        reasons = list(profile.reasons) + [reason for reason in verdict.reasons if reason not in profile.reasons]
        updated.append(
            profile.model_copy(
                update={
                    "intervention_level": verdict.level,
                    "improvement_trend": verdict.improvement_trend,
                    "reasons": reasons,
                }
            )
        )
    return updated


def build_interventions(
    verdicts: Mapping[str, InterventionVerdict],
    profiles: Sequence[StudentRiskProfile],
    students: Iterable[Student],
    limit: Optional[int] = None,
) -> List[StudentIntervention]:
    """Students needing action, ordered urgent, high, medium; ``none`` is dropped."""
    names = {student.id: student.name for student in students}
    risk_by_student = {profile.student_id: profile.risk_level for profile in profiles}

    flagged: List[Tuple[int, StudentIntervention]] = []
    for student_id, verdict in verdicts.items():
        if verdict.level == "none":
            continue
        flagged.append(
            (
                INTERVENTION_ORDER[verdict.level],
                StudentIntervention(
                    student_id=student_id,
                    student_name=names.get(student_id, "Unknown Student"),
                    intervention_level=verdict.level,
                    risk_level=risk_by_student.get(student_id),
                    reasons=list(verdict.reasons),
                    recommended_actions=list(verdict.recommended_actions),
                    last_analyzed=verdict.last_analyzed,
                    sessions_analyzed=verdict.sessions_analyzed,
                    high_priority_issues=verdict.high_priority_issues,
                    critical_issues=verdict.critical_issues,
                    improvement_trend=verdict.improvement_trend,
                ),
            )
        )
    flagged.sort(key=lambda item: item[0])
    ordered = [intervention for _, intervention in flagged]
    if limit is not None:
        ordered = ordered[:limit]
    return ordered


__all__ = [
    "INTERVENTION_ORDER",
    "InterventionVerdict",
    "apply_verdicts",
    "build_interventions",
    "evaluate_interventions",
    "evaluate_student",
    "improvement_trend",
    "intervention_level",
]
