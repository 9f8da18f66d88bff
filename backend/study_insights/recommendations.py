"""Deduplicate and rank upstream teaching recommendations."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from .analytics_models import TeachingRecommendation
from .learning_records import AnalyticsRecord, Recommendation
from .numeric import mean

MAX_NAMED_STUDENTS = 3


@dataclass
class _RecommendationGroup:
    type: str
    title: str
    description: str
    actionable_advice: str
    priority: int
    frequency: int = 0
    student_ids: List[str] = field(default_factory=list)
    confidences: List[float] = field(default_factory=list)

    def add(self, recommendation: Recommendation, student_id: str) -> None:
        self.frequency += 1
        self.priority = min(self.priority, recommendation.priority)
        self.confidences.append(recommendation.confidence_score)
        if student_id not in self.student_ids:
            self.student_ids.append(student_id)
        if not self.description and recommendation.description:
            self.description = recommendation.description
        if not self.actionable_advice and recommendation.actionable_advice:
            self.actionable_advice = recommendation.actionable_advice


def impact_for(affected: int) -> str:
    if affected >= 3:
        return "high"
    if affected == 2:
        return "medium"
    return "low"


def recommendation_id(kind: str, title: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", f"{kind} {title}".lower()).strip("-")
    return slug or "recommendation"


def rank_recommendations(
    records: Iterable[AnalyticsRecord],
    student_names: Optional[Mapping[str, str]] = None,
    limit: Optional[int] = None,
) -> List[TeachingRecommendation]:
    """Merge on ``(type, title)`` then order by priority and frequency.

    Truncation happens only after every record has been merged and sorted.
    """
    student_names = student_names or {}
    groups: Dict[Tuple[str, str], _RecommendationGroup] = {}
    for record in records:
        for recommendation in record.recommendations:
            key = (recommendation.type, recommendation.title)
            group = groups.get(key)
            if group is None:
                group = _RecommendationGroup(
                    type=recommendation.type,
                    title=recommendation.title,
                    description=recommendation.description,
                    actionable_advice=recommendation.actionable_advice,
                    priority=recommendation.priority,
                )
                groups[key] = group
            group.add(recommendation, record.student_id)

    ranked = sorted(groups.values(), key=lambda group: (group.priority, -group.frequency))
    results = [
        TeachingRecommendation(
            id=recommendation_id(group.type, group.title),
            type=group.type,
            title=group.title,
            description=group.description,
            actionable_advice=group.actionable_advice,
            priority=group.priority,
            frequency=group.frequency,
            affected_students_count=len(group.student_ids),
            affected_students=[
                student_names.get(student_id, "Unknown Student")
                for student_id in group.student_ids[:MAX_NAMED_STUDENTS]
            ],
            confidence=round(mean(group.confidences), 4),
            impact=impact_for(len(group.student_ids)),
        )
        for group in ranked
    ]
    if limit is not None:
        results = results[:limit]
    return results


__all__ = ["impact_for", "rank_recommendations", "recommendation_id"]
