"""Technique effectiveness ratings from upstream performance metrics."""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, List

from .analytics_models import EffectivenessMetric
from .learning_records import AnalyticsRecord
from .numeric import mean, round_half_up

PERFORMANCE_KEYS = ("improvement_percentage", "post_study_accuracy", "overall_accuracy")
HIGH_EFFECTIVENESS = 70
MEDIUM_EFFECTIVENESS = 50


def effectiveness_rating(average: float, has_samples: bool) -> str:
    if has_samples and average >= HIGH_EFFECTIVENESS:
        return "High"
    if has_samples and average >= MEDIUM_EFFECTIVENESS:
        return "Medium"
    return "Low"


def compute_effectiveness(records: Iterable[AnalyticsRecord]) -> Dict[str, EffectivenessMetric]:
    grouped: Dict[str, List[AnalyticsRecord]] = defaultdict(list)
    for record in records:
        if record.technique:
            grouped[record.technique].append(record)

    metrics: Dict[str, EffectivenessMetric] = {}
    for technique, items in grouped.items():
        samples = [value for value in (item.metric(*PERFORMANCE_KEYS) for item in items) if value > 0]
        average = mean(samples)
        metrics[technique] = EffectivenessMetric(
            average_improvement=round_half_up(average),
            session_count=len(items),
            effectiveness_rating=effectiveness_rating(average, bool(samples)),
        )
    return metrics


__all__ = ["PERFORMANCE_KEYS", "compute_effectiveness", "effectiveness_rating"]
