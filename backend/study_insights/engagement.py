"""Student engagement views: roster activity, trends, heatmap and module progress."""

from __future__ import annotations

from collections import Counter, defaultdict
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from .analytics_models import (
    EngagementTrendBucket,
    HeatmapCell,
    ModuleProgressOverview,
    StudentEngagementEntry,
    TechniquePreference,
)
from .learning_records import (
    TECHNIQUE_LABELS,
    TECHNIQUES,
    AnalyticsRecord,
    CourseModule,
    ModuleProgress,
    Session,
    Student,
    as_utc,
)
from .numeric import mean, positive_values, round_half_up, rounded_percentage
from .time_series import daily_dates, session_day
from .time_window import TimeWindow

RECENT_ACTIVITY_DAYS = 7
STUDENT_LIST_LIMIT = 50
PROGRESS_OVERVIEW_LIMIT = 20
WEEKDAYS = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")

# post_study_accuracy leads here, unlike the effectiveness ratings.
ENGAGEMENT_PERFORMANCE_KEYS = ("post_study_accuracy", "improvement_percentage", "overall_accuracy")


def engagement_score(recent_sessions: int, module_completion_rate: float, average_performance: float) -> float:
    return recent_sessions * 0.4 + module_completion_rate * 0.004 + average_performance * 0.006


def engagement_band(score: float) -> str:
    if score >= 3:
        return "high"
    if score >= 1.5:
        return "medium"
    return "low"


def preferred_techniques(sessions: Sequence[Session]) -> str:
    """Techniques ordered by use, e.g. ``"pomodoro, active recall"``."""
    counts = Counter(session.technique for session in sessions)
    if not counts:
        return "None"
    ranked = sorted(counts.items(), key=lambda item: -item[1])
    return ", ".join(technique.replace("_", " ") for technique, _ in ranked)


def student_engagement(
    student: Student,
    sessions: Sequence[Session],
    records: Sequence[AnalyticsRecord],
    progress: Sequence[ModuleProgress],
    now: datetime,
) -> StudentEngagementEntry:
    recent_cutoff = as_utc(now) - timedelta(days=RECENT_ACTIVITY_DAYS)
    recent = sum(1 for session in sessions if as_utc(session.created_at) >= recent_cutoff)
    completed = sum(1 for session in sessions if session.is_completed)
    performance = round_half_up(
        mean(positive_values(record.metric(*ENGAGEMENT_PERFORMANCE_KEYS) for record in records))
    )
    module_rate = rounded_percentage(sum(1 for row in progress if row.is_completed), len(progress))
    return StudentEngagementEntry(
        id=student.id,
        name=student.name,
        email=student.email,
        last_login=student.last_login,
        engagement_level=engagement_band(engagement_score(recent, module_rate, performance)),
        total_sessions=len(sessions),
        recent_sessions=recent,
        completed_sessions=completed,
        completion_rate=rounded_percentage(completed, len(sessions)),
        average_performance=performance,
        module_completion_rate=module_rate,
        preferred_technique=preferred_techniques(sessions),
        # Sessions arrive newest first from the normalizer.
        last_activity=sessions[0].created_at if sessions else None,
    )


def build_students_list(
    students: Iterable[Student],
    sessions: Sequence[Session],
    records: Iterable[AnalyticsRecord],
    progress: Iterable[ModuleProgress],
    now: datetime,
    limit: int = STUDENT_LIST_LIMIT,
) -> List[StudentEngagementEntry]:
    sessions_by_student: Dict[str, List[Session]] = defaultdict(list)
    for session in sessions:
        sessions_by_student[session.student_id].append(session)
    records_by_student: Dict[str, List[AnalyticsRecord]] = defaultdict(list)
    for record in records:
        records_by_student[record.student_id].append(record)
    progress_by_student: Dict[str, List[ModuleProgress]] = defaultdict(list)
    for row in progress:
        progress_by_student[row.student_id].append(row)

    entries = [
        student_engagement(
            student,
            sessions_by_student.get(student.id, []),
            records_by_student.get(student.id, []),
            progress_by_student.get(student.id, []),
            now,
        )
        for student in students
    ]
    entries.sort(key=lambda entry: -entry.total_sessions)
    return entries[:limit]


def build_engagement_trends(sessions: Iterable[Session], window: TimeWindow) -> List[EngagementTrendBucket]:
    by_day: Dict[object, List[Session]] = defaultdict(list)
    for session in sessions:
        by_day[session_day(session)].append(session)
    trends: List[EngagementTrendBucket] = []
    for day in daily_dates(window):
        day_sessions = by_day.get(day, [])
        trends.append(
            EngagementTrendBucket(
                date=day.isoformat(),
                sessions=len(day_sessions),
                active_students=len({session.student_id for session in day_sessions}),
                completed_sessions=sum(1 for session in day_sessions if session.is_completed),
            )
        )
    return trends


def build_study_heatmap(sessions: Sequence[Session]) -> List[HeatmapCell]:
    """Non-empty (weekday, hour) cells, Sunday first."""
    counts: Counter = Counter()
    for session in sessions:
        stamp = session.created_at
        counts[((stamp.weekday() + 1) % 7, stamp.hour)] += 1
    scale = max(len(sessions) * 0.01, 1)
    return [
        HeatmapCell(
            day=WEEKDAYS[day],
            hour=hour,
            sessions=count,
            intensity=min(count / scale, 1),
        )
        for (day, hour), count in sorted(counts.items())
    ]


def build_technique_preferences(sessions: Sequence[Session], total_enrolled: int) -> List[TechniquePreference]:
    preferences: List[TechniquePreference] = []
    for technique in TECHNIQUES:
        matching = [session for session in sessions if session.technique == technique]
        if not matching:
            continue
        users = len({session.student_id for session in matching})
        preferences.append(
            TechniquePreference(
                technique=TECHNIQUE_LABELS[technique],
                sessions=len(matching),
                users=users,
                adoption_rate=rounded_percentage(users, max(total_enrolled, 1)),
                completion_rate=rounded_percentage(
                    sum(1 for session in matching if session.is_completed), len(matching)
                ),
            )
        )
    preferences.sort(key=lambda preference: -preference.sessions)
    return preferences


def progress_status(average_score: float) -> str:
    if average_score >= 80:
        return "excellent"
    if average_score >= 70:
        return "good"
    if average_score >= 60:
        return "needs_improvement"
    return "critical"


def build_progress_overview(
    progress: Iterable[ModuleProgress],
    modules: Optional[Mapping[str, CourseModule]] = None,
    limit: int = PROGRESS_OVERVIEW_LIMIT,
) -> List[ModuleProgressOverview]:
    modules = modules or {}
    by_module: Dict[str, List[ModuleProgress]] = defaultdict(list)
    for row in progress:
        by_module[row.module_id].append(row)

    overview: List[ModuleProgressOverview] = []
    for module_id, rows in by_module.items():
        module = modules.get(module_id)
        completed = sum(1 for row in rows if row.is_completed)
        average = mean(positive_values(row.score for row in rows))
        overview.append(
            ModuleProgressOverview(
                module_id=module_id,
                module_title=module.title if module is not None else rows[0].module_title,
                total_students=len(rows),
                completed_students=completed,
                completion_rate=rounded_percentage(completed, len(rows)),
                average_score=round_half_up(average),
                status=progress_status(average),
            )
        )
    return overview[:limit]


__all__ = [
    "build_engagement_trends",
    "build_progress_overview",
    "build_students_list",
    "build_study_heatmap",
    "build_technique_preferences",
    "engagement_band",
    "engagement_score",
    "preferred_techniques",
    "progress_status",
    "student_engagement",
]
