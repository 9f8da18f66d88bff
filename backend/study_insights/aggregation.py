"""Instructor analytics aggregation service.

One call is one aggregation pass: the mandatory roster (instructor, courses,
enrolled students) is read first and fails fast, the optional sources are
fanned out on a thread pool, and every derived view is computed from the
resulting :class:`AggregationContext`. Nothing is cached between passes.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from time import perf_counter
from typing import Callable, Dict, List, Optional, Protocol, Sequence, Tuple

from .alerts import generate_alerts
from .analytics_models import (
    DateRange,
    EngagementReport,
    ExportReport,
    ExportType,
    InsightsReport,
    InstructorDashboard,
    StudyTechniquesReport,
)
from .class_insights import build_class_insights
from .config import Settings, get_settings
from .effectiveness import compute_effectiveness
from .engagement import (
    build_engagement_trends,
    build_progress_overview,
    build_students_list,
    build_study_heatmap,
    build_technique_preferences,
)
from .errors import ComputationDegraded, EmptyInput, Unauthorized
from .interventions import apply_verdicts, build_interventions, evaluate_interventions
from .learning_records import (
    TECHNIQUES,
    AnalyticsRecord,
    Course,
    CourseModule,
    Instructor,
    ModuleProgress,
    Session,
    Student,
    StudySessionRow,
)
from .recommendations import rank_recommendations
from .report_assembler import build_course_reports, build_student_reports, build_summary
from .risk_classifier import classify_students
from .session_normalizer import normalize_sessions, sessions_by_technique
from .technique_comparison import compare_techniques
from .technique_metrics import compute_technique_analytics
from .telemetry import emit_event
from .time_series import build_daily_activity
from .time_window import TimeWindow, resolve_time_window

logger = logging.getLogger(__name__)

MODULES = "modules"
MODULE_PROGRESS = "module_progress"
ANALYTICS_RECORDS = "analytics_records"

OPTIONAL_SOURCES: Tuple[str, ...] = TECHNIQUES + (MODULES, MODULE_PROGRESS, ANALYTICS_RECORDS)

INSTRUCTOR_ROLE = "instructor"


class InstructorDataSource(Protocol):
    """Read-only access to the learning store, scoped by the caller.

    Implementations translate store failures into ``DataUnavailable``.
    """

    def get_instructor(self, instructor_id: str) -> Optional[Instructor]:  # pragma: no cover - protocol definition
        ...

    def list_courses(self, instructor_id: str) -> List[Course]:  # pragma: no cover - protocol definition
        ...

    def list_enrolled_students(
        self, instructor_id: str, course_ids: Sequence[str]
    ) -> List[Student]:  # pragma: no cover - protocol definition
        ...

    def list_modules(self, course_ids: Sequence[str]) -> List[CourseModule]:  # pragma: no cover - protocol definition
        ...

    def list_sessions(
        self, technique: str, student_ids: Sequence[str], since: datetime
    ) -> List[StudySessionRow]:  # pragma: no cover - protocol definition
        ...

    def list_module_progress(
        self, student_ids: Sequence[str], course_ids: Sequence[str]
    ) -> List[ModuleProgress]:  # pragma: no cover - protocol definition
        ...

    def list_analytics_records(
        self, student_ids: Sequence[str], since: datetime
    ) -> List[AnalyticsRecord]:  # pragma: no cover - protocol definition
        ...


@dataclass
class AggregationContext:
    """Everything one aggregation pass reads, plus its lookup maps."""

    instructor: Instructor
    window: TimeWindow
    courses: List[Course] = field(default_factory=list)
    students: List[Student] = field(default_factory=list)
    modules: List[CourseModule] = field(default_factory=list)
    sessions: List[Session] = field(default_factory=list)
    progress: List[ModuleProgress] = field(default_factory=list)
    records: List[AnalyticsRecord] = field(default_factory=list)
    degraded_sources: List[str] = field(default_factory=list)
    empty_status: Optional[str] = None

    def __post_init__(self) -> None:
        self.course_by_id: Dict[str, Course] = {course.id: course for course in self.courses}
        self.student_by_id: Dict[str, Student] = {student.id: student for student in self.students}
        self.module_by_id: Dict[str, CourseModule] = {module.id: module for module in self.modules}

    @property
    def student_ids(self) -> List[str]:
        return [student.id for student in self.students]

    @property
    def student_names(self) -> Dict[str, str]:
        return {student.id: student.name for student in self.students}

    @property
    def has_activity(self) -> bool:
        return bool(self.sessions or self.progress or self.records)


class InstructorAnalyticsService:
    """Aggregates learning activity into instructor-facing analytics."""

    def __init__(self, data_source: InstructorDataSource, settings: Optional[Settings] = None) -> None:
        self._data_source = data_source
        self._settings = settings

    @property
    def settings(self) -> Settings:
        return self._settings or get_settings()

    # Loading

    def _require_instructor(self, instructor_id: str) -> Instructor:
        instructor = self._data_source.get_instructor(instructor_id)
        if instructor is None:
            raise Unauthorized(instructor_id, "Unknown user.")
        if instructor.role != INSTRUCTOR_ROLE:
            raise Unauthorized(instructor_id)
        return instructor

    def load_context(
        self,
        instructor_id: str,
        time_range: Optional[str] = None,
        *,
        sources: Sequence[str] = OPTIONAL_SOURCES,
        now: Optional[datetime] = None,
    ) -> AggregationContext:
        instructor = self._require_instructor(instructor_id)
        window = resolve_time_window(time_range or self.settings.default_time_range, now or datetime.now(timezone.utc))

        courses = self._data_source.list_courses(instructor_id)
        if not courses:
            return AggregationContext(instructor=instructor, window=window, empty_status=EmptyInput.NO_COURSES)
        course_ids = [course.id for course in courses]
        students = self._data_source.list_enrolled_students(instructor_id, course_ids)
        if not students:
            return AggregationContext(
                instructor=instructor,
                window=window,
                courses=courses,
                empty_status=EmptyInput.NO_STUDENTS,
            )

        student_ids = [student.id for student in students]
        loaders: Dict[str, Callable[[], list]] = {}
        for technique in TECHNIQUES:
            if technique in sources:
                loaders[technique] = _bind(self._data_source.list_sessions, technique, student_ids, window.start)
        if MODULES in sources:
            loaders[MODULES] = _bind(self._data_source.list_modules, course_ids)
        if MODULE_PROGRESS in sources:
            loaders[MODULE_PROGRESS] = _bind(self._data_source.list_module_progress, student_ids, course_ids)
        if ANALYTICS_RECORDS in sources:
            loaders[ANALYTICS_RECORDS] = _bind(self._data_source.list_analytics_records, student_ids, window.start)

        results, degraded = self._fan_out(instructor_id, loaders)
        allowed = set(student_ids)
        sessions = normalize_sessions({technique: results.get(technique) for technique in TECHNIQUES}, window, allowed)
        return AggregationContext(
            instructor=instructor,
            window=window,
            courses=courses,
            students=students,
            modules=list(results.get(MODULES) or []),
            sessions=sessions,
            progress=[row for row in results.get(MODULE_PROGRESS) or [] if row.student_id in allowed],
            records=[record for record in results.get(ANALYTICS_RECORDS) or [] if record.student_id in allowed],
            degraded_sources=degraded,
        )

    def _fan_out(
        self,
        instructor_id: str,
        loaders: Dict[str, Callable[[], list]],
    ) -> Tuple[Dict[str, list], List[str]]:
        """Run the optional loaders concurrently; failures and timeouts degrade to empty."""
        results: Dict[str, list] = {}
        degraded: List[str] = []
        if not loaders:
            return results, degraded

        settings = self.settings
        executor = ThreadPoolExecutor(
            max_workers=min(settings.fetch_workers, len(loaders)),
            thread_name_prefix="insights-fetch",
        )
        try:
            futures = {name: executor.submit(loader) for name, loader in loaders.items()}
            # One deadline bounds the whole fan-out.
            deadline = perf_counter() + settings.fetch_timeout_seconds
            for name in OPTIONAL_SOURCES:
                future = futures.get(name)
                if future is None:
                    continue
                try:
                    results[name] = list(future.result(timeout=max(0.0, deadline - perf_counter())) or [])
                except Exception as exc:  # noqa: BLE001
                    results[name] = []
                    degraded.append(name)
                    self._record_degraded(instructor_id, ComputationDegraded(name, exc))
        finally:
            executor.shutdown(wait=False, cancel_futures=True)
        return results, degraded

    @staticmethod
    def _record_degraded(instructor_id: str, failure: ComputationDegraded) -> None:
        logger.warning("%s; continuing with an empty collection", failure)
        emit_event(
            "analytics_source_degraded",
            instructor_id=instructor_id,
            source=failure.source,
            error=repr(failure.cause),
        )

    @staticmethod
    def _completed(operation: str, context: AggregationContext, started: float, status: str) -> None:
        emit_event(
            "analytics_aggregation_completed",
            operation=operation,
            instructor_id=context.instructor.id,
            time_range=context.window.range_token,
            status=status,
            students=len(context.students),
            sessions=len(context.sessions),
            degraded_sources=list(context.degraded_sources),
            duration_ms=round((perf_counter() - started) * 1000, 2),
        )

    # Operations

    def study_techniques(
        self,
        instructor_id: str,
        time_range: Optional[str] = None,
        *,
        now: Optional[datetime] = None,
    ) -> StudyTechniquesReport:
        started = perf_counter()
        context = self.load_context(instructor_id, time_range, sources=TECHNIQUES + (ANALYTICS_RECORDS,), now=now)
        if context.empty_status:
            report = StudyTechniquesReport(time_range=context.window.range_token, status=context.empty_status)
        else:
            analytics = compute_technique_analytics(sessions_by_technique(context.sessions))
            report = StudyTechniquesReport(
                time_range=context.window.range_token,
                active_recall_analytics=analytics["active_recall"],
                pomodoro_analytics=analytics["pomodoro"],
                feynman_analytics=analytics["feynman"],
                retrieval_practice_analytics=analytics["retrieval_practice"],
                technique_comparison=compare_techniques(analytics, len(context.students)),
                time_based_analysis=build_daily_activity(context.sessions, context.window),
                effectiveness_metrics=compute_effectiveness(context.records),
                degraded_sources=context.degraded_sources,
            )
        self._completed("study_techniques", context, started, report.status)
        return report

    def insights(
        self,
        instructor_id: str,
        time_range: Optional[str] = None,
        *,
        now: Optional[datetime] = None,
    ) -> InsightsReport:
        started = perf_counter()
        context = self.load_context(instructor_id, time_range, now=now)
        generated_at = now or datetime.now(timezone.utc)
        report = self._build_insights(context, generated_at)
        self._completed("insights", context, started, report.status)
        return report

    def _build_insights(self, context: AggregationContext, generated_at: datetime) -> InsightsReport:
        base = {"time_range": context.window.range_token, "generated_at": generated_at}
        if context.empty_status == EmptyInput.NO_COURSES:
            return InsightsReport(status="no_courses", message="No courses found for analysis", **base)
        if context.empty_status == EmptyInput.NO_STUDENTS:
            return InsightsReport(
                status="no_students",
                message="No enrolled students found for analysis",
                courses_analyzed=len(context.courses),
                **base,
            )
        if not context.has_activity:
            return InsightsReport(
                status="no_data",
                message="No student activity data available yet. Students need to start using study techniques.",
                courses_analyzed=len(context.courses),
                students_analyzed=len(context.students),
                degraded_sources=context.degraded_sources,
                **base,
            )

        settings = self.settings
        profiles = classify_students(context.students, context.progress)
        verdicts = evaluate_interventions(context.records)
        profiles = apply_verdicts(profiles, verdicts)
        interventions = build_interventions(verdicts, profiles, context.students, settings.intervention_limit)
        alerts = generate_alerts(context.progress, context.module_by_id, settings.alert_limit)
        recommendations = rank_recommendations(context.records, context.student_names, settings.recommendation_limit)
        class_insights = build_class_insights(
            context.courses, context.students, context.sessions, context.progress, profiles, alerts
        )

        if recommendations or interventions:
            status = "success"
            message = f"Generated {len(recommendations)} recommendations and {len(interventions)} interventions"
        else:
            status = "limited"
            message = "Limited insights available. Encourage more student activity for better analysis."
        return InsightsReport(
            status=status,
            message=message,
            teaching_recommendations=recommendations,
            student_interventions=interventions,
            performance_alerts=alerts,
            class_performance_insights=class_insights,
            student_risk_profiles=profiles,
            courses_analyzed=len(context.courses),
            students_analyzed=len(context.students),
            at_risk_students=sum(1 for profile in profiles if profile.risk_level == "high"),
            degraded_sources=context.degraded_sources,
            **base,
        )

    def engagement(
        self,
        instructor_id: str,
        time_range: Optional[str] = None,
        *,
        now: Optional[datetime] = None,
    ) -> EngagementReport:
        started = perf_counter()
        context = self.load_context(instructor_id, time_range, now=now)
        if context.empty_status:
            report = EngagementReport(time_range=context.window.range_token, status=context.empty_status)
        else:
            report = EngagementReport(
                time_range=context.window.range_token,
                students_list=build_students_list(
                    context.students, context.sessions, context.records, context.progress, context.window.end
                ),
                engagement_trends=build_engagement_trends(context.sessions, context.window),
                study_heatmap=build_study_heatmap(context.sessions),
                technique_preferences=build_technique_preferences(context.sessions, len(context.students)),
                progress_overview=build_progress_overview(context.progress, context.module_by_id),
                degraded_sources=context.degraded_sources,
            )
        self._completed("engagement", context, started, report.status)
        return report

    def export_report(
        self,
        instructor_id: str,
        export_type: ExportType = "overview",
        time_range: Optional[str] = None,
        *,
        include_details: bool = False,
        include_charts: bool = False,
        now: Optional[datetime] = None,
    ) -> ExportReport:
        started = perf_counter()
        sources: Tuple[str, ...] = (MODULES, MODULE_PROGRESS)
        if export_type != "student-progress":
            sources = sources + TECHNIQUES
        context = self.load_context(instructor_id, time_range, sources=sources, now=now)
        report = ExportReport(
            export_type=export_type,
            status=context.empty_status or "success",
            instructor=context.instructor.name,
            instructor_id=context.instructor.id,
            time_range=context.window.range_token,
            date_range=DateRange(start_date=context.window.start, end_date=context.window.end),
            include_charts=include_charts,
            include_details=include_details,
            generated_at=now or datetime.now(timezone.utc),
            total_students=len(context.students),
            degraded_sources=context.degraded_sources,
        )
        if not context.empty_status:
            if export_type in ("overview", "comprehensive"):
                courses = build_course_reports(
                    context.courses, context.modules, context.progress, context.sessions, include_details
                )
                report.courses = courses
                report.summary = build_summary(
                    context.courses, context.modules, len(context.students), context.sessions, courses
                )
            if export_type in ("student-progress", "comprehensive"):
                report.students = build_student_reports(
                    context.students, context.courses, context.modules, context.progress, include_details
                )
        elif context.courses:
            report.summary = build_summary(context.courses, [], 0, [], [])
        self._completed("export_report", context, started, report.status)
        return report

    def dashboard(
        self,
        instructor_id: str,
        time_range: Optional[str] = None,
        *,
        include_details: bool = False,
        now: Optional[datetime] = None,
    ) -> InstructorDashboard:
        """Every view from a single aggregation pass."""
        started = perf_counter()
        context = self.load_context(instructor_id, time_range, now=now)
        generated_at = now or datetime.now(timezone.utc)
        insights = self._build_insights(context, generated_at)
        dashboard = InstructorDashboard(
            time_range=context.window.range_token,
            status=insights.status,
            message=insights.message,
            include_details=include_details,
            generated_at=generated_at,
            degraded_sources=context.degraded_sources,
        )
        if not context.empty_status:
            analytics = compute_technique_analytics(sessions_by_technique(context.sessions))
            courses = build_course_reports(
                context.courses, context.modules, context.progress, context.sessions, include_details
            )
            dashboard = dashboard.model_copy(
                update={
                    "technique_analytics": analytics,
                    "technique_comparison": compare_techniques(analytics, len(context.students)),
                    "time_based_analysis": build_daily_activity(context.sessions, context.window),
                    "effectiveness_metrics": compute_effectiveness(context.records),
                    "student_risk_profiles": insights.student_risk_profiles,
                    "student_interventions": insights.student_interventions,
                    "performance_alerts": insights.performance_alerts,
                    "teaching_recommendations": insights.teaching_recommendations,
                    "class_performance_insights": insights.class_performance_insights,
                    "summary": build_summary(
                        context.courses, context.modules, len(context.students), context.sessions, courses
                    ),
                    "courses": courses,
                    "students": build_student_reports(
                        context.students, context.courses, context.modules, context.progress, include_details
                    ),
                }
            )
        self._completed("dashboard", context, started, dashboard.status)
        return dashboard


def _bind(function: Callable[..., list], *args: object) -> Callable[[], list]:
    def _call() -> list:
        return function(*args)

    return _call


def _build_default_service() -> InstructorAnalyticsService:
    from .repositories.analytics_data import SqlInstructorDataSource

    return InstructorAnalyticsService(SqlInstructorDataSource())


analytics_service = _build_default_service()


def get_analytics_service() -> InstructorAnalyticsService:
    return analytics_service


__all__ = [
    "ANALYTICS_RECORDS",
    "AggregationContext",
    "InstructorAnalyticsService",
    "InstructorDataSource",
    "MODULES",
    "MODULE_PROGRESS",
    "OPTIONAL_SOURCES",
    "analytics_service",
    "get_analytics_service",
]
