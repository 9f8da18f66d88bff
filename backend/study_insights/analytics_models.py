"""Pydantic payloads for the instructor analytics responses (camelCase on the wire)."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, SerializeAsAny
from pydantic.alias_generators import to_camel

RiskLevel = Literal["low", "medium", "high"]
InterventionLevel = Literal["none", "medium", "high", "urgent"]
Severity = Literal["low", "medium", "high"]
Trend = Literal["positive", "stable", "concerning"]
InsightsStatus = Literal["success", "limited", "no_courses", "no_students", "no_data"]
ReportStatus = Literal["success", "no_courses", "no_students"]
ExportType = Literal["overview", "comprehensive", "student-progress"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


# Technique analytics


class TechniqueAnalytics(CamelModel):
    technique: str
    total_sessions: int = 0
    completed_sessions: int = 0
    user_engagement: int = 0
    session_status_breakdown: Dict[str, int] = Field(default_factory=dict)


class ActiveRecallAnalytics(TechniqueAnalytics):
    technique: str = "active_recall"
    total_attempts: int = 0
    average_accuracy: int = 0
    average_session_duration: int = 0


class PomodoroAnalytics(TechniqueAnalytics):
    technique: str = "pomodoro"
    total_cycles: int = 0
    completed_cycles: int = 0
    average_focus_score: int = 0
    average_cycles_per_session: int = 0
    total_study_time: int = 0
    break_adherence: int = 0
    cycle_type_breakdown: Dict[str, int] = Field(default_factory=dict)


class FeynmanAnalytics(TechniqueAnalytics):
    technique: str = "feynman"
    total_explanations: int = 0
    average_explanation_score: int = 0
    average_word_count: int = 0


class RetrievalPracticeAnalytics(TechniqueAnalytics):
    technique: str = "retrieval_practice"
    total_questions: int = 0
    average_accuracy: int = 0
    average_confidence: int = 0
    average_response_time: int = 0
    questions_per_session: int = 0
    difficulty_breakdown: Dict[str, int] = Field(default_factory=dict)


class TechniqueComparisonEntry(CamelModel):
    technique: str
    key: str
    sessions: int
    users: int
    adoption_rate: int
    sessions_per_user: int
    color: str


class DailyActivityBucket(CamelModel):
    date: str
    active_recall: int = 0
    pomodoro: int = 0
    feynman: int = 0
    retrieval_practice: int = 0
    total: int = 0


class EffectivenessMetric(CamelModel):
    average_improvement: int = 0
    session_count: int = 0
    effectiveness_rating: Literal["High", "Medium", "Low"] = "Low"


# Student classification


class StudentRiskProfile(CamelModel):
    student_id: str
    student_name: str = "Unknown Student"
    course_ids: List[str] = Field(default_factory=list)
    module_count: int = 0
    overall_progress: int = 0
    average_score: int = 0
    risk_level: RiskLevel = "low"
    engagement_level: int = 100
    intervention_level: InterventionLevel = "none"
    reasons: List[str] = Field(default_factory=list)
    improvement_trend: float = 0.0


class StudentIntervention(CamelModel):
    student_id: str
    student_name: str = "Unknown Student"
    intervention_level: Literal["urgent", "high", "medium"]
    risk_level: Optional[RiskLevel] = None
    reasons: List[str] = Field(default_factory=list)
    recommended_actions: List[str] = Field(default_factory=list)
    last_analyzed: Optional[datetime] = None
    sessions_analyzed: int = 0
    high_priority_issues: int = 0
    critical_issues: int = 0
    improvement_trend: float = 0.0


class PerformanceAlert(CamelModel):
    type: Literal["critical", "warning", "info"]
    severity: Severity
    title: str
    description: str
    module_id: str
    module_title: str
    course_id: Optional[str] = None
    metric: str
    value: int
    affected_students: int
    total_students: int


class TeachingRecommendation(CamelModel):
    id: str
    type: str
    title: str
    description: str = ""
    actionable_advice: str = ""
    priority: int
    frequency: int
    affected_students_count: int
    affected_students: List[str] = Field(default_factory=list)
    confidence: float
    impact: Literal["high", "medium", "low"]


class ClassPerformanceInsight(CamelModel):
    type: str
    title: str
    insight: str
    metrics: Dict[str, Any] = Field(default_factory=dict)
    trend: Trend


# Engagement views


class StudentEngagementEntry(CamelModel):
    id: str
    name: str
    email: Optional[str] = None
    last_login: Optional[datetime] = None
    engagement_level: Literal["high", "medium", "low"] = "low"
    total_sessions: int = 0
    recent_sessions: int = 0
    completed_sessions: int = 0
    completion_rate: int = 0
    average_performance: int = 0
    module_completion_rate: int = 0
    preferred_technique: str = "None"
    last_activity: Optional[datetime] = None


class EngagementTrendBucket(CamelModel):
    date: str
    sessions: int = 0
    active_students: int = 0
    completed_sessions: int = 0


class HeatmapCell(CamelModel):
    day: str
    hour: int
    sessions: int
    intensity: float


class TechniquePreference(CamelModel):
    technique: str
    sessions: int
    users: int
    adoption_rate: int
    completion_rate: int


class ModuleProgressOverview(CamelModel):
    module_id: str
    module_title: str
    total_students: int
    completed_students: int
    completion_rate: int
    average_score: int
    status: Literal["excellent", "good", "needs_improvement", "critical"]


# Hierarchical report


class ScoreDistribution(CamelModel):
    excellent: int = 0
    good: int = 0
    satisfactory: int = 0
    needs_improvement: int = 0
    failing: int = 0


class ModuleReport(CamelModel):
    id: str
    title: str
    description: str = ""
    order_index: int = 0
    passing_threshold: Optional[float] = None
    available_techniques: List[str] = Field(default_factory=list)
    total_students: int = 0
    completed_students: int = 0
    completion_rate: int = 0
    average_score: int = 0
    need_remedial: int = 0
    total_sessions: int = 0
    sessions_by_type: Dict[str, int] = Field(default_factory=dict)
    score_distribution: ScoreDistribution = Field(default_factory=ScoreDistribution)
    difficulty: Literal["low", "medium", "high"] = "low"
    engagement: Literal["low", "medium", "high"] = "low"


class CourseReport(CamelModel):
    id: str
    title: str
    description: str = ""
    status: str = "active"
    created_at: Optional[datetime] = None
    total_modules: int = 0
    total_students: int = 0
    total_sessions: int = 0
    average_score: int = 0
    completion_rate: int = 0
    modules: Union[int, List[ModuleReport]] = 0


class ReportSummary(CamelModel):
    total_courses: int = 0
    active_courses: int = 0
    total_modules: int = 0
    total_students: int = 0
    total_sessions: int = 0
    completed_sessions: int = 0
    average_score_across_courses: int = 0
    average_completion_rate: int = 0
    sessions_by_type: Dict[str, int] = Field(default_factory=dict)


class ModuleProgressDetail(CamelModel):
    module_id: str
    module_title: str
    best_score: float = 0.0
    latest_score: float = 0.0
    status: str
    passed: bool
    attempt_count: int = 0
    needs_remedial: bool = False
    completed_at: Optional[datetime] = None
    last_attempt_at: Optional[datetime] = None


class CourseProgressReport(CamelModel):
    course_id: str
    course_title: str
    total_modules: int = 0
    completed_modules: int = 0
    average_score: int = 0
    need_remedial: int = 0
    module_details: List[ModuleProgressDetail] = Field(default_factory=list)


class StudentOverallProgress(CamelModel):
    total_modules: int = 0
    completed_modules: int = 0
    average_score: int = 0
    need_remedial: int = 0
    total_attempts: int = 0


class StudentProgressReport(CamelModel):
    student_id: str
    student_name: str
    student_email: Optional[str] = None
    last_login: Optional[datetime] = None
    enrolled_since: Optional[datetime] = None
    overall_progress: StudentOverallProgress = Field(default_factory=StudentOverallProgress)
    course_progress: List[CourseProgressReport] = Field(default_factory=list)


class DateRange(CamelModel):
    start_date: datetime
    end_date: datetime


# Top-level responses


class StudyTechniquesReport(CamelModel):
    time_range: str
    status: ReportStatus = "success"
    active_recall_analytics: Union[ActiveRecallAnalytics, Dict[str, Any]] = Field(default_factory=dict)
    pomodoro_analytics: Union[PomodoroAnalytics, Dict[str, Any]] = Field(default_factory=dict)
    feynman_analytics: Union[FeynmanAnalytics, Dict[str, Any]] = Field(default_factory=dict)
    retrieval_practice_analytics: Union[RetrievalPracticeAnalytics, Dict[str, Any]] = Field(default_factory=dict)
    technique_comparison: List[TechniqueComparisonEntry] = Field(default_factory=list)
    time_based_analysis: List[DailyActivityBucket] = Field(default_factory=list)
    effectiveness_metrics: Dict[str, EffectivenessMetric] = Field(default_factory=dict)
    degraded_sources: List[str] = Field(default_factory=list)


class InsightsReport(CamelModel):
    time_range: str
    status: InsightsStatus = "success"
    message: str = ""
    teaching_recommendations: List[TeachingRecommendation] = Field(default_factory=list)
    student_interventions: List[StudentIntervention] = Field(default_factory=list)
    performance_alerts: List[PerformanceAlert] = Field(default_factory=list)
    class_performance_insights: List[ClassPerformanceInsight] = Field(default_factory=list)
    student_risk_profiles: List[StudentRiskProfile] = Field(default_factory=list)
    courses_analyzed: int = 0
    students_analyzed: int = 0
    at_risk_students: int = 0
    generated_at: Optional[datetime] = None
    degraded_sources: List[str] = Field(default_factory=list)


class EngagementReport(CamelModel):
    time_range: str
    status: ReportStatus = "success"
    students_list: List[StudentEngagementEntry] = Field(default_factory=list)
    engagement_trends: List[EngagementTrendBucket] = Field(default_factory=list)
    study_heatmap: List[HeatmapCell] = Field(default_factory=list)
    technique_preferences: List[TechniquePreference] = Field(default_factory=list)
    progress_overview: List[ModuleProgressOverview] = Field(default_factory=list)
    degraded_sources: List[str] = Field(default_factory=list)


class ExportReport(CamelModel):
    export_type: ExportType
    status: ReportStatus = "success"
    instructor: str = ""
    instructor_id: str
    time_range: str
    date_range: DateRange
    include_charts: bool = False
    include_details: bool = False
    generated_at: datetime
    summary: ReportSummary = Field(default_factory=ReportSummary)
    courses: List[CourseReport] = Field(default_factory=list)
    students: List[StudentProgressReport] = Field(default_factory=list)
    total_students: int = 0
    degraded_sources: List[str] = Field(default_factory=list)


class InstructorDashboard(CamelModel):
    time_range: str
    status: InsightsStatus = "success"
    message: str = ""
    include_details: bool = False
    generated_at: datetime
    technique_analytics: Dict[str, SerializeAsAny[TechniqueAnalytics]] = Field(default_factory=dict)
    technique_comparison: List[TechniqueComparisonEntry] = Field(default_factory=list)
    time_based_analysis: List[DailyActivityBucket] = Field(default_factory=list)
    effectiveness_metrics: Dict[str, EffectivenessMetric] = Field(default_factory=dict)
    student_risk_profiles: List[StudentRiskProfile] = Field(default_factory=list)
    student_interventions: List[StudentIntervention] = Field(default_factory=list)
    performance_alerts: List[PerformanceAlert] = Field(default_factory=list)
    teaching_recommendations: List[TeachingRecommendation] = Field(default_factory=list)
    class_performance_insights: List[ClassPerformanceInsight] = Field(default_factory=list)
    summary: ReportSummary = Field(default_factory=ReportSummary)
    courses: List[CourseReport] = Field(default_factory=list)
    students: List[StudentProgressReport] = Field(default_factory=list)
    degraded_sources: List[str] = Field(default_factory=list)
