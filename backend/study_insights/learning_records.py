"""Read-only learning records consumed by the aggregation engine."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, Field, ValidationInfo, field_validator, model_validator

Technique = Literal["active_recall", "pomodoro", "feynman", "retrieval_practice"]

TECHNIQUES: Tuple[Technique, ...] = ("active_recall", "pomodoro", "feynman", "retrieval_practice")

TECHNIQUE_LABELS: Dict[str, str] = {
    "active_recall": "Active Recall",
    "pomodoro": "Pomodoro",
    "feynman": "Feynman",
    "retrieval_practice": "Retrieval Practice",
}

DEFAULT_RECOMMENDATION_PRIORITY = 3
DEFAULT_RECOMMENDATION_CONFIDENCE = 0.7


def as_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC so stored and reference instants compare."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def sort_timestamp(value: Optional[datetime]) -> float:
    if value is None:
        return float("-inf")
    return as_utc(value).timestamp()


class Instructor(BaseModel):
    id: str
    name: str = ""
    role: str = "instructor"


class Course(BaseModel):
    id: str
    title: str
    description: str = ""
    status: str = "active"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CourseModule(BaseModel):
    id: str
    course_id: str
    title: str = "Unknown Module"
    description: str = ""
    order_index: int = 0
    passing_threshold: Optional[float] = None
    available_techniques: List[str] = Field(default_factory=list)


class Student(BaseModel):
    id: str
    name: str = "Unknown Student"
    email: Optional[str] = None
    course_ids: List[str] = Field(default_factory=list)
    last_login: Optional[datetime] = None
    enrolled_at: Optional[datetime] = None


# Technique sub-records


class RecallAttempt(BaseModel):
    is_correct: bool = False
    response_time_seconds: Optional[float] = None


class PomodoroCycle(BaseModel):
    cycle_type: Optional[str] = "work"
    duration_minutes: Optional[int] = None
    focus_score: Optional[float] = None
    completed_at: Optional[datetime] = None


class FeynmanExplanation(BaseModel):
    overall_score: Optional[float] = None
    word_count: Optional[int] = None


class RetrievalAttempt(BaseModel):
    is_correct: bool = False
    confidence_level: Optional[float] = None
    response_time_seconds: Optional[float] = None
    difficulty: Optional[str] = None


# Raw rows as fetched, one homogeneous collection per technique


class StudySessionRow(BaseModel):
    id: str
    student_id: str
    module_id: Optional[str] = None
    status: str = ""
    created_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class ActiveRecallSessionRow(StudySessionRow):
    attempts: List[RecallAttempt] = Field(default_factory=list)


class PomodoroSessionRow(StudySessionRow):
    cycles: List[PomodoroCycle] = Field(default_factory=list)


class FeynmanSessionRow(StudySessionRow):
    explanations: List[FeynmanExplanation] = Field(default_factory=list)


class RetrievalPracticeSessionRow(StudySessionRow):
    attempts: List[RetrievalAttempt] = Field(default_factory=list)


# Normalized session: one sum type tagged by technique


class ActiveRecallPayload(BaseModel):
    technique: Literal["active_recall"] = "active_recall"
    attempts: List[RecallAttempt] = Field(default_factory=list)


class PomodoroPayload(BaseModel):
    technique: Literal["pomodoro"] = "pomodoro"
    cycles: List[PomodoroCycle] = Field(default_factory=list)


class FeynmanPayload(BaseModel):
    technique: Literal["feynman"] = "feynman"
    explanations: List[FeynmanExplanation] = Field(default_factory=list)


class RetrievalPracticePayload(BaseModel):
    technique: Literal["retrieval_practice"] = "retrieval_practice"
    attempts: List[RetrievalAttempt] = Field(default_factory=list)


SessionPayload = Annotated[
    Union[ActiveRecallPayload, PomodoroPayload, FeynmanPayload, RetrievalPracticePayload],
    Field(discriminator="technique"),
]


class Session(BaseModel):
    id: str
    student_id: str
    module_id: Optional[str] = None
    technique: Technique
    status: str = ""
    created_at: datetime
    completed_at: Optional[datetime] = None
    payload: SessionPayload

    @model_validator(mode="after")
    def _payload_matches_technique(self) -> "Session":
        if self.payload.technique != self.technique:
            raise ValueError(
                f"Session {self.id} is tagged '{self.technique}' but carries a '{self.payload.technique}' payload."
            )
        return self

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"


class ModuleProgress(BaseModel):
    student_id: str
    module_id: str
    course_id: Optional[str] = None
    module_title: str = "Unknown Module"
    best_score: Optional[float] = None
    latest_score: Optional[float] = None
    status: str = "not_started"
    passed: bool = False
    attempt_count: int = 0
    needs_remedial: bool = False
    completed_at: Optional[datetime] = None
    last_attempt_at: Optional[datetime] = None

    @property
    def score(self) -> float:
        """Best score, falling back to the latest score, else 0."""
        if self.best_score:
            return float(self.best_score)
        if self.latest_score:
            return float(self.latest_score)
        return 0.0

    @property
    def is_completed(self) -> bool:
        return self.status == "completed" or self.passed


_RECOMMENDATION_KEY_ALIASES = {
    "actionableAdvice": "actionable_advice",
    "confidenceScore": "confidence_score",
    "confidence": "confidence_score",
    "recommendation_type": "type",
}


class Recommendation(BaseModel):
    """Upstream recommendation with explicit defaults for absent fields."""

    type: str = "general"
    title: str = ""
    description: str = ""
    actionable_advice: str = ""
    priority: int = DEFAULT_RECOMMENDATION_PRIORITY
    confidence_score: float = DEFAULT_RECOMMENDATION_CONFIDENCE

    @model_validator(mode="before")
    @classmethod
    def _normalise_keys(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        normalised: Dict[str, Any] = {}
        for key, value in values.items():
            target = _RECOMMENDATION_KEY_ALIASES.get(key, key)
            if value is None or target in normalised:
                continue
            normalised[target] = value
        return normalised

    @field_validator("type", "title", "description", "actionable_advice", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any, info: ValidationInfo) -> str:
        if isinstance(value, str):
            return value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return cls.model_fields[info.field_name].default

    @field_validator("priority", mode="before")
    @classmethod
    def _coerce_priority(cls, value: Any) -> int:
        try:
            return max(1, int(value))
        except (TypeError, ValueError):
            return DEFAULT_RECOMMENDATION_PRIORITY

    @field_validator("confidence_score", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: Any) -> float:
        try:
            confidence = float(value)
        except (TypeError, ValueError):
            return DEFAULT_RECOMMENDATION_CONFIDENCE
        return min(max(confidence, 0.0), 1.0)


class AnalyticsRecord(BaseModel):
    """Per-session analysis produced upstream; consumed as-is."""

    student_id: str
    session_id: Optional[str] = None
    technique: Optional[str] = None
    performance_metrics: Dict[str, Any] = Field(default_factory=dict)
    learning_patterns: Dict[str, Any] = Field(default_factory=dict)
    recommendations: List[Recommendation] = Field(default_factory=list)
    analyzed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @model_validator(mode="before")
    @classmethod
    def _coerce_upstream_shape(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        data = dict(values)
        if "technique" not in data and "session_type" in data:
            data["technique"] = data.pop("session_type")
        for key in ("performance_metrics", "learning_patterns"):
            if not isinstance(data.get(key), dict):
                data[key] = {}
        recommendations = data.get("recommendations")
        if not isinstance(recommendations, list):
            recommendations = []
        data["recommendations"] = [item for item in recommendations if isinstance(item, (dict, Recommendation))]
        return data

    def metric(self, *keys: str) -> float:
        """First truthy numeric performance metric among ``keys``, else 0."""
        for key in keys:
            value = self.performance_metrics.get(key)
            if isinstance(value, bool):
                continue
            if isinstance(value, (int, float)) and value:
                return float(value)
            if isinstance(value, str):
                try:
                    parsed = float(value)
                except ValueError:
                    continue
                if parsed:
                    return parsed
        return 0.0

    @property
    def observed_at(self) -> Optional[datetime]:
        return self.analyzed_at or self.created_at


__all__ = [
    "ActiveRecallPayload",
    "ActiveRecallSessionRow",
    "AnalyticsRecord",
    "Course",
    "CourseModule",
    "DEFAULT_RECOMMENDATION_CONFIDENCE",
    "DEFAULT_RECOMMENDATION_PRIORITY",
    "FeynmanExplanation",
    "FeynmanPayload",
    "FeynmanSessionRow",
    "Instructor",
    "ModuleProgress",
    "PomodoroCycle",
    "PomodoroPayload",
    "PomodoroSessionRow",
    "RecallAttempt",
    "Recommendation",
    "RetrievalAttempt",
    "RetrievalPracticePayload",
    "RetrievalPracticeSessionRow",
    "Session",
    "SessionPayload",
    "Student",
    "StudySessionRow",
    "TECHNIQUES",
    "TECHNIQUE_LABELS",
    "Technique",
    "as_utc",
    "sort_timestamp",
]
