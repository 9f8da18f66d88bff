"""Error taxonomy shared by the aggregation engine and its collaborators."""

from __future__ import annotations

from typing import Optional


class InsightsError(Exception):
    """Base class for analytics aggregation failures."""


class Unauthorized(InsightsError):
    """Caller is not a known instructor."""

    def __init__(self, instructor_id: str, reason: str = "Instructor role required.") -> None:
        super().__init__(f"Access denied for '{instructor_id}': {reason}")
        self.instructor_id = instructor_id
        self.reason = reason


class DataUnavailable(InsightsError):
    """A data source could not be read."""

    def __init__(self, source: str, detail: Optional[str] = None) -> None:
        message = f"Data source '{source}' is unavailable"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.source = source
        self.detail = detail


class EmptyInput(InsightsError):
    """Marker for a well-defined empty result (no courses or no students).

    Never raised to callers; the status codes below are reported on the
    empty payloads instead.
    """

    NO_COURSES = "no_courses"
    NO_STUDENTS = "no_students"


class ComputationDegraded(InsightsError):
    """An optional source failed and was treated as empty."""

    def __init__(self, source: str, cause: BaseException) -> None:
        super().__init__(f"Optional source '{source}' degraded: {cause!r}")
        self.source = source
        self.cause = cause


__all__ = [
    "ComputationDegraded",
    "DataUnavailable",
    "EmptyInput",
    "InsightsError",
    "Unauthorized",
]
