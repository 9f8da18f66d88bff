"""Instructor analytics REST endpoints."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional, TypeVar

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .aggregation import InstructorAnalyticsService, get_analytics_service
from .analytics_models import CamelModel, ExportType
from .config import get_settings
from .errors import DataUnavailable, Unauthorized

router = APIRouter(prefix="/api/instructor/analytics", tags=["instructor-analytics"])
logger = logging.getLogger(__name__)

T = TypeVar("T", bound=CamelModel)


class ExportReportRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    export_type: ExportType = "overview"
    time_range: Optional[str] = Field(default=None, max_length=16)
    include_charts: bool = False
    include_details: bool = False


def require_instructor_id(x_user_id: Optional[str] = Header(default=None, alias="X-User-ID")) -> str:
    instructor_id = (x_user_id or "").strip()
    if not instructor_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return instructor_id


def _respond(operation: str, produce: Callable[[], T]) -> Dict[str, Any]:
    try:
        return produce().to_payload()
    except Unauthorized as exc:
        logger.info("Rejected %s for %s: %s", operation, exc.instructor_id, exc.reason)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Instructor role required.",
        ) from exc
    except DataUnavailable as exc:
        logger.error("%s failed: %s", operation, exc)
        detail = f"Analytics data source '{exc.source}' is unavailable."
        if get_settings().debug_endpoints and exc.detail:
            detail = f"{detail} {exc.detail}"
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail) from exc


@router.get("/study-techniques")
def study_techniques(
    time_range: Optional[str] = Query(default=None, alias="timeRange"),
    instructor_id: str = Depends(require_instructor_id),
    service: InstructorAnalyticsService = Depends(get_analytics_service),
) -> Dict[str, Any]:
    return _respond("study_techniques", lambda: service.study_techniques(instructor_id, time_range))


@router.get("/insights")
def insights(
    time_range: Optional[str] = Query(default=None, alias="timeRange"),
    instructor_id: str = Depends(require_instructor_id),
    service: InstructorAnalyticsService = Depends(get_analytics_service),
) -> Dict[str, Any]:
    return _respond("insights", lambda: service.insights(instructor_id, time_range))


@router.get("/engagement")
def engagement(
    time_range: Optional[str] = Query(default=None, alias="timeRange"),
    instructor_id: str = Depends(require_instructor_id),
    service: InstructorAnalyticsService = Depends(get_analytics_service),
) -> Dict[str, Any]:
    return _respond("engagement", lambda: service.engagement(instructor_id, time_range))


@router.get("/dashboard")
def dashboard(
    time_range: Optional[str] = Query(default=None, alias="timeRange"),
    include_details: bool = Query(default=False, alias="includeDetails"),
    instructor_id: str = Depends(require_instructor_id),
    service: InstructorAnalyticsService = Depends(get_analytics_service),
) -> Dict[str, Any]:
    return _respond(
        "dashboard",
        lambda: service.dashboard(instructor_id, time_range, include_details=include_details),
    )


@router.post("/export-report")
def export_report(
    payload: ExportReportRequest,
    instructor_id: str = Depends(require_instructor_id),
    service: InstructorAnalyticsService = Depends(get_analytics_service),
) -> Dict[str, Any]:
    return _respond(
        "export_report",
        lambda: service.export_report(
            instructor_id,
            payload.export_type,
            payload.time_range,
            include_details=payload.include_details,
            include_charts=payload.include_charts,
        ),
    )


__all__ = ["ExportReportRequest", "require_instructor_id", "router"]
