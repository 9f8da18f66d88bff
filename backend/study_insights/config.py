import os
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: Optional[str] = Field(None, alias="INSIGHTS_DATABASE_URL")
    database_pool_size: int = Field(10, alias="INSIGHTS_DATABASE_POOL_SIZE")
    database_max_overflow: int = Field(10, alias="INSIGHTS_DATABASE_MAX_OVERFLOW")
    database_echo: bool = Field(False, alias="INSIGHTS_DATABASE_ECHO")
    default_time_range: Literal["week", "month", "quarter"] = Field("month", alias="INSIGHTS_DEFAULT_TIME_RANGE")
    recommendation_limit: int = Field(10, ge=1, alias="INSIGHTS_RECOMMENDATION_LIMIT")
    intervention_limit: int = Field(8, ge=1, alias="INSIGHTS_INTERVENTION_LIMIT")
    alert_limit: int = Field(10, ge=1, alias="INSIGHTS_ALERT_LIMIT")
    fetch_workers: int = Field(8, ge=1, alias="INSIGHTS_FETCH_WORKERS")
    fetch_timeout_seconds: float = Field(15.0, gt=0, alias="INSIGHTS_FETCH_TIMEOUT_SECONDS")
    debug_endpoints: bool = Field(False, alias="INSIGHTS_DEBUG_ENDPOINTS")

    class Config:
        env_file = os.getenv("ENV_FILE", ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache
def get_settings() -> Settings:
    try:
        return Settings()  # type: ignore[arg-type]
    except ValidationError as exc:
        raise RuntimeError(f"Invalid backend configuration: {exc}") from exc
