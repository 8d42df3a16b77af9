from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

VERSION = "0.1.0"


def _split_csv(value: Any) -> Any:
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


class Settings(BaseSettings):
    """Exporter configuration loaded from EPI_* environment variables."""

    PROJECT_NAME: str = "epimetheus"

    # Exposition endpoint
    IP: str = "0.0.0.0"
    PORT: int = Field(default=8080, ge=1, le=65535)
    METRICS_PATH: str = "/metrics"
    API_PREFIX: str = "/api/v1"

    # Sources and refresh
    FILES: Annotated[list[str], NoDecode] = Field(default_factory=list)
    IGNORE_KEYS: Annotated[list[str], NoDecode] = Field(default_factory=list)
    INTERVAL: float = Field(default=60, gt=0)
    FETCH_TIMEOUT: float = Field(default=30, gt=0)
    VERIFY_SSL: bool = True

    # Metric naming
    METRIC_PREFIX: str = ""
    COLLISION_POLICY: Literal["overwrite", "keep"] = "overwrite"
    PARSE_NUMERIC_STRINGS: bool = False

    # Logging
    LOG_FORMAT: str = "json"
    LOG_LEVEL: str = "info"
    REQUEST_LOGS_ENABLED: bool = False

    model_config = SettingsConfigDict(
        env_prefix="EPI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("FILES", "IGNORE_KEYS", mode="before")
    @classmethod
    def _comma_separated(cls, value: Any) -> Any:
        return _split_csv(value)

    @field_validator("LOG_FORMAT", "LOG_LEVEL")
    @classmethod
    def _lowercase(cls, value: str) -> str:
        return value.strip().lower()


@lru_cache()
def get_settings() -> Settings:  # pragma: no cover
    """Return cached settings object to avoid re-parsing env vars."""
    return Settings()
