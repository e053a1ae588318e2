"""Application configuration models."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="CineStream", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=9090, alias="PORT")

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    trending_default_limit: int = Field(
        default=10, alias="TRENDING_DEFAULT_LIMIT", ge=1, le=1_000
    )
    trending_stream_delay_ms: int = Field(
        default=100, alias="TRENDING_STREAM_DELAY_MS", ge=0, le=10_000
    )
    recommendation_limit: int = Field(
        default=5, alias="RECOMMENDATION_LIMIT", ge=1, le=100
    )

    seed_sample_data: bool = Field(default=True, alias="SEED_SAMPLE_DATA")

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalise_log_level(cls, value: object) -> str:
        """Accept level names in any case and reject unknown ones."""

        if value is None or value == "":
            return "INFO"
        level = str(value).strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level

    @property
    def trending_stream_delay_seconds(self) -> float:
        return self.trending_stream_delay_ms / 1_000

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", populate_by_name=True
    )


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
