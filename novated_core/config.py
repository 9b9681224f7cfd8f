"""
Novated Core - Settings

Environment driven settings for the API process. The calculation engine
only needs to know where the reference tables live; the rest shapes the
HTTP surface (CORS, API docs, log output, error tracking).
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# Browser dev servers allowed outside production
LOCAL_ORIGINS = (
    "http://localhost:3000",
    "http://localhost:5173",
    "http://localhost:8000",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
)


class Settings(BaseSettings):
    """
    Process settings, read from the environment and an optional .env file.
    Uses pydantic-settings for validation and type coercion.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ==================== RUNTIME ====================
    ENVIRONMENT: str = Field(
        default="development",
        description="development, staging or production"
    )
    DEBUG: bool = Field(
        default=False,
        description="Serve API docs and log every request (always on in development)"
    )

    # ==================== REFERENCE DATA ====================
    REFERENCE_DATA_DIR: Optional[Path] = Field(
        default=None,
        description="Directory laid out like novated_core/data/au; packaged tables when unset"
    )

    # ==================== HTTP ====================
    CORS_ORIGINS: str = Field(
        default="",
        description="Comma-separated browser origins allowed to call the API"
    )
    API_TITLE: str = "Novated Lease Core API"
    API_VERSION: str = "1.0.0"

    # ==================== ERROR TRACKING ====================
    SENTRY_DSN: Optional[str] = Field(
        default=None,
        description="Sentry project DSN; error tracking is off when unset"
    )
    SENTRY_TRACES_SAMPLE_RATE: Optional[float] = Field(
        default=None,
        ge=0,
        le=1,
        description="Tracing sample rate; defaults to 0.1 in production, 0 elsewhere"
    )

    # ==================== LOGGING ====================
    LOG_LEVEL: str = Field(default="INFO", description="DEBUG, INFO, WARNING or ERROR")
    LOG_JSON: Optional[bool] = Field(
        default=None,
        description="One JSON object per log line; defaults to on in production"
    )

    @field_validator("ENVIRONMENT")
    @classmethod
    def _lowercase_environment(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("LOG_LEVEL")
    @classmethod
    def _uppercase_level(cls, value: str) -> str:
        return value.strip().upper()

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

    @property
    def debug_enabled(self) -> bool:
        return self.DEBUG or self.is_development

    @property
    def json_logs_enabled(self) -> bool:
        return self.is_production if self.LOG_JSON is None else self.LOG_JSON

    @property
    def sentry_traces_sample_rate(self) -> float:
        if self.SENTRY_TRACES_SAMPLE_RATE is not None:
            return self.SENTRY_TRACES_SAMPLE_RATE
        return 0.1 if self.is_production else 0.0

    @property
    def cors_origins_list(self) -> List[str]:
        """Configured origins, plus the local dev servers outside production."""
        origins = {
            origin.strip() for origin in self.CORS_ORIGINS.split(",")
            if origin.strip() and origin.strip() != "*"
        }
        if not self.is_production:
            origins.update(LOCAL_ORIGINS)
        return sorted(origins)

    def configuration_problems(self) -> List[str]:
        """Settings the process should not run with."""
        problems = []

        if self.REFERENCE_DATA_DIR is not None and not self.REFERENCE_DATA_DIR.is_dir():
            problems.append(f"REFERENCE_DATA_DIR is not a directory: {self.REFERENCE_DATA_DIR}")

        if self.is_production:
            if self.CORS_ORIGINS.strip() == "*":
                problems.append("CORS_ORIGINS cannot be '*' in production")
            if self.DEBUG:
                problems.append("DEBUG must be off in production")

        return problems


@lru_cache()
def get_settings() -> Settings:
    """
    Settings for this process, read once.

    Raises:
        ValueError: production settings have problems
    """
    settings = Settings()
    logger.info(f"Settings loaded for {settings.ENVIRONMENT} (debug={settings.debug_enabled})")

    problems = settings.configuration_problems()
    if problems and settings.is_production:
        for problem in problems:
            logger.error(f"Configuration error: {problem}")
        raise ValueError(f"Production configuration invalid: {'; '.join(problems)}")

    return settings


def cors_middleware_options(settings: Optional[Settings] = None) -> dict:
    """Keyword arguments for CORSMiddleware. The API only reads and calculates."""
    settings = settings or get_settings()
    return {
        "allow_origins": settings.cors_origins_list,
        "allow_credentials": False,
        "allow_methods": ["GET", "POST", "OPTIONS"],
        "allow_headers": ["Content-Type", "Accept", "X-Request-ID"],
        "expose_headers": ["X-Request-ID", "X-Process-Time"],
        "max_age": 600,
    }


def environment_report(settings: Optional[Settings] = None) -> dict:
    """Non-secret summary of the configuration, for startup logs and /config/status."""
    settings = settings or get_settings()
    problems = settings.configuration_problems()

    warnings = []
    if settings.REFERENCE_DATA_DIR is None:
        warnings.append("REFERENCE_DATA_DIR not set, using packaged reference tables")
    if not settings.CORS_ORIGINS.strip():
        warnings.append("CORS_ORIGINS not set, only local dev origins allowed")

    return {
        "valid": not problems,
        "environment": settings.ENVIRONMENT,
        "errors": problems,
        "warnings": warnings,
        "variables": {
            "REFERENCE_DATA_DIR": "set" if settings.REFERENCE_DATA_DIR is not None else "not set",
            "CORS_ORIGINS": "set" if settings.CORS_ORIGINS.strip() else "not set",
            "SENTRY_DSN": "set" if settings.SENTRY_DSN else "not set",
            "LOG_LEVEL": settings.LOG_LEVEL,
        },
    }
