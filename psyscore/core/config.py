"""Configuration management for the psyscore scoring engine.

This module handles configuration loading and validation using Pydantic
Settings for type safety and environment variable support.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from psyscore.utils.constants import ScoringConstants, ValidationConstants
from psyscore.utils.logger import LoggerConfig, setup_logging


class Settings(BaseSettings):
    """Engine settings with validation and type hints."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Application Settings
    APP_NAME: str = Field(default="psyscore", description="Application name")
    APP_ENV: str = Field(
        default="development",
        description="Application environment",
        pattern="^(development|test|staging|production)$",
    )

    # Logging Configuration
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Log level",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
    )
    LOG_FORMAT: str = Field(
        default="text", description="Log format", pattern="^(json|text)$"
    )
    LOG_DIR: Optional[str] = Field(
        default=None, description="Directory for rotating log files"
    )

    # Pattern Resolution
    MAX_TOP_N: int = Field(
        default=ScoringConstants.MAX_TOP_N,
        description="Upper bound for custom top-N patterns",
        ge=1,
    )
    MAX_SCORE_RANGES: int = Field(
        default=ScoringConstants.MAX_SCORE_RANGES,
        description="Maximum number of bands in a range based pattern",
        ge=1,
    )

    # Result Matching
    RANGE_MATCH_AVERAGE_FALLBACK: bool = Field(
        default=True,
        description="Retry range matching with the per-answer average score",
    )

    # Component Combination
    DEFAULT_MAX_COMPONENTS: int = Field(
        default=ScoringConstants.DEFAULT_MAX_COMPONENTS,
        description="Components selected when the caller does not say",
        ge=1,
    )
    COMPONENT_POSITION_DECAY: float = Field(
        default=ScoringConstants.POSITION_DECAY_STEP,
        description="Weight lost per position in the reported combination total",
        ge=0.0,
        le=1.0,
    )
    COMPONENT_WEIGHT_MIN: float = Field(
        default=ValidationConstants.COMPONENT_WEIGHT_MIN,
        description="Smallest component weight accepted at save time",
        gt=0.0,
    )
    COMPONENT_WEIGHT_MAX: float = Field(
        default=ValidationConstants.COMPONENT_WEIGHT_MAX,
        description="Largest component weight accepted at save time",
        gt=0.0,
    )

    @field_validator("APP_ENV")
    def validate_app_env(cls, v: str) -> str:
        """Validate application environment."""
        valid_envs = ["development", "test", "staging", "production"]
        if v not in valid_envs:
            raise ValueError(f"APP_ENV must be one of {valid_envs}")
        return v

    @model_validator(mode="after")
    def validate_settings(self) -> "Settings":
        """Validate settings after all fields are set."""
        if self.COMPONENT_WEIGHT_MIN > self.COMPONENT_WEIGHT_MAX:
            raise ValueError("COMPONENT_WEIGHT_MIN must not exceed COMPONENT_WEIGHT_MAX")

        # Production never emits debug output
        if self.APP_ENV == "production":
            self.LOG_LEVEL = "INFO" if self.LOG_LEVEL == "DEBUG" else self.LOG_LEVEL

        return self

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.APP_ENV == "production"

    def is_test(self) -> bool:
        """Check if running in test environment."""
        return self.APP_ENV == "test"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance.

    Loading settings has no side effects; see ``configure_logging``.

    Returns:
        Settings: Engine settings instance
    """
    return Settings()


def configure_logging(settings: Optional[Settings] = None) -> LoggerConfig:
    """Set up the engine's own log output from settings.

    Called explicitly by hosts that want it. Only the ``psyscore`` logger
    tree is configured.

    Args:
        settings: Settings to use (defaults to ``get_settings()``)

    Returns:
        LoggerConfig: Active logging configuration
    """
    settings = settings or get_settings()
    return setup_logging(
        environment=settings.APP_ENV,
        log_level=settings.LOG_LEVEL,
        log_format=settings.LOG_FORMAT,
        log_dir=settings.LOG_DIR,
    )
