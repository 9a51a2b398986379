"""Application settings loaded from environment variables."""

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ScreeningTuning(BaseModel):
    """Tuning knobs for name matching and match classification.

    Boost weights and tier thresholds are compliance-relevant; changing them
    alters which subjects are blocked or escalated.
    """

    phonetic_boost: float = Field(default=0.10, ge=0.0, le=1.0)
    """Additive boost when any token pair agrees phonetically."""

    token_boost: float = Field(default=0.05, ge=0.0, le=1.0)
    """Additive boost when the exact token overlap ratio is strong."""

    strong_token_ratio: float = Field(default=0.70, ge=0.0, le=1.0)
    """Token overlap ratio at or above which the token boost applies."""

    high_threshold: float = Field(default=85.0, ge=0.0, le=100.0)
    """Lower bound (0-100) of the HIGH match tier."""

    medium_threshold: float = Field(default=70.0, ge=0.0, le=100.0)
    """Lower bound (0-100) of the MEDIUM match tier."""

    low_threshold: float = Field(default=50.0, ge=0.0, le=100.0)
    """Lower bound (0-100) of the LOW match tier."""


class OrchestrationTuning(BaseModel):
    """Runtime limits for screening requests and batches."""

    repository_timeout_seconds: float = Field(default=10.0, gt=0.0)
    """Timeout applied to every watchlist repository call."""

    max_concurrent_screenings: int = Field(default=8, ge=1)
    """Upper bound on subjects screened in parallel within a batch."""

    min_similarity_hint: float = Field(default=0.50, ge=0.0, le=1.0)
    """Pre-filter hint passed to the repository candidate lookup."""


class RescreeningTuning(BaseModel):
    """Retry and lease settings for the rescreening scheduler."""

    max_retries: int = Field(default=3, ge=0, le=10)
    """Failed attempts tolerated before a schedule needs manual attention."""

    retry_base_delay_seconds: int = Field(default=300, ge=1)
    """First retry delay; doubled on every consecutive failure."""

    retry_max_delay_seconds: int = Field(default=86400, ge=1)
    """Cap on the exponential retry delay."""

    execution_lease_seconds: int = Field(default=1800, ge=1)
    """How long a claimed schedule stays owned by its executor."""

    max_concurrent_executions: int = Field(default=8, ge=1)
    """Upper bound on subjects rescreened in parallel."""


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SCREENGUARD_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # Application Configuration
    environment: Literal["development", "test", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # Engine Configuration
    screening: ScreeningTuning = ScreeningTuning()
    orchestration: OrchestrationTuning = OrchestrationTuning()
    rescreening: RescreeningTuning = RescreeningTuning()


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
