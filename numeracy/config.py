"""
Configuration settings for the numeracy engine.

Two layers:

- EngineConfig: the immutable set of thresholds every component is
  constructed with. Injected, never read from globals, so tests can move
  any threshold across its boundary.
- Settings: process settings loaded with Pydantic Settings from
  NUMERACY_* environment variables and an optional .env file. The nested
  engine thresholds are overridable as NUMERACY_ENGINE__<NAME>.

The time thresholds (3s / 4s / 8s) and the 5-in-a-row support drop are
empirically chosen values; treat them as tunable, not as fixed law.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineConfig(BaseModel):
    """Thresholds for analysis, classification, progression and support."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # ========================================
    # Strategy & pattern analysis
    # ========================================
    window_size: int = Field(default=100, gt=0, description="Outcomes analysed per diagnostic run")
    automatization_ms: int = Field(default=3000, gt=0, description="Correct answers faster than this count as automatized")
    structured_ms: int = Field(default=4000, gt=0, description="Benchmark tasks faster than this count as structurally perceived")
    decomposition_ms: int = Field(default=8000, gt=0, description="Ten-crossing additions slower than this count as failed")
    benchmark_operands: tuple[int, ...] = (5, 10)
    benchmark_results: tuple[int, ...] = (10, 20)
    off_by_one_share: float = Field(default=0.3, ge=0, le=1)
    ten_crossing_min_errors: int = Field(default=3, ge=0, description="Pattern fires above this many errors")
    part_whole_failure_rate: float = Field(default=0.4, ge=0, le=1)

    # ========================================
    # Risk classification
    # ========================================
    counting_rate_threshold: float = Field(default=0.8, ge=0, le=1)
    counting_session_min: int = Field(default=10, ge=0)
    structured_rate_threshold: float = Field(default=0.3, ge=0, le=1)
    structured_session_min: int = Field(default=8, ge=0)
    automatization_rate_threshold: float = Field(default=0.3, ge=0, le=1)
    automatization_task_min: int = Field(default=50, ge=0)
    prerequisite_threshold: float = Field(default=0.4, ge=0, le=1)
    systematic_pattern_min: int = Field(default=2, ge=0, description="Indicator fires above this many patterns")
    confidence_sessions: int = Field(default=20, gt=0, description="Sessions needed for full confidence")

    # ========================================
    # Progression
    # ========================================
    mastery_threshold: float = Field(default=0.8, gt=0, le=1)
    mastery_sample_min: int = Field(default=10, gt=0)
    mastery_window: int = Field(default=10, gt=0)
    max_level: int = Field(default=100, ge=1)
    auto_regression_enabled: bool = False
    regression_threshold: float = Field(default=0.3, ge=0, le=1)
    regression_window: int = Field(default=20, gt=0)

    # ========================================
    # Support level
    # ========================================
    streak_for_support_drop: int = Field(default=5, gt=0)

    @model_validator(mode="after")
    def _check_hysteresis(self) -> EngineConfig:
        """Regression must need a clearly worse record than advancing does."""
        if self.regression_threshold >= self.mastery_threshold:
            raise ValueError("regression_threshold must be lower than mastery_threshold")
        if self.regression_window < self.mastery_window:
            raise ValueError("regression_window must be >= mastery_window")
        return self

    @property
    def result_history_size(self) -> int:
        """How many per-level results a progress record has to remember."""
        return max(self.mastery_window, self.regression_window)


DEFAULT_ENGINE_CONFIG = EngineConfig()


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="NUMERACY_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    database_url: str = Field(
        default="sqlite:///numeracy.db",
        description="SQLAlchemy URL of the learner store",
    )
    log_level: str = Field(default="INFO", description="loguru level for CLI runs")
    interventions_file: Path | None = Field(
        default=None,
        description="JSON file replacing the built-in intervention table",
    )
    engine: EngineConfig = Field(default_factory=EngineConfig)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
