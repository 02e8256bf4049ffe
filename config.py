"""
Configuration settings for the ascension training scheduler.

Uses Pydantic Settings for environment variable management with .env file support.
Every engine accepts its own config object; those objects are built from these
settings through their ``from_settings`` classmethods.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="ASCENSION_",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Minimum level for the stderr sink",
    )
    log_file: str | None = Field(
        default=None,
        description="Optional path for a rotating log file",
    )

    # ========================================
    # Rating (ELO)
    # ========================================
    default_rating: int = Field(
        default=500,
        description="Rating assigned to a scope on first encounter",
    )
    default_deviation: int = Field(
        default=350,
        description="Initial rating deviation (uncertainty)",
    )
    fixed_k_factor: float | None = Field(
        default=None,
        description="Force a constant K-factor instead of the adaptive schedule",
    )

    # ========================================
    # Mastery
    # ========================================
    mastery_recent_window: int = Field(
        default=10,
        description="Size of the rolling window of recent outcomes per atom",
    )
    mastery_accuracy_threshold: float = Field(
        default=0.85,
        description="Recent accuracy needed for the accuracy gate",
    )
    mastery_min_recent_attempts: int = Field(
        default=5,
        description="Recent attempts needed before the accuracy gate can open",
    )
    mastery_volume_threshold: int = Field(
        default=10,
        description="Lifetime attempts needed for the volume gate",
    )
    mastery_streak_threshold: int = Field(
        default=5,
        description="Trailing correct run needed for the streak gate",
    )
    mastery_review_threshold: float = Field(
        default=0.70,
        description="Recent accuracy below which a mastered atom drops to reviewing",
    )

    # ========================================
    # Scheduler
    # ========================================
    daily_minutes: int = Field(
        default=60,
        description="Default daily training target in minutes",
    )
    min_block_minutes: int = Field(
        default=5,
        description="Smallest block the planner will emit",
    )
    max_block_minutes: int = Field(
        default=30,
        description="Largest block the planner will emit",
    )
    questions_per_minute: float = Field(
        default=0.5,
        description="Question throughput used to size blocks",
    )

    # ========================================
    # Anti-grind
    # ========================================
    max_same_atom_per_session: int = Field(
        default=5,
        description="Attempts on one atom allowed in a single session",
    )
    cooldown_minutes: int = Field(
        default=30,
        description="Cooldown after an atom hits its session cap",
    )
    diminishing_returns_threshold: int = Field(
        default=3,
        description="Practice count after which XP starts ramping down",
    )
    min_variety_per_block: int = Field(
        default=3,
        description="Distinct atoms required in a block",
    )

    # ========================================
    # Timing
    # ========================================
    drift_window_size: int = Field(
        default=5,
        description="Window size for timing drift detection",
    )
    strategic_guess_threshold: float = Field(
        default=0.7,
        description="Fraction of budget after which an abandonment counts as strategic",
    )
    early_abandon_threshold: float = Field(
        default=0.3,
        description="Fraction of budget below which an abandonment counts as early",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
