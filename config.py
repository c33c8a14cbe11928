"""
Configuration settings for the adaptive puzzle engine.

Uses Pydantic Settings for environment variable management with .env file support.
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
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Storage
    # ========================================
    database_url: str = Field(
        default="sqlite:///puzzle_engine.db",
        description="SQLAlchemy URL for the profile store",
    )

    # ========================================
    # New / Struggling User Protection
    # ========================================
    new_user_puzzle_threshold: int = Field(
        default=10,
        description="Users with fewer solved puzzles are classified as new",
    )
    new_user_max_difficulty: float = Field(
        default=0.4,
        description="Difficulty ceiling while a user is classified as new",
    )
    struggling_user_max_difficulty: float = Field(
        default=0.3,
        description="Difficulty ceiling for struggling / falling-back users",
    )
    global_max_difficulty: float | None = Field(
        default=None,
        description="Optional hard cap applied to every recommendation",
    )
    gradual_progression: bool = Field(
        default=False,
        description="Cap difficulty on a ramp from 0.25 to 0.65 over the first 50 puzzles",
    )

    # ========================================
    # Candidate Pool & Selection
    # ========================================
    pool_size: int = Field(
        default=10,
        description="Number of candidates generated per recommendation",
    )
    engagement_priority: float = Field(
        default=0.3,
        description="Selector weight for predicted engagement",
    )
    ceiling_relax_step: float = Field(
        default=0.1,
        description="Ceiling increase applied when every candidate is filtered out",
    )
    variety_window: int = Field(
        default=5,
        description="Number of recent selections considered for the variety bonus",
    )
    strict_invariants: bool = Field(
        default=False,
        description="Raise on pool invariant violations instead of auto-correcting",
    )

    # ========================================
    # Behavioral Tracking & Prediction
    # ========================================
    behavior_buffer_size: int = Field(
        default=50,
        description="Rolling buffer bound for behavioral snapshots",
    )
    dna_cache_size: int = Field(
        default=100,
        description="Maximum cached PuzzleDNA entries",
    )
    neutral_prediction: float = Field(
        default=0.5,
        description="Prediction returned when data is too sparse",
    )
    min_prediction_observations: int = Field(
        default=3,
        description="Observations required before prediction models trust history",
    )

    # ========================================
    # Strength Detection (pre-viral optimisation)
    # ========================================
    viral_level_threshold: int = Field(
        default=15,
        description="Progression level below which pre-viral pool adjustments apply",
    )
    strength_accuracy_threshold: float = Field(
        default=0.75,
        description="Family accuracy at or above which the family counts as a strength",
    )
    weakness_accuracy_threshold: float = Field(
        default=0.4,
        description="Type accuracy below which the type counts as weak",
    )
    weakness_share_threshold: float = Field(
        default=0.5,
        description="Share of attempted types in a family that must be weak",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )
    detailed_metrics: bool = Field(
        default=False,
        description="Log per-candidate scores and per-answer profile metrics",
    )
    silent_mode: bool = Field(
        default=False,
        description="Suppress per-request info logging",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
