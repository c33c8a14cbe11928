"""
Engine configuration.

EngineConfig is the validated, immutable view of the engine-relevant
settings. It is built from config.Settings at engine construction and
replaced wholesale by `AdaptivePuzzleEngine.reconfigure()`.
"""
from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from config import Settings, get_settings


class EngineConfig(BaseModel):
    """Validated engine options."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Safety
    new_user_puzzle_threshold: int = Field(default=10, ge=0)
    new_user_max_difficulty: float = Field(default=0.4, ge=0.0, le=1.0)
    struggling_user_max_difficulty: float = Field(default=0.3, ge=0.0, le=1.0)
    global_max_difficulty: float | None = Field(default=None, ge=0.0, le=1.0)
    gradual_progression: bool = False

    # Pool & selection
    pool_size: int = Field(default=10, ge=1)
    engagement_priority: float = Field(default=0.3, ge=0.0, le=1.0)
    ceiling_relax_step: float = Field(default=0.1, ge=0.0, le=1.0)
    variety_window: int = Field(default=5, ge=0)
    strict_invariants: bool = False

    # Tracking & prediction
    behavior_buffer_size: int = Field(default=50, ge=1)
    dna_cache_size: int = Field(default=100, ge=1)
    neutral_prediction: float = Field(default=0.5, ge=0.0, le=1.0)
    min_prediction_observations: int = Field(default=3, ge=0)

    # Strength detection
    viral_level_threshold: int = Field(default=15, ge=0)
    strength_accuracy_threshold: float = Field(default=0.75, ge=0.0, le=1.0)
    weakness_accuracy_threshold: float = Field(default=0.4, ge=0.0, le=1.0)
    weakness_share_threshold: float = Field(default=0.5, ge=0.0, le=1.0)

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    detailed_metrics: bool = False
    silent_mode: bool = False

    @model_validator(mode="after")
    def _check_thresholds(self) -> EngineConfig:
        if self.weakness_accuracy_threshold > self.strength_accuracy_threshold:
            raise ValueError("weakness_accuracy_threshold must not exceed strength_accuracy_threshold")
        return self

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> EngineConfig:
        """Build the engine view of application settings."""
        settings = settings or get_settings()
        return cls(**{name: getattr(settings, name) for name in cls.model_fields})

    def with_overrides(self, **overrides) -> EngineConfig:
        """Validated copy with some fields replaced."""
        unknown = set(overrides) - set(type(self).model_fields)
        if unknown:
            raise ValueError(f"Unknown engine options: {sorted(unknown)}")
        # model_copy skips validation, so re-validate the merged values
        return type(self).model_validate(self.model_copy(update=overrides).model_dump())

    def difficulty_cap(self, value: float) -> float:
        """Apply the optional global maximum difficulty."""
        if self.global_max_difficulty is None:
            return value
        return min(value, self.global_max_difficulty)
