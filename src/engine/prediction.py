"""
Prediction Models.

Two lightweight per-candidate models:

- SuccessPredictor: probability the learner solves the puzzle
- EngagementPredictor: probability the puzzle keeps the learner playing

Both fall back to a neutral prediction when the learner has too little
history for the signals to mean anything, and always clamp into [0, 1].
"""
from __future__ import annotations

import math

from src.engine.engine_config import EngineConfig
from src.engine.models import BehavioralPattern, PuzzleDNA, UserProfile

# Steepness of the skill/difficulty logistic
SKILL_GAP_SLOPE = 6.0

LONG_SESSION_PUZZLES = 15
LONG_SESSION_PENALTY = 0.05


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


class SuccessPredictor:
    """Logistic skill/difficulty model adjusted by trend and type history."""

    def __init__(self, config: EngineConfig):
        self.config = config

    def predict(self, profile: UserProfile, pattern: BehavioralPattern, dna: PuzzleDNA) -> float:
        observations = max(len(pattern.snapshots), profile.total_puzzles_solved)
        if observations < self.config.min_prediction_observations:
            return self.config.neutral_prediction

        gap = profile.current_skill_level - dna.discovered_difficulty
        probability = 1.0 / (1.0 + math.exp(-SKILL_GAP_SLOPE * gap))

        probability += 0.1 * pattern.accuracy_trend

        stats = profile.puzzle_type_stats.get(dna.puzzle_type)
        if stats and stats.attempts >= self.config.min_prediction_observations:
            probability = 0.7 * probability + 0.3 * stats.accuracy

        session_length = len(pattern.session_snapshots)
        if session_length > LONG_SESSION_PUZZLES:
            probability -= LONG_SESSION_PENALTY * min(1.0, (session_length - LONG_SESSION_PUZZLES) / 10)

        return _clamp(probability)


class EngagementPredictor:
    """Preference, recent engagement, novelty and challenge match."""

    def __init__(self, config: EngineConfig):
        self.config = config

    def predict(self, profile: UserProfile, pattern: BehavioralPattern, dna: PuzzleDNA) -> float:
        if len(pattern.snapshots) < self.config.min_prediction_observations:
            return self.config.neutral_prediction

        stats = profile.puzzle_type_stats.get(dna.puzzle_type)
        preference = stats.preference_score if stats else 0.5
        attempts = stats.attempts if stats else 0
        novelty = 1.0 / (1.0 + attempts / 5)

        # Slightly above current skill is the sweet spot
        match = 1.0 - min(1.0, abs(dna.discovered_difficulty - (profile.current_skill_level + 0.05)) * 2)

        engagement = (
            0.3 * preference
            + 0.25 * pattern.engagement_level
            + 0.15 * novelty
            + 0.2 * match
            + 0.1 * dna.engagement_potential
        )
        return _clamp(engagement)
