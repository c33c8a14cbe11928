"""
Learning Feedback Updater.

Applies one completion outcome to long-term learner state. This is the
only place (besides session bookkeeping in the engine) that mutates a
UserProfile.

Per completion:
- behavioral snapshot appended, aggregates refreshed
- totals and running accuracy
- skill level, momentum, velocity, max/preferred difficulty
- cognitive profile nudges
- per-type stats and preference score
- power-up counters
- PuzzleDNA discovered fields
"""
from __future__ import annotations

from datetime import UTC, datetime

from loguru import logger

from src.engine.behavior_tracker import BehaviorTracker, estimate_engagement
from src.engine.constants import FEEDBACK as F
from src.engine.constants import SKILL_HISTORY_SIZE
from src.engine.dna_analyzer import PuzzleDNAAnalyzer
from src.engine.models import (
    BehavioralPattern,
    BehavioralSnapshot,
    CompletionOutcome,
    FeedbackResult,
    PuzzleDNA,
    PuzzleRecommendation,
    SessionContext,
    UserProfile,
)

NOISY_PUZZLE = 0.5


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def _accuracy(snapshots: list[BehavioralSnapshot]) -> float:
    return sum(1 for s in snapshots if s.success) / len(snapshots) if snapshots else 0.0


class FeedbackUpdater:
    """Folds completion outcomes into profile, pattern, session and DNA."""

    def __init__(self, tracker: BehaviorTracker, dna_analyzer: PuzzleDNAAnalyzer, detailed_metrics: bool = False):
        self.tracker = tracker
        self.dna_analyzer = dna_analyzer
        self.detailed_metrics = detailed_metrics

    def apply(
        self,
        profile: UserProfile,
        recommendation: PuzzleRecommendation,
        outcome: CompletionOutcome,
        session: SessionContext | None = None,
    ) -> FeedbackResult:
        old_skill = profile.current_skill_level
        old_momentum = profile.skill_momentum
        old_accuracy = profile.overall_accuracy

        puzzle = recommendation.puzzle
        dna = recommendation.dna
        difficulty = dna.discovered_difficulty
        pattern = profile.behavioral_pattern
        previous_failed = bool(pattern.snapshots) and not pattern.snapshots[-1].success

        engagement = estimate_engagement(
            outcome.success, outcome.solve_time_ms, outcome.engagement_signal, outcome.confidence
        )
        snapshot = BehavioralSnapshot(
            puzzle_type=puzzle.puzzle_type,
            difficulty=difficulty,
            success=outcome.success,
            response_time_ms=outcome.solve_time_ms,
            engagement=engagement,
            power_up_used=outcome.power_up_used is not None,
            expected_success=recommendation.predicted_success,
        )
        self.tracker.record(pattern, snapshot, session)

        # Totals
        profile.total_puzzles_solved += 1
        if outcome.success:
            profile.total_correct += 1
        profile.overall_accuracy = _clamp(profile.total_correct / profile.total_puzzles_solved)
        profile.current_level = max(profile.current_level, 1 + profile.total_correct // F["correct_per_level"])

        self._update_type_stats(profile, puzzle.puzzle_type, outcome, engagement)
        self._update_skill(profile, difficulty, outcome.success)
        self._update_momentum(profile, pattern)
        self._update_cognitive(profile, dna, outcome, previous_failed)
        self._update_power_ups(profile, outcome)

        retain = F["profile_engagement_retain"]
        profile.engagement_level = retain * profile.engagement_level + (1 - retain) * engagement

        self.dna_analyzer.record_outcome(dna, outcome.success, engagement)

        profile.skill_history.append(profile.current_skill_level)
        del profile.skill_history[:-SKILL_HISTORY_SIZE]
        profile.last_active = datetime.now(UTC)

        if self.detailed_metrics:
            logger.debug(
                f"Feedback {profile.user_id}: success={outcome.success} "
                f"skill {old_skill:.3f}->{profile.current_skill_level:.3f} "
                f"momentum {old_momentum:+.3f}->{profile.skill_momentum:+.3f} "
                f"accuracy {profile.overall_accuracy:.2f}"
            )

        return FeedbackResult(
            user_id=profile.user_id,
            recommendation_id=recommendation.recommendation_id,
            success=outcome.success,
            old_skill=old_skill,
            new_skill=profile.current_skill_level,
            old_momentum=old_momentum,
            new_momentum=profile.skill_momentum,
            old_accuracy=old_accuracy,
            new_accuracy=profile.overall_accuracy,
            total_puzzles_solved=profile.total_puzzles_solved,
        )

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    @staticmethod
    def _update_type_stats(profile: UserProfile, puzzle_type: str, outcome: CompletionOutcome, engagement: float) -> None:
        stats = profile.type_stats(puzzle_type)
        stats.attempts += 1
        if outcome.success:
            stats.correct += 1
        stats.accuracy = stats.correct / stats.attempts
        stats.avg_response_time_ms += (outcome.solve_time_ms - stats.avg_response_time_ms) / stats.attempts

        span = F["slow_response_ms"] - F["fast_response_ms"]
        time_score = 1.0 - _clamp((stats.avg_response_time_ms - F["fast_response_ms"]) / span)
        preference = F["preference_accuracy_weight"] * stats.accuracy + F["preference_time_weight"] * time_score
        blend = F["preference_engagement_blend"]
        stats.preference_score = _clamp((1 - blend) * preference + blend * engagement)

    @staticmethod
    def _update_skill(profile: UserProfile, difficulty: float, success: bool) -> None:
        skill = profile.current_skill_level
        if success:
            # Harder puzzles than the learner's level move skill further
            skill += F["skill_step"] * _clamp(1 + (difficulty - skill), 0.5, 1.5)
        else:
            # Failing an easy puzzle costs more than failing a hard one
            skill -= F["skill_penalty_step"] * _clamp(1 + (skill - difficulty), 0.5, 1.5)
        profile.current_skill_level = _clamp(skill)
        profile.current_max_difficulty = min(
            F["max_difficulty_cap"], profile.current_skill_level + F["max_difficulty_margin"]
        )
        if success:
            alpha = F["preferred_difficulty_alpha"]
            profile.preferred_difficulty = (1 - alpha) * profile.preferred_difficulty + alpha * difficulty

    @staticmethod
    def _update_momentum(profile: UserProfile, pattern: BehavioralPattern) -> None:
        """
        Momentum: recency-weighted deltas between each outcome and the
        success predicted when the puzzle was recommended, plus an
        engagement bonus, scaled by data confidence. A run of answers that
        beats the predictions builds positive momentum.

        Velocity: recent minus older window accuracy, scaled the same way.
        """
        n = len(pattern.snapshots)
        confidence = min(1.0, n / F["data_confidence_saturation"])

        window = pattern.recent(F["momentum_window"])
        weighted, total_weight = 0.0, 0.0
        for age, snapshot in enumerate(reversed(window)):
            weight = F["momentum_decay"] ** age
            weighted += weight * ((1.0 if snapshot.success else 0.0) - snapshot.expected_success)
            total_weight += weight
        momentum = weighted / total_weight if total_weight else 0.0
        momentum += F["momentum_engagement_bonus"] * (pattern.engagement_level - 0.5)
        profile.skill_momentum = _clamp(momentum * confidence, -1.0, 1.0)

        size = F["velocity_window"]
        recent = pattern.snapshots[-size:]
        older = pattern.snapshots[-2 * size:-size]
        if older:
            profile.learning_velocity = (_accuracy(recent) - _accuracy(older)) * confidence
        else:
            profile.learning_velocity = 0.0

    @staticmethod
    def _update_cognitive(
        profile: UserProfile,
        dna: PuzzleDNA,
        outcome: CompletionOutcome,
        previous_failed: bool,
    ) -> None:
        cognitive = profile.cognitive_profile
        step = F["cognitive_step"]
        sign = 1 if outcome.success else -1

        if outcome.success and outcome.solve_time_ms <= F["fast_response_ms"]:
            cognitive.processing_speed = _clamp(cognitive.processing_speed + step)
        elif outcome.solve_time_ms >= F["slow_response_ms"]:
            cognitive.processing_speed = _clamp(cognitive.processing_speed - step)

        if dna.logical_complexity.memory_requirement == "high":
            cognitive.working_memory_capacity = _clamp(cognitive.working_memory_capacity + sign * step)

        if dna.visual_complexity.visual_noise >= NOISY_PUZZLE:
            cognitive.attention_control = _clamp(cognitive.attention_control + sign * step)

        if previous_failed:
            delta = step if outcome.success else -step / 2
            cognitive.error_recovery = _clamp(cognitive.error_recovery + delta)

    @staticmethod
    def _update_power_ups(profile: UserProfile, outcome: CompletionOutcome) -> None:
        if outcome.power_up_used is None:
            return
        profile.power_ups_used += 1
        remaining = profile.power_up_inventory.get(outcome.power_up_used, 0)
        if remaining > 0:
            profile.power_up_inventory[outcome.power_up_used] = remaining - 1
