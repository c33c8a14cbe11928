"""
Multi-Criteria Selector.

Scores analyzed candidates and picks exactly one.

1. Safety filter: drop candidates above the active difficulty ceiling
   (new users and struggling users get fixed low ceilings).
   With gradual progression enabled, learners in their first 50 puzzles
   are also held under a ramping cap.
2. Score = w_success * success + w_engagement * engagement
           + w_strategy * strategic_value + w_variety * variety_bonus
3. Highest score wins; ties go to the category with the larger quota.

If the filter removes everything the ceiling is relaxed once; if that is
still empty the easiest candidate is returned.
"""
from __future__ import annotations

from typing import Sequence

from loguru import logger

from src.engine.constants import PROGRESSION as P
from src.engine.engine_config import EngineConfig
from src.engine.exceptions import NoCandidatesError
from src.engine.models import (
    PoolStrategy,
    PuzzleRecommendation,
    ScoredCandidate,
    UserProfile,
    UserState,
    UserStateClassification,
)

SUCCESS_WEIGHT = 0.4
STRATEGY_WEIGHT = 0.2
VARIETY_WEIGHT = 0.1


class MultiCriteriaSelector:
    """Picks the next puzzle from scored candidates."""

    def __init__(self, config: EngineConfig):
        self.config = config

    def active_ceiling(self, classification: UserStateClassification, profile: UserProfile) -> float:
        state = classification.base_state
        if state == UserState.NEW_USER:
            ceiling = self.config.new_user_max_difficulty
        elif state.is_struggling:
            ceiling = self.config.struggling_user_max_difficulty
        else:
            ceiling = profile.current_max_difficulty
        if self.config.gradual_progression:
            ceiling = min(ceiling, progression_cap(profile))
        return self.config.difficulty_cap(ceiling)

    def select(
        self,
        candidates: Sequence[ScoredCandidate],
        classification: UserStateClassification,
        strategy: PoolStrategy,
        profile: UserProfile,
        recent_types: Sequence[str] = (),
    ) -> PuzzleRecommendation:
        if not candidates:
            raise NoCandidatesError(f"No candidates to select from for {profile.user_id}")

        ceiling = self.active_ceiling(classification, profile)
        eligible = [c for c in candidates if c.dna.discovered_difficulty <= ceiling]
        note = ""

        if not eligible:
            relaxed = ceiling + self.config.ceiling_relax_step
            eligible = [c for c in candidates if c.dna.discovered_difficulty <= relaxed]
            note = f"; ceiling relaxed {ceiling:.2f} -> {relaxed:.2f}"
            logger.info(f"All candidates above {ceiling:.2f}, relaxing to {relaxed:.2f}")

        if not eligible:
            easiest = min(candidates, key=lambda c: c.dna.discovered_difficulty)
            self._score(easiest, strategy, recent_types)
            logger.warning(
                f"No candidate within relaxed ceiling; returning easiest "
                f"({easiest.dna.discovered_difficulty:.2f})"
            )
            return self._recommend(
                easiest, classification, strategy, profile,
                f"Easiest available puzzle (all candidates above ceiling {ceiling:.2f})",
            )

        for candidate in eligible:
            self._score(candidate, strategy, recent_types)
            if self.config.detailed_metrics:
                logger.debug(
                    f"  {candidate.puzzle.semantic_key:<40} {candidate.category.value:<22} "
                    f"s={candidate.predicted_success:.2f} e={candidate.predicted_engagement:.2f} "
                    f"v={candidate.strategic_value:.2f} score={candidate.score:.3f}"
                )

        best = max(
            eligible,
            key=lambda c: (round(c.score, 9), strategy.quota(c.category)),
        )
        reason = (
            f"{best.category.display_name} pick for {classification.base_state.value} "
            f"(success {best.predicted_success:.0%}, engagement {best.predicted_engagement:.0%}){note}"
        )
        return self._recommend(best, classification, strategy, profile, reason)

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def _score(self, candidate: ScoredCandidate, strategy: PoolStrategy, recent_types: Sequence[str]) -> None:
        candidate.strategic_value = self.strategic_value(candidate, strategy)
        candidate.variety_bonus = self.variety_bonus(candidate.puzzle.puzzle_type, recent_types)
        candidate.score = (
            SUCCESS_WEIGHT * candidate.predicted_success
            + self.config.engagement_priority * candidate.predicted_engagement
            + STRATEGY_WEIGHT * candidate.strategic_value
            + VARIETY_WEIGHT * candidate.variety_bonus
        )

    @staticmethod
    def strategic_value(candidate: ScoredCandidate, strategy: PoolStrategy) -> float:
        """How much the strategy wants this category, and how close the puzzle landed to its target."""
        share = strategy.share(candidate.category)
        miss = abs(candidate.dna.discovered_difficulty - candidate.candidate.target_difficulty)
        return 0.5 * share + 0.5 * (1.0 - min(1.0, miss * 2))

    def variety_bonus(self, puzzle_type: str, recent_types: Sequence[str]) -> float:
        window = self.config.variety_window
        if window <= 0:
            return 1.0
        recent = list(recent_types)[-window:]
        return 1.0 - recent.count(puzzle_type) / window

    @staticmethod
    def _recommend(
        chosen: ScoredCandidate,
        classification: UserStateClassification,
        strategy: PoolStrategy,
        profile: UserProfile,
        reason: str,
    ) -> PuzzleRecommendation:
        return PuzzleRecommendation(
            puzzle=chosen.puzzle,
            dna=chosen.dna,
            predicted_success=chosen.predicted_success,
            predicted_engagement=chosen.predicted_engagement,
            strategic_value=chosen.strategic_value,
            selection_reason=reason,
            category=chosen.category,
            score=chosen.score,
            classification=classification,
            user_id=profile.user_id,
            strategy=strategy,
        )


def progression_cap(profile: UserProfile) -> float:
    """
    Difficulty cap for a learner still inside the progression span.

    Ramps from 0.25 to 0.65 over the first 50 puzzles, nudged by recent
    success. Early learners (first 30% of the span) stay at or below 0.32,
    and the very first five puzzles at or below 0.25. Returns 1.0 once the
    span is complete.
    """
    solved = profile.total_puzzles_solved
    if solved >= P["span_puzzles"]:
        return 1.0

    ratio = solved / P["span_puzzles"]
    recent = profile.behavioral_pattern.recent_success_rate(P["recent_window"])
    rate = 0.5 if recent is None else recent
    cap = (
        P["start_cap"]
        + ratio * (P["end_cap"] - P["start_cap"])
        + (rate - P["performance_pivot"]) * P["performance_scale"]
    )
    cap = max(P["start_cap"], min(P["end_cap"], cap))

    if ratio < P["early_ratio"]:
        cap = min(cap, P["early_cap"])
        if solved < P["very_new_puzzles"]:
            cap = min(cap, P["very_new_cap"])
    return cap
