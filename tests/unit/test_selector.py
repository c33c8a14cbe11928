"""
Unit tests for MultiCriteriaSelector.

Tests:
- Difficulty ceilings per state and gradual progression
- Ceiling relaxation and easiest-candidate fallback
- Scoring and tie-breaking
"""

import pytest

from src.engine.exceptions import NoCandidatesError
from src.engine.models import (
    Candidate,
    PoolCategory,
    PoolStrategy,
    PuzzleDNA,
    ScoredCandidate,
    UserState,
    UserStateClassification,
)
from src.engine.selector import MultiCriteriaSelector, progression_cap
from src.puzzles.base import DifficultyTier
from tests.factories import make_profile, pattern_puzzle


def _scored(
    difficulty: float,
    category: PoolCategory = PoolCategory.SKILL_DEVELOPMENT,
    success: float = 0.5,
    engagement: float = 0.5,
    subtype: str = "row-shift",
    target: float | None = None,
) -> ScoredCandidate:
    puzzle = pattern_puzzle(DifficultyTier.from_score(difficulty), subtype=subtype)
    dna = PuzzleDNA(
        semantic_key=puzzle.semantic_key,
        puzzle_type=puzzle.puzzle_type,
        subtype=puzzle.subtype,
        difficulty_tier=puzzle.difficulty_tier,
        static_difficulty=difficulty,
        discovered_difficulty=difficulty,
        engagement_potential=0.5,
    )
    return ScoredCandidate(
        candidate=Candidate(puzzle, category, difficulty if target is None else target),
        dna=dna,
        predicted_success=success,
        predicted_engagement=engagement,
    )


def _classification(state: UserState) -> UserStateClassification:
    return UserStateClassification(base_state=state, confidence=0.9, reasoning=["test"])


@pytest.fixture
def selector(config):
    return MultiCriteriaSelector(config)


@pytest.fixture
def strategy():
    return PoolStrategy.from_counts([2, 4, 3, 0, 1])


class TestActiveCeiling:
    def test_new_user_ceiling(self, selector, new_profile):
        assert selector.active_ceiling(_classification(UserState.NEW_USER), new_profile) == 0.4

    @pytest.mark.parametrize(
        "state", [UserState.SEVERELY_STRUGGLING, UserState.STRUGGLING, UserState.FALLING_BACK]
    )
    def test_struggling_ceiling(self, selector, state):
        profile = make_profile(solved=50, skill=0.6)

        assert selector.active_ceiling(_classification(state), profile) == 0.3

    def test_other_states_use_profile_ceiling(self, selector):
        profile = make_profile(solved=50, skill=0.5)

        assert selector.active_ceiling(_classification(UserState.STABLE), profile) == pytest.approx(0.7)

    def test_global_cap_applies(self, config):
        selector = MultiCriteriaSelector(config.with_overrides(global_max_difficulty=0.35))
        profile = make_profile(solved=50, skill=0.5)

        assert selector.active_ceiling(_classification(UserState.EXCELLING), profile) == 0.35


class TestGradualProgression:
    @pytest.fixture
    def ramped(self, config):
        return MultiCriteriaSelector(config.with_overrides(gradual_progression=True))

    def test_disabled_by_default(self, selector, new_profile):
        assert selector.active_ceiling(_classification(UserState.NEW_USER), new_profile) == 0.4

    def test_very_new_learner_starts_at_floor(self, new_profile):
        assert progression_cap(new_profile) == pytest.approx(0.25)

    def test_new_user_ceiling_tightened(self, ramped, new_profile):
        assert ramped.active_ceiling(_classification(UserState.NEW_USER), new_profile) == pytest.approx(0.25)

    def test_early_learner_capped(self):
        profile = make_profile(solved=10, results=[True] * 5)

        # ramp gives 0.25 + 0.08 + 0.1 = 0.43, the early-learner cap holds it at 0.32
        assert progression_cap(profile) == pytest.approx(0.32)

    def test_cap_ramps_with_progress_and_recent_success(self, ramped):
        profile = make_profile(solved=25, skill=0.6, results=[True] * 5)

        assert progression_cap(profile) == pytest.approx(0.55)
        assert ramped.active_ceiling(_classification(UserState.PROGRESSING), profile) == pytest.approx(0.55)

    def test_poor_recent_success_lowers_cap(self):
        profile = make_profile(solved=40, results=[False] * 5)

        # 0.25 + 0.32 - 0.15
        assert progression_cap(profile) == pytest.approx(0.42)

    def test_cap_never_exceeds_upper_bound(self):
        profile = make_profile(solved=49, results=[True] * 5)

        assert progression_cap(profile) == pytest.approx(0.65)

    def test_no_cap_after_span(self, ramped):
        profile = make_profile(solved=60, skill=0.6)

        assert progression_cap(profile) == 1.0
        assert ramped.active_ceiling(_classification(UserState.STABLE), profile) == pytest.approx(0.8)


class TestSelect:
    def test_empty_candidates_raise(self, selector, strategy, new_profile):
        with pytest.raises(NoCandidatesError):
            selector.select([], _classification(UserState.NEW_USER), strategy, new_profile)

    def test_candidates_above_ceiling_are_filtered(self, selector, strategy, new_profile):
        safe = _scored(0.3, success=0.6)
        tempting = _scored(0.6, success=0.9, engagement=0.9, subtype="mirror")

        rec = selector.select([tempting, safe], _classification(UserState.NEW_USER), strategy, new_profile)

        assert rec.puzzle is safe.puzzle
        assert rec.dna.discovered_difficulty <= 0.4

    def test_ceiling_is_relaxed_once(self, selector, strategy, new_profile):
        near = _scored(0.45)
        far = _scored(0.7, subtype="mirror")

        rec = selector.select([far, near], _classification(UserState.NEW_USER), strategy, new_profile)

        assert rec.puzzle is near.puzzle
        assert "relaxed" in rec.selection_reason

    def test_easiest_returned_when_nothing_fits(self, selector, strategy, new_profile):
        harder = _scored(0.85)
        hard = _scored(0.65, subtype="mirror")

        rec = selector.select([harder, hard], _classification(UserState.NEW_USER), strategy, new_profile)

        assert rec.puzzle is hard.puzzle
        assert rec.selection_reason.startswith("Easiest")

    def test_higher_predicted_success_wins(self, selector, strategy):
        profile = make_profile(solved=50, skill=0.5)
        likely = _scored(0.5, success=0.8)
        unlikely = _scored(0.5, success=0.3, subtype="mirror")

        rec = selector.select([unlikely, likely], _classification(UserState.STABLE), strategy, profile)

        assert rec.puzzle is likely.puzzle

    def test_larger_quota_wins_between_equal_candidates(self, selector, strategy):
        profile = make_profile(solved=50, skill=0.5)
        exploratory = _scored(0.5, category=PoolCategory.EXPLORATORY_NEW)
        skill = _scored(0.5, category=PoolCategory.SKILL_DEVELOPMENT, subtype="mirror")

        rec = selector.select([exploratory, skill], _classification(UserState.STABLE), strategy, profile)

        assert rec.category == PoolCategory.SKILL_DEVELOPMENT

    def test_recommendation_carries_context(self, selector, strategy):
        profile = make_profile(user_id="alice", solved=50, skill=0.5)
        classification = _classification(UserState.STABLE)

        rec = selector.select([_scored(0.5)], classification, strategy, profile)

        assert rec.user_id == "alice"
        assert rec.strategy is strategy
        assert rec.classification is classification
        assert rec.recommendation_id
        assert rec.score > 0


class TestScoringParts:
    def test_strategic_value_rewards_share_and_target_fit(self, strategy):
        on_target = _scored(0.5, category=PoolCategory.SKILL_DEVELOPMENT, target=0.5)
        off_target = _scored(0.5, category=PoolCategory.SKILL_DEVELOPMENT, target=0.9)

        assert MultiCriteriaSelector.strategic_value(on_target, strategy) == pytest.approx(0.5 * 0.4 + 0.5)
        assert MultiCriteriaSelector.strategic_value(off_target, strategy) == pytest.approx(0.5 * 0.4 + 0.1)

    def test_variety_bonus_penalizes_repeats(self, selector):
        recent = ["pattern", "number-series", "pattern", "number-grid", "number-analogy"]

        assert selector.variety_bonus("pattern", recent) == pytest.approx(0.6)
        assert selector.variety_bonus("serial-reasoning", recent) == 1.0

    def test_variety_disabled_with_zero_window(self, config):
        selector = MultiCriteriaSelector(config.with_overrides(variety_window=0))

        assert selector.variety_bonus("pattern", ["pattern"] * 5) == 1.0
