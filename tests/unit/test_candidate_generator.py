"""
Unit tests for CandidateGenerator.

Tests:
- Pool fill per strategy quota
- Type ranking per category
- Backfill from the fallback provider and slot skipping
- Forcing a single puzzle type
"""

import pytest

from src.engine.candidate_generator import CandidateGenerator, target_difficulty
from src.engine.models import PoolCategory, PoolStrategy
from src.puzzles.catalog import PuzzleFamily, get_enabled_types
from src.puzzles.providers import PuzzleProvider
from src.puzzles.registry import ProviderRegistry
from tests.factories import FailingProvider, StubProvider, make_profile, pattern_puzzle, set_type_stats


class ThreeOptionProvider(PuzzleProvider):
    puzzle_type = "number-grid"

    def generate(self, target_difficulty, recent_types):
        puzzle = pattern_puzzle()
        puzzle.puzzle_type = self.puzzle_type
        puzzle.options = ["A", "B", "C"]
        return puzzle


@pytest.fixture
def stub_registry():
    return ProviderRegistry({name: StubProvider(name) for name in get_enabled_types()})


class TestTargetDifficulty:
    def test_offsets_per_category(self):
        assert target_difficulty(0.3, PoolCategory.CONFIDENCE_BUILDERS) == pytest.approx(0.15)
        assert target_difficulty(0.3, PoolCategory.SKILL_DEVELOPMENT) == pytest.approx(0.3)
        assert target_difficulty(0.3, PoolCategory.PROGRESSIVE_CHALLENGE) == pytest.approx(0.45)
        assert target_difficulty(0.3, PoolCategory.ENGAGEMENT_RECOVERY) == pytest.approx(0.2)

    def test_targets_are_clamped(self):
        assert target_difficulty(0.0, PoolCategory.CONFIDENCE_BUILDERS) == 0.05
        assert target_difficulty(1.0, PoolCategory.PROGRESSIVE_CHALLENGE) == 0.95


class TestGenerate:
    @pytest.mark.asyncio
    async def test_fills_every_slot(self, stub_registry, new_profile):
        strategy = PoolStrategy.from_counts([7, 2, 1, 0, 0])

        candidates = await CandidateGenerator(stub_registry).generate(strategy, new_profile)

        assert len(candidates) == 10
        by_category = [c.category for c in candidates]
        assert by_category.count(PoolCategory.CONFIDENCE_BUILDERS) == 7
        assert by_category.count(PoolCategory.SKILL_DEVELOPMENT) == 2
        assert by_category.count(PoolCategory.PROGRESSIVE_CHALLENGE) == 1

    @pytest.mark.asyncio
    async def test_candidates_carry_targets(self, stub_registry, new_profile):
        strategy = PoolStrategy.from_counts([0, 0, 10, 0, 0])

        candidates = await CandidateGenerator(stub_registry).generate(strategy, new_profile)

        assert all(c.target_difficulty == pytest.approx(0.45) for c in candidates)

    @pytest.mark.asyncio
    async def test_failed_slots_are_backfilled(self, new_profile):
        failing = FailingProvider("number-series")
        registry = ProviderRegistry({"pattern": StubProvider("pattern"), "number-series": failing})
        strategy = PoolStrategy.from_counts([0, 0, 0, 0, 4])

        candidates = await CandidateGenerator(registry).generate(strategy, new_profile)

        assert len(candidates) == 4
        assert {c.puzzle.puzzle_type for c in candidates} == {"pattern"}
        assert failing.calls == 2

    @pytest.mark.asyncio
    async def test_slots_skipped_without_fallback(self, new_profile):
        registry = ProviderRegistry({
            "number-series": FailingProvider("number-series", error=RuntimeError("boom")),
            "number-grid": StubProvider("number-grid"),
        })
        strategy = PoolStrategy.from_counts([0, 0, 0, 0, 4])

        candidates = await CandidateGenerator(registry).generate(strategy, new_profile)

        assert len(candidates) == 2
        assert {c.puzzle.puzzle_type for c in candidates} == {"number-grid"}

    @pytest.mark.asyncio
    async def test_forced_type_fills_every_slot(self, stub_registry, new_profile):
        strategy = PoolStrategy.from_counts([7, 2, 1, 0, 0])

        candidates = await CandidateGenerator(stub_registry).generate(
            strategy, new_profile, force_type="numberSeries"
        )

        assert len(candidates) == 10
        assert {c.puzzle.puzzle_type for c in candidates} == {"number-series"}

    @pytest.mark.asyncio
    async def test_unregistered_forced_type_uses_fallback(self, new_profile):
        registry = ProviderRegistry({"pattern": StubProvider("pattern"), "number-grid": StubProvider("number-grid")})
        strategy = PoolStrategy.from_counts([0, 3, 0, 0, 0])

        candidates = await CandidateGenerator(registry).generate(strategy, new_profile, force_type="number-series")

        assert len(candidates) == 3
        assert {c.puzzle.puzzle_type for c in candidates} == {"pattern"}

    @pytest.mark.asyncio
    async def test_invalid_puzzles_are_rejected(self, new_profile):
        registry = ProviderRegistry({"number-grid": ThreeOptionProvider()}, fallback_type="number-grid")
        strategy = PoolStrategy.from_counts([0, 2, 0, 0, 0])

        assert await CandidateGenerator(registry).generate(strategy, new_profile) == []

    @pytest.mark.asyncio
    async def test_empty_registry_yields_nothing(self, new_profile):
        strategy = PoolStrategy.from_counts([7, 2, 1, 0, 0])

        assert await CandidateGenerator(ProviderRegistry({})).generate(strategy, new_profile) == []


class TestPlan:
    def test_new_user_confidence_builders_lead_with_beginner_types(self, stub_registry, new_profile):
        strategy = PoolStrategy.from_counts([2, 0, 0, 0, 0])
        types = stub_registry.available_types()

        requests = CandidateGenerator(stub_registry).plan(strategy, new_profile, types)

        assert [r.puzzle_type for r in requests] == ["pattern", "number-analogy"]

    def test_last_played_type_does_not_lead(self, stub_registry, new_profile):
        strategy = PoolStrategy.from_counts([1, 0, 0, 0, 0])
        types = stub_registry.available_types()

        requests = CandidateGenerator(stub_registry).plan(strategy, new_profile, types, ["pattern"])

        assert requests[0].puzzle_type == "number-analogy"

    def test_focus_family_leads_confidence_builders(self):
        profile = make_profile(solved=40, level=3)
        set_type_stats(profile, "pattern", attempts=20, accuracy=0.9)
        set_type_stats(profile, "number-series", attempts=20, accuracy=0.5)
        types = get_enabled_types()

        ranked = CandidateGenerator.rank_types(
            PoolCategory.CONFIDENCE_BUILDERS, profile, types, PuzzleFamily.MATHEMATICAL
        )

        assert ranked[0] == "number-series"

    def test_confidence_builders_prefer_accurate_types(self):
        profile = make_profile(solved=40)
        set_type_stats(profile, "number-grid", attempts=10, accuracy=0.9)
        set_type_stats(profile, "pattern", attempts=10, accuracy=0.4)

        ranked = CandidateGenerator.rank_types(PoolCategory.CONFIDENCE_BUILDERS, profile, get_enabled_types())

        assert ranked[:2] == ["number-grid", "pattern"]

    def test_challenge_prefers_types_near_target(self, new_profile):
        ranked = CandidateGenerator.rank_types(PoolCategory.PROGRESSIVE_CHALLENGE, new_profile, get_enabled_types())

        assert set(ranked[:2]) == {"number-series", "number-analogy"}

    def test_recovery_prefers_favourite_types(self):
        profile = make_profile(solved=40)
        set_type_stats(profile, "serial-reasoning", attempts=10, accuracy=0.5, preference=0.95)

        ranked = CandidateGenerator.rank_types(PoolCategory.ENGAGEMENT_RECOVERY, profile, get_enabled_types())

        assert ranked[0] == "serial-reasoning"

    def test_exploration_prefers_untried_types(self):
        profile = make_profile(solved=40)
        for name in ("pattern", "serial-reasoning", "number-series", "number-grid"):
            set_type_stats(profile, name, attempts=10, accuracy=0.6)

        ranked = CandidateGenerator.rank_types(PoolCategory.EXPLORATORY_NEW, profile, get_enabled_types())

        assert ranked[0] == "number-analogy"
