"""
Integration tests for simulated learners driving the engine.
"""

import pytest

from src.engine.engine_config import EngineConfig
from src.engine.models import UserState
from src.engine.puzzle_engine import AdaptivePuzzleEngine
from src.puzzles.catalog import PuzzleFamily
from src.puzzles.registry import ProviderRegistry
from src.simulation import PERSONAS, get_persona, simulate
from src.storage import InMemoryProfileStore


def _engine(seed: int = 1) -> AdaptivePuzzleEngine:
    return AdaptivePuzzleEngine(
        ProviderRegistry.with_defaults(seed),
        InMemoryProfileStore(),
        config=EngineConfig(silent_mode=True),
    )


class TestPersonas:
    def test_builtin_personas(self):
        assert set(PERSONAS) == {"new_learner", "struggling", "steady", "bored_expert", "pattern_strong"}

    def test_unknown_persona(self):
        with pytest.raises(KeyError, match="Unknown persona"):
            get_persona("wizard")

    def test_get_persona_returns_fresh_copy(self):
        persona = get_persona("new_learner")
        persona.ability = 0.99

        assert get_persona("new_learner").ability == PERSONAS["new_learner"].ability

    def test_family_ability(self):
        persona = get_persona("pattern_strong")

        assert persona.ability_for("pattern") == 0.9
        assert persona.ability_for("number-series") == 0.2
        assert persona.ability_for("serial-reasoning") == persona.ability

    def test_new_learner_has_no_history(self):
        assert get_persona("new_learner").initial_profile("sim") is None

    def test_seeded_history(self):
        profile = get_persona("bored_expert").initial_profile("sim")

        assert profile.total_puzzles_solved == 150
        assert profile.overall_accuracy > 0.9
        assert len(profile.behavioral_pattern.snapshots) == 10


class TestSimulation:
    @pytest.mark.asyncio
    async def test_new_learner_run(self):
        engine = _engine()

        steps = await simulate(get_persona("new_learner"), 12, engine, seed=3)

        assert len(steps) == 12
        assert steps[0].state == UserState.NEW_USER.value
        assert [s.index for s in steps] == list(range(1, 13))
        assert all(0.0 <= s.difficulty <= 1.0 for s in steps)

        profile = await engine.store.load("sim-new_learner")
        assert profile.total_puzzles_solved == 12
        assert profile.total_sessions == 1
        assert engine.get_session("sim-new_learner") is None

    @pytest.mark.asyncio
    async def test_seeded_persona_extends_history(self):
        engine = _engine()

        await simulate(get_persona("bored_expert"), 5, engine, seed=3, user_id="veteran")

        profile = await engine.store.load("veteran")
        assert profile.total_puzzles_solved == 155
        assert profile.current_level >= 14

    @pytest.mark.asyncio
    async def test_runs_are_reproducible(self):
        first = await simulate(get_persona("steady"), 8, _engine(seed=9), seed=9)
        second = await simulate(get_persona("steady"), 8, _engine(seed=9), seed=9)

        assert [(s.puzzle_type, s.success) for s in first] == [(s.puzzle_type, s.success) for s in second]

    @pytest.mark.asyncio
    async def test_pattern_strong_history_shows_strength(self):
        engine = _engine()
        persona = get_persona("pattern_strong")
        await engine.store.save("omi", persona.initial_profile("omi"))

        profile = await engine.store.load("omi")

        assert engine.distributor.detect_strength(profile) == PuzzleFamily.VISUAL
