"""
Simulated learners.

Each persona answers recommended puzzles with a probability driven by its
hidden per-type ability and the puzzle's difficulty:

- new_learner: no history, average ability, learns steadily
- struggling: low ability, slow answers, little learning
- steady: solid ability across the board
- bored_expert: long history, very high ability, loses interest on easy puzzles
- pattern_strong: excellent at visual pattern puzzles, weak at math puzzles

The simulator drives a real AdaptivePuzzleEngine through
start_session -> (recommend -> complete)* -> end_session.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass, field

from src.engine.models import (
    BehavioralPattern,
    BehavioralSnapshot,
    CompletionOutcome,
    PuzzleRecommendation,
    PuzzleTypeStats,
    UserProfile,
)
from src.engine.puzzle_engine import AdaptivePuzzleEngine
from src.puzzles.catalog import PuzzleFamily, get_family


@dataclass
class Persona:
    name: str
    description: str
    ability: float
    family_ability: dict[PuzzleFamily, float] = field(default_factory=dict)
    avg_solve_ms: float = 12000
    learning_rate: float = 0.01
    base_engagement: float = 0.6
    # Engagement lost per unit of difficulty below this level (boredom)
    boredom_below: float | None = None
    seed_history: int = 0

    def ability_for(self, puzzle_type: str) -> float:
        family = get_family(puzzle_type)
        return self.family_ability.get(family, self.ability) if family else self.ability

    def answer(self, recommendation: PuzzleRecommendation, rng: random.Random) -> CompletionOutcome:
        puzzle_type = recommendation.puzzle.puzzle_type
        difficulty = recommendation.dna.discovered_difficulty
        ability = self.ability_for(puzzle_type)

        p_success = 1.0 / (1.0 + math.exp(-8.0 * (ability - difficulty)))
        success = rng.random() < p_success

        solve_ms = self.avg_solve_ms * (0.5 + difficulty) * rng.uniform(0.7, 1.3)

        engagement = self.base_engagement + rng.uniform(-0.05, 0.05)
        if self.boredom_below is not None and difficulty < self.boredom_below:
            engagement -= (self.boredom_below - difficulty) * 0.8
        if not success:
            engagement -= 0.05

        if success:
            self._learn(puzzle_type)
        return CompletionOutcome(
            success=success,
            solve_time_ms=round(solve_ms),
            engagement_signal=max(0.0, min(1.0, engagement)),
        )

    def _learn(self, puzzle_type: str) -> None:
        family = get_family(puzzle_type)
        if family in self.family_ability:
            self.family_ability[family] = min(1.0, self.family_ability[family] + self.learning_rate)
        else:
            self.ability = min(1.0, self.ability + self.learning_rate)

    def initial_profile(self, user_id: str) -> UserProfile | None:
        """Stored history for personas that are not brand new."""
        if self.seed_history <= 0:
            return None

        profile = UserProfile.default(user_id)
        solved = self.seed_history
        correct = 0
        for puzzle_type in ("pattern", "number-series", "number-analogy", "number-grid", "serial-reasoning"):
            attempts = solved // 5
            accuracy = min(0.98, max(0.05, self.ability_for(puzzle_type)))
            hits = round(attempts * accuracy)
            correct += hits
            profile.puzzle_type_stats[puzzle_type] = PuzzleTypeStats(
                attempts=attempts,
                correct=hits,
                accuracy=hits / attempts if attempts else 0.0,
                avg_response_time_ms=self.avg_solve_ms,
                preference_score=0.5,
            )

        profile.total_puzzles_solved = solved
        profile.total_correct = correct
        profile.overall_accuracy = correct / solved
        profile.total_sessions = max(1, solved // 15)
        profile.current_skill_level = self.ability
        profile.current_max_difficulty = min(0.9, self.ability + 0.2)
        profile.current_level = 1 + correct // 10

        pattern = BehavioralPattern()
        rng = random.Random(user_id)
        for i in range(10):
            puzzle_type = ("pattern", "number-series")[i % 2]
            pattern.snapshots.append(BehavioralSnapshot(
                puzzle_type=puzzle_type,
                difficulty=0.4,
                success=rng.random() < self.ability_for(puzzle_type),
                response_time_ms=self.avg_solve_ms,
                engagement=self.base_engagement,
            ))
        pattern.session_start_index = len(pattern.snapshots)
        pattern.engagement_level = self.base_engagement
        profile.behavioral_pattern = pattern
        return profile


def _personas() -> dict[str, Persona]:
    return {
        "new_learner": Persona(
            name="new_learner",
            description="Brand new player with average ability",
            ability=0.45,
            learning_rate=0.015,
        ),
        "struggling": Persona(
            name="struggling",
            description="Low ability, slow answers, learns slowly",
            ability=0.2,
            avg_solve_ms=25000,
            learning_rate=0.005,
            base_engagement=0.45,
            seed_history=20,
        ),
        "steady": Persona(
            name="steady",
            description="Consistent mid-level player",
            ability=0.6,
            learning_rate=0.01,
            seed_history=40,
        ),
        "bored_expert": Persona(
            name="bored_expert",
            description="Veteran who solves almost everything and is bored by easy puzzles",
            ability=0.95,
            avg_solve_ms=6000,
            learning_rate=0.0,
            base_engagement=0.55,
            boredom_below=0.6,
            seed_history=150,
        ),
        "pattern_strong": Persona(
            name="pattern_strong",
            description="Excellent at visual patterns, weak at math puzzles",
            ability=0.5,
            family_ability={PuzzleFamily.VISUAL: 0.9, PuzzleFamily.MATHEMATICAL: 0.2},
            seed_history=30,
        ),
    }


PERSONAS = _personas()


def get_persona(name: str) -> Persona:
    """Fresh copy of a built-in persona (personas learn while simulating)."""
    personas = _personas()
    if name not in personas:
        raise KeyError(f"Unknown persona '{name}'. Available: {', '.join(sorted(personas))}")
    return personas[name]


@dataclass
class SimulationStep:
    index: int
    state: str
    modifiers: list[str]
    category: str
    puzzle_type: str
    difficulty: float
    success: bool
    skill: float


async def simulate(
    persona: Persona,
    puzzles: int,
    engine: AdaptivePuzzleEngine,
    seed: int | None = None,
    user_id: str | None = None,
) -> list[SimulationStep]:
    """Run one session of `puzzles` recommend/complete cycles."""
    rng = random.Random(seed)
    user_id = user_id or f"sim-{persona.name}"

    seeded = persona.initial_profile(user_id)
    if seeded is not None:
        await engine.store.save(user_id, seeded)

    steps: list[SimulationStep] = []
    await engine.start_session(user_id)
    for i in range(puzzles):
        recommendation = await engine.recommend(user_id)
        outcome = persona.answer(recommendation, rng)
        result = await engine.complete(user_id, outcome, recommendation.recommendation_id)
        steps.append(SimulationStep(
            index=i + 1,
            state=recommendation.classification.base_state.value,
            modifiers=[m.value for m in recommendation.classification.modifiers],
            category=recommendation.category.value,
            puzzle_type=recommendation.puzzle.puzzle_type,
            difficulty=recommendation.dna.discovered_difficulty,
            success=outcome.success,
            skill=result.new_skill,
        ))
    await engine.end_session(user_id)
    return steps
