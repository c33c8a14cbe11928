"""
Reference Puzzle Providers.

Small procedural generators for the enabled puzzle types. They exist so
the engine is runnable end-to-end; the engine itself only depends on the
`PuzzleProvider.produce()` contract:

    produce(target_difficulty, recent_types) -> Puzzle

A provider either returns a structurally valid puzzle or raises
PuzzleGenerationError. It never returns a partially-filled object.
"""
from __future__ import annotations

import random
from abc import ABC, abstractmethod
from typing import Sequence

from loguru import logger

from src.engine.exceptions import PuzzleGenerationError
from src.puzzles.base import (
    DifficultyTier,
    NumberAnalogyPuzzle,
    NumberGridPuzzle,
    NumberSeriesPuzzle,
    PatternPuzzle,
    Puzzle,
    PuzzleValidator,
    SerialReasoningPuzzle,
)


class PuzzleProvider(ABC):
    """
    Base class for puzzle providers.

    Subclasses implement the synchronous `generate()`; `produce()` wraps it
    with validation so every caller sees the same failure contract.
    Providers backed by a remote service can override `produce()` directly.
    """

    puzzle_type: str = ""

    def __init__(self, rng: random.Random | None = None):
        self._rng = rng or random.Random()

    async def produce(self, target_difficulty: float, recent_types: Sequence[str] = ()) -> Puzzle:
        try:
            puzzle = self.generate(target_difficulty, list(recent_types))
        except PuzzleGenerationError:
            raise
        except (ValueError, IndexError, ZeroDivisionError) as e:
            raise PuzzleGenerationError(self.puzzle_type, str(e)) from e

        errors = PuzzleValidator.validation_errors(puzzle)
        if errors:
            raise PuzzleGenerationError(self.puzzle_type, "; ".join(errors))
        return puzzle

    @abstractmethod
    def generate(self, target_difficulty: float, recent_types: list[str]) -> Puzzle:
        """Build a puzzle for the requested difficulty."""

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    def _shuffle_options(self, answer: str, distractors: Sequence[str]) -> tuple[list[str], int]:
        """Return four distinct options with the answer at a random index."""
        unique = []
        for candidate in distractors:
            if candidate != answer and candidate not in unique:
                unique.append(candidate)
        if len(unique) < 3:
            raise PuzzleGenerationError(self.puzzle_type, "not enough distinct distractors")
        options = [answer, *unique[:3]]
        self._rng.shuffle(options)
        return options, options.index(answer)

    def _numeric_distractors(self, answer: int, spread: int) -> list[str]:
        spread = max(1, spread)
        offsets = [spread, -spread, 2 * spread, -2 * spread, 1, -1, 3 * spread]
        self._rng.shuffle(offsets)
        return [str(answer + off) for off in offsets if answer + off >= 0]


# =============================================================================
# Pattern grids
# =============================================================================


class PatternPuzzleProvider(PuzzleProvider):
    """3x3 symbol grids built from row/column shifts."""

    puzzle_type = "pattern"

    SHAPES = ["😀", "😎", "🐶", "🐱", "💎", "🔶", "🔷", "🍎", "🍌", "🍕", "🍩", "⭐", "✨"]
    SUBTYPES = {
        DifficultyTier.EASY: ["row-shift", "mirror"],
        DifficultyTier.MEDIUM: ["column-shift", "mirror"],
        DifficultyTier.HARD: ["diagonal"],
    }
    EXPLANATIONS = {
        "row-shift": "Each row is a left rotation of the previous row.",
        "mirror": "Alternating rows are mirrored versions of each other.",
        "column-shift": "Each column shifts elements downward in sequence.",
        "diagonal": "Each row rotates the sequence by two positions.",
    }

    def generate(self, target_difficulty: float, recent_types: list[str]) -> Puzzle:
        tier = DifficultyTier.from_score(target_difficulty)
        subtype = self._rng.choice(self.SUBTYPES[tier])
        base = self._rng.sample(self.SHAPES, 3)

        if subtype == "row-shift":
            grid = [[base[(r + c) % 3] for c in range(3)] for r in range(3)]
        elif subtype == "mirror":
            grid = [list(base), list(reversed(base)), list(base)]
        elif subtype == "column-shift":
            grid = [[base[(c - r) % 3] for c in range(3)] for r in range(3)]
        else:
            grid = [[base[(2 * r + c) % 3] for c in range(3)] for r in range(3)]

        answer = grid[2][2]
        grid[2][2] = "?"
        distractors = [s for s in self._rng.sample(self.SHAPES, 6) if s != answer]
        options, index = self._shuffle_options(answer, distractors)

        return PatternPuzzle(
            question="What completes the pattern in the highlighted cell?",
            options=options,
            correct_answer_index=index,
            explanation=self.EXPLANATIONS[subtype],
            puzzle_type=self.puzzle_type,
            subtype=subtype,
            difficulty_tier=tier,
            grid=grid,
        )


# =============================================================================
# Number series
# =============================================================================


class NumberSeriesPuzzleProvider(PuzzleProvider):
    """Five-term sequences; arithmetic when easy, geometric/powers when hard."""

    puzzle_type = "number-series"

    SUBTYPES = {
        DifficultyTier.EASY: ["arithmetic"],
        DifficultyTier.MEDIUM: ["arithmetic", "geometric"],
        DifficultyTier.HARD: ["geometric", "powers", "alternating"],
    }

    def generate(self, target_difficulty: float, recent_types: list[str]) -> Puzzle:
        tier = DifficultyTier.from_score(target_difficulty)
        subtype = self._rng.choice(self.SUBTYPES[tier])
        rng = self._rng

        if subtype == "arithmetic":
            start, step = rng.randint(1, 10), rng.randint(2, 5 if tier == DifficultyTier.EASY else 12)
            terms = [start + step * i for i in range(6)]
            explanation, spread = f"Each number increases by {step}.", step
        elif subtype == "geometric":
            start, ratio = rng.randint(1, 4), rng.randint(2, 3)
            terms = [start * ratio ** i for i in range(6)]
            explanation, spread = f"Each number is multiplied by {ratio}.", terms[4]
        elif subtype == "powers":
            power = rng.choice([2, 3])
            terms = [(i + 1) ** power for i in range(6)]
            name = "squares" if power == 2 else "cubes"
            explanation, spread = f"The sequence lists perfect {name}.", terms[1]
        else:
            start, add = rng.randint(2, 6), rng.randint(1, 3)
            terms = [start]
            for i in range(5):
                terms.append(terms[-1] * 2 if i % 2 == 0 else terms[-1] + add)
            explanation, spread = f"The rule alternates: double, then add {add}.", add + 1

        answer = terms[-1]
        options, index = self._shuffle_options(str(answer), self._numeric_distractors(answer, spread))
        return NumberSeriesPuzzle(
            question=f"What comes next? {', '.join(str(t) for t in terms[:-1])}, ?",
            options=options,
            correct_answer_index=index,
            explanation=explanation,
            puzzle_type=self.puzzle_type,
            subtype=subtype,
            difficulty_tier=tier,
            series=terms,
            hidden_index=len(terms) - 1,
        )


# =============================================================================
# Number grids
# =============================================================================


class NumberGridPuzzleProvider(PuzzleProvider):
    """3x3 grids where the third column combines the first two."""

    puzzle_type = "number-grid"

    SUBTYPES = {
        DifficultyTier.EASY: ["row-sum"],
        DifficultyTier.MEDIUM: ["row-sum", "row-difference"],
        DifficultyTier.HARD: ["row-product"],
    }
    RULES = {
        "row-sum": (lambda a, b: a + b, "The third number in each row is the sum of the first two."),
        "row-difference": (lambda a, b: a - b, "The third number in each row is the first minus the second."),
        "row-product": (lambda a, b: a * b, "The third number in each row is the product of the first two."),
    }

    def generate(self, target_difficulty: float, recent_types: list[str]) -> Puzzle:
        tier = DifficultyTier.from_score(target_difficulty)
        subtype = self._rng.choice(self.SUBTYPES[tier])
        rule, explanation = self.RULES[subtype]
        upper = 9 if tier != DifficultyTier.HARD else 12

        grid: list[list[int | None]] = []
        for _ in range(3):
            a, b = self._rng.randint(2, upper), self._rng.randint(1, upper)
            if subtype == "row-difference" and b > a:
                a, b = b, a
            grid.append([a, b, rule(a, b)])

        answer = grid[2][2]
        grid[2][2] = None
        options, index = self._shuffle_options(str(answer), self._numeric_distractors(answer, 2))
        return NumberGridPuzzle(
            question="Which number replaces the question mark?",
            options=options,
            correct_answer_index=index,
            explanation=explanation,
            puzzle_type=self.puzzle_type,
            subtype=subtype,
            difficulty_tier=tier,
            grid=grid,
        )


# =============================================================================
# Number analogies
# =============================================================================


class NumberAnalogyPuzzleProvider(PuzzleProvider):
    """A:B :: C:? with additive, multiplicative or compound relations."""

    puzzle_type = "number-analogy"

    SUBTYPES = {
        DifficultyTier.EASY: ["addition"],
        DifficultyTier.MEDIUM: ["multiplication", "addition"],
        DifficultyTier.HARD: ["compound"],
    }

    def generate(self, target_difficulty: float, recent_types: list[str]) -> Puzzle:
        tier = DifficultyTier.from_score(target_difficulty)
        subtype = self._rng.choice(self.SUBTYPES[tier])
        k = self._rng.randint(2, 6)
        m = self._rng.randint(1, 5)

        if subtype == "addition":
            relate, explanation = (lambda x: x + k), f"Each second number is the first plus {k}."
        elif subtype == "multiplication":
            relate, explanation = (lambda x: x * k), f"Each second number is the first times {k}."
        else:
            relate, explanation = (lambda x: x * k + m), f"Multiply by {k}, then add {m}."

        firsts = self._rng.sample(range(2, 15), 3)
        pairs: list[tuple[int, int | None]] = [(a, relate(a)) for a in firsts[:2]]
        answer = relate(firsts[2])
        pairs.append((firsts[2], None))

        options, index = self._shuffle_options(str(answer), self._numeric_distractors(answer, k))
        return NumberAnalogyPuzzle(
            question=f"{pairs[0][0]} : {pairs[0][1]} :: {pairs[1][0]} : {pairs[1][1]} :: {firsts[2]} : ?",
            options=options,
            correct_answer_index=index,
            explanation=explanation,
            puzzle_type=self.puzzle_type,
            subtype=subtype,
            difficulty_tier=tier,
            pairs=pairs,
        )


# =============================================================================
# Serial reasoning matrices
# =============================================================================


class SerialReasoningPuzzleProvider(PuzzleProvider):
    """Raven-style matrices combining shape rotation and count progression."""

    puzzle_type = "serial-reasoning"

    SHAPES = ["●", "■", "▲", "◆", "★"]
    SUBTYPES = {
        DifficultyTier.EASY: ["shift"],
        DifficultyTier.MEDIUM: ["progression"],
        DifficultyTier.HARD: ["combination"],
    }

    def generate(self, target_difficulty: float, recent_types: list[str]) -> Puzzle:
        tier = DifficultyTier.from_score(target_difficulty)
        subtype = self._rng.choice(self.SUBTYPES[tier])
        shapes = self._rng.sample(self.SHAPES, 3)

        if subtype == "shift":
            matrix = [[shapes[(r + c) % 3] for c in range(3)] for r in range(3)]
            explanation = "Each row is a shift of the previous row."
        elif subtype == "progression":
            matrix = [[shapes[r] * (c + 1) for c in range(3)] for r in range(3)]
            explanation = "Each row repeats its shape one more time per column."
        else:
            matrix = [[shapes[(r + c) % 3] * (c + 1) for c in range(3)] for r in range(3)]
            explanation = "Shapes rotate across rows while the count grows across columns."

        answer = matrix[2][2]
        matrix[2][2] = "?"
        shape = answer[0]
        distractors = [shape * 2, shape * 4, shapes[0] * len(answer), shapes[1] * len(answer), shape]
        options, index = self._shuffle_options(answer, distractors)
        return SerialReasoningPuzzle(
            question="Which figure completes the matrix?",
            options=options,
            correct_answer_index=index,
            explanation=explanation,
            puzzle_type=self.puzzle_type,
            subtype=subtype,
            difficulty_tier=tier,
            matrix=matrix,
        )


def default_providers(seed: int | None = None) -> dict[str, PuzzleProvider]:
    """One reference provider per enabled puzzle type."""
    rng = random.Random(seed)
    providers: dict[str, PuzzleProvider] = {}
    for cls in (
        PatternPuzzleProvider,
        SerialReasoningPuzzleProvider,
        NumberSeriesPuzzleProvider,
        NumberGridPuzzleProvider,
        NumberAnalogyPuzzleProvider,
    ):
        providers[cls.puzzle_type] = cls(rng=random.Random(rng.random()))
    logger.debug(f"Reference providers ready: {sorted(providers)}")
    return providers
