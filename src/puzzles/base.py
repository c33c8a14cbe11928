"""
Unified Puzzle Contract.

Every puzzle the engine handles is a `Puzzle`: a question, exactly four
options, the index of the correct option, an explanation and the
type/subtype/difficulty tags used for semantic caching.

Family-specific payloads (grids, number series, analogy pairs) live on
tagged variants. The engine core only touches the common fields plus
`layout_rows()`, which each variant uses to expose its visible elements
to the DNA analyzer without leaking its internal structure.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from uuid import uuid4

from src.puzzles.catalog import PuzzleFamily, get_family

OPTION_COUNT = 4


class DifficultyTier(str, Enum):
    """Coarse difficulty bucket used in semantic keys."""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

    @classmethod
    def from_score(cls, difficulty: float) -> DifficultyTier:
        """Bucket a 0-1 difficulty score (easy <= 0.4 < medium <= 0.7 < hard)."""
        if difficulty <= 0.4:
            return cls.EASY
        if difficulty <= 0.7:
            return cls.MEDIUM
        return cls.HARD

    @property
    def midpoint(self) -> float:
        return {
            DifficultyTier.EASY: 0.2,
            DifficultyTier.MEDIUM: 0.5,
            DifficultyTier.HARD: 0.8,
        }[self]


@dataclass
class Puzzle:
    """Common puzzle contract shared by every puzzle family."""
    question: str
    options: list[str]
    correct_answer_index: int
    explanation: str
    puzzle_type: str
    subtype: str
    difficulty_tier: DifficultyTier = DifficultyTier.MEDIUM
    puzzle_id: str = field(default_factory=lambda: uuid4().hex[:12])

    @property
    def semantic_key(self) -> str:
        """Structural identity: type_subtype_difficulty."""
        return f"{self.puzzle_type}_{self.subtype}_{self.difficulty_tier.value}"

    @property
    def family(self) -> PuzzleFamily | None:
        return get_family(self.puzzle_type)

    @property
    def correct_option(self) -> str:
        return self.options[self.correct_answer_index]

    def layout_rows(self) -> list[list[str]]:
        """Visible elements as rows of tokens. Text-only puzzles have none."""
        return []

    def is_correct(self, answer_index: int) -> bool:
        return answer_index == self.correct_answer_index

    def to_dict(self) -> dict:
        return {
            "puzzle_id": self.puzzle_id,
            "question": self.question,
            "options": list(self.options),
            "correct_answer_index": self.correct_answer_index,
            "explanation": self.explanation,
            "puzzle_type": self.puzzle_type,
            "subtype": self.subtype,
            "difficulty_tier": self.difficulty_tier.value,
        }


@dataclass
class PatternPuzzle(Puzzle):
    """3x3 symbol grid with one hidden cell."""
    grid: list[list[str]] = field(default_factory=list)

    def layout_rows(self) -> list[list[str]]:
        return [list(row) for row in self.grid]


@dataclass
class SerialReasoningPuzzle(Puzzle):
    """Raven-style matrix where rows follow a shared rule."""
    matrix: list[list[str]] = field(default_factory=list)

    def layout_rows(self) -> list[list[str]]:
        return [list(row) for row in self.matrix]


@dataclass
class NumberSeriesPuzzle(Puzzle):
    """Numeric sequence with the final term hidden."""
    series: list[int] = field(default_factory=list)
    hidden_index: int = -1

    def layout_rows(self) -> list[list[str]]:
        return [[str(n) if i != self.hidden_index else "?" for i, n in enumerate(self.series)]]


@dataclass
class NumberGridPuzzle(Puzzle):
    """3x3 number grid whose rows share an arithmetic rule."""
    grid: list[list[int | None]] = field(default_factory=list)

    def layout_rows(self) -> list[list[str]]:
        return [["?" if cell is None else str(cell) for cell in row] for row in self.grid]


@dataclass
class NumberAnalogyPuzzle(Puzzle):
    """A:B :: C:? numeric analogy."""
    pairs: list[tuple[int, int | None]] = field(default_factory=list)

    def layout_rows(self) -> list[list[str]]:
        return [[str(a), "?" if b is None else str(b)] for a, b in self.pairs]


class PuzzleValidator:
    """Structural checks every provider output must pass."""

    @staticmethod
    def validation_errors(puzzle: object) -> list[str]:
        if not isinstance(puzzle, Puzzle):
            return [f"expected Puzzle, got {type(puzzle).__name__}"]

        errors = []
        if not isinstance(puzzle.question, str) or not puzzle.question.strip():
            errors.append("question is empty")
        if not isinstance(puzzle.options, list) or len(puzzle.options) != OPTION_COUNT:
            errors.append(f"options must contain exactly {OPTION_COUNT} entries")
        elif any(not str(option).strip() for option in puzzle.options):
            errors.append("options contain an empty value")
        elif len(set(puzzle.options)) != len(puzzle.options):
            errors.append("options are not distinct")
        if not isinstance(puzzle.correct_answer_index, int) or not (
            0 <= puzzle.correct_answer_index < OPTION_COUNT
        ):
            errors.append("correct_answer_index out of range")
        if not isinstance(puzzle.explanation, str):
            errors.append("explanation must be a string")
        if not puzzle.puzzle_type or not puzzle.subtype:
            errors.append("puzzle_type and subtype are required")
        return errors

    @classmethod
    def is_valid(cls, puzzle: object) -> bool:
        return not cls.validation_errors(puzzle)
