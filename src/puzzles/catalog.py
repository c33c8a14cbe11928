"""
Puzzle Type Catalog.

Single source of truth for every puzzle type the engine knows about:
family, enabled status, default generation weight and the static
characteristics the DNA analyzer starts from.

Toggle `enabled` here to remove a type from candidate generation;
the rest of the engine adapts automatically.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class PuzzleFamily(str, Enum):
    """Broad family used for strength detection and category targeting."""
    VISUAL = "visual"
    LOGICAL = "logical"
    MATHEMATICAL = "mathematical"
    SPATIAL = "spatial"
    MEMORY = "memory"


class SkillTarget(str, Enum):
    """Cognitive skill exercised by a puzzle."""
    PATTERN_RECOGNITION = "pattern_recognition"
    LOGICAL_REASONING = "logical_reasoning"
    SPATIAL_VISUALIZATION = "spatial_visualization"
    WORKING_MEMORY = "working_memory"
    PROCESSING_SPEED = "processing_speed"
    ATTENTION_CONTROL = "attention_control"
    MATHEMATICAL_REASONING = "mathematical_reasoning"
    VERBAL_REASONING = "verbal_reasoning"
    ABSTRACT_REASONING = "abstract_reasoning"


@dataclass(frozen=True)
class PuzzleTypeInfo:
    """Static description of a puzzle type."""
    name: str
    family: PuzzleFamily
    display_name: str
    description: str
    enabled: bool = True
    weight: float = 1.0
    base_complexity: float = 0.5     # prior used when nothing else is known
    beginner_friendly: bool = False
    memory_tier: str = "low"         # low, medium, high
    skill_targets: frozenset[SkillTarget] = field(default_factory=frozenset)


PUZZLE_TYPES: dict[str, PuzzleTypeInfo] = {
    "pattern": PuzzleTypeInfo(
        name="pattern",
        family=PuzzleFamily.VISUAL,
        display_name="Pattern Recognition",
        description="Visual grid patterns with symbols",
        base_complexity=0.3,
        beginner_friendly=True,
        skill_targets=frozenset({
            SkillTarget.PATTERN_RECOGNITION,
            SkillTarget.SPATIAL_VISUALIZATION,
            SkillTarget.ATTENTION_CONTROL,
        }),
    ),
    "serial-reasoning": PuzzleTypeInfo(
        name="serial-reasoning",
        family=PuzzleFamily.LOGICAL,
        display_name="Serial Reasoning",
        description="Matrix completion puzzles (Raven's style)",
        base_complexity=0.7,
        memory_tier="high",
        skill_targets=frozenset({
            SkillTarget.LOGICAL_REASONING,
            SkillTarget.ABSTRACT_REASONING,
            SkillTarget.WORKING_MEMORY,
        }),
    ),
    "number-series": PuzzleTypeInfo(
        name="number-series",
        family=PuzzleFamily.MATHEMATICAL,
        display_name="Number Series",
        description="Number sequence patterns (2, 4, 8, 16 ...)",
        base_complexity=0.4,
        memory_tier="medium",
        skill_targets=frozenset({
            SkillTarget.MATHEMATICAL_REASONING,
            SkillTarget.PATTERN_RECOGNITION,
        }),
    ),
    "number-grid": PuzzleTypeInfo(
        name="number-grid",
        family=PuzzleFamily.MATHEMATICAL,
        display_name="Number Grid",
        description="3x3 mathematical grid patterns",
        base_complexity=0.6,
        memory_tier="high",
        skill_targets=frozenset({
            SkillTarget.MATHEMATICAL_REASONING,
            SkillTarget.WORKING_MEMORY,
            SkillTarget.SPATIAL_VISUALIZATION,
        }),
    ),
    "number-analogy": PuzzleTypeInfo(
        name="number-analogy",
        family=PuzzleFamily.MATHEMATICAL,
        display_name="Number Analogy",
        description="Numerical relationships (5:8 :: 7:?)",
        base_complexity=0.5,
        beginner_friendly=True,
        memory_tier="medium",
        skill_targets=frozenset({
            SkillTarget.MATHEMATICAL_REASONING,
            SkillTarget.ABSTRACT_REASONING,
        }),
    ),
    "algebraic-reasoning": PuzzleTypeInfo(
        name="algebraic-reasoning",
        family=PuzzleFamily.MATHEMATICAL,
        display_name="Algebraic Reasoning",
        description="Equation solving (x + 5 = 12)",
        enabled=False,
        weight=0.0,
        base_complexity=0.8,
        memory_tier="medium",
        skill_targets=frozenset({SkillTarget.MATHEMATICAL_REASONING}),
    ),
    "transformation": PuzzleTypeInfo(
        name="transformation",
        family=PuzzleFamily.VISUAL,
        display_name="Transformation",
        description="Complex shape grids with properties",
        enabled=False,
        weight=0.0,
        base_complexity=0.9,
        memory_tier="high",
        skill_targets=frozenset({
            SkillTarget.SPATIAL_VISUALIZATION,
            SkillTarget.ABSTRACT_REASONING,
        }),
    ),
}

# Legacy spellings seen in stored profiles and older clients
_LEGACY_NAMES: dict[str, str] = {
    "numberSeries": "number-series",
    "numberAnalogy": "number-analogy",
    "algebraicReasoning": "algebraic-reasoning",
    "serialReasoning": "serial-reasoning",
    "numberGrid": "number-grid",
    "Number Series": "number-series",
    "Pattern Recognition": "pattern",
    "Algebraic Reasoning": "algebraic-reasoning",
    "Serial Reasoning": "serial-reasoning",
    "Number Analogy": "number-analogy",
}


def normalize_puzzle_type(name: str) -> str | None:
    """Map any known spelling of a puzzle type to its canonical kebab-case name."""
    if name in PUZZLE_TYPES:
        return name
    return _LEGACY_NAMES.get(name)


def get_type_info(name: str) -> PuzzleTypeInfo | None:
    canonical = normalize_puzzle_type(name)
    return PUZZLE_TYPES.get(canonical) if canonical else None


def get_enabled_types() -> list[str]:
    """Enabled puzzle type names, in catalog order."""
    return [name for name, info in PUZZLE_TYPES.items() if info.enabled]


def get_types_by_family(family: PuzzleFamily, enabled_only: bool = True) -> list[str]:
    return [
        name for name, info in PUZZLE_TYPES.items()
        if info.family == family and (info.enabled or not enabled_only)
    ]


def get_family(name: str) -> PuzzleFamily | None:
    info = get_type_info(name)
    return info.family if info else None
