"""
Puzzle contract, type catalog and reference providers.
"""
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
from src.puzzles.catalog import (
    PUZZLE_TYPES,
    PuzzleFamily,
    get_enabled_types,
    get_family,
    get_type_info,
    get_types_by_family,
    normalize_puzzle_type,
)
from src.puzzles.providers import (
    NumberAnalogyPuzzleProvider,
    NumberGridPuzzleProvider,
    NumberSeriesPuzzleProvider,
    PatternPuzzleProvider,
    PuzzleProvider,
    SerialReasoningPuzzleProvider,
    default_providers,
)
from src.puzzles.registry import FALLBACK_PUZZLE_TYPE, ProviderRegistry

__all__ = [
    "DifficultyTier",
    "NumberAnalogyPuzzle",
    "NumberGridPuzzle",
    "NumberSeriesPuzzle",
    "PatternPuzzle",
    "Puzzle",
    "PuzzleValidator",
    "SerialReasoningPuzzle",
    "PUZZLE_TYPES",
    "PuzzleFamily",
    "get_enabled_types",
    "get_family",
    "get_type_info",
    "get_types_by_family",
    "normalize_puzzle_type",
    "NumberAnalogyPuzzleProvider",
    "NumberGridPuzzleProvider",
    "NumberSeriesPuzzleProvider",
    "PatternPuzzleProvider",
    "PuzzleProvider",
    "SerialReasoningPuzzleProvider",
    "default_providers",
    "FALLBACK_PUZZLE_TYPE",
    "ProviderRegistry",
]
