"""
Provider registry.

Maps canonical puzzle type names to providers and names the fallback
provider used when a slot cannot be filled.
"""
from __future__ import annotations

from typing import Iterable

from loguru import logger

from src.puzzles.catalog import get_enabled_types, normalize_puzzle_type
from src.puzzles.providers import PuzzleProvider, default_providers

FALLBACK_PUZZLE_TYPE = "pattern"


class ProviderRegistry:
    """Lookup of puzzle providers by type."""

    def __init__(
        self,
        providers: dict[str, PuzzleProvider],
        fallback_type: str = FALLBACK_PUZZLE_TYPE,
    ):
        self._providers: dict[str, PuzzleProvider] = {}
        for name, provider in providers.items():
            self.register(name, provider)
        self.fallback_type = normalize_puzzle_type(fallback_type) or fallback_type

    @classmethod
    def with_defaults(cls, seed: int | None = None) -> ProviderRegistry:
        return cls(default_providers(seed))

    def register(self, puzzle_type: str, provider: PuzzleProvider) -> None:
        canonical = normalize_puzzle_type(puzzle_type) or puzzle_type
        self._providers[canonical] = provider

    def get(self, puzzle_type: str) -> PuzzleProvider | None:
        canonical = normalize_puzzle_type(puzzle_type) or puzzle_type
        return self._providers.get(canonical)

    @property
    def fallback(self) -> PuzzleProvider | None:
        provider = self._providers.get(self.fallback_type)
        if provider is None:
            logger.warning(f"No fallback provider registered for '{self.fallback_type}'")
        return provider

    def available_types(self, candidates: Iterable[str] | None = None) -> list[str]:
        """Enabled catalog types that have a registered provider."""
        names = candidates if candidates is not None else get_enabled_types()
        return [name for name in names if name in self._providers]

    def __contains__(self, puzzle_type: str) -> bool:
        return self.get(puzzle_type) is not None

    def __len__(self) -> int:
        return len(self._providers)
