"""
Candidate Generator.

Fills the candidate pool described by a PoolStrategy by asking puzzle
providers for puzzles at category-specific target difficulties.

Category targeting:
- confidence_builders: strongest types (beginner-friendly for unknown users), skill - 0.15
- skill_development: mid-accuracy types, skill
- progressive_challenge: types near or above skill, skill + 0.15
- engagement_recovery: most-preferred types, skill - 0.1
- exploratory_new: least-attempted types, skill

Providers run concurrently. A failing slot is backfilled from the
fallback provider, or skipped if that fails too; generation never
aborts the whole pool.

A forced puzzle type replaces the ranked type of every slot while keeping
the category targets.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Sequence

from loguru import logger

from src.engine.constants import (
    CATEGORY_DIFFICULTY_OFFSETS,
    MAX_TARGET_DIFFICULTY,
    MIN_TARGET_DIFFICULTY,
)
from src.engine.exceptions import PuzzleGenerationError
from src.engine.models import Candidate, PoolCategory, PoolStrategy, UserProfile
from src.puzzles.base import Puzzle, PuzzleValidator
from src.puzzles.catalog import PuzzleFamily, get_type_info, normalize_puzzle_type
from src.puzzles.providers import PuzzleProvider
from src.puzzles.registry import ProviderRegistry

MID_ACCURACY = 0.6


@dataclass
class SlotRequest:
    category: PoolCategory
    puzzle_type: str
    target_difficulty: float


def target_difficulty(skill: float, category: PoolCategory) -> float:
    target = skill + CATEGORY_DIFFICULTY_OFFSETS[category.value]
    return max(MIN_TARGET_DIFFICULTY, min(MAX_TARGET_DIFFICULTY, target))


class CandidateGenerator:
    """Builds the candidate list for one recommendation request."""

    def __init__(self, registry: ProviderRegistry):
        self.registry = registry

    async def generate(
        self,
        strategy: PoolStrategy,
        profile: UserProfile,
        recent_types: Sequence[str] = (),
        force_type: str | None = None,
    ) -> list[Candidate]:
        if force_type is not None:
            # Every slot asks for the forced type; unregistered types backfill from the fallback
            canonical = normalize_puzzle_type(force_type) or force_type
            if canonical not in self.registry:
                logger.warning(f"No provider for forced type '{force_type}'; slots use the fallback provider")
            types = [canonical]
        else:
            types = self.registry.available_types()
        if not types:
            logger.warning("No registered providers for any enabled puzzle type")
            return []

        requests = self.plan(strategy, profile, types, recent_types)
        results = await asyncio.gather(
            *(self._fill_slot(request, recent_types) for request in requests)
        )
        candidates = [c for c in results if c is not None]

        skipped = len(requests) - len(candidates)
        if skipped:
            logger.warning(f"Skipped {skipped}/{len(requests)} candidate slots for {profile.user_id}")
        return candidates

    def plan(
        self,
        strategy: PoolStrategy,
        profile: UserProfile,
        types: list[str],
        recent_types: Sequence[str] = (),
    ) -> list[SlotRequest]:
        """Assign a puzzle type and target difficulty to every slot."""
        requests = []
        last_type = recent_types[-1] if recent_types else None
        for category, quota in strategy.items():
            if quota <= 0:
                continue
            ranked = self.rank_types(category, profile, types, strategy.focus_family)
            # Don't lead with the type the learner just played
            if len(ranked) > 1 and ranked[0] == last_type:
                ranked = ranked[1:] + ranked[:1]
            target = target_difficulty(profile.current_skill_level, category)
            for i in range(quota):
                requests.append(SlotRequest(category, ranked[i % len(ranked)], target))
        return requests

    @staticmethod
    def rank_types(
        category: PoolCategory,
        profile: UserProfile,
        types: list[str],
        focus_family: PuzzleFamily | None = None,
    ) -> list[str]:
        stats = profile.puzzle_type_stats

        def attempts(t: str) -> int:
            return stats[t].attempts if t in stats else 0

        def accuracy(t: str) -> float:
            return stats[t].accuracy if attempts(t) else 0.0

        if category == PoolCategory.CONFIDENCE_BUILDERS:
            if not any(attempts(t) for t in types):
                ranked = sorted(types, key=lambda t: not _beginner_friendly(t))
            else:
                ranked = sorted(types, key=lambda t: (attempts(t) == 0, -accuracy(t)))
            if focus_family is not None:
                ranked = sorted(ranked, key=lambda t: _family(t) != focus_family)
            return ranked

        if category == PoolCategory.SKILL_DEVELOPMENT:
            return sorted(types, key=lambda t: (attempts(t) == 0, abs(accuracy(t) - MID_ACCURACY)))

        if category == PoolCategory.PROGRESSIVE_CHALLENGE:
            goal = target_difficulty(profile.current_skill_level, category)
            return sorted(types, key=lambda t: abs(_base_complexity(t) - goal))

        if category == PoolCategory.ENGAGEMENT_RECOVERY:
            return sorted(
                types,
                key=lambda t: -(stats[t].preference_score if t in stats else 0.5),
            )

        return sorted(types, key=attempts)

    async def _fill_slot(self, request: SlotRequest, recent_types: Sequence[str]) -> Candidate | None:
        provider = self.registry.get(request.puzzle_type)
        puzzle = await self._try_provider(provider, request, recent_types)

        if puzzle is None and request.puzzle_type != self.registry.fallback_type:
            fallback = self.registry.fallback
            puzzle = await self._try_provider(fallback, request, recent_types)
            if puzzle is not None:
                logger.info(f"Backfilled {request.category.value} slot with fallback '{puzzle.puzzle_type}'")

        if puzzle is None:
            return None
        return Candidate(puzzle=puzzle, category=request.category, target_difficulty=request.target_difficulty)

    @staticmethod
    async def _try_provider(
        provider: PuzzleProvider | None,
        request: SlotRequest,
        recent_types: Sequence[str],
    ) -> Puzzle | None:
        if provider is None:
            return None
        try:
            puzzle = await provider.produce(request.target_difficulty, list(recent_types))
        except PuzzleGenerationError as e:
            logger.warning(str(e))
            return None
        except Exception as e:
            logger.warning(f"Provider for '{request.puzzle_type}' raised {type(e).__name__}: {e}")
            return None

        errors = PuzzleValidator.validation_errors(puzzle)
        if errors:
            logger.warning(f"Provider for '{request.puzzle_type}' returned invalid puzzle: {'; '.join(errors)}")
            return None
        return puzzle


def _beginner_friendly(name: str) -> bool:
    info = get_type_info(name)
    return bool(info and info.beginner_friendly)


def _family(name: str) -> PuzzleFamily | None:
    info = get_type_info(name)
    return info.family if info else None


def _base_complexity(name: str) -> float:
    info = get_type_info(name)
    return info.base_complexity if info else 0.5
