"""
Pool Distributor.

Turns a UserStateClassification into a PoolStrategy: how many of the
candidates generated for this request come from each category.

Passes:
1. Base lookup by state (rescaled when the pool size is not 10)
2. Modifier adjustments (skipped for new_user / expert_demanding)
3. Pre-viral adjustment and strength focus for early-level users
4. Normalization onto the configured pool size
"""
from __future__ import annotations

from collections import defaultdict

from loguru import logger

from src.engine.constants import (
    BASE_POOL_DISTRIBUTIONS,
    BASE_POOL_SIZE,
    MODIFIER_ADJUSTMENTS,
    PRE_VIRAL_ADJUSTMENT,
    PROTECTED_STATES,
    STRENGTH_FOCUS_ADJUSTMENT,
)
from src.engine.engine_config import EngineConfig
from src.engine.exceptions import PoolInvariantError
from src.engine.models import PoolStrategy, UserProfile, UserStateClassification
from src.puzzles.catalog import PuzzleFamily, get_family


def _add(counts: list[int], delta: tuple[int, ...]) -> list[int]:
    return [c + d for c, d in zip(counts, delta)]


def rescale(counts: tuple[int, ...], pool_size: int) -> list[int]:
    """Scale a base row to another pool size using largest remainders."""
    if pool_size == BASE_POOL_SIZE:
        return list(counts)
    exact = [c * pool_size / BASE_POOL_SIZE for c in counts]
    scaled = [int(x) for x in exact]
    remainder = pool_size - sum(scaled)
    order = sorted(range(len(exact)), key=lambda i: exact[i] - scaled[i], reverse=True)
    for i in order[:remainder]:
        scaled[i] += 1
    return scaled


def normalize(counts: list[int], pool_size: int) -> list[int]:
    """Clamp negatives, then settle the difference on the largest bucket."""
    counts = [max(0, c) for c in counts]
    diff = pool_size - sum(counts)
    if diff > 0:
        counts[counts.index(max(counts))] += diff
    while diff < 0:
        largest = counts.index(max(counts))
        take = min(counts[largest], -diff)
        counts[largest] -= take
        diff += take
    return counts


class PoolDistributor:
    """Derives the category distribution for a classified user."""

    def __init__(self, config: EngineConfig):
        self.config = config

    def distribute(self, classification: UserStateClassification, profile: UserProfile) -> PoolStrategy:
        state = classification.base_state.value
        counts = rescale(BASE_POOL_DISTRIBUTIONS[state], self.config.pool_size)
        focus_family = None
        notes: list[str] = []

        if state not in PROTECTED_STATES:
            for modifier in classification.modifiers:
                counts = _add(counts, MODIFIER_ADJUSTMENTS[modifier.value])

            if profile.current_level < self.config.viral_level_threshold:
                counts = _add(counts, PRE_VIRAL_ADJUSTMENT)
                focus_family = self.detect_strength(profile)
                if focus_family is not None:
                    counts = _add(counts, STRENGTH_FOCUS_ADJUSTMENT)
                    notes.append(f"Strong in {focus_family.value} puzzles: focusing confidence builders there")

        normalized = normalize(counts, self.config.pool_size)
        strategy = PoolStrategy.from_counts(normalized, focus_family=focus_family, notes=notes)
        strategy = self.enforce_invariant(strategy)

        logger.debug(f"Pool for {profile.user_id} ({state}): {strategy.counts()}")
        return strategy

    def detect_strength(self, profile: UserProfile) -> PuzzleFamily | None:
        """
        Strong family when some family is at or above the strength threshold
        while another family is weak on at least the configured share of its
        attempted types.
        """
        by_family: dict[PuzzleFamily, list[tuple[int, int, float]]] = defaultdict(list)
        for puzzle_type, stats in profile.puzzle_type_stats.items():
            family = get_family(puzzle_type)
            if family is None or stats.attempts == 0:
                continue
            by_family[family].append((stats.attempts, stats.correct, stats.accuracy))

        strong: list[tuple[float, PuzzleFamily]] = []
        weak: set[PuzzleFamily] = set()
        for family, rows in by_family.items():
            attempts = sum(r[0] for r in rows)
            accuracy = sum(r[1] for r in rows) / attempts
            if accuracy >= self.config.strength_accuracy_threshold:
                strong.append((accuracy, family))
            weak_types = sum(1 for r in rows if r[2] < self.config.weakness_accuracy_threshold)
            if weak_types / len(rows) >= self.config.weakness_share_threshold:
                weak.add(family)

        for _, family in sorted(strong, key=lambda x: x[0], reverse=True):
            if weak - {family}:
                return family
        return None

    def enforce_invariant(self, strategy: PoolStrategy) -> PoolStrategy:
        """Raise in strict mode, otherwise repair a strategy that breaks the pool-size sum."""
        counts = strategy.counts()
        if all(c >= 0 for c in counts) and sum(counts) == self.config.pool_size:
            return strategy
        message = f"Pool {counts} does not sum to {self.config.pool_size}"
        if self.config.strict_invariants:
            raise PoolInvariantError(message)
        logger.warning(f"{message}; auto-correcting")
        return PoolStrategy.from_counts(normalize(counts, self.config.pool_size), strategy.focus_family, strategy.notes)
