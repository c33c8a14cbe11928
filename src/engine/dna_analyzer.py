"""
Puzzle Characterization Analyzer.

Computes a PuzzleDNA for any puzzle instance from three feature groups:

- Visual complexity: element count, symbol variety, density, layout,
  symmetry, noise (from `Puzzle.layout_rows()`)
- Logical complexity: rule depth, sophistication, abstraction,
  multi-step flag, memory tier, relationship types
- Cognitive load: estimated solve time and error-proneness

Difficulty formula (before blending with the declared tier):

    0.3
    + elements/20 * 0.10 + variety/20 * 0.10 + noise * 0.05
    + depth/5 * 0.15 + sophistication * 0.10 + abstraction * 0.08
    + solve_ms/60000 * 0.05 + error_proneness * 0.05
    + 0.05 multi-step + 0.08 high memory / 0.03 medium memory

Results are cached per semantic key (LRU). Discovered difficulty and
engagement drift toward observed outcomes with an EMA whose strength
grows with the number of observations.
"""
from __future__ import annotations

from collections import OrderedDict

from loguru import logger

from src.engine.constants import (
    DNA_LEARNING,
    DNA_NORMALIZERS,
    DNA_STATIC_BLEND,
    DNA_WEIGHTS,
    MEMORY_THRESHOLDS,
    TIMING,
)
from src.engine.models import CognitiveLoad, LogicalComplexity, PuzzleDNA, VisualComplexity
from src.puzzles.base import DifficultyTier, Puzzle
from src.puzzles.catalog import PuzzleFamily, get_type_info

HIDDEN_CELL = "?"

FAMILY_ABSTRACTION = {
    PuzzleFamily.VISUAL: 0.3,
    PuzzleFamily.LOGICAL: 0.7,
    PuzzleFamily.MATHEMATICAL: 0.5,
    PuzzleFamily.SPATIAL: 0.6,
    PuzzleFamily.MEMORY: 0.4,
}

FAMILY_RELATIONSHIPS = {
    PuzzleFamily.VISUAL: {"positional", "sequential"},
    PuzzleFamily.LOGICAL: {"transformational", "sequential"},
    PuzzleFamily.MATHEMATICAL: {"arithmetic"},
    PuzzleFamily.SPATIAL: {"positional", "transformational"},
    PuzzleFamily.MEMORY: {"positional"},
}

TIER_DEPTH = {DifficultyTier.EASY: 0, DifficultyTier.MEDIUM: 1, DifficultyTier.HARD: 2}
MEMORY_RANK = {"low": 0, "medium": 1, "high": 2}


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


class PuzzleDNAAnalyzer:
    """Static puzzle analysis with a bounded semantic-key cache."""

    def __init__(self, cache_size: int = 100):
        self.cache_size = cache_size
        self._cache: OrderedDict[str, PuzzleDNA] = OrderedDict()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, semantic_key: str) -> bool:
        return semantic_key in self._cache

    def analyze(self, puzzle: Puzzle) -> PuzzleDNA:
        key = puzzle.semantic_key
        cached = self._cache.get(key)
        if cached is not None:
            self._cache.move_to_end(key)
            self.hits += 1
            return cached

        self.misses += 1
        dna = self._characterize(puzzle)
        self._store(dna)
        return dna

    def get(self, semantic_key: str) -> PuzzleDNA | None:
        return self._cache.get(semantic_key)

    def record_outcome(self, dna: PuzzleDNA, success: bool, engagement: float) -> PuzzleDNA:
        """
        Move discovered fields toward observed behavior.

        new = 0.7 * observed + 0.3 * prior, applied with strength
        min(1, observations / 10).
        """
        dna.observation_count += 1
        n = dna.observation_count
        dna.success_rate += ((1.0 if success else 0.0) - dna.success_rate) / n

        confidence = min(1.0, n / DNA_LEARNING["confidence_saturation"])
        new_w, prior_w = DNA_LEARNING["new_weight"], DNA_LEARNING["prior_weight"]

        observed_difficulty = 1.0 - dna.success_rate
        target = new_w * observed_difficulty + prior_w * dna.discovered_difficulty
        dna.discovered_difficulty = _clamp(
            dna.discovered_difficulty + confidence * (target - dna.discovered_difficulty)
        )

        target = new_w * _clamp(engagement) + prior_w * dna.engagement_potential
        dna.engagement_potential = _clamp(
            dna.engagement_potential + confidence * (target - dna.engagement_potential)
        )

        # Re-insert so an evicted entry that was still referenced keeps learning
        self._store(dna)
        return dna

    def export_cache(self) -> list[dict]:
        return [dna.to_dict() for dna in self._cache.values()]

    def import_cache(self, entries: list[dict]) -> int:
        loaded = 0
        for entry in entries:
            try:
                self._store(PuzzleDNA.from_dict(entry))
                loaded += 1
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed DNA entry: {e}")
        return loaded

    def clear(self) -> None:
        self._cache.clear()

    # ------------------------------------------------------------------
    # Feature extraction
    # ------------------------------------------------------------------

    def _store(self, dna: PuzzleDNA) -> None:
        self._cache[dna.semantic_key] = dna
        self._cache.move_to_end(dna.semantic_key)
        while len(self._cache) > self.cache_size:
            evicted, _ = self._cache.popitem(last=False)
            logger.debug(f"Evicted DNA {evicted}")

    def _characterize(self, puzzle: Puzzle) -> PuzzleDNA:
        info = get_type_info(puzzle.puzzle_type)
        visual = self.visual_features(puzzle)
        logical = self.logical_features(puzzle, visual)
        load = self.cognitive_features(visual, logical)

        raw = self.difficulty_score(visual, logical, load)
        static = _clamp(DNA_STATIC_BLEND * raw + (1 - DNA_STATIC_BLEND) * puzzle.difficulty_tier.midpoint)

        # Mid-range challenge with some visual variety is the most engaging
        variety = _clamp(visual.color_variety / DNA_NORMALIZERS["color_variety"])
        engagement = _clamp(0.4 + 0.3 * (1 - abs(static - 0.55) * 2) + 0.2 * variety)

        dna = PuzzleDNA(
            semantic_key=puzzle.semantic_key,
            puzzle_type=puzzle.puzzle_type,
            subtype=puzzle.subtype,
            difficulty_tier=puzzle.difficulty_tier,
            static_difficulty=static,
            discovered_difficulty=static,
            engagement_potential=engagement,
            skill_targets={s.value for s in info.skill_targets} if info else set(),
            visual_complexity=visual,
            logical_complexity=logical,
            cognitive_load=load,
        )
        logger.debug(f"DNA {dna.semantic_key}: raw={raw:.3f} static={static:.3f}")
        return dna

    @staticmethod
    def visual_features(puzzle: Puzzle) -> VisualComplexity:
        rows = puzzle.layout_rows()
        cells = [cell for row in rows for cell in row]
        if not cells:
            return VisualComplexity()

        visible = [c for c in cells if c and c != HIDDEN_CELL]
        unique = len(set(visible))
        widths = {len(row) for row in rows}
        if len(rows) == 1:
            layout = "linear"
        elif len(widths) == 1 and widths.pop() > 1:
            layout = "grid"
        else:
            layout = "scattered"

        symmetric_rows = sum(1 for row in rows if len(row) > 1 and row == row[::-1])
        symmetry = symmetric_rows / len(rows)
        noise = (unique / len(visible) if visible else 0.0) * (1 - 0.5 * symmetry)

        return VisualComplexity(
            element_count=len(cells),
            color_variety=unique,
            spatial_density=len(visible) / len(cells),
            layout=layout,
            symmetry_score=round(symmetry, 3),
            visual_noise=round(_clamp(noise), 3),
        )

    @staticmethod
    def logical_features(puzzle: Puzzle, visual: VisualComplexity) -> LogicalComplexity:
        info = get_type_info(puzzle.puzzle_type)
        base_complexity = info.base_complexity if info else 0.5
        family = info.family if info else None

        depth = 1 + TIER_DEPTH[puzzle.difficulty_tier] + (1 if base_complexity >= 0.6 else 0)
        depth = max(1, min(5, depth))

        sophistication = _clamp(0.5 * base_complexity + 0.5 * puzzle.difficulty_tier.midpoint)
        abstraction = FAMILY_ABSTRACTION.get(family, 0.5)
        if puzzle.difficulty_tier == DifficultyTier.HARD:
            abstraction += 0.1

        if visual.element_count >= MEMORY_THRESHOLDS["high"]:
            memory = "high"
        elif visual.element_count >= MEMORY_THRESHOLDS["medium"]:
            memory = "medium"
        else:
            memory = "low"
        declared = info.memory_tier if info else "low"
        if MEMORY_RANK[declared] > MEMORY_RANK[memory]:
            memory = declared

        relationships = set(FAMILY_RELATIONSHIPS.get(family, set()))
        relationships.add(puzzle.subtype)

        return LogicalComplexity(
            rule_depth=depth,
            pattern_sophistication=round(sophistication, 3),
            abstraction_level=round(_clamp(abstraction), 3),
            multi_step=depth >= 3,
            memory_requirement=memory,
            relationship_types=relationships,
        )

    @staticmethod
    def cognitive_features(visual: VisualComplexity, logical: LogicalComplexity) -> CognitiveLoad:
        solve_ms = (
            TIMING["base_solve_ms"]
            + TIMING["per_element_ms"] * visual.element_count
            + TIMING["per_rule_depth_ms"] * logical.rule_depth
            + TIMING["per_unique_element_ms"] * visual.color_variety
        )
        error_proneness = (
            0.1
            + 0.2 * logical.pattern_sophistication
            + 0.15 * (logical.rule_depth - 1) / 4
            + (0.1 if logical.multi_step else 0.0)
        )
        return CognitiveLoad(
            estimated_solve_time_ms=min(solve_ms, TIMING["max_solve_ms"]),
            error_proneness=round(_clamp(error_proneness), 3),
        )

    @staticmethod
    def difficulty_score(visual: VisualComplexity, logical: LogicalComplexity, load: CognitiveLoad) -> float:
        w, norm = DNA_WEIGHTS, DNA_NORMALIZERS
        score = w["base"]
        score += visual.element_count / norm["element_count"] * w["element_count"]
        score += visual.color_variety / norm["color_variety"] * w["color_variety"]
        score += visual.visual_noise * w["visual_noise"]
        score += logical.rule_depth / norm["rule_depth"] * w["rule_depth"]
        score += logical.pattern_sophistication * w["sophistication"]
        score += logical.abstraction_level * w["abstraction"]
        score += load.estimated_solve_time_ms / norm["solve_time_ms"] * w["solve_time"]
        score += load.error_proneness * w["error_proneness"]
        if logical.multi_step:
            score += w["multi_step_bonus"]
        if logical.memory_requirement == "high":
            score += w["high_memory_bonus"]
        elif logical.memory_requirement == "medium":
            score += w["medium_memory_bonus"]
        return _clamp(score)
