"""
Engine domain models.

Dataclasses shared across the recommendation pipeline:

- UserProfile: Long-term learner state (persisted by the profile store)
- BehavioralPattern: Rolling buffer of per-puzzle snapshots
- SessionContext: Ephemeral per-session state
- PuzzleDNA: Static + discovered characterization of a puzzle signature
- UserStateClassification / PoolStrategy: Per-request decisions
- PuzzleRecommendation / CompletionOutcome / FeedbackResult: Request and
  completion payloads
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Iterator
from uuid import uuid4

from src.engine.constants import USER_DEFAULTS
from src.puzzles.base import DifficultyTier, Puzzle
from src.puzzles.catalog import PuzzleFamily


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _parse_dt(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if value:
        return datetime.fromisoformat(value)
    return _utcnow()


# =============================================================================
# Enums
# =============================================================================


class UserState(str, Enum):
    """Mutually exclusive learning states, in classification priority order."""
    NEW_USER = "new_user"
    SEVERELY_STRUGGLING = "severely_struggling"
    STRUGGLING = "struggling"
    FALLING_BACK = "falling_back"
    EXPERT_DEMANDING = "expert_demanding"
    EXCELLING = "excelling"
    PROGRESSING = "progressing"
    STABLE = "stable"

    @property
    def is_struggling(self) -> bool:
        return self in (
            UserState.SEVERELY_STRUGGLING,
            UserState.STRUGGLING,
            UserState.FALLING_BACK,
        )


class StateModifier(str, Enum):
    """Independent flags layered on top of the base state."""
    CONFIDENCE_CRISIS = "confidence_crisis"
    DISENGAGED = "disengaged"
    POWER_DEPENDENT = "power_dependent"
    FATIGUED = "fatigued"
    SESSION_DECLINE = "session_decline"


class PoolCategory(str, Enum):
    """Candidate pool categories, in distribution-table order."""
    CONFIDENCE_BUILDERS = "confidence_builders"
    SKILL_DEVELOPMENT = "skill_development"
    PROGRESSIVE_CHALLENGE = "progressive_challenge"
    ENGAGEMENT_RECOVERY = "engagement_recovery"
    EXPLORATORY_NEW = "exploratory_new"

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()


# =============================================================================
# Profile
# =============================================================================


@dataclass
class CognitiveProfile:
    """Slow-moving cognitive estimates, all in [0, 1]."""
    processing_speed: float = USER_DEFAULTS["cognitive_default"]
    working_memory_capacity: float = USER_DEFAULTS["cognitive_default"]
    attention_control: float = USER_DEFAULTS["cognitive_default"]
    error_recovery: float = USER_DEFAULTS["cognitive_default"]

    def to_dict(self) -> dict[str, float]:
        return {
            "processing_speed": self.processing_speed,
            "working_memory_capacity": self.working_memory_capacity,
            "attention_control": self.attention_control,
            "error_recovery": self.error_recovery,
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> CognitiveProfile:
        data = data or {}
        return cls(**{k: float(v) for k, v in data.items() if k in cls.__dataclass_fields__})


@dataclass
class PuzzleTypeStats:
    """Per puzzle-type performance for one user."""
    attempts: int = 0
    correct: int = 0
    accuracy: float = 0.0
    avg_response_time_ms: float = 0.0
    preference_score: float = USER_DEFAULTS["preference_default"]

    def to_dict(self) -> dict[str, float]:
        return {
            "attempts": self.attempts,
            "correct": self.correct,
            "accuracy": self.accuracy,
            "avg_response_time_ms": self.avg_response_time_ms,
            "preference_score": self.preference_score,
        }

    @classmethod
    def from_dict(cls, data: dict) -> PuzzleTypeStats:
        return cls(
            attempts=int(data.get("attempts", 0)),
            correct=int(data.get("correct", 0)),
            accuracy=float(data.get("accuracy", 0.0)),
            avg_response_time_ms=float(data.get("avg_response_time_ms", 0.0)),
            preference_score=float(data.get("preference_score", USER_DEFAULTS["preference_default"])),
        )


@dataclass
class BehavioralSnapshot:
    """One completed puzzle as seen by the behavior tracker."""
    puzzle_type: str
    difficulty: float
    success: bool
    response_time_ms: float
    engagement: float = 0.5
    power_up_used: bool = False
    expected_success: float = 0.5
    timestamp: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "puzzle_type": self.puzzle_type,
            "difficulty": self.difficulty,
            "success": self.success,
            "response_time_ms": self.response_time_ms,
            "engagement": self.engagement,
            "power_up_used": self.power_up_used,
            "expected_success": self.expected_success,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> BehavioralSnapshot:
        return cls(
            puzzle_type=data["puzzle_type"],
            difficulty=float(data.get("difficulty", 0.5)),
            success=bool(data.get("success", False)),
            response_time_ms=float(data.get("response_time_ms", 0.0)),
            engagement=float(data.get("engagement", 0.5)),
            power_up_used=bool(data.get("power_up_used", False)),
            expected_success=float(data.get("expected_success", 0.5)),
            timestamp=_parse_dt(data.get("timestamp")),
        )


@dataclass
class BehavioralPattern:
    """
    Rolling buffer of recent snapshots plus derived aggregates.

    Aggregates are recomputed by BehaviorTracker whenever the buffer changes.
    `session_start_index` marks where the current session begins in the
    buffer so session-scoped aggregates can be reset at session start.
    """
    snapshots: list[BehavioralSnapshot] = field(default_factory=list)
    max_size: int = 50
    accuracy_trend: float = 0.0
    engagement_level: float = 0.5
    consecutive_failures: int = 0
    session_performance_decline: float = 0.0
    power_up_dependency: float = 0.0
    session_start_index: int = 0

    def __len__(self) -> int:
        return len(self.snapshots)

    def recent(self, window: int) -> list[BehavioralSnapshot]:
        return self.snapshots[-window:] if window > 0 else []

    def recent_success_rate(self, window: int = 5) -> float | None:
        """Success rate over the last `window` snapshots, None when empty."""
        recent = self.recent(window)
        if not recent:
            return None
        return sum(1 for s in recent if s.success) / len(recent)

    @property
    def session_snapshots(self) -> list[BehavioralSnapshot]:
        return self.snapshots[self.session_start_index:]

    def to_dict(self) -> dict[str, Any]:
        return {
            "snapshots": [s.to_dict() for s in self.snapshots],
            "max_size": self.max_size,
            "accuracy_trend": self.accuracy_trend,
            "engagement_level": self.engagement_level,
            "consecutive_failures": self.consecutive_failures,
            "session_performance_decline": self.session_performance_decline,
            "power_up_dependency": self.power_up_dependency,
            "session_start_index": self.session_start_index,
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> BehavioralPattern:
        data = data or {}
        return cls(
            snapshots=[BehavioralSnapshot.from_dict(s) for s in data.get("snapshots", [])],
            max_size=int(data.get("max_size", 50)),
            accuracy_trend=float(data.get("accuracy_trend", 0.0)),
            engagement_level=float(data.get("engagement_level", 0.5)),
            consecutive_failures=int(data.get("consecutive_failures", 0)),
            session_performance_decline=float(data.get("session_performance_decline", 0.0)),
            power_up_dependency=float(data.get("power_up_dependency", 0.0)),
            session_start_index=int(data.get("session_start_index", 0)),
        )


@dataclass
class UserProfile:
    """
    Long-term learner state.

    Mutated only by the feedback updater and session bookkeeping;
    recommendation works on a copy.
    """
    user_id: str
    total_sessions: int = 0
    total_puzzles_solved: int = 0
    total_correct: int = 0
    overall_accuracy: float = 0.0
    current_skill_level: float = USER_DEFAULTS["initial_skill_level"]
    skill_momentum: float = 0.0
    learning_velocity: float = 0.0
    preferred_difficulty: float = USER_DEFAULTS["initial_preferred_difficulty"]
    current_max_difficulty: float = USER_DEFAULTS["initial_max_difficulty"]
    current_level: int = USER_DEFAULTS["initial_level"]
    engagement_level: float = 0.5
    cognitive_profile: CognitiveProfile = field(default_factory=CognitiveProfile)
    puzzle_type_stats: dict[str, PuzzleTypeStats] = field(default_factory=dict)
    power_up_inventory: dict[str, int] = field(default_factory=dict)
    power_ups_used: int = 0
    purchases: int = 0
    behavioral_pattern: BehavioralPattern = field(default_factory=BehavioralPattern)
    skill_history: list[float] = field(default_factory=list)
    total_session_minutes: float = 0.0
    created_at: datetime = field(default_factory=_utcnow)
    last_active: datetime = field(default_factory=_utcnow)

    @classmethod
    def default(cls, user_id: str, buffer_size: int = 50) -> UserProfile:
        """Fresh profile for a user with no stored history."""
        return cls(user_id=user_id, behavioral_pattern=BehavioralPattern(max_size=buffer_size))

    @property
    def is_new(self) -> bool:
        return self.total_puzzles_solved == 0

    def type_stats(self, puzzle_type: str) -> PuzzleTypeStats:
        """Stats for a type, created on first access."""
        if puzzle_type not in self.puzzle_type_stats:
            self.puzzle_type_stats[puzzle_type] = PuzzleTypeStats()
        return self.puzzle_type_stats[puzzle_type]

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "total_sessions": self.total_sessions,
            "total_puzzles_solved": self.total_puzzles_solved,
            "total_correct": self.total_correct,
            "overall_accuracy": self.overall_accuracy,
            "current_skill_level": self.current_skill_level,
            "skill_momentum": self.skill_momentum,
            "learning_velocity": self.learning_velocity,
            "preferred_difficulty": self.preferred_difficulty,
            "current_max_difficulty": self.current_max_difficulty,
            "current_level": self.current_level,
            "engagement_level": self.engagement_level,
            "cognitive_profile": self.cognitive_profile.to_dict(),
            "puzzle_type_stats": {k: v.to_dict() for k, v in self.puzzle_type_stats.items()},
            "power_up_inventory": dict(self.power_up_inventory),
            "power_ups_used": self.power_ups_used,
            "purchases": self.purchases,
            "behavioral_pattern": self.behavioral_pattern.to_dict(),
            "skill_history": list(self.skill_history),
            "total_session_minutes": self.total_session_minutes,
            "created_at": self.created_at.isoformat(),
            "last_active": self.last_active.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> UserProfile:
        return cls(
            user_id=data["user_id"],
            total_sessions=int(data.get("total_sessions", 0)),
            total_puzzles_solved=int(data.get("total_puzzles_solved", 0)),
            total_correct=int(data.get("total_correct", 0)),
            overall_accuracy=float(data.get("overall_accuracy", 0.0)),
            current_skill_level=float(data.get("current_skill_level", USER_DEFAULTS["initial_skill_level"])),
            skill_momentum=float(data.get("skill_momentum", 0.0)),
            learning_velocity=float(data.get("learning_velocity", 0.0)),
            preferred_difficulty=float(
                data.get("preferred_difficulty", USER_DEFAULTS["initial_preferred_difficulty"])
            ),
            current_max_difficulty=float(
                data.get("current_max_difficulty", USER_DEFAULTS["initial_max_difficulty"])
            ),
            current_level=int(data.get("current_level", USER_DEFAULTS["initial_level"])),
            engagement_level=float(data.get("engagement_level", 0.5)),
            cognitive_profile=CognitiveProfile.from_dict(data.get("cognitive_profile")),
            puzzle_type_stats={
                k: PuzzleTypeStats.from_dict(v) for k, v in (data.get("puzzle_type_stats") or {}).items()
            },
            power_up_inventory={k: int(v) for k, v in (data.get("power_up_inventory") or {}).items()},
            power_ups_used=int(data.get("power_ups_used", 0)),
            purchases=int(data.get("purchases", 0)),
            behavioral_pattern=BehavioralPattern.from_dict(data.get("behavioral_pattern")),
            skill_history=[float(v) for v in data.get("skill_history", [])],
            total_session_minutes=float(data.get("total_session_minutes", 0.0)),
            created_at=_parse_dt(data.get("created_at")),
            last_active=_parse_dt(data.get("last_active")),
        )


# =============================================================================
# Session
# =============================================================================

EARLY_WINDOW_SIZE = 5


@dataclass
class SessionContext:
    """Ephemeral state for one active play session."""
    user_id: str
    session_id: str = field(default_factory=lambda: uuid4().hex)
    puzzles_solved: int = 0
    correct: int = 0
    current_accuracy: float = 0.0
    engagement_level: float = 0.5
    is_in_flow_state: bool = False
    was_in_flow: bool = False
    started_at: datetime = field(default_factory=_utcnow)
    last_activity_at: datetime = field(default_factory=_utcnow)
    early_results: list[bool] = field(default_factory=list)

    @property
    def duration_minutes(self) -> float:
        return (self.last_activity_at - self.started_at).total_seconds() / 60

    @property
    def early_accuracy(self) -> float | None:
        """Accuracy over the first puzzles of the session, None until any are played."""
        if not self.early_results:
            return None
        return sum(self.early_results) / len(self.early_results)

    def record(self, success: bool, at: datetime | None = None) -> None:
        self.puzzles_solved += 1
        if success:
            self.correct += 1
        self.current_accuracy = self.correct / self.puzzles_solved
        if len(self.early_results) < EARLY_WINDOW_SIZE:
            self.early_results.append(success)
        self.last_activity_at = at or _utcnow()


@dataclass
class SessionSummary:
    """Returned when a session ends."""
    user_id: str
    session_id: str
    puzzles_solved: int
    accuracy: float
    duration_minutes: float
    was_in_flow: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "session_id": self.session_id,
            "puzzles_solved": self.puzzles_solved,
            "accuracy": round(self.accuracy, 3),
            "duration_minutes": round(self.duration_minutes, 2),
            "was_in_flow": self.was_in_flow,
        }


# =============================================================================
# Puzzle DNA
# =============================================================================


@dataclass
class VisualComplexity:
    element_count: int = 0
    color_variety: int = 0
    spatial_density: float = 0.0
    layout: str = "none"            # linear, grid, scattered, none
    symmetry_score: float = 0.0
    visual_noise: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return dict(self.__dict__)


@dataclass
class LogicalComplexity:
    rule_depth: int = 1
    pattern_sophistication: float = 0.0
    abstraction_level: float = 0.0
    multi_step: bool = False
    memory_requirement: str = "low"  # low, medium, high
    relationship_types: set[str] = field(default_factory=set)

    def to_dict(self) -> dict[str, Any]:
        data = dict(self.__dict__)
        data["relationship_types"] = sorted(self.relationship_types)
        return data


@dataclass
class CognitiveLoad:
    estimated_solve_time_ms: float = 0.0
    error_proneness: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return dict(self.__dict__)


@dataclass
class PuzzleDNA:
    """
    Characterization of a puzzle signature (type_subtype_tier).

    `static_difficulty` is fixed at analysis time; `discovered_difficulty`
    and `engagement_potential` drift toward observed outcomes.
    """
    semantic_key: str
    puzzle_type: str
    subtype: str
    difficulty_tier: DifficultyTier
    static_difficulty: float
    discovered_difficulty: float
    engagement_potential: float
    skill_targets: set[str] = field(default_factory=set)
    visual_complexity: VisualComplexity = field(default_factory=VisualComplexity)
    logical_complexity: LogicalComplexity = field(default_factory=LogicalComplexity)
    cognitive_load: CognitiveLoad = field(default_factory=CognitiveLoad)
    observation_count: int = 0
    success_rate: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "semantic_key": self.semantic_key,
            "puzzle_type": self.puzzle_type,
            "subtype": self.subtype,
            "difficulty_tier": self.difficulty_tier.value,
            "static_difficulty": self.static_difficulty,
            "discovered_difficulty": self.discovered_difficulty,
            "engagement_potential": self.engagement_potential,
            "skill_targets": sorted(self.skill_targets),
            "visual_complexity": self.visual_complexity.to_dict(),
            "logical_complexity": self.logical_complexity.to_dict(),
            "cognitive_load": self.cognitive_load.to_dict(),
            "observation_count": self.observation_count,
            "success_rate": self.success_rate,
        }

    @classmethod
    def from_dict(cls, data: dict) -> PuzzleDNA:
        logical = dict(data.get("logical_complexity") or {})
        logical["relationship_types"] = set(logical.get("relationship_types", []))
        return cls(
            semantic_key=data["semantic_key"],
            puzzle_type=data["puzzle_type"],
            subtype=data["subtype"],
            difficulty_tier=DifficultyTier(data["difficulty_tier"]),
            static_difficulty=float(data["static_difficulty"]),
            discovered_difficulty=float(data["discovered_difficulty"]),
            engagement_potential=float(data["engagement_potential"]),
            skill_targets=set(data.get("skill_targets", [])),
            visual_complexity=VisualComplexity(**(data.get("visual_complexity") or {})),
            logical_complexity=LogicalComplexity(**logical),
            cognitive_load=CognitiveLoad(**(data.get("cognitive_load") or {})),
            observation_count=int(data.get("observation_count", 0)),
            success_rate=float(data.get("success_rate", 0.0)),
        )


# =============================================================================
# Per-request decisions
# =============================================================================


@dataclass
class UserStateClassification:
    base_state: UserState
    modifiers: list[StateModifier] = field(default_factory=list)
    confidence: float = 0.0
    reasoning: list[str] = field(default_factory=list)

    def has(self, modifier: StateModifier) -> bool:
        return modifier in self.modifiers

    def to_dict(self) -> dict[str, Any]:
        return {
            "base_state": self.base_state.value,
            "modifiers": [m.value for m in self.modifiers],
            "confidence": self.confidence,
            "reasoning": list(self.reasoning),
        }


@dataclass
class PoolStrategy:
    """Candidate counts per category; must sum to the pool size."""
    confidence_builders: int = 0
    skill_development: int = 0
    progressive_challenge: int = 0
    engagement_recovery: int = 0
    exploratory_new: int = 0
    focus_family: PuzzleFamily | None = None
    notes: list[str] = field(default_factory=list)

    @classmethod
    def from_counts(
        cls,
        counts: list[int] | tuple[int, ...],
        focus_family: PuzzleFamily | None = None,
        notes: list[str] | None = None,
    ) -> PoolStrategy:
        return cls(*counts, focus_family=focus_family, notes=list(notes or []))

    def counts(self) -> list[int]:
        return [self.quota(category) for category in PoolCategory]

    def quota(self, category: PoolCategory) -> int:
        return getattr(self, category.value)

    def items(self) -> Iterator[tuple[PoolCategory, int]]:
        for category in PoolCategory:
            yield category, self.quota(category)

    @property
    def total(self) -> int:
        return sum(self.counts())

    def share(self, category: PoolCategory) -> float:
        total = self.total
        return self.quota(category) / total if total else 0.0

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {category.value: count for category, count in self.items()}
        data["focus_family"] = self.focus_family.value if self.focus_family else None
        data["notes"] = list(self.notes)
        return data


@dataclass
class Candidate:
    puzzle: Puzzle
    category: PoolCategory
    target_difficulty: float


@dataclass
class ScoredCandidate:
    candidate: Candidate
    dna: PuzzleDNA
    predicted_success: float
    predicted_engagement: float
    strategic_value: float = 0.0
    variety_bonus: float = 0.0
    score: float = 0.0

    @property
    def puzzle(self) -> Puzzle:
        return self.candidate.puzzle

    @property
    def category(self) -> PoolCategory:
        return self.candidate.category


@dataclass
class PuzzleRecommendation:
    puzzle: Puzzle
    dna: PuzzleDNA
    predicted_success: float
    predicted_engagement: float
    strategic_value: float
    selection_reason: str
    category: PoolCategory
    score: float
    classification: UserStateClassification
    user_id: str = ""
    strategy: PoolStrategy | None = None
    recommendation_id: str = field(default_factory=lambda: uuid4().hex)
    created_at: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "recommendation_id": self.recommendation_id,
            "user_id": self.user_id,
            "puzzle": self.puzzle.to_dict(),
            "dna": self.dna.to_dict(),
            "predicted_success": self.predicted_success,
            "predicted_engagement": self.predicted_engagement,
            "strategic_value": self.strategic_value,
            "selection_reason": self.selection_reason,
            "category": self.category.value,
            "score": self.score,
            "classification": self.classification.to_dict(),
            "strategy": self.strategy.to_dict() if self.strategy else None,
        }


@dataclass
class CompletionOutcome:
    """What the caller reports after the learner answers."""
    success: bool
    solve_time_ms: float
    engagement_signal: float | None = None
    confidence: float | None = None
    power_up_used: str | None = None


@dataclass
class FeedbackResult:
    user_id: str
    recommendation_id: str
    success: bool
    old_skill: float
    new_skill: float
    old_momentum: float
    new_momentum: float
    old_accuracy: float
    new_accuracy: float
    total_puzzles_solved: int

    @property
    def skill_delta(self) -> float:
        return self.new_skill - self.old_skill

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "recommendation_id": self.recommendation_id,
            "success": self.success,
            "old_skill": self.old_skill,
            "new_skill": self.new_skill,
            "old_momentum": self.old_momentum,
            "new_momentum": self.new_momentum,
            "old_accuracy": self.old_accuracy,
            "new_accuracy": self.new_accuracy,
            "total_puzzles_solved": self.total_puzzles_solved,
        }
