"""
Adaptive Puzzle Engine.

Orchestration layer for the recommendation pipeline:

    recommend:  load profile -> classify -> pool strategy -> candidates
                -> DNA + predictions -> select
    complete:   match pending recommendation -> feedback updater -> save

The engine is constructed with its collaborators (provider registry,
profile store, settings); nothing here is a process-wide singleton.
"""
from __future__ import annotations

import asyncio
import copy
import weakref
from typing import Any

from loguru import logger

from config import Settings
from src.core.log_config import set_log_level
from src.engine.behavior_tracker import BehaviorTracker
from src.engine.candidate_generator import CandidateGenerator, target_difficulty
from src.engine.dna_analyzer import PuzzleDNAAnalyzer
from src.engine.engine_config import EngineConfig
from src.engine.exceptions import (
    NoCandidatesError,
    PuzzleGenerationError,
    UnknownRecommendationError,
)
from src.engine.feedback import FeedbackUpdater
from src.engine.models import (
    Candidate,
    CompletionOutcome,
    FeedbackResult,
    PoolCategory,
    PoolStrategy,
    PuzzleRecommendation,
    ScoredCandidate,
    SessionContext,
    SessionSummary,
    UserProfile,
    UserStateClassification,
)
from src.engine.pool_distributor import PoolDistributor
from src.engine.prediction import EngagementPredictor, SuccessPredictor
from src.engine.selector import MultiCriteriaSelector
from src.engine.state_classifier import UserStateClassifier
from src.puzzles.providers import PuzzleProvider
from src.puzzles.registry import ProviderRegistry
from src.storage.profile_store import InMemoryProfileStore, ProfileStore


class AdaptivePuzzleEngine:
    """
    Personalized next-puzzle recommendations.

    Usage:
        engine = AdaptivePuzzleEngine(ProviderRegistry.with_defaults(), store)
        await engine.start_session("user-1")
        rec = await engine.recommend("user-1")
        await engine.complete("user-1", CompletionOutcome(success=True, solve_time_ms=8000))
        summary = await engine.end_session("user-1")
    """

    def __init__(
        self,
        providers: ProviderRegistry | dict[str, PuzzleProvider] | None = None,
        store: ProfileStore | None = None,
        settings: Settings | None = None,
        config: EngineConfig | None = None,
    ):
        self.config = config or EngineConfig.from_settings(settings)
        if providers is None:
            providers = ProviderRegistry.with_defaults()
        elif isinstance(providers, dict):
            providers = ProviderRegistry(providers)
        self.registry = providers
        self.store = store if store is not None else InMemoryProfileStore()

        self._sessions: dict[str, SessionContext] = {}
        self._pending: dict[str, PuzzleRecommendation] = {}
        # Entries vanish once no coroutine holds or awaits the lock
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()
        self.dna_analyzer = PuzzleDNAAnalyzer(self.config.dna_cache_size)
        self._build_components()

    def _build_components(self) -> None:
        config = self.config
        self.tracker = BehaviorTracker(config.behavior_buffer_size)
        self.classifier = UserStateClassifier(config)
        self.distributor = PoolDistributor(config)
        self.generator = CandidateGenerator(self.registry)
        self.success_model = SuccessPredictor(config)
        self.engagement_model = EngagementPredictor(config)
        self.selector = MultiCriteriaSelector(config)
        self.feedback = FeedbackUpdater(self.tracker, self.dna_analyzer, config.detailed_metrics)

    # =========================================================================
    # Configuration
    # =========================================================================

    def reconfigure(self, **overrides: Any) -> EngineConfig:
        """Hot-reload engine options. Cached DNA survives unless the cache shrinks below its contents."""
        self.config = self.config.with_overrides(**overrides)
        if self.config.dna_cache_size != self.dna_analyzer.cache_size:
            entries = self.dna_analyzer.export_cache()
            self.dna_analyzer = PuzzleDNAAnalyzer(self.config.dna_cache_size)
            self.dna_analyzer.import_cache(entries)
        self._build_components()
        if "log_level" in overrides:
            set_log_level(self.config.log_level)
        logger.info(f"Engine reconfigured: {sorted(overrides)}")
        return self.config

    # =========================================================================
    # Session lifecycle
    # =========================================================================

    async def start_session(self, user_id: str) -> SessionContext:
        async with self._lock(user_id):
            profile, load_failed = await self._load_profile(user_id)
            profile.total_sessions += 1
            session = self.tracker.begin_session(profile.behavioral_pattern, user_id)
            self._sessions[user_id] = session
            if load_failed:
                logger.error(f"Session for {user_id} started on a default profile; stored profile left untouched")
            else:
                await self._save_profile(user_id, profile)
        self._info(f"Session started for {user_id} (#{profile.total_sessions})")
        return session

    async def end_session(self, user_id: str) -> SessionSummary | None:
        async with self._lock(user_id):
            session = self._sessions.pop(user_id, None)
            if session is None:
                logger.debug(f"No active session for {user_id}")
                return None
            profile, load_failed = await self._load_profile(user_id)
            profile.total_session_minutes += session.duration_minutes
            if load_failed:
                logger.error(f"Session time for {user_id} not recorded: profile could not be loaded")
            else:
                await self._save_profile(user_id, profile)

        summary = SessionSummary(
            user_id=user_id,
            session_id=session.session_id,
            puzzles_solved=session.puzzles_solved,
            accuracy=session.current_accuracy,
            duration_minutes=session.duration_minutes,
            was_in_flow=session.was_in_flow,
        )
        self._info(
            f"Session ended for {user_id}: {summary.puzzles_solved} puzzles, "
            f"{summary.accuracy:.0%} accuracy"
        )
        return summary

    def get_session(self, user_id: str) -> SessionContext | None:
        return self._sessions.get(user_id)

    # =========================================================================
    # Recommendation
    # =========================================================================

    async def recommend(self, user_id: str, force_type: str | None = None) -> PuzzleRecommendation:
        """
        Pick the next puzzle. Never mutates stored state.

        `force_type` restricts every candidate (and the fallback) to one
        puzzle type while the learner's state still shapes the pool.
        """
        profile, _ = await self._load_profile(user_id)
        profile = copy.deepcopy(profile)
        pattern = profile.behavioral_pattern
        session = self._sessions.get(user_id)
        recent_types = self._recent_types(profile)

        classification = self.classifier.classify(profile, pattern, session)
        strategy = self.distributor.distribute(classification, profile)
        candidates = await self.generator.generate(strategy, profile, recent_types, force_type)
        scored = [self._analyze(candidate, profile) for candidate in candidates]

        try:
            recommendation = self.selector.select(scored, classification, strategy, profile, recent_types)
        except NoCandidatesError as e:
            logger.warning(f"{e}; using fallback provider")
            recommendation = await self._fallback_recommendation(profile, classification, strategy, force_type)

        self._pending[user_id] = recommendation
        self._info(
            f"Recommended {recommendation.puzzle.semantic_key} to {user_id} "
            f"[{classification.base_state.value}] d={recommendation.dna.discovered_difficulty:.2f}"
        )
        return recommendation

    def _analyze(self, candidate: Candidate, profile: UserProfile) -> ScoredCandidate:
        dna = self.dna_analyzer.analyze(candidate.puzzle)
        pattern = profile.behavioral_pattern
        return ScoredCandidate(
            candidate=candidate,
            dna=dna,
            predicted_success=self.success_model.predict(profile, pattern, dna),
            predicted_engagement=self.engagement_model.predict(profile, pattern, dna),
        )

    async def _fallback_recommendation(
        self,
        profile: UserProfile,
        classification: UserStateClassification,
        strategy: PoolStrategy,
        force_type: str | None = None,
    ) -> PuzzleRecommendation:
        provider = self.registry.get(force_type) if force_type else None
        if provider is None:
            provider = self.registry.fallback
        if provider is None:
            raise NoCandidatesError("No puzzle available")

        category = PoolCategory.CONFIDENCE_BUILDERS
        target = min(
            target_difficulty(profile.current_skill_level, category),
            self.selector.active_ceiling(classification, profile),
        )
        try:
            puzzle = await provider.produce(target, self._recent_types(profile))
        except PuzzleGenerationError as e:
            logger.error(f"Fallback provider failed: {e}")
            raise NoCandidatesError("No puzzle available") from e

        scored = self._analyze(Candidate(puzzle, category, target), profile)
        return PuzzleRecommendation(
            puzzle=puzzle,
            dna=scored.dna,
            predicted_success=scored.predicted_success,
            predicted_engagement=scored.predicted_engagement,
            strategic_value=0.0,
            selection_reason="Fallback puzzle (no candidates were generated)",
            category=category,
            score=0.0,
            classification=classification,
            user_id=profile.user_id,
            strategy=strategy,
        )

    def get_pending(self, user_id: str) -> PuzzleRecommendation | None:
        return self._pending.get(user_id)

    # =========================================================================
    # Completion
    # =========================================================================

    async def complete(
        self,
        user_id: str,
        outcome: CompletionOutcome,
        recommendation_id: str | None = None,
    ) -> FeedbackResult:
        """Apply the outcome of the user's pending recommendation."""
        async with self._lock(user_id):
            pending = self._pending.get(user_id)
            if pending is None:
                raise UnknownRecommendationError(f"No pending recommendation for user '{user_id}'")
            if recommendation_id is not None and recommendation_id != pending.recommendation_id:
                raise UnknownRecommendationError(
                    f"Recommendation '{recommendation_id}' was not issued to user '{user_id}'"
                )

            profile, load_failed = await self._load_profile(user_id)
            result = self.feedback.apply(profile, pending, outcome, self._sessions.get(user_id))
            del self._pending[user_id]
            if load_failed:
                # Saving the default profile would overwrite the stored history
                logger.error(f"Completion for {user_id} not persisted: profile could not be loaded")
            else:
                await self._save_profile(user_id, profile)

        self._info(
            f"Completion for {user_id}: success={outcome.success} "
            f"skill {result.old_skill:.2f}->{result.new_skill:.2f}"
        )
        return result

    # =========================================================================
    # Metrics & maintenance
    # =========================================================================

    async def get_learning_metrics(self, user_id: str) -> dict[str, Any]:
        profile, _ = await self._load_profile(user_id)
        history = profile.skill_history
        start_skill = history[0] if history else profile.current_skill_level
        activity = min(1.0, profile.total_sessions / 10)
        engagement_score = (profile.overall_accuracy + profile.current_skill_level + activity) / 3

        return {
            "user_id": user_id,
            "total_attempts": profile.total_puzzles_solved,
            "correct_answers": profile.total_correct,
            "accuracy": profile.overall_accuracy,
            "total_sessions": profile.total_sessions,
            "average_session_minutes": (
                profile.total_session_minutes / profile.total_sessions if profile.total_sessions else 0.0
            ),
            "skill_progression": {
                "start": start_skill,
                "current": profile.current_skill_level,
                "change": profile.current_skill_level - start_skill,
                "momentum": profile.skill_momentum,
                "velocity": profile.learning_velocity,
            },
            "engagement_score": engagement_score,
            "puzzle_types": {name: stats.to_dict() for name, stats in profile.puzzle_type_stats.items()},
        }

    async def reset(self, user_id: str) -> None:
        """Forget everything about a user."""
        async with self._lock(user_id):
            self._sessions.pop(user_id, None)
            self._pending.pop(user_id, None)
            await self.store.delete(user_id)
        logger.info(f"Reset user {user_id}")

    # =========================================================================
    # Profile I/O
    # =========================================================================

    def _lock(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock

    async def _load_profile(self, user_id: str) -> tuple[UserProfile, bool]:
        """
        Load a profile, falling back to a default one.

        Returns (profile, load_failed). A failed load must never be saved
        back: the default would replace the learner's stored history.
        """
        load_failed = False
        try:
            profile = await self.store.load(user_id)
        except Exception as e:
            logger.warning(f"Loading profile for {user_id} failed ({type(e).__name__}: {e}); using default profile")
            profile = None
            load_failed = True
        if profile is None:
            profile = UserProfile.default(user_id, self.config.behavior_buffer_size)
        profile.behavioral_pattern.max_size = self.config.behavior_buffer_size
        return profile, load_failed

    async def _save_profile(self, user_id: str, profile: UserProfile) -> None:
        try:
            await self.store.save(user_id, profile)
            return
        except Exception as e:
            logger.warning(f"Saving profile for {user_id} failed ({e}); retrying once")
        try:
            await self.store.save(user_id, profile)
        except Exception as e:
            logger.error(f"Giving up saving profile for {user_id}: {e}")

    def _recent_types(self, profile: UserProfile) -> list[str]:
        window = max(self.config.variety_window, 1)
        return [s.puzzle_type for s in profile.behavioral_pattern.recent(window)]

    def _info(self, message: str) -> None:
        if not self.config.silent_mode:
            logger.info(message)
