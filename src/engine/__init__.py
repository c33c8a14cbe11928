"""
Adaptive Recommendation Engine.

Components:
- BehaviorTracker: Rolling behavioral buffer and session context
- UserStateClassifier: Maps profile + behavior to a learning state
- PoolDistributor: Derives the candidate-pool category distribution
- CandidateGenerator: Requests candidates from puzzle providers
- PuzzleDNAAnalyzer: Static puzzle characterization with EMA discovery
- SuccessPredictor / EngagementPredictor: Per-candidate predictions
- MultiCriteriaSelector: Scores and picks the next puzzle
- FeedbackUpdater: Applies completion outcomes to long-term state
- AdaptivePuzzleEngine: Orchestration layer (src.engine.puzzle_engine)

Only the exception hierarchy is re-exported here; import components from
their modules so the puzzle layer can depend on the exceptions without
pulling in the whole engine.
"""
from src.engine.exceptions import (
    NoCandidatesError,
    PoolInvariantError,
    ProfileStoreError,
    PuzzleEngineError,
    PuzzleGenerationError,
    UnknownRecommendationError,
)

__all__ = [
    "NoCandidatesError",
    "PoolInvariantError",
    "ProfileStoreError",
    "PuzzleEngineError",
    "PuzzleGenerationError",
    "UnknownRecommendationError",
]
