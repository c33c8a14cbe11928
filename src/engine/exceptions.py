"""
Engine error taxonomy.

Every error raised by the recommendation pipeline derives from
PuzzleEngineError so callers can catch the whole family at once.
Most of these are recovered inside the engine and only logged.
"""
from __future__ import annotations


class PuzzleEngineError(Exception):
    """Base class for all adaptive engine errors."""


class PuzzleGenerationError(PuzzleEngineError):
    """A puzzle provider could not produce a valid puzzle."""

    def __init__(self, puzzle_type: str, reason: str = ""):
        self.puzzle_type = puzzle_type
        self.reason = reason
        message = f"Failed to generate '{puzzle_type}' puzzle"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ProfileStoreError(PuzzleEngineError):
    """The profile store failed to load or save a profile."""

    def __init__(self, user_id: str, operation: str, reason: str = ""):
        self.user_id = user_id
        self.operation = operation
        super().__init__(f"Profile {operation} failed for user '{user_id}': {reason}")


class PoolInvariantError(PuzzleEngineError):
    """A pool strategy does not sum to the configured pool size."""


class NoCandidatesError(PuzzleEngineError):
    """The selector was handed an empty candidate list."""


class UnknownRecommendationError(PuzzleEngineError):
    """A completion was reported for a recommendation the engine never issued."""
