"""
Behavioral Signature Tracker.

Accumulates short-window interaction data into the rolling
BehavioralPattern buffer and the active SessionContext, and recomputes
the derived aggregates the classifier reads:

- accuracy_trend: recent-half accuracy minus older-half accuracy
- engagement_level: mean engagement signal over the recent window
- consecutive_failures: trailing run of failures
- session_performance_decline: early-session accuracy minus late-session accuracy
- power_up_dependency: share of recent puzzles solved with a power-up
"""
from __future__ import annotations

from loguru import logger

from src.engine.constants import FEEDBACK
from src.engine.models import BehavioralPattern, BehavioralSnapshot, SessionContext

AGGREGATE_WINDOW = 10
MIN_SESSION_SNAPSHOTS_FOR_DECLINE = 4
CONFIDENCE_BLEND = 0.25


def estimate_engagement(
    success: bool,
    response_time_ms: float,
    signal: float | None = None,
    confidence: float | None = None,
) -> float:
    """
    Engagement signal for one puzzle.

    An explicit signal from the client wins. Otherwise infer from the
    outcome: solving helps, abandoning-length pauses and instant guesses hurt.
    A self-reported answer confidence, when given, is blended in.
    """
    if signal is not None:
        return max(0.0, min(1.0, signal))

    engagement = 0.6 if success else 0.4
    seconds = response_time_ms / 1000
    if 3 <= seconds <= 30:
        engagement += 0.1
    elif seconds > 60:
        engagement -= 0.2
    elif seconds < 2 and not success:
        engagement -= 0.1
    engagement = max(0.0, min(1.0, engagement))
    if confidence is not None:
        engagement = (1 - CONFIDENCE_BLEND) * engagement + CONFIDENCE_BLEND * max(0.0, min(1.0, confidence))
    return engagement


class BehaviorTracker:
    """Maintains the rolling buffer and session context for one engine."""

    def __init__(self, buffer_size: int = 50):
        self.buffer_size = buffer_size

    def begin_session(self, pattern: BehavioralPattern, user_id: str) -> SessionContext:
        """Open a session and reset session-scoped aggregates."""
        pattern.max_size = self.buffer_size
        self._trim(pattern)
        pattern.session_start_index = len(pattern.snapshots)
        pattern.session_performance_decline = 0.0
        session = SessionContext(user_id=user_id, engagement_level=pattern.engagement_level)
        logger.debug(f"Session {session.session_id[:8]} started for {user_id}")
        return session

    def record(
        self,
        pattern: BehavioralPattern,
        snapshot: BehavioralSnapshot,
        session: SessionContext | None = None,
    ) -> None:
        """Append a snapshot, trim to the bound and refresh aggregates."""
        pattern.max_size = self.buffer_size
        pattern.snapshots.append(snapshot)
        self._trim(pattern)
        self.recompute(pattern)
        if session is not None:
            self.update_session(session, snapshot)

    def recompute(self, pattern: BehavioralPattern) -> None:
        snapshots = pattern.snapshots
        recent = snapshots[-AGGREGATE_WINDOW:]

        if recent:
            pattern.engagement_level = sum(s.engagement for s in recent) / len(recent)
            pattern.power_up_dependency = sum(1 for s in recent if s.power_up_used) / len(recent)
        pattern.accuracy_trend = self._trend(recent)

        failures = 0
        for snapshot in reversed(snapshots):
            if snapshot.success:
                break
            failures += 1
        pattern.consecutive_failures = failures

        pattern.session_performance_decline = self._decline(pattern.session_snapshots)

    def update_session(self, session: SessionContext, snapshot: BehavioralSnapshot) -> None:
        """Fold one completion into the session context."""
        session.record(snapshot.success, at=snapshot.timestamp)
        retain = FEEDBACK["session_engagement_retain"]
        session.engagement_level = retain * session.engagement_level + (1 - retain) * snapshot.engagement
        session.is_in_flow_state = (
            session.puzzles_solved >= FEEDBACK["flow_min_puzzles"]
            and FEEDBACK["flow_accuracy_low"] <= session.current_accuracy <= FEEDBACK["flow_accuracy_high"]
            and session.engagement_level >= FEEDBACK["flow_engagement"]
        )
        if session.is_in_flow_state:
            session.was_in_flow = True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _trim(self, pattern: BehavioralPattern) -> None:
        overflow = len(pattern.snapshots) - pattern.max_size
        if overflow > 0:
            del pattern.snapshots[:overflow]
            pattern.session_start_index = max(0, pattern.session_start_index - overflow)

    @staticmethod
    def _accuracy(snapshots: list[BehavioralSnapshot]) -> float:
        return sum(1 for s in snapshots if s.success) / len(snapshots) if snapshots else 0.0

    def _trend(self, snapshots: list[BehavioralSnapshot]) -> float:
        if len(snapshots) < 2:
            return 0.0
        half = len(snapshots) // 2
        return self._accuracy(snapshots[half:]) - self._accuracy(snapshots[:half])

    def _decline(self, session_snapshots: list[BehavioralSnapshot]) -> float:
        if len(session_snapshots) < MIN_SESSION_SNAPSHOTS_FOR_DECLINE:
            return 0.0
        half = len(session_snapshots) // 2
        drop = self._accuracy(session_snapshots[:half]) - self._accuracy(session_snapshots[half:])
        return max(0.0, drop)

