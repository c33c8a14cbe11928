"""
User State Classifier.

Pure mapping from (UserProfile, BehavioralPattern, SessionContext) to a
UserStateClassification. The base state comes from an ordered rule table
(first match wins); modifiers are evaluated independently.

Rule order:
1. new_user              fewer than N solved puzzles
2. severely_struggling   recent success < 0.3
3. struggling            recent success < 0.5 or momentum < -0.2
4. falling_back          momentum < -0.1 and session decline > 0.1
5. expert_demanding      recent success > 0.9, momentum > 0.15, engagement < 0.6
6. excelling             recent success > 0.8 and momentum > 0.1
7. progressing           recent success > 0.6
8. stable                default
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from loguru import logger

from src.engine.constants import CLASSIFIER_THRESHOLDS as T
from src.engine.constants import MODIFIER_THRESHOLDS as M
from src.engine.engine_config import EngineConfig
from src.engine.models import (
    BehavioralPattern,
    SessionContext,
    StateModifier,
    UserProfile,
    UserState,
    UserStateClassification,
)


@dataclass
class ClassifierInputs:
    """Signals the rules read, gathered once per classification."""
    total_puzzles_solved: int
    recent_success_rate: float
    skill_momentum: float
    engagement_level: float
    consecutive_failures: int
    session_decline: float
    power_up_dependency: float
    session_minutes: float
    session_accuracy: float | None
    early_session_accuracy: float | None
    new_user_threshold: int

    @property
    def is_new(self) -> bool:
        return self.total_puzzles_solved < self.new_user_threshold


@dataclass(frozen=True)
class StateRule:
    state: UserState
    matches: Callable[[ClassifierInputs], bool]
    confidence: Callable[[ClassifierInputs], float]
    describe: Callable[[ClassifierInputs], str]


STATE_RULES: list[StateRule] = [
    StateRule(
        UserState.NEW_USER,
        lambda s: s.is_new,
        lambda s: 0.95,
        lambda s: f"{s.total_puzzles_solved} puzzles solved (< {s.new_user_threshold}): new user",
    ),
    StateRule(
        UserState.SEVERELY_STRUGGLING,
        lambda s: s.recent_success_rate < T["severe_success_rate"],
        lambda s: 0.9 if s.consecutive_failures >= M["crisis_consecutive_failures"] else 0.8,
        lambda s: f"Recent success {s.recent_success_rate:.0%} below {T['severe_success_rate']:.0%}",
    ),
    StateRule(
        UserState.STRUGGLING,
        lambda s: (
            s.recent_success_rate < T["struggling_success_rate"]
            or s.skill_momentum < T["struggling_momentum"]
        ),
        lambda s: 0.8,
        lambda s: (
            f"Recent success {s.recent_success_rate:.0%}, momentum {s.skill_momentum:+.2f}: struggling"
        ),
    ),
    StateRule(
        UserState.FALLING_BACK,
        lambda s: (
            s.skill_momentum < T["falling_back_momentum"]
            and s.session_decline > T["falling_back_decline"]
        ),
        lambda s: 0.85,
        lambda s: (
            f"Momentum {s.skill_momentum:+.2f} with session decline {s.session_decline:.2f}: falling back"
        ),
    ),
    StateRule(
        UserState.EXPERT_DEMANDING,
        lambda s: (
            s.recent_success_rate > T["expert_success_rate"]
            and s.skill_momentum > T["expert_momentum"]
            and s.engagement_level < T["expert_engagement_ceiling"]
            and not s.is_new
        ),
        lambda s: 0.95,
        lambda s: (
            f"Recent success {s.recent_success_rate:.0%} with momentum {s.skill_momentum:+.2f} "
            f"but engagement {s.engagement_level:.2f}: expert wants harder puzzles"
        ),
    ),
    StateRule(
        UserState.EXCELLING,
        lambda s: (
            s.recent_success_rate > T["excelling_success_rate"]
            and s.skill_momentum > T["excelling_momentum"]
        ),
        lambda s: 0.85,
        lambda s: f"Recent success {s.recent_success_rate:.0%} with momentum {s.skill_momentum:+.2f}: excelling",
    ),
    StateRule(
        UserState.PROGRESSING,
        lambda s: s.recent_success_rate > T["progressing_success_rate"],
        lambda s: 0.75,
        lambda s: f"Recent success {s.recent_success_rate:.0%}: progressing",
    ),
    StateRule(
        UserState.STABLE,
        lambda s: True,
        lambda s: 0.6,
        lambda s: "No strong signal: stable",
    ),
]


def recent_success_rate(
    profile: UserProfile,
    pattern: BehavioralPattern,
    session: SessionContext | None,
) -> float:
    """Last-5 success rate, falling back to session then overall accuracy."""
    rate = pattern.recent_success_rate(T["recent_window"])
    if rate is not None:
        return rate
    if session is not None and session.puzzles_solved > 0:
        return session.current_accuracy
    return profile.overall_accuracy


class UserStateClassifier:
    """Evaluates STATE_RULES and modifiers for one user."""

    def __init__(self, config: EngineConfig):
        self.config = config

    def gather(
        self,
        profile: UserProfile,
        pattern: BehavioralPattern,
        session: SessionContext | None,
    ) -> ClassifierInputs:
        return ClassifierInputs(
            total_puzzles_solved=profile.total_puzzles_solved,
            recent_success_rate=recent_success_rate(profile, pattern, session),
            skill_momentum=profile.skill_momentum,
            engagement_level=pattern.engagement_level,
            consecutive_failures=pattern.consecutive_failures,
            session_decline=pattern.session_performance_decline,
            power_up_dependency=pattern.power_up_dependency,
            session_minutes=session.duration_minutes if session else 0.0,
            session_accuracy=session.current_accuracy if session and session.puzzles_solved else None,
            early_session_accuracy=session.early_accuracy if session else None,
            new_user_threshold=self.config.new_user_puzzle_threshold,
        )

    def classify(
        self,
        profile: UserProfile,
        pattern: BehavioralPattern | None = None,
        session: SessionContext | None = None,
    ) -> UserStateClassification:
        pattern = pattern if pattern is not None else profile.behavioral_pattern
        inputs = self.gather(profile, pattern, session)

        rule = next(r for r in STATE_RULES if r.matches(inputs))
        classification = UserStateClassification(
            base_state=rule.state,
            confidence=rule.confidence(inputs),
            reasoning=[rule.describe(inputs)],
        )

        for modifier, reason in self._modifiers(inputs, rule.state):
            classification.modifiers.append(modifier)
            classification.reasoning.append(reason)

        logger.debug(
            f"Classified {profile.user_id}: {classification.base_state.value} "
            f"({classification.confidence:.2f}) modifiers={[m.value for m in classification.modifiers]}"
        )
        return classification

    def _modifiers(self, s: ClassifierInputs, state: UserState) -> list[tuple[StateModifier, str]]:
        found = []

        if s.consecutive_failures >= M["crisis_consecutive_failures"]:
            found.append((
                StateModifier.CONFIDENCE_CRISIS,
                f"{s.consecutive_failures} consecutive failures: confidence crisis",
            ))

        disengaged_below = (
            M["expert_boredom_engagement"] if state == UserState.EXPERT_DEMANDING
            else M["disengaged_engagement"]
        )
        if s.engagement_level < disengaged_below:
            found.append((
                StateModifier.DISENGAGED,
                f"Engagement {s.engagement_level:.2f} below {disengaged_below:.2f}: disengaged",
            ))

        if s.power_up_dependency >= M["power_up_dependency"]:
            found.append((
                StateModifier.POWER_DEPENDENT,
                f"Power-ups used on {s.power_up_dependency:.0%} of recent puzzles",
            ))

        if self._is_fatigued(s):
            found.append((
                StateModifier.FATIGUED,
                f"{s.session_minutes:.0f} minutes into the session with falling accuracy: fatigued",
            ))

        if s.session_decline > M["session_decline"]:
            found.append((
                StateModifier.SESSION_DECLINE,
                f"Session accuracy declined by {s.session_decline:.2f}",
            ))

        return found

    @staticmethod
    def _is_fatigued(s: ClassifierInputs) -> bool:
        if s.session_minutes > M["fatigue_hard_limit_minutes"]:
            return True
        if s.session_minutes < M["fatigue_minutes"]:
            return False
        if s.session_accuracy is None or s.early_session_accuracy is None:
            return False
        return s.early_session_accuracy - s.session_accuracy >= M["fatigue_accuracy_drop"]
