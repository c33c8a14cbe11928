"""
Unit tests for UserStateClassifier.

Tests:
- Rule priority (first match wins)
- Confidence values per state
- Modifier detection
- Recent success rate fallbacks
"""

from datetime import UTC, datetime, timedelta

import pytest

from src.engine.models import SessionContext, StateModifier, UserState
from src.engine.state_classifier import STATE_RULES, UserStateClassifier, recent_success_rate
from tests.factories import make_profile


@pytest.fixture
def classifier(config):
    return UserStateClassifier(config)


def _session(minutes: float, solved: int = 0, correct: int = 0, early: list[bool] | None = None) -> SessionContext:
    now = datetime.now(UTC)
    session = SessionContext(user_id="user-1", started_at=now - timedelta(minutes=minutes), last_activity_at=now)
    session.puzzles_solved = solved
    session.correct = correct
    session.current_accuracy = correct / solved if solved else 0.0
    session.early_results = early or []
    return session


class TestRuleTable:
    def test_rules_are_ordered_with_stable_last(self):
        states = [rule.state for rule in STATE_RULES]
        assert states[0] == UserState.NEW_USER
        assert states[-1] == UserState.STABLE
        assert len(states) == len(set(states)) == 8


class TestBaseStates:
    def test_fresh_profile_is_new_user(self, classifier, new_profile):
        result = classifier.classify(new_profile)

        assert result.base_state == UserState.NEW_USER
        assert result.confidence >= 0.9

    def test_new_user_wins_over_struggling(self, classifier):
        profile = make_profile(solved=9, results=[False] * 5)

        assert classifier.classify(profile).base_state == UserState.NEW_USER

    def test_consecutive_failures_are_severely_struggling(self, classifier):
        profile = make_profile(solved=20, accuracy=0.4, results=[True, False, False, False, False])

        result = classifier.classify(profile)

        assert result.base_state == UserState.SEVERELY_STRUGGLING
        assert result.confidence >= 0.85
        assert StateModifier.CONFIDENCE_CRISIS in result.modifiers

    def test_severe_without_failure_streak_has_lower_confidence(self, classifier):
        profile = make_profile(solved=20, results=[False, False, True, False, False])

        result = classifier.classify(profile)

        assert result.base_state == UserState.SEVERELY_STRUGGLING
        assert result.confidence == pytest.approx(0.8)
        assert StateModifier.CONFIDENCE_CRISIS not in result.modifiers

    def test_low_success_rate_is_struggling(self, classifier):
        profile = make_profile(solved=20, results=[True, False, True, False, False])

        assert classifier.classify(profile).base_state == UserState.STRUGGLING

    def test_negative_momentum_is_struggling(self, classifier):
        profile = make_profile(solved=20, momentum=-0.25, results=[True] * 5)

        assert classifier.classify(profile).base_state == UserState.STRUGGLING

    def test_falling_back_needs_momentum_and_decline(self, classifier):
        profile = make_profile(
            solved=30,
            momentum=-0.15,
            results=[True, True, True, True, False],
            session_performance_decline=0.2,
        )

        result = classifier.classify(profile)

        assert result.base_state == UserState.FALLING_BACK
        assert result.confidence == pytest.approx(0.85)
        assert StateModifier.SESSION_DECLINE in result.modifiers

    def test_bored_expert_is_expert_demanding_and_disengaged(self, classifier):
        profile = make_profile(solved=150, accuracy=0.95, momentum=0.18, results=[True] * 5, engagement=0.45)

        result = classifier.classify(profile)

        assert result.base_state == UserState.EXPERT_DEMANDING
        assert result.confidence == pytest.approx(0.95)
        assert StateModifier.DISENGAGED in result.modifiers

    def test_expert_above_boredom_band_is_not_disengaged(self, classifier):
        profile = make_profile(solved=150, momentum=0.18, results=[True] * 5, engagement=0.55)

        result = classifier.classify(profile)

        assert result.base_state == UserState.EXPERT_DEMANDING
        assert StateModifier.DISENGAGED not in result.modifiers

    def test_engaged_high_performer_is_excelling(self, classifier):
        profile = make_profile(solved=60, momentum=0.12, results=[True] * 5, engagement=0.7)

        assert classifier.classify(profile).base_state == UserState.EXCELLING

    def test_good_success_rate_is_progressing(self, classifier):
        profile = make_profile(solved=60, results=[True, True, True, True, False])

        result = classifier.classify(profile)

        assert result.base_state == UserState.PROGRESSING
        assert result.confidence == pytest.approx(0.75)

    def test_default_is_stable(self, classifier):
        profile = make_profile(solved=60, results=[True, True, True, False, False])

        result = classifier.classify(profile)

        assert result.base_state == UserState.STABLE
        assert result.confidence == pytest.approx(0.6)


class TestRecentSuccessRate:
    def test_uses_last_five_snapshots(self):
        profile = make_profile(solved=20, results=[False] * 10 + [True] * 5)

        assert recent_success_rate(profile, profile.behavioral_pattern, None) == 1.0

    def test_falls_back_to_session_accuracy(self):
        profile = make_profile(solved=20, accuracy=0.1)
        session = _session(minutes=5, solved=4, correct=3)

        assert recent_success_rate(profile, profile.behavioral_pattern, session) == pytest.approx(0.75)

    def test_falls_back_to_overall_accuracy(self, classifier):
        profile = make_profile(solved=20, accuracy=0.2)

        assert recent_success_rate(profile, profile.behavioral_pattern, None) == pytest.approx(0.2)
        assert classifier.classify(profile).base_state == UserState.SEVERELY_STRUGGLING


class TestModifiers:
    def test_power_up_dependency(self, classifier):
        profile = make_profile(solved=60, results=[True] * 4 + [False], power_up_dependency=0.6)

        assert StateModifier.POWER_DEPENDENT in classifier.classify(profile).modifiers

    def test_low_engagement_is_disengaged(self, classifier):
        profile = make_profile(solved=60, results=[True] * 4 + [False], engagement=0.3)

        assert StateModifier.DISENGAGED in classifier.classify(profile).modifiers

    def test_long_session_is_fatigued(self, classifier):
        profile = make_profile(solved=60, results=[True] * 4 + [False])
        session = _session(minutes=35, solved=20, correct=16, early=[True] * 5)

        result = classifier.classify(profile, session=session)

        assert StateModifier.FATIGUED in result.modifiers

    def test_accuracy_drop_after_twenty_minutes_is_fatigued(self, classifier):
        profile = make_profile(solved=60, results=[True] * 4 + [False])
        session = _session(minutes=25, solved=10, correct=6, early=[True] * 5)

        assert StateModifier.FATIGUED in classifier.classify(profile, session=session).modifiers

    def test_steady_session_is_not_fatigued(self, classifier):
        profile = make_profile(solved=60, results=[True] * 4 + [False])
        session = _session(minutes=25, solved=10, correct=8, early=[True, True, True, True, False])

        assert StateModifier.FATIGUED not in classifier.classify(profile, session=session).modifiers

    def test_every_modifier_adds_reasoning(self, classifier):
        profile = make_profile(
            solved=60,
            results=[True, False, False, False],
            engagement=0.3,
            power_up_dependency=0.7,
        )

        result = classifier.classify(profile)

        assert len(result.reasoning) == 1 + len(result.modifiers)
        assert len(result.modifiers) >= 3
