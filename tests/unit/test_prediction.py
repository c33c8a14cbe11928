"""
Unit tests for SuccessPredictor and EngagementPredictor.
"""

import pytest

from src.engine.dna_analyzer import PuzzleDNAAnalyzer
from src.engine.prediction import EngagementPredictor, SuccessPredictor
from tests.factories import make_profile, pattern_puzzle, set_type_stats


@pytest.fixture
def dna():
    dna = PuzzleDNAAnalyzer().analyze(pattern_puzzle())
    dna.discovered_difficulty = 0.35
    dna.engagement_potential = 0.5
    return dna


@pytest.fixture
def success_model(config):
    return SuccessPredictor(config)


@pytest.fixture
def engagement_model(config):
    return EngagementPredictor(config)


class TestSuccessPredictor:
    def test_neutral_without_history(self, success_model, new_profile, dna):
        assert success_model.predict(new_profile, new_profile.behavioral_pattern, dna) == 0.5

    def test_even_match_is_a_coin_flip(self, success_model, dna):
        profile = make_profile(solved=20, skill=0.35, results=[True, False] * 3)

        assert success_model.predict(profile, profile.behavioral_pattern, dna) == pytest.approx(0.5)

    def test_higher_skill_predicts_more_success(self, success_model, dna):
        weak = make_profile(solved=20, skill=0.2, results=[True] * 5)
        strong = make_profile(solved=20, skill=0.7, results=[True] * 5)

        assert success_model.predict(strong, strong.behavioral_pattern, dna) > success_model.predict(
            weak, weak.behavioral_pattern, dna
        )

    def test_type_accuracy_is_blended_in(self, success_model, dna):
        profile = make_profile(solved=20, skill=0.35, results=[True] * 5)
        set_type_stats(profile, "pattern", attempts=10, accuracy=1.0)

        assert success_model.predict(profile, profile.behavioral_pattern, dna) == pytest.approx(0.65)

    def test_sparse_type_history_is_ignored(self, success_model, dna):
        profile = make_profile(solved=20, skill=0.35, results=[True] * 5)
        set_type_stats(profile, "pattern", attempts=2, accuracy=1.0)

        assert success_model.predict(profile, profile.behavioral_pattern, dna) == pytest.approx(0.5)

    def test_prediction_is_clamped(self, success_model, dna):
        dna.discovered_difficulty = 0.0
        profile = make_profile(solved=20, skill=1.0, results=[True] * 5, accuracy_trend=0.5)

        assert success_model.predict(profile, profile.behavioral_pattern, dna) == 1.0

    def test_configurable_neutral_value(self, config, new_profile, dna):
        model = SuccessPredictor(config.with_overrides(neutral_prediction=0.6))

        assert model.predict(new_profile, new_profile.behavioral_pattern, dna) == 0.6


class TestEngagementPredictor:
    def test_neutral_with_few_snapshots(self, engagement_model, dna):
        profile = make_profile(solved=200, results=[True, True])

        assert engagement_model.predict(profile, profile.behavioral_pattern, dna) == 0.5

    def test_weighted_combination(self, engagement_model, dna):
        profile = make_profile(solved=20, skill=0.3, results=[True] * 5, engagement=0.6)

        # 0.3*0.5 + 0.25*0.6 + 0.15*1.0 + 0.2*1.0 + 0.1*0.5
        assert engagement_model.predict(profile, profile.behavioral_pattern, dna) == pytest.approx(0.70)

    def test_familiar_type_is_less_novel(self, engagement_model, dna):
        fresh = make_profile(solved=20, results=[True] * 5)
        familiar = make_profile(solved=20, results=[True] * 5)
        set_type_stats(familiar, "pattern", attempts=50, accuracy=0.7)

        assert engagement_model.predict(familiar, familiar.behavioral_pattern, dna) < engagement_model.predict(
            fresh, fresh.behavioral_pattern, dna
        )

    def test_prediction_stays_in_range(self, engagement_model, dna):
        dna.engagement_potential = 1.0
        profile = make_profile(solved=20, results=[True] * 5, engagement=1.0)
        set_type_stats(profile, "pattern", attempts=1, accuracy=1.0, preference=1.0)

        assert 0.0 <= engagement_model.predict(profile, profile.behavioral_pattern, dna) <= 1.0
