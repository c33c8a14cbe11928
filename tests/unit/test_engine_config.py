"""
Unit tests for Settings and EngineConfig.
"""

import pytest
from pydantic import ValidationError

from config import Settings
from src.engine.engine_config import EngineConfig


class TestSettings:
    def test_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.new_user_puzzle_threshold == 10
        assert settings.new_user_max_difficulty == 0.4
        assert settings.pool_size == 10
        assert settings.global_max_difficulty is None

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("POOL_SIZE", "8")
        monkeypatch.setenv("STRICT_INVARIANTS", "true")

        settings = Settings(_env_file=None)

        assert settings.pool_size == 8
        assert settings.strict_invariants is True


class TestEngineConfig:
    def test_from_settings(self):
        config = EngineConfig.from_settings(Settings(_env_file=None, pool_size=12, engagement_priority=0.5))

        assert config.pool_size == 12
        assert config.engagement_priority == 0.5

    def test_is_frozen(self, config):
        with pytest.raises(ValidationError):
            config.pool_size = 5

    def test_unknown_fields_rejected(self):
        with pytest.raises(ValidationError):
            EngineConfig(pool_sise=5)

    def test_bounds_are_validated(self):
        with pytest.raises(ValidationError):
            EngineConfig(new_user_max_difficulty=1.5)
        with pytest.raises(ValidationError):
            EngineConfig(pool_size=0)

    def test_weakness_cannot_exceed_strength(self):
        with pytest.raises(ValidationError):
            EngineConfig(strength_accuracy_threshold=0.5, weakness_accuracy_threshold=0.6)

    def test_with_overrides_returns_new_config(self, config):
        updated = config.with_overrides(pool_size=20, silent_mode=True)

        assert updated.pool_size == 20
        assert updated.silent_mode is True
        assert config.pool_size == 10

    def test_with_overrides_validates(self, config):
        with pytest.raises(ValidationError):
            config.with_overrides(engagement_priority=2.0)

    def test_with_overrides_rejects_unknown_options(self, config):
        with pytest.raises(ValueError, match="Unknown engine options"):
            config.with_overrides(turbo=True)

    def test_difficulty_cap(self, config):
        assert config.difficulty_cap(0.8) == 0.8
        assert config.with_overrides(global_max_difficulty=0.6).difficulty_cap(0.8) == 0.6
