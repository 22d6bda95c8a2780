"""Tests for the configuration layer."""

import logging
from datetime import timedelta
from decimal import Decimal

import pytest
from pydantic import ValidationError

from whale_analytics.config import (
    AccumulationSettings,
    ConfluenceSettings,
    Settings,
    WhaleScoreSettings,
    get_settings,
)


class TestDefaults:
    """Tests for default settings."""

    def test_defaults_match_component_defaults(self) -> None:
        config = Settings().analytics_config()

        assert config.whale_score.min_operations == 30
        assert config.whale_score.min_operations_90d == 5
        assert config.whale_score.half_life_days == 365.0
        assert config.accumulation.window == timedelta(days=7)
        assert config.accumulation.min_interval == timedelta(hours=2)
        assert config.accumulation.max_volume_ratio == Decimal("0.03")
        assert config.accumulation.confirmed_total_usd == Decimal("50000")
        assert config.confluence.window == timedelta(hours=4)
        assert config.confluence.signal_ttl == timedelta(hours=24)
        assert config.confluence.high_threshold == Decimal("85")
        assert config.clustering.timing_window == timedelta(minutes=30)
        assert config.clustering.sequence_window == timedelta(minutes=5)
        assert config.clustering.min_heuristics == 3

    def test_logging_level(self) -> None:
        settings = Settings()

        assert settings.log_level == "INFO"
        assert settings.get_logging_level() == logging.INFO
        assert settings.dry_run is False

    def test_get_settings_is_cached(self) -> None:
        assert get_settings() is get_settings()


class TestEnvironmentOverrides:
    """Tests for loading values from the environment."""

    def test_nested_group_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ACCUMULATION_MIN_INTERVAL_HOURS", "1.5")
        monkeypatch.setenv("ACCUMULATION_MAX_VOLUME_RATIO", "0.05")
        monkeypatch.setenv("CONFLUENCE_MIN_WALLETS", "4")
        monkeypatch.setenv("WHALE_SCORE_MIN_OPERATIONS", "50")
        monkeypatch.setenv("CLUSTERING_TIMING_WINDOW_MINUTES", "15")

        config = get_settings().analytics_config()

        assert config.accumulation.min_interval == timedelta(minutes=90)
        assert config.accumulation.max_volume_ratio == Decimal("0.05")
        assert config.confluence.min_wallets == 4
        assert config.whale_score.min_operations == 50
        assert config.clustering.timing_window == timedelta(minutes=15)

    def test_application_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("DRY_RUN", "true")

        settings = Settings()

        assert settings.get_logging_level() == logging.DEBUG
        assert settings.dry_run is True
        assert settings.summary()["dry_run"] == "True"


class TestValidation:
    """Tests for rejected values."""

    def test_invalid_log_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_LEVEL", "VERBOSE")

        with pytest.raises(ValidationError):
            Settings()

    @pytest.mark.parametrize("ratio", ["0", "-0.01", "1.5"])
    def test_volume_ratio_range(self, monkeypatch: pytest.MonkeyPatch, ratio: str) -> None:
        monkeypatch.setenv("ACCUMULATION_MAX_VOLUME_RATIO", ratio)

        with pytest.raises(ValidationError):
            AccumulationSettings()

    def test_thresholds_must_be_ordered(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CONFLUENCE_HIGH_THRESHOLD", "50")
        monkeypatch.setenv("CONFLUENCE_MODERATE_THRESHOLD", "70")

        with pytest.raises(ValidationError):
            ConfluenceSettings()

    def test_min_wallets_at_least_two(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CONFLUENCE_MIN_WALLETS", "1")

        with pytest.raises(ValidationError):
            ConfluenceSettings()

    def test_win_rate_range(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("WHALE_SCORE_MIN_WIN_RATE", "1.2")

        with pytest.raises(ValidationError):
            WhaleScoreSettings()
