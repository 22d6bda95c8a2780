"""Configuration management service with Pydantic Settings.

This module provides centralized configuration management for Whale
Analytics, loading and validating environment variables at startup and
turning them into the immutable per-component configuration records the
calculators and detectors consume.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from whale_analytics.detector.accumulation import AccumulationConfig
from whale_analytics.detector.confluence import ConfluenceConfig
from whale_analytics.profiler.clustering import ClusteringConfig
from whale_analytics.scoring.token_risk import TokenRiskConfig
from whale_analytics.scoring.whale_score import WhaleScoreConfig

_ENV_FILE = ".env"
_ENV_FILE_ENCODING = "utf-8"


@dataclass(frozen=True)
class AnalyticsConfig:
    """Immutable configuration shared by every analytics component.

    Token risk tiers are not loaded from the environment.
    """

    token_risk: TokenRiskConfig = field(default_factory=TokenRiskConfig)
    whale_score: WhaleScoreConfig = field(default_factory=WhaleScoreConfig)
    accumulation: AccumulationConfig = field(default_factory=AccumulationConfig)
    confluence: ConfluenceConfig = field(default_factory=ConfluenceConfig)
    clustering: ClusteringConfig = field(default_factory=ClusteringConfig)


class WhaleScoreSettings(BaseSettings):
    """Whale Score qualification rules."""

    model_config = SettingsConfigDict(env_prefix="WHALE_SCORE_", extra="ignore")

    min_operations: int = Field(
        default=30,
        alias="WHALE_SCORE_MIN_OPERATIONS",
        ge=1,
        le=100_000,
        description="Finalized SELLs required before a wallet is scored",
    )
    min_operations_90d: int = Field(
        default=5,
        alias="WHALE_SCORE_MIN_OPERATIONS_90D",
        ge=1,
        le=100_000,
        description="SELLs required inside the 90-day window for the 90-day score",
    )
    min_history_months: float = Field(
        default=3.0,
        alias="WHALE_SCORE_MIN_HISTORY_MONTHS",
        ge=0.0,
        le=120.0,
        description="History (30-day months) below which a wallet is a newcomer",
    )
    min_win_rate: float = Field(
        default=0.40,
        alias="WHALE_SCORE_MIN_WIN_RATE",
        ge=0.0,
        le=1.0,
        description="Win rate below which a wallet is high-risk/high-reward",
    )
    half_life_days: float = Field(
        default=365.0,
        alias="WHALE_SCORE_HALF_LIFE_DAYS",
        gt=0.0,
        le=3650.0,
        description="Half-life of the exponential decay applied to the all-time score",
    )


class AccumulationSettings(BaseSettings):
    """Silent accumulation detector configuration."""

    model_config = SettingsConfigDict(env_prefix="ACCUMULATION_", extra="ignore")

    window_days: int = Field(
        default=7,
        alias="ACCUMULATION_WINDOW_DAYS",
        ge=1,
        le=90,
        description="Trailing window of BUYs considered",
    )
    min_interval_hours: float = Field(
        default=2.0,
        alias="ACCUMULATION_MIN_INTERVAL_HOURS",
        ge=0.0,
        le=168.0,
        description="Minimum spacing between admitted purchases",
    )
    max_volume_ratio: Decimal = Field(
        default=Decimal("0.03"),
        alias="ACCUMULATION_MAX_VOLUME_RATIO",
        description="Maximum purchase size as a fraction of the token's daily volume",
    )
    min_purchases: int = Field(
        default=3,
        alias="ACCUMULATION_MIN_PURCHASES",
        ge=1,
        le=1000,
        description="Admitted purchases required to report a token",
    )
    confirmed_purchases: int = Field(
        default=5,
        alias="ACCUMULATION_CONFIRMED_PURCHASES",
        ge=1,
        le=1000,
        description="Admitted purchases required for a complete pattern",
    )
    confirmed_total_usd: Decimal = Field(
        default=Decimal("50000"),
        alias="ACCUMULATION_CONFIRMED_TOTAL_USD",
        description="Total USD required for a complete pattern",
    )

    @field_validator("max_volume_ratio")
    @classmethod
    def validate_max_volume_ratio(cls, v: Decimal) -> Decimal:
        if v <= 0 or v > 1:
            raise ValueError("ACCUMULATION_MAX_VOLUME_RATIO must be in (0, 1]")
        return v

    @field_validator("confirmed_total_usd")
    @classmethod
    def validate_confirmed_total_usd(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("ACCUMULATION_CONFIRMED_TOTAL_USD must be >= 0")
        return v


class ConfluenceSettings(BaseSettings):
    """Multi-wallet confluence detector configuration."""

    model_config = SettingsConfigDict(env_prefix="CONFLUENCE_", extra="ignore")

    window_hours: float = Field(
        default=4.0,
        alias="CONFLUENCE_WINDOW_HOURS",
        gt=0.0,
        le=168.0,
        description="Trailing window of BUYs considered",
    )
    signal_ttl_hours: float = Field(
        default=24.0,
        alias="CONFLUENCE_SIGNAL_TTL_HOURS",
        gt=0.0,
        le=720.0,
        description="Lifetime of an emitted signal",
    )
    min_wallets: int = Field(
        default=3,
        alias="CONFLUENCE_MIN_WALLETS",
        ge=2,
        le=1000,
        description="Distinct scored wallets required for a signal",
    )
    high_threshold: Decimal = Field(
        default=Decimal("85"),
        alias="CONFLUENCE_HIGH_THRESHOLD",
        description="Average score strictly above which confidence is HIGH",
    )
    moderate_threshold: Decimal = Field(
        default=Decimal("60"),
        alias="CONFLUENCE_MODERATE_THRESHOLD",
        description="Average score from which confidence is MODERATE",
    )

    @model_validator(mode="after")
    def validate_thresholds(self) -> ConfluenceSettings:
        if not Decimal("0") <= self.moderate_threshold <= self.high_threshold <= Decimal("100"):
            raise ValueError(
                "CONFLUENCE thresholds must satisfy 0 <= MODERATE_THRESHOLD <= HIGH_THRESHOLD <= 100"
            )
        return self


class ClusteringSettings(BaseSettings):
    """Same-owner wallet clustering configuration."""

    model_config = SettingsConfigDict(env_prefix="CLUSTERING_", extra="ignore")

    timing_window_minutes: float = Field(
        default=30.0,
        alias="CLUSTERING_TIMING_WINDOW_MINUTES",
        gt=0.0,
        le=1440.0,
        description="Window within which two trades count as simultaneous",
    )
    timing_min_matches: int = Field(
        default=3,
        alias="CLUSTERING_TIMING_MIN_MATCHES",
        ge=1,
        le=10_000,
        description="Simultaneous trades required for the timing heuristic",
    )
    timing_min_overlap: float = Field(
        default=0.30,
        alias="CLUSTERING_TIMING_MIN_OVERLAP",
        ge=0.0,
        le=1.0,
        description="Simultaneous trades as a fraction of the smaller wallet's trades",
    )
    sequence_window_minutes: float = Field(
        default=5.0,
        alias="CLUSTERING_SEQUENCE_WINDOW_MINUTES",
        gt=0.0,
        le=1440.0,
        description="Window within which both wallets trading a token counts as sequenced",
    )
    sequence_min_tokens: int = Field(
        default=2,
        alias="CLUSTERING_SEQUENCE_MIN_TOKENS",
        ge=1,
        le=10_000,
        description="Distinct sequenced tokens required for the sequence heuristic",
    )


class Settings(BaseSettings):
    """Main application settings.

    Loads configuration from environment variables with support for
    .env files via python-dotenv.

    Example:
        ```python
        from whale_analytics.config import get_settings

        settings = get_settings()
        config = settings.analytics_config()
        detector = AccumulationDetector(notifier, config=config.accumulation)
        ```
    """

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE,
        env_file_encoding=_ENV_FILE_ENCODING,
        extra="ignore",
    )

    # NOTE: Each nested BaseSettings must be given the same env_file, otherwise it
    # will only read from the process environment (and ignore `.env`).
    whale_score: WhaleScoreSettings = Field(
        default_factory=lambda: WhaleScoreSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )
    accumulation: AccumulationSettings = Field(
        default_factory=lambda: AccumulationSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )
    confluence: ConfluenceSettings = Field(
        default_factory=lambda: ConfluenceSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )
    clustering: ClusteringSettings = Field(
        default_factory=lambda: ClusteringSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )

    # Application settings
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        alias="LOG_LEVEL",
        description="Logging level",
    )
    dry_run: bool = Field(
        default=False,
        alias="DRY_RUN",
        description="Log alerts instead of delivering them",
    )

    def get_logging_level(self) -> int:
        """Get the numeric logging level."""
        level: int = getattr(logging, self.log_level)
        return level

    def analytics_config(self) -> AnalyticsConfig:
        """Build the immutable configuration record for the analytics components."""
        ws = self.whale_score
        acc = self.accumulation
        conf = self.confluence
        cl = self.clustering
        return AnalyticsConfig(
            token_risk=TokenRiskConfig(),
            whale_score=WhaleScoreConfig(
                min_operations=ws.min_operations,
                min_operations_90d=ws.min_operations_90d,
                min_history_months=ws.min_history_months,
                min_win_rate=ws.min_win_rate,
                half_life_days=ws.half_life_days,
            ),
            accumulation=AccumulationConfig(
                window=timedelta(days=acc.window_days),
                min_interval=timedelta(hours=acc.min_interval_hours),
                max_volume_ratio=acc.max_volume_ratio,
                min_purchases=acc.min_purchases,
                confirmed_purchases=acc.confirmed_purchases,
                confirmed_total_usd=acc.confirmed_total_usd,
            ),
            confluence=ConfluenceConfig(
                window=timedelta(hours=conf.window_hours),
                signal_ttl=timedelta(hours=conf.signal_ttl_hours),
                min_wallets=conf.min_wallets,
                high_threshold=conf.high_threshold,
                moderate_threshold=conf.moderate_threshold,
            ),
            clustering=ClusteringConfig(
                timing_window=timedelta(minutes=cl.timing_window_minutes),
                timing_min_matches=cl.timing_min_matches,
                timing_min_overlap=cl.timing_min_overlap,
                sequence_window=timedelta(minutes=cl.sequence_window_minutes),
                sequence_min_tokens=cl.sequence_min_tokens,
            ),
        )

    def summary(self) -> dict[str, str | dict[str, str]]:
        """Get a flat summary of the active settings for startup logging."""
        return {
            "whale_score": {
                "min_operations": str(self.whale_score.min_operations),
                "min_operations_90d": str(self.whale_score.min_operations_90d),
                "min_history_months": str(self.whale_score.min_history_months),
                "min_win_rate": str(self.whale_score.min_win_rate),
                "half_life_days": str(self.whale_score.half_life_days),
            },
            "accumulation": {
                "window_days": str(self.accumulation.window_days),
                "min_interval_hours": str(self.accumulation.min_interval_hours),
                "max_volume_ratio": str(self.accumulation.max_volume_ratio),
                "confirmed_total_usd": str(self.accumulation.confirmed_total_usd),
            },
            "confluence": {
                "window_hours": str(self.confluence.window_hours),
                "min_wallets": str(self.confluence.min_wallets),
                "high_threshold": str(self.confluence.high_threshold),
                "moderate_threshold": str(self.confluence.moderate_threshold),
            },
            "clustering": {
                "timing_window_minutes": str(self.clustering.timing_window_minutes),
                "sequence_window_minutes": str(self.clustering.sequence_window_minutes),
            },
            "log_level": self.log_level,
            "dry_run": str(self.dry_run),
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Uses LRU cache to ensure settings are loaded only once and
    reused across the application.

    Returns:
        The Settings instance.

    Raises:
        ValidationError: If environment variables have invalid values.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Useful for testing when you need to reload settings with
    different environment variables.
    """
    get_settings.cache_clear()
