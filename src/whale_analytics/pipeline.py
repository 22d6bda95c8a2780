"""Analytics pipeline orchestrator for Whale Analytics.

This module provides the Pipeline class that wires every analytics component
from one immutable configuration and a single alert notifier. Callers load the
relevant trade windows themselves and hand them to the pipeline; the pipeline
never persists anything.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal

from whale_analytics.alerter.notifier import AlertNotifier, LoggingAlertNotifier
from whale_analytics.config import AnalyticsConfig, Settings, get_settings
from whale_analytics.detector.accumulation import AccumulationDetector
from whale_analytics.detector.confluence import ConfluenceDetector
from whale_analytics.detector.models import AccumulatingToken, ConfluenceSignal
from whale_analytics.ingestor.models import FundingEvent, Trade
from whale_analytics.profiler.clustering import WalletClusteringService
from whale_analytics.profiler.models import ClusteringVerdict, WalletClusteringEntry
from whale_analytics.scoring.models import ScoreResult, TokenRiskInput, TokenRiskResult
from whale_analytics.scoring.token_risk import TokenRiskCalculator
from whale_analytics.scoring.whale_score import WhaleScoreCalculator

logger = logging.getLogger(__name__)


@dataclass
class PipelineStats:
    """Statistics for the pipeline."""

    wallets_scored: int = 0
    accumulation_signals: int = 0
    confluence_signals: int = 0
    same_owner_pairs: int = 0
    errors: int = 0
    last_run_at: datetime | None = None
    last_error: str | None = None


class Pipeline:
    """Wires the calculators, detectors and clustering service together.

    Example:
        ```python
        from whale_analytics.config import get_settings
        from whale_analytics.pipeline import Pipeline

        pipeline = Pipeline(get_settings(), notifier=my_notifier)
        scores = pipeline.score_wallets(trades_by_wallet)
        await pipeline.run_accumulation(trades_by_wallet, volumes)
        await pipeline.run_confluence(recent_trades)
        ```
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        notifier: AlertNotifier | None = None,
        dry_run: bool | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            settings: Application settings. If not provided, uses get_settings().
            notifier: Alert delivery capability. Defaults to logging only.
            dry_run: If True, alerts are only logged. Overrides settings.dry_run.
        """
        self._settings = settings or get_settings()
        self._dry_run = dry_run if dry_run is not None else self._settings.dry_run
        self._config = self._settings.analytics_config()
        self._stats = PipelineStats()

        if self._dry_run or notifier is None:
            if notifier is not None:
                logger.info("Dry run enabled: alerts will be logged only")
            notifier = LoggingAlertNotifier()
        self._notifier: AlertNotifier = notifier

        self._token_risk = TokenRiskCalculator(config=self._config.token_risk)
        self._whale_score = WhaleScoreCalculator(config=self._config.whale_score)
        self._accumulation = AccumulationDetector(self._notifier, config=self._config.accumulation)
        self._confluence = ConfluenceDetector(self._notifier, config=self._config.confluence)
        self._clustering = WalletClusteringService(config=self._config.clustering)

    @property
    def config(self) -> AnalyticsConfig:
        """Configuration shared by every component."""
        return self._config

    @property
    def notifier(self) -> AlertNotifier:
        """Notifier the detectors emit through."""
        return self._notifier

    @property
    def stats(self) -> PipelineStats:
        """Current pipeline statistics."""
        return self._stats

    def token_risk(self, tokens: Mapping[str, TokenRiskInput]) -> dict[str, TokenRiskResult]:
        """Calculate risk factors for tokens keyed by address."""
        return self._token_risk.calculate_many(tokens)

    def score_wallets(
        self,
        wallet_trades: Mapping[str, Iterable[Trade]],
        *,
        as_of: datetime | None = None,
    ) -> dict[str, ScoreResult]:
        """Recalculate the Whale Score of several wallets.

        A wallet whose calculation fails is logged and skipped; the others
        are still scored.

        Returns:
            Score results keyed by wallet id.
        """
        now = as_of or datetime.now(UTC)
        self._stats.last_run_at = now

        results: dict[str, ScoreResult] = {}
        for wallet_id, trades in wallet_trades.items():
            try:
                result = self._whale_score.calculate(trades, as_of=now)
            except Exception as e:
                self._record_error(f"score {wallet_id}: {e}")
                logger.error("Failed to score wallet %s: %s", wallet_id, e)
                continue

            results[wallet_id] = result
            self._stats.wallets_scored += 1
            logger.debug(
                "Scored wallet %s: score=%s status=%s category=%s",
                wallet_id,
                result.effective_score,
                result.status.value,
                result.category.value,
            )

        logger.info("Whale Score recalculation finished: %d/%d wallets", len(results), len(wallet_trades))
        return results

    async def run_accumulation(
        self,
        wallet_trades: Mapping[str, Iterable[Trade]],
        token_daily_volumes: Mapping[str, Decimal | int | float] | None = None,
        *,
        as_of: datetime | None = None,
    ) -> dict[str, list[AccumulatingToken]]:
        """Run silent accumulation detection for several wallets."""
        now = as_of or datetime.now(UTC)
        self._stats.last_run_at = now

        detected = await self._accumulation.detect_batch(
            wallet_trades,
            token_daily_volumes or {},
            as_of=now,
        )
        failed = len(wallet_trades) - len(detected)
        if failed:
            self._record_error(f"accumulation failed for {failed} wallets")

        found = sum(len(tokens) for tokens in detected.values())
        self._stats.accumulation_signals += found
        logger.info("Accumulation detection finished: %d signals", found)
        return detected

    async def run_confluence(
        self,
        trades: Iterable[Trade],
        *,
        as_of: datetime | None = None,
    ) -> list[ConfluenceSignal]:
        """Run confluence detection over recent trades of many wallets."""
        now = as_of or datetime.now(UTC)
        self._stats.last_run_at = now

        signals = await self._confluence.detect(trades, as_of=now)
        self._stats.confluence_signals += len(signals)
        logger.info("Confluence detection finished: %d signals", len(signals))
        return signals

    def cluster(
        self,
        entries: Sequence[WalletClusteringEntry],
        funding_events: Iterable[FundingEvent] | None = None,
    ) -> dict[tuple[str, str], ClusteringVerdict]:
        """Compare every pair of wallets for same-owner control."""
        verdicts = self._clustering.analyze_many(entries, funding_events)
        self._stats.same_owner_pairs += sum(1 for v in verdicts.values() if v.same_owner)
        return verdicts

    def _record_error(self, message: str) -> None:
        self._stats.errors += 1
        self._stats.last_error = message
