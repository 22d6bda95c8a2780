"""Tests for the analytics pipeline orchestrator."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from whale_analytics.alerter.notifier import LoggingAlertNotifier
from whale_analytics.config import Settings
from whale_analytics.ingestor.models import FundingEvent, Trade, WalletSummary
from whale_analytics.pipeline import Pipeline
from whale_analytics.profiler.models import WalletClusteringEntry
from whale_analytics.scoring.models import TokenRiskInput


def create_trade(
    wallet_id: str,
    ts: datetime,
    *,
    direction: str = "BUY",
    token: str = "0xtoken",
    roi: str | None = None,
    wallet: WalletSummary | None = None,
) -> Trade:
    return Trade(
        id=f"{wallet_id}-{token}-{direction}-{ts.isoformat()}",
        wallet_id=wallet_id,
        token_address=token,
        direction=direction,  # type: ignore[arg-type]
        amount_usd=Decimal("12000"),
        timestamp=ts,
        token_symbol="PEPE",
        roi_adjusted=Decimal(roi) if roi is not None else None,
        is_finalized=True,
        wallet=wallet,
    )


def sells(wallet_id: str, now: datetime, count: int = 30, span_days: int = 130) -> list[Trade]:
    step = timedelta(days=span_days) / (count - 1)
    oldest = now - timedelta(days=span_days)
    return [
        create_trade(wallet_id, oldest + step * i, direction="SELL", roi="0.5")
        for i in range(count)
    ]


@pytest.fixture
def settings() -> Settings:
    return Settings()


class TestPipelineInit:
    """Tests for notifier selection and wiring."""

    def test_defaults_to_logging_notifier(self, settings: Settings) -> None:
        pipeline = Pipeline(settings)

        assert isinstance(pipeline.notifier, LoggingAlertNotifier)
        assert pipeline.config.confluence.min_wallets == 3

    def test_uses_given_notifier(self, settings: Settings, notifier: AsyncMock) -> None:
        pipeline = Pipeline(settings, notifier=notifier)

        assert pipeline.notifier is notifier

    def test_dry_run_overrides_notifier(self, settings: Settings, notifier: AsyncMock) -> None:
        pipeline = Pipeline(settings, notifier=notifier, dry_run=True)

        assert isinstance(pipeline.notifier, LoggingAlertNotifier)

    def test_dry_run_from_environment(self, monkeypatch: pytest.MonkeyPatch, notifier: AsyncMock) -> None:
        monkeypatch.setenv("DRY_RUN", "true")

        pipeline = Pipeline(notifier=notifier)

        assert isinstance(pipeline.notifier, LoggingAlertNotifier)


class TestScoring:
    """Tests for token risk and Whale Score recalculation."""

    def test_token_risk(self, settings: Settings) -> None:
        token = TokenRiskInput(
            tvl=Decimal("0"),
            market_cap=Decimal("0"),
            contract_age_days=Decimal("0"),
            daily_volume_30d=Decimal("0"),
            holder_count=0,
            has_exploit_history=True,
        )

        results = Pipeline(settings).token_risk({"0xrug": token})

        assert results["0xrug"].risk_factor == Decimal("0.1")

    def test_score_wallets_skips_failures(self, settings: Settings, now: datetime) -> None:
        pipeline = Pipeline(settings)
        naive = create_trade("bad", now.replace(tzinfo=None), direction="SELL", roi="0.1")

        results = pipeline.score_wallets(
            {"good": sells("good", now), "bad": [naive]},
            as_of=now,
        )

        assert list(results) == ["good"]
        assert results["good"].score_all_time == Decimal("81.25")
        assert pipeline.stats.wallets_scored == 1
        assert pipeline.stats.errors == 1
        assert pipeline.stats.last_error is not None
        assert pipeline.stats.last_error.startswith("score bad")
        assert pipeline.stats.last_run_at == now


class TestDetection:
    """Tests for the detector runs."""

    async def test_run_accumulation(self, settings: Settings, notifier: AsyncMock, now: datetime) -> None:
        pipeline = Pipeline(settings, notifier=notifier)
        buys = [create_trade("w1", now - timedelta(hours=h)) for h in (12, 9, 6, 3, 0)]
        naive = [create_trade("w2", now.replace(tzinfo=None))]

        detected = await pipeline.run_accumulation({"w1": buys, "w2": naive}, as_of=now)

        assert detected["w1"][0].purchase_count == 5
        assert detected["w1"][0].is_complete is True
        assert pipeline.stats.accumulation_signals == 1
        assert pipeline.stats.errors == 1
        notifier.notify_accumulation.assert_awaited_once_with("w1", "PEPE", 5)

    async def test_run_confluence(self, settings: Settings, now: datetime) -> None:
        pipeline = Pipeline(settings)
        trades = [
            create_trade(
                f"w{i}",
                now - timedelta(minutes=15 * i),
                wallet=WalletSummary(
                    id=f"w{i}",
                    address=f"0x{i:040d}",
                    first_seen=datetime(2024, 1, 1, tzinfo=UTC),
                    current_score=Decimal("70"),
                ),
            )
            for i in range(4)
        ]

        signals = await pipeline.run_confluence(trades, as_of=now)

        assert len(signals) == 1
        assert signals[0].wallet_count == 4
        assert pipeline.stats.confluence_signals == 1
        sent = pipeline.notifier.sent  # type: ignore[attr-defined]
        assert sent[0].body.startswith(
            "Moderate confluence: 4 whales bought PEPE within the 4-hour window"
        )


class TestClustering:
    """Tests for the clustering run."""

    def test_cluster_counts_same_owner_pairs(self, settings: Settings, now: datetime) -> None:
        pipeline = Pipeline(settings)
        trades_a = [create_trade("a", now - timedelta(hours=h), token=f"0xt{h}") for h in (1, 5, 9)]
        trades_b = [create_trade("b", now - timedelta(hours=h), token=f"0xt{h}") for h in (1, 5, 9)]
        a = WalletClusteringEntry("a", "0xaaaa", now - timedelta(days=30), tuple(trades_a))
        b = WalletClusteringEntry("b", "0xbbbb", now - timedelta(days=20), tuple(trades_b))
        c = WalletClusteringEntry("c", "0xcccc", now - timedelta(days=20))

        verdicts = pipeline.cluster([a, b, c], [FundingEvent("0xaaaa", "0xbbbb", now - timedelta(days=21))])

        assert verdicts[("a", "b")].same_owner is True
        assert pipeline.stats.same_owner_pairs == 1
