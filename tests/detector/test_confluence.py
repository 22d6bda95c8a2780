"""Tests for the multi-wallet confluence detector."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from whale_analytics.detector.confluence import (
    ConfluenceConfig,
    ConfluenceDetector,
    ConfluenceDetectorError,
)
from whale_analytics.detector.models import ConfidenceLevel
from whale_analytics.ingestor.models import Trade, WalletSummary

TOKEN = "0xconfluence0000000000000000000000000000001"
OTHER_TOKEN = "0xconfluence0000000000000000000000000000002"


def create_wallet(wallet_id: str, score: str | None) -> WalletSummary:
    return WalletSummary(
        id=wallet_id,
        address=f"0x{wallet_id:0>40}",
        first_seen=datetime(2024, 1, 1, tzinfo=UTC),
        current_score=Decimal(score) if score is not None else None,
    )


def create_trade(
    wallet: WalletSummary,
    ts: datetime,
    *,
    token: str = TOKEN,
    symbol: str | None = "WIF",
    direction: str = "BUY",
    is_finalized: bool = True,
) -> Trade:
    return Trade(
        id=f"{wallet.id}-{token}-{ts.isoformat()}",
        wallet_id=wallet.id,
        token_address=token,
        direction=direction,  # type: ignore[arg-type]
        amount_usd=Decimal("25000"),
        timestamp=ts,
        token_symbol=symbol,
        is_finalized=is_finalized,
        wallet=wallet,
    )


def group_buys(now: datetime, scores: list[str | None], **kwargs: object) -> list[Trade]:
    """One recent buy per wallet, wallets named w0, w1, ..."""
    return [
        create_trade(create_wallet(f"w{i}", score), now - timedelta(minutes=10 * (i + 1)), **kwargs)  # type: ignore[arg-type]
        for i, score in enumerate(scores)
    ]


class TestClassify:
    """Tests for the confidence thresholds."""

    @pytest.mark.parametrize(
        ("avg", "expected"),
        [
            ("100", ConfidenceLevel.HIGH),
            ("85.01", ConfidenceLevel.HIGH),
            ("85", ConfidenceLevel.MODERATE),
            ("60", ConfidenceLevel.MODERATE),
            ("59.99", None),
            ("0", None),
        ],
    )
    def test_thresholds(self, avg: str, expected: ConfidenceLevel | None, notifier: AsyncMock) -> None:
        assert ConfluenceDetector(notifier).classify(Decimal(avg)) == expected


class TestDetect:
    """Tests for ConfluenceDetector.detect."""

    async def test_high_confidence_signal(self, now: datetime, notifier: AsyncMock) -> None:
        detector = ConfluenceDetector(notifier)
        trades = group_buys(now, ["90", "88", "92"])

        signals = await detector.detect(trades, as_of=now)

        assert len(signals) == 1
        signal = signals[0]
        assert signal.token_address == TOKEN
        assert signal.token_symbol == "WIF"
        assert signal.confidence_level == ConfidenceLevel.HIGH
        assert signal.wallet_count == 3
        assert signal.avg_score == Decimal("90")
        assert [w.id for w in signal.wallets] == ["w0", "w1", "w2"]
        assert signal.detected_at == now
        assert signal.expires_at == now + timedelta(hours=24)

        notifier.notify_confluence.assert_awaited_once()
        identifier, wallets, level = notifier.notify_confluence.await_args.args
        assert identifier == "WIF"
        assert [w.id for w in wallets] == ["w0", "w1", "w2"]
        assert level == ConfidenceLevel.HIGH

    async def test_average_of_exactly_85_is_moderate(self, now: datetime, notifier: AsyncMock) -> None:
        detector = ConfluenceDetector(notifier)

        signals = await detector.detect(group_buys(now, ["85", "85", "85"]), as_of=now)

        assert signals[0].confidence_level == ConfidenceLevel.MODERATE
        assert signals[0].avg_score == Decimal("85")

    async def test_low_average_emits_nothing(self, now: datetime, notifier: AsyncMock) -> None:
        detector = ConfluenceDetector(notifier)

        signals = await detector.detect(group_buys(now, ["70", "50", "55"]), as_of=now)

        assert signals == []
        notifier.notify_confluence.assert_not_awaited()

    async def test_repeat_buys_do_not_inflate_count(self, now: datetime, notifier: AsyncMock) -> None:
        detector = ConfluenceDetector(notifier)
        a = create_wallet("a", "90")
        b = create_wallet("b", "90")
        trades = [
            create_trade(a, now - timedelta(minutes=30)),
            create_trade(a, now - timedelta(minutes=20)),
            create_trade(a, now - timedelta(minutes=10)),
            create_trade(b, now - timedelta(minutes=5)),
        ]

        assert await detector.detect(trades, as_of=now) == []

    async def test_first_occurrence_wins(self, now: datetime, notifier: AsyncMock) -> None:
        detector = ConfluenceDetector(notifier)
        trades = group_buys(now, ["90", "90", "90"])
        # Same wallet id appears later with a stale score
        trades.append(create_trade(create_wallet("w0", "10"), now - timedelta(minutes=1)))

        signals = await detector.detect(trades, as_of=now)

        assert signals[0].wallet_count == 3
        assert signals[0].avg_score == Decimal("90")

    async def test_unscored_wallets_are_excluded(self, now: datetime, notifier: AsyncMock) -> None:
        detector = ConfluenceDetector(notifier)

        signals = await detector.detect(group_buys(now, ["95", "95", None]), as_of=now)

        assert signals == []

    async def test_trades_without_wallet_are_excluded(self, now: datetime, notifier: AsyncMock) -> None:
        detector = ConfluenceDetector(notifier)
        trades = group_buys(now, ["95", "95"])
        trades.append(
            Trade(
                id="orphan",
                wallet_id="w9",
                token_address=TOKEN,
                direction="BUY",
                amount_usd=Decimal("1"),
                timestamp=now,
                is_finalized=True,
            )
        )

        assert await detector.detect(trades, as_of=now) == []

    async def test_window_boundary(self, now: datetime, notifier: AsyncMock) -> None:
        detector = ConfluenceDetector(notifier)
        trades = [
            create_trade(create_wallet("a", "90"), now - timedelta(hours=4)),
            create_trade(create_wallet("b", "90"), now - timedelta(hours=1)),
            create_trade(create_wallet("c", "90"), now - timedelta(hours=4, seconds=1)),
        ]

        assert await detector.detect(trades, as_of=now) == []

        trades[2] = create_trade(create_wallet("c", "90"), now)
        signals = await detector.detect(trades, as_of=now)
        assert signals[0].wallet_count == 3

    async def test_sells_and_unfinalized_ignored(self, now: datetime, notifier: AsyncMock) -> None:
        detector = ConfluenceDetector(notifier)
        trades = group_buys(now, ["90", "90"])
        trades.append(create_trade(create_wallet("s", "90"), now, direction="SELL"))
        trades.append(create_trade(create_wallet("u", "90"), now, is_finalized=False))

        assert await detector.detect(trades, as_of=now) == []


class TestSymbolResolution:
    """Tests for display symbol resolution."""

    async def test_first_known_symbol_is_used(self, now: datetime, notifier: AsyncMock) -> None:
        detector = ConfluenceDetector(notifier)
        trades = group_buys(now, ["90", "90", "90"], symbol=None)
        trades[1] = create_trade(trades[1].wallet, trades[1].timestamp, symbol="BONK")  # type: ignore[arg-type]

        signals = await detector.detect(trades, as_of=now)

        assert signals[0].token_symbol == "BONK"

    async def test_address_used_when_no_symbol(self, now: datetime, notifier: AsyncMock) -> None:
        detector = ConfluenceDetector(notifier)

        signals = await detector.detect(group_buys(now, ["90", "90", "90"], symbol=None), as_of=now)

        assert signals[0].token_symbol is None
        assert signals[0].token_identifier == TOKEN
        assert notifier.notify_confluence.await_args.args[0] == TOKEN


class TestMultipleTokens:
    """Tests for independent per-token evaluation."""

    async def test_tokens_evaluated_independently(self, now: datetime, notifier: AsyncMock) -> None:
        detector = ConfluenceDetector(notifier)
        trades = group_buys(now, ["70", "70", "70"], token=OTHER_TOKEN) + group_buys(
            now, ["95", "95", "95"]
        )

        signals = await detector.detect(trades, as_of=now)

        assert [s.token_address for s in signals] == [OTHER_TOKEN, TOKEN]
        assert [s.confidence_level for s in signals] == [
            ConfidenceLevel.MODERATE,
            ConfidenceLevel.HIGH,
        ]
        assert notifier.notify_confluence.await_count == 2

    async def test_notifier_failure_does_not_affect_result(self, now: datetime) -> None:
        notifier = AsyncMock()
        notifier.notify_confluence.side_effect = RuntimeError("delivery down")
        detector = ConfluenceDetector(notifier)

        signals = await detector.detect(group_buys(now, ["90", "90", "90"]), as_of=now)

        assert len(signals) == 1


class TestSignalHelpers:
    """Tests for ConfluenceSignal helpers and configuration."""

    async def test_expiry_and_serialization(self, now: datetime, notifier: AsyncMock) -> None:
        detector = ConfluenceDetector(notifier)

        signal = (await detector.detect(group_buys(now, ["90", "90", "90"]), as_of=now))[0]

        assert not signal.is_expired(now + timedelta(hours=23))
        assert signal.is_expired(now + timedelta(hours=24))
        data = signal.to_dict()
        assert data["confidence_level"] == "HIGH"
        assert data["avg_score"] == "90"
        assert data["wallet_ids"] == ["w0", "w1", "w2"]
        assert data["expires_at"] == (now + timedelta(hours=24)).isoformat()

    async def test_custom_min_wallets(self, now: datetime, notifier: AsyncMock) -> None:
        detector = ConfluenceDetector(notifier, config=ConfluenceConfig(min_wallets=2))

        signals = await detector.detect(group_buys(now, ["90", "90"]), as_of=now)

        assert signals[0].wallet_count == 2

    async def test_naive_as_of_raises(self, now: datetime, notifier: AsyncMock) -> None:
        with pytest.raises(ConfluenceDetectorError):
            await ConfluenceDetector(notifier).detect([], as_of=now.replace(tzinfo=None))

    async def test_high_confidence_flag(self, now: datetime, notifier: AsyncMock) -> None:
        detector = ConfluenceDetector(notifier)

        high = await detector.detect(group_buys(now, ["90", "90", "90"]), as_of=now)
        moderate = await detector.detect(group_buys(now, ["85", "85", "85"]), as_of=now)

        assert high[0].is_high_confidence is True
        assert moderate[0].is_high_confidence is False

    async def test_repeat_calls_are_identical(self, now: datetime, notifier: AsyncMock) -> None:
        detector = ConfluenceDetector(notifier)
        trades = group_buys(now, ["90", "70", "88", None])

        first = await detector.detect(trades, as_of=now)
        second = await detector.detect(trades, as_of=now)

        assert first == second
        assert [s.to_dict() for s in first] == [s.to_dict() for s in second]
        assert notifier.notify_confluence.await_count == 2
