"""Multi-wallet confluence detection.

Flags tokens bought by three or more distinct reputable wallets within a
short window. The average Whale Score of those wallets decides whether the
signal is reported with high or moderate confidence.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING

from whale_analytics.detector.models import ConfidenceLevel, ConfluenceSignal
from whale_analytics.ingestor.models import Trade, WalletSummary, finalized

if TYPE_CHECKING:
    from whale_analytics.alerter.notifier import AlertNotifier

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = timedelta(hours=4)
DEFAULT_SIGNAL_TTL = timedelta(hours=24)
DEFAULT_MIN_WALLETS = 3
DEFAULT_HIGH_THRESHOLD = Decimal("85")  # strictly greater than
DEFAULT_MODERATE_THRESHOLD = Decimal("60")  # greater than or equal


class ConfluenceDetectorError(Exception):
    pass


@dataclass(frozen=True)
class ConfluenceConfig:
    window: timedelta = DEFAULT_WINDOW
    signal_ttl: timedelta = DEFAULT_SIGNAL_TTL
    min_wallets: int = DEFAULT_MIN_WALLETS
    high_threshold: Decimal = DEFAULT_HIGH_THRESHOLD
    moderate_threshold: Decimal = DEFAULT_MODERATE_THRESHOLD


class ConfluenceDetector:
    """Detector for several whales buying the same token.

    Only BUYs from wallets that already have a current score count, and each
    wallet counts once per token no matter how many times it bought.

    Example:
        ```python
        detector = ConfluenceDetector(notifier)
        signals = await detector.detect(recent_trades)
        for signal in signals:
            print(f"{signal.token_identifier}: {signal.confidence_level.value}")
        ```
    """

    def __init__(
        self,
        notifier: AlertNotifier,
        *,
        config: ConfluenceConfig | None = None,
    ) -> None:
        self._notifier = notifier
        self._cfg = config or ConfluenceConfig()

    def classify(self, avg_score: Decimal) -> ConfidenceLevel | None:
        """Map an average wallet score to a confidence level.

        Returns:
            HIGH above 85, MODERATE from 60 to 85 inclusive, otherwise None.
        """
        if avg_score > self._cfg.high_threshold:
            return ConfidenceLevel.HIGH
        if avg_score >= self._cfg.moderate_threshold:
            return ConfidenceLevel.MODERATE
        return None

    async def detect(
        self,
        trades: Iterable[Trade],
        *,
        as_of: datetime | None = None,
    ) -> list[ConfluenceSignal]:
        """Detect confluence signals among recent trades.

        An alert is emitted for every returned signal.

        Args:
            trades: Recent trades of many wallets, each carrying its wallet
                summary.
            as_of: Evaluation time (default: now, UTC).

        Returns:
            Confluence signals in first-purchase order of their tokens.

        Raises:
            ConfluenceDetectorError: If ``as_of`` or a trade timestamp is naive.
        """
        now = as_of or datetime.now(UTC)
        if now.tzinfo is None:
            raise ConfluenceDetectorError("as_of must be timezone-aware")
        window_start = now - self._cfg.window

        by_token: dict[str, list[Trade]] = {}
        for trade in finalized(trades):
            if not trade.is_buy or trade.wallet is None or trade.wallet.current_score is None:
                continue
            if trade.timestamp.tzinfo is None:
                raise ConfluenceDetectorError(f"trade {trade.id} timestamp must be timezone-aware")
            if trade.timestamp < window_start:
                continue
            by_token.setdefault(trade.token_address, []).append(trade)

        signals: list[ConfluenceSignal] = []
        for token_address, token_trades in by_token.items():
            # First occurrence per wallet wins
            wallets: dict[str, WalletSummary] = {}
            for trade in token_trades:
                if trade.wallet is not None and trade.wallet.id not in wallets:
                    wallets[trade.wallet.id] = trade.wallet
            unique = tuple(wallets.values())

            if len(unique) < self._cfg.min_wallets:
                continue

            avg_score = sum(
                (w.current_score for w in unique if w.current_score is not None),
                Decimal("0"),
            ) / Decimal(len(unique))

            level = self.classify(avg_score)
            if level is None:
                logger.debug(
                    "Token %s confluence below threshold: avg_score=%s",
                    token_address[:10] + "...",
                    avg_score,
                )
                continue

            symbol = next((t.token_symbol for t in token_trades if t.token_symbol), None)
            signal = ConfluenceSignal(
                token_address=token_address,
                token_symbol=symbol,
                confidence_level=level,
                wallet_count=len(unique),
                avg_score=avg_score,
                wallets=unique,
                detected_at=now,
                expires_at=now + self._cfg.signal_ttl,
            )
            signals.append(signal)

            logger.info(
                "Confluence signal: token=%s, wallets=%d, avg_score=%s, level=%s",
                signal.token_identifier,
                signal.wallet_count,
                signal.avg_score,
                signal.confidence_level.value,
            )

            try:
                await self._notifier.notify_confluence(
                    signal.token_identifier,
                    list(unique),
                    level,
                )
            except Exception as e:
                logger.warning(
                    "Failed to notify confluence for token %s: %s",
                    signal.token_identifier,
                    e,
                )

        return signals
