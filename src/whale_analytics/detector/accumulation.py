"""Silent accumulation detection algorithm.

A wallet is silently accumulating a token when it buys it repeatedly in
purchases that are individually small relative to the token's daily volume
and spaced at least two hours apart. The detector builds, per token, a greedy
chain of such purchases over the trailing seven days and reports every token
whose chain reaches three purchases.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING

from whale_analytics.detector.models import AccumulatingToken
from whale_analytics.ingestor.models import Trade, finalized

if TYPE_CHECKING:
    from whale_analytics.alerter.notifier import AlertNotifier

logger = logging.getLogger(__name__)

# Default configuration
DEFAULT_WINDOW = timedelta(days=7)
DEFAULT_MIN_INTERVAL = timedelta(hours=2)
DEFAULT_MAX_VOLUME_RATIO = Decimal("0.03")  # 3% of daily volume per purchase
DEFAULT_MIN_PURCHASES = 3
DEFAULT_CONFIRMED_PURCHASES = 5
DEFAULT_CONFIRMED_TOTAL_USD = Decimal("50000")


class AccumulationDetectorError(Exception):
    pass


@dataclass(frozen=True)
class AccumulationConfig:
    window: timedelta = DEFAULT_WINDOW
    min_interval: timedelta = DEFAULT_MIN_INTERVAL
    max_volume_ratio: Decimal = DEFAULT_MAX_VOLUME_RATIO
    min_purchases: int = DEFAULT_MIN_PURCHASES
    confirmed_purchases: int = DEFAULT_CONFIRMED_PURCHASES
    confirmed_total_usd: Decimal = DEFAULT_CONFIRMED_TOTAL_USD


class AccumulationDetector:
    """Detector for silent accumulation by a single wallet.

    For each token bought in the window, purchases are walked in time order
    and admitted into the chain only if:
    1. The amount does not exceed 3% of the token's daily volume (skipped
       when the volume is unknown)
    2. It happens at least 2 hours after the last admitted purchase

    Rejected purchases never move the spacing clock.

    Example:
        ```python
        detector = AccumulationDetector(notifier)
        tokens = await detector.detect(
            wallet_id,
            trades,
            {"0xtoken": Decimal("1000000")},
        )
        for token in tokens:
            print(f"{token.token_identifier}: {token.purchase_count} purchases")
        ```
    """

    def __init__(
        self,
        notifier: AlertNotifier,
        *,
        config: AccumulationConfig | None = None,
    ) -> None:
        """Initialize the accumulation detector.

        Args:
            notifier: Capability used to emit accumulation alerts.
            config: Detection thresholds (defaults to AccumulationConfig()).
        """
        self._notifier = notifier
        self._cfg = config or AccumulationConfig()

    async def detect(
        self,
        wallet_id: str,
        trades: Iterable[Trade],
        token_daily_volumes: Mapping[str, Decimal | int | float],
        *,
        as_of: datetime | None = None,
    ) -> list[AccumulatingToken]:
        """Detect tokens the wallet is silently accumulating.

        An alert is emitted for every returned token.

        Args:
            wallet_id: The wallet being evaluated.
            trades: The wallet's recent trades, any direction.
            token_daily_volumes: Daily USD volume by token address.
            as_of: Evaluation time (default: now, UTC).

        Returns:
            Accumulating tokens in first-purchase order.

        Raises:
            AccumulationDetectorError: If ``as_of`` is naive.
        """
        now = as_of or datetime.now(UTC)
        if now.tzinfo is None:
            raise AccumulationDetectorError("as_of must be timezone-aware")
        window_start = now - self._cfg.window

        by_token: dict[str, list[Trade]] = {}
        for trade in finalized(trades):
            if not trade.is_buy:
                continue
            if trade.timestamp.tzinfo is None:
                raise AccumulationDetectorError(f"trade {trade.id} timestamp must be timezone-aware")
            if trade.timestamp < window_start:
                continue
            by_token.setdefault(trade.token_address, []).append(trade)

        results: list[AccumulatingToken] = []
        for token_address, token_trades in by_token.items():
            chain = self.build_chain(token_trades, token_daily_volumes.get(token_address))

            if len(chain) < self._cfg.min_purchases:
                logger.debug(
                    "Token %s below accumulation threshold for wallet %s: %d purchases",
                    token_address[:10] + "...",
                    wallet_id,
                    len(chain),
                )
                continue

            total_usd = sum((t.amount_usd for t in chain), Decimal("0"))
            is_complete = (
                len(chain) >= self._cfg.confirmed_purchases
                and total_usd >= self._cfg.confirmed_total_usd
            )
            token = AccumulatingToken(
                token_address=token_address,
                token_symbol=chain[0].token_symbol,
                purchase_count=len(chain),
                total_usd=total_usd,
                is_complete=is_complete,
            )
            results.append(token)

            logger.info(
                "Accumulation signal: wallet=%s, token=%s, purchases=%d, total=%s, complete=%s",
                wallet_id,
                token.token_identifier,
                token.purchase_count,
                token.total_usd,
                token.is_complete,
            )

            try:
                await self._notifier.notify_accumulation(
                    wallet_id,
                    token.token_identifier,
                    token.purchase_count,
                )
            except Exception as e:
                logger.warning(
                    "Failed to notify accumulation for wallet %s token %s: %s",
                    wallet_id,
                    token.token_identifier,
                    e,
                )

        return results

    def build_chain(
        self,
        trades: list[Trade],
        daily_volume: Decimal | int | float | None,
    ) -> list[Trade]:
        """Build the greedy chain of qualifying purchases for one token.

        Args:
            trades: BUY trades of a single token.
            daily_volume: The token's daily USD volume, None if unknown. Plain
                numbers are converted to Decimal.

        Returns:
            Admitted purchases in time order.
        """
        max_per_buy: Decimal | None = None
        if daily_volume is not None:
            volume = daily_volume if isinstance(daily_volume, Decimal) else Decimal(str(daily_volume))
            max_per_buy = volume * self._cfg.max_volume_ratio

        chain: list[Trade] = []
        last_admitted: datetime | None = None
        for trade in sorted(trades, key=lambda t: t.timestamp):
            if max_per_buy is not None and trade.amount_usd > max_per_buy:
                continue
            if last_admitted is not None and trade.timestamp - last_admitted < self._cfg.min_interval:
                continue
            chain.append(trade)
            last_admitted = trade.timestamp
        return chain

    async def detect_batch(
        self,
        wallet_trades: Mapping[str, Iterable[Trade]],
        token_daily_volumes: Mapping[str, Decimal | int | float],
        *,
        as_of: datetime | None = None,
    ) -> dict[str, list[AccumulatingToken]]:
        """Detect accumulation for several wallets concurrently.

        Wallets whose detection fails are logged and left out of the result.

        Args:
            wallet_trades: Recent trades keyed by wallet id.
            token_daily_volumes: Daily USD volume by token address.
            as_of: Evaluation time shared by every wallet (default: now, UTC).

        Returns:
            Accumulating tokens keyed by wallet id.
        """
        now = as_of or datetime.now(UTC)
        wallet_ids = list(wallet_trades)
        tasks = [
            self.detect(wallet_id, wallet_trades[wallet_id], token_daily_volumes, as_of=now)
            for wallet_id in wallet_ids
        ]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        detected: dict[str, list[AccumulatingToken]] = {}
        for wallet_id, result in zip(wallet_ids, results, strict=True):
            if isinstance(result, BaseException):
                logger.warning(
                    "Failed to detect accumulation for wallet %s: %s",
                    wallet_id,
                    result,
                )
                continue
            detected[wallet_id] = result

        return detected
