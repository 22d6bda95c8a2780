"""Alert notification capability used by the pattern detectors.

Detectors only depend on the ``AlertNotifier`` protocol. Concrete delivery
channels (database rows, chat webhooks) live outside this package; the
``LoggingAlertNotifier`` shipped here formats every event and writes it to the
application log, which is what dry-run deployments use.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Literal, Protocol

from whale_analytics.alerter.formatter import AlertFormatter
from whale_analytics.alerter.models import FormattedAlert
from whale_analytics.detector.models import ConfidenceLevel
from whale_analytics.ingestor.models import WalletSummary

logger = logging.getLogger(__name__)


class AlertNotifier(Protocol):
    async def notify_accumulation(
        self,
        wallet_id: str,
        token_identifier: str,
        purchase_count: int,
    ) -> None:
        raise NotImplementedError

    async def notify_confluence(
        self,
        token_identifier: str,
        wallets: Sequence[WalletSummary],
        confidence_level: ConfidenceLevel,
    ) -> None:
        raise NotImplementedError


class LoggingAlertNotifier:
    """AlertNotifier that formats events and writes them to the log.

    The most recent formatted alerts are kept in ``sent`` so callers can
    inspect what would have been delivered.

    Example:
        ```python
        notifier = LoggingAlertNotifier()
        detector = AccumulationDetector(notifier)
        await detector.detect(wallet_id, trades, volumes)
        for alert in notifier.sent:
            print(alert.plain_text)
        ```
    """

    def __init__(
        self,
        formatter: AlertFormatter | None = None,
        *,
        verbosity: Literal["compact", "detailed"] = "detailed",
        max_history: int = 100,
    ) -> None:
        self._formatter = formatter or AlertFormatter(verbosity=verbosity)
        self._max_history = max_history
        self.sent: list[FormattedAlert] = []

    async def notify_accumulation(
        self,
        wallet_id: str,
        token_identifier: str,
        purchase_count: int,
    ) -> None:
        alert = self._formatter.format_accumulation(wallet_id, token_identifier, purchase_count)
        self._record(alert)

    async def notify_confluence(
        self,
        token_identifier: str,
        wallets: Sequence[WalletSummary],
        confidence_level: ConfidenceLevel,
    ) -> None:
        alert = self._formatter.format_confluence(token_identifier, wallets, confidence_level)
        self._record(alert)

    def _record(self, alert: FormattedAlert) -> None:
        logger.info("%s\n%s", alert.title, alert.plain_text)
        self.sent.append(alert)
        if len(self.sent) > self._max_history:
            del self.sent[: len(self.sent) - self._max_history]
