"""Same-owner wallet clustering.

Decides whether two addresses are controlled by the same owner. Wallets are
only reported as one owner when all three independent heuristics agree.
"""

from __future__ import annotations

import bisect
import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from itertools import combinations

from whale_analytics.ingestor.models import FundingEvent, Trade, finalized
from whale_analytics.profiler.models import (
    ClusteringHeuristic,
    ClusteringVerdict,
    WalletClusteringEntry,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMING_WINDOW = timedelta(minutes=30)
DEFAULT_TIMING_MIN_MATCHES = 3
DEFAULT_TIMING_MIN_OVERLAP = 0.30
DEFAULT_SEQUENCE_WINDOW = timedelta(minutes=5)
DEFAULT_SEQUENCE_MIN_TOKENS = 2

HEURISTIC_COUNT = len(ClusteringHeuristic)


class ClusteringError(Exception):
    pass


@dataclass(frozen=True)
class ClusteringConfig:
    timing_window: timedelta = DEFAULT_TIMING_WINDOW
    timing_min_matches: int = DEFAULT_TIMING_MIN_MATCHES
    timing_min_overlap: float = DEFAULT_TIMING_MIN_OVERLAP
    sequence_window: timedelta = DEFAULT_SEQUENCE_WINDOW
    sequence_min_tokens: int = DEFAULT_SEQUENCE_MIN_TOKENS
    min_heuristics: int = HEURISTIC_COUNT


def _has_neighbor(sorted_times: Sequence[datetime], ts: datetime, window: timedelta) -> bool:
    """Return True if some time in ``sorted_times`` lies within ``window`` of ``ts``."""
    i = bisect.bisect_left(sorted_times, ts - window)
    return i < len(sorted_times) and sorted_times[i] <= ts + window


class WalletClusteringService:
    """Evaluates funding, timing and sequence heuristics on a pair of wallets.

    Example:
        ```python
        service = WalletClusteringService()
        verdict = service.analyze(entry_a, entry_b, funding_events)
        if verdict.same_owner:
            merge(entry_a.id, entry_b.id)
        ```
    """

    def __init__(self, *, config: ClusteringConfig | None = None) -> None:
        self._cfg = config or ClusteringConfig()

    def analyze(
        self,
        wallet_a: WalletClusteringEntry,
        wallet_b: WalletClusteringEntry,
        funding_events: Iterable[FundingEvent] | None = None,
    ) -> ClusteringVerdict:
        """Compare two wallets.

        Args:
            wallet_a: First wallet and its trades.
            wallet_b: Second wallet and its trades.
            funding_events: Native transfers between the wallets. When absent
                the funding heuristic never matches.

        Returns:
            ClusteringVerdict listing the matched heuristics.

        Raises:
            ClusteringError: If a trade, first-seen or funding timestamp is naive.
        """
        trades_a = self._trades(wallet_a)
        trades_b = self._trades(wallet_b)

        matched: list[ClusteringHeuristic] = []
        if self.check_funding(wallet_a, wallet_b, funding_events or ()):
            matched.append(ClusteringHeuristic.FUNDING)
        if self.check_timing(trades_a, trades_b):
            matched.append(ClusteringHeuristic.TIMING)
        if self.check_sequence(trades_a, trades_b):
            matched.append(ClusteringHeuristic.SEQUENCE)

        verdict = ClusteringVerdict(
            same_owner=len(matched) >= self._cfg.min_heuristics,
            confidence=len(matched) / HEURISTIC_COUNT,
            matched_heuristics=tuple(matched),
        )

        if verdict.same_owner:
            logger.info(
                "Same-owner wallets: %s and %s",
                wallet_a.address[:10] + "...",
                wallet_b.address[:10] + "...",
            )
        else:
            logger.debug(
                "Wallets %s and %s matched %d heuristics",
                wallet_a.address[:10] + "...",
                wallet_b.address[:10] + "...",
                len(matched),
            )
        return verdict

    def analyze_many(
        self,
        entries: Sequence[WalletClusteringEntry],
        funding_events: Iterable[FundingEvent] | None = None,
    ) -> dict[tuple[str, str], ClusteringVerdict]:
        """Compare every unordered pair of wallets once.

        Returns:
            Verdicts keyed by ``(id_a, id_b)`` in input order.
        """
        events = list(funding_events or ())
        return {
            (a.id, b.id): self.analyze(a, b, events) for a, b in combinations(entries, 2)
        }

    def check_funding(
        self,
        wallet_a: WalletClusteringEntry,
        wallet_b: WalletClusteringEntry,
        funding_events: Iterable[FundingEvent],
    ) -> bool:
        """One wallet funded the other before the receiver's first activity.

        Addresses are compared exactly, some chains use case-sensitive
        encodings.

        Raises:
            ClusteringError: If a funding timestamp is naive.
        """
        for event in funding_events:
            if event.timestamp.tzinfo is None:
                raise ClusteringError(
                    f"funding event {event.from_address[:10]}... timestamp must be timezone-aware"
                )
            a_funded_b = (
                event.from_address == wallet_a.address
                and event.to_address == wallet_b.address
                and event.timestamp < wallet_b.first_seen
            )
            b_funded_a = (
                event.from_address == wallet_b.address
                and event.to_address == wallet_a.address
                and event.timestamp < wallet_a.first_seen
            )
            if a_funded_b or b_funded_a:
                return True
        return False

    def check_timing(self, trades_a: Sequence[Trade], trades_b: Sequence[Trade]) -> bool:
        """Enough of A's trades have a B trade within the timing window."""
        if not trades_a or not trades_b:
            return False

        times_b = sorted(t.timestamp for t in trades_b)
        matches = sum(
            1 for t in trades_a if _has_neighbor(times_b, t.timestamp, self._cfg.timing_window)
        )
        if matches < self._cfg.timing_min_matches:
            return False

        overlap = matches / min(len(trades_a), len(trades_b))
        return overlap >= self._cfg.timing_min_overlap

    def check_sequence(self, trades_a: Sequence[Trade], trades_b: Sequence[Trade]) -> bool:
        """Enough distinct tokens were traded by both wallets within minutes."""
        if not trades_a or not trades_b:
            return False

        times_b: dict[str, list[datetime]] = defaultdict(list)
        for t in trades_b:
            times_b[t.token_address].append(t.timestamp)
        for times in times_b.values():
            times.sort()

        tokens: set[str] = set()
        for t in trades_a:
            if t.token_address in tokens or t.token_address not in times_b:
                continue
            if _has_neighbor(times_b[t.token_address], t.timestamp, self._cfg.sequence_window):
                tokens.add(t.token_address)

        return len(tokens) >= self._cfg.sequence_min_tokens

    @staticmethod
    def _trades(entry: WalletClusteringEntry) -> list[Trade]:
        if entry.first_seen.tzinfo is None:
            raise ClusteringError(f"wallet {entry.id} first_seen must be timezone-aware")
        trades = finalized(entry.trades)
        for t in trades:
            if t.timestamp.tzinfo is None:
                raise ClusteringError(f"trade {t.id} timestamp must be timezone-aware")
        return trades
