"""Data models for the profiler module."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from whale_analytics.ingestor.models import Trade


class ClusteringHeuristic(str, Enum):
    """Independent evidence that two wallets share an owner."""

    FUNDING = "FUNDING"  # one wallet funded the other before it started trading
    TIMING = "TIMING"  # trades land within the same 30-minute windows
    SEQUENCE = "SEQUENCE"  # same tokens traded within 5 minutes of each other


@dataclass(frozen=True)
class WalletClusteringEntry:
    """A wallet and its trades, as compared by the clustering service."""

    id: str
    address: str
    first_seen: datetime
    trades: tuple[Trade, ...] = ()


@dataclass(frozen=True)
class ClusteringVerdict:
    """Outcome of comparing two wallets.

    Attributes:
        same_owner: True only when every heuristic matched.
        confidence: Fraction of heuristics that matched (0, 1/3, 2/3 or 1).
        matched_heuristics: Matching heuristics in evaluation order.
    """

    same_owner: bool
    confidence: float
    matched_heuristics: tuple[ClusteringHeuristic, ...]

    def to_dict(self) -> dict[str, object]:
        return {
            "same_owner": self.same_owner,
            "confidence": self.confidence,
            "matched_heuristics": [h.value for h in self.matched_heuristics],
        }
