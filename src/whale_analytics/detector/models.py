"""Data models for the detector module."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from enum import Enum

from whale_analytics.ingestor.models import WalletSummary

SIGNAL_TTL = timedelta(hours=24)


class ConfidenceLevel(str, Enum):
    """Confidence of a confluence signal."""

    HIGH = "HIGH"
    MODERATE = "MODERATE"


@dataclass(frozen=True)
class AccumulatingToken:
    """A token a wallet is buying in small, spaced-out purchases.

    Only produced once at least three purchases qualify. The pattern is
    considered complete at five purchases totalling $50,000 or more.

    Attributes:
        token_address: Contract address of the token.
        token_symbol: Symbol of the token, if known.
        purchase_count: Number of purchases admitted to the chain.
        total_usd: Sum of the admitted purchase amounts.
        is_complete: True when the pattern is fully confirmed.
    """

    token_address: str
    token_symbol: str | None
    purchase_count: int
    total_usd: Decimal
    is_complete: bool

    @property
    def token_identifier(self) -> str:
        """Return the symbol if known, otherwise the address."""
        return self.token_symbol or self.token_address

    def to_dict(self) -> dict[str, object]:
        """Serialize to dictionary for downstream publishing."""
        return {
            "token_address": self.token_address,
            "token_symbol": self.token_symbol,
            "purchase_count": self.purchase_count,
            "total_usd": str(self.total_usd),
            "is_complete": self.is_complete,
        }


@dataclass(frozen=True)
class ConfluenceSignal:
    """Signal emitted when several reputable wallets buy the same token.

    Attributes:
        token_address: Contract address of the token.
        token_symbol: First known symbol among the group's trades.
        confidence_level: HIGH or MODERATE, from the average wallet score.
        wallet_count: Number of distinct qualifying wallets.
        avg_score: Arithmetic mean of the wallets' current scores.
        wallets: The distinct wallets, in first-purchase order.
        detected_at: When this signal was generated.
        expires_at: When this signal stops being relevant.
    """

    token_address: str
    token_symbol: str | None
    confidence_level: ConfidenceLevel
    wallet_count: int
    avg_score: Decimal
    wallets: tuple[WalletSummary, ...]
    detected_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    expires_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.expires_at is None:
            object.__setattr__(self, "expires_at", self.detected_at + SIGNAL_TTL)

    @property
    def token_identifier(self) -> str:
        """Return the symbol if known, otherwise the address."""
        return self.token_symbol or self.token_address

    @property
    def is_high_confidence(self) -> bool:
        """Return True if the average score exceeds the HIGH threshold."""
        return self.confidence_level == ConfidenceLevel.HIGH

    def is_expired(self, at: datetime | None = None) -> bool:
        """Return True if the signal has expired at the given time."""
        now = at or datetime.now(UTC)
        return self.expires_at is not None and now >= self.expires_at

    def to_dict(self) -> dict[str, object]:
        """Serialize to dictionary for downstream publishing."""
        return {
            "token_address": self.token_address,
            "token_symbol": self.token_symbol,
            "confidence_level": self.confidence_level.value,
            "wallet_count": self.wallet_count,
            "avg_score": str(self.avg_score),
            "wallet_ids": [w.id for w in self.wallets],
            "wallet_addresses": [w.address for w in self.wallets],
            "detected_at": self.detected_at.isoformat(),
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }
