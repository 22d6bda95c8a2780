"""Data models for the ingestor module."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Literal


class WalletStatus(str, Enum):
    """Lifecycle status of a tracked wallet."""

    ACTIVE = "ACTIVE"
    UNDER_OBSERVATION = "UNDER_OBSERVATION"
    DISQUALIFIED = "DISQUALIFIED"


def parse_timestamp(raw: Any) -> datetime:
    """Parse a persisted timestamp into a timezone-aware UTC datetime.

    Accepts datetimes (naive values are assumed UTC), ISO-8601 strings, and
    epoch numbers in seconds or milliseconds.

    Raises:
        ValueError: If the value cannot be interpreted as a timestamp.
    """
    if isinstance(raw, datetime):
        if raw.tzinfo is None:
            return raw.replace(tzinfo=UTC)
        return raw.astimezone(UTC)
    if isinstance(raw, bool):
        raise ValueError(f"Unsupported timestamp: {raw!r}")
    if isinstance(raw, (int, float)):
        ts_f = float(raw)
        if ts_f > 1e12:
            ts_f /= 1000.0
        return datetime.fromtimestamp(ts_f, tz=UTC)
    if isinstance(raw, str):
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=UTC)
        return parsed.astimezone(UTC)
    raise ValueError(f"Unsupported timestamp: {raw!r}")


def _optional_decimal(value: Any) -> Decimal | None:
    if value is None or value == "":
        return None
    return Decimal(str(value))


_TRUE_STRINGS = frozenset({"true", "t", "1", "yes", "y"})
_FALSE_STRINGS = frozenset({"false", "f", "0", "no", "n", ""})


def parse_bool(raw: Any) -> bool:
    """Parse a persisted boolean column.

    Raises:
        ValueError: If a string or number is not a recognised boolean.
    """
    if isinstance(raw, bool):
        return raw
    if raw is None:
        return False
    if isinstance(raw, int) and raw in (0, 1):
        return bool(raw)
    if isinstance(raw, str):
        value = raw.strip().lower()
        if value in _TRUE_STRINGS:
            return True
        if value in _FALSE_STRINGS:
            return False
    raise ValueError(f"Unsupported boolean: {raw!r}")


def parse_direction(raw: Any) -> Literal["BUY", "SELL"]:
    """Parse a trade direction, case-insensitively.

    Raises:
        ValueError: If the value is neither BUY nor SELL.
    """
    value = str(raw).strip().upper() if raw is not None else ""
    if value == "BUY":
        return "BUY"
    if value == "SELL":
        return "SELL"
    raise ValueError(f"Unsupported trade direction: {raw!r}")


@dataclass(frozen=True)
class WalletSummary:
    """Reputation summary of the wallet that owns a trade.

    Attributes:
        id: Internal wallet identifier.
        address: On-chain address (case preserved).
        first_seen: When the wallet was first observed.
        current_score: Latest effective Whale Score, or None if never scored.
        status: Lifecycle status of the wallet.
    """

    id: str
    address: str
    first_seen: datetime
    current_score: Decimal | None = None
    status: WalletStatus = WalletStatus.ACTIVE

    @property
    def is_scored(self) -> bool:
        """Return True if the wallet has a computed reputation."""
        return self.current_score is not None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WalletSummary:
        """Create a WalletSummary from a persisted row."""
        return cls(
            id=str(data["id"]),
            address=str(data.get("address", "")),
            first_seen=parse_timestamp(data.get("first_seen", data.get("firstSeen"))),
            current_score=_optional_decimal(data.get("current_score", data.get("currentScore"))),
            status=WalletStatus(str(data.get("status", WalletStatus.ACTIVE.value))),
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "address": self.address,
            "first_seen": self.first_seen.isoformat(),
            "current_score": str(self.current_score) if self.current_score is not None else None,
            "status": self.status.value,
        }


@dataclass(frozen=True)
class Trade:
    """A single parsed swap executed by a tracked wallet.

    Trades start out non-finalized and only become eligible for analytics
    once the chain has finalized the underlying transaction.
    """

    # Identifiers
    id: str
    wallet_id: str
    token_address: str

    # Swap details
    direction: Literal["BUY", "SELL"]
    amount_usd: Decimal
    timestamp: datetime

    token_symbol: str | None = None
    roi_adjusted: Decimal | None = None  # SELL only, already risk-adjusted
    is_finalized: bool = False

    # Owner summary, required for confluence detection
    wallet: WalletSummary | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Trade:
        """Create a Trade from a persisted row.

        Decimal columns may arrive as strings. Both snake_case and camelCase
        keys are accepted.

        Raises:
            ValueError: If the direction or finality flag is not recognised.
        """
        direction = parse_direction(data.get("direction", data.get("type")))

        wallet_data = data.get("wallet")
        wallet = WalletSummary.from_dict(wallet_data) if isinstance(wallet_data, dict) else None

        symbol = data.get("token_symbol", data.get("tokenSymbol"))

        return cls(
            id=str(data["id"]),
            wallet_id=str(data.get("wallet_id") or data.get("walletId") or (wallet.id if wallet else "")),
            token_address=str(data.get("token_address") or data.get("tokenAddress") or ""),
            direction=direction,
            amount_usd=Decimal(str(data.get("amount_usd", data.get("amountUsd", "0")))),
            timestamp=parse_timestamp(data["timestamp"]),
            token_symbol=str(symbol) if symbol else None,
            roi_adjusted=_optional_decimal(data.get("roi_adjusted", data.get("roiAdjusted"))),
            is_finalized=parse_bool(data.get("is_finalized", data.get("isFinalized"))),
            wallet=wallet,
        )

    @property
    def is_buy(self) -> bool:
        """Return True if this is a buy trade."""
        return self.direction == "BUY"

    @property
    def is_sell(self) -> bool:
        """Return True if this is a sell trade."""
        return self.direction == "SELL"


@dataclass(frozen=True)
class FundingEvent:
    """A native-asset transfer between two addresses."""

    from_address: str
    to_address: str
    timestamp: datetime
    amount_usd: Decimal = Decimal("0")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FundingEvent:
        return cls(
            from_address=str(data.get("from_address") or data.get("from") or ""),
            to_address=str(data.get("to_address") or data.get("to") or ""),
            timestamp=parse_timestamp(data["timestamp"]),
            amount_usd=Decimal(str(data.get("amount_usd", "0"))),
        )


def finalized(trades: Iterable[Trade]) -> list[Trade]:
    """Return only the trades whose transaction has been finalized."""
    return [t for t in trades if t.is_finalized]
