"""Input layer - Parsed, persisted swap transactions and wallet summaries."""

from whale_analytics.ingestor.models import (
    FundingEvent,
    Trade,
    WalletStatus,
    WalletSummary,
    finalized,
    parse_bool,
    parse_direction,
    parse_timestamp,
)

__all__ = [
    "FundingEvent",
    "Trade",
    "WalletStatus",
    "WalletSummary",
    "finalized",
    "parse_bool",
    "parse_direction",
    "parse_timestamp",
]
