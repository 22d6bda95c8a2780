"""Whale Analytics - Wallet reputation and on-chain accumulation pattern detection."""

__version__ = "0.1.0"
