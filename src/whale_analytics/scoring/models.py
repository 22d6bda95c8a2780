"""Data models for the scoring module."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from whale_analytics.ingestor.models import WalletStatus


@dataclass(frozen=True)
class TokenRiskInput:
    """Market metrics of a token at the time its trade is scored.

    Attributes:
        tvl: Total value locked (USD).
        market_cap: Market capitalisation (USD).
        contract_age_days: Days since the token contract was deployed.
        daily_volume_30d: Average daily trading volume over 30 days (USD).
        holder_count: Number of distinct holders.
        has_exploit_history: True if the token was ever exploited.
    """

    tvl: Decimal
    market_cap: Decimal
    contract_age_days: Decimal
    daily_volume_30d: Decimal
    holder_count: int
    has_exploit_history: bool = False


@dataclass(frozen=True)
class TokenRiskBreakdown:
    """Per-metric tier scores contributing to a token risk factor."""

    tvl_score: Decimal
    market_cap_score: Decimal
    age_score: Decimal
    volume_score: Decimal
    holder_score: Decimal
    exploit_override: bool = False

    def to_dict(self) -> dict[str, object]:
        return {
            "tvl_score": str(self.tvl_score),
            "market_cap_score": str(self.market_cap_score),
            "age_score": str(self.age_score),
            "volume_score": str(self.volume_score),
            "holder_score": str(self.holder_score),
            "exploit_override": self.exploit_override,
        }


@dataclass(frozen=True)
class TokenRiskResult:
    """Risk factor in [0.1, 1.0] used to discount realized ROI.

    A factor of 1.0 means a blue-chip token whose ROI counts in full, while
    0.1 means a token whose ROI is mostly attributed to luck.
    """

    risk_factor: Decimal
    breakdown: TokenRiskBreakdown

    def adjust_roi(self, raw_roi: Decimal) -> Decimal:
        """Return the realized ROI discounted by this token's risk factor."""
        return raw_roi * self.risk_factor

    def to_dict(self) -> dict[str, object]:
        return {
            "risk_factor": str(self.risk_factor),
            "breakdown": self.breakdown.to_dict(),
        }


class ScoreCategory(str, Enum):
    """Ranking category of a scored wallet."""

    MAIN = "MAIN"
    HIGH_RISK_HIGH_REWARD = "HIGH_RISK_HIGH_REWARD"
    NEWCOMER = "NEWCOMER"


@dataclass(frozen=True)
class ScoreResult:
    """Whale Score of a wallet together with its component metrics.

    Attributes:
        score_all_time: Decayed all-time score in [0, 100], None for
            newcomers and wallets under observation.
        score_90d: Undecayed score over the trailing 90 days, None when the
            window holds fewer than 5 operations.
        win_rate: Fraction of profitable SELLs (decay-weighted when scored).
        sharpe_ratio: Raw weighted Sharpe ratio, risk-free rate 0.
        roi_adjusted: Weighted mean risk-adjusted ROI.
        consistency: Stability of the win rate across 30-day buckets.
        total_operations: Finalized SELLs with a recorded ROI.
        history_months: Months since the oldest qualifying SELL.
        status: ACTIVE when any score is available.
        category: Ranking category.
    """

    score_all_time: Decimal | None
    score_90d: Decimal | None
    win_rate: float
    sharpe_ratio: float
    roi_adjusted: float
    consistency: float
    total_operations: int
    history_months: float
    status: WalletStatus
    category: ScoreCategory

    @property
    def effective_score(self) -> Decimal | None:
        """Return the score to store as the wallet's current score."""
        if self.score_all_time is not None:
            return self.score_all_time
        return self.score_90d

    @property
    def is_ranked(self) -> bool:
        """Return True if the wallet belongs in the main ranking."""
        return self.status == WalletStatus.ACTIVE and self.category == ScoreCategory.MAIN

    def to_dict(self) -> dict[str, object]:
        return {
            "score_all_time": str(self.score_all_time) if self.score_all_time is not None else None,
            "score_90d": str(self.score_90d) if self.score_90d is not None else None,
            "win_rate": self.win_rate,
            "sharpe_ratio": self.sharpe_ratio,
            "roi_adjusted": self.roi_adjusted,
            "consistency": self.consistency,
            "total_operations": self.total_operations,
            "history_months": self.history_months,
            "status": self.status.value,
            "category": self.category.value,
        }
