"""Whale Score calculation.

The Whale Score rates a wallet's historical trading skill on [0, 100]:

    score = 30% win rate + 25% normalized Sharpe + 25% normalized ROI
            + 20% consistency

Two variants are produced: an all-time score where each operation is weighted
by an exponential decay (365-day half-life), and a 90-day score over the
trailing window without decay. Only finalized SELLs with a recorded
risk-adjusted ROI count as operations.
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

import numpy as np

from whale_analytics.ingestor.models import Trade, WalletStatus, finalized
from whale_analytics.scoring.models import ScoreCategory, ScoreResult

logger = logging.getLogger(__name__)

# Qualification rules
DEFAULT_MIN_OPERATIONS = 30
DEFAULT_MIN_OPERATIONS_90D = 5
DEFAULT_MIN_HISTORY_MONTHS = 3.0
DEFAULT_MIN_WIN_RATE = 0.40

DEFAULT_HALF_LIFE_DAYS = 365.0
DAYS_PER_MONTH = 30.0

# Flat-return Sharpe values (every ROI identical)
FLAT_SHARPE_GAIN = 4.0
FLAT_SHARPE_LOSS = -2.0

NEUTRAL_CONSISTENCY = 0.5

_SCORE_QUANTUM = Decimal("0.01")


class WhaleScoreError(Exception):
    pass


@dataclass(frozen=True)
class WhaleScoreConfig:
    min_operations: int = DEFAULT_MIN_OPERATIONS
    min_operations_90d: int = DEFAULT_MIN_OPERATIONS_90D
    min_history_months: float = DEFAULT_MIN_HISTORY_MONTHS
    min_win_rate: float = DEFAULT_MIN_WIN_RATE
    half_life_days: float = DEFAULT_HALF_LIFE_DAYS
    recent_window: timedelta = timedelta(days=90)
    bucket_size: timedelta = timedelta(days=30)
    min_buckets: int = 3

    win_rate_weight: float = 0.30
    sharpe_weight: float = 0.25
    roi_weight: float = 0.25
    consistency_weight: float = 0.20


@dataclass(frozen=True)
class _Operation:
    roi: float
    timestamp: datetime


def _clamp(value: float, lo: float = 0.0, hi: float = 1.0) -> float:
    return max(lo, min(hi, value))


class WhaleScoreCalculator:
    """Computes the Whale Score of a single wallet.

    The calculator is pure: pass ``as_of`` to make the result reproducible,
    otherwise the current UTC time is used.

    Example:
        ```python
        calculator = WhaleScoreCalculator()
        result = calculator.calculate(trades)
        if result.effective_score is not None:
            print(f"Whale Score: {result.effective_score}")
        ```
    """

    def __init__(self, *, config: WhaleScoreConfig | None = None) -> None:
        self._cfg = config or WhaleScoreConfig()
        self._decay_lambda = math.log(2) / self._cfg.half_life_days

    def calculate(self, trades: Iterable[Trade], *, as_of: datetime | None = None) -> ScoreResult:
        """Calculate the Whale Score from a wallet's trade history.

        Args:
            trades: The wallet's trades. Non-finalized trades, BUYs and SELLs
                without a recorded ROI are ignored.
            as_of: Evaluation time (default: now, UTC).

        Returns:
            ScoreResult with both score variants and their components.

        Raises:
            WhaleScoreError: If ``as_of`` or a trade timestamp is naive.
        """
        now = as_of or datetime.now(UTC)
        if now.tzinfo is None:
            raise WhaleScoreError("as_of must be timezone-aware")

        operations = self._operations(trades)
        total_operations = len(operations)
        history_months = self._history_months(operations, now)

        if total_operations < self._cfg.min_operations:
            logger.debug(
                "Wallet under observation: %d/%d operations",
                total_operations,
                self._cfg.min_operations,
            )
            return ScoreResult(
                score_all_time=None,
                score_90d=None,
                win_rate=self._unweighted_win_rate(operations),
                sharpe_ratio=0.0,
                roi_adjusted=0.0,
                consistency=0.0,
                total_operations=total_operations,
                history_months=history_months,
                status=WalletStatus.UNDER_OBSERVATION,
                category=ScoreCategory.MAIN,
            )

        rois = np.array([op.roi for op in operations], dtype=float)
        weights = np.array([self.decay_weight(op.timestamp, now) for op in operations], dtype=float)

        win_rate = self._weighted_win_rate(rois, weights)
        sharpe = self._weighted_sharpe(rois, weights)
        roi = self._weighted_mean(rois, weights)
        consistency = self._consistency(operations)

        score_90d = self._recent_score(operations, now)

        category = ScoreCategory.MAIN
        if win_rate < self._cfg.min_win_rate:
            category = ScoreCategory.HIGH_RISK_HIGH_REWARD

        # Newcomer check runs last and takes precedence
        score_all_time: Decimal | None = None
        if history_months < self._cfg.min_history_months:
            category = ScoreCategory.NEWCOMER
        else:
            score_all_time = self.compose_score(win_rate, sharpe, roi, consistency)

        status = (
            WalletStatus.ACTIVE
            if score_all_time is not None or score_90d is not None
            else WalletStatus.UNDER_OBSERVATION
        )

        return ScoreResult(
            score_all_time=score_all_time,
            score_90d=score_90d,
            win_rate=win_rate,
            sharpe_ratio=sharpe,
            roi_adjusted=roi,
            consistency=consistency,
            total_operations=total_operations,
            history_months=history_months,
            status=status,
            category=category,
        )

    def compose_score(
        self,
        win_rate: float,
        sharpe: float,
        roi: float,
        consistency: float,
    ) -> Decimal:
        """Combine the four components into a score on [0, 100].

        Sharpe is normalized from an expected range of [-2, 4] and ROI from
        [-1, 5]; both are clamped to [0, 1].
        """
        sharpe_norm = _clamp((sharpe + 2.0) / 6.0)
        roi_norm = _clamp((roi + 1.0) / 6.0)
        raw = (
            self._cfg.win_rate_weight * win_rate
            + self._cfg.sharpe_weight * sharpe_norm
            + self._cfg.roi_weight * roi_norm
            + self._cfg.consistency_weight * consistency
        )
        return Decimal(str(raw * 100)).quantize(_SCORE_QUANTUM, rounding=ROUND_HALF_UP)

    def decay_weight(self, timestamp: datetime, now: datetime) -> float:
        """Return exp(-ln2/half_life * days_ago), future trades weigh 1."""
        days_ago = (now - timestamp).total_seconds() / 86400.0
        return math.exp(-self._decay_lambda * max(0.0, days_ago))

    def _operations(self, trades: Iterable[Trade]) -> list[_Operation]:
        ops: list[_Operation] = []
        for trade in finalized(trades):
            if not trade.is_sell or trade.roi_adjusted is None:
                continue
            if trade.timestamp.tzinfo is None:
                raise WhaleScoreError(f"trade {trade.id} timestamp must be timezone-aware")
            ops.append(_Operation(roi=float(trade.roi_adjusted), timestamp=trade.timestamp))
        ops.sort(key=lambda op: op.timestamp)
        return ops

    def _history_months(self, operations: list[_Operation], now: datetime) -> float:
        if not operations:
            return 0.0
        oldest = operations[0].timestamp
        return (now - oldest).total_seconds() / (DAYS_PER_MONTH * 86400.0)

    def _recent_score(self, operations: list[_Operation], now: datetime) -> Decimal | None:
        cutoff = now - self._cfg.recent_window
        recent = [op for op in operations if op.timestamp >= cutoff]
        if len(recent) < self._cfg.min_operations_90d:
            return None

        rois = np.array([op.roi for op in recent], dtype=float)
        weights = np.ones_like(rois)
        return self.compose_score(
            self._weighted_win_rate(rois, weights),
            self._weighted_sharpe(rois, weights),
            self._weighted_mean(rois, weights),
            self._consistency(recent),
        )

    @staticmethod
    def _unweighted_win_rate(operations: list[_Operation]) -> float:
        if not operations:
            return 0.0
        return sum(1 for op in operations if op.roi > 0) / len(operations)

    @staticmethod
    def _weighted_win_rate(rois: np.ndarray, weights: np.ndarray) -> float:
        total = float(weights.sum())
        if rois.size == 0 or total <= 0:
            return 0.0
        return float(weights[rois > 0].sum()) / total

    @staticmethod
    def _weighted_mean(rois: np.ndarray, weights: np.ndarray) -> float:
        if rois.size == 0 or float(weights.sum()) <= 0:
            return 0.0
        return float(np.average(rois, weights=weights))

    @staticmethod
    def _weighted_sharpe(rois: np.ndarray, weights: np.ndarray) -> float:
        """Weighted mean / weighted population std, risk-free rate 0."""
        if rois.size < 2:
            return 0.0

        mean = float(np.average(rois, weights=weights))
        # Identical returns have zero dispersion
        if float(np.ptp(rois)) == 0.0:
            return FLAT_SHARPE_GAIN if mean >= 0 else FLAT_SHARPE_LOSS

        variance = float(np.average((rois - mean) ** 2, weights=weights))
        std = math.sqrt(variance)
        if std == 0.0:
            return FLAT_SHARPE_GAIN if mean >= 0 else FLAT_SHARPE_LOSS
        return mean / std

    def _consistency(self, operations: list[_Operation]) -> float:
        """1 - std of per-bucket win rates, buckets are fixed 30-day epochs."""
        if not operations:
            return NEUTRAL_CONSISTENCY

        bucket_seconds = self._cfg.bucket_size.total_seconds()
        buckets: dict[int, list[float]] = defaultdict(list)
        for op in operations:
            buckets[math.floor(op.timestamp.timestamp() / bucket_seconds)].append(op.roi)

        if len(buckets) < self._cfg.min_buckets:
            return NEUTRAL_CONSISTENCY

        win_rates = np.array(
            [sum(1 for r in rois if r > 0) / len(rois) for rois in buckets.values()],
            dtype=float,
        )
        return _clamp(1.0 - float(np.std(win_rates)))
