"""Token risk factor calculation.

Maps a token's market metrics to a multiplier in [0.1, 1.0] that discounts the
ROI realized on that token. Each metric is mapped to a step tier score, the
tier scores are combined with fixed weights, and the result is rescaled so
that even the riskiest non-exploited token keeps a 0.1 floor.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal

from whale_analytics.scoring.models import TokenRiskBreakdown, TokenRiskInput, TokenRiskResult

logger = logging.getLogger(__name__)

Tiers = tuple[tuple[Decimal, Decimal], ...]

# (inclusive lower bound, score), highest bound first
TVL_TIERS: Tiers = (
    (Decimal("10000000"), Decimal("1.00")),
    (Decimal("1000000"), Decimal("0.80")),
    (Decimal("100000"), Decimal("0.60")),
    (Decimal("10000"), Decimal("0.40")),
    (Decimal("1000"), Decimal("0.20")),
)
MARKET_CAP_TIERS: Tiers = (
    (Decimal("500000000"), Decimal("1.00")),
    (Decimal("50000000"), Decimal("0.80")),
    (Decimal("10000000"), Decimal("0.60")),
    (Decimal("1000000"), Decimal("0.40")),
    (Decimal("100000"), Decimal("0.20")),
)
AGE_TIERS: Tiers = (
    (Decimal("730"), Decimal("1.00")),
    (Decimal("365"), Decimal("0.75")),
    (Decimal("180"), Decimal("0.50")),
    (Decimal("30"), Decimal("0.25")),
)
VOLUME_TIERS: Tiers = (
    (Decimal("1000000"), Decimal("1.00")),
    (Decimal("100000"), Decimal("0.75")),
    (Decimal("10000"), Decimal("0.50")),
    (Decimal("1000"), Decimal("0.25")),
)
HOLDER_TIERS: Tiers = (
    (Decimal("10000"), Decimal("1.00")),
    (Decimal("1000"), Decimal("0.75")),
    (Decimal("500"), Decimal("0.50")),
    (Decimal("200"), Decimal("0.25")),
)

_ZERO = Decimal("0")


class TokenRiskError(Exception):
    pass


@dataclass(frozen=True)
class TokenRiskConfig:
    tvl_tiers: Tiers = TVL_TIERS
    market_cap_tiers: Tiers = MARKET_CAP_TIERS
    age_tiers: Tiers = AGE_TIERS
    volume_tiers: Tiers = VOLUME_TIERS
    holder_tiers: Tiers = HOLDER_TIERS

    tvl_weight: Decimal = Decimal("0.35")
    age_weight: Decimal = Decimal("0.25")
    market_cap_weight: Decimal = Decimal("0.20")
    holder_weight: Decimal = Decimal("0.10")
    volume_weight: Decimal = Decimal("0.10")

    floor: Decimal = Decimal("0.1")
    ceiling: Decimal = Decimal("1.0")
    exploit_risk_factor: Decimal = Decimal("0.1")


def tier_score(value: Decimal, tiers: Tiers) -> Decimal:
    """Return the score of the first tier whose lower bound ``value`` reaches."""
    for threshold, score in tiers:
        if value >= threshold:
            return score
    return _ZERO


def _metric(name: str, value: Decimal | int | float) -> Decimal:
    d = value if isinstance(value, Decimal) else Decimal(str(value))
    if not d.is_finite():
        raise TokenRiskError(f"{name} must be finite, got {value!r}")
    return d


class TokenRiskCalculator:
    """Calculates the risk factor of a token from its market metrics.

    Example:
        ```python
        calculator = TokenRiskCalculator()
        result = calculator.calculate(
            TokenRiskInput(
                tvl=Decimal("25000000"),
                market_cap=Decimal("800000000"),
                contract_age_days=Decimal("900"),
                daily_volume_30d=Decimal("3000000"),
                holder_count=50_000,
            )
        )
        adjusted = result.adjust_roi(Decimal("0.42"))
        ```
    """

    def __init__(self, *, config: TokenRiskConfig | None = None) -> None:
        self._cfg = config or TokenRiskConfig()

    def calculate(self, token: TokenRiskInput) -> TokenRiskResult:
        """Calculate the risk factor for a single token.

        Args:
            token: Market metrics of the token.

        Returns:
            TokenRiskResult with the factor and its per-metric breakdown.

        Raises:
            TokenRiskError: If a metric is not finite. Negative metrics score
                the lowest tier.
        """
        if token.has_exploit_history:
            return TokenRiskResult(
                risk_factor=self._cfg.exploit_risk_factor,
                breakdown=TokenRiskBreakdown(
                    tvl_score=_ZERO,
                    market_cap_score=_ZERO,
                    age_score=_ZERO,
                    volume_score=_ZERO,
                    holder_score=_ZERO,
                    exploit_override=True,
                ),
            )

        tvl = _metric("tvl", token.tvl)
        market_cap = _metric("market_cap", token.market_cap)
        age_days = _metric("contract_age_days", token.contract_age_days)
        volume = _metric("daily_volume_30d", token.daily_volume_30d)
        holders = _metric("holder_count", token.holder_count)

        breakdown = TokenRiskBreakdown(
            tvl_score=tier_score(tvl, self._cfg.tvl_tiers),
            market_cap_score=tier_score(market_cap, self._cfg.market_cap_tiers),
            age_score=tier_score(age_days, self._cfg.age_tiers),
            volume_score=tier_score(volume, self._cfg.volume_tiers),
            holder_score=tier_score(holders, self._cfg.holder_tiers),
        )

        raw = (
            self._cfg.tvl_weight * breakdown.tvl_score
            + self._cfg.age_weight * breakdown.age_score
            + self._cfg.market_cap_weight * breakdown.market_cap_score
            + self._cfg.holder_weight * breakdown.holder_score
            + self._cfg.volume_weight * breakdown.volume_score
        )
        # Rescale [0, 1] onto [floor, ceiling]
        scaled = raw * (self._cfg.ceiling - self._cfg.floor) + self._cfg.floor
        risk_factor = min(self._cfg.ceiling, max(self._cfg.floor, scaled))

        return TokenRiskResult(risk_factor=risk_factor, breakdown=breakdown)

    def calculate_many(self, tokens: Mapping[str, TokenRiskInput]) -> dict[str, TokenRiskResult]:
        """Calculate risk factors for several tokens keyed by address."""
        results = {address: self.calculate(token) for address, token in tokens.items()}
        logger.debug("Calculated risk factors for %d tokens", len(results))
        return results
