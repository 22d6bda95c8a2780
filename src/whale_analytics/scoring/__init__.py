"""Scoring layer - Token risk factors and wallet Whale Scores."""

from whale_analytics.scoring.models import (
    ScoreCategory,
    ScoreResult,
    TokenRiskBreakdown,
    TokenRiskInput,
    TokenRiskResult,
)
from whale_analytics.scoring.token_risk import TokenRiskCalculator, TokenRiskConfig
from whale_analytics.scoring.whale_score import WhaleScoreCalculator, WhaleScoreConfig

__all__ = [
    "ScoreCategory",
    "ScoreResult",
    "TokenRiskBreakdown",
    "TokenRiskCalculator",
    "TokenRiskConfig",
    "TokenRiskInput",
    "TokenRiskResult",
    "WhaleScoreCalculator",
    "WhaleScoreConfig",
]
