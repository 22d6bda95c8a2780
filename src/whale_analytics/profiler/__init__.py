"""Wallet profiling layer - Same-owner clustering across addresses."""

from whale_analytics.profiler.clustering import ClusteringConfig, WalletClusteringService
from whale_analytics.profiler.models import (
    ClusteringHeuristic,
    ClusteringVerdict,
    WalletClusteringEntry,
)

__all__ = [
    "ClusteringConfig",
    "ClusteringHeuristic",
    "ClusteringVerdict",
    "WalletClusteringEntry",
    "WalletClusteringService",
]
