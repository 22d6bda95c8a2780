"""Pattern detection layer - Silent accumulation and multi-wallet confluence."""

from whale_analytics.detector.accumulation import AccumulationConfig, AccumulationDetector
from whale_analytics.detector.confluence import ConfluenceConfig, ConfluenceDetector
from whale_analytics.detector.models import (
    AccumulatingToken,
    ConfidenceLevel,
    ConfluenceSignal,
)

__all__ = [
    "AccumulatingToken",
    "AccumulationConfig",
    "AccumulationDetector",
    "ConfidenceLevel",
    "ConfluenceConfig",
    "ConfluenceDetector",
    "ConfluenceSignal",
]
