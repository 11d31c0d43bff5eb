"""Frame quality analysis."""

from sonarcam.quality.analyzer import (
    FrameQualityAnalyzer,
    StreamSummary,
    compute_metrics,
    classify,
)

__all__ = [
    "FrameQualityAnalyzer",
    "StreamSummary",
    "compute_metrics",
    "classify",
]
