"""Data models for sequence metadata, frame quality and scan state."""

from sonarcam.models.sequence import (
    SequenceRecord,
    StreamKind,
    STREAM_ORDER,
)
from sonarcam.models.quality import (
    AnomalyType,
    FrameAnomaly,
    FrameMetrics,
    QualityThresholds,
    DEFAULT_THRESHOLDS,
    load_thresholds,
)
from sonarcam.models.scan_state import ScanState

__all__ = [
    # Sequence
    "SequenceRecord",
    "StreamKind",
    "STREAM_ORDER",
    # Quality
    "AnomalyType",
    "FrameAnomaly",
    "FrameMetrics",
    "QualityThresholds",
    "DEFAULT_THRESHOLDS",
    "load_thresholds",
    # Scan
    "ScanState",
]
