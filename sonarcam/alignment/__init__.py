"""
Temporal alignment of sonar and camera streams.

Builds a shared tick timeline and samples every stream at each tick
with sample-and-hold semantics.
"""

from sonarcam.alignment.timeline import UnifiedTimeline
from sonarcam.alignment.aligner import (
    MultiStreamAligner,
    StreamCursor,
    AlignedTick,
)

__all__ = [
    "UnifiedTimeline",
    "MultiStreamAligner",
    "StreamCursor",
    "AlignedTick",
]
