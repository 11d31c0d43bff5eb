"""
Sonar and stereo camera dataset tools.

Sequence visualization with multi-stream time alignment and a resumable
frame-level integrity scan for a multimodal underwater dataset.
"""

from sonarcam.alignment.aligner import MultiStreamAligner, StreamCursor
from sonarcam.alignment.timeline import UnifiedTimeline
from sonarcam.ingestion.metadata import MetadataTable, SequenceLoader
from sonarcam.quality.analyzer import FrameQualityAnalyzer
from sonarcam.rendering.compositor import FrameCompositor
from sonarcam.scan.integrity import IntegrityScanner, ScanConfig
from sonarcam.viewer import SequenceViewer, ViewerConfig

__version__ = "0.1.0"

__all__ = [
    # Loading
    "MetadataTable",
    "SequenceLoader",
    # Alignment
    "UnifiedTimeline",
    "MultiStreamAligner",
    "StreamCursor",
    # Rendering
    "FrameCompositor",
    "SequenceViewer",
    "ViewerConfig",
    # Quality
    "FrameQualityAnalyzer",
    "IntegrityScanner",
    "ScanConfig",
]
