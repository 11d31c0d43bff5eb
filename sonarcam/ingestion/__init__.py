"""Ingestion layer for metadata, timestamp files and videos."""

from sonarcam.ingestion.metadata import (
    MetadataTable,
    SequenceLoader,
    LoadedSequence,
    resolve,
)
from sonarcam.ingestion.timestamps import read_timestamps
from sonarcam.ingestion.video import VideoFrameSource, FrameSource, SourceFactory

__all__ = [
    "MetadataTable",
    "SequenceLoader",
    "LoadedSequence",
    "resolve",
    "read_timestamps",
    "VideoFrameSource",
    "FrameSource",
    "SourceFactory",
]
