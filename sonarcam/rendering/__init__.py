"""Compositing of aligned frames into sequence videos."""

from sonarcam.rendering.compositor import (
    FrameCompositor,
    CompositorConfig,
    View,
    GRID_LAYOUT,
    format_tick_time,
)
from sonarcam.rendering.imaging import to_gray
from sonarcam.rendering.writer import CompositeVideoWriter

__all__ = [
    "FrameCompositor",
    "CompositorConfig",
    "View",
    "GRID_LAYOUT",
    "format_tick_time",
    "to_gray",
    "CompositeVideoWriter",
]
