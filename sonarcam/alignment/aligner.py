"""
Sample-and-hold alignment of independently timed frame streams.

Each stream carries a timestamp per decoded frame. For every tick of a
shared timeline the aligner hands out the latest frame of each stream
whose timestamp lies strictly before the tick, decoding lazily and only
forward.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Sequence

import numpy as np
import structlog

from sonarcam.alignment.timeline import UnifiedTimeline
from sonarcam.ingestion.video import FrameSource

logger = structlog.get_logger(__name__)


class StreamCursor:
    """
    Forward-only read position in one stream.

    ``index`` counts decoded frames, so the current frame is frame
    ``index`` (1-based) with timestamp ``timestamps[index - 1]``.
    Index 0 means nothing was decoded yet and ``current`` is the
    all-zero placeholder.
    """

    def __init__(
        self,
        name: str,
        timestamps: np.ndarray | Sequence[float],
        source: FrameSource,
        placeholder_size: tuple[int, int] = (10, 10),
    ):
        """
        Initialize cursor.

        Args:
            name: Stream identifier used in aligned ticks
            timestamps: One timestamp per frame, in decode order
            source: Frame source positioned before its first frame
            placeholder_size: (height, width) of the blank frame shown
                until the first decode
        """
        self.name = name
        self.timestamps = np.asarray(timestamps, dtype=np.float64)
        self.source = source
        self.placeholder = np.zeros(placeholder_size, dtype=np.uint8)

        self.current: np.ndarray = self.placeholder
        self.index = 0
        self.exhausted = False

    @property
    def has_frame(self) -> bool:
        return self.index > 0

    @property
    def current_timestamp(self) -> float | None:
        if not self.has_frame:
            return None
        return float(self.timestamps[self.index - 1])

    def advance_to(self, tick_time: float) -> int:
        """
        Decode every pending frame with a timestamp strictly before ``tick_time``.

        A timestamp equal to the tick is left for the next tick. Once the
        source runs dry the cursor stops advancing for good and keeps
        returning its last frame.

        Returns:
            Number of frames decoded by this call
        """
        decoded = 0
        while (
            not self.exhausted
            and self.index < len(self.timestamps)
            and self.timestamps[self.index] < tick_time
        ):
            frame = self.source.read()
            if frame is None:
                self.exhausted = True
                logger.debug(
                    "Stream ended before its timestamps",
                    stream=self.name,
                    decoded=self.index,
                    timestamps=len(self.timestamps),
                )
                break
            self.current = frame
            self.index += 1
            decoded += 1
        return decoded


@dataclass
class AlignedTick:
    """Frames of every stream at one timeline tick."""

    index: int
    time: float
    frames: dict[str, np.ndarray] = field(default_factory=dict)

    # stream -> 1-based frame index, 0 for the placeholder
    frame_indices: dict[str, int] = field(default_factory=dict)

    def is_placeholder(self, stream: str) -> bool:
        return self.frame_indices.get(stream, 0) == 0


class MultiStreamAligner:
    """
    Walks a unified timeline and samples every stream at each tick.

    Streams advance independently of each other's rates; a slow stream
    simply repeats its last frame.
    """

    def __init__(self, cursors: Sequence[StreamCursor], step: float = 0.05):
        names = [c.name for c in cursors]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate stream names: {names}")

        self.cursors = list(cursors)
        self.step = step
        self.timeline = UnifiedTimeline.from_series(
            [c.timestamps for c in self.cursors], step
        )
        self.logger = structlog.get_logger(__name__)

    def __len__(self) -> int:
        return len(self.timeline)

    def __iter__(self) -> Iterator[AlignedTick]:
        self.logger.info(
            "Aligning streams",
            streams=[c.name for c in self.cursors],
            ticks=len(self.timeline),
            start=self.timeline.start,
            end=self.timeline.end,
        )
        for i, tick_time in enumerate(self.timeline):
            for cursor in self.cursors:
                cursor.advance_to(tick_time)
            yield AlignedTick(
                index=i,
                time=tick_time,
                frames={c.name: c.current for c in self.cursors},
                frame_indices={c.name: c.index for c in self.cursors},
            )
