"""Forward-only video decoding."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator, Protocol

import numpy as np

from sonarcam.errors import DecodeError


class FrameSource(Protocol):
    """Anything that hands out frames in presentation order."""

    duration: float
    position: float

    def read(self) -> np.ndarray | None:
        ...

    def close(self) -> None:
        ...


@dataclass
class VideoInfo:
    """Container-reported properties of a video."""

    width: int
    height: int
    fps: float
    frame_count: int

    @property
    def duration(self) -> float:
        return self.frame_count / self.fps if self.fps > 0 else 0.0


class VideoFrameSource:
    """
    Decodes a video file frame by frame.

    Frames are returned in presentation order only. There is no seeking;
    alignment to wall-clock time is done from the paired timestamp file.
    """

    def __init__(self, video_path: Path | str):
        import cv2

        self.path = Path(video_path)
        self._cap = cv2.VideoCapture(str(self.path))
        if not self._cap.isOpened():
            self._cap.release()
            raise DecodeError(self.path, reason="unsupported or corrupt container")

        self.info = VideoInfo(
            width=int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            height=int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            fps=float(self._cap.get(cv2.CAP_PROP_FPS)),
            frame_count=int(self._cap.get(cv2.CAP_PROP_FRAME_COUNT)),
        )
        self.frames_read = 0
        self.position = 0.0  # seconds, presentation time of the last decoded frame

    @property
    def duration(self) -> float:
        return self.info.duration

    @property
    def fps(self) -> float:
        return self.info.fps

    @property
    def frame_count(self) -> int:
        return self.info.frame_count

    def read(self) -> np.ndarray | None:
        """Decode the next frame, or return None at end of stream."""
        import cv2

        if self._cap is None:
            return None
        ret, frame = self._cap.read()
        if not ret:
            return None
        self.frames_read += 1
        position_ms = self._cap.get(cv2.CAP_PROP_POS_MSEC)
        if position_ms > 0:
            self.position = position_ms / 1000.0
        elif self.info.fps > 0:
            self.position = (self.frames_read - 1) / self.info.fps
        return frame

    def frames(self) -> Iterator[tuple[int, np.ndarray]]:
        """Yield (1-based index, frame) until the stream ends."""
        while True:
            frame = self.read()
            if frame is None:
                return
            yield self.frames_read, frame

    def close(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None

    def __enter__(self) -> "VideoFrameSource":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


# Opens a frame source for a path; swapped out in tests
SourceFactory = Callable[[Path], FrameSource]
