"""Output video for composed frames."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import structlog

from sonarcam.errors import OutputError

logger = structlog.get_logger(__name__)


class CompositeVideoWriter:
    """
    Appends composed frames to a fixed-rate video.

    Use as a context manager so the container is finalized on success
    and on error alike.
    """

    def __init__(
        self,
        path: Path | str,
        fps: float,
        frame_size: tuple[int, int],
        fourcc: str = "mp4v",
    ):
        """
        Args:
            path: Output video file
            fps: Frame rate, normally 1 / step
            frame_size: (height, width) of every frame
            fourcc: Four-character codec code
        """
        self.path = Path(path)
        self.fps = fps
        self.frame_size = frame_size
        self.fourcc = fourcc
        self.frames_written = 0
        self._writer = None

    def open(self) -> None:
        import cv2

        self.path.parent.mkdir(parents=True, exist_ok=True)
        height, width = self.frame_size
        writer = cv2.VideoWriter(
            str(self.path),
            cv2.VideoWriter_fourcc(*self.fourcc),
            self.fps,
            (width, height),
        )
        if not writer.isOpened():
            writer.release()
            raise OutputError(f"Could not open video writer ({self.fourcc})", path=self.path)
        self._writer = writer
        logger.info("Opened output video", path=str(self.path), fps=self.fps, fourcc=self.fourcc)

    def write(self, frame: np.ndarray) -> None:
        import cv2

        if self._writer is None:
            raise OutputError("Video writer is not open", path=self.path)
        if frame.shape[:2] != tuple(self.frame_size):
            raise ValueError(f"Frame shape {frame.shape[:2]} does not match {self.frame_size}")
        if frame.ndim == 2:
            frame = cv2.cvtColor(frame, cv2.COLOR_GRAY2BGR)
        self._writer.write(frame)
        self.frames_written += 1

    def close(self) -> None:
        if self._writer is not None:
            self._writer.release()
            self._writer = None
            logger.info("Closed output video", path=str(self.path), frames=self.frames_written)

    def __enter__(self) -> "CompositeVideoWriter":
        self.open()
        return self

    def __exit__(self, *exc) -> None:
        self.close()
