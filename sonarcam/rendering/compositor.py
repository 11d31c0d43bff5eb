"""2x2 composite of the camera and sonar views of one tick."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Mapping

import numpy as np
import structlog

from sonarcam.models.sequence import StreamKind
from sonarcam.rendering.imaging import to_gray

logger = structlog.get_logger(__name__)


class View(str, Enum):
    """Sub-images of the composite."""

    CAM2 = "cam2"
    CAM1 = "cam1"
    SONAR = "sonar"
    SONAR_CLOSE_RANGE = "sonar_close_range"

    @property
    def stream(self) -> StreamKind:
        if self is View.SONAR_CLOSE_RANGE:
            return StreamKind.SONAR
        return StreamKind(self.value)

    @property
    def label(self) -> str:
        if self is View.SONAR_CLOSE_RANGE:
            return "Sonar close range"
        return self.stream.label


GRID_LAYOUT: tuple[tuple[View, View], ...] = (
    (View.CAM2, View.CAM1),
    (View.SONAR, View.SONAR_CLOSE_RANGE),
)


@dataclass
class CompositorConfig:
    """Configuration for frame compositing."""

    # (height, width) of every sub-image
    sub_image_size: tuple[int, int] = (600, 800)

    # Near-range sonar returns sit at the bottom of the frame
    close_range_row_offset: int = 1099

    # Text
    label_offset: int = 20  # label centre, pixels above the bottom edge
    font_scale: float = 0.7
    font_thickness: int = 2
    box_padding: int = 4
    line_spacing: int = 6


def format_tick_time(unix_time: float) -> str:
    """Format a Unix time as ``YYYY-MM-DDTHH:MM:SS.mmm`` (UTC, truncated ms)."""
    dt = datetime.fromtimestamp(unix_time, tz=timezone.utc)
    return f"{dt.strftime('%Y-%m-%dT%H:%M:%S')}.{dt.microsecond // 1000:03d}"


class FrameCompositor:
    """
    Builds the labeled 2x2 grid written to sequence videos.

    Layout:
        Cam 2 | Cam 1
        Sonar | Sonar close range

    Each view is reduced to grayscale, resized to the sub-image size and
    labeled near its bottom edge. Views whose stream has not produced a
    frame yet stay all-zero and unlabeled. A text block in the grid
    centre shows sequence number, Unix time and UTC date.
    """

    def __init__(self, config: CompositorConfig | None = None):
        self.config = config or CompositorConfig()
        # view -> (frame index, rendered panel)
        self._panels: dict[View, tuple[int, np.ndarray]] = {}

    @property
    def frame_size(self) -> tuple[int, int]:
        """(height, width) of the composite."""
        height, width = self.config.sub_image_size
        return 2 * height, 2 * width

    def compose(
        self,
        frames: Mapping[str, np.ndarray],
        tick_time: float,
        sequence_no: int,
        frame_indices: Mapping[str, int] | None = None,
    ) -> np.ndarray:
        """
        Compose one single-channel frame.

        Args:
            frames: Stream name -> current frame (missing streams render blank)
            tick_time: Unix time of the tick
            sequence_no: Sequence shown in the overlay
            frame_indices: Stream name -> 1-based frame index, 0 for the
                placeholder. Enables panel caching between ticks.

        Returns:
            uint8 image of ``frame_size``
        """
        panels = {}
        for view in View:
            name = view.stream.value
            frame = frames.get(name)
            index = frame_indices.get(name, 0) if frame_indices is not None else None

            cached = self._panels.get(view)
            if index is not None and cached is not None and cached[0] == index:
                panels[view] = cached[1]
                continue

            if frame is None or index == 0:
                panel = self._blank()
            else:
                panel = self._render_panel(view, frame)
            if index is not None:
                self._panels[view] = (index, panel)
            panels[view] = panel

        grid = np.vstack([np.hstack([panels[v] for v in row]) for row in GRID_LAYOUT])

        height, width = self.config.sub_image_size
        lines = [
            f"sequence: {sequence_no}",
            f"unix time: {tick_time:.6f}",
            f"date:{format_tick_time(tick_time)}",
        ]
        self._draw_text_block(grid, lines, (width, height))
        return grid

    def reset(self) -> None:
        """Drop cached panels, e.g. before composing another sequence."""
        self._panels.clear()

    def _blank(self) -> np.ndarray:
        return np.zeros(self.config.sub_image_size, dtype=np.uint8)

    def _render_panel(self, view: View, frame: np.ndarray) -> np.ndarray:
        import cv2

        gray = to_gray(frame)
        if view is View.SONAR_CLOSE_RANGE:
            gray = gray[self.config.close_range_row_offset:, :]

        height, width = self.config.sub_image_size
        if gray.size == 0:
            logger.debug(
                "Empty panel crop",
                view=view.value,
                frame_rows=frame.shape[0],
                row_offset=self.config.close_range_row_offset,
            )
            panel = self._blank()
        else:
            panel = cv2.resize(gray, (width, height), interpolation=cv2.INTER_CUBIC)

        self._draw_text_block(panel, [view.label], (width // 2, height - self.config.label_offset))
        return panel

    def _draw_text_block(
        self,
        image: np.ndarray,
        lines: list[str],
        center: tuple[int, int],
    ) -> None:
        """Draw black text lines on a white box centred at (x, y), in place."""
        import cv2

        font = cv2.FONT_HERSHEY_SIMPLEX
        scale = self.config.font_scale
        thickness = self.config.font_thickness
        pad = self.config.box_padding

        sizes = [cv2.getTextSize(line, font, scale, thickness) for line in lines]
        line_height = max(h + baseline for (_, h), baseline in sizes) + self.config.line_spacing
        block_width = max(w for (w, _), _ in sizes)
        block_height = line_height * len(lines)

        cx, cy = center
        left = cx - block_width // 2
        top = cy - block_height // 2
        cv2.rectangle(
            image,
            (left - pad, top - pad),
            (left + block_width + pad, top + block_height + pad),
            255,
            thickness=-1,
        )

        for i, (line, ((w, h), _)) in enumerate(zip(lines, sizes)):
            x = cx - w // 2
            y = top + i * line_height + h + self.config.line_spacing // 2
            cv2.putText(image, line, (x, y), font, scale, 0, thickness, cv2.LINE_AA)
