"""Sequence visualizer: aligned 2x2 video of one recording."""

from __future__ import annotations

from contextlib import ExitStack
from pathlib import Path
from typing import Callable

import structlog
from pydantic import BaseModel, DirectoryPath, Field

from sonarcam.alignment.aligner import MultiStreamAligner, StreamCursor
from sonarcam.errors import FormatError
from sonarcam.ingestion.metadata import SequenceLoader
from sonarcam.ingestion.video import SourceFactory, VideoFrameSource
from sonarcam.models.sequence import STREAM_ORDER
from sonarcam.rendering.compositor import CompositorConfig, FrameCompositor
from sonarcam.rendering.writer import CompositeVideoWriter

logger = structlog.get_logger(__name__)

DEFAULT_SEQUENCE_ID = 12
PROGRESS_INTERVAL = 100  # ticks between progress log lines
PREVIEW_WINDOW = "sonarcam"


class ViewerConfig(BaseModel):
    """Settings for rendering one sequence."""

    sequence_id: int = DEFAULT_SEQUENCE_ID
    dataset_root: DirectoryPath
    show_preview: bool = False

    step: float = Field(default=0.05, gt=0)
    output_dir: Path = Field(default_factory=Path.cwd)
    fourcc: str = "mp4v"
    container: str = "mp4"

    sub_image_size: tuple[int, int] = (600, 800)
    close_range_row_offset: int = Field(default=1099, ge=0)

    @property
    def output_path(self) -> Path:
        return self.output_dir / f"sequence_{self.sequence_id:05d}.{self.container}"


# Called with (ticks done, total ticks)
ProgressCallback = Callable[[int, int], None]


class SequenceViewer:
    """
    Renders a sequence to a video.

    Pipeline: load metadata and timestamps, open the three streams,
    align them on a shared timeline, compose each tick and append it
    to the output at ``1 / step`` frames per second.
    """

    def __init__(
        self,
        config: ViewerConfig,
        source_factory: SourceFactory = VideoFrameSource,
    ):
        self.config = config
        self.source_factory = source_factory
        self.loader = SequenceLoader(config.dataset_root)
        self.compositor = FrameCompositor(
            CompositorConfig(
                sub_image_size=config.sub_image_size,
                close_range_row_offset=config.close_range_row_offset,
            )
        )
        self.logger = structlog.get_logger(__name__)

    def render(self, on_progress: ProgressCallback | None = None) -> Path:
        """
        Write the composite video.

        Returns:
            Path of the written video

        Raises:
            NotFoundError: if the sequence is not in the metadata table
            MissingFileError: if a listed file is absent
            FormatError: if no stream has any timestamps
        """
        config = self.config
        sequence = self.loader.load(config.sequence_id)
        if not any(len(ts) for ts in sequence.timestamps.values()):
            raise FormatError(
                "Sequence has no timestamps in any stream",
                sequence_no=sequence.sequence_no,
            )
        self.compositor.reset()

        with ExitStack() as stack:
            cursors = []
            for kind in STREAM_ORDER:
                source = self.source_factory(sequence.video_paths[kind])
                stack.callback(source.close)
                cursors.append(
                    StreamCursor(
                        kind.value,
                        sequence.timestamps[kind],
                        source,
                        placeholder_size=config.sub_image_size,
                    )
                )

            aligner = MultiStreamAligner(cursors, step=config.step)
            timeline = aligner.timeline
            writer = stack.enter_context(
                CompositeVideoWriter(
                    config.output_path,
                    fps=timeline.frame_rate,
                    frame_size=self.compositor.frame_size,
                    fourcc=config.fourcc,
                )
            )
            if config.show_preview:
                stack.callback(self._close_preview)

            total = len(timeline)
            for tick in aligner:
                frame = self.compositor.compose(
                    tick.frames,
                    tick.time,
                    sequence.sequence_no,
                    frame_indices=tick.frame_indices,
                )
                if config.show_preview:
                    self._show(frame)
                writer.write(frame)

                done = tick.index + 1
                if done % PROGRESS_INTERVAL == 0:
                    self.logger.info(
                        "Rendering",
                        sequence_no=sequence.sequence_no,
                        at=round(tick.time - timeline.start, 3),
                        of=round(timeline.span, 3),
                        percent=round(done / total * 100, 1),
                    )
                if on_progress is not None:
                    on_progress(done, total)

        self.logger.info(
            "Sequence video written",
            sequence_no=sequence.sequence_no,
            path=str(config.output_path),
            frames=total,
        )
        return config.output_path

    def _show(self, frame) -> None:
        import cv2

        cv2.imshow(PREVIEW_WINDOW, frame)
        cv2.waitKey(1)

    def _close_preview(self) -> None:
        import cv2

        cv2.destroyWindow(PREVIEW_WINDOW)


def view_sequence(
    config: ViewerConfig,
    source_factory: SourceFactory = VideoFrameSource,
    on_progress: ProgressCallback | None = None,
) -> Path:
    """Render ``config.sequence_id`` and return the video path."""
    return SequenceViewer(config, source_factory=source_factory).render(on_progress=on_progress)
