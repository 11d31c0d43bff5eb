"""Per-frame statistics and anomaly classification."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import numpy as np
import structlog

from sonarcam.ingestion.video import SourceFactory, VideoFrameSource
from sonarcam.models.quality import (
    DEFAULT_THRESHOLDS,
    AnomalyType,
    FrameAnomaly,
    FrameMetrics,
    QualityThresholds,
)
from sonarcam.models.sequence import StreamKind
from sonarcam.rendering.imaging import to_gray

logger = structlog.get_logger(__name__)


def compute_metrics(frame: np.ndarray) -> FrameMetrics:
    """
    Mean, population variance and Shannon entropy of a frame.

    Entropy is taken in bits over the 256-bin intensity histogram,
    ignoring empty bins.
    """
    gray = to_gray(frame)
    if gray.size == 0:
        raise ValueError("Cannot compute metrics of an empty frame")

    values = gray.astype(np.float64)
    histogram = np.bincount(gray.ravel(), minlength=256)
    p = histogram[histogram > 0] / gray.size
    entropy = float(-np.sum(p * np.log2(p))) + 0.0  # no negative zero

    return FrameMetrics(
        mean=float(values.mean()),
        variance=float(values.var()),
        entropy=entropy,
    )


def classify(metrics: FrameMetrics, thresholds: QualityThresholds) -> list[tuple[AnomalyType, float]]:
    """
    Flag a frame against its stream's thresholds.

    Checks are independent and strict: a value equal to its threshold
    is not flagged.

    Returns:
        (anomaly, measured value) for every check that fired
    """
    flags = []
    if metrics.mean < thresholds.black:
        flags.append((AnomalyType.ALMOST_BLACK, metrics.mean))
    if metrics.mean > thresholds.bright:
        flags.append((AnomalyType.EXTREMELY_BRIGHT, metrics.mean))
    if metrics.entropy > thresholds.noise:
        flags.append((AnomalyType.VERY_NOISY, metrics.entropy))
    return flags


@dataclass
class StreamSummary:
    """Outcome of analyzing one stream of one sequence."""

    stream: StreamKind
    file_size: int = 0
    duration: float = 0.0
    frame_count: int = 0

    # Means of the per-frame metrics
    mean: float = 0.0
    variance: float = 0.0
    entropy: float = 0.0

    metrics: list[FrameMetrics] = field(default_factory=list, repr=False)
    anomalies: list[FrameAnomaly] = field(default_factory=list)


class FrameQualityAnalyzer:
    """
    Scans every frame of a stream for statistical anomalies.

    Flagged frames are described in the caller's warning buffer and,
    when an image directory is set, written there as PNG files.
    """

    def __init__(
        self,
        thresholds: dict[StreamKind, QualityThresholds] | None = None,
        image_dir: Path | str | None = None,
        source_factory: SourceFactory = VideoFrameSource,
    ):
        """
        Initialize analyzer.

        Args:
            thresholds: Per-stream thresholds, defaults to DEFAULT_THRESHOLDS
            image_dir: Where flagged frames are written; None disables dumps
            source_factory: Opens a frame source for a video path
        """
        self.thresholds = dict(DEFAULT_THRESHOLDS)
        if thresholds:
            self.thresholds.update(thresholds)
        self.image_dir = Path(image_dir) if image_dir is not None else None
        self.source_factory = source_factory
        self.logger = structlog.get_logger(__name__)

    def analyze_stream(
        self,
        kind: StreamKind,
        video_path: Path,
        sequence_no: int,
        date_tag: str,
        timestamps: np.ndarray | None = None,
        warnings: list[str] | None = None,
    ) -> StreamSummary:
        """
        Decode and analyze a whole video.

        Args:
            kind: Stream type, selects the thresholds
            video_path: Video file to decode
            sequence_no: Sequence the video belongs to
            date_tag: Sequence start formatted for log lines and file names
            timestamps: Paired per-frame timestamps; the decoder position
                is used for frames they do not cover
            warnings: Buffer that receives one line per anomaly

        Raises:
            DecodeError: if the video cannot be opened
        """
        thresholds = self.thresholds[kind]
        summary = StreamSummary(stream=kind, file_size=video_path.stat().st_size)

        source = self.source_factory(video_path)
        try:
            summary.duration = float(source.duration)
            index = 0
            while True:
                frame = source.read()
                if frame is None:
                    break
                index += 1

                gray = to_gray(frame)
                metrics = compute_metrics(gray)
                summary.metrics.append(metrics)

                if timestamps is not None and index <= len(timestamps):
                    frame_time = float(timestamps[index - 1])
                else:
                    frame_time = float(source.position)

                for anomaly_type, value in classify(metrics, thresholds):
                    anomaly = FrameAnomaly(
                        stream=kind,
                        sequence_no=sequence_no,
                        frame_index=index,
                        timestamp=frame_time,
                        anomaly=anomaly_type,
                        value=value,
                    )
                    summary.anomalies.append(anomaly)
                    if warnings is not None:
                        warnings.append(anomaly.describe(date_tag, video_path))
                    self._dump(anomaly, gray, date_tag)
        finally:
            source.close()

        summary.frame_count = len(summary.metrics)
        if summary.metrics:
            summary.mean = float(np.mean([m.mean for m in summary.metrics]))
            summary.variance = float(np.mean([m.variance for m in summary.metrics]))
            summary.entropy = float(np.mean([m.entropy for m in summary.metrics]))
        else:
            self.logger.warning("No decodable frames", stream=kind.value, path=str(video_path))

        self.logger.debug(
            "Analyzed stream",
            stream=kind.value,
            sequence_no=sequence_no,
            frames=summary.frame_count,
            anomalies=len(summary.anomalies),
        )
        return summary

    def _dump(self, anomaly: FrameAnomaly, gray: np.ndarray, date_tag: str) -> None:
        if self.image_dir is None:
            return
        import cv2

        path = self.image_dir / anomaly.image_name(date_tag)
        if not cv2.imwrite(str(path), gray):
            self.logger.warning("Could not write anomaly image", path=str(path))
