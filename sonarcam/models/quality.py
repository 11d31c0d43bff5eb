"""Frame quality models: metrics, thresholds and anomalies."""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from pydantic import BaseModel

from sonarcam.models.sequence import StreamKind


class AnomalyType(str, Enum):
    """Statistical anomaly classes for a single frame."""

    ALMOST_BLACK = "almost_black"
    EXTREMELY_BRIGHT = "extremely_bright"
    VERY_NOISY = "very_noisy"

    @property
    def description(self) -> str:
        return {
            AnomalyType.ALMOST_BLACK: "Almost black frame",
            AnomalyType.EXTREMELY_BRIGHT: "Extremely bright frame",
            AnomalyType.VERY_NOISY: "Very noisy frame",
        }[self]

    @property
    def file_tag(self) -> str:
        """CamelCase tag used in anomaly image file names."""
        return self.description.title().replace(" ", "")

    @property
    def metric(self) -> str:
        """Name of the metric this anomaly is measured on."""
        if self is AnomalyType.VERY_NOISY:
            return "Entropy"
        return "Mean"


@dataclass(frozen=True)
class FrameMetrics:
    """Statistical descriptors of one grayscale frame."""

    mean: float
    variance: float
    entropy: float


@dataclass(frozen=True)
class FrameAnomaly:
    """A flagged frame."""

    stream: StreamKind
    sequence_no: int
    frame_index: int  # 1-based, decode order
    timestamp: float
    anomaly: AnomalyType
    value: float

    def describe(self, date: str, video_path: Path | str) -> str:
        return (
            f"Sequence {self.sequence_no}, date {date} at {video_path}, "
            f"Frame {self.frame_index} ({self.timestamp:.3f}): "
            f"{self.anomaly.description} ({self.anomaly.metric} = {self.value:.2f})."
        )

    def image_name(self, date: str) -> str:
        return (
            f"{self.stream.value}_date{date}_seq{self.sequence_no}"
            f"_frame{self.frame_index}_time{self.timestamp:.3f}"
            f"_{self.anomaly.file_tag}{self.value:.2f}.png"
        )


class QualityThresholds(BaseModel):
    """
    Per-stream classification thresholds.

    A frame is flagged when its mean is strictly below ``black``, strictly
    above ``bright``, or its entropy strictly above ``noise``.
    """

    black: float = 45.0
    bright: float = 200.0
    noise: float = 7.5


DEFAULT_THRESHOLDS: dict[StreamKind, QualityThresholds] = {
    StreamKind.SONAR: QualityThresholds(black=45.0, bright=200.0, noise=7.15),
    StreamKind.CAM1: QualityThresholds(black=45.0, bright=200.0, noise=7.5),
    StreamKind.CAM2: QualityThresholds(black=45.0, bright=200.0, noise=7.5),
}


def load_thresholds(path: Path | str) -> dict[StreamKind, QualityThresholds]:
    """
    Load thresholds from a JSON file.

    The file maps stream names to partial threshold objects, e.g.
    ``{"sonar": {"noise": 7.2}}``. Streams and fields that are not
    listed keep their defaults.
    """
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    thresholds = dict(DEFAULT_THRESHOLDS)
    for name, values in data.items():
        kind = StreamKind(name)
        merged = thresholds[kind].model_dump()
        merged.update(values)
        thresholds[kind] = QualityThresholds(**merged)
    return thresholds
