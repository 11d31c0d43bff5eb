"""
Shared fixtures: in-memory frame sources and small on-disk datasets.

Fake videos are text files such as ``fake:0,100,ramp`` - one token per
frame, a number for a uniform 8x8 frame of that intensity or ``ramp``
for a 16x16 frame holding every intensity once.
"""

from __future__ import annotations

import csv
from pathlib import Path

import numpy as np
import pytest

from sonarcam.errors import DecodeError
from sonarcam.models.sequence import STREAM_ORDER, StreamKind

FIELDNAMES = [
    "sequenceNo",
    "sequenceStartDate",
    "sequenceEndDate",
    "sequenceStartUnix",
    "sonarFilePath",
    "sonarFileTimestampsPath",
    "cam1FilePath",
    "cam1FileTimestampsPath",
    "cam2FilePath",
    "cam2FileTimestampsPath",
]


class FakeSource:
    """Frame source over a list of arrays."""

    def __init__(self, frames, fps: float = 20.0):
        self.frames = list(frames)
        self.fps = fps
        self.duration = len(self.frames) / fps
        self.position = 0.0
        self.reads = 0
        self.closed = False

    def read(self):
        if self.reads >= len(self.frames):
            return None
        frame = self.frames[self.reads]
        self.reads += 1
        self.position = (self.reads - 1) / self.fps
        return frame

    def close(self):
        self.closed = True


def ramp_frame() -> np.ndarray:
    return np.arange(256, dtype=np.uint8).reshape(16, 16)


def make_frame(token: str) -> np.ndarray:
    if token == "ramp":
        return ramp_frame()
    return np.full((8, 8), int(token), dtype=np.uint8)


def fake_source_factory(path: Path) -> FakeSource:
    text = Path(path).read_text()
    if not text.startswith("fake:"):
        raise DecodeError(path, reason="not a fake video")
    tokens = [t for t in text[len("fake:"):].strip().split(",") if t]
    return FakeSource([make_frame(t) for t in tokens])


def fake_video(tokens) -> str:
    return "fake:" + ",".join(str(t) for t in tokens)


class DatasetBuilder:
    """Writes meta/sequences.csv plus sequence files under a root."""

    def __init__(self, root: Path):
        self.root = root
        self.rows: list[dict] = []

    def stream_paths(self, sequence_no: int, kind: StreamKind) -> tuple[str, str]:
        sensor = "Sonar" if kind is StreamKind.SONAR else "Camera"
        base = f"dataset/{sensor}/sequences/seq_{sequence_no:05d}"
        return f"{base}/{kind.value}.mp4", f"{base}/{kind.value}_timestamps.txt"

    def add_sequence(
        self,
        sequence_no: int,
        videos: dict[StreamKind, str] | None = None,
        timestamps: dict[StreamKind, list[float]] | None = None,
        start: str = "2024-05-01 10:00:00",
        end: str = "2024-05-01 10:05:00",
    ) -> dict:
        videos = videos or {}
        timestamps = timestamps or {}
        row = {
            "sequenceNo": str(sequence_no),
            "sequenceStartDate": start,
            "sequenceEndDate": end,
            "sequenceStartUnix": "1714557600",
        }
        for kind in STREAM_ORDER:
            video_rel, ts_rel = self.stream_paths(sequence_no, kind)
            row[kind.video_field] = video_rel
            row[kind.timestamps_field] = ts_rel

            content = videos.get(kind, fake_video([100, 100]))
            series = timestamps.get(kind, [1.0, 2.0])
            self.write(video_rel, content)
            self.write(ts_rel, "".join(f"{t}\n" for t in series))
        self.rows.append(row)
        return row

    def write(self, relative: str, content: str) -> Path:
        path = self.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        return path

    def save(self) -> Path:
        path = self.root / "meta" / "sequences.csv"
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=FIELDNAMES)
            writer.writeheader()
            writer.writerows(self.rows)
        return path


@pytest.fixture
def dataset(tmp_path) -> DatasetBuilder:
    root = tmp_path / "dataset_root"
    root.mkdir()
    return DatasetBuilder(root)
