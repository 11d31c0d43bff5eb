"""Sequence metadata models."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import PurePosixPath

from pydantic import BaseModel, ConfigDict, Field, field_validator


class StreamKind(str, Enum):
    """Recorded sensor streams of a sequence."""

    SONAR = "sonar"
    CAM1 = "cam1"
    CAM2 = "cam2"

    @property
    def video_field(self) -> str:
        """Metadata column holding the stream's video path."""
        return f"{self.value}FilePath"

    @property
    def timestamps_field(self) -> str:
        """Metadata column holding the stream's timestamp file path."""
        return f"{self.value}FileTimestampsPath"

    @property
    def label(self) -> str:
        return {
            StreamKind.SONAR: "Sonar",
            StreamKind.CAM1: "Cam 1",
            StreamKind.CAM2: "Cam 2",
        }[self]


# Column order of the per-stream ScanState arrays
STREAM_ORDER: tuple[StreamKind, ...] = (StreamKind.SONAR, StreamKind.CAM1, StreamKind.CAM2)

# Formats seen in exported metadata tables
DATE_FORMATS = [
    "%Y-%m-%d %H:%M:%S.%f",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%dT%H:%M:%S",
    "%d-%b-%Y %H:%M:%S.%f",
    "%d-%b-%Y %H:%M:%S",
]


def normalize_relative_path(value: str) -> str:
    """Convert a metadata path to forward slashes without leading separators."""
    return str(PurePosixPath(value.strip().replace("\\", "/"))).lstrip("/")


class SequenceRecord(BaseModel):
    """
    One row of the metadata table.

    All file paths are relative to the dataset root and stored with
    forward slashes regardless of how the table was written.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    sequence_no: int = Field(alias="sequenceNo")
    start_date: datetime = Field(alias="sequenceStartDate")
    end_date: datetime = Field(alias="sequenceEndDate")
    start_unix: float | None = Field(default=None, alias="sequenceStartUnix")

    sonar_file_path: str = Field(alias="sonarFilePath")
    sonar_timestamps_path: str = Field(alias="sonarFileTimestampsPath")
    cam1_file_path: str = Field(alias="cam1FilePath")
    cam1_timestamps_path: str = Field(alias="cam1FileTimestampsPath")
    cam2_file_path: str = Field(alias="cam2FilePath")
    cam2_timestamps_path: str = Field(alias="cam2FileTimestampsPath")

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _parse_date(cls, value):
        if not isinstance(value, str):
            return value
        value = value.strip()
        for fmt in DATE_FORMATS:
            try:
                return datetime.strptime(value, fmt)
            except ValueError:
                continue
        return value

    @field_validator("start_date", "end_date")
    @classmethod
    def _naive_utc(cls, value: datetime) -> datetime:
        # Stored dates are naive; offsets are folded into UTC
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    @field_validator("start_unix", mode="before")
    @classmethod
    def _blank_unix(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator(
        "sonar_file_path",
        "sonar_timestamps_path",
        "cam1_file_path",
        "cam1_timestamps_path",
        "cam2_file_path",
        "cam2_timestamps_path",
    )
    @classmethod
    def _normalize_path(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("path must not be empty")
        return normalize_relative_path(value)

    @property
    def duration(self) -> timedelta:
        return self.end_date - self.start_date

    def video_path(self, kind: StreamKind) -> str:
        return getattr(self, f"{kind.value}_file_path")

    def timestamps_path(self, kind: StreamKind) -> str:
        return getattr(self, f"{kind.value}_timestamps_path")

    def relative_paths(self) -> list[str]:
        """All six referenced files, video before timestamps per stream."""
        paths = []
        for kind in STREAM_ORDER:
            paths.append(self.video_path(kind))
            paths.append(self.timestamps_path(kind))
        return paths

    def describe(self) -> str:
        """Short human description used in warning log entries."""
        return (
            f"Sequence {self.sequence_no} at {self.start_date} to {self.end_date}, "
            f"dur {self.duration}"
        )
