"""Error taxonomy for dataset loading, scanning and rendering."""

from __future__ import annotations

from pathlib import Path


class SonarCamError(Exception):
    """Base class for all dataset tooling errors."""

    def __init__(
        self,
        message: str,
        path: Path | str | None = None,
        sequence_no: int | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.path = Path(path) if path is not None else None
        self.sequence_no = sequence_no

    def __str__(self) -> str:
        if self.path is not None:
            return f"{self.message}: {self.path}"
        return self.message


class NotFoundError(SonarCamError):
    """No metadata record matches the requested sequence number."""

    def __init__(self, sequence_no: int):
        super().__init__(f"Sequence {sequence_no} not found in metadata", sequence_no=sequence_no)


class MissingFileError(SonarCamError):
    """A referenced path does not exist on disk."""

    def __init__(self, path: Path | str, sequence_no: int | None = None):
        super().__init__("File not found", path=path, sequence_no=sequence_no)


class EmptyFileError(SonarCamError):
    """A referenced file exists but has zero bytes."""

    def __init__(self, path: Path | str, sequence_no: int | None = None):
        super().__init__("File is empty", path=path, sequence_no=sequence_no)


class DecodeError(SonarCamError):
    """A video stream cannot be opened or decoded."""

    def __init__(self, path: Path | str, reason: str = "", sequence_no: int | None = None):
        message = "Could not open video file"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message, path=path, sequence_no=sequence_no)
        self.reason = reason


class FormatError(SonarCamError):
    """Malformed metadata row, timestamp line or table header."""


class OutputError(SonarCamError):
    """An output artifact cannot be created."""
