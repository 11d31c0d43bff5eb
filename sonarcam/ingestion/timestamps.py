"""Per-frame timestamp files."""

from __future__ import annotations

from pathlib import Path

import math

import numpy as np
import structlog

from sonarcam.errors import FormatError, MissingFileError

logger = structlog.get_logger(__name__)


def read_timestamps(path: Path | str) -> np.ndarray:
    """
    Read a timestamp file into a float64 array.

    One Unix timestamp per line; line k belongs to decoded frame k of the
    paired video. Blank lines are skipped.

    Raises:
        MissingFileError: if the file does not exist
        FormatError: if the file cannot be decoded or a line is not a finite number
    """
    path = Path(path)
    if not path.is_file():
        raise MissingFileError(path)

    values = []
    try:
        with path.open("r", encoding="utf-8") as f:
            for line_no, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    value = float(line)
                except ValueError:
                    value = math.nan
                if not math.isfinite(value):
                    raise FormatError(
                        f"Invalid timestamp {line!r} on line {line_no}", path=path
                    )
                values.append(value)
    except (OSError, UnicodeDecodeError) as e:
        raise FormatError(f"Could not read timestamps ({e})", path=path) from e

    series = np.asarray(values, dtype=np.float64)
    if series.size > 1 and np.any(np.diff(series) < 0):
        logger.warning(
            "Timestamps are not monotonic",
            path=str(path),
            decreases=int(np.sum(np.diff(series) < 0)),
        )
    return series
