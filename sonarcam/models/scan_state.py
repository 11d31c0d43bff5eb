"""Persistent state of a dataset integrity scan."""

from __future__ import annotations

from pydantic import BaseModel, Field

from sonarcam.models.sequence import STREAM_ORDER, StreamKind


def _grid(rows: int, fill=0.0) -> list[list]:
    return [[fill] * len(STREAM_ORDER) for _ in range(rows)]


class ScanState(BaseModel):
    """
    Progress and per-sequence statistics of an integrity scan.

    Rows follow the metadata table order, columns follow ``STREAM_ORDER``.
    ``last_completed`` counts fully scanned rows; the next row to scan
    is ``last_completed + 1`` (1-based).
    """

    last_completed: int = 0
    elapsed_time: float = 0.0

    file_size: list[list[int]] = Field(default_factory=list)
    duration: list[list[float]] = Field(default_factory=list)
    mean: list[list[float]] = Field(default_factory=list)
    variance: list[list[float]] = Field(default_factory=list)
    entropy: list[list[float]] = Field(default_factory=list)

    @classmethod
    def initial(cls, rows: int) -> "ScanState":
        return cls(
            file_size=_grid(rows, 0),
            duration=_grid(rows),
            mean=_grid(rows),
            variance=_grid(rows),
            entropy=_grid(rows),
        )

    @property
    def rows(self) -> int:
        return len(self.mean)

    @property
    def next_row(self) -> int:
        return self.last_completed + 1

    @property
    def is_fresh(self) -> bool:
        return self.last_completed == 0

    def resize(self, rows: int) -> None:
        """Grow or shrink the per-row arrays to match the metadata table."""
        for name, fill in (
            ("file_size", 0),
            ("duration", 0.0),
            ("mean", 0.0),
            ("variance", 0.0),
            ("entropy", 0.0),
        ):
            grid = getattr(self, name)
            if len(grid) < rows:
                grid.extend(_grid(rows - len(grid), fill))
            else:
                del grid[rows:]
        self.last_completed = min(self.last_completed, rows)

    def record(
        self,
        row: int,
        kind: StreamKind,
        file_size: int,
        duration: float,
        mean: float,
        variance: float,
        entropy: float,
    ) -> None:
        """Store one stream's summary for a 1-based table row."""
        col = STREAM_ORDER.index(kind)
        self.file_size[row - 1][col] = file_size
        self.duration[row - 1][col] = duration
        self.mean[row - 1][col] = mean
        self.variance[row - 1][col] = variance
        self.entropy[row - 1][col] = entropy

    def metrics_equal(self, other: "ScanState") -> bool:
        """Compare everything except wall-clock timing."""
        return self.model_dump(exclude={"elapsed_time"}) == other.model_dump(
            exclude={"elapsed_time"}
        )
