"""Unified, evenly spaced time axis across streams."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Sequence

import numpy as np

# Slack (in steps) so an end time that lands on a tick up to float error is kept
_TICK_TOLERANCE = 1e-9


@dataclass
class UnifiedTimeline:
    """
    Ticks ``start + k * step`` covering every stream.

    The first tick lies one step before the earliest timestamp so that
    every stream starts out on its placeholder frame.
    """

    start: float
    end: float
    step: float
    ticks: np.ndarray = field(repr=False)

    @classmethod
    def from_series(cls, series: Sequence[np.ndarray], step: float) -> "UnifiedTimeline":
        """
        Build the timeline spanning all non-empty series.

        Args:
            series: Timestamp arrays, one per stream
            step: Spacing between ticks in seconds

        Returns:
            UnifiedTimeline from ``min(first) - step`` to ``max(last)``
        """
        if step <= 0:
            raise ValueError(f"step must be positive, got {step}")

        populated = [np.asarray(s, dtype=np.float64) for s in series if len(s) > 0]
        if not populated:
            raise ValueError("Cannot build a timeline without timestamps")

        start = min(float(s.min()) for s in populated) - step
        end = max(float(s.max()) for s in populated)

        count = int(np.floor((end - start) / step + _TICK_TOLERANCE)) + 1
        ticks = start + np.arange(count, dtype=np.float64) * step
        return cls(start=start, end=end, step=step, ticks=ticks)

    @property
    def frame_rate(self) -> float:
        return 1.0 / self.step

    @property
    def span(self) -> float:
        return float(self.ticks[-1] - self.ticks[0])

    def __len__(self) -> int:
        return len(self.ticks)

    def __iter__(self) -> Iterator[float]:
        return (float(t) for t in self.ticks)

    def __getitem__(self, index: int) -> float:
        return float(self.ticks[index])
