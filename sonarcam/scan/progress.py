"""Throughput-based remaining time estimate."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


def format_duration(seconds: float | None) -> str:
    """Format seconds as hh:mm:ss; hours are not wrapped at 24."""
    if seconds is None:
        return "--:--:--"
    total = int(round(max(seconds, 0.0)))
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


@dataclass
class ProgressEstimate:
    """Scan progress after a completed sequence."""

    completed: int  # table rows done
    total: int
    elapsed: float  # seconds spent scanning, across resumed runs
    processed_bytes: int
    total_bytes: int

    @property
    def fraction(self) -> float:
        return self.completed / self.total if self.total else 1.0

    @property
    def remaining(self) -> float | None:
        """Seconds left at the observed bytes-per-second rate."""
        if self.processed_bytes <= 0:
            return None
        rate = self.elapsed / self.processed_bytes
        return max(self.total_bytes - self.processed_bytes, 0) * rate

    def message(self, now: datetime | None = None) -> str:
        now = now or datetime.now()
        return (
            f"[{now:%Y-%m-%d %H:%M:%S}]  progress: {self.completed} / {self.total} "
            f"({format_duration(self.elapsed)} elapsed, "
            f"{format_duration(self.remaining)} remaining)"
        )
