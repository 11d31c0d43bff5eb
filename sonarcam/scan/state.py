"""Durable scan state and the cumulative warning log."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

import structlog
from pydantic import ValidationError

from sonarcam.models.scan_state import ScanState

logger = structlog.get_logger(__name__)


class ScanStateStore:
    """
    JSON snapshot of a ScanState.

    The snapshot is replaced atomically so an interrupted write never
    leaves a truncated file behind.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self, rows: int) -> ScanState:
        """Return the persisted state sized for ``rows`` table rows, or a fresh one."""
        if not self.exists():
            return ScanState.initial(rows)

        try:
            state = ScanState.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            logger.warning("Unreadable scan state, starting over", path=str(self.path), error=str(e))
            return ScanState.initial(rows)

        if state.rows != rows:
            logger.warning(
                "Scan state does not match metadata table",
                state_rows=state.rows,
                table_rows=rows,
            )
            state.resize(rows)

        logger.info("Resuming scan", next_row=state.next_row, elapsed=state.elapsed_time)
        return state

    def save(self, state: ScanState) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(state.model_dump_json(indent=2), encoding="utf-8")
        tmp.replace(self.path)


class WarningLog:
    """Append-only, human-readable warning log."""

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def reset(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("", encoding="utf-8")

    def append(self, lines: Iterable[str]) -> int:
        """Append lines; returns how many were written."""
        lines = [line.rstrip("\n") for line in lines]
        if not lines:
            return 0
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as f:
            for line in lines:
                f.write(line + "\n")
        return len(lines)

    def entries(self) -> list[str]:
        if not self.path.is_file():
            return []
        return self.path.read_text(encoding="utf-8").splitlines()
