"""Cross-check of files on disk against the metadata table."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

import structlog

from sonarcam.ingestion.metadata import MetadataTable, resolve

logger = structlog.get_logger(__name__)

# (category, directory relative to the dataset root)
SEQUENCE_DIRECTORIES: tuple[tuple[str, str], ...] = (
    ("Sonar", "dataset/Sonar/sequences"),
    ("Camera", "dataset/Camera/sequences"),
)


@dataclass(frozen=True)
class UnreferencedFile:
    """A file on disk that no metadata row points to."""

    category: str
    path: Path

    def describe(self) -> str:
        return f"Unreferenced file found in {self.category} directory: {self.path}"


def find_unreferenced_files(
    dataset_root: Path | str,
    table: MetadataTable,
    directories: Sequence[tuple[str, str]] = SEQUENCE_DIRECTORIES,
) -> list[UnreferencedFile]:
    """
    List files under the sequence directories missing from the table.

    Each file is reported once, even if directories overlap.
    """
    dataset_root = Path(dataset_root)
    expected = table.referenced_paths(dataset_root)
    reported: set[Path] = set()
    unreferenced = []

    for category, relative in directories:
        directory = resolve(dataset_root, relative)
        if not directory.is_dir():
            logger.warning("Sequence directory missing", category=category, path=str(directory))
            continue

        for path in sorted(directory.rglob("*")):
            if not path.is_file():
                continue
            resolved = path.resolve()
            if resolved in expected or resolved in reported:
                continue
            reported.add(resolved)
            unreferenced.append(UnreferencedFile(category=category, path=path))

    logger.info("Consistency check completed", unreferenced=len(unreferenced))
    return unreferenced
