"""Metadata table parsing and sequence resolution."""

from __future__ import annotations

import csv
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Iterator

import numpy as np
import structlog
from pydantic import ValidationError

from sonarcam.errors import FormatError, MissingFileError, NotFoundError
from sonarcam.ingestion.timestamps import read_timestamps
from sonarcam.models.sequence import STREAM_ORDER, SequenceRecord, StreamKind

logger = structlog.get_logger(__name__)

METADATA_RELATIVE_PATH = PurePosixPath("meta") / "sequences.csv"

REQUIRED_COLUMNS = [
    "sequenceNo",
    "sequenceStartDate",
    "sequenceEndDate",
    *[column for kind in STREAM_ORDER for column in (kind.video_field, kind.timestamps_field)],
]


def resolve(dataset_root: Path | str, relative: str) -> Path:
    """Join a metadata-relative path onto the dataset root."""
    return Path(dataset_root).joinpath(*PurePosixPath(relative).parts)


@dataclass
class MetadataTable:
    """
    All sequence records of a dataset, in file order.

    Rows that fail validation are kept out of ``records`` and reported
    in ``rejected`` so the rest of the table stays usable.
    """

    records: list[SequenceRecord] = field(default_factory=list)
    rejected: list[FormatError] = field(default_factory=list)
    path: Path | None = None

    @classmethod
    def load(cls, path: Path | str) -> "MetadataTable":
        """
        Load and validate a metadata CSV.

        Raises:
            MissingFileError: if the table does not exist
            FormatError: if it cannot be read or lacks required columns
        """
        path = Path(path)
        if not path.is_file():
            raise MissingFileError(path)

        table = cls(path=path)
        seen: set[int] = set()
        try:
            with path.open("r", newline="", encoding="utf-8-sig") as f:
                reader = csv.DictReader(f)
                if reader.fieldnames is None:
                    raise FormatError("Metadata table has no header", path=path)
                reader.fieldnames = [name.strip() for name in reader.fieldnames]
                missing = [c for c in REQUIRED_COLUMNS if c not in reader.fieldnames]
                if missing:
                    raise FormatError(
                        f"Metadata table lacks columns {', '.join(missing)}", path=path
                    )

                for line_no, row in enumerate(reader, start=2):
                    # Surplus cells land under the None key
                    row = {k: v for k, v in row.items() if k is not None}
                    try:
                        record = SequenceRecord.model_validate(row)
                    except ValidationError as e:
                        table._reject(
                            f"Malformed metadata row {line_no} ({e.error_count()} invalid fields)",
                        )
                        continue
                    if record.sequence_no in seen:
                        table._reject(
                            f"Duplicate sequence {record.sequence_no} on row {line_no}",
                            sequence_no=record.sequence_no,
                        )
                        continue
                    seen.add(record.sequence_no)
                    table.records.append(record)
        except (OSError, UnicodeDecodeError, csv.Error) as e:
            raise FormatError(f"Could not read metadata table ({e})", path=path) from e

        logger.info(
            "Loaded metadata table",
            path=str(path),
            sequences=len(table.records),
            rejected=len(table.rejected),
        )
        return table

    def _reject(self, message: str, sequence_no: int | None = None) -> None:
        error = FormatError(message, path=self.path, sequence_no=sequence_no)
        logger.warning("Rejected metadata row", error=str(error))
        self.rejected.append(error)

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[SequenceRecord]:
        return iter(self.records)

    def find(self, sequence_no: int) -> SequenceRecord:
        for record in self.records:
            if record.sequence_no == sequence_no:
                return record
        raise NotFoundError(sequence_no)

    def referenced_paths(self, dataset_root: Path | str) -> set[Path]:
        """Absolute paths of every file listed in the table."""
        return {
            resolve(dataset_root, relative).resolve()
            for record in self.records
            for relative in record.relative_paths()
        }


@dataclass
class LoadedSequence:
    """A sequence with its resolved files and timestamp series."""

    record: SequenceRecord
    video_paths: dict[StreamKind, Path]
    timestamp_paths: dict[StreamKind, Path]
    timestamps: dict[StreamKind, np.ndarray]

    @property
    def sequence_no(self) -> int:
        return self.record.sequence_no


class SequenceLoader:
    """
    Resolves sequence numbers to files via the metadata table.

    Only reads; nothing is written.
    """

    def __init__(
        self,
        dataset_root: Path | str,
        metadata_path: Path | str | None = None,
    ):
        self.dataset_root = Path(dataset_root)
        if not self.dataset_root.is_dir():
            raise MissingFileError(self.dataset_root)
        self.metadata_path = (
            Path(metadata_path)
            if metadata_path is not None
            else resolve(self.dataset_root, str(METADATA_RELATIVE_PATH))
        )
        self._table: MetadataTable | None = None
        self.logger = structlog.get_logger(__name__)

    @property
    def table(self) -> MetadataTable:
        if self._table is None:
            self._table = MetadataTable.load(self.metadata_path)
        return self._table

    def load(self, sequence_no: int) -> LoadedSequence:
        """
        Resolve the six files of a sequence and read its timestamps.

        Raises:
            NotFoundError: if no record has this sequence number
            MissingFileError: if any resolved file is absent
        """
        record = self.table.find(sequence_no)

        video_paths = {k: resolve(self.dataset_root, record.video_path(k)) for k in STREAM_ORDER}
        timestamp_paths = {
            k: resolve(self.dataset_root, record.timestamps_path(k)) for k in STREAM_ORDER
        }
        for path in [*video_paths.values(), *timestamp_paths.values()]:
            if not path.is_file():
                raise MissingFileError(path, sequence_no=sequence_no)

        timestamps = {k: read_timestamps(p) for k, p in timestamp_paths.items()}

        self.logger.info(
            "Loaded sequence",
            sequence_no=sequence_no,
            frames={k.value: int(ts.size) for k, ts in timestamps.items()},
        )
        return LoadedSequence(
            record=record,
            video_paths=video_paths,
            timestamp_paths=timestamp_paths,
            timestamps=timestamps,
        )
