"""
Resumable integrity scan of a whole dataset.

Checks that every listed file exists and is non-empty, analyzes every
frame of every video for anomalies, and finally reports files on disk
that the metadata table does not reference. Per-file and per-frame
problems are logged and skipped; only a missing dataset root or an
unreadable metadata table abort the scan.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

import numpy as np
import structlog
from pydantic import BaseModel, DirectoryPath, Field

from sonarcam.errors import (
    DecodeError,
    EmptyFileError,
    FormatError,
    MissingFileError,
    SonarCamError,
)
from sonarcam.ingestion.metadata import METADATA_RELATIVE_PATH, MetadataTable, resolve
from sonarcam.ingestion.timestamps import read_timestamps
from sonarcam.ingestion.video import SourceFactory, VideoFrameSource
from sonarcam.models.quality import DEFAULT_THRESHOLDS, FrameAnomaly, QualityThresholds
from sonarcam.models.scan_state import ScanState
from sonarcam.models.sequence import STREAM_ORDER, SequenceRecord, StreamKind
from sonarcam.quality.analyzer import FrameQualityAnalyzer
from sonarcam.scan.consistency import UnreferencedFile, find_unreferenced_files
from sonarcam.scan.progress import ProgressEstimate
from sonarcam.scan.state import ScanStateStore, WarningLog

logger = structlog.get_logger(__name__)

DATE_TAG_FORMAT = "%Y_%m_%d_%H_%M_%S"


class ScanConfig(BaseModel):
    """Settings for an integrity scan."""

    dataset_root: DirectoryPath
    results_dir: Path | None = None  # defaults to <dataset_root>/analysis

    thresholds: dict[StreamKind, QualityThresholds] = Field(
        default_factory=lambda: dict(DEFAULT_THRESHOLDS)
    )
    dump_images: bool = True
    check_consistency: bool = True

    @property
    def analysis_dir(self) -> Path:
        return self.results_dir or self.dataset_root / "analysis"

    @property
    def error_log_path(self) -> Path:
        return self.analysis_dir / "errorLog.txt"

    @property
    def state_path(self) -> Path:
        return self.analysis_dir / "stateLog.json"


@dataclass
class ScanReport:
    """Everything a scan found."""

    state: ScanState
    file_issues: list[SonarCamError] = field(default_factory=list)
    stream_issues: list[SonarCamError] = field(default_factory=list)
    rejected_rows: list[FormatError] = field(default_factory=list)
    anomalies: list[FrameAnomaly] = field(default_factory=list)
    unreferenced: list[UnreferencedFile] = field(default_factory=list)
    scanned_sequences: list[int] = field(default_factory=list)

    @property
    def issue_count(self) -> int:
        return (
            len(self.file_issues)
            + len(self.stream_issues)
            + len(self.rejected_rows)
            + len(self.anomalies)
            + len(self.unreferenced)
        )


def check_file(path: Path, sequence_no: int | None = None) -> int:
    """
    Return the size of a listed file.

    Raises:
        MissingFileError: if the file does not exist
        EmptyFileError: if it has zero bytes
    """
    if not path.is_file():
        raise MissingFileError(path, sequence_no=sequence_no)
    size = path.stat().st_size
    if size == 0:
        raise EmptyFileError(path, sequence_no=sequence_no)
    return size


class IntegrityScanner:
    """
    Scans all sequences in table order, resuming after the last completed one.

    The ScanState is written after every sequence and only then; an
    interrupted run re-scans at most the sequence it was working on.
    """

    def __init__(
        self,
        config: ScanConfig,
        source_factory: SourceFactory = VideoFrameSource,
        clock: Callable[[], float] = time.perf_counter,
    ):
        self.config = config
        self.clock = clock
        self.analyzer = FrameQualityAnalyzer(
            thresholds=config.thresholds,
            image_dir=config.analysis_dir if config.dump_images else None,
            source_factory=source_factory,
        )
        self.logger = structlog.get_logger(__name__)

    def run(self, on_progress: Callable[[ProgressEstimate], None] | None = None) -> ScanReport:
        """
        Run or resume the scan.

        Raises:
            MissingFileError: if the dataset root or metadata table is missing
            FormatError: if the metadata table cannot be read
        """
        root = Path(self.config.dataset_root)
        if not root.is_dir():
            raise MissingFileError(root)
        table = MetadataTable.load(resolve(root, str(METADATA_RELATIVE_PATH)))

        self.config.analysis_dir.mkdir(parents=True, exist_ok=True)
        store = ScanStateStore(self.config.state_path)
        state = store.load(len(table))
        log = WarningLog(self.config.error_log_path)

        report = ScanReport(state=state, rejected_rows=list(table.rejected))
        fresh = state.is_fresh
        if fresh:
            log.reset()
            log.append(str(e) for e in table.rejected)

        self.logger.info(
            "Checking listed files",
            sequences=len(table),
            next_row=state.next_row,
        )
        video_sizes = self.check_files(table, report, log if fresh else None)
        total_bytes = sum(video_sizes.values())
        processed_bytes = sum(
            size for (row, _), size in video_sizes.items() if row <= state.last_completed
        )

        for row, record in enumerate(table.records, start=1):
            if row <= state.last_completed:
                continue

            started = self.clock()
            warnings: list[str] = []
            self.logger.info("Scanning sequence", sequence_no=record.sequence_no, row=row)

            for kind in STREAM_ORDER:
                size = video_sizes.get((row, kind), 0)
                processed_bytes += size
                if size == 0:
                    # Missing and empty files were reported by check_files
                    continue
                self._scan_stream(row, record, kind, state, report, warnings)

            state.last_completed = row
            state.elapsed_time += self.clock() - started
            store.save(state)
            # Row lines are logged only once the row is persisted
            log.append(warnings)
            report.scanned_sequences.append(record.sequence_no)

            estimate = ProgressEstimate(
                completed=row,
                total=len(table),
                elapsed=state.elapsed_time,
                processed_bytes=processed_bytes,
                total_bytes=total_bytes,
            )
            self.logger.info(estimate.message())
            if on_progress is not None:
                on_progress(estimate)

        if self.config.check_consistency:
            report.unreferenced = find_unreferenced_files(root, table)

        self.logger.info(
            "Dataset consistency check completed",
            issues=report.issue_count,
            anomalies=len(report.anomalies),
        )
        return report

    def check_files(
        self,
        table: MetadataTable,
        report: ScanReport,
        log: WarningLog | None = None,
    ) -> dict[tuple[int, StreamKind], int]:
        """
        Verify every listed file exists and is non-empty.

        Returns:
            (1-based row, stream) -> video file size, 0 if unusable
        """
        root = Path(self.config.dataset_root)
        video_sizes = {}
        entries = []

        for row, record in enumerate(table.records, start=1):
            for kind in STREAM_ORDER:
                for relative, is_video in (
                    (record.video_path(kind), True),
                    (record.timestamps_path(kind), False),
                ):
                    path = resolve(root, relative)
                    try:
                        size = check_file(path, record.sequence_no)
                    except (MissingFileError, EmptyFileError) as e:
                        report.file_issues.append(e)
                        entries.append(f"{record.describe()}: {e}")
                        size = 0
                    if is_video:
                        video_sizes[(row, kind)] = size

        if log is not None:
            log.append(entries)
        if report.file_issues:
            self.logger.warning("Listed files unusable", count=len(report.file_issues))
        return video_sizes

    def _scan_stream(
        self,
        row: int,
        record: SequenceRecord,
        kind: StreamKind,
        state: ScanState,
        report: ScanReport,
        warnings: list[str],
    ) -> None:
        root = Path(self.config.dataset_root)
        video_path = resolve(root, record.video_path(kind))
        timestamps = self._read_timestamps(record, kind, warnings)

        try:
            summary = self.analyzer.analyze_stream(
                kind,
                video_path,
                sequence_no=record.sequence_no,
                date_tag=record.start_date.strftime(DATE_TAG_FORMAT),
                timestamps=timestamps,
                warnings=warnings,
            )
        except DecodeError as e:
            e.sequence_no = record.sequence_no
            report.stream_issues.append(e)
            warnings.append(f"Sequence {record.sequence_no}: {e}")
            self.logger.warning("Skipping stream", stream=kind.value, error=str(e))
            return

        state.record(
            row,
            kind,
            file_size=summary.file_size,
            duration=summary.duration,
            mean=summary.mean,
            variance=summary.variance,
            entropy=summary.entropy,
        )
        report.anomalies.extend(summary.anomalies)

    def _read_timestamps(
        self,
        record: SequenceRecord,
        kind: StreamKind,
        warnings: list[str],
    ) -> np.ndarray | None:
        path = resolve(Path(self.config.dataset_root), record.timestamps_path(kind))
        try:
            return read_timestamps(path)
        except MissingFileError:
            return None
        except FormatError as e:
            e.sequence_no = record.sequence_no
            warnings.append(f"Sequence {record.sequence_no}: {e}")
            return None
