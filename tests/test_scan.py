"""
Tests for the resumable integrity scan.
"""

import itertools
from datetime import datetime

import pytest

from sonarcam.errors import EmptyFileError, MissingFileError
from sonarcam.ingestion.metadata import MetadataTable
from sonarcam.models.scan_state import ScanState
from sonarcam.models.sequence import StreamKind
from sonarcam.scan.consistency import find_unreferenced_files
from sonarcam.scan.integrity import IntegrityScanner, ScanConfig, check_file
from sonarcam.scan.progress import ProgressEstimate, format_duration
from sonarcam.scan.state import ScanStateStore, WarningLog

from conftest import fake_source_factory, fake_video


def make_scanner(dataset, results_dir=None, factory=fake_source_factory, **overrides):
    config = ScanConfig(dataset_root=dataset.root, results_dir=results_dir, **overrides)
    return IntegrityScanner(config, source_factory=factory, clock=itertools.count().__next__)


def interrupting_factory(marker):
    """Source factory that dies on any path containing ``marker``."""

    def factory(path):
        if marker in str(path):
            raise RuntimeError("interrupted")
        return fake_source_factory(path)

    return factory


class TestFormatDuration:
    """Tests for format_duration."""

    def test_format(self):
        assert format_duration(0) == "00:00:00"
        assert format_duration(3725) == "01:02:05"
        assert format_duration(90000) == "25:00:00"

    def test_unknown(self):
        assert format_duration(None) == "--:--:--"


class TestProgressEstimate:
    """Tests for ProgressEstimate."""

    def test_remaining_from_throughput(self):
        """Test remaining time scales elapsed time by bytes left."""
        estimate = ProgressEstimate(completed=1, total=4, elapsed=10.0, processed_bytes=100, total_bytes=400)

        assert estimate.remaining == pytest.approx(30.0)
        assert estimate.fraction == 0.25

    def test_no_bytes_processed(self):
        """Test the estimate is unknown before any bytes are processed."""
        estimate = ProgressEstimate(completed=1, total=2, elapsed=3.0, processed_bytes=0, total_bytes=0)
        assert estimate.remaining is None

    def test_message(self):
        estimate = ProgressEstimate(completed=1, total=4, elapsed=10.0, processed_bytes=100, total_bytes=400)

        message = estimate.message(now=datetime(2024, 5, 1, 10, 0, 0))
        assert message == "[2024-05-01 10:00:00]  progress: 1 / 4 (00:00:10 elapsed, 00:00:30 remaining)"


class TestScanStateStore:
    """Tests for ScanStateStore."""

    def test_missing_file_gives_fresh_state(self, tmp_path):
        state = ScanStateStore(tmp_path / "stateLog.json").load(3)

        assert state.is_fresh
        assert state.rows == 3

    def test_save_and_load(self, tmp_path):
        """Test the snapshot is replaced without leaving a temp file."""
        store = ScanStateStore(tmp_path / "stateLog.json")
        state = ScanState.initial(2)
        state.last_completed = 1
        state.record(1, StreamKind.CAM2, 42, 1.0, 90.0, 3.0, 4.0)

        store.save(state)
        loaded = store.load(2)

        assert loaded == state
        assert [p.name for p in tmp_path.iterdir()] == ["stateLog.json"]

    def test_corrupt_file_gives_fresh_state(self, tmp_path):
        path = tmp_path / "stateLog.json"
        path.write_text("{not json")

        assert ScanStateStore(path).load(2).is_fresh

    def test_row_count_mismatch_resizes(self, tmp_path):
        """Test a snapshot from a shorter table is grown to fit."""
        store = ScanStateStore(tmp_path / "stateLog.json")
        state = ScanState.initial(1)
        state.last_completed = 1
        store.save(state)

        loaded = store.load(3)
        assert loaded.rows == 3
        assert loaded.next_row == 2


class TestWarningLog:
    """Tests for WarningLog."""

    def test_append_and_read(self, tmp_path):
        log = WarningLog(tmp_path / "analysis" / "errorLog.txt")
        log.reset()

        assert log.append(["first", "second\n"]) == 2
        assert log.append([]) == 0
        assert log.append(iter(["third"])) == 1
        assert log.entries() == ["first", "second", "third"]

    def test_reset_truncates(self, tmp_path):
        log = WarningLog(tmp_path / "errorLog.txt")
        log.append(["old"])
        log.reset()

        assert log.entries() == []

    def test_missing_log(self, tmp_path):
        assert WarningLog(tmp_path / "errorLog.txt").entries() == []


class TestCheckFile:
    """Tests for check_file."""

    def test_size(self, tmp_path):
        path = tmp_path / "a.txt"
        path.write_text("abc")
        assert check_file(path) == 3

    def test_missing(self, tmp_path):
        with pytest.raises(MissingFileError):
            check_file(tmp_path / "a.txt", sequence_no=2)

    def test_empty(self, tmp_path):
        path = tmp_path / "a.txt"
        path.write_text("")
        with pytest.raises(EmptyFileError) as exc_info:
            check_file(path, sequence_no=2)
        assert exc_info.value.sequence_no == 2


class TestFindUnreferencedFiles:
    """Tests for find_unreferenced_files."""

    def test_stray_file_reported_once(self, dataset):
        """Test overlapping directories do not duplicate reports."""
        dataset.add_sequence(1)
        table = MetadataTable.load(dataset.save())
        dataset.write("dataset/Sonar/sequences/seq_00001/stray.bin", "x")

        unreferenced = find_unreferenced_files(
            dataset.root,
            table,
            directories=(("Sonar", "dataset/Sonar/sequences"), ("All", "dataset")),
        )

        assert len(unreferenced) == 1
        assert unreferenced[0].category == "Sonar"
        assert unreferenced[0].path.name == "stray.bin"
        assert unreferenced[0].describe().startswith("Unreferenced file found in Sonar directory: ")

    def test_missing_directory_skipped(self, dataset):
        dataset.add_sequence(1)
        table = MetadataTable.load(dataset.save())

        assert find_unreferenced_files(dataset.root, table, directories=(("X", "nowhere"),)) == []


class TestIntegrityScanner:
    """Tests for IntegrityScanner."""

    def test_full_scan(self, dataset):
        """Test every sequence is scanned and the state persisted."""
        dataset.add_sequence(1)
        dataset.add_sequence(2, videos={StreamKind.CAM1: fake_video([60, 80])})
        dataset.save()
        progress = []

        report = make_scanner(dataset).run(on_progress=progress.append)

        state = report.state
        assert report.scanned_sequences == [1, 2]
        assert state.last_completed == 2
        assert state.mean[0] == [100.0, 100.0, 100.0]
        assert state.mean[1][1] == pytest.approx(70.0)
        assert state.file_size[0][0] == len(fake_video([100, 100]))
        assert state.duration[0][0] == pytest.approx(0.1)
        assert state.elapsed_time == 2

        assert [p.completed for p in progress] == [1, 2]
        assert progress[-1].processed_bytes == progress[-1].total_bytes

        assert (dataset.root / "analysis" / "stateLog.json").is_file()
        assert report.issue_count == 0

    def test_anomalies_logged_and_dumped(self, dataset):
        """Test anomalous frames reach the warning log and image directory."""
        dataset.add_sequence(1, videos={StreamKind.SONAR: fake_video([100, 10])})
        dataset.save()

        report = make_scanner(dataset).run()

        analysis = dataset.root / "analysis"
        entries = WarningLog(analysis / "errorLog.txt").entries()
        assert len(report.anomalies) == 1
        assert len(entries) == 1
        assert "Almost black frame (Mean = 10.00)" in entries[0]
        assert len(list(analysis.glob("sonar_*_AlmostBlackFrame10.00.png"))) == 1

    def test_empty_file_logged_once(self, dataset):
        """Test a zero-byte video is logged once and the scan continues."""
        dataset.add_sequence(1, videos={StreamKind.CAM1: ""})
        dataset.add_sequence(2)
        dataset.save()
        scanner = make_scanner(dataset)

        report = scanner.run()
        scanner.run()

        entries = WarningLog(dataset.root / "analysis" / "errorLog.txt").entries()
        empty = [e for e in entries if "File is empty" in e]
        assert len(empty) == 1
        assert empty[0].startswith("Sequence 1 at ")
        assert report.state.last_completed == 2
        assert report.state.mean[0] == [100.0, 0.0, 100.0]

    def test_missing_timestamps_logged(self, dataset):
        """Test a missing timestamp file is reported without skipping its video."""
        dataset.add_sequence(1)
        dataset.save()
        _, ts_rel = dataset.stream_paths(1, StreamKind.SONAR)
        (dataset.root / ts_rel).unlink()

        report = make_scanner(dataset).run()

        assert len(report.file_issues) == 1
        assert isinstance(report.file_issues[0], MissingFileError)
        assert report.state.mean[0][0] == 100.0
        entries = WarningLog(dataset.root / "analysis" / "errorLog.txt").entries()
        assert any("File not found" in e for e in entries)

    def test_undecodable_video_skipped(self, dataset):
        """Test a corrupt video is logged and the other streams still scanned."""
        dataset.add_sequence(1, videos={StreamKind.CAM2: "corrupt"})
        dataset.add_sequence(2)
        dataset.save()

        report = make_scanner(dataset).run()

        assert len(report.stream_issues) == 1
        assert report.stream_issues[0].sequence_no == 1
        assert report.state.last_completed == 2
        assert report.state.mean[0] == [100.0, 100.0, 0.0]
        entries = WarningLog(dataset.root / "analysis" / "errorLog.txt").entries()
        assert any(e.startswith("Sequence 1: Could not open video file") for e in entries)

    def test_undecodable_timestamps_logged(self, dataset):
        """Test a non-UTF-8 timestamp file is logged and every row still scanned."""
        dataset.add_sequence(1)
        dataset.add_sequence(2)
        dataset.save()
        _, ts_rel = dataset.stream_paths(1, StreamKind.SONAR)
        (dataset.root / ts_rel).write_bytes(b"1.0\n\xff\xfe\n")

        report = make_scanner(dataset).run()

        assert report.scanned_sequences == [1, 2]
        assert report.state.mean[0][0] == 100.0
        entries = WarningLog(dataset.root / "analysis" / "errorLog.txt").entries()
        assert len(entries) == 1
        assert entries[0].startswith("Sequence 1: Could not read timestamps")

    def test_state_saved_before_row_warnings(self, dataset, monkeypatch):
        """Test a row's warning lines are appended only after its state is saved."""
        dataset.add_sequence(1, videos={StreamKind.SONAR: fake_video([10])})
        dataset.save()
        events = []
        save = ScanStateStore.save
        append = WarningLog.append

        def recording_save(store, state):
            events.append(("save", state.last_completed))
            save(store, state)

        def recording_append(log, lines):
            lines = list(lines)
            if lines:
                events.append(("append", len(lines)))
            return append(log, lines)

        monkeypatch.setattr(ScanStateStore, "save", recording_save)
        monkeypatch.setattr(WarningLog, "append", recording_append)

        make_scanner(dataset, check_consistency=False).run()

        assert events == [("save", 1), ("append", 1)]

    def test_unreferenced_file_reported(self, dataset):
        dataset.add_sequence(1)
        dataset.save()
        dataset.write("dataset/Sonar/sequences/seq_00001/extra.mp4", fake_video([1]))

        report = make_scanner(dataset).run()

        assert len(report.unreferenced) == 1
        assert report.unreferenced[0].category == "Sonar"

    def test_rejected_rows_logged(self, dataset):
        """Test malformed metadata rows are logged on a fresh scan."""
        dataset.add_sequence(1)
        row = dataset.add_sequence(2)
        row["sequenceNo"] = "two"
        dataset.save()

        report = make_scanner(dataset, check_consistency=False).run()

        assert report.scanned_sequences == [1]
        assert len(report.rejected_rows) == 1
        entries = WarningLog(dataset.root / "analysis" / "errorLog.txt").entries()
        assert any("Malformed metadata row 3" in e for e in entries)

    def test_missing_metadata(self, dataset):
        with pytest.raises(MissingFileError):
            make_scanner(dataset).run()

    def test_completed_scan_not_repeated(self, dataset):
        dataset.add_sequence(1)
        dataset.save()
        scanner = make_scanner(dataset)
        scanner.run()

        report = scanner.run()
        assert report.scanned_sequences == []
        assert report.state.last_completed == 1

    def test_resume_matches_uninterrupted_run(self, dataset, tmp_path):
        """Test an interrupted then resumed scan ends where a single run does."""
        dataset.add_sequence(1, videos={StreamKind.SONAR: fake_video([10, 100])})
        dataset.add_sequence(2, videos={StreamKind.CAM1: fake_video([100, "ramp"])})
        dataset.add_sequence(3, videos={StreamKind.CAM2: fake_video([250, 100])})
        dataset.save()
        resumed_dir = tmp_path / "resumed"
        baseline_dir = tmp_path / "baseline"

        with pytest.raises(RuntimeError):
            make_scanner(dataset, resumed_dir, factory=interrupting_factory("seq_00002")).run()

        interrupted = ScanStateStore(resumed_dir / "stateLog.json").load(3)
        assert interrupted.last_completed == 1

        resumed = make_scanner(dataset, resumed_dir).run()
        baseline = make_scanner(dataset, baseline_dir).run()

        assert resumed.scanned_sequences == [2, 3]
        assert baseline.scanned_sequences == [1, 2, 3]
        assert resumed.state.metrics_equal(baseline.state)
        assert (
            WarningLog(resumed_dir / "errorLog.txt").entries()
            == WarningLog(baseline_dir / "errorLog.txt").entries()
        )
