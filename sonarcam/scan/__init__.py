"""Dataset integrity scanning with resumable progress."""

from sonarcam.scan.integrity import (
    IntegrityScanner,
    ScanConfig,
    ScanReport,
    check_file,
)
from sonarcam.scan.state import ScanStateStore, WarningLog
from sonarcam.scan.progress import ProgressEstimate, format_duration
from sonarcam.scan.consistency import (
    UnreferencedFile,
    find_unreferenced_files,
    SEQUENCE_DIRECTORIES,
)

__all__ = [
    "IntegrityScanner",
    "ScanConfig",
    "ScanReport",
    "check_file",
    "ScanStateStore",
    "WarningLog",
    "ProgressEstimate",
    "format_duration",
    "UnreferencedFile",
    "find_unreferenced_files",
    "SEQUENCE_DIRECTORIES",
]
