"""Scanner module for mirrorhash."""

from .duplicates import DuplicateAnalysisStats, DuplicateFileAnalysis
from .file_scan import FileScan, FileScanStats
from .folder_scan import FolderScan, FolderScanStats
from .operation import CancellationToken, ScanCancelledError
from .orphans import OrphanedFileScan, OrphanedFileScanStats
from .pipeline import CompleteScan, FullScanResult
from .progress import FileScanStatus, FullScanStatus, ProgressReporter, ScanStatus

__all__ = [
    "CancellationToken",
    "CompleteScan",
    "DuplicateAnalysisStats",
    "DuplicateFileAnalysis",
    "FileScan",
    "FileScanStats",
    "FileScanStatus",
    "FolderScan",
    "FolderScanStats",
    "FullScanResult",
    "FullScanStatus",
    "OrphanedFileScan",
    "OrphanedFileScanStats",
    "ProgressReporter",
    "ScanCancelledError",
    "ScanStatus",
]
