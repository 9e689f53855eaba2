"""Complete scan: all four phases in order."""

import logging
import time
from dataclasses import dataclass

from mirrorhash.config import ScannerConfig
from mirrorhash.project import BackupProject, ScanRun
from mirrorhash.scanner.duplicates import DuplicateAnalysisStats, DuplicateFileAnalysis
from mirrorhash.scanner.file_scan import FileScan, FileScanStats
from mirrorhash.scanner.folder_scan import FolderScan, FolderScanStats
from mirrorhash.scanner.operation import CancellationToken, ScanOperation
from mirrorhash.scanner.orphans import OrphanedFileScan, OrphanedFileScanStats
from mirrorhash.scanner.progress import FullScanStatus

logger = logging.getLogger(__name__)


@dataclass
class FullScanResult:
    folder_scan: FolderScanStats
    file_scan: FileScanStats
    duplicate_analysis: DuplicateAnalysisStats
    orphaned_file_scan: OrphanedFileScanStats


class CompleteScan(ScanOperation):
    """Runs folder scan, file scan, duplicate analysis and orphan scan.

    Overall progress advances in fixed quarters. A failing phase aborts the
    pipeline and leaves the data of the phases before it in place.
    """

    status: FullScanStatus

    def __init__(
        self,
        project: BackupProject,
        status: FullScanStatus | None = None,
        cancellation: CancellationToken | None = None,
        config: ScannerConfig | None = None,
    ):
        status = status or FullScanStatus()
        super().__init__(project, status, cancellation)
        self.folder_scan = FolderScan(project, status.folder_scan_status, self.cancellation)
        self.file_scan = FileScan(project, status.file_scan_status, self.cancellation, config)
        self.duplicate_analysis = DuplicateFileAnalysis(
            project, status.duplicate_analysis_status, self.cancellation
        )
        self.orphaned_file_scan = OrphanedFileScan(
            project, status.orphaned_file_scan_status, self.cancellation, config
        )

    def run_all(self) -> FullScanResult:
        return self._run(self._run_all)

    def _run_all(self, scan: ScanRun) -> FullScanResult:
        started_at = time.time()
        scan.update_full_scan(started_at, None)
        self.status.reset_phases()

        self.status.update("Scanning folders...", 0.0)
        folder_stats = self.folder_scan.enumerate_folders()

        self.status.update("Scanning files...", 0.25)
        file_stats = self.file_scan.enumerate_files(continue_last_scan=False)

        self.status.update("Analysing duplicates...", 0.5)
        duplicate_stats = self.duplicate_analysis.run()

        self.status.update("Scanning for orphaned files...", 0.75)
        orphan_stats = self.orphaned_file_scan.enumerate_orphaned_files()

        self.status.update_progress(1.0)
        scan.update_full_scan(started_at, time.time())
        logger.info("Complete scan %d finished", scan.id)

        return FullScanResult(
            folder_scan=folder_stats,
            file_scan=file_stats,
            duplicate_analysis=duplicate_stats,
            orphaned_file_scan=orphan_stats,
        )
