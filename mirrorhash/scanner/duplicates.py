"""Duplicate file analysis of the working drive."""

import logging
import time
from dataclasses import dataclass

from mirrorhash.database import DriveType, Folder, FolderDuplicationLevel
from mirrorhash.project import BackupProject, ScanRun
from mirrorhash.scanner.classification import classify_folder, compute_folder_hash
from mirrorhash.scanner.operation import CancellationToken, ScanOperation, TreeProgress
from mirrorhash.scanner.progress import ScanStatus

logger = logging.getLogger(__name__)


@dataclass
class DuplicateAnalysisStats:
    duplicate_hashes: int = 0
    duplicate_files: int = 0
    folders_processed: int = 0
    identical_folders: int = 0


class DuplicateFileAnalysis(ScanOperation):
    """Marks duplicate files and classifies every working drive folder.

    Runs in four steps, each in its own transaction: clear the previous
    marks, mark files sharing a hash, classify and hash the folder tree
    bottom-up, then flag folders whose hash collides with another folder.
    """

    def __init__(
        self,
        project: BackupProject,
        status: ScanStatus | None = None,
        cancellation: CancellationToken | None = None,
    ):
        super().__init__(project, status or ScanStatus("Duplicate File Analysis"), cancellation)

    def run(self) -> DuplicateAnalysisStats:
        return self._run(self._run_analysis)

    def _run_analysis(self, scan: ScanRun) -> DuplicateAnalysisStats:
        started_at = time.time()
        scan.update_duplicate_analysis(False, started_at, None)
        stats = DuplicateAnalysisStats()

        self._remove_duplicate_marks()
        self._mark_duplicate_files(stats)
        self._classify_folders(stats)
        self._mark_identical_folders(stats)

        scan.update_duplicate_analysis(True, started_at, time.time())
        logger.info(
            "Duplicate analysis finished: %d duplicate files in %d groups, %d identical folders",
            stats.duplicate_files,
            stats.duplicate_hashes,
            stats.identical_folders,
        )
        return stats

    def _remove_duplicate_marks(self) -> None:
        with self.project.db.transaction():
            self.status.update("Remove duplicate marks...", 0.0)
            self.project.file_repository.remove_duplicate_marks()
            self.project.folder_repository.remove_duplicate_marks(DriveType.WORKING)

    def _mark_duplicate_files(self, stats: DuplicateAnalysisStats) -> None:
        files = self.project.file_repository
        with self.project.db.transaction():
            self.status.update("Mark duplicate files...", 0.0)
            duplicate_hashes = files.find_hashes_of_duplicate_files()
            stats.duplicate_hashes = len(duplicate_hashes)
            for file_hash in duplicate_hashes:
                self._check_cancelled()
                for file in files.find_by_hash(file_hash):
                    files.mark_duplicate(file)
                    stats.duplicate_files += 1

    def _classify_folders(self, stats: DuplicateAnalysisStats) -> None:
        folders = self.project.folder_repository
        with self.project.db.transaction():
            self.status.update("Analyse folders...", 0.0)
            progress = TreeProgress(folders.count_touched(DriveType.WORKING))
            for root in folders.get_root_folders(DriveType.WORKING):
                if root.touched:
                    self._classify_recursive(root, progress, stats)

    def _classify_recursive(
        self, folder: Folder, progress: TreeProgress, stats: DuplicateAnalysisStats
    ) -> None:
        folders = self.project.folder_repository
        subfolders = folders.get_subfolders(folder)
        for subfolder in subfolders:
            self._classify_recursive(subfolder, progress, stats)

        self._check_cancelled()
        self.status.update_progress(progress.advance())

        files = self.project.file_repository.list_by_folder(folder)
        folders.save_duplication_level(
            folder, classify_folder([f.is_duplicate for f in files], subfolders)
        )
        folder_hash = compute_folder_hash([f.hash for f in files], subfolders)
        if folder_hash is not None:
            folders.save_hash(folder, folder_hash)
        folders.save_size(folder, sum(f.size for f in files) + sum(s.size for s in subfolders))
        stats.folders_processed += 1

    def _mark_identical_folders(self, stats: DuplicateAnalysisStats) -> None:
        folders = self.project.folder_repository
        with self.project.db.transaction():
            self.status.update("Find hash identical folders...", 0.0)
            for folder in folders.find_duplicate_folders(DriveType.WORKING):
                folders.save_duplication_level(
                    folder, FolderDuplicationLevel.HASH_IDENTICAL_TO_OTHER_FOLDER
                )
                stats.identical_folders += 1
