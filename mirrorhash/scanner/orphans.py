"""Orphaned file scan of the mirror drive."""

import logging
import time
from dataclasses import dataclass
from pathlib import Path

from mirrorhash.config import ScannerConfig
from mirrorhash.database import DriveType, Folder, FolderDuplicationLevel, OrphanedFile
from mirrorhash.hashing import compute_full_hash
from mirrorhash.project import BackupProject, ProjectNotReadyError, ScanRun
from mirrorhash.scanner.classification import classify_folder, compute_folder_hash
from mirrorhash.scanner.filesystem import is_ignored, list_files, list_subdirectories
from mirrorhash.scanner.operation import CancellationToken, ScanOperation, TreeProgress
from mirrorhash.scanner.progress import ScanStatus

logger = logging.getLogger(__name__)


@dataclass
class OrphanedFileScanStats:
    orphaned_files: int = 0
    folders_processed: int = 0
    folders_still_on_working_drive: int = 0


class OrphanedFileScan(ScanOperation):
    """Finds mirror drive files whose working drive counterpart is gone.

    The orphaned file set is rebuilt from scratch on every run. Afterwards
    the mirror folders holding orphans are classified against the working
    drive so that subtrees which still exist elsewhere can be recognized.
    """

    def __init__(
        self,
        project: BackupProject,
        status: ScanStatus | None = None,
        cancellation: CancellationToken | None = None,
        config: ScannerConfig | None = None,
    ):
        super().__init__(project, status or ScanStatus("Orphaned File Scan"), cancellation)
        self.config = config or ScannerConfig()

    def enumerate_orphaned_files(self) -> OrphanedFileScanStats:
        return self._run(self._enumerate_orphaned_files)

    def _enumerate_orphaned_files(self, scan: ScanRun) -> OrphanedFileScanStats:
        settings = scan.settings
        if not settings.mirror_path:
            raise ProjectNotReadyError("No mirror path is configured.")

        started_at = time.time()
        scan.update_orphaned_file_scan(False, started_at, None)
        stats = OrphanedFileScanStats()

        with self.project.db.transaction():
            self.status.update("Enumerate orphaned files...", None)
            self.project.orphaned_file_repository.delete_all()
            self.project.folder_repository.mark_all_untouched(DriveType.MIRROR)
            self._enumerate_recursive(
                Path(settings.mirror_path),
                Path(settings.root_path),
                settings.ignored_folders,
                stats,
            )

        with self.project.db.transaction():
            self.status.update("Remove duplication marks from mirror folders...", None)
            self.project.folder_repository.remove_duplicate_marks(DriveType.MIRROR)

        with self.project.db.transaction():
            self.status.update("Scan for folders still residing on the working drive...", 0.0)
            folders = self.project.folder_repository
            progress = TreeProgress(folders.count_touched(DriveType.MIRROR))
            for root in folders.get_root_folders(DriveType.MIRROR):
                if root.touched:
                    self._classify_recursive(root, progress, stats)

        scan.update_orphaned_file_scan(True, started_at, time.time())
        logger.info(
            "Orphaned file scan finished: %d orphaned files, %d folders still on working drive",
            stats.orphaned_files,
            stats.folders_still_on_working_drive,
        )
        return stats

    def _enumerate_recursive(
        self,
        mirror_directory: Path,
        working_directory: Path,
        ignored_folders: list[str],
        stats: OrphanedFileScanStats,
    ) -> None:
        if is_ignored(mirror_directory, ignored_folders):
            logger.info("Skipping ignored folder %s", mirror_directory)
            return

        self._check_cancelled()
        message = f"Enumerate orphaned files in '{mirror_directory}'..."
        self.status.update(message, None)
        logger.debug(message)

        for subdirectory in list_subdirectories(mirror_directory):
            self._enumerate_recursive(
                subdirectory, working_directory / subdirectory.name, ignored_folders, stats
            )

        for mirror_file in list_files(mirror_directory):
            self._check_cancelled()
            if not (working_directory / mirror_file.name).is_file():
                self._save_orphaned_file(mirror_file, stats)

    def _save_orphaned_file(self, mirror_file: Path, stats: OrphanedFileScanStats) -> None:
        logger.warning("Discovered orphaned file %s", mirror_file)
        folders = self.project.folder_repository

        file_hash = compute_full_hash(mirror_file, self.config.read_buffer_size)
        size = mirror_file.stat().st_size

        folder = folders.save_full_path(str(mirror_file.parent), DriveType.MIRROR)
        for ancestor in folders.get_full_path(folder):
            folders.touch(ancestor)

        assert folder.id is not None
        self.project.orphaned_file_repository.save(
            OrphanedFile(parent_id=folder.id, name=mirror_file.name, hash=file_hash, size=size)
        )
        stats.orphaned_files += 1

    def _classify_recursive(
        self, folder: Folder, progress: TreeProgress, stats: OrphanedFileScanStats
    ) -> None:
        folders = self.project.folder_repository
        subfolders = folders.get_subfolders(folder)
        for subfolder in subfolders:
            self._classify_recursive(subfolder, progress, stats)

        self._check_cancelled()
        self.status.update_progress(progress.advance())

        files = self.project.orphaned_file_repository.list_by_folder(folder)
        folders.save_duplication_level(
            folder, classify_folder([f.num_copies_on_live_drive > 0 for f in files], subfolders)
        )
        folders.save_size(folder, sum(f.size for f in files) + sum(s.size for s in subfolders))

        folder_hash = compute_folder_hash([f.hash for f in files], subfolders)
        if folder_hash is not None:
            folders.save_hash(folder, folder_hash)
            if folders.find_duplicates_of_folder(folder, DriveType.WORKING):
                folders.save_duplication_level(
                    folder, FolderDuplicationLevel.HASH_IDENTICAL_TO_OTHER_FOLDER
                )
                stats.folders_still_on_working_drive += 1
        stats.folders_processed += 1
