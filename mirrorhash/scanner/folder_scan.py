"""Folder scan: registers the working drive's directory tree."""

import logging
import time
from dataclasses import dataclass
from pathlib import Path

from mirrorhash.database import DriveType, Folder
from mirrorhash.project import BackupProject, ProjectNotReadyError, ScanRun
from mirrorhash.scanner.filesystem import is_ignored, list_subdirectories
from mirrorhash.scanner.operation import CancellationToken, ScanOperation
from mirrorhash.scanner.progress import ScanStatus

logger = logging.getLogger(__name__)


@dataclass
class FolderScanStats:
    folders_touched: int = 0
    folders_created: int = 0
    folders_ignored: int = 0


class FolderScan(ScanOperation):
    """Marks every folder below the root path as touched, creating missing ones.

    Folders that disappeared from disk stay in the database untouched.
    """

    def __init__(
        self,
        project: BackupProject,
        status: ScanStatus | None = None,
        cancellation: CancellationToken | None = None,
    ):
        super().__init__(project, status or ScanStatus("Folder Scan"), cancellation)

    def enumerate_folders(self) -> FolderScanStats:
        return self._run(self._enumerate_folders)

    def _enumerate_folders(self, scan: ScanRun) -> FolderScanStats:
        started_at = time.time()
        scan.update_folder_scan(False, started_at, None)

        settings = scan.settings
        root_path = Path(settings.root_path)
        if not root_path.is_dir():
            raise ProjectNotReadyError(f"Root path '{root_path}' is not a directory.")

        folders = self.project.folder_repository
        stats = FolderScanStats()

        with self.project.db.transaction():
            self.status.update("Mark all working folders in DB as untouched...", None)
            folders.mark_all_untouched(DriveType.WORKING)

        with self.project.db.transaction():
            root = folders.save_full_path(str(root_path), DriveType.WORKING)
            for folder in folders.get_full_path(root):
                folders.touch(folder)
                stats.folders_touched += 1

            for subdirectory in list_subdirectories(root_path):
                self._enumerate_recursive(root, subdirectory, settings.ignored_folders, stats)

        scan.update_folder_scan(True, started_at, time.time())
        logger.info(
            "Folder scan finished: %d folders touched, %d created, %d ignored",
            stats.folders_touched,
            stats.folders_created,
            stats.folders_ignored,
        )
        return stats

    def _enumerate_recursive(
        self,
        parent: Folder,
        directory: Path,
        ignored_folders: list[str],
        stats: FolderScanStats,
    ) -> None:
        if is_ignored(directory, ignored_folders):
            logger.info("Skipping ignored folder %s", directory)
            stats.folders_ignored += 1
            return

        self._check_cancelled()
        message = f"Scanning folder '{directory}'..."
        self.status.update(message, None)
        logger.debug(message)

        folders = self.project.folder_repository
        assert parent.id is not None
        folder = folders.find(parent.id, directory.name)
        if folder is None:
            folder = folders.create(
                Folder(id=None, parent_id=parent.id, name=directory.name, drive_type=DriveType.WORKING)
            )
            stats.folders_created += 1
        folders.touch(folder)
        stats.folders_touched += 1

        for subdirectory in list_subdirectories(directory):
            self._enumerate_recursive(folder, subdirectory, ignored_folders, stats)
