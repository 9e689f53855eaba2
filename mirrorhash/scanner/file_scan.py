"""File scan: hashes working drive files and detects bitrot."""

import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path

from mirrorhash.config import ScannerConfig
from mirrorhash.database import File, Folder
from mirrorhash.hashing import compute_checksums
from mirrorhash.project import BackupProject, ScanRun
from mirrorhash.scanner.filesystem import list_files
from mirrorhash.scanner.operation import CancellationToken, ScanOperation, TreeProgress
from mirrorhash.scanner.progress import FileScanStatus

logger = logging.getLogger(__name__)


@dataclass
class FileScanStats:
    files_hashed: int = 0
    files_added: int = 0
    files_updated: int = 0
    files_skipped: int = 0
    files_failed: int = 0
    bitrot_detected: int = 0


class FileScan(ScanOperation):
    """Walks the registered folder tree and records a checksum for every file.

    A file whose modification time is unchanged but whose content hash
    differs from the stored one is reported as bitrot; the stored hash is
    kept so the finding remains reproducible. Per-file read errors are
    logged and the file is left untouched.
    """

    def __init__(
        self,
        project: BackupProject,
        status: FileScanStatus | None = None,
        cancellation: CancellationToken | None = None,
        config: ScannerConfig | None = None,
    ):
        super().__init__(project, status or FileScanStatus("File Scan"), cancellation)
        self.config = config or ScannerConfig()

    def enumerate_files(self, continue_last_scan: bool = False) -> FileScanStats:
        return self._run(lambda scan: self._enumerate_files(scan, continue_last_scan))

    def _enumerate_files(self, scan: ScanRun, continue_last_scan: bool) -> FileScanStats:
        started_at = time.time()
        initialized = continue_last_scan and scan.scan.file_scan_initialized
        scan.update_file_scan(initialized, False, started_at, None)

        if not continue_last_scan:
            with self.project.db.transaction():
                self.status.update("Mark all files in DB as untouched...", 0.0)
                self.project.file_repository.mark_all_untouched()
                self.status.update("Clear all existing bitrot from database...", 0.0)
                self.project.bitrot_repository.delete_for_scan(scan.id)
            scan.update_file_scan(True, False, started_at, None)

        stats = FileScanStats()
        self._enumerate_tree(scan, continue_last_scan, stats)

        scan.update_file_scan(True, True, started_at, time.time())
        logger.info(
            "File scan finished: %d hashed, %d added, %d updated, %d skipped, %d failed, %d bitrot",
            stats.files_hashed,
            stats.files_added,
            stats.files_updated,
            stats.files_skipped,
            stats.files_failed,
            stats.bitrot_detected,
        )
        return stats

    def _enumerate_tree(self, scan: ScanRun, continue_last_scan: bool, stats: FileScanStats) -> None:
        folders = self.project.folder_repository
        root_path = scan.settings.root_path
        root = folders.find_by_path(root_path)
        if root is None:
            logger.warning("Root folder %s is not registered; run a folder scan first", root_path)
            return

        # Ancestors of the root are touched and counted but hold no files of interest.
        ancestors = len(folders.get_full_path(root)) - 1
        progress = TreeProgress(folders.count_touched(root.drive_type), index=ancestors)
        self._enumerate_folder(scan, root, root_path, progress, continue_last_scan, stats)

    def _enumerate_folder(
        self,
        scan: ScanRun,
        folder: Folder,
        path: str,
        progress: TreeProgress,
        continue_last_scan: bool,
        stats: FileScanStats,
    ) -> None:
        self._check_cancelled()
        index = progress.index
        message = f"{index} / {progress.total}: Enumerating files for directory '{path}'..."
        self.status.update(message, progress.advance())
        logger.info(message)

        for subfolder in self.project.folder_repository.get_subfolders(folder):
            self._enumerate_folder(
                scan,
                subfolder,
                os.path.join(path, subfolder.name),
                progress,
                continue_last_scan,
                stats,
            )

        files = list_files(Path(path))
        if not files:
            return

        with self.project.db.transaction():
            for i, file_path in enumerate(files):
                self._check_cancelled()
                self.status.update_folder_enumeration(file_path.name, i / len(files))
                self._check_and_save_file(scan, folder, file_path, continue_last_scan, stats)
            self.status.update_folder_enumeration("", 1.0)

    def _check_and_save_file(
        self,
        scan: ScanRun,
        folder: Folder,
        file_path: Path,
        continue_last_scan: bool,
        stats: FileScanStats,
    ) -> None:
        files = self.project.file_repository
        try:
            assert folder.id is not None
            file = files.find(folder, file_path.name)
            if continue_last_scan and file is not None and file.touched:
                stats.files_skipped += 1
                return

            stat_result = file_path.stat()
            checksums = compute_checksums(
                file_path, self.config.intro_size, self.config.read_buffer_size
            )
            stats.files_hashed += 1

            if file is None:
                file = File(
                    parent_id=folder.id,
                    name=file_path.name,
                    hash=checksums.full_hash,
                    intro_hash=checksums.intro_hash,
                    last_write_time=stat_result.st_mtime_ns,
                    size=stat_result.st_size,
                    touched=True,
                )
                files.save(file)
                stats.files_added += 1
            elif file.last_write_time != stat_result.st_mtime_ns:
                file.hash = checksums.full_hash
                file.intro_hash = checksums.intro_hash
                file.last_write_time = stat_result.st_mtime_ns
                file.size = stat_result.st_size
                file.touched = True
                files.save(file)
                stats.files_updated += 1
            elif file.hash != checksums.full_hash:
                logger.error("Bitrot detected on file '%s'", file_path)
                self.project.bitrot_repository.create(scan.id, file)
                stats.bitrot_detected += 1

            files.touch(file)
        except OSError as e:
            logger.error("Error while checking file '%s': %s", file_path, e)
            stats.files_failed += 1
