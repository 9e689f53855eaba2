"""Backup project: the explicit handle every scan phase works against."""

import logging
import os
from pathlib import Path
from typing import Self

from mirrorhash.database import (
    BitRotRepository,
    Database,
    FileRepository,
    FolderRepository,
    OrphanedFileRepository,
    Scan,
    ScanRepository,
    Settings,
    SettingsRepository,
)

logger = logging.getLogger(__name__)


class ProjectError(ValueError):
    """Raised when a project file cannot be created or opened."""


class ProjectNotReadyError(ProjectError):
    """Raised when a scan phase is started without a usable configuration."""


def _normalize(path: str) -> str:
    return os.path.normpath(path) if path else ""


class ScanRun:
    """A scan record together with the settings frozen for it.

    Every stage transition is persisted immediately so the record always
    reflects the furthest stage reached.
    """

    def __init__(self, db: Database, scan_repository: ScanRepository, scan: Scan, settings: Settings):
        self.db = db
        self.scan_repository = scan_repository
        self.scan = scan
        self.settings = settings

    @property
    def id(self) -> int | None:
        return self.scan.id

    def update_full_scan(self, started_at: float | None, finished_at: float | None) -> None:
        self.scan.started_at = started_at
        self.scan.finished_at = finished_at
        self._save()

    def update_folder_scan(
        self, finished: bool, started_at: float | None, finished_at: float | None
    ) -> None:
        self.scan.folder_scan_finished = finished
        self.scan.folder_scan_started_at = started_at
        self.scan.folder_scan_finished_at = finished_at
        self._save()

    def update_file_scan(
        self,
        initialized: bool,
        finished: bool,
        started_at: float | None,
        finished_at: float | None,
    ) -> None:
        self.scan.file_scan_initialized = initialized
        self.scan.file_scan_finished = finished
        self.scan.file_scan_started_at = started_at
        self.scan.file_scan_finished_at = finished_at
        self._save()

    def update_duplicate_analysis(
        self, finished: bool, started_at: float | None, finished_at: float | None
    ) -> None:
        self.scan.duplicate_analysis_finished = finished
        self.scan.duplicate_analysis_started_at = started_at
        self.scan.duplicate_analysis_finished_at = finished_at
        self._save()

    def update_orphaned_file_scan(
        self, finished: bool, started_at: float | None, finished_at: float | None
    ) -> None:
        self.scan.orphaned_file_scan_finished = finished
        self.scan.orphaned_file_scan_started_at = started_at
        self.scan.orphaned_file_scan_finished_at = finished_at
        self._save()

    def _save(self) -> None:
        with self.db.transaction():
            self.scan_repository.save(self.scan)


class BackupProject:
    """Database, repositories, settings and current scan of one project file."""

    def __init__(self, db: Database):
        self.db = db
        self.settings_repository = SettingsRepository(db)
        self.scan_repository = ScanRepository(db, self.settings_repository)
        self.folder_repository = FolderRepository(db)
        self.file_repository = FileRepository(db)
        self.bitrot_repository = BitRotRepository(db)
        self.orphaned_file_repository = OrphanedFileRepository(db, self.file_repository)

        self.settings = self.settings_repository.get()
        self.current_scan: ScanRun | None = None

        latest = self.scan_repository.get_latest()
        if latest is not None:
            self.current_scan = self._scan_run(latest)

    @property
    def is_ready(self) -> bool:
        return os.path.isdir(self.settings.root_path) and os.path.isdir(self.settings.mirror_path)

    def save_settings(
        self,
        root_path: str,
        mirror_path: str,
        ignored_folders: list[str] | None = None,
    ) -> Settings:
        settings = Settings(
            id=self.settings.id,
            root_path=_normalize(root_path),
            mirror_path=_normalize(mirror_path),
            ignored_folders=[_normalize(p) for p in ignored_folders or []],
        )
        self.settings_repository.save(settings)
        self.settings = self.settings_repository.get()
        return self.settings

    def create_scan(self) -> ScanRun:
        """Start a new scan with a frozen copy of the current settings."""
        if not self.is_ready:
            raise ProjectNotReadyError(
                "Project is not ready: root and mirror path must be existing directories."
            )
        self.current_scan = self._scan_run(self.scan_repository.create())
        logger.info("Created scan %d", self.current_scan.id)
        return self.current_scan

    @property
    def has_current_settings(self) -> bool:
        """True if the current scan was created from the settings saved now."""
        if self.current_scan is None:
            return False
        frozen = self.current_scan.settings
        return (
            frozen.root_path == self.settings.root_path
            and frozen.mirror_path == self.settings.mirror_path
            and frozen.ignored_folders == self.settings.ignored_folders
        )

    def require_current_scan(self) -> ScanRun:
        if not self.is_ready:
            raise ProjectNotReadyError(
                "Project is not ready: root and mirror path must be existing directories."
            )
        if self.current_scan is None:
            raise ProjectNotReadyError("No current scan is available.")
        return self.current_scan

    def close(self) -> None:
        self.db.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _scan_run(self, scan: Scan) -> ScanRun:
        settings = self.settings_repository.get_for_scan(scan)
        return ScanRun(self.db, self.scan_repository, scan, settings)


def create_project(project_path: Path) -> BackupProject:
    if not project_path.is_absolute():
        raise ProjectError(f"The project path '{project_path}' must be absolute.")
    if project_path.exists():
        raise ProjectError(f"Cannot overwrite existing file '{project_path}'.")
    return BackupProject(Database(project_path))


def open_project(project_path: Path) -> BackupProject:
    if not project_path.is_absolute():
        raise ProjectError(f"The project path '{project_path}' must be absolute.")
    if not project_path.is_file():
        raise ProjectError(f"The project file '{project_path}' does not exist.")
    return BackupProject(Database(project_path))


def open_or_create_project(project_path: Path) -> BackupProject:
    if project_path.is_file():
        return open_project(project_path)
    return create_project(project_path)
