"""Database module for mirrorhash."""

from .bitrot import BitRotRepository
from .connection import Database
from .files import FileRepository
from .folders import FolderRepository, split_path
from .models import (
    BaseFile,
    BitRot,
    DriveType,
    DuplicateFiles,
    File,
    Folder,
    FolderDuplicationLevel,
    OrphanedFile,
    Scan,
    Settings,
)
from .orphaned_files import OrphanedFileRepository
from .scans import PROJECT_SETTINGS_ID, ScanRepository, SettingsRepository
from .schema import create_schema

__all__ = [
    "Database",
    "create_schema",
    "split_path",
    "BaseFile",
    "BitRot",
    "DriveType",
    "DuplicateFiles",
    "File",
    "Folder",
    "FolderDuplicationLevel",
    "OrphanedFile",
    "Scan",
    "Settings",
    "BitRotRepository",
    "FileRepository",
    "FolderRepository",
    "OrphanedFileRepository",
    "ScanRepository",
    "SettingsRepository",
    "PROJECT_SETTINGS_ID",
]
