"""Data models for the database."""

from dataclasses import dataclass, field
from enum import IntEnum


class DriveType(IntEnum):
    """Which of the two trees a folder belongs to."""

    WORKING = 0
    MIRROR = 1


class FolderDuplicationLevel(IntEnum):
    """Redundancy classification of a folder, weakest first."""

    NONE = 0
    CONTAINS_DUPLICATES = 1
    ENTIRE_CONTENT_ARE_DUPLICATES = 2
    HASH_IDENTICAL_TO_OTHER_FOLDER = 3


@dataclass
class Folder:
    """Represents a folder record on either drive."""

    id: int | None
    parent_id: int | None
    name: str
    drive_type: DriveType = DriveType.WORKING
    touched: bool = False
    hash: str | None = None
    duplication_level: FolderDuplicationLevel = FolderDuplicationLevel.NONE
    size: int = 0


@dataclass
class BaseFile:
    """Shape shared by working drive files and orphaned mirror files."""

    parent_id: int
    name: str
    hash: str


@dataclass
class File(BaseFile):
    """Represents a hashed file of the working drive."""

    intro_hash: str = ""
    last_write_time: int = 0
    size: int = 0
    touched: bool = False
    is_duplicate: bool = False


@dataclass
class OrphanedFile(BaseFile):
    """A mirror drive file without a counterpart on the working drive.

    ``num_copies_on_live_drive`` and ``duplicates_on_live_drive`` are computed
    on read and never persisted.
    """

    size: int = 0
    num_copies_on_live_drive: int = 0
    duplicates_on_live_drive: list[File] = field(default_factory=list)


@dataclass
class DuplicateFiles:
    """All working drive files sharing one content hash."""

    hash: str
    files: list[File]


@dataclass
class BitRot:
    """Represents a bitrot finding."""

    id: int | None
    scan_id: int | None
    folder_id: int
    file_name: str
    detected_at: float


@dataclass
class Settings:
    """Operator settings; copied into every scan when it is created."""

    id: int | None
    root_path: str = ""
    mirror_path: str = ""
    ignored_folders: list[str] = field(default_factory=list)


@dataclass
class Scan:
    """Represents one full pipeline run and how far it got."""

    id: int | None
    settings_id: int
    created_at: float
    started_at: float | None = None
    finished_at: float | None = None
    folder_scan_finished: bool = False
    folder_scan_started_at: float | None = None
    folder_scan_finished_at: float | None = None
    file_scan_initialized: bool = False
    file_scan_finished: bool = False
    file_scan_started_at: float | None = None
    file_scan_finished_at: float | None = None
    duplicate_analysis_finished: bool = False
    duplicate_analysis_started_at: float | None = None
    duplicate_analysis_finished_at: float | None = None
    orphaned_file_scan_finished: bool = False
    orphaned_file_scan_started_at: float | None = None
    orphaned_file_scan_finished_at: float | None = None
