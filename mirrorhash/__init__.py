"""mirrorhash - Integrity and redundancy analysis for a working drive and its mirror."""

__version__ = "0.1.0"

from mirrorhash.database import Database
from mirrorhash.project import BackupProject, create_project, open_or_create_project, open_project
from mirrorhash.scanner import CompleteScan

__all__ = [
    "BackupProject",
    "CompleteScan",
    "Database",
    "create_project",
    "open_or_create_project",
    "open_project",
]
