"""Filesystem listing helpers used by the scan phases.

Unlike a best-effort walk, these helpers let ``OSError`` propagate: an
unreadable directory aborts the phase that asked for it.
"""

import logging
import os
from collections.abc import Iterable
from pathlib import Path

logger = logging.getLogger(__name__)


def list_subdirectories(directory: Path) -> list[Path]:
    subdirs: list[Path] = []
    with os.scandir(directory) as entries:
        for entry in entries:
            if entry.is_dir(follow_symlinks=False):
                subdirs.append(Path(entry.path))
    return sorted(subdirs)


def list_files(directory: Path) -> list[Path]:
    files: list[Path] = []
    with os.scandir(directory) as entries:
        for entry in entries:
            if entry.is_symlink():
                logger.debug("Skipping symlink: %s", entry.path)
                continue
            if entry.is_file(follow_symlinks=False):
                files.append(Path(entry.path))
    return sorted(files)


def folder_names_to_path(names: Iterable[str]) -> str:
    """Inverse of ``split_path``: join folder names starting at the drive root."""
    root, *rest = names
    if not root.endswith(("/", "\\")):
        root += os.sep
    return os.path.join(root, *rest)


def is_ignored(path: Path | str, ignored_folders: Iterable[str]) -> bool:
    """Exact string comparison; a parent of an ignored folder is not ignored."""
    return str(path) in set(ignored_folders)
