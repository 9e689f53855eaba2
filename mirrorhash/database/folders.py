"""Folder repository."""

import os
import sqlite3
from pathlib import PurePath

from .connection import Database
from .models import DriveType, Folder, FolderDuplicationLevel

_FOLDER_COLUMNS = "id, parent_id, name, drive_type, touched, hash, duplication_level, size"
_QUALIFIED_FOLDER_COLUMNS = ", ".join(f"folders.{c}" for c in _FOLDER_COLUMNS.split(", "))


def split_path(path: str) -> list[str]:
    """Split an absolute path into folder names, drive root first.

    The drive root keeps no trailing separator (``D:\\`` becomes ``D:``)
    except for the POSIX root ``/``.
    """
    pure = PurePath(os.path.normpath(path))
    if not pure.is_absolute():
        raise ValueError(f"The path '{path}' must be rooted.")
    root = pure.parts[0]
    return [root.rstrip("\\/") or root, *pure.parts[1:]]


def _row_to_folder(row: sqlite3.Row) -> Folder:
    return Folder(
        id=row["id"],
        parent_id=row["parent_id"],
        name=row["name"],
        drive_type=DriveType(row["drive_type"]),
        touched=bool(row["touched"]),
        hash=row["hash"],
        duplication_level=FolderDuplicationLevel(row["duplication_level"]),
        size=row["size"],
    )


class FolderRepository:
    """Stores the folder trees of the working and the mirror drive."""

    def __init__(self, db: Database):
        self.db = db

    def create(self, folder: Folder) -> Folder:
        cursor = self.db.conn.execute(
            """
            INSERT INTO folders
            (parent_id, name, drive_type, touched, hash, duplication_level, size)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                folder.parent_id,
                folder.name,
                int(folder.drive_type),
                int(folder.touched),
                folder.hash,
                int(folder.duplication_level),
                folder.size,
            ),
        )
        folder.id = cursor.lastrowid
        return folder

    def get(self, folder_id: int) -> Folder | None:
        row = self.db.conn.execute(
            f"SELECT {_FOLDER_COLUMNS} FROM folders WHERE id = ?",
            (folder_id,),
        ).fetchone()
        return _row_to_folder(row) if row else None

    def find(self, parent_id: int, name: str) -> Folder | None:
        row = self.db.conn.execute(
            f"SELECT {_FOLDER_COLUMNS} FROM folders WHERE parent_id = ? AND name = ?",
            (parent_id, name),
        ).fetchone()
        return _row_to_folder(row) if row else None

    def find_root(self, name: str, drive_type: DriveType) -> Folder | None:
        row = self.db.conn.execute(
            f"""
            SELECT {_FOLDER_COLUMNS} FROM folders
            WHERE parent_id IS NULL AND name = ? AND drive_type = ?
            """,
            (name, int(drive_type)),
        ).fetchone()
        return _row_to_folder(row) if row else None

    def find_by_path(self, path: str, drive_type: DriveType = DriveType.WORKING) -> Folder | None:
        """Walk the ancestor chain of ``path`` down from its drive root."""
        root_name, *names = split_path(path)
        folder = self.find_root(root_name, drive_type)
        for name in names:
            if folder is None:
                return None
            assert folder.id is not None
            folder = self.find(folder.id, name)
        return folder

    def save_full_path(self, path: str, drive_type: DriveType) -> Folder:
        """Return the folder for ``path``, creating any missing ancestors."""
        root_name, *names = split_path(path)
        folder = self.find_root(root_name, drive_type)
        if folder is None:
            folder = self.create(Folder(id=None, parent_id=None, name=root_name, drive_type=drive_type))

        for name in names:
            assert folder.id is not None
            child = self.find(folder.id, name)
            if child is None:
                child = self.create(
                    Folder(id=None, parent_id=folder.id, name=name, drive_type=drive_type)
                )
            folder = child
        return folder

    def get_root_folders(self, drive_type: DriveType) -> list[Folder]:
        rows = self.db.conn.execute(
            f"""
            SELECT {_FOLDER_COLUMNS} FROM folders
            WHERE parent_id IS NULL AND drive_type = ?
            ORDER BY id
            """,
            (int(drive_type),),
        ).fetchall()
        return [_row_to_folder(row) for row in rows]

    def get_subfolders(self, folder: Folder) -> list[Folder]:
        """Touched direct children, in tree-walk (insertion) order."""
        rows = self.db.conn.execute(
            f"""
            SELECT {_FOLDER_COLUMNS} FROM folders
            WHERE parent_id = ? AND touched = 1
            ORDER BY id
            """,
            (folder.id,),
        ).fetchall()
        return [_row_to_folder(row) for row in rows]

    def get_full_path(self, folder: Folder) -> list[Folder]:
        """Ancestor chain of ``folder`` ordered from drive root to the folder itself."""
        rows = self.db.conn.execute(
            f"""
            WITH RECURSIVE ancestors(folder_id, depth) AS (
                VALUES (?, 0)
                UNION ALL
                SELECT folders.parent_id, ancestors.depth + 1
                FROM folders JOIN ancestors ON folders.id = ancestors.folder_id
                WHERE folders.parent_id IS NOT NULL
            )
            SELECT {_QUALIFIED_FOLDER_COLUMNS}
            FROM folders JOIN ancestors ON folders.id = ancestors.folder_id
            ORDER BY ancestors.depth DESC
            """,
            (folder.id,),
        ).fetchall()
        return [_row_to_folder(row) for row in rows]

    def count(self, drive_type: DriveType) -> int:
        return self.db.conn.execute(
            "SELECT COUNT(*) FROM folders WHERE drive_type = ?",
            (int(drive_type),),
        ).fetchone()[0]

    def count_touched(self, drive_type: DriveType) -> int:
        return self.db.conn.execute(
            "SELECT COUNT(*) FROM folders WHERE drive_type = ? AND touched = 1",
            (int(drive_type),),
        ).fetchone()[0]

    def mark_all_untouched(self, drive_type: DriveType | None = None) -> None:
        if drive_type is None:
            self.db.conn.execute("UPDATE folders SET touched = 0")
        else:
            self.db.conn.execute(
                "UPDATE folders SET touched = 0 WHERE drive_type = ?", (int(drive_type),)
            )

    def touch(self, folder: Folder) -> None:
        self.db.conn.execute("UPDATE folders SET touched = 1 WHERE id = ?", (folder.id,))
        folder.touched = True

    def save_hash(self, folder: Folder, folder_hash: str | None) -> None:
        self.db.conn.execute("UPDATE folders SET hash = ? WHERE id = ?", (folder_hash, folder.id))
        folder.hash = folder_hash

    def save_duplication_level(self, folder: Folder, level: FolderDuplicationLevel) -> None:
        self.db.conn.execute(
            "UPDATE folders SET duplication_level = ? WHERE id = ?",
            (int(level), folder.id),
        )
        folder.duplication_level = level

    def save_size(self, folder: Folder, size: int) -> None:
        self.db.conn.execute("UPDATE folders SET size = ? WHERE id = ?", (size, folder.id))
        folder.size = size

    def remove_duplicate_marks(self, drive_type: DriveType) -> None:
        self.db.conn.execute(
            "UPDATE folders SET hash = NULL, duplication_level = 0 WHERE drive_type = ?",
            (int(drive_type),),
        )

    def find_duplicate_folders(self, drive_type: DriveType) -> list[Folder]:
        """Folders of ``drive_type`` whose hash is shared by another folder of that drive."""
        rows = self.db.conn.execute(
            f"""
            SELECT {_FOLDER_COLUMNS} FROM folders
            WHERE drive_type = ? AND hash IN (
                SELECT hash FROM folders
                WHERE drive_type = ? AND hash IS NOT NULL
                GROUP BY hash
                HAVING COUNT(*) > 1
            )
            ORDER BY hash, id
            """,
            (int(drive_type), int(drive_type)),
        ).fetchall()
        return [_row_to_folder(row) for row in rows]

    def find_duplicates_of_folder(self, folder: Folder, drive_type: DriveType) -> list[Folder]:
        """Other folders on ``drive_type`` with the same hash as ``folder``."""
        if not folder.hash:
            return []
        rows = self.db.conn.execute(
            f"""
            SELECT {_FOLDER_COLUMNS} FROM folders
            WHERE hash = ? AND id != ? AND drive_type = ?
            ORDER BY id
            """,
            (folder.hash, folder.id, int(drive_type)),
        ).fetchall()
        return [_row_to_folder(row) for row in rows]

    def delete_all(self) -> None:
        self.db.conn.execute("DELETE FROM folders")

    def delete_untouched(self) -> int:
        cursor = self.db.conn.execute("DELETE FROM folders WHERE touched = 0")
        return cursor.rowcount
