"""Orphaned file repository for the mirror drive."""

import sqlite3

from .connection import Database
from .files import FileRepository
from .models import Folder, OrphanedFile

# Live copies are counted among touched working drive files only.
_SELECT_WITH_COPIES = """
    SELECT o.parent_id, o.name, o.size, o.hash,
        (SELECT COUNT(*) FROM files f WHERE f.hash = o.hash AND f.touched = 1)
            AS num_copies_on_live_drive
    FROM orphaned_files o
"""


def _row_to_orphaned_file(row: sqlite3.Row) -> OrphanedFile:
    return OrphanedFile(
        parent_id=row["parent_id"],
        name=row["name"],
        hash=row["hash"],
        size=row["size"],
        num_copies_on_live_drive=row["num_copies_on_live_drive"],
    )


class OrphanedFileRepository:
    def __init__(self, db: Database, file_repository: FileRepository):
        self.db = db
        self.file_repository = file_repository

    def delete_all(self) -> None:
        self.db.conn.execute("DELETE FROM orphaned_files")

    def save(self, orphaned_file: OrphanedFile) -> None:
        self.db.conn.execute(
            "INSERT INTO orphaned_files (parent_id, name, size, hash) VALUES (?, ?, ?, ?)",
            (orphaned_file.parent_id, orphaned_file.name, orphaned_file.size, orphaned_file.hash),
        )

    def list_all(self) -> list[OrphanedFile]:
        rows = self.db.conn.execute(
            _SELECT_WITH_COPIES + " ORDER BY o.parent_id, o.name"
        ).fetchall()
        return [_row_to_orphaned_file(row) for row in rows]

    def list_by_folder(self, parent: Folder, load_working_copies: bool = False) -> list[OrphanedFile]:
        """Orphaned files directly inside ``parent``.

        With ``load_working_copies`` the matching working drive files are
        attached to every orphaned file as well.
        """
        rows = self.db.conn.execute(
            _SELECT_WITH_COPIES + " WHERE o.parent_id = ? ORDER BY o.name",
            (parent.id,),
        ).fetchall()
        orphaned_files = [_row_to_orphaned_file(row) for row in rows]

        if load_working_copies:
            for orphaned_file in orphaned_files:
                orphaned_file.duplicates_on_live_drive = self.file_repository.find_by_hash(
                    orphaned_file.hash
                )
                orphaned_file.num_copies_on_live_drive = len(orphaned_file.duplicates_on_live_drive)

        return orphaned_files

    def count(self) -> int:
        return self.db.conn.execute("SELECT COUNT(*) FROM orphaned_files").fetchone()[0]
