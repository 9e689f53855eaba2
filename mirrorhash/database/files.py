"""File repository for the working drive."""

import sqlite3
from itertools import groupby

from mirrorhash.hashing import EMPTY_FILE_HASH

from .connection import Database
from .models import DuplicateFiles, File, Folder

_FILE_COLUMNS = "parent_id, name, intro_hash, hash, last_write_time, size, touched, is_duplicate"


def _row_to_file(row: sqlite3.Row) -> File:
    return File(
        parent_id=row["parent_id"],
        name=row["name"],
        hash=row["hash"],
        intro_hash=row["intro_hash"],
        last_write_time=row["last_write_time"],
        size=row["size"],
        touched=bool(row["touched"]),
        is_duplicate=bool(row["is_duplicate"]),
    )


class FileRepository:
    """Stores hashed files keyed by ``(parent_id, name)``.

    Queries used for duplicate detection only look at touched rows; untouched
    rows belong to files that were not seen by the latest file scan.
    """

    def __init__(self, db: Database):
        self.db = db

    def find(self, parent: Folder, name: str) -> File | None:
        row = self.db.conn.execute(
            f"SELECT {_FILE_COLUMNS} FROM files WHERE parent_id = ? AND name = ?",
            (parent.id, name),
        ).fetchone()
        return _row_to_file(row) if row else None

    def list_by_folder(self, parent: Folder, touched_only: bool = True) -> list[File]:
        query = f"SELECT {_FILE_COLUMNS} FROM files WHERE parent_id = ?"
        if touched_only:
            query += " AND touched = 1"
        rows = self.db.conn.execute(query + " ORDER BY name", (parent.id,)).fetchall()
        return [_row_to_file(row) for row in rows]

    def save(self, file: File) -> None:
        self.db.conn.execute(
            """
            INSERT INTO files
            (parent_id, name, intro_hash, hash, last_write_time, size, touched, is_duplicate)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT (parent_id, name) DO UPDATE SET
                intro_hash = excluded.intro_hash,
                hash = excluded.hash,
                last_write_time = excluded.last_write_time,
                size = excluded.size,
                touched = excluded.touched,
                is_duplicate = excluded.is_duplicate
            """,
            (
                file.parent_id,
                file.name,
                file.intro_hash,
                file.hash,
                file.last_write_time,
                file.size,
                int(file.touched),
                int(file.is_duplicate),
            ),
        )

    def mark_all_untouched(self) -> None:
        self.db.conn.execute("UPDATE files SET touched = 0")

    def touch(self, file: File) -> None:
        self.db.conn.execute(
            "UPDATE files SET touched = 1 WHERE parent_id = ? AND name = ?",
            (file.parent_id, file.name),
        )
        file.touched = True

    def remove_duplicate_marks(self) -> None:
        self.db.conn.execute("UPDATE files SET is_duplicate = 0")

    def mark_duplicate(self, file: File) -> None:
        self.db.conn.execute(
            "UPDATE files SET is_duplicate = 1 WHERE parent_id = ? AND name = ?",
            (file.parent_id, file.name),
        )
        file.is_duplicate = True

    def find_hashes_of_duplicate_files(self) -> set[str]:
        rows = self.db.conn.execute(
            """
            SELECT hash FROM files
            WHERE touched = 1
            GROUP BY hash
            HAVING COUNT(*) > 1
            """
        ).fetchall()
        return {row["hash"] for row in rows}

    def find_by_hash(self, file_hash: str) -> list[File]:
        rows = self.db.conn.execute(
            f"SELECT {_FILE_COLUMNS} FROM files WHERE hash = ? AND touched = 1 ORDER BY parent_id, name",
            (file_hash,),
        ).fetchall()
        return [_row_to_file(row) for row in rows]

    def find_duplicates_of_file(self, file: File) -> list[File]:
        """Other files with the same content; empty files never count as copies."""
        if file.hash == EMPTY_FILE_HASH:
            return []
        return [
            other
            for other in self.find_by_hash(file.hash)
            if (other.parent_id, other.name) != (file.parent_id, file.name)
        ]

    def find_duplicate_groups(self) -> list[DuplicateFiles]:
        rows = self.db.conn.execute(
            f"""
            SELECT {_FILE_COLUMNS} FROM files
            WHERE touched = 1 AND hash IN (
                SELECT hash FROM files
                WHERE touched = 1
                GROUP BY hash
                HAVING COUNT(*) > 1
            )
            ORDER BY hash, parent_id, name
            """
        ).fetchall()
        files = [_row_to_file(row) for row in rows]
        return [
            DuplicateFiles(hash=file_hash, files=list(group))
            for file_hash, group in groupby(files, key=lambda f: f.hash)
        ]

    def list_duplicates(self) -> list[File]:
        rows = self.db.conn.execute(
            f"SELECT {_FILE_COLUMNS} FROM files WHERE is_duplicate = 1 ORDER BY hash"
        ).fetchall()
        return [_row_to_file(row) for row in rows]

    def count(self) -> int:
        return self.db.conn.execute("SELECT COUNT(*) FROM files").fetchone()[0]

    def delete_all(self) -> None:
        self.db.conn.execute("DELETE FROM files")

    def delete_untouched(self) -> int:
        cursor = self.db.conn.execute("DELETE FROM files WHERE touched = 0")
        return cursor.rowcount
