"""Bitrot repository."""

import sqlite3
import time

from .connection import Database
from .models import BitRot, File


def _row_to_bitrot(row: sqlite3.Row) -> BitRot:
    return BitRot(
        id=row["id"],
        scan_id=row["scan_id"],
        folder_id=row["folder_id"],
        file_name=row["file_name"],
        detected_at=row["detected_at"],
    )


class BitRotRepository:
    def __init__(self, db: Database):
        self.db = db

    def create(self, scan_id: int | None, file: File) -> BitRot:
        now = time.time()
        cursor = self.db.conn.execute(
            "INSERT INTO bitrot (scan_id, folder_id, file_name, detected_at) VALUES (?, ?, ?, ?)",
            (scan_id, file.parent_id, file.name, now),
        )
        return BitRot(
            id=cursor.lastrowid,
            scan_id=scan_id,
            folder_id=file.parent_id,
            file_name=file.name,
            detected_at=now,
        )

    def list_for_scan(self, scan_id: int | None) -> list[BitRot]:
        rows = self.db.conn.execute(
            "SELECT * FROM bitrot WHERE scan_id IS ? ORDER BY id",
            (scan_id,),
        ).fetchall()
        return [_row_to_bitrot(row) for row in rows]

    def delete_for_scan(self, scan_id: int | None) -> None:
        self.db.conn.execute("DELETE FROM bitrot WHERE scan_id IS ?", (scan_id,))
