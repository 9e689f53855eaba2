"""Settings and scan repositories."""

import sqlite3
import time
from dataclasses import fields

from .connection import Database
from .models import Scan, Settings

PROJECT_SETTINGS_ID = 1

_SCAN_COLUMNS = [f.name for f in fields(Scan)]
_SCAN_FLAGS = {
    "folder_scan_finished",
    "file_scan_initialized",
    "file_scan_finished",
    "duplicate_analysis_finished",
    "orphaned_file_scan_finished",
}


def _row_to_scan(row: sqlite3.Row) -> Scan:
    values = {name: row[name] for name in _SCAN_COLUMNS}
    for flag in _SCAN_FLAGS:
        values[flag] = bool(values[flag])
    return Scan(**values)


class SettingsRepository:
    def __init__(self, db: Database):
        self.db = db

    def get(self, settings_id: int = PROJECT_SETTINGS_ID) -> Settings:
        row = self.db.conn.execute(
            "SELECT id, root_path, mirror_path FROM settings WHERE id = ?",
            (settings_id,),
        ).fetchone()
        if row is None:
            raise LookupError(f"No settings with id {settings_id}")

        ignored = self.db.conn.execute(
            "SELECT path FROM ignored_folders WHERE settings_id = ? ORDER BY id",
            (settings_id,),
        ).fetchall()

        return Settings(
            id=row["id"],
            root_path=row["root_path"],
            mirror_path=row["mirror_path"],
            ignored_folders=[r["path"] for r in ignored],
        )

    def get_for_scan(self, scan: Scan) -> Settings:
        return self.get(scan.settings_id)

    def save(self, settings: Settings) -> None:
        with self.db.transaction() as conn:
            conn.execute(
                "UPDATE settings SET root_path = ?, mirror_path = ? WHERE id = ?",
                (settings.root_path, settings.mirror_path, settings.id),
            )
            conn.execute("DELETE FROM ignored_folders WHERE settings_id = ?", (settings.id,))
            self._insert_ignored_folders(settings)

    def create_copy_for_scan(self) -> Settings:
        """Freeze the current project settings into a new row for a scan."""
        settings = self.get()
        cursor = self.db.conn.execute(
            "INSERT INTO settings (root_path, mirror_path) VALUES (?, ?)",
            (settings.root_path, settings.mirror_path),
        )
        settings.id = cursor.lastrowid
        self._insert_ignored_folders(settings)
        return settings

    def _insert_ignored_folders(self, settings: Settings) -> None:
        self.db.conn.executemany(
            "INSERT INTO ignored_folders (settings_id, path) VALUES (?, ?)",
            [(settings.id, path) for path in settings.ignored_folders],
        )


class ScanRepository:
    def __init__(self, db: Database, settings_repository: SettingsRepository):
        self.db = db
        self.settings_repository = settings_repository

    def create(self) -> Scan:
        with self.db.transaction() as conn:
            settings = self.settings_repository.create_copy_for_scan()
            assert settings.id is not None
            scan = Scan(id=None, settings_id=settings.id, created_at=time.time())
            cursor = conn.execute(
                "INSERT INTO scans (settings_id, created_at) VALUES (?, ?)",
                (scan.settings_id, scan.created_at),
            )
            scan.id = cursor.lastrowid
        return scan

    def get(self, scan_id: int) -> Scan | None:
        row = self.db.conn.execute("SELECT * FROM scans WHERE id = ?", (scan_id,)).fetchone()
        return _row_to_scan(row) if row else None

    def get_latest(self) -> Scan | None:
        row = self.db.conn.execute("SELECT * FROM scans ORDER BY id DESC LIMIT 1").fetchone()
        return _row_to_scan(row) if row else None

    def save(self, scan: Scan) -> None:
        columns = [name for name in _SCAN_COLUMNS if name != "id"]
        assignments = ", ".join(f"{name} = ?" for name in columns)
        values = [getattr(scan, name) for name in columns]
        self.db.conn.execute(
            f"UPDATE scans SET {assignments} WHERE id = ?",
            (*values, scan.id),
        )
