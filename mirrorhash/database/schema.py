"""Database schema definition."""

import sqlite3

SCHEMA_SQL = """
-- Operator settings; row 1 is the editable project settings,
-- every scan works on its own immutable copy.
CREATE TABLE IF NOT EXISTS settings (
    id INTEGER PRIMARY KEY,
    root_path TEXT NOT NULL DEFAULT '',
    mirror_path TEXT NOT NULL DEFAULT ''
);

CREATE TABLE IF NOT EXISTS ignored_folders (
    id INTEGER PRIMARY KEY,
    settings_id INTEGER NOT NULL REFERENCES settings(id) ON DELETE CASCADE,
    path TEXT NOT NULL
);

-- One row per pipeline run with per-stage progress flags
CREATE TABLE IF NOT EXISTS scans (
    id INTEGER PRIMARY KEY,
    settings_id INTEGER NOT NULL REFERENCES settings(id),
    created_at REAL NOT NULL,
    started_at REAL,
    finished_at REAL,
    folder_scan_finished INTEGER NOT NULL DEFAULT 0,
    folder_scan_started_at REAL,
    folder_scan_finished_at REAL,
    file_scan_initialized INTEGER NOT NULL DEFAULT 0,
    file_scan_finished INTEGER NOT NULL DEFAULT 0,
    file_scan_started_at REAL,
    file_scan_finished_at REAL,
    duplicate_analysis_finished INTEGER NOT NULL DEFAULT 0,
    duplicate_analysis_started_at REAL,
    duplicate_analysis_finished_at REAL,
    orphaned_file_scan_finished INTEGER NOT NULL DEFAULT 0,
    orphaned_file_scan_started_at REAL,
    orphaned_file_scan_finished_at REAL
);

-- Folder tree of both drives
CREATE TABLE IF NOT EXISTS folders (
    id INTEGER PRIMARY KEY,
    parent_id INTEGER REFERENCES folders(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    drive_type INTEGER NOT NULL DEFAULT 0,
    touched INTEGER NOT NULL DEFAULT 0,
    hash TEXT,
    duplication_level INTEGER NOT NULL DEFAULT 0,
    size INTEGER NOT NULL DEFAULT 0,
    UNIQUE(parent_id, name, drive_type)
);

CREATE INDEX IF NOT EXISTS idx_folders_parent ON folders(parent_id);
CREATE INDEX IF NOT EXISTS idx_folders_hash ON folders(hash) WHERE hash IS NOT NULL;
CREATE INDEX IF NOT EXISTS idx_folders_roots ON folders(drive_type) WHERE parent_id IS NULL;

-- Files of the working drive
CREATE TABLE IF NOT EXISTS files (
    parent_id INTEGER NOT NULL REFERENCES folders(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    intro_hash TEXT NOT NULL,
    hash TEXT NOT NULL,
    last_write_time INTEGER NOT NULL,
    size INTEGER NOT NULL DEFAULT 0,
    touched INTEGER NOT NULL DEFAULT 0,
    is_duplicate INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (parent_id, name)
);

CREATE INDEX IF NOT EXISTS idx_files_hash ON files(hash);
CREATE INDEX IF NOT EXISTS idx_files_intro_hash ON files(intro_hash);
CREATE INDEX IF NOT EXISTS idx_files_parent ON files(parent_id);

-- Files present on the mirror drive only; rebuilt on every orphaned file scan
CREATE TABLE IF NOT EXISTS orphaned_files (
    parent_id INTEGER NOT NULL REFERENCES folders(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    size INTEGER NOT NULL DEFAULT 0,
    hash TEXT NOT NULL,
    PRIMARY KEY (parent_id, name)
);

CREATE INDEX IF NOT EXISTS idx_orphaned_files_hash ON orphaned_files(hash);

-- Append-only bitrot findings
CREATE TABLE IF NOT EXISTS bitrot (
    id INTEGER PRIMARY KEY,
    scan_id INTEGER REFERENCES scans(id) ON DELETE CASCADE,
    folder_id INTEGER NOT NULL,
    file_name TEXT NOT NULL,
    detected_at REAL NOT NULL,
    FOREIGN KEY (folder_id, file_name) REFERENCES files(parent_id, name) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_bitrot_scan ON bitrot(scan_id);
"""


def create_schema(conn: sqlite3.Connection) -> None:
    """Create schema and the default settings row."""
    conn.executescript(SCHEMA_SQL)
    conn.execute("INSERT OR IGNORE INTO settings (id, root_path, mirror_path) VALUES (1, '', '')")
    conn.commit()
