from __future__ import annotations
import sqlite3
from pathlib import Path

DB_NAME = "weekplanner.sqlite3"
LOCATION_FILE = "location.json"


def data_dir(app_name: str = "WeekPlanner") -> Path:
    # Cross-platform local app data dir
    # macOS: ~/Library/Application Support/WeekPlanner
    # Windows: %APPDATA%\WeekPlanner
    home = Path.home()
    if _is_macos():
        base = home / "Library" / "Application Support"
    elif _is_windows():
        base = Path(_get_env("APPDATA", str(home)))
    else:
        base = Path(_get_env("XDG_DATA_HOME", str(home / ".local" / "share")))
    d = base / app_name
    d.mkdir(parents=True, exist_ok=True)
    return d


def db_path(directory: Path) -> Path:
    return directory / DB_NAME


def connect(path: Path) -> sqlite3.Connection:
    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys=ON;")
    return conn


def migrate(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS settings (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS projects (
            id TEXT PRIMARY KEY,
            position INTEGER NOT NULL,
            name TEXT NOT NULL,
            weekly_hour_target REAL NOT NULL,
            priority TEXT NOT NULL, -- High | Medium | Low
            color_index INTEGER NOT NULL DEFAULT 0,
            charge_code_splits TEXT -- JSON list, nullable
        );

        CREATE TABLE IF NOT EXISTS weeks (
            week_key TEXT PRIMARY KEY, -- e.g. "2026-W07"
            position INTEGER NOT NULL,
            start_date TEXT NOT NULL -- YYYY-MM-DD, a Monday
        );

        CREATE TABLE IF NOT EXISTS blocks (
            id TEXT PRIMARY KEY,
            week_key TEXT NOT NULL REFERENCES weeks(week_key) ON DELETE CASCADE,
            position INTEGER NOT NULL,
            project_id TEXT NOT NULL,
            day TEXT NOT NULL,
            slot_index INTEGER NOT NULL,
            UNIQUE(week_key, day, slot_index)
        );

        CREATE TABLE IF NOT EXISTS templates (
            id TEXT PRIMARY KEY,
            position INTEGER NOT NULL,
            name TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS template_blocks (
            template_id TEXT NOT NULL REFERENCES templates(id) ON DELETE CASCADE,
            position INTEGER NOT NULL,
            project_id TEXT NOT NULL,
            day TEXT NOT NULL,
            slot_index INTEGER NOT NULL,
            PRIMARY KEY(template_id, position)
        );
        """
    )

    if conn.execute("SELECT value FROM settings WHERE key='weekly_hour_goal'").fetchone() is None:
        conn.execute("INSERT INTO settings(key,value) VALUES('weekly_hour_goal','40')")

    conn.commit()


def _is_windows() -> bool:
    import sys
    return sys.platform.startswith("win")


def _is_macos() -> bool:
    import sys
    return sys.platform == "darwin"


def _get_env(k: str, default: str) -> str:
    import os
    return os.environ.get(k, default)
