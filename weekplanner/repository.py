from __future__ import annotations
import json
import shutil
import sqlite3
from datetime import date
from pathlib import Path
from typing import Iterable, List, Optional

from loguru import logger

from .db import LOCATION_FILE, connect, data_dir, db_path, migrate
from .models import (
    DEFAULT_WEEKLY_HOUR_GOAL, AppData, ChargeCodeSplit, Day, Priority, Project,
    Template, TemplateBlock, TimeBlock, WeekData,
)


class StorageLocationError(Exception):
    """The requested data directory cannot be used."""


class Repository:
    """
    sqlite-backed store for the planner's AppData.

    The database lives in a data directory: the per-user default from
    db.data_dir(), or a custom directory recorded in location.json inside the
    default one.
    """

    def __init__(self, default_dir: Optional[Path] = None):
        self.default_dir = Path(default_dir) if default_dir is not None else data_dir()
        self.default_dir.mkdir(parents=True, exist_ok=True)
        self.directory = self._resolve_directory()
        self.conn = self._open(self.directory)

    def close(self) -> None:
        self.conn.close()

    # ---------- Load ----------
    def load(self) -> AppData:
        data = AppData(
            projects=self._load_projects(),
            weeks=self._load_weeks(),
            templates=self._load_templates(),
            weekly_hour_goal=self.get_weekly_hour_goal(),
        )
        logger.info(
            "Loaded {} projects, {} weeks, {} templates from {}",
            len(data.projects), len(data.weeks), len(data.templates), self.directory,
        )
        return data

    def _load_projects(self) -> List[Project]:
        rows = self.conn.execute("SELECT * FROM projects ORDER BY position ASC").fetchall()
        out: List[Project] = []
        for r in rows:
            try:
                splits = r["charge_code_splits"]
                out.append(
                    Project(
                        id=r["id"],
                        name=r["name"],
                        weekly_hour_target=float(r["weekly_hour_target"]),
                        priority=Priority(r["priority"]),
                        color_index=int(r["color_index"]),
                        charge_code_splits=None if splits is None
                        else [ChargeCodeSplit.from_dict(s) for s in json.loads(splits)],
                    )
                )
            except (ValueError, KeyError, TypeError):
                logger.warning("Skipping unreadable project row {}", r["id"])
        return out

    def _load_weeks(self) -> List[WeekData]:
        weeks: List[WeekData] = []
        for w in self.conn.execute("SELECT * FROM weeks ORDER BY position ASC").fetchall():
            try:
                start = date.fromisoformat(w["start_date"])
            except ValueError:
                logger.warning("Skipping week {} with bad start date {!r}", w["week_key"], w["start_date"])
                continue
            blocks: List[TimeBlock] = []
            rows = self.conn.execute(
                "SELECT * FROM blocks WHERE week_key=? ORDER BY position ASC", (w["week_key"],)
            ).fetchall()
            for b in rows:
                try:
                    blocks.append(
                        TimeBlock(id=b["id"], project_id=b["project_id"], day=Day(b["day"]), slot_index=int(b["slot_index"]))
                    )
                except ValueError:
                    logger.warning("Skipping unreadable block {} in {}", b["id"], w["week_key"])
            weeks.append(WeekData(week_key=w["week_key"], start_date=start, blocks=blocks))
        return weeks

    def _load_templates(self) -> List[Template]:
        out: List[Template] = []
        for t in self.conn.execute("SELECT * FROM templates ORDER BY position ASC").fetchall():
            blocks: List[TemplateBlock] = []
            rows = self.conn.execute(
                "SELECT * FROM template_blocks WHERE template_id=? ORDER BY position ASC", (t["id"],)
            ).fetchall()
            for b in rows:
                try:
                    blocks.append(TemplateBlock(project_id=b["project_id"], day=Day(b["day"]), slot_index=int(b["slot_index"])))
                except ValueError:
                    logger.warning("Skipping unreadable entry in template {}", t["id"])
            out.append(Template(id=t["id"], name=t["name"], blocks=blocks))
        return out

    # ---------- Settings ----------
    def get_weekly_hour_goal(self) -> float:
        raw = self._get_setting("weekly_hour_goal", str(DEFAULT_WEEKLY_HOUR_GOAL))
        try:
            goal = float(raw)
        except ValueError:
            return DEFAULT_WEEKLY_HOUR_GOAL
        return goal or DEFAULT_WEEKLY_HOUR_GOAL

    def _get_setting(self, key: str, default: str) -> str:
        row = self.conn.execute("SELECT value FROM settings WHERE key=?", (key,)).fetchone()
        return row["value"] if row else default

    def _set_setting(self, key: str, value: str) -> None:
        self.conn.execute(
            "INSERT INTO settings(key,value) VALUES(?,?) "
            "ON CONFLICT(key) DO UPDATE SET value=excluded.value",
            (key, value),
        )

    # ---------- Save ----------
    def save_all(self, data: AppData) -> None:
        with self.conn:
            self._set_setting("weekly_hour_goal", repr(float(data.weekly_hour_goal)))
            self._write_projects(data.projects)
            self._write_templates(data.templates)
            self.conn.execute("DELETE FROM weeks")
            for week in data.weeks:
                self._write_week(week)

    def save_projects(self, projects: Iterable[Project]) -> None:
        with self.conn:
            self._write_projects(projects)

    def save_week(self, week: WeekData) -> None:
        with self.conn:
            self._write_week(week)

    def save_templates(self, templates: Iterable[Template]) -> None:
        with self.conn:
            self._write_templates(templates)

    def _write_projects(self, projects: Iterable[Project]) -> None:
        self.conn.execute("DELETE FROM projects")
        for pos, p in enumerate(projects):
            splits = None
            if p.charge_code_splits is not None:
                splits = json.dumps([s.to_dict() for s in p.charge_code_splits])
            self.conn.execute(
                """
                INSERT INTO projects(id, position, name, weekly_hour_target, priority, color_index, charge_code_splits)
                VALUES(?,?,?,?,?,?,?)
                """,
                (p.id, pos, p.name, float(p.weekly_hour_target), p.priority.value, p.color_index, splits),
            )

    def _write_week(self, week: WeekData) -> None:
        row = self.conn.execute("SELECT position FROM weeks WHERE week_key=?", (week.week_key,)).fetchone()
        if row is None:
            pos = self.conn.execute("SELECT COALESCE(MAX(position), -1) + 1 FROM weeks").fetchone()[0]
            self.conn.execute(
                "INSERT INTO weeks(week_key, position, start_date) VALUES(?,?,?)",
                (week.week_key, pos, week.start_date.isoformat()),
            )
        else:
            self.conn.execute(
                "UPDATE weeks SET start_date=? WHERE week_key=?",
                (week.start_date.isoformat(), week.week_key),
            )
        self.conn.execute("DELETE FROM blocks WHERE week_key=?", (week.week_key,))
        for pos, b in enumerate(week.blocks):
            self.conn.execute(
                "INSERT INTO blocks(id, week_key, position, project_id, day, slot_index) VALUES(?,?,?,?,?,?)",
                (b.id, week.week_key, pos, b.project_id, b.day.value, b.slot_index),
            )

    def _write_templates(self, templates: Iterable[Template]) -> None:
        self.conn.execute("DELETE FROM templates")
        for pos, t in enumerate(templates):
            self.conn.execute("INSERT INTO templates(id, position, name) VALUES(?,?,?)", (t.id, pos, t.name))
            for bpos, b in enumerate(t.blocks):
                self.conn.execute(
                    "INSERT INTO template_blocks(template_id, position, project_id, day, slot_index) VALUES(?,?,?,?,?)",
                    (t.id, bpos, b.project_id, b.day.value, b.slot_index),
                )

    # ---------- Location ----------
    def get_data_location(self) -> str:
        return str(self.directory)

    def set_data_location(self, path: str, copy_existing: bool) -> None:
        new_dir = Path(path)
        if not new_dir.exists():
            raise StorageLocationError(f"Directory does not exist: {path}")
        if not new_dir.is_dir():
            raise StorageLocationError(f"Path is not a directory: {path}")

        probe = new_dir / ".test_write"
        try:
            probe.write_text("test")
            probe.unlink()
        except OSError as e:
            raise StorageLocationError(f"Directory is not writable: {e}") from e

        self._relocate(new_dir, copy_existing)
        self._write_location(str(new_dir))

    def reset_to_default_location(self, copy_existing: bool) -> None:
        self._relocate(self.default_dir, copy_existing)
        self._write_location(None)

    def _relocate(self, new_dir: Path, copy_existing: bool) -> None:
        old_file = db_path(self.directory)
        new_file = db_path(new_dir)
        self.conn.close()
        try:
            if copy_existing and old_file.exists() and not new_file.exists():
                shutil.copy2(old_file, new_file)
        except OSError as e:
            self.conn = self._open(self.directory)
            raise StorageLocationError(f"Failed to copy data: {e}") from e
        self.directory = new_dir
        self.conn = self._open(new_dir)
        logger.info("Data location is now {}", new_dir)

    def _open(self, directory: Path) -> sqlite3.Connection:
        conn = connect(db_path(directory))
        migrate(conn)
        return conn

    def _location_file(self) -> Path:
        return self.default_dir / LOCATION_FILE

    def _write_location(self, custom: Optional[str]) -> None:
        settings = {} if custom is None else {"customDataPath": custom}
        self._location_file().write_text(json.dumps(settings, indent=2))

    def _resolve_directory(self) -> Path:
        f = self._location_file()
        if not f.exists():
            return self.default_dir
        try:
            custom = json.loads(f.read_text()).get("customDataPath")
        except (OSError, ValueError, AttributeError):
            logger.warning("Unreadable {}, using default data location", f)
            return self.default_dir
        if not custom:
            return self.default_dir
        d = Path(custom)
        if d.is_dir():
            return d
        logger.warning("Custom data path {} is not a directory, using default", custom)
        return self.default_dir
