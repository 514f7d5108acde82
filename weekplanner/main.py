from __future__ import annotations
import argparse
import sys
from pathlib import Path
from typing import List, Optional, TextIO

from loguru import logger
from PySide6.QtCore import QCoreApplication

from .models import project_color
from .periods import format_week_range
from .repository import Repository
from .scheduler import QtTimers, SaveScheduler
from .state import Planner


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="weekplanner", description="Show the planned week and project balances.")
    p.add_argument("--data-dir", type=Path, default=None, help="directory holding location.json (default: per-user app data)")
    p.add_argument("--week-offset", type=int, default=0, help="weeks relative to this one, e.g. -1 for last week")
    p.add_argument("--log-level", default="WARNING")
    return p


def render_summary(planner: Planner, out: TextIO) -> None:
    week = planner.current_week()
    total = planner.current_week_total_hours()
    goal = planner.weekly_hour_goal
    out.write(f"{week.week_key}  {format_week_range(week.start_date)}\n")
    out.write(f"Logged {total:g} / {goal:g} hrs ({planner.weekly_goal_percent()}%)\n")

    balances = planner.calculate_project_balances()
    if not balances:
        out.write("No projects.\n")
        return
    for b in balances:
        p = b.project
        out.write(
            f"  [{p.priority.value:<6}] {p.name:<24} {b.current_week_logged:g}/{b.effective_available:g} h"
            f"  carryover {b.carryover_balance:+g}  {b.percent_complete:3d}%  {b.standing.value}"
            f"  {project_color(p.color_index).border}\n"
        )


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logger.remove()
    logger.add(sys.stderr, level=args.log_level.upper())

    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])

    repo = Repository(args.data_dir)
    saver = SaveScheduler(QtTimers(app))
    planner = Planner(repo, saver)
    try:
        planner.load()
        if args.week_offset:
            planner.navigate_week(args.week_offset)
        render_summary(planner, sys.stdout)
    finally:
        saver.flush()
        repo.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
