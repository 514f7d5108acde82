from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Iterable, List

from .models import DAYS, SLOT_HOURS, AppData, Day, Priority, Project, Standing, TimeBlock, WeekData

PRIORITY_ORDER: Dict[Priority, int] = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}


@dataclass(frozen=True)
class ProjectBalance:
    project: Project
    weekly_target: float
    current_week_logged: float
    carryover_balance: float    # > 0 behind target over past weeks, < 0 ahead
    effective_available: float  # this week's target + carryover
    percent_complete: int       # 0..100
    standing: Standing


@dataclass(frozen=True)
class BlockGroup:
    day: Day
    project_id: str
    start_slot: int
    size: int

    @property
    def hours(self) -> float:
        return self.size * SLOT_HOURS


def hours_for(week: WeekData, project_id: str) -> float:
    return sum(1 for b in week.blocks if b.project_id == project_id) * SLOT_HOURS


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def standing_for(current_hours: float, weekly_target: float) -> Standing:
    if weekly_target == 0:
        return Standing.ON_TRACK
    tolerance = max(0.5, weekly_target * 0.10)
    if current_hours > weekly_target + tolerance:
        return Standing.OVER
    if current_hours < weekly_target - tolerance:
        return Standing.UNDER
    return Standing.ON_TRACK


def calculate_project_balances(data: AppData, current_week_key: str) -> List[ProjectBalance]:
    """
    Rolling balance for every project, as of the week current_week_key.

    Carryover sums (target - logged) over every earlier week holding at least
    one block; weeks with no blocks at all are skipped rather than counted as
    zero progress. Recomputed from the full history on each call.
    """
    history = sorted(
        (w for w in data.weeks if w.week_key < current_week_key and w.blocks),
        key=lambda w: w.week_key,
    )
    current = data.find_week(current_week_key)

    out: List[ProjectBalance] = []
    for project in data.projects:
        target = project.weekly_hour_target
        carryover = 0.0
        for week in history:
            carryover += target - hours_for(week, project.id)

        current_hours = hours_for(current, project.id) if current is not None else 0.0
        effective = target + carryover

        if effective > 0:
            percent = round_half_up(current_hours / effective * 100)
        else:
            percent = 100 if current_hours > 0 else 0

        out.append(
            ProjectBalance(
                project=project,
                weekly_target=target,
                current_week_logged=current_hours,
                carryover_balance=carryover,
                effective_available=effective,
                percent_complete=min(percent, 100),
                standing=standing_for(current_hours, target),
            )
        )

    # sort() is stable, so equal priorities keep project order
    out.sort(key=lambda b: PRIORITY_ORDER.get(b.project.priority, 2))
    return out


def block_groups(blocks: Iterable[TimeBlock]) -> List[BlockGroup]:
    """Runs of contiguous same-project slots, per day. Display only."""
    by_day: Dict[Day, List[TimeBlock]] = {d: [] for d in DAYS}
    for b in blocks:
        by_day[b.day].append(b)

    groups: List[BlockGroup] = []
    for day in DAYS:
        day_blocks = sorted(by_day[day], key=lambda b: b.slot_index)
        i = 0
        while i < len(day_blocks):
            first = day_blocks[i]
            size = 1
            while (
                i + size < len(day_blocks)
                and day_blocks[i + size].project_id == first.project_id
                and day_blocks[i + size].slot_index == first.slot_index + size
            ):
                size += 1
            groups.append(BlockGroup(day=day, project_id=first.project_id, start_slot=first.slot_index, size=size))
            i += size
    return groups
