"""The planner engine: projects, the weekly slot grid, templates and navigation.

A Planner owns the single live AppData. Every mutation runs synchronously
against it, then schedules a debounced write per storage target and publishes
a Change on the feed. Unknown ids are ignored rather than reported.
"""

from __future__ import annotations
from datetime import date, timedelta
from typing import Any, Callable, Dict, List, Optional, Protocol, Iterable

from loguru import logger

from .balance import ProjectBalance, calculate_project_balances, round_half_up
from .events import Change, ChangeFeed, Listener, Subscription
from .models import (
    DEFAULT_WEEKLY_HOUR_GOAL, PROJECT_PALETTE, SLOT_HOURS, AppData, Day, Priority,
    Project, Template, TemplateBlock, TimeBlock, WeekData, new_id,
)
from .periods import monday_of, today_local, week_key_of
from .scheduler import SaveScheduler


class Gateway(Protocol):
    def load(self) -> AppData: ...
    def save_all(self, data: AppData) -> None: ...
    def save_projects(self, projects: Iterable[Project]) -> None: ...
    def save_week(self, week: WeekData) -> None: ...
    def save_templates(self, templates: Iterable[Template]) -> None: ...
    def set_data_location(self, path: str, copy_existing: bool) -> None: ...
    def reset_to_default_location(self, copy_existing: bool) -> None: ...


PROJECT_FIELDS = ("name", "weekly_hour_target", "priority", "color_index", "charge_code_splits")


class Planner:
    def __init__(
        self,
        gateway: Gateway,
        saver: SaveScheduler,
        feed: Optional[ChangeFeed] = None,
        today: Callable[[], date] = today_local,
    ):
        self.gateway = gateway
        self.saver = saver
        self.feed = feed if feed is not None else ChangeFeed()
        self.today = today
        self.data = AppData()
        self.current_monday: date = monday_of(today())

    # ---------- Lifecycle ----------
    def load(self) -> None:
        self.data = self.gateway.load()
        if not self.data.weekly_hour_goal:
            self.data.weekly_hour_goal = DEFAULT_WEEKLY_HOUR_GOAL
        self.current_monday = monday_of(self.today())
        self._ensure_week()
        self.feed.publish(Change.RELOAD)

    def reload(self) -> None:
        # Pending writes hold the old state; they must not land in a new location.
        self.saver.cancel_all()
        self.load()

    def relocate(self, path: str, copy_existing: bool) -> None:
        self.saver.flush()
        self.gateway.set_data_location(path, copy_existing)
        self.reload()

    def reset_location(self, copy_existing: bool) -> None:
        self.saver.flush()
        self.gateway.reset_to_default_location(copy_existing)
        self.reload()

    def subscribe(self, listener: Listener) -> Subscription:
        return self.feed.subscribe(listener)

    # ---------- Navigation ----------
    @property
    def current_week_key(self) -> str:
        return week_key_of(self.current_monday)

    def navigate_week(self, direction: int) -> None:
        self.current_monday = self.current_monday + timedelta(days=7 * direction)
        self._ensure_week()
        self.feed.publish(Change.NAVIGATION)

    def go_to_today(self) -> None:
        self.current_monday = monday_of(self.today())
        self._ensure_week()
        self.feed.publish(Change.NAVIGATION)

    # ---------- Weeks ----------
    @property
    def weeks(self) -> List[WeekData]:
        return self.data.weeks

    def get_week(self, week_key: str) -> Optional[WeekData]:
        return self.data.find_week(week_key)

    def current_week(self) -> WeekData:
        return self._ensure_week()

    def _ensure_week(self) -> WeekData:
        key = self.current_week_key
        week = self.data.find_week(key)
        if week is None:
            week = WeekData(week_key=key, start_date=self.current_monday, blocks=[])
            self.data.weeks.append(week)
        return week

    # ---------- Weekly goal ----------
    @property
    def weekly_hour_goal(self) -> float:
        return self.data.weekly_hour_goal or DEFAULT_WEEKLY_HOUR_GOAL

    def set_weekly_hour_goal(self, hours: float) -> None:
        self.data.weekly_hour_goal = hours
        self._save_all()
        self.feed.publish(Change.GOAL)

    def current_week_total_hours(self) -> float:
        return len(self.current_week().blocks) * SLOT_HOURS

    def weekly_goal_percent(self) -> int:
        return min(100, round_half_up(self.current_week_total_hours() / self.weekly_hour_goal * 100))

    # ---------- Projects ----------
    @property
    def projects(self) -> List[Project]:
        return self.data.projects

    def get_project(self, project_id: str) -> Optional[Project]:
        return self.data.find_project(project_id)

    def add_project(self, name: str, weekly_hour_target: float, priority: Priority) -> Project:
        used = {p.color_index for p in self.data.projects}
        color_index = next((i for i in range(len(PROJECT_PALETTE)) if i not in used), None)
        if color_index is None:
            color_index = len(self.data.projects) % len(PROJECT_PALETTE)

        project = Project(
            id=new_id(),
            name=name,
            weekly_hour_target=weekly_hour_target,
            priority=Priority(priority),
            color_index=color_index,
        )
        self.data.projects.append(project)
        self._save_projects()
        self.feed.publish(Change.PROJECTS)
        return project

    def update_project(self, project_id: str, **fields: Any) -> None:
        unknown = set(fields) - set(PROJECT_FIELDS)
        if unknown:
            raise TypeError(f"update_project() got unexpected fields: {sorted(unknown)}")

        project = self.data.find_project(project_id)
        if project is None:
            return
        if "priority" in fields:
            fields["priority"] = Priority(fields["priority"])
        for k, v in fields.items():
            setattr(project, k, v)
        self._save_projects()
        self.feed.publish(Change.PROJECTS)

    def delete_project(self, project_id: str) -> None:
        # Build every filtered collection first, then swap them in together.
        remaining = [p for p in self.data.projects if p.id != project_id]
        pruned: Dict[str, List[TimeBlock]] = {}
        for week in self.data.weeks:
            kept = [b for b in week.blocks if b.project_id != project_id]
            if len(kept) != len(week.blocks):
                pruned[week.week_key] = kept

        self.data.projects = remaining
        affected = [w for w in self.data.weeks if w.week_key in pruned]
        for week in affected:
            week.blocks = pruned[week.week_key]

        self._save_projects()
        for week in affected:
            self._save_week(week)
        logger.debug("Deleted project {} ({} weeks touched)", project_id, len(affected))
        self.feed.publish(Change.PROJECTS)

    # ---------- Time blocks ----------
    def add_block(self, project_id: str, day: Day, slot_index: int) -> Optional[TimeBlock]:
        week = self.current_week()
        if week.block_at(day, slot_index) is not None:
            return None
        block = TimeBlock(id=new_id(), project_id=project_id, day=Day(day), slot_index=slot_index)
        week.blocks.append(block)
        self._blocks_changed(week)
        return block

    def add_block_range(self, project_id: str, day: Day, start_slot: int, end_slot: int) -> List[TimeBlock]:
        week = self.current_week()
        day = Day(day)
        lo, hi = min(start_slot, end_slot), max(start_slot, end_slot)

        added: List[TimeBlock] = []
        for slot in range(lo, hi + 1):
            week.blocks = [b for b in week.blocks if not (b.day == day and b.slot_index == slot)]
            block = TimeBlock(id=new_id(), project_id=project_id, day=day, slot_index=slot)
            week.blocks.append(block)
            added.append(block)

        if added:
            self._blocks_changed(week)
        return added

    def remove_block_range(self, day: Day, start_slot: int, end_slot: int) -> None:
        week = self.current_week()
        lo, hi = min(start_slot, end_slot), max(start_slot, end_slot)
        before = len(week.blocks)
        week.blocks = [b for b in week.blocks if not (b.day == day and lo <= b.slot_index <= hi)]
        if len(week.blocks) != before:
            self._blocks_changed(week)

    def remove_block(self, block_id: str) -> None:
        week = self.current_week()
        before = len(week.blocks)
        week.blocks = [b for b in week.blocks if b.id != block_id]
        if len(week.blocks) != before:
            self._blocks_changed(week)

    def reassign_block(self, block_id: str, new_project_id: str) -> None:
        week = self.current_week()
        block = week.find_block(block_id)
        if block is None:
            return
        block.project_id = new_project_id
        self._blocks_changed(week)

    def _blocks_changed(self, week: WeekData) -> None:
        if self.data.find_week(week.week_key) is None:
            self.data.weeks.append(week)
        self._save_week(week)
        self.feed.publish(Change.BLOCKS)

    # ---------- Balances ----------
    def calculate_project_balances(self) -> List[ProjectBalance]:
        return calculate_project_balances(self.data, self.current_week_key)

    # ---------- Templates ----------
    @property
    def templates(self) -> List[Template]:
        return self.data.templates

    def save_current_week_as_template(self, name: str) -> Template:
        week = self.current_week()
        template = Template(
            id=new_id(),
            name=name,
            blocks=[TemplateBlock(project_id=b.project_id, day=b.day, slot_index=b.slot_index) for b in week.blocks],
        )
        self.data.templates.append(template)
        self._save_templates()
        self.feed.publish(Change.TEMPLATES)
        return template

    def apply_template(self, template_id: str) -> None:
        template = self.data.find_template(template_id)
        if template is None:
            return

        week = self.current_week()
        # Entries pointing at deleted projects are dropped.
        week.blocks = [
            TimeBlock(id=new_id(), project_id=tb.project_id, day=tb.day, slot_index=tb.slot_index)
            for tb in template.blocks
            if self.data.find_project(tb.project_id) is not None
        ]
        self._blocks_changed(week)

    def delete_template(self, template_id: str) -> None:
        if self.data.find_template(template_id) is None:
            return
        self.data.templates = [t for t in self.data.templates if t.id != template_id]
        self._save_templates()
        self.feed.publish(Change.TEMPLATES)

    # ---------- Persistence ----------
    def _save_all(self) -> None:
        self.saver.schedule("all", lambda: self.gateway.save_all(self.data))

    def _save_projects(self) -> None:
        self.saver.schedule("projects", lambda: self.gateway.save_projects(list(self.data.projects)))

    def _save_templates(self) -> None:
        self.saver.schedule("templates", lambda: self.gateway.save_templates(list(self.data.templates)))

    def _save_week(self, week: WeekData) -> None:
        self.saver.schedule(f"week:{week.week_key}", lambda: self.gateway.save_week(week))
