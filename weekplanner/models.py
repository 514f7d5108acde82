from __future__ import annotations
import uuid
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional, List, Dict, Any


# Grid: 7:00 AM to 7:00 PM in 30-minute slots
START_HOUR = 7
END_HOUR = 19
SLOT_MINUTES = 30
SLOTS_PER_DAY = (END_HOUR - START_HOUR) * (60 // SLOT_MINUTES)  # 24
SLOT_HOURS = SLOT_MINUTES / 60

DEFAULT_WEEKLY_HOUR_GOAL = 40.0


class Priority(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class Day(str, Enum):
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"


DAYS = tuple(Day)


class Standing(str, Enum):
    OVER = "over"
    UNDER = "under"
    ON_TRACK = "on-track"


@dataclass(frozen=True)
class ProjectColor:
    bg: str      # block background
    border: str  # left-border accent
    text: str


PROJECT_PALETTE = (
    ProjectColor("#a8d8ea", "#2980b9", "#1a5276"),  # blue
    ProjectColor("#f8b4b4", "#c0392b", "#922b21"),  # red
    ProjectColor("#b8e6c8", "#27ae60", "#1e8449"),  # green
    ProjectColor("#f5d5a0", "#d4a017", "#7d6608"),  # gold
    ProjectColor("#d4b8e8", "#8e44ad", "#6c3483"),  # purple
    ProjectColor("#f8c8a0", "#e67e22", "#a04000"),  # orange
    ProjectColor("#a8e8e0", "#16a085", "#0e6655"),  # teal
    ProjectColor("#f0b8d0", "#c2185b", "#880e4f"),  # pink
    ProjectColor("#c8d8a8", "#689f38", "#33691e"),  # olive
    ProjectColor("#b8c8e8", "#3f51b5", "#283593"),  # indigo
    ProjectColor("#e8c8a8", "#8d6e63", "#4e342e"),  # brown
    ProjectColor("#c8e8f0", "#0097a7", "#006064"),  # cyan
)


def project_color(color_index: int) -> ProjectColor:
    return PROJECT_PALETTE[color_index % len(PROJECT_PALETTE)]


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class ChargeCodeSplit:
    code: str
    percentage: float

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "percentage": self.percentage}

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> ChargeCodeSplit:
        return ChargeCodeSplit(code=d["code"], percentage=float(d["percentage"]))


@dataclass
class Project:
    id: str
    name: str
    weekly_hour_target: float
    priority: Priority
    color_index: int = 0

    # Billing splits; carried through storage, never interpreted here
    charge_code_splits: Optional[List[ChargeCodeSplit]] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "weeklyHourTarget": self.weekly_hour_target,
            "priority": self.priority.value,
            "colorIndex": self.color_index,
        }
        if self.charge_code_splits is not None:
            d["chargeCodeSplits"] = [s.to_dict() for s in self.charge_code_splits]
        return d

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> Project:
        splits = d.get("chargeCodeSplits")
        return Project(
            id=d["id"],
            name=d["name"],
            weekly_hour_target=float(d["weeklyHourTarget"]),
            priority=Priority(d["priority"]),
            color_index=int(d.get("colorIndex", 0)),
            charge_code_splits=None if splits is None else [ChargeCodeSplit.from_dict(s) for s in splits],
        )


@dataclass
class TimeBlock:
    id: str
    project_id: str
    day: Day
    slot_index: int  # 0 = 7:00-7:30 ... 23 = 18:30-19:00

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "projectId": self.project_id,
            "day": self.day.value,
            "slotIndex": self.slot_index,
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> TimeBlock:
        return TimeBlock(
            id=d["id"],
            project_id=d["projectId"],
            day=Day(d["day"]),
            slot_index=int(d["slotIndex"]),
        )


@dataclass(frozen=True)
class TemplateBlock:
    project_id: str
    day: Day
    slot_index: int

    def to_dict(self) -> Dict[str, Any]:
        return {"projectId": self.project_id, "day": self.day.value, "slotIndex": self.slot_index}

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> TemplateBlock:
        return TemplateBlock(project_id=d["projectId"], day=Day(d["day"]), slot_index=int(d["slotIndex"]))


@dataclass
class WeekData:
    week_key: str     # e.g. "2026-W07"
    start_date: date  # always a Monday
    blocks: List[TimeBlock] = field(default_factory=list)

    def block_at(self, day: Day, slot_index: int) -> Optional[TimeBlock]:
        return next((b for b in self.blocks if b.day == day and b.slot_index == slot_index), None)

    def find_block(self, block_id: str) -> Optional[TimeBlock]:
        return next((b for b in self.blocks if b.id == block_id), None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "weekKey": self.week_key,
            "startDate": self.start_date.isoformat(),
            "blocks": [b.to_dict() for b in self.blocks],
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> WeekData:
        return WeekData(
            week_key=d["weekKey"],
            start_date=date.fromisoformat(d["startDate"]),
            blocks=[TimeBlock.from_dict(b) for b in d.get("blocks", [])],
        )


@dataclass
class Template:
    id: str
    name: str
    blocks: List[TemplateBlock] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "blocks": [b.to_dict() for b in self.blocks]}

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> Template:
        return Template(
            id=d["id"],
            name=d["name"],
            blocks=[TemplateBlock.from_dict(b) for b in d.get("blocks", [])],
        )


@dataclass
class AppData:
    projects: List[Project] = field(default_factory=list)
    weeks: List[WeekData] = field(default_factory=list)
    templates: List[Template] = field(default_factory=list)
    weekly_hour_goal: float = DEFAULT_WEEKLY_HOUR_GOAL

    def find_project(self, project_id: str) -> Optional[Project]:
        return next((p for p in self.projects if p.id == project_id), None)

    def find_week(self, week_key: str) -> Optional[WeekData]:
        return next((w for w in self.weeks if w.week_key == week_key), None)

    def find_template(self, template_id: str) -> Optional[Template]:
        return next((t for t in self.templates if t.id == template_id), None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "projects": [p.to_dict() for p in self.projects],
            "weeks": [w.to_dict() for w in self.weeks],
            "templates": [t.to_dict() for t in self.templates],
            "weeklyHourGoal": self.weekly_hour_goal,
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> AppData:
        return AppData(
            projects=[Project.from_dict(p) for p in d.get("projects", [])],
            weeks=[WeekData.from_dict(w) for w in d.get("weeks", [])],
            templates=[Template.from_dict(t) for t in d.get("templates", [])],
            weekly_hour_goal=float(d.get("weeklyHourGoal", DEFAULT_WEEKLY_HOUR_GOAL)),
        )
