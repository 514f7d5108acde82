"""Shared fixtures: a manual timer backend, a recording gateway and a planner on top."""

from __future__ import annotations

import copy
from datetime import date
from typing import Callable, List, Tuple

import pytest

from weekplanner.events import ChangeFeed
from weekplanner.models import AppData
from weekplanner.scheduler import SaveScheduler
from weekplanner.state import Planner

TODAY = date(2026, 2, 18)  # Wednesday of 2026-W08


class ManualHandle:
    def __init__(self, due: int, fn: Callable[[], None]):
        self.due = due
        self.fn = fn
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualTimers:
    """Timer backend driven by advance(ms) instead of a real clock."""

    def __init__(self) -> None:
        self.now = 0
        self.handles: List[ManualHandle] = []

    def call_later(self, delay_ms: int, fn: Callable[[], None]) -> ManualHandle:
        h = ManualHandle(self.now + delay_ms, fn)
        self.handles.append(h)
        return h

    def advance(self, ms: int) -> None:
        self.now += ms
        due = [h for h in self.handles if not h.cancelled and h.due <= self.now]
        self.handles = [h for h in self.handles if h not in due and not h.cancelled]
        for h in sorted(due, key=lambda h: h.due):
            h.fn()


class RecordingGateway:
    """In-memory gateway; records each save call with a deep copy of its argument."""

    def __init__(self, initial: AppData = None):
        self.stored = initial if initial is not None else AppData()
        self.calls: List[Tuple[str, object]] = []
        self.locations: List[Tuple[str, bool]] = []
        self.fail = False

    def load(self) -> AppData:
        return copy.deepcopy(self.stored)

    def _record(self, name: str, arg: object) -> None:
        if self.fail:
            raise OSError("disk full")
        self.calls.append((name, copy.deepcopy(arg)))

    def save_all(self, data):
        self._record("save_all", data)

    def save_projects(self, projects):
        self._record("save_projects", projects)

    def save_week(self, week):
        self._record("save_week", week)

    def save_templates(self, templates):
        self._record("save_templates", templates)

    def set_data_location(self, path, copy_existing):
        self.locations.append((path, copy_existing))

    def reset_to_default_location(self, copy_existing):
        self.locations.append(("<default>", copy_existing))

    def names(self) -> List[str]:
        return [name for name, _ in self.calls]


@pytest.fixture
def timers():
    return ManualTimers()


@pytest.fixture
def gateway():
    return RecordingGateway()


@pytest.fixture
def planner(gateway, timers):
    p = Planner(gateway, SaveScheduler(timers), ChangeFeed(), today=lambda: TODAY)
    p.load()
    return p


@pytest.fixture
def changes(planner):
    seen = []
    planner.subscribe(seen.append)
    return seen
