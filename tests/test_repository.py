import json
import shutil
from datetime import date

import pytest

from weekplanner.db import DB_NAME, LOCATION_FILE
from weekplanner.events import Change
from weekplanner.models import (
    AppData, ChargeCodeSplit, Day, Priority, Project, Template, TemplateBlock, TimeBlock, WeekData,
)
from weekplanner.repository import Repository, StorageLocationError


def _sample() -> AppData:
    return AppData(
        projects=[
            Project("p2", "Second", 5, Priority.LOW, 1),
            Project("p1", "First", 12.5, Priority.HIGH, 0, [ChargeCodeSplit("X-1", 75.0), ChargeCodeSplit("X-2", 25.0)]),
        ],
        weeks=[
            WeekData("2026-W08", date(2026, 2, 16), [
                TimeBlock("b2", "p1", Day.FRIDAY, 23),
                TimeBlock("b1", "p2", Day.MONDAY, 0),
            ]),
            WeekData("2026-W07", date(2026, 2, 9), []),
        ],
        templates=[Template("t1", "Usual", [TemplateBlock("p1", Day.TUESDAY, 4)])],
        weekly_hour_goal=32.5,
    )


@pytest.fixture
def repo(tmp_path):
    r = Repository(tmp_path / "default")
    yield r
    r.close()


def test_fresh_store_loads_defaults(repo):
    data = repo.load()
    assert data.projects == [] and data.weeks == [] and data.templates == []
    assert data.weekly_hour_goal == 40


def test_save_all_round_trips_with_order(repo, tmp_path):
    repo.save_all(_sample())
    repo.close()

    again = Repository(tmp_path / "default")
    try:
        assert again.load().to_dict() == _sample().to_dict()
    finally:
        again.close()


def test_save_week_upserts_one_week(repo):
    repo.save_all(_sample())
    repo.save_week(WeekData("2026-W07", date(2026, 2, 9), [TimeBlock("b9", "p1", Day.MONDAY, 3)]))
    repo.save_week(WeekData("2026-W09", date(2026, 2, 23), []))

    weeks = repo.load().weeks
    assert [w.week_key for w in weeks] == ["2026-W08", "2026-W07", "2026-W09"]
    assert [b.id for b in weeks[1].blocks] == ["b9"]
    assert [b.id for b in weeks[0].blocks] == ["b2", "b1"]


def test_save_projects_and_templates_replace_collections(repo):
    repo.save_all(_sample())
    repo.save_projects([Project("p3", "Only", 1, Priority.MEDIUM, 2)])
    repo.save_templates([])

    data = repo.load()
    assert [p.id for p in data.projects] == ["p3"]
    assert data.templates == []
    # weeks are untouched by collection saves
    assert len(data.weeks) == 2


def test_unreadable_rows_are_skipped(repo):
    repo.save_all(_sample())
    repo.conn.execute("UPDATE projects SET priority='Urgent' WHERE id='p2'")
    repo.conn.commit()

    assert [p.id for p in repo.load().projects] == ["p1"]


def test_set_data_location_copies_and_persists(repo, tmp_path):
    repo.save_all(_sample())
    target = tmp_path / "elsewhere"
    target.mkdir()

    repo.set_data_location(str(target), copy_existing=True)

    assert repo.get_data_location() == str(target)
    assert (target / DB_NAME).exists()
    assert repo.load().to_dict() == _sample().to_dict()
    saved = json.loads((tmp_path / "default" / LOCATION_FILE).read_text())
    assert saved == {"customDataPath": str(target)}

    # a new process picks the custom location up
    again = Repository(tmp_path / "default")
    try:
        assert again.get_data_location() == str(target)
    finally:
        again.close()


def test_set_data_location_without_copy_starts_empty(repo, tmp_path):
    repo.save_all(_sample())
    target = tmp_path / "fresh"
    target.mkdir()

    repo.set_data_location(str(target), copy_existing=False)
    assert repo.load().projects == []


def test_set_data_location_rejects_bad_paths(repo, tmp_path):
    with pytest.raises(StorageLocationError):
        repo.set_data_location(str(tmp_path / "missing"), copy_existing=True)

    a_file = tmp_path / "file.txt"
    a_file.write_text("x")
    with pytest.raises(StorageLocationError):
        repo.set_data_location(str(a_file), copy_existing=True)

    assert repo.get_data_location() == str(tmp_path / "default")


def test_reset_to_default_location(repo, tmp_path):
    target = tmp_path / "custom"
    target.mkdir()
    repo.set_data_location(str(target), copy_existing=False)
    repo.save_projects([Project("p1", "Custom", 3, Priority.HIGH, 0)])

    repo.reset_to_default_location(copy_existing=True)

    assert repo.get_data_location() == str(tmp_path / "default")
    # the default already had a database, so nothing was copied over it
    assert repo.load().projects == []
    assert json.loads((tmp_path / "default" / LOCATION_FILE).read_text()) == {}


def test_missing_custom_location_falls_back_to_default(tmp_path):
    default = tmp_path / "default"
    default.mkdir()
    gone = tmp_path / "gone"
    gone.mkdir()
    (default / LOCATION_FILE).write_text(json.dumps({"customDataPath": str(gone)}))
    shutil.rmtree(gone)

    r = Repository(default)
    try:
        assert r.get_data_location() == str(default)
    finally:
        r.close()


def test_planner_relocate_flushes_then_reloads(planner, gateway, timers):
    planner.add_project("A", 10, Priority.HIGH)
    gateway.stored = AppData(projects=[Project("x", "Elsewhere", 2, Priority.LOW, 0)])
    seen = []
    planner.subscribe(seen.append)

    planner.relocate("/somewhere", copy_existing=False)

    assert gateway.names() == ["save_projects"]
    assert gateway.locations == [("/somewhere", False)]
    assert [p.name for p in planner.projects] == ["Elsewhere"]
    assert seen == [Change.RELOAD]

    planner.reset_location(copy_existing=True)
    assert gateway.locations[-1] == ("<default>", True)
