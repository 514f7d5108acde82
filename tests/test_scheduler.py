from loguru import logger

from weekplanner.models import Day, Priority
from weekplanner.scheduler import SaveScheduler


def test_same_target_is_debounced(timers):
    saver = SaveScheduler(timers, delay_ms=500)
    written = []

    saver.schedule("projects", lambda: written.append(1))
    timers.advance(400)
    saver.schedule("projects", lambda: written.append(2))
    timers.advance(400)
    assert written == []

    timers.advance(100)
    assert written == [2]
    assert saver.pending() == []


def test_targets_have_independent_timers(timers):
    saver = SaveScheduler(timers, delay_ms=500)
    written = []

    saver.schedule("projects", lambda: written.append("projects"))
    timers.advance(300)
    saver.schedule("week:2026-W08", lambda: written.append("week"))
    timers.advance(200)
    assert written == ["projects"]
    assert saver.pending() == ["week:2026-W08"]

    timers.advance(300)
    assert written == ["projects", "week"]


def test_flush_runs_pending_writes_now(timers):
    saver = SaveScheduler(timers)
    written = []
    saver.schedule("a", lambda: written.append("a"))
    saver.schedule("b", lambda: written.append("b"))

    saver.flush()
    assert sorted(written) == ["a", "b"]

    timers.advance(1000)
    assert sorted(written) == ["a", "b"]


def test_cancel_all_drops_pending_writes(timers):
    saver = SaveScheduler(timers)
    written = []
    saver.schedule("a", lambda: written.append("a"))
    saver.cancel_all()
    timers.advance(1000)
    assert written == []


def test_failed_write_is_logged_not_raised(timers):
    saver = SaveScheduler(timers)
    messages = []
    handler = logger.add(messages.append, level="ERROR")
    try:
        def boom():
            raise OSError("disk full")

        saver.schedule("projects", boom)
        timers.advance(500)
    finally:
        logger.remove(handler)

    assert len(messages) == 1
    assert "Failed to save projects" in messages[0]


def test_write_failure_keeps_in_memory_state(planner, gateway, timers):
    gateway.fail = True
    a = planner.add_project("A", 10, Priority.HIGH)
    planner.add_block(a.id, Day.MONDAY, 0)

    timers.advance(500)

    assert planner.get_project(a.id) is a
    assert len(planner.current_week().blocks) == 1
    assert gateway.calls == []
