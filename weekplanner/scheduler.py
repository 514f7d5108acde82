from __future__ import annotations
from typing import Callable, Dict, List, Optional, Protocol

from loguru import logger
from PySide6.QtCore import QObject, QTimer

SAVE_DEBOUNCE_MS = 500


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class TimerBackend(Protocol):
    def call_later(self, delay_ms: int, fn: Callable[[], None]) -> TimerHandle: ...


class _QtHandle:
    def __init__(self, timer: QTimer):
        self.timer = timer

    def cancel(self) -> None:
        self.timer.stop()
        self.timer.deleteLater()


class QtTimers(QObject):
    """Single-shot QTimers on the running Qt event loop."""

    def call_later(self, delay_ms: int, fn: Callable[[], None]) -> _QtHandle:
        timer = QTimer(self)
        timer.setSingleShot(True)
        timer.setInterval(delay_ms)
        timer.timeout.connect(fn)
        timer.timeout.connect(timer.deleteLater)
        timer.start()
        return _QtHandle(timer)


class SaveScheduler:
    """
    Debounced writes, one pending timer per target.

    A second schedule() for the same target within the quiet window cancels the
    first and restarts the timer; only the latest write runs. Targets are
    independent of each other. A failing write is logged and dropped.
    """

    def __init__(self, timers: TimerBackend, delay_ms: int = SAVE_DEBOUNCE_MS):
        self.timers = timers
        self.delay_ms = delay_ms
        self._pending: Dict[str, TimerHandle] = {}
        self._writes: Dict[str, Callable[[], None]] = {}

    def schedule(self, target: str, write: Callable[[], None]) -> None:
        handle = self._pending.pop(target, None)
        if handle is not None:
            handle.cancel()
        self._writes[target] = write
        self._pending[target] = self.timers.call_later(self.delay_ms, lambda: self._fire(target))

    def pending(self) -> List[str]:
        return list(self._pending)

    def flush(self) -> None:
        for target in list(self._pending):
            handle = self._pending.get(target)
            if handle is not None:
                handle.cancel()
            self._fire(target)

    def cancel_all(self) -> None:
        for handle in self._pending.values():
            handle.cancel()
        self._pending.clear()
        self._writes.clear()

    def _fire(self, target: str) -> None:
        self._pending.pop(target, None)
        write: Optional[Callable[[], None]] = self._writes.pop(target, None)
        if write is None:
            return
        try:
            write()
            logger.debug("Saved {}", target)
        except Exception:
            logger.exception("Failed to save {}", target)
