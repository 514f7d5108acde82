from __future__ import annotations
from enum import Enum
from typing import Callable, List, Optional


class Change(str, Enum):
    PROJECTS = "projects"
    BLOCKS = "blocks"
    TEMPLATES = "templates"
    GOAL = "goal"
    NAVIGATION = "navigation"
    RELOAD = "reload"


Listener = Callable[[Change], None]


class Subscription:
    def __init__(self, feed: ChangeFeed, listener: Listener):
        self._feed: Optional[ChangeFeed] = feed
        self.listener = listener

    @property
    def active(self) -> bool:
        return self._feed is not None

    def cancel(self) -> None:
        if self._feed is None:
            return
        self._feed._remove(self)
        self._feed = None


class ChangeFeed:
    """
    Synchronous fan-out to subscribers, in subscription order.

    Single-threaded: publish() runs every listener before returning. Each pass
    delivers to the subscribers present when it started, so a listener that
    cancels (itself or another) mid-pass does not change that pass.
    """

    def __init__(self) -> None:
        self._subs: List[Subscription] = []

    def subscribe(self, listener: Listener) -> Subscription:
        sub = Subscription(self, listener)
        self._subs.append(sub)
        return sub

    def publish(self, change: Change) -> None:
        for sub in list(self._subs):
            sub.listener(change)

    def __len__(self) -> int:
        return len(self._subs)

    def _remove(self, sub: Subscription) -> None:
        self._subs = [s for s in self._subs if s is not sub]
