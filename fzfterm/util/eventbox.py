"""Condition-variable based mailbox of typed events."""

from __future__ import annotations

import threading
from typing import Any, Callable, Hashable


class EventBox:
    """Holds the latest value per event type and wakes waiters on updates."""

    def __init__(self) -> None:
        self._events: dict[Hashable, Any] = {}
        self._cond = threading.Condition(threading.Lock())
        self._ignore: set[Hashable] = set()

    def wait(self, callback: Callable[[dict], Any]) -> None:
        """Block until an event is present, then run ``callback`` on the event dict.

        The callback runs under the lock and may clear the dict.
        """
        with self._cond:
            if not self._events:
                self._cond.wait()
            callback(self._events)

    def set(self, event: Hashable, value: Any) -> None:
        """Record ``value`` for ``event`` and wake waiters unless it is ignored."""
        with self._cond:
            self._events[event] = value
            if event not in self._ignore:
                self._cond.notify_all()

    def peek(self, event: Hashable) -> bool:
        with self._cond:
            return event in self._events

    def watch(self, *args: Hashable) -> None:
        """Stop ignoring the given events."""
        with self._cond:
            self._ignore.difference_update(args)

    def unwatch(self, *args: Hashable) -> None:
        """Ignore the given events: setting them no longer wakes waiters."""
        with self._cond:
            self._ignore.update(args)

    def wait_for(self, event: Hashable) -> None:
        """Block until ``event`` is present."""
        found = False

        def check(events: dict) -> None:
            nonlocal found
            found = event in events

        while not found:
            self.wait(check)