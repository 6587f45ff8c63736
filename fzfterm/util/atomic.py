"""Thread-safe boolean flag."""

from __future__ import annotations

import threading


class AtomicBool:
    """A boolean whose reads and writes are synchronised."""

    __slots__ = ("_value", "_lock")

    def __init__(self, value: bool = False) -> None:
        self._value = bool(value)
        self._lock = threading.Lock()

    def get(self) -> bool:
        with self._lock:
            return self._value

    def set(self, value: bool) -> bool:
        """Store ``value`` and return it."""
        with self._lock:
            self._value = bool(value)
            return self._value

    def __bool__(self) -> bool:
        return self.get()