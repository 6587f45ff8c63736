"""Functions to run once at program termination, newest first."""

from __future__ import annotations

import threading
from typing import Callable

_exit_funcs: list[Callable[[], None]] = []


def at_exit(func: Callable[[], object]) -> None:
    """Register ``func`` to be called by :func:`run_at_exit_funcs`."""
    if func is None or not callable(func):
        raise TypeError("at_exit requires a callable")
    lock = threading.Lock()
    done = False

    def call_once() -> None:
        nonlocal done
        with lock:
            if done:
                return
            done = True
        func()

    _exit_funcs.append(call_once)


def run_at_exit_funcs() -> None:
    """Call the registered functions in reverse registration order, then forget them."""
    for func in reversed(list(_exit_funcs)):
        func()
    _exit_funcs.clear()