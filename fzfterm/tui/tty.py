"""Locating and opening the controlling terminal."""

from __future__ import annotations

import os
from typing import BinaryIO

CONSOLE_DEVICE = "/dev/tty"

_DEV_PREFIXES = ("/dev/pts/", "/dev/")
_cached_ttyname: str | None = None


def ttyname() -> str:
    """Return the device path of the terminal behind stderr, or "" if none is found."""
    global _cached_ttyname
    if _cached_ttyname is not None:
        return _cached_ttyname
    try:
        rdev = os.fstat(2).st_rdev
    except OSError:
        return ""
    for prefix in _DEV_PREFIXES:
        try:
            with os.scandir(prefix) as it:
                entries = sorted(it, key=lambda entry: entry.name)
        except OSError:
            continue
        for entry in entries:
            try:
                info = entry.stat(follow_symlinks=False)
            except OSError:
                continue
            if info.st_rdev == rdev:
                _cached_ttyname = prefix + entry.name
                return _cached_ttyname
    return ""


def _file_mode(mode: int) -> str:
    access = mode & (os.O_WRONLY | os.O_RDWR)
    if access == os.O_RDWR:
        return "r+b"
    if access == os.O_WRONLY:
        return "wb"
    return "rb"


def open_tty(mode: int) -> BinaryIO:
    """Open the terminal with the given ``os.O_*`` flags as an unbuffered file.

    Falls back to the device found by :func:`ttyname`; raises OSError if
    neither can be opened.
    """
    try:
        fd = os.open(CONSOLE_DEVICE, mode)
    except OSError:
        fd = None
        name = ttyname()
        if name:
            try:
                fd = os.open(name, mode)
            except OSError:
                fd = None
        if fd is None:
            raise OSError(f"failed to open {CONSOLE_DEVICE}") from None
    return os.fdopen(fd, _file_mode(mode), buffering=0)


def tty_in() -> BinaryIO:
    """Open the terminal for reading user input."""
    return open_tty(os.O_RDONLY)


def tty_out() -> BinaryIO:
    """Open the terminal for writing."""
    return open_tty(os.O_WRONLY)