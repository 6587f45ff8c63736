"""Display-width helpers, numeric clamping and small functional utilities."""

from __future__ import annotations

import os
from array import array
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Sequence

import regex
import wcwidth

_GRAPHEME = regex.compile(r"\X")
_INTEGER = regex.compile(r"[+-]?[0-9]+")

_VS16 = "\ufe0f"
_REGIONAL_FIRST = 0x1F1E6
_REGIONAL_LAST = 0x1F1FF
_UINT16_MAX = 0xFFFF


@dataclass
class Slab:
    """Preallocated scratch arrays of 16-bit and 32-bit integers."""

    i16: array = field(default_factory=lambda: array("h"))
    i32: array = field(default_factory=lambda: array("i"))

    @classmethod
    def of_size(cls, size16: int, size32: int) -> "Slab":
        return cls(i16=array("h", [0]) * size16, i32=array("i", [0]) * size32)


def graphemes(text: str) -> Iterator[str]:
    """Yield the extended grapheme clusters of ``text``."""
    for match in _GRAPHEME.finditer(text):
        yield match.group()


def _cluster_width(cluster: str) -> int:
    """Terminal column width of a single grapheme cluster."""
    if not cluster:
        return 0
    if _VS16 in cluster:
        return 2
    first = cluster[0]
    if len(cluster) > 1 and _REGIONAL_FIRST <= ord(first) <= _REGIONAL_LAST:
        return 2
    return max(wcwidth.wcwidth(first), 0)


def string_width(text: str) -> int:
    """Return the display width of ``text``; each CR and LF takes one column."""
    width = sum(_cluster_width(cluster) for cluster in graphemes(text))
    return width + text.count("\n") + text.count("\r")


def runes_width(
    runes: Sequence[str] | str, prefix_width: int, tabstop: int, limit: int
) -> tuple[int, int]:
    """Return the width of ``runes`` and the index of the first code point past ``limit``.

    The index is -1 when everything fits.
    """
    text = runes if isinstance(runes, str) else "".join(runes)
    width = 0
    idx = 0
    for cluster in graphemes(text):
        if cluster == "\t":
            w = tabstop - (prefix_width + width) % tabstop
        else:
            w = string_width(cluster)
        width += w
        if width > limit:
            return width, idx
        idx += len(cluster)
    return width, -1


def truncate(text: str, limit: int) -> tuple[str, int]:
    """Cut ``text`` to at most ``limit`` columns; return the result and its width."""
    kept: list[str] = []
    width = 0
    for cluster in graphemes(text):
        w = string_width(cluster)
        if width + w > limit:
            break
        width += w
        kept.append(cluster)
    return "".join(kept), width


def constrain(val: Any, lo: Any, hi: Any) -> Any:
    """Clamp ``val`` to the range [lo, hi]."""
    if val < lo:
        return lo
    if val > hi:
        return hi
    return val


def as_uint16(val: int) -> int:
    """Clamp an integer to the unsigned 16-bit range."""
    return constrain(val, 0, _UINT16_MAX)


def dur_within(val: Any, lo: Any, hi: Any) -> Any:
    """Clamp a duration to the range [lo, hi]."""
    return constrain(val, lo, hi)


def is_tty(file: Any) -> bool:
    """Return True if ``file`` is attached to a terminal."""
    isatty = getattr(file, "isatty", None)
    if isatty is not None:
        try:
            if isatty():
                return True
        except (OSError, ValueError):
            return False
    try:
        return os.isatty(file.fileno())
    except (AttributeError, OSError, ValueError):
        return False


def once(next_response: bool) -> Callable[[], bool]:
    """Return a function that answers ``next_response`` once and its negation after."""
    state = next_response

    def respond() -> bool:
        nonlocal state
        previous = state
        state = not next_response
        return previous

    return respond


def run_once(func: Callable[[], Any]) -> Callable[[], None]:
    """Wrap ``func`` so that only its first call has any effect."""
    first = once(True)

    def wrapper() -> None:
        if first():
            func()

    return wrapper


def repeat_to_fill(text: str, length: int, limit: int) -> str:
    """Repeat ``text`` (of display width ``length``) to fill ``limit`` columns."""
    times, rest = divmod(limit, length)
    output = text * times
    if rest > 0:
        for char in text:
            rest -= _cluster_width(char)
            if rest < 0:
                break
            output += char
            if rest == 0:
                break
    return output


def to_kebab_case(text: str) -> str:
    """Convert CamelCase to kebab-case."""
    parts = []
    for i, char in enumerate(text):
        if i > 0 and "A" <= char <= "Z":
            parts.append("-")
        parts.append(char)
    return "".join(parts).lower()


def _version_part(part: str) -> int:
    return int(part) if _INTEGER.fullmatch(part) else 0


def compare_versions(v1: str, v2: str) -> int:
    """Compare dotted version strings; return -1, 0 or 1."""
    parts1 = [_version_part(p) for p in v1.split(".")]
    parts2 = [_version_part(p) for p in v2.split(".")]
    size = max(len(parts1), len(parts2))
    parts1 += [0] * (size - len(parts1))
    parts2 += [0] * (size - len(parts2))
    for p1, p2 in zip(parts1, parts2):
        if p1 > p2:
            return 1
        if p1 < p2:
            return -1
    return 0