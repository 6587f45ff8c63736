"""Decoding of raw terminal input bytes into key and mouse events."""

from __future__ import annotations

import re
import time
from typing import Callable

from .events import (
    DOUBLE_CLICK_DURATION,
    Event,
    EventType,
    MouseEvent,
    alt_key,
    ctrl_alt_key,
    key,
)

ESC_BYTE = 0x1B
DEL_BYTE = 0x7F
_TILDE = ord("~")
_REPLACEMENT = "\ufffd"

_OFFSET_REPORT = re.compile(rb"\x1b\[[0-9]+;[0-9]+R")
_INTEGER = re.compile(r"[+-]?[0-9]+")

_CONTROL = {
    DEL_BYTE: EventType.BACKSPACE,
    0: EventType.CTRL_SPACE,
    28: EventType.CTRL_BACK_SLASH,
    29: EventType.CTRL_RIGHT_BRACKET,
    30: EventType.CTRL_CARET,
    31: EventType.CTRL_SLASH,
}

# Final byte of an arrow sequence: (plain, with alt)
_ARROWS = {
    "A": (EventType.UP, EventType.ALT_UP),
    "B": (EventType.DOWN, EventType.ALT_DOWN),
    "C": (EventType.RIGHT, EventType.ALT_RIGHT),
    "D": (EventType.LEFT, EventType.ALT_LEFT),
}

_SHORT = {
    "Z": EventType.SHIFT_TAB,
    "H": EventType.HOME,
    "F": EventType.END,
    "P": EventType.F1,
    "Q": EventType.F2,
    "R": EventType.F3,
    "S": EventType.F4,
}

_TILDE_KEYS = {
    "4": EventType.END,
    "5": EventType.PAGE_UP,
    "6": EventType.PAGE_DOWN,
    "7": EventType.HOME,
    "8": EventType.END,
}

_F9_TO_F12 = {
    "0": EventType.F9,
    "1": EventType.F10,
    "3": EventType.F11,
    "4": EventType.F12,
}

_F1_TO_F8 = {
    "1": EventType.F1,
    "2": EventType.F2,
    "3": EventType.F3,
    "4": EventType.F4,
    "5": EventType.F5,
    "7": EventType.F6,
    "8": EventType.F7,
    "9": EventType.F8,
}

# Final byte of a modified arrow sequence: (shift, alt, alt-shift)
_MODIFIED_ARROWS = {
    "A": (EventType.SHIFT_UP, EventType.ALT_UP, EventType.ALT_SHIFT_UP),
    "B": (EventType.SHIFT_DOWN, EventType.ALT_DOWN, EventType.ALT_SHIFT_DOWN),
    "C": (EventType.SHIFT_RIGHT, EventType.ALT_RIGHT, EventType.ALT_SHIFT_RIGHT),
    "D": (EventType.SHIFT_LEFT, EventType.ALT_LEFT, EventType.ALT_SHIFT_LEFT),
}

Decoded = tuple["Event | None", int]


def _decode_rune(data: bytes) -> tuple[str, int]:
    """Decode the first UTF-8 character; invalid input gives U+FFFD of size 1."""
    first = data[0]
    if first < 0x80:
        return chr(first), 1
    if 0xC0 <= first < 0xE0:
        length = 2
    elif 0xE0 <= first < 0xF0:
        length = 3
    elif 0xF0 <= first < 0xF8:
        length = 4
    else:
        return _REPLACEMENT, 1
    try:
        char = data[:length].decode("utf-8")
    except UnicodeDecodeError:
        return _REPLACEMENT, 1
    if len(char) != 1:
        return _REPLACEMENT, 1
    return char, length


def _atoi(text: str, default: int) -> int:
    return int(text) if _INTEGER.fullmatch(text) else default


class KeyDecoder:
    """Turns input bytes into events.

    Each decoding method returns the event and the number of bytes it used.
    An event of ``None`` means bytes were consumed without producing an
    event (a bracketed-paste marker); the caller decodes the rest again.
    An ``INVALID`` event from an escape sequence may mean the sequence is
    incomplete, so the caller may read more input and try once more.
    """

    def __init__(
        self,
        mouse: bool = False,
        yoffset: int = 0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.mouse = mouse
        self.yoffset = yoffset
        self._clock = clock
        self._prev_down_time = float("-inf")
        self._clicks: list[tuple[int, int]] = []

    def decode(self, buffer: bytes) -> Decoded:
        """Decode one event from the start of ``buffer``."""
        if not buffer:
            return Event(EventType.FATAL), 0
        first = buffer[0]
        if first in _CONTROL:
            return Event(_CONTROL[first]), 1
        if first == ESC_BYTE:
            return self.decode_escape(buffer)
        if first <= EventType.CTRL_Z:
            return Event(EventType(first)), 1
        char, size = _decode_rune(buffer)
        if char == _REPLACEMENT:
            return Event(EventType.ESC), 1
        return key(char), size

    def decode_escape(self, buffer: bytes) -> Decoded:
        """Decode an event from ``buffer``, which starts with ESC."""
        if len(buffer) < 2:
            return Event(EventType.ESC), 1
        report = _OFFSET_REPORT.match(buffer)
        if report:
            return Event(EventType.INVALID), report.end()
        if 1 <= buffer[1] <= EventType.CTRL_Z:
            return ctrl_alt_key(chr(buffer[1] + ord("a") - 1)), 2

        shift = 0
        alt = False
        if len(buffer) > 2 and buffer[1] == ESC_BYTE:
            buffer = buffer[1:]
            shift = 1
            alt = True

        decoded = self._escape_body(buffer, alt)
        if decoded is None:
            char, size = _decode_rune(buffer[1:])
            return alt_key(char), shift + 1 + size
        event, size = decoded
        return event, shift + size

    def _escape_body(self, buffer: bytes, alt: bool) -> Decoded | None:
        """Decode a known sequence; ``None`` means it is read as alt plus a character."""
        second = buffer[1]
        if second == ESC_BYTE:
            return Event(EventType.ESC), 2
        if second == DEL_BYTE:
            return Event(EventType.ALT_BACKSPACE), 2
        if second not in (ord("["), ord("O")):
            return None
        if len(buffer) < 3:
            return Event(EventType.INVALID), 2

        third = chr(buffer[2])
        if third in _ARROWS:
            plain, alted = _ARROWS[third]
            return Event(alted if alt else plain), 3
        if third in _SHORT:
            return Event(_SHORT[third]), 3
        if third == "<":
            return self.decode_mouse(buffer, 3)
        if third not in "12345678":
            return None
        if len(buffer) < 4:
            return Event(EventType.INVALID), 3

        fourth = chr(buffer[3])
        if third == "2":
            return self._sequence_2(buffer, fourth)
        if third == "3":
            if fourth == "~":
                return Event(EventType.DELETE), 4
            if len(buffer) == 6 and buffer[5] == _TILDE:
                fifth = chr(buffer[4])
                if fifth == "5":
                    return Event(EventType.CTRL_DELETE), 6
                if fifth == "2":
                    return Event(EventType.SHIFT_DELETE), 6
                return Event(EventType.INVALID), 6
            return Event(EventType.INVALID), 4
        if third in _TILDE_KEYS:
            return Event(_TILDE_KEYS[third]), 4
        return self._sequence_1(buffer, fourth)

    def _sequence_2(self, buffer: bytes, fourth: str) -> Decoded:
        if fourth == "~":
            return Event(EventType.INSERT), 4
        size = 4
        if len(buffer) > 4 and buffer[4] == _TILDE:
            size = 5
            if fourth in _F9_TO_F12:
                return Event(_F9_TO_F12[fourth]), 5
        if (
            len(buffer) > 5
            and fourth == "0"
            and buffer[4] in (ord("0"), ord("1"))
            and buffer[5] == _TILDE
        ):
            # Bracketed paste start or end marker: drop it
            return None, 6
        return Event(EventType.INVALID), size

    def _sequence_1(self, buffer: bytes, fourth: str) -> Decoded | None:
        if fourth == "~":
            return Event(EventType.HOME), 4
        if fourth in _F1_TO_F8:
            if len(buffer) == 5 and buffer[4] == _TILDE:
                return Event(_F1_TO_F8[fourth]), 5
            return Event(EventType.INVALID), 4
        if fourth != ";":
            return None
        if len(buffer) < 6:
            return Event(EventType.INVALID), 4

        modifier = chr(buffer[4])
        if modifier not in "12345":
            return None
        alt = modifier == "3"
        char = chr(buffer[5])
        alt_shift = False
        size = 6
        if modifier == "1" and char == "0":
            alt_shift = True
            if len(buffer) < 7:
                return Event(EventType.INVALID), 6
            size = 7
            char = chr(buffer[6])
        elif modifier == "4":
            alt_shift = True

        if char not in _MODIFIED_ARROWS:
            return None
        shifted, alted, alt_shifted = _MODIFIED_ARROWS[char]
        if alt:
            return Event(alted), size
        if alt_shift:
            return Event(alt_shifted), size
        return Event(shifted), size

    def decode_mouse(self, buffer: bytes, start: int) -> Decoded:
        """Decode an SGR mouse report whose parameters begin at ``start``."""
        invalid = (Event(EventType.INVALID), start)
        if len(buffer) < 9 or not self.mouse:
            return invalid

        rest = buffer[start:]
        end = min((i for i in (rest.find(b"m"), rest.find(b"M")) if i >= 0), default=-1)
        if end == -1:
            return invalid

        elems = rest[:end].decode("latin-1").split(";", 2)
        if len(elems) != 3:
            return invalid

        button = _atoi(elems[0], -1)
        x = _atoi(elems[1], -1) - 1
        y = _atoi(elems[2], -1) - 1 - self.yoffset
        if button < 0 or x < 0:
            return invalid
        size = start + end + 1

        down = rest[end] == ord("M")

        scroll = 0
        if button >= 64:
            button -= 64
            scroll = -1 if button & 0b1 == 1 else 1

        left = button & 0b11 == 0
        mod = button & 0b1100 > 0
        drag = button & 0b100000 > 0

        if scroll != 0:
            return Event(EventType.MOUSE, "", MouseEvent(y, x, scroll, False, False, False, mod)), size

        double = False
        if down and not drag:
            now = self._clock()
            if not left:
                self._clicks = []
            elif now - self._prev_down_time < DOUBLE_CLICK_DURATION:
                self._clicks.append((x, y))
            else:
                self._clicks = [(x, y)]
            self._prev_down_time = now
        elif (
            len(self._clicks) > 1
            and self._clicks[-2] == self._clicks[-1]
            and self._clock() - self._prev_down_time < DOUBLE_CLICK_DURATION
        ):
            double = True
            self._clicks = []
        return Event(EventType.MOUSE, "", MouseEvent(y, x, 0, left, down, double, mod)), size