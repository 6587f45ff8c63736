"""Inline terminal renderer driven by plain ANSI escape sequences."""

from __future__ import annotations

import io
import os
import re
import struct
import subprocess
import sys
import time
from typing import Any, BinaryIO, Callable, Iterable, NamedTuple

try:
    import fcntl
    import termios
except ImportError:  # not available on this platform
    fcntl = None  # type: ignore[assignment]
    termios = None  # type: ignore[assignment]

from ..util.atomic import AtomicBool
from ..util.helpers import graphemes
from .events import Event, EventType
from .keys import ESC_BYTE, KeyDecoder
from .theme import (
    COL_BLACK,
    COL_DEFAULT,
    COL_WHITE,
    Attr,
    BorderShape,
    BorderStyle,
    ColorPair,
    ColorTheme,
    FillReturn,
    Palette,
    TermSize,
    dark256,
    default16,
    init_theme,
    is_24bit,
    rune_width,
)
from .tty import CONSOLE_DEVICE, tty_out

DEFAULT_WIDTH = 80
DEFAULT_HEIGHT = 24

DEFAULT_ESC_DELAY = 100
ESC_POLL_INTERVAL = 5
OFFSET_POLL_TRIES = 10
MAX_INPUT_BUFFER = 1024 * 1024

CR = "\x1b[2m␍"
LF = "\x1b[2m␊"

_OFFSET = re.compile(rb"(.*)\x1b\[([0-9]+);([0-9]+)R")
_INTEGER = re.compile(r"[+-]?[0-9]+")

_BOX_SHAPES = frozenset(
    {
        BorderShape.ROUNDED,
        BorderShape.SHARP,
        BorderShape.BOLD,
        BorderShape.BLOCK,
        BorderShape.THIN_BLOCK,
        BorderShape.DOUBLE,
    }
)

_ATTR_CODES = (
    (Attr.BOLD, "1"),
    (Attr.DIM, "2"),
    (Attr.ITALIC, "3"),
    (Attr.UNDERLINE, "4"),
    (Attr.BLINK, "5"),
    (Attr.REVERSE, "7"),
    (Attr.STRIKE_THROUGH, "9"),
)


def _atoi(text: str, default: int) -> int:
    return int(text) if _INTEGER.fullmatch(text) else default


def _get_env(name: str, default: int) -> int:
    value = os.environ.get(name, "")
    if not value:
        return default
    return _atoi(value, default)


class WrappedLine(NamedTuple):
    """One display line of wrapped text and its width in columns."""

    text: str
    display_width: int


def wrap_line(text: str, prefix_length: int, limit: int, tabstop: int) -> list[WrappedLine]:
    """Split ``text`` into lines of at most ``limit`` columns.

    The first line starts after ``prefix_length`` columns; tabs are expanded.
    """
    lines: list[WrappedLine] = []
    width = 0
    line = ""
    for cluster in graphemes(text):
        if cluster == "\t":
            w = tabstop - (prefix_length + width) % tabstop
            cluster = " " * w
        elif cluster[0] == "\r":
            w = 1
        else:
            w = rune_width(cluster)
        width += w
        if prefix_length + width <= limit:
            line += cluster
        else:
            lines.append(WrappedLine(line, width - w))
            line = cluster
            prefix_length = 0
            width = w
    lines.append(WrappedLine(line, width))
    return lines


def attr_codes(attr: int) -> list[str]:
    """SGR parameters for the text attributes in ``attr``."""
    if attr & Attr.CLEAR:
        return []
    return [code for flag, code in _ATTR_CODES if attr & flag]


def color_codes(fg: int, bg: int) -> list[str]:
    """SGR parameters selecting foreground ``fg`` and background ``bg``."""
    codes: list[str] = []
    for color, offset in ((fg, 0), (bg, 10)):
        if color == COL_DEFAULT:
            continue
        if is_24bit(color):
            r = (color >> 16) & 0xFF
            g = (color >> 8) & 0xFF
            b = color & 0xFF
            codes.append(f"{38 + offset};2;{r};{g};{b}")
        elif COL_BLACK <= color <= COL_WHITE:
            codes.append(str(color + 30 + offset))
        elif COL_WHITE < color < 16:
            codes.append(str(color + 90 + offset - 8))
        elif 16 <= color < 256:
            codes.append(f"{38 + offset};5;{color}")
    return codes


def cleanse(text: str) -> str:
    """Remove escape characters so text cannot inject control sequences."""
    return text.replace("\x1b", "")


def _make_raw(fd: int) -> list:
    """Put the terminal in raw mode; return the previous attributes."""
    if termios is None:
        raise OSError("terminal control is not supported on this platform")
    try:
        old = termios.tcgetattr(fd)
        mode = termios.tcgetattr(fd)
        mode[0] &= ~(
            termios.IGNBRK
            | termios.BRKINT
            | termios.PARMRK
            | termios.ISTRIP
            | termios.INLCR
            | termios.IGNCR
            | termios.ICRNL
            | termios.IXON
        )
        mode[1] &= ~termios.OPOST
        mode[3] &= ~(termios.ECHO | termios.ECHONL | termios.ICANON | termios.ISIG | termios.IEXTEN)
        mode[2] &= ~(termios.CSIZE | termios.PARENB)
        mode[2] |= termios.CS8
        mode[6][termios.VMIN] = 1
        mode[6][termios.VTIME] = 0
        termios.tcsetattr(fd, termios.TCSANOW, mode)
    except termios.error as err:
        raise OSError(str(err)) from None
    return old


class LightRenderer:
    """Draws the interface below the cursor (or on the alternate screen)."""

    def __init__(
        self,
        ttyin: BinaryIO,
        theme: ColorTheme,
        force_black: bool,
        mouse: bool,
        tabstop: int,
        clear_on_exit: bool,
        fullscreen: bool,
        max_height_func: Callable[[int], int],
        *,
        ttyout: Any = None,
    ) -> None:
        if ttyout is None:
            try:
                ttyout = tty_out()
            except OSError:
                ttyout = sys.stderr
        self.closed = AtomicBool(False)
        self.theme = theme
        self.palette: Palette | None = None
        self.force_black = force_black
        self.clear_on_exit = clear_on_exit
        self.tabstop = tabstop
        self.fullscreen = fullscreen
        self.esc_delay = DEFAULT_ESC_DELAY
        self._decoder = KeyDecoder(mouse=mouse, yoffset=0)
        self._ttyin = ttyin
        self._ttyout = ttyout
        self._buffer = bytearray()
        self._orig_state: list | None = None
        self._width = 0
        self._height = 0
        self._up_one_line = False
        self._queued: list[str] = []
        self._y = 0
        self._x = 0
        self._max_height_func = max_height_func

    @property
    def mouse(self) -> bool:
        return self._decoder.mouse

    @mouse.setter
    def mouse(self, value: bool) -> None:
        self._decoder.mouse = value

    # Output

    def _queue(self, text: str) -> None:
        self._queued.append(text)

    def pass_through(self, text: str) -> None:
        """Send ``text`` to the terminal with the cursor position saved around it."""
        self._queue("\x1b7" + text + "\x1b8")

    def _stderr(self, text: str) -> None:
        self._stderr_internal(text, True, "")

    def _stderr_internal(self, text: str, allow_nlcr: bool, reset_code: str) -> None:
        out = []
        for char in text:
            if char in "\r\n":
                if allow_nlcr:
                    out.append(char)
                else:
                    out.append((CR if char == "\r" else LF) + reset_code)
            elif (ord(char) >= 32 or char == "\x1b") and char != "\ufffd":
                out.append(char)
        self._queue("".join(out))

    def _csi(self, code: str) -> str:
        full = "\x1b[" + code
        self._stderr(full)
        return full

    def _write(self, text: str) -> None:
        out = self._ttyout
        if isinstance(out, io.TextIOBase):
            out.write(text)
        else:
            out.write(text.encode("utf-8", errors="replace"))
        out.flush()

    def _flush(self) -> None:
        if self._queued:
            body = "".join(self._queued)
            self._queued.clear()
            self._write("\x1b[?7l\x1b[?25l" + body + "\x1b[?25h\x1b[?7h")

    # Terminal state

    def _fd(self) -> int:
        return self._ttyin.fileno()

    def _init_platform(self) -> None:
        self._orig_state = _make_raw(self._fd())

    def _close_platform(self) -> None:
        if self._ttyout is not sys.stderr:
            self._ttyout.close()

    def _setup_terminal(self) -> None:
        try:
            _make_raw(self._fd())
        except OSError:
            pass

    def _restore_terminal(self) -> None:
        if termios is None or self._orig_state is None:
            return
        try:
            termios.tcsetattr(self._fd(), termios.TCSANOW, self._orig_state)
        except (termios.error, OSError, ValueError):
            pass

    def _update_terminal_size(self) -> None:
        try:
            size = os.get_terminal_size(self._fd())
        except (OSError, ValueError):
            self._width = _get_env("COLUMNS", DEFAULT_WIDTH)
            self._height = self._max_height_func(_get_env("LINES", DEFAULT_HEIGHT))
        else:
            self._width = size.columns
            self._height = self._max_height_func(size.lines)

    def _default_theme(self) -> ColorTheme:
        if "256" in os.environ.get("TERM", ""):
            return dark256()
        try:
            result = subprocess.run(["tput", "colors"], capture_output=True, text=True, check=True)
        except (OSError, subprocess.CalledProcessError):
            return default16()
        if _atoi(result.stdout.strip(), 16) > 16:
            return dark256()
        return default16()

    # Input

    def _getch(self, nonblock: bool) -> int | None:
        fd = self._fd()
        try:
            os.set_blocking(fd, not nonblock)
            data = os.read(fd, 1)
        except OSError:
            return None
        if not data:
            return None
        return data[0]

    def _read_bytes(self, buffer: bytearray, nonblock: bool) -> bytearray:
        c = self._getch(nonblock)
        if c is None:
            if not nonblock:
                self.close()
                raise OSError("failed to read " + CONSOLE_DEVICE)
            c = 0

        retries = self.esc_delay // ESC_POLL_INTERVAL if c == ESC_BYTE or nonblock else 0
        buffer.append(c)
        previous = c
        while True:
            c = self._getch(True)
            if c is None:
                if retries > 0:
                    retries -= 1
                    time.sleep(ESC_POLL_INTERVAL / 1000)
                    continue
                break
            if c == ESC_BYTE and previous != c:
                retries = self.esc_delay // ESC_POLL_INTERVAL
            else:
                retries = 0
            buffer.append(c)
            previous = c
            if len(buffer) > MAX_INPUT_BUFFER:
                self.close()
                raise OSError(f"input buffer overflow ({len(buffer)})")
        return buffer

    def _find_offset(self) -> tuple[int, int]:
        self._csi("6n")
        self._flush()
        data = bytearray()
        for tries in range(OFFSET_POLL_TRIES):
            try:
                data = self._read_bytes(data, tries > 0)
            except OSError:
                return -1, -1
            found = _OFFSET.search(bytes(data))
            if found:
                self._buffer.extend(found.group(1))
                return (
                    _atoi(found.group(2).decode(), 0) - 1,
                    _atoi(found.group(3).decode(), 0) - 1,
                )
        return -1, -1

    def get_char(self) -> Event:
        """Read and return the next input event."""
        if not self._buffer:
            try:
                self._buffer = self._read_bytes(bytearray(), False)
            except OSError:
                self._buffer = bytearray()
                return Event(EventType.FATAL)
        if not self._buffer:
            return Event(EventType.FATAL)

        event, size = self._decoder.decode(bytes(self._buffer))
        if self._buffer[0] == ESC_BYTE and event is not None and event.type is EventType.INVALID:
            # The sequence may be incomplete: read more and try once again
            try:
                self._buffer = self._read_bytes(self._buffer, False)
            except OSError:
                self._buffer = bytearray()
                return Event(EventType.FATAL)
            event, size = self._decoder.decode(bytes(self._buffer))
        del self._buffer[:size]
        if event is None:
            return self.get_char()
        return event

    # Lifecycle

    def init(self) -> None:
        """Switch the terminal to raw mode and make room for the interface."""
        self.esc_delay = _atoi(os.environ.get("ESCDELAY", ""), DEFAULT_ESC_DELAY)
        self._init_platform()
        self._update_terminal_size()
        self.palette = init_theme(self.theme, self._default_theme(), self.force_black)

        if self.fullscreen:
            self._smcup()
        else:
            # Without clearing on exit we expect to be relaunched repeatedly,
            # so the lower part of the screen is left alone.
            if self.clear_on_exit:
                self._csi("J")
            y, x = self._find_offset()
            self.mouse = self.mouse and y >= 0
            if x > 0 and self.clear_on_exit:
                self._up_one_line = True
                self._make_space()
            for _ in range(1, self.max_y()):
                self._make_space()

        self._enable_mouse()
        self._csi(f"{self.max_y() - 1}A")
        self._csi("G")
        self._csi("K")
        if not self.clear_on_exit and not self.fullscreen:
            self._csi("s")
        if not self.fullscreen and self.mouse:
            self._decoder.yoffset, _ = self._find_offset()

    def resize(self, max_height_func: Callable[[int], int]) -> None:
        self._max_height_func = max_height_func

    def _make_space(self) -> None:
        self._stderr("\n")
        self._csi("G")

    def _move(self, y: int, x: int) -> None:
        if self._y < y:
            self._csi(f"{y - self._y}B")
        elif self._y > y:
            self._csi(f"{self._y - y}A")
        self._stderr("\r")
        if x > 0:
            self._csi(f"{x}C")
        self._y = y
        self._x = x

    def _origin(self) -> None:
        self._move(0, 0)

    def _smcup(self) -> None:
        self._csi("?1049h")

    def _rmcup(self) -> None:
        self._csi("?1049l")

    def _enable_mouse(self) -> None:
        if self.mouse:
            self._csi("?1000h")
            self._csi("?1002h")
            self._csi("?1006h")

    def _disable_mouse(self) -> None:
        if self.mouse:
            self._csi("?1000l")
            self._csi("?1002l")
            self._csi("?1006l")

    def pause(self, clear: bool) -> None:
        """Give the terminal back temporarily, e.g. to run another program."""
        self._disable_mouse()
        self._restore_terminal()
        if clear:
            if self.fullscreen:
                self._rmcup()
            else:
                self._smcup()
                self._csi("H")
            self._flush()

    def resume(self, clear: bool, sigcont: bool) -> None:
        """Take the terminal back after :meth:`pause`."""
        self._setup_terminal()
        if clear:
            if self.fullscreen:
                self._smcup()
            else:
                self._rmcup()
            self._enable_mouse()
            self._flush()
        elif sigcont and not self.fullscreen and self.mouse:
            # After a suspend the offset measured at start is likely stale,
            # so mouse input is turned off.
            self._disable_mouse()
            self.mouse = False

    def clear(self) -> None:
        if self.fullscreen:
            self._csi("H")
        self._origin()
        self._csi("J")
        self._flush()

    def need_scrollbar_redraw(self) -> bool:
        return False

    def should_emit_resize_event(self) -> bool:
        return False

    def refresh_windows(self, windows: Iterable["LightWindow"]) -> None:
        """Send everything drawn so far to the terminal."""
        self._flush()

    def refresh(self) -> None:
        self._update_terminal_size()

    def close(self) -> None:
        """Clean up the drawn area and restore the terminal."""
        if self.clear_on_exit:
            if self.fullscreen:
                self._rmcup()
            else:
                self._origin()
                if self._up_one_line:
                    self._csi("A")
                self._csi("J")
        elif not self.fullscreen:
            self._csi("u")
        self._disable_mouse()
        self._flush()
        self._close_platform()
        self._restore_terminal()
        self.closed.set(True)

    def top(self) -> int:
        return self._decoder.yoffset

    def max_x(self) -> int:
        return self._width

    def max_y(self) -> int:
        if self._height == 0:
            self._update_terminal_size()
        return self._height

    def size(self) -> TermSize:
        """Terminal size in cells and pixels; all zero when unknown."""
        if fcntl is None or termios is None:
            return TermSize()
        try:
            packed = fcntl.ioctl(self._fd(), termios.TIOCGWINSZ, b"\0" * 8)
        except (OSError, ValueError):
            return TermSize()
        rows, cols, px_width, px_height = struct.unpack("HHHH", packed)
        return TermSize(rows, cols, px_width, px_height)

    def new_window(
        self,
        top: int,
        left: int,
        width: int,
        height: int,
        preview: bool,
        border_style: BorderStyle,
    ) -> "LightWindow":
        return LightWindow(self, top, left, width, height, preview, border_style)

    def _border_pair(self, preview: bool) -> ColorPair:
        if self.palette is None:
            return ColorPair(COL_DEFAULT, COL_DEFAULT)
        return self.palette.preview_border if preview else self.palette.border


class LightWindow:
    """A rectangular region of a :class:`LightRenderer`."""

    def __init__(
        self,
        renderer: LightRenderer,
        top: int,
        left: int,
        width: int,
        height: int,
        preview: bool,
        border: BorderStyle,
    ) -> None:
        self.renderer = renderer
        self.colored = renderer.theme.colored
        self.preview = preview
        self.border = border
        self.top = top
        self.left = left
        self.width = width
        self.height = height
        self.tabstop = renderer.tabstop
        self._posx = 0
        self._posy = 0
        theme = renderer.theme
        if preview:
            self.fg = theme.preview_fg.color
            self.bg = theme.preview_bg.color
        else:
            self.fg = theme.fg.color
            self.bg = theme.bg.color
        if self.bg != COL_DEFAULT and border.shape != BorderShape.NONE:
            self.erase()
        self._draw_border(False)

    @property
    def x(self) -> int:
        return self._posx

    @property
    def y(self) -> int:
        return self._posy

    def draw_border(self) -> None:
        self._draw_border(False)

    def draw_hborder(self) -> None:
        self._draw_border(True)

    def _draw_border(self, only_horizontal: bool) -> None:
        shape = self.border.shape
        if shape in _BOX_SHAPES:
            self._draw_border_around(only_horizontal)
        elif shape == BorderShape.HORIZONTAL:
            self._draw_border_horizontal(True, True)
        elif shape == BorderShape.TOP:
            self._draw_border_horizontal(True, False)
        elif shape == BorderShape.BOTTOM:
            self._draw_border_horizontal(False, True)
        elif not only_horizontal:
            if shape == BorderShape.VERTICAL:
                self._draw_border_vertical(True, True)
            elif shape == BorderShape.LEFT:
                self._draw_border_vertical(True, False)
            elif shape == BorderShape.RIGHT:
                self._draw_border_vertical(False, True)

    def _draw_border_horizontal(self, top: bool, bottom: bool) -> None:
        color = self.renderer._border_pair(self.preview)
        hw = rune_width(self.border.top)
        if top:
            self.move(0, 0)
            self.cprint(color, self.border.top * (self.width // hw))
        if bottom:
            self.move(self.height - 1, 0)
            self.cprint(color, self.border.bottom * (self.width // hw))

    def _draw_border_vertical(self, left: bool, right: bool) -> None:
        vw = rune_width(self.border.left)
        color = self.renderer._border_pair(self.preview)
        for y in range(self.height):
            if left:
                self.move(y, 0)
                self.cprint(color, self.border.left)
                self.cprint(color, " ")
            if right:
                self.move(y, self.width - vw - 1)
                self.cprint(color, " ")
                self.cprint(color, self.border.right)

    def _draw_border_around(self, only_horizontal: bool) -> None:
        b = self.border
        self.move(0, 0)
        color = self.renderer._border_pair(self.preview)
        hw = rune_width(b.top)
        tcw = rune_width(b.top_left) + rune_width(b.top_right)
        bcw = rune_width(b.bottom_left) + rune_width(b.bottom_right)
        rem = (self.width - tcw) % hw
        self.cprint(
            color,
            b.top_left + b.top * ((self.width - tcw) // hw) + " " * rem + b.top_right,
        )
        if not only_horizontal:
            vw = rune_width(b.left)
            for y in range(1, self.height - 1):
                self.move(y, 0)
                self.cprint(color, b.left)
                self.cprint(color, " ")
                self.move(y, self.width - vw - 1)
                self.cprint(color, " ")
                self.cprint(color, b.right)
        self.move(self.height - 1, 0)
        rem = (self.width - bcw) % hw
        self.cprint(
            color,
            b.bottom_left + b.bottom * ((self.width - bcw) // hw) + " " * rem + b.bottom_right,
        )

    def refresh(self) -> None:
        """Nothing to do: the renderer sends output when its windows are refreshed."""

    def close(self) -> None:
        """Nothing to release: the window owns no resources."""

    def enclose(self, y: int, x: int) -> bool:
        """True if screen position (y, x) lies inside the window."""
        return self.left <= x < self.left + self.width and self.top <= y < self.top + self.height

    def move(self, y: int, x: int) -> None:
        self._posx = x
        self._posy = y
        self.renderer._move(self.top + y, self.left + x)

    def move_and_clear(self, y: int, x: int) -> None:
        self.move(y, x)
        # Clearing with spaces keeps a preview window on the right intact
        self.print(" " * (self.width - x))
        self.move(y, x)

    def _csi_color(self, fg: int, bg: int, attr: int) -> tuple[bool, str]:
        codes = attr_codes(attr) + color_codes(fg, bg)
        code = self.renderer._csi(";" + ";".join(codes) + "m")
        return bool(codes), code

    def print(self, text: str) -> None:
        self._cprint2(COL_DEFAULT, self.bg, Attr.REGULAR, text)

    def cprint(self, pair: ColorPair, text: str) -> None:
        _, code = self._csi_color(pair.fg, pair.bg, pair.attr)
        self.renderer._stderr_internal(cleanse(text), False, code)
        self.renderer._csi("0m")

    def _cprint2(self, fg: int, bg: int, attr: int, text: str) -> None:
        has_colors, code = self._csi_color(fg, bg, attr)
        self.renderer._stderr_internal(cleanse(text), False, code)
        if has_colors:
            self.renderer._csi("0m")

    def _fill_text(self, text: str, reset_code: str) -> FillReturn:
        all_lines = text.split("\n")
        for i, line in enumerate(all_lines):
            lines = wrap_line(line, self._posx, self.width, self.tabstop)
            for j, wrapped in enumerate(lines):
                self.renderer._stderr_internal(wrapped.text, False, reset_code)
                self._posx += wrapped.display_width
                if j < len(lines) - 1 or i < len(all_lines) - 1:
                    if self._posy + 1 >= self.height:
                        return FillReturn.SUSPEND
                    self.move_and_clear(self._posy, self._posx)
                    self.move(self._posy + 1, 0)
                    self.renderer._stderr(reset_code)
        if self._posx + 1 >= self.width:
            if self._posy + 1 >= self.height:
                return FillReturn.SUSPEND
            self.move(self._posy + 1, 0)
            self.renderer._stderr(reset_code)
            return FillReturn.NEXT_LINE
        return FillReturn.CONTINUE

    def _set_bg(self) -> str:
        if self.bg != COL_DEFAULT:
            _, code = self._csi_color(COL_DEFAULT, self.bg, Attr.REGULAR)
            return code
        # Resets the dim attribute that follows a visible carriage return
        return "\x1b[m"

    def link_begin(self, uri: str, params: str) -> None:
        self.renderer._queue("\x1b]8;" + params + ";" + uri + "\x1b\\")

    def link_end(self) -> None:
        self.renderer._queue("\x1b]8;;\x1b\\")

    def fill(self, text: str) -> FillReturn:
        """Write ``text`` from the current position, wrapping at the window edge."""
        self.move(self._posy, self._posx)
        return self._fill_text(text, self._set_bg())

    def cfill(self, fg: int, bg: int, attr: int, text: str) -> FillReturn:
        """Like :meth:`fill`, in the given colours and attributes."""
        self.move(self._posy, self._posx)
        if fg == COL_DEFAULT:
            fg = self.fg
        if bg == COL_DEFAULT:
            bg = self.bg
        has_colors, reset_code = self._csi_color(fg, bg, attr)
        if has_colors:
            try:
                return self._fill_text(text, reset_code)
            finally:
                self.renderer._csi("0m")
        return self._fill_text(text, self._set_bg())

    def finish_fill(self) -> None:
        """Blank the rest of the current line and all lines below it."""
        if self._posy < self.height:
            self.move_and_clear(self._posy, self._posx)
        for y in range(self._posy + 1, self.height):
            self.move_and_clear(y, 0)

    def erase(self) -> None:
        self.draw_border()
        self.move(0, 0)
        self.finish_fill()
        self.move(0, 0)

    def erase_maybe(self) -> bool:
        return False