"""Colours, attributes, colour themes and border styles of the terminal UI."""

from __future__ import annotations

import dataclasses
import enum
from dataclasses import dataclass, field

from ..util.helpers import string_width

COL_UNDEFINED = -2
COL_DEFAULT = -1

COL_BLACK = 0
COL_RED = 1
COL_GREEN = 2
COL_YELLOW = 3
COL_BLUE = 4
COL_MAGENTA = 5
COL_CYAN = 6
COL_WHITE = 7

_RGB_FLAG = 1 << 24


class Attr(enum.IntFlag):
    """Text attributes; combining two attributes merges them."""

    UNDEFINED = 0
    BOLD = 1
    DIM = 1 << 1
    ITALIC = 1 << 2
    UNDERLINE = 1 << 3
    BLINK = 1 << 4
    BLINK2 = 1 << 5
    REVERSE = 1 << 6
    STRIKE_THROUGH = 1 << 7
    REGULAR = 1 << 8
    CLEAR = 1 << 9


def is_24bit(color: int) -> bool:
    """True if ``color`` is a 24-bit RGB colour rather than a palette index."""
    return color > 0 and (color & _RGB_FLAG) > 0


def _hex_byte(digits: str) -> int:
    try:
        return int(digits, 16)
    except ValueError:
        return 0


def hex_to_color(rrggbb: str) -> int:
    """Convert ``#rrggbb`` to a 24-bit colour value."""
    if len(rrggbb) < 7:
        raise ValueError(f"invalid colour: {rrggbb!r}")
    r = _hex_byte(rrggbb[1:3])
    g = _hex_byte(rrggbb[3:5])
    b = _hex_byte(rrggbb[5:7])
    return _RGB_FLAG + (r << 16) + (g << 8) + b


@dataclass(frozen=True)
class ColorAttr:
    """A colour together with the attributes to draw it with."""

    color: int = COL_UNDEFINED
    attr: Attr = Attr.UNDEFINED


@dataclass(frozen=True)
class ColorPair:
    """Foreground, background and attributes of drawn text."""

    fg: int
    bg: int
    attr: Attr = Attr.UNDEFINED

    def has_bg(self) -> bool:
        """True if the pair paints a visible background."""
        reversed_ = (self.attr & Attr.REVERSE) > 0
        if reversed_:
            return self.fg != COL_DEFAULT
        return self.bg != COL_DEFAULT

    def _merge(self, other: "ColorPair", except_color: int) -> "ColorPair":
        return ColorPair(
            fg=self.fg if other.fg == except_color else other.fg,
            bg=self.bg if other.bg == except_color else other.bg,
            attr=self.attr | other.attr,
        )

    def with_attr(self, attr: Attr) -> "ColorPair":
        return dataclasses.replace(self, attr=self.attr | attr)

    def merge_attr(self, other: "ColorPair") -> "ColorPair":
        return self.with_attr(other.attr)

    def merge(self, other: "ColorPair") -> "ColorPair":
        """Take the colours of ``other`` that are defined."""
        return self._merge(other, COL_UNDEFINED)

    def merge_non_default(self, other: "ColorPair") -> "ColorPair":
        """Take the colours of ``other`` that are not the terminal default."""
        return self._merge(other, COL_DEFAULT)


def _undefined() -> ColorAttr:
    return ColorAttr(COL_UNDEFINED, Attr.UNDEFINED)


@dataclass
class ColorTheme:
    """Colour settings of every UI element."""

    colored: bool = True
    input: ColorAttr = field(default_factory=_undefined)
    disabled: ColorAttr = field(default_factory=_undefined)
    fg: ColorAttr = field(default_factory=_undefined)
    bg: ColorAttr = field(default_factory=_undefined)
    selected_fg: ColorAttr = field(default_factory=_undefined)
    selected_bg: ColorAttr = field(default_factory=_undefined)
    selected_match: ColorAttr = field(default_factory=_undefined)
    preview_fg: ColorAttr = field(default_factory=_undefined)
    preview_bg: ColorAttr = field(default_factory=_undefined)
    dark_bg: ColorAttr = field(default_factory=_undefined)
    gutter: ColorAttr = field(default_factory=_undefined)
    prompt: ColorAttr = field(default_factory=_undefined)
    match: ColorAttr = field(default_factory=_undefined)
    current: ColorAttr = field(default_factory=_undefined)
    current_match: ColorAttr = field(default_factory=_undefined)
    spinner: ColorAttr = field(default_factory=_undefined)
    info: ColorAttr = field(default_factory=_undefined)
    cursor: ColorAttr = field(default_factory=_undefined)
    marker: ColorAttr = field(default_factory=_undefined)
    header: ColorAttr = field(default_factory=_undefined)
    separator: ColorAttr = field(default_factory=_undefined)
    scrollbar: ColorAttr = field(default_factory=_undefined)
    border: ColorAttr = field(default_factory=_undefined)
    preview_border: ColorAttr = field(default_factory=_undefined)
    preview_scrollbar: ColorAttr = field(default_factory=_undefined)
    border_label: ColorAttr = field(default_factory=_undefined)
    preview_label: ColorAttr = field(default_factory=_undefined)


@dataclass(frozen=True)
class Palette:
    """Colour pairs derived from a fully initialised theme."""

    prompt: ColorPair
    normal: ColorPair
    input: ColorPair
    disabled: ColorPair
    match: ColorPair
    cursor: ColorPair
    cursor_empty: ColorPair
    marker: ColorPair
    selected: ColorPair
    selected_match: ColorPair
    current: ColorPair
    current_match: ColorPair
    current_cursor: ColorPair
    current_cursor_empty: ColorPair
    current_marker: ColorPair
    current_selected_empty: ColorPair
    spinner: ColorPair
    info: ColorPair
    header: ColorPair
    separator: ColorPair
    scrollbar: ColorPair
    border: ColorPair
    preview: ColorPair
    preview_border: ColorPair
    border_label: ColorPair
    preview_label: ColorPair
    preview_scrollbar: ColorPair
    preview_spinner: ColorPair


def empty_theme() -> ColorTheme:
    """A coloured theme in which nothing is defined yet."""
    return ColorTheme(colored=True)


_THEME_FIELDS = [f.name for f in dataclasses.fields(ColorTheme) if f.name != "colored"]


def no_color_theme() -> ColorTheme:
    """A theme that uses only terminal defaults and attributes."""
    theme = ColorTheme(
        colored=False,
        **{name: ColorAttr(COL_DEFAULT, Attr.UNDEFINED) for name in _THEME_FIELDS},
    )
    theme.match = ColorAttr(COL_DEFAULT, Attr.UNDERLINE)
    theme.current = ColorAttr(COL_DEFAULT, Attr.REVERSE)
    theme.current_match = ColorAttr(COL_DEFAULT, Attr.REVERSE | Attr.UNDERLINE)
    return theme


def _base_theme(
    dark_bg: int,
    prompt: int,
    match: int,
    current: int,
    current_match: int,
    spinner: int,
    info: int,
    cursor: int,
    marker: int,
    header: int,
    border: int,
    border_label: int,
) -> ColorTheme:
    return ColorTheme(
        colored=True,
        input=ColorAttr(COL_DEFAULT),
        fg=ColorAttr(COL_DEFAULT),
        bg=ColorAttr(COL_DEFAULT),
        dark_bg=ColorAttr(dark_bg),
        prompt=ColorAttr(prompt),
        match=ColorAttr(match),
        current=ColorAttr(current),
        current_match=ColorAttr(current_match),
        spinner=ColorAttr(spinner),
        info=ColorAttr(info),
        cursor=ColorAttr(cursor),
        marker=ColorAttr(marker),
        header=ColorAttr(header),
        border=ColorAttr(border),
        border_label=ColorAttr(border_label),
    )


def default16() -> ColorTheme:
    """The base theme for 16-colour terminals."""
    return _base_theme(
        dark_bg=COL_BLACK,
        prompt=COL_BLUE,
        match=COL_GREEN,
        current=COL_YELLOW,
        current_match=COL_GREEN,
        spinner=COL_GREEN,
        info=COL_WHITE,
        cursor=COL_RED,
        marker=COL_MAGENTA,
        header=COL_CYAN,
        border=COL_BLACK,
        border_label=COL_WHITE,
    )


def dark256() -> ColorTheme:
    """The base theme for 256-colour terminals with a dark background."""
    return _base_theme(
        dark_bg=236,
        prompt=110,
        match=108,
        current=254,
        current_match=151,
        spinner=148,
        info=144,
        cursor=161,
        marker=168,
        header=109,
        border=59,
        border_label=145,
    )


def light256() -> ColorTheme:
    """The base theme for 256-colour terminals with a light background."""
    return _base_theme(
        dark_bg=251,
        prompt=25,
        match=66,
        current=237,
        current_match=23,
        spinner=65,
        info=101,
        cursor=161,
        marker=168,
        header=31,
        border=145,
        border_label=59,
    )


def _overlay(base: ColorAttr, override: ColorAttr) -> ColorAttr:
    return ColorAttr(
        color=base.color if override.color == COL_UNDEFINED else override.color,
        attr=base.attr if override.attr == Attr.UNDEFINED else override.attr,
    )


_FROM_BASE = (
    "input",
    "fg",
    "bg",
    "dark_bg",
    "prompt",
    "match",
    "current",
    "current_match",
    "spinner",
    "info",
    "cursor",
    "marker",
    "header",
    "border",
    "border_label",
)

# Elements not defined by base themes, and the element each one falls back to.
_DERIVED = (
    ("selected_fg", "fg"),
    ("selected_bg", "bg"),
    ("selected_match", "match"),
    ("disabled", "input"),
    ("gutter", "dark_bg"),
    ("preview_fg", "fg"),
    ("preview_bg", "bg"),
    ("preview_label", "border_label"),
    ("preview_border", "border"),
    ("separator", "border"),
    ("scrollbar", "border"),
    ("preview_scrollbar", "preview_border"),
)


def init_theme(theme: ColorTheme, base_theme: ColorTheme, force_black: bool) -> Palette:
    """Fill the undefined parts of ``theme`` from ``base_theme`` and derive its palette.

    ``theme`` is updated in place.
    """
    if force_black:
        theme.bg = ColorAttr(COL_BLACK, Attr.UNDEFINED)
    for name in _FROM_BASE:
        setattr(theme, name, _overlay(getattr(base_theme, name), getattr(theme, name)))
    for name, fallback in _DERIVED:
        setattr(theme, name, _overlay(getattr(theme, fallback), getattr(theme, name)))
    return _palette(theme)


def _pair(fg: ColorAttr, bg: ColorAttr) -> ColorPair:
    bg_color = bg.color
    if fg.color == COL_DEFAULT and (fg.attr & Attr.REVERSE) > 0:
        bg_color = COL_DEFAULT
    return ColorPair(fg.color, bg_color, fg.attr)


def _palette(theme: ColorTheme) -> Palette:
    blank = ColorAttr(theme.fg.color, Attr.REGULAR)
    if theme.selected_bg.color != theme.bg.color:
        marker = _pair(theme.marker, theme.selected_bg)
    else:
        marker = _pair(theme.marker, theme.gutter)
    return Palette(
        prompt=_pair(theme.prompt, theme.bg),
        normal=_pair(theme.fg, theme.bg),
        selected=_pair(theme.selected_fg, theme.selected_bg),
        input=_pair(theme.input, theme.bg),
        disabled=_pair(theme.disabled, theme.bg),
        match=_pair(theme.match, theme.bg),
        selected_match=_pair(theme.selected_match, theme.selected_bg),
        cursor=_pair(theme.cursor, theme.gutter),
        cursor_empty=_pair(blank, theme.gutter),
        marker=marker,
        current=_pair(theme.current, theme.dark_bg),
        current_match=_pair(theme.current_match, theme.dark_bg),
        current_cursor=_pair(theme.cursor, theme.dark_bg),
        current_cursor_empty=_pair(blank, theme.dark_bg),
        current_marker=_pair(theme.marker, theme.dark_bg),
        current_selected_empty=_pair(blank, theme.dark_bg),
        spinner=_pair(theme.spinner, theme.bg),
        info=_pair(theme.info, theme.bg),
        header=_pair(theme.header, theme.bg),
        separator=_pair(theme.separator, theme.bg),
        scrollbar=_pair(theme.scrollbar, theme.bg),
        border=_pair(theme.border, theme.bg),
        border_label=_pair(theme.border_label, theme.bg),
        preview_label=_pair(theme.preview_label, theme.preview_bg),
        preview=_pair(theme.preview_fg, theme.preview_bg),
        preview_border=_pair(theme.preview_border, theme.preview_bg),
        preview_scrollbar=_pair(theme.preview_scrollbar, theme.preview_bg),
        preview_spinner=_pair(theme.spinner, theme.preview_bg),
    )


class FillReturn(enum.IntEnum):
    """Outcome of filling text into a window."""

    CONTINUE = 0
    NEXT_LINE = 1
    SUSPEND = 2


class BorderShape(enum.IntEnum):
    """Which sides of a window have a border, and in what style."""

    UNDEFINED = 0
    NONE = 1
    ROUNDED = 2
    SHARP = 3
    BOLD = 4
    BLOCK = 5
    THIN_BLOCK = 6
    DOUBLE = 7
    HORIZONTAL = 8
    VERTICAL = 9
    TOP = 10
    BOTTOM = 11
    LEFT = 12
    RIGHT = 13

    def has_left(self) -> bool:
        return self not in _NO_LEFT

    def has_right(self) -> bool:
        return self not in _NO_RIGHT

    def has_top(self) -> bool:
        return self not in _NO_TOP


_NO_LEFT = frozenset(
    {BorderShape.NONE, BorderShape.RIGHT, BorderShape.TOP, BorderShape.BOTTOM, BorderShape.HORIZONTAL}
)
_NO_RIGHT = frozenset(
    {BorderShape.NONE, BorderShape.LEFT, BorderShape.TOP, BorderShape.BOTTOM, BorderShape.HORIZONTAL}
)
_NO_TOP = frozenset(
    {BorderShape.NONE, BorderShape.LEFT, BorderShape.RIGHT, BorderShape.BOTTOM, BorderShape.VERTICAL}
)

DEFAULT_BORDER_SHAPE = BorderShape.ROUNDED


@dataclass(frozen=True)
class BorderStyle:
    """A border shape and the characters it is drawn with."""

    shape: BorderShape
    top: str
    bottom: str
    left: str
    right: str
    top_left: str
    top_right: str
    bottom_left: str
    bottom_right: str


# top, bottom, left, right, top-left, top-right, bottom-left, bottom-right
_BORDER_CHARS = {
    BorderShape.SHARP: "──││┌┐└┘",
    BorderShape.BOLD: "━━┃┃┏┓┗┛",
    BorderShape.BLOCK: "▀▄▌▐▛▜▙▟",
    BorderShape.THIN_BLOCK: "▔▁▏▕🭽🭾🭼🭿",
    BorderShape.DOUBLE: "══║║╔╗╚╝",
}
_ROUNDED_CHARS = "──││╭╮╰╯"
_ASCII_CHARS = "--||++++"


def make_border_style(shape: BorderShape, unicode: bool) -> BorderStyle:
    """Border characters for ``shape``; plain ASCII unless ``unicode`` is set."""
    if not unicode:
        chars = _ASCII_CHARS
    else:
        chars = _BORDER_CHARS.get(shape, _ROUNDED_CHARS)
    return BorderStyle(shape, *chars)


def make_transparent_border() -> BorderStyle:
    """A rounded border drawn entirely with spaces."""
    return BorderStyle(BorderShape.ROUNDED, *(" " * 8))


@dataclass(frozen=True)
class TermSize:
    """Terminal size in cells and, when known, in pixels."""

    lines: int = 0
    columns: int = 0
    px_width: int = 0
    px_height: int = 0


def rune_width(char: str) -> int:
    """Display width of a single character."""
    return string_width(char) - char.count("\n") - char.count("\r")