import io
import os

import pytest

from fzfterm.tui.events import EventType
from fzfterm.tui.light import (
    LF,
    LightRenderer,
    WrappedLine,
    attr_codes,
    cleanse,
    color_codes,
    wrap_line,
)
from fzfterm.tui.theme import (
    COL_DEFAULT,
    Attr,
    BorderShape,
    FillReturn,
    TermSize,
    empty_theme,
    hex_to_color,
    make_border_style,
)


class Sink(io.BytesIO):
    def __init__(self):
        super().__init__()
        self.close_called = False

    def close(self):
        self.close_called = True

    def text(self):
        return self.getvalue().decode("utf-8")


@pytest.fixture
def pipe():
    r, w = os.pipe()
    reader = os.fdopen(r, "rb", buffering=0)
    yield reader, w
    reader.close()
    try:
        os.close(w)
    except OSError:
        pass


def make_renderer(reader, sink, mouse=False, clear_on_exit=True, height_func=lambda h: h):
    renderer = LightRenderer(
        reader, empty_theme(), False, mouse, 8, clear_on_exit, False, height_func, ttyout=sink
    )
    renderer.esc_delay = 0
    return renderer


def no_border():
    return make_border_style(BorderShape.NONE, True)


def test_wrap_line_splits_at_limit():
    lines = wrap_line("abcdef", 0, 4, 8)
    assert [line.text for line in lines] == ["abcd", "ef"]
    assert "".join(line.text for line in lines) == "abcdef"


def test_wrap_line_empty():
    assert wrap_line("", 0, 10, 8) == [WrappedLine("", 0)]


def test_wrap_line_expands_tab_to_spaces():
    (line,) = wrap_line("\tx", 0, 80, 8)
    assert line.text == " " * 8 + "x"
    assert line.display_width == len(line.text)


def test_attr_codes():
    assert attr_codes(Attr.BOLD | Attr.UNDERLINE) == ["1", "4"]
    assert attr_codes(Attr.BOLD | Attr.CLEAR) == []


def test_color_codes():
    assert color_codes(1, COL_DEFAULT) == ["31"]
    assert color_codes(200, COL_DEFAULT) == ["38;5;200"]
    assert color_codes(COL_DEFAULT, hex_to_color("#010203")) == ["48;2;1;2;3"]
    assert color_codes(COL_DEFAULT, COL_DEFAULT) == []


def test_cleanse_removes_escape():
    assert cleanse("a\x1bb") == "ab"


def test_get_char_rune_and_order(pipe):
    reader, w = pipe
    renderer = make_renderer(reader, Sink())
    os.write(w, b"ab")
    first = renderer.get_char()
    second = renderer.get_char()
    assert (first.type, first.char) == (EventType.RUNE, "a")
    assert (second.type, second.char) == (EventType.RUNE, "b")


def test_get_char_control_and_arrow(pipe):
    reader, w = pipe
    renderer = make_renderer(reader, Sink())
    os.write(w, b"\x03")
    assert renderer.get_char().type is EventType.CTRL_C
    os.write(w, b"\x1b[A")
    assert renderer.get_char().type is EventType.UP


def test_get_char_lone_escape(pipe):
    reader, w = pipe
    renderer = make_renderer(reader, Sink())
    os.write(w, b"\x1b")
    assert renderer.get_char().type is EventType.ESC


def test_get_char_drops_bracketed_paste_markers(pipe):
    reader, w = pipe
    renderer = make_renderer(reader, Sink())
    os.write(w, b"\x1b[200~x\x1b[201~y")
    assert renderer.get_char().char == "x"
    assert renderer.get_char().char == "y"


def test_get_char_mouse(pipe):
    reader, w = pipe
    renderer = make_renderer(reader, Sink(), mouse=True)
    os.write(w, b"\x1b[<0;5;3M")
    event = renderer.get_char()
    assert event.type is EventType.MOUSE
    assert event.mouse.left and event.mouse.down


def test_get_char_eof_is_fatal_and_closes(pipe):
    reader, w = pipe
    sink = Sink()
    renderer = make_renderer(reader, sink)
    os.close(w)
    assert renderer.get_char().type is EventType.FATAL
    assert renderer.closed.get() is True
    assert sink.close_called


def test_init_fails_without_terminal(pipe):
    reader, _ = pipe
    renderer = make_renderer(reader, Sink())
    with pytest.raises(OSError):
        renderer.init()


def test_size_unknown_without_terminal(pipe):
    reader, _ = pipe
    assert make_renderer(reader, Sink()).size() == TermSize()


def test_size_from_environment(pipe, monkeypatch):
    reader, _ = pipe
    monkeypatch.setenv("COLUMNS", "100")
    monkeypatch.setenv("LINES", "30")
    renderer = make_renderer(reader, Sink(), height_func=lambda h: min(h, 10))
    renderer.refresh()
    assert renderer.max_x() == 100
    assert renderer.max_y() == 10


def test_print_is_framed_on_flush(pipe):
    reader, _ = pipe
    sink = Sink()
    renderer = make_renderer(reader, sink)
    window = renderer.new_window(0, 0, 10, 3, False, no_border())
    window.print("hi")
    renderer.refresh_windows([window])
    out = sink.text()
    assert out.startswith("\x1b[?7l\x1b[?25l")
    assert out.endswith("\x1b[?25h\x1b[?7h")
    assert "hi" in out


def test_print_shows_newline_marker(pipe):
    reader, _ = pipe
    sink = Sink()
    renderer = make_renderer(reader, sink)
    window = renderer.new_window(0, 0, 10, 3, False, no_border())
    window.print("a\nb")
    renderer.refresh_windows([window])
    assert LF in sink.text()


def test_pass_through_and_links(pipe):
    reader, _ = pipe
    sink = Sink()
    renderer = make_renderer(reader, sink)
    window = renderer.new_window(0, 0, 10, 3, False, no_border())
    renderer.pass_through("X")
    window.link_begin("u", "id=1")
    window.link_end()
    renderer.refresh_windows([window])
    out = sink.text()
    assert "\x1b7X\x1b8" in out
    assert "\x1b]8;id=1;u\x1b\\" in out
    assert "\x1b]8;;\x1b\\" in out


def test_move_and_enclose(pipe):
    reader, _ = pipe
    renderer = make_renderer(reader, Sink())
    window = renderer.new_window(2, 3, 10, 4, False, no_border())
    window.move(1, 4)
    assert (window.y, window.x) == (1, 4)
    assert window.enclose(2, 3)
    assert not window.enclose(2 + 4, 3)
    assert not window.enclose(2, 3 + 10)


def test_fill_results(pipe):
    reader, _ = pipe
    renderer = make_renderer(reader, Sink())
    window = renderer.new_window(0, 0, 10, 2, False, no_border())
    assert window.fill("ab") == FillReturn.CONTINUE
    assert window.x == 2

    short = renderer.new_window(0, 0, 5, 1, False, no_border())
    assert short.fill("abcdefgh") == FillReturn.SUSPEND

    two_lines = renderer.new_window(0, 0, 5, 2, False, no_border())
    assert two_lines.fill("abcd") == FillReturn.NEXT_LINE
    assert (two_lines.y, two_lines.x) == (1, 0)


def test_cfill_emits_colour_and_reset(pipe):
    reader, _ = pipe
    sink = Sink()
    renderer = make_renderer(reader, sink)
    window = renderer.new_window(0, 0, 10, 2, False, no_border())
    window.cfill(1, COL_DEFAULT, Attr.UNDEFINED, "x")
    renderer.refresh_windows([window])
    out = sink.text()
    assert "\x1b[;31m" in out
    assert "\x1b[0m" in out


def test_rounded_border_corners(pipe):
    reader, _ = pipe
    sink = Sink()
    renderer = make_renderer(reader, sink)
    window = renderer.new_window(0, 0, 6, 3, False, make_border_style(BorderShape.ROUNDED, True))
    renderer.refresh_windows([window])
    out = sink.text()
    assert "╭" in out and "╮" in out and "╰" in out and "╯" in out


def test_resume_after_sigcont_disables_mouse(pipe):
    reader, _ = pipe
    sink = Sink()
    renderer = make_renderer(reader, sink, mouse=True)
    renderer.resume(False, True)
    assert renderer.mouse is False
    renderer.refresh_windows([])
    assert "\x1b[?1000l" in sink.text()


def test_clear_erases_below(pipe):
    reader, _ = pipe
    sink = Sink()
    renderer = make_renderer(reader, sink)
    renderer.clear()
    assert "\x1b[J" in sink.text()


def test_close_restores_cursor_without_clear(pipe):
    reader, _ = pipe
    sink = Sink()
    renderer = make_renderer(reader, sink, clear_on_exit=False)
    renderer.close()
    assert "\x1b[u" in sink.text()
    assert renderer.closed.get() is True
    assert sink.close_called
    assert renderer.top() == 0