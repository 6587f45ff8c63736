import pytest

from fzfterm.util.chars import runes_to_chars, to_chars


def test_to_chars_ascii():
    chars = to_chars(b"foobar")
    assert chars.is_bytes()
    assert str(chars) == "foobar"


def test_chars_length():
    chars = to_chars("\tabc한글  ".encode())
    assert not chars.is_bytes()
    assert len(chars) == 8
    assert chars.trim_length() == 5


def test_chars_to_string():
    text = "\tabc한글  "
    assert str(to_chars(text.encode())) == text


@pytest.mark.parametrize(
    "text, expected",
    [
        ("hello", 5),
        ("hello ", 5),
        ("hello  ", 5),
        (" hello", 5),
        ("  hello", 5),
        (" hello ", 5),
        ("  hello  ", 5),
        ("h   o", 5),
        ("  h   o  ", 5),
        ("         ", 0),
    ],
)
def test_trim_length(text, expected):
    assert to_chars(text.encode()).trim_length() == expected


@pytest.mark.parametrize(
    "multi_line, max_lines, wrap_cols, sign, tabstop, count, overflow",
    [
        (True, 1, 0, 0, 8, 1, True),
        (True, 2, 0, 0, 8, 2, True),
        (True, 3, 0, 0, 8, 3, False),
        (True, 4, 2, 0, 8, 4, True),
        (True, 5, 2, 0, 8, 5, True),
        (True, 6, 2, 0, 8, 6, True),
        (True, 7, 2, 0, 8, 7, True),
        (True, 8, 2, 0, 8, 8, True),
        (True, 9, 2, 0, 8, 9, False),
        (True, 9, 2, 0, 1, 8, False),
        (True, 100, 3, 1, 1, 8, False),
        (True, 100, 3, 2, 1, 12, False),
        (False, 100, 3, 2, 1, 13, False),
    ],
)
def test_chars_lines(multi_line, max_lines, wrap_cols, sign, tabstop, count, overflow):
    chars = to_chars("abcdef\n가나다\n\tdef".encode())
    lines, got_overflow = chars.lines(multi_line, max_lines, wrap_cols, sign, tabstop)
    assert len(lines) == count
    assert got_overflow is overflow


def test_lines_without_wrap_keep_newlines():
    chars = to_chars(b"ab\ncd")
    assert chars.lines(True, 10, 0, 0, 8) == (["ab\n", "cd"], False)


def test_num_lines():
    chars = to_chars(b"a\nb\nc")
    assert chars.num_lines(10) == (3, False)
    assert chars.num_lines(2) == (2, True)


def test_whitespace_counts_and_trim():
    chars = runes_to_chars("  한 \t")
    assert chars.leading_whitespaces() == 2
    assert chars.trailing_whitespaces() == 2
    chars.trim_trailing_whitespaces()
    assert str(chars) == "  한"


def test_prepend_and_to_runes():
    chars = to_chars(b"bc")
    chars.prepend("a")
    assert chars.to_runes() == ["a", "b", "c"]


def test_invalid_utf8_replaced():
    assert str(to_chars(b"a\xffb")) == "a\ufffdb"