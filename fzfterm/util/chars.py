"""Item text storage with whitespace trimming and line wrapping."""

from __future__ import annotations

from .helpers import as_uint16, runes_width

_NOT_SPACE = frozenset("\x1c\x1d\x1e\x1f")


def _is_space(char: str) -> bool:
    return char.isspace() and char not in _NOT_SPACE


class Chars:
    """Text of one item; remembers whether the original input was pure ASCII."""

    __slots__ = ("_text", "_in_bytes", "_trim_length", "index")

    def __init__(self, text: str, in_bytes: bool = False, index: int = 0) -> None:
        self._text = text
        self._in_bytes = in_bytes
        self._trim_length: int | None = None
        self.index = index

    def __len__(self) -> int:
        return len(self._text)

    def __getitem__(self, i):
        return self._text[i]

    def __str__(self) -> str:
        return self._text

    def __repr__(self) -> str:
        return (
            f"Chars(text={self._text!r}, in_bytes={self._in_bytes}, "
            f"index={self.index})"
        )

    def is_bytes(self) -> bool:
        return self._in_bytes

    def num_lines(self, at_most: int) -> tuple[int, bool]:
        """Count lines, stopping at ``at_most``; the flag tells if there were more."""
        newlines = self._text.count("\n")
        lines = 1 + newlines
        if lines > at_most and (newlines or (not self._in_bytes and self._text)):
            return at_most, True
        return lines, False

    def trim_length(self) -> int:
        """Length after removing leading and trailing whitespace."""
        if self._trim_length is not None:
            return self._trim_length
        stripped_tail = len(self._text) - self.trailing_whitespaces()
        if stripped_tail == 0:
            self._trim_length = 0
            return 0
        self._trim_length = as_uint16(stripped_tail - self.leading_whitespaces())
        return self._trim_length

    def leading_whitespaces(self) -> int:
        count = 0
        for char in self._text:
            if not _is_space(char):
                break
            count += 1
        return count

    def trailing_whitespaces(self) -> int:
        count = 0
        for char in reversed(self._text):
            if not _is_space(char):
                break
            count += 1
        return count

    def trim_trailing_whitespaces(self) -> None:
        count = self.trailing_whitespaces()
        if count:
            self._text = self._text[:-count]

    def to_runes(self) -> list[str]:
        return list(self._text)

    def prepend(self, prefix: str) -> None:
        self._text = prefix + self._text

    def lines(
        self,
        multi_line: bool,
        max_lines: int,
        wrap_cols: int,
        wrap_sign_width: int,
        tabstop: int,
    ) -> tuple[list[str], bool]:
        """Split into display lines, optionally wrapped at ``wrap_cols`` columns.

        Returns the lines and whether ``max_lines`` cut them short.
        """
        text = self._text
        overflow = False
        if not multi_line:
            lines = [text]
        else:
            segments = text.split("\n")
            complete = [segment + "\n" for segment in segments[:-1]]
            if len(complete) >= max_lines:
                lines = complete[: max(max_lines, 1)]
                overflow = True
            else:
                lines = complete + [segments[-1]]

        if wrap_cols == 0:
            return lines, overflow

        wrapped: list[str] = []
        for line in lines:
            newline = line.endswith("\n")
            if newline:
                line = line[:-1]
            while True:
                cols = wrap_cols - (wrap_sign_width if wrapped else 0)
                _, overflow_idx = runes_width(line, 0, tabstop, cols)
                if overflow_idx >= 0:
                    overflow_idx = overflow_idx or 1
                    if len(wrapped) >= max_lines:
                        return wrapped, True
                    wrapped.append(line[:overflow_idx])
                    line = line[overflow_idx:]
                    continue
                if newline:
                    line += "\n"
                if len(wrapped) >= max_lines:
                    return wrapped, True
                wrapped.append(line)
                break
        return wrapped, False


def to_chars(data: bytes) -> Chars:
    """Build a Chars from UTF-8 bytes; invalid sequences become U+FFFD."""
    if data.isascii():
        return Chars(data.decode("ascii"), in_bytes=True)
    return Chars(data.decode("utf-8", errors="replace"))


def runes_to_chars(runes) -> Chars:
    """Build a Chars from a string or a sequence of characters."""
    text = runes if isinstance(runes, str) else "".join(runes)
    return Chars(text)