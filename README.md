# fzfterm

Building blocks for interactive, fuzzy-finder style terminal programs:
display-width aware text handling, raw key and mouse decoding, colour
themes, an inline ANSI renderer and helpers for running commands through
the user's shell.

## Modules

- `fzfterm.util.helpers`: `string_width` (CR and LF count as one column
  each), `runes_width`, `truncate`, `repeat_to_fill`, `graphemes` (extended
  grapheme clusters), clamping with `constrain`, `as_uint16` and
  `dur_within`, `compare_versions`, `to_kebab_case`, `is_tty`,
  `once` / `run_once`, and `Slab` (16-bit and 32-bit integer scratch arrays,
  built with `Slab.of_size`).
- `fzfterm.util.chars`: `Chars`, the text of one item, with
  `trim_length`, `leading_whitespaces`, `trailing_whitespaces`,
  `trim_trailing_whitespaces`, `num_lines`, `prepend`, `to_runes` and
  `lines` for splitting and wrapping. Build one with `to_chars` (from UTF-8
  bytes; invalid sequences become U+FFFD) or `runes_to_chars`.
- `fzfterm.util.exithooks`: `at_exit` registers a function;
  `run_at_exit_funcs` calls them newest first, each at most once, and then
  forgets them.
- `fzfterm.util.atomic`: `AtomicBool`, a lock-protected flag with `get` and
  `set`.
- `fzfterm.util.eventbox`: `EventBox`, a mailbox holding the latest value per
  event type, with `set`, `wait`, `wait_for`, `peek`, `watch` and `unwatch`.
- `fzfterm.util.executor`: `Executor` prepares commands for `$SHELL` (or a
  shell given explicitly) with `exec_command`, quotes arguments for it with
  `quote_entry` (POSIX shells, fish, and on Windows cmd.exe and PowerShell),
  and can replace the current program with `become`. Also `escape_arg`
  (cmd.exe quoting), `kill_command` and `ShellType`.
- `fzfterm.tui.tty`: `ttyname`, `open_tty`, `tty_in` and `tty_out` locate and
  open the controlling terminal.
- `fzfterm.tui.events`: `EventType`, `Event`, `MouseEvent` and the `key`,
  `alt_key` and `ctrl_alt_key` constructors; `Event.key_name` gives names
  such as `ctrl-a` or `alt-x`.
- `fzfterm.tui.theme`: `Attr`, `ColorAttr`, `ColorPair`, `ColorTheme`,
  `Palette`, the themes `empty_theme`, `no_color_theme`, `default16`,
  `dark256` and `light256`, `init_theme` (fills a theme from a base theme and
  returns its `Palette`), `hex_to_color`, `is_24bit`, `BorderShape`,
  `BorderStyle`, `make_border_style`, `make_transparent_border`, `TermSize`,
  `FillReturn` and `rune_width`.
- `fzfterm.tui.keys`: `KeyDecoder` turns raw input bytes into events: control
  keys, UTF-8 characters, alt and ctrl-alt combinations, arrow, function and
  editing keys, bracketed-paste markers and SGR mouse reports with double
  click detection.
- `fzfterm.tui.light`: `LightRenderer` and `LightWindow` draw the interface
  below the cursor (or on the alternate screen when fullscreen) with plain
  ANSI escape sequences, plus `wrap_line`, `attr_codes`, `color_codes` and
  `cleanse`.

## Installing

    pip install fzfterm

## Examples

Measuring and truncating text by display width:

    from fzfterm.util.helpers import string_width, truncate

    string_width("─")            # 1
    truncate("가나다라마", 7)      # ("가나다", 6)

Wrapping a multi-line entry:

    from fzfterm.util.chars import to_chars

    chars = to_chars("abcdef\n가나다\n\tdef".encode())
    lines, overflow = chars.lines(True, 9, 2, 0, 8)   # 9 lines, False

Comparing version strings:

    from fzfterm.util.helpers import compare_versions

    compare_versions("1.2.3", "1.2.4")   # -1

Parsing a 24-bit colour:

    from fzfterm.tui.theme import hex_to_color, is_24bit

    is_24bit(hex_to_color("#102030"))    # True

Decoding key presses:

    from fzfterm.tui.keys import KeyDecoder

    event, size = KeyDecoder().decode(b"\x1b[A")
    event.key_name()                      # "up"

Quoting for a POSIX shell:

    from fzfterm.util.executor import Executor

    Executor("sh -c", windows=False).quote_entry("it's")   # 'it'\''s'

## What it does not do

This is a library of parts. It has no command-line program, no fuzzy
matching or item ranking, no option parsing and no full-screen renderer
built on a terminal library; `LightRenderer` is the only renderer.
`LightRenderer` controls the terminal through `termios`, so it works on
POSIX systems only; on Windows only `Executor`'s quoting and command
preparation apply.

## Running the tests

    pip install -e ".[test]"
    pytest