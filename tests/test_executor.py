import shlex
import signal
import subprocess
import sys

import pytest

from fzfterm.util.executor import (
    Executor,
    ShellType,
    escape_arg,
    kill_command,
)

SAMPLES = ["plain", "it's", "a b  c", "back\\slash", "'''", "$HOME `x` \"q\"", ""]


def posix(with_shell="", shell="/bin/sh"):
    return Executor(with_shell, windows=False, environ={"SHELL": shell})


def test_posix_defaults_to_shell_env_with_dash_c():
    ex = posix(shell="/bin/bash")
    assert ex.shell == "/bin/bash"
    assert ex.args == ["-c"]
    assert ex.exec_command("echo hi", False).args == ["/bin/bash", "-c", "echo hi"]


def test_posix_falls_back_to_sh():
    ex = Executor("", windows=False, environ={})
    assert ex.shell == "sh"
    assert ex.args == ["-c"]


def test_with_shell_overrides_shell_and_args():
    ex = posix("zsh -x -c")
    assert ex.shell == "zsh"
    assert ex.args == ["-x", "-c"]
    assert ex.exec_command("ls", False).args == ["zsh", "-x", "-c", "ls"]


def test_setpgid_sets_new_session():
    ex = posix()
    assert ex.exec_command("ls", True).start_new_session is True
    assert ex.exec_command("ls", False).start_new_session is False


def test_posix_quote_escapes_single_quote():
    assert posix().quote_entry("it's") == "'it" + "'\\''" + "s'"


@pytest.mark.parametrize("text", SAMPLES)
def test_posix_quote_round_trips_through_shlex(text):
    assert shlex.split(posix().quote_entry(text)) == [text]


@pytest.mark.parametrize("text", SAMPLES)
def test_posix_quote_round_trips_through_real_shell(text):
    ex = posix()
    command = ex.exec_command("printf %s " + ex.quote_entry(text), False)
    process = command.start(stdout=subprocess.PIPE)
    out, _ = process.communicate(timeout=10)
    assert out.decode() == text


def test_fish_quote_escapes_backslash_and_quote():
    ex = posix(shell="/usr/bin/fish")
    assert ex.quote_entry("a\\b'c") == "'a" + "\\\\" + "b" + "\\'" + "c'"


def test_windows_defaults_to_cmd():
    ex = Executor("", windows=True, environ={})
    assert ex.shell == "cmd"
    assert ex.shell_type is ShellType.CMD
    assert ex.args == ["/s/c"]


def test_windows_cmd_command_line():
    ex = Executor("", windows=True, environ={"SHELL": "cmd.exe"})
    command = ex.exec_command("dir", False)
    assert command.args == '/s/c "dir"'
    assert command.executable == "cmd.exe"


def test_windows_powershell_detection_and_quote():
    ex = Executor("", windows=True, environ={"SHELL": "pwsh"})
    assert ex.shell_type is ShellType.POWERSHELL
    assert ex.args == ["-NoProfile", "-Command"]
    assert ex.exec_command("ls", False).args == ["pwsh", "-NoProfile", "-Command", "ls"]
    assert ex.quote_entry('it\'s "x"') == "'it''s \\\"x\\\"'"


def test_windows_explicit_shell_is_unknown_type():
    ex = Executor("bash -lc", windows=True, environ={})
    assert ex.shell_type is ShellType.UNKNOWN
    assert ex.args == ["-lc"]
    assert ex.quote_entry("it's") == posix().quote_entry("it's")


def test_windows_cmd_quote_uses_escape_arg():
    ex = Executor("", windows=True, environ={})
    assert ex.quote_entry("a&b") == escape_arg("a&b")


def test_escape_arg_plain():
    assert escape_arg("abc") == '^"abc^"'


@pytest.mark.parametrize("text", ["a&b", "x|y", "<>", "(1)", "50%", "hi!", "a^b"])
def test_escape_arg_prefixes_specials_with_caret(text):
    result = escape_arg(text)
    for special in "&|<>()%!":
        assert result.count("^" + special) == text.count(special)
    assert result.startswith('^"') and result.endswith('^"')


def test_escape_arg_doubles_trailing_backslashes():
    assert escape_arg("dir\\") == '^"dir\\\\^"'


def test_kill_command_kills_process_group():
    command = posix().exec_command("sleep 30", True)
    process = command.start()
    kill_command(process)
    assert process.wait(timeout=10) == -signal.SIGKILL


def test_become_missing_shell_exits_127(capsys):
    ex = Executor("no-such-shell-for-fzfterm", windows=False, environ={})
    with pytest.raises(SystemExit) as exc:
        ex.become(sys.stdin, [], "true")
    assert exc.value.code == 127
    assert "become" in capsys.readouterr().err