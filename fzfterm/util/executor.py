"""Running commands through the user's shell and quoting arguments for it."""

from __future__ import annotations

import enum
import ntpath
import os
import re
import shutil
import signal
import subprocess
import sys
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

_CMD_SPECIAL = re.compile(r'[&|<>()^%!"]')
_FISH_ESCAPES = str.maketrans({"\\": "\\\\", "'": "\\'"})
_POSIX_ESCAPES = str.maketrans({"'": "'\\''"})
_BECOME_EXIT_CODE = 127


class ShellType(enum.Enum):
    """Kind of shell, which decides how arguments are quoted on Windows."""

    UNKNOWN = 0
    CMD = 1
    POWERSHELL = 2


@dataclass
class ShellCommand:
    """A prepared, not yet started, shell invocation."""

    args: list[str] | str
    executable: str | None = None
    start_new_session: bool = False

    def start(self, **kwargs: Any) -> subprocess.Popen:
        """Start the command; keyword arguments go to :class:`subprocess.Popen`."""
        return subprocess.Popen(
            self.args,
            executable=self.executable,
            start_new_session=self.start_new_session,
            **kwargs,
        )


class Executor:
    """Runs command strings with ``$SHELL`` or an explicitly given shell."""

    def __init__(
        self,
        with_shell: str = "",
        *,
        windows: bool | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        env = os.environ if environ is None else environ
        self.windows = os.name == "nt" if windows is None else windows
        self.shell_type = ShellType.UNKNOWN
        self._escapes = _POSIX_ESCAPES
        self._shell_path: str | None = None
        shell = env.get("SHELL", "")
        words = with_shell.split()
        if self.windows:
            self._init_windows(shell, words)
        else:
            self._init_posix(shell, words)

    def _init_posix(self, shell: str, words: list[str]) -> None:
        if words:
            shell, args = words[0], words[1:]
        else:
            shell = shell or "sh"
            args = ["-c"]
        self.shell = shell
        self.args = args
        if shell.split("/")[-1] == "fish":
            self._escapes = _FISH_ESCAPES

    def _init_windows(self, shell: str, words: list[str]) -> None:
        if words:
            shell = words[0]
        elif not shell:
            shell = "cmd"
        basename = ntpath.basename(shell)
        if words:
            args = words[1:]
        elif basename.startswith("cmd"):
            self.shell_type = ShellType.CMD
            args = ["/s/c"]
        elif basename.startswith(("pwsh", "powershell")):
            self.shell_type = ShellType.POWERSHELL
            args = ["-NoProfile", "-Command"]
        else:
            args = ["-c"]
        self.shell = shell
        self.args = args

    def _resolved_shell(self) -> str:
        if self._shell_path is not None:
            return self._shell_path
        shell = self.shell
        if "/" in shell:
            try:
                result = subprocess.run(
                    ["cygpath", "-w", shell],
                    capture_output=True,
                    text=True,
                    check=True,
                )
                shell = result.stdout.strip("\n")
            except (OSError, subprocess.CalledProcessError):
                pass
        self._shell_path = shell
        return shell

    def exec_command(self, command: str, setpgid: bool) -> ShellCommand:
        """Prepare ``command`` to run in the shell.

        With ``setpgid`` the process gets its own process group, so that
        :func:`kill_command` can stop it together with its children.
        """
        if not self.windows:
            return ShellCommand([self.shell, *self.args, command], start_new_session=setpgid)
        shell = self._resolved_shell()
        if self.shell_type is ShellType.CMD:
            return ShellCommand(f'{" ".join(self.args)} "{command}"', executable=shell)
        return ShellCommand([shell, *self.args, command])

    def quote_entry(self, entry: str) -> str:
        """Quote ``entry`` so the shell sees it as one literal argument."""
        if self.windows:
            if self.shell_type is ShellType.CMD:
                return escape_arg(entry)
            if self.shell_type is ShellType.POWERSHELL:
                escaped = entry.replace('"', '\\"')
                return "'" + escaped.replace("'", "''") + "'"
        return "'" + entry.translate(self._escapes) + "'"

    def become(self, stdin: Any, environ: Mapping[str, str] | Iterable[str], command: str) -> None:
        """Replace the current program with ``command`` run by the shell."""
        env = _environ_dict(environ)
        if self.windows:
            self._become_windows(stdin, env, command)
            return
        shell_path = shutil.which(self.shell)
        if shell_path is None:
            print(
                f"fzfterm (become): {self.shell}: executable file not found",
                file=sys.stderr,
            )
            raise SystemExit(_BECOME_EXIT_CODE)
        os.dup2(stdin.fileno(), 0)
        os.execve(shell_path, [shell_path, *self.args, command], env)

    def _become_windows(self, stdin: Any, env: dict[str, str], command: str) -> None:
        try:
            process = self.exec_command(command, False).start(
                stdin=stdin, stdout=sys.stdout, stderr=sys.stderr, env=env
            )
        except OSError as err:
            print(f"fzfterm (become): {err}", file=sys.stderr)
            raise SystemExit(_BECOME_EXIT_CODE) from None
        raise SystemExit(process.wait())


def _environ_dict(environ: Mapping[str, str] | Iterable[str]) -> dict[str, str]:
    if isinstance(environ, Mapping):
        return dict(environ)
    env: dict[str, str] = {}
    for item in environ:
        name, _, value = item.partition("=")
        env[name] = value
    return env


def escape_arg(text: str) -> str:
    """Quote ``text`` as one argument for a cmd.exe command line."""
    out = ['"']
    slashes = 0
    for char in text:
        if char == "\\":
            slashes += 1
        elif char == '"':
            out.append("\\" * (slashes + 1))
            slashes = 0
        else:
            slashes = 0
        out.append(char)
    out.append("\\" * slashes)
    out.append('"')
    return _CMD_SPECIAL.sub(lambda m: "^" + m.group(), "".join(out))


def kill_command(process: subprocess.Popen) -> None:
    """Kill ``process``; on POSIX its whole process group is killed."""
    if os.name == "nt":
        process.kill()
    else:
        os.killpg(process.pid, signal.SIGKILL)