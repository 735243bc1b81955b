"""Infrastructure: child processes and in-place process takeover.

Every process npx-wrap starts for the *user's* command goes through
:class:`SubprocessRunner`.  Non-zero exits and signal deaths become
operational :class:`~npx_wrap.exceptions.ChildProcessError` instances
carrying the status the shell would report.
"""

from __future__ import annotations

import os
import shlex
import signal
import subprocess
import sys
from collections.abc import Sequence

from npx_wrap.core.models import CommandRequest
from npx_wrap.exceptions import ChildProcessError, CommandNotFoundError


# ---------------------------------------------------------------------------
# Quoting
# ---------------------------------------------------------------------------

def escape_arg(value: str, *, windows: bool | None = None) -> str:
    """Quote *value* for the current platform's shell."""
    if os.name == "nt" if windows is None else windows:
        return subprocess.list2cmdline([value])
    return shlex.quote(value)


def format_command(argv: Sequence[str], *, windows: bool | None = None) -> str:
    """Render *argv* as a copy-pasteable shell command."""
    return " ".join(escape_arg(arg, windows=windows) for arg in argv)


def shell_argv(shell: str, command: str, *, windows: bool | None = None) -> list[str]:
    """Argument vector running *command* through *shell*."""
    if os.name == "nt" if windows is None else windows:
        return [shell, "/d", "/s", "/c", command]
    return [shell, "-c", command]


def exit_status(returncode: int) -> int:
    """Translate a :mod:`subprocess` return code into a shell exit status.

    A child killed by a signal reports ``-signum``; shells report
    ``128 + signum`` for the same event.
    """
    if returncode < 0:
        return 128 + -returncode
    return returncode


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------

class SubprocessRunner:
    """Concrete :class:`~npx_wrap.core.protocols.ProcessRunner`.

    Children inherit stdin, stdout and stderr, so they report their own
    diagnostics.
    """

    def __init__(self, *, windows: bool | None = None) -> None:
        self._windows: bool = os.name == "nt" if windows is None else windows

    @property
    def can_take_over(self) -> bool:
        # Windows' exec family spawns a new process instead of replacing ours.
        return not self._windows and hasattr(os, "execv")

    def spawn(self, argv: Sequence[str], request: CommandRequest) -> int:
        """Run *argv* and return 0, or raise for a failed child."""
        if request.shell:
            command = format_command(argv, windows=self._windows)
            return self._run(shell_argv(request.shell, command, windows=self._windows), argv[0])
        return self._run(list(argv), argv[0])

    def spawn_shell(self, command: str, request: CommandRequest) -> int:
        """Run the call string through ``--shell`` or the platform shell."""
        if request.shell:
            return self._run(shell_argv(request.shell, command, windows=self._windows), command)
        return self._run(command, command, shell=True)

    def take_over(self, argv: Sequence[str]) -> None:
        """Replace the current process with *argv*.  Does not return."""
        sys.stdout.flush()
        sys.stderr.flush()
        os.execv(argv[0], list(argv))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _run(args: str | list[str], label: str, *, shell: bool = False) -> int:
        try:
            completed = subprocess.run(args, shell=shell, check=False)
        except FileNotFoundError as exc:
            raise CommandNotFoundError(f"command not found: {label}") from exc

        status = exit_status(completed.returncode)
        if status == 0:
            return status
        if completed.returncode < 0:
            name = signal.Signals(-completed.returncode).name
            message = f"Command {label} was killed with {name}"
        else:
            message = f"Command failed: {label} (exit code {status})"
        raise ChildProcessError(message, exit_code=status, operational=True)
