"""Pure argument composition for the package manager and the child process.

Rules
-----
* No I/O and no environment access; every input is passed in.
* Returned argument vectors are plain ``list[str]`` ready for
  :mod:`subprocess` or :func:`os.execv`.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from pathlib import Path

from npx_wrap.exceptions import CommandNotFoundError

_WINDOWS_BIN_NOISE: frozenset[str] = frozenset({"etc", "node_modules"})


# ---------------------------------------------------------------------------
# Node flags
# ---------------------------------------------------------------------------

def split_node_args(node_args: str | Iterable[str] | None) -> list[str]:
    """Normalise ``--node-arg`` values into individual flags.

    A single value may encode several flags separated by whitespace, so
    ``"--inspect --harmony"`` and ``["--inspect", "--harmony"]`` produce
    the same result.
    """
    if node_args is None:
        return []
    if isinstance(node_args, str):
        node_args = [node_args]
    flags: list[str] = []
    for value in node_args:
        flags.extend(value.split())
    return flags


def script_argv(
    node: str,
    script: Path,
    cmd_args: Sequence[str],
    node_args: str | Iterable[str] | None = None,
) -> list[str]:
    """Build ``[node, *node_flags, script, *cmd_args]``."""
    return [node, *split_node_args(node_args), str(script), *cmd_args]


# ---------------------------------------------------------------------------
# Package manager
# ---------------------------------------------------------------------------

def config_get_args(key: str, userconfig: str | None = None) -> list[str]:
    """Arguments for ``npm config get <key>``."""
    args = ["config", "get", key, "--parseable"]
    if userconfig:
        args.extend(["--userconfig", userconfig])
    return args


def install_args(
    specs: Sequence[str],
    prefix: Path,
    userconfig: str | None = None,
) -> list[str]:
    """Arguments for installing *specs* globally into *prefix*."""
    args = ["install", *specs, "--global", "--dir", str(prefix)]
    if userconfig:
        args.extend(["--userconfig", userconfig])
    return args


RUN_ENV_ARGS: tuple[str, ...] = ("run", "env", "--parseable")


# ---------------------------------------------------------------------------
# Installed binary selection
# ---------------------------------------------------------------------------

def select_installed_bin(
    command: str,
    entries: Iterable[str],
    *,
    windows: bool = False,
) -> str:
    """Pick the binary for *command* among the entries of a bin directory.

    A case-insensitive ``<command>`` (or ``<command>.cmd``) match wins.
    Without one, a single candidate is accepted as the package's only
    binary; several unmatched candidates are ambiguous.

    Raises
    ------
    CommandNotFoundError
        When there are no candidates, or several and none matches.
    """
    candidates = sorted(entries)
    if windows:
        candidates = [entry for entry in candidates if entry not in _WINDOWS_BIN_NOISE]
    if not candidates:
        raise CommandNotFoundError(f"command not found: {command}")

    pattern = re.compile(rf"^{re.escape(command)}(?:\.cmd)?$", re.IGNORECASE)
    for entry in candidates:
        if pattern.match(entry):
            return entry

    if len(candidates) == 1:
        return candidates[0]
    raise CommandNotFoundError(
        f"command not found: {command}",
        hint=f"The installed packages provide: {', '.join(candidates)}",
    )
