"""Infrastructure: command lookup on PATH and PATH precedence.

This module locates commands on the executable search path, finds the
enclosing npm project's ``node_modules/.bin`` and splices directories
onto the front of ``PATH`` for the rest of the process.

Rules
-----
* Lookup via :func:`shutil.which` only, no subprocess.
* ``PATH`` changes last for the current process only.
* No ``print()``; callers handle user-facing output.
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path

from npx_wrap.core.models import CommandRequest
from npx_wrap.exceptions import CommandNotFoundError

COMMAND_NOT_FOUND: int = 127
"""Shell convention for a command missing from ``PATH``."""


# ---------------------------------------------------------------------------
# Existence check
# ---------------------------------------------------------------------------

def find_on_search_path(command: str, request: CommandRequest) -> str | None:
    """Return the path *command* already resolves to, if any.

    * Local paths are trusted as-is, without a lookup.
    * Versioned commands, explicit ``--package`` requests and
      ``--ignore-existing`` skip the lookup and report ``None``.
    * A command absent from ``PATH`` reports ``None`` so that the caller
      can fall back to installing it, unless installation was disabled,
      which raises :class:`CommandNotFoundError` with exit code 127.

    Any other lookup failure (an unreadable ``PATH`` entry, for example)
    propagates unchanged.
    """
    if request.is_local:
        return command
    if request.cmd_had_version or request.package_requested or request.ignore_existing:
        return None

    found = shutil.which(command)
    if found is not None:
        return found
    if request.install is False:
        raise CommandNotFoundError(
            f"command not found: {command}",
            exit_code=COMMAND_NOT_FOUND,
        )
    return None


# ---------------------------------------------------------------------------
# Local project binaries
# ---------------------------------------------------------------------------

def find_project_prefix(cwd: Path) -> Path | None:
    """Return the nearest ancestor of *cwd* that is an npm project root.

    A directory counts when it holds ``package.json`` or ``node_modules``.
    """
    current = cwd.resolve()
    for directory in (current, *current.parents):
        if (directory / "package.json").is_file() or (directory / "node_modules").is_dir():
            return directory
    return None


def local_bin_path(cwd: Path) -> Path | None:
    """Return ``<project>/node_modules/.bin`` for the project around *cwd*."""
    prefix = find_project_prefix(cwd)
    if prefix is None:
        return None
    return prefix / "node_modules" / ".bin"


# ---------------------------------------------------------------------------
# PATH mutation
# ---------------------------------------------------------------------------

def prepend_to_path(directory: Path) -> None:
    """Put *directory* ahead of every existing ``PATH`` entry."""
    current = os.environ.get("PATH")
    os.environ["PATH"] = (
        f"{directory}{os.pathsep}{current}" if current else str(directory)
    )
