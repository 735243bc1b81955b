"""Infrastructure: Node.js runtime detection and platform guidance.

This module locates the ``node`` binary used to run package scripts
and provides platform-specific installation guidance when it is
missing.

Rules
-----
* Detection via ``$NPX_WRAP_NODE`` or :func:`shutil.which` only.
* No automatic installation.
* No ``print()``; callers handle user-facing output.
"""

from __future__ import annotations

import os
import platform
import shutil

from npx_wrap.exceptions import EnvironmentError

NODE_ENV_VAR: str = "NPX_WRAP_NODE"
"""Environment variable naming an explicit Node.js binary."""


def node_binary() -> str:
    """Locate the Node.js runtime or raise :class:`EnvironmentError`."""
    configured = os.environ.get(NODE_ENV_VAR)
    if configured:
        return configured

    found = shutil.which("node")
    if found is not None:
        return found

    hint_lines = ["Install Node.js using one of:"]
    hint_lines.extend(f"  {cmd}" for cmd in _platform_install_commands())
    raise EnvironmentError(
        "Node.js is not installed or not on PATH.",
        hint="\n".join(hint_lines),
    )


def _platform_install_commands() -> tuple[str, ...]:
    """Return install commands appropriate for the current OS."""
    system = platform.system().lower()
    if system == "windows":
        return (
            "winget install OpenJS.NodeJS.LTS",
            "choco install nodejs-lts",
        )
    if system == "linux":
        return (
            "sudo apt install nodejs npm",
            "sudo dnf install nodejs",
            "sudo pacman -S nodejs npm",
        )
    if system == "darwin":
        return ("brew install node",)
    return ("Download Node.js from https://nodejs.org/",)
