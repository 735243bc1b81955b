"""Interactive install confirmation for the CLI layer.

Asked only when installation is neither forced (``--yes``) nor
forbidden (``--no`` / ``--no-install``).
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from npx_wrap.exceptions import EnvironmentError


def _import_questionary() -> Any:
    """Import questionary lazily for interactive confirmation."""
    try:
        import questionary
    except ModuleNotFoundError as exc:
        raise EnvironmentError(
            "questionary is not installed. Install with: pip install questionary",
            hint="Or pass --yes to install without asking.",
        ) from exc
    return questionary


def build_question(packages: Sequence[str]) -> str:
    """Build the confirmation question for *packages*."""
    noun = "package" if len(packages) == 1 else "packages"
    return f"Install the following {noun}: {', '.join(packages)}?"


def confirm_install(packages: Sequence[str]) -> bool:
    """Ask the user whether *packages* may be installed.

    Returns
    -------
    bool
        ``True`` to proceed.  Escape / Ctrl+C inside the prompt count
        as a refusal.
    """
    questionary = _import_questionary()
    answer: bool | None = questionary.confirm(
        build_question(packages),
        default=True,
    ).ask()  # Returns None on Ctrl+C / Esc
    return bool(answer)
