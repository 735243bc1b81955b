"""Protocols (interfaces) consumed by the core layer.

These define the contracts that infrastructure adapters must satisfy.
Core code depends ONLY on these protocols — never on concrete
implementations — preserving the dependency inversion principle.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Protocol

from npx_wrap.core.models import CommandRequest, EphemeralPrefix, ResolvedTarget


class ScriptResolver(Protocol):
    """Contract for classifying a path as a Node script or not."""

    def resolve(self, candidate: str | Path | None, *, is_local: bool = False) -> ResolvedTarget:
        """Return what *candidate* points at.

        Raises
        ------
        CommandNotFoundError
            When *candidate* is a local package directory that does not
            lead to a script.
        """
        ...  # pragma: no cover


class PackageManager(Protocol):
    """Contract for the npm-compatible package-manager invoker."""

    def config_get(self, key: str) -> str:
        """Return the raw stdout of ``npm config get <key> --parseable``.

        Raises
        ------
        EnvironmentError
            When the package manager exits non-zero.
        """
        ...  # pragma: no cover

    def install(self, specs: Sequence[str], prefix: Path) -> str:
        """Install *specs* into *prefix* and return the captured stdout.

        Raises
        ------
        InstallFailureError
            When the package manager exits non-zero.  The exception's
            ``exit_code`` carries the installer's own status.
        """
        ...  # pragma: no cover

    def run_env(self) -> str:
        """Return the lifecycle-script environment as ``KEY=value`` lines.

        Raises
        ------
        EnvironmentError
            When the package manager exits non-zero.
        """
        ...  # pragma: no cover


class PrefixFactory(Protocol):
    """Contract for acquiring the process-scoped ephemeral prefix.

    The factory creates the directory and registers its removal with
    *defer* before returning, so a crash in any later step still
    releases it.
    """

    def __call__(
        self,
        cache_root: Path,
        defer: Callable[[Callable[[], None]], object],
    ) -> EphemeralPrefix:
        ...  # pragma: no cover


class ProcessRunner(Protocol):
    """Contract for starting the final command."""

    def spawn(self, argv: Sequence[str], request: CommandRequest) -> int:
        """Run *argv* as a child process and return its exit status.

        Raises
        ------
        ChildProcessError
            When the child exits non-zero or dies from a signal.
        """
        ...  # pragma: no cover

    def spawn_shell(self, command: str, request: CommandRequest) -> int:
        """Run *command* through the shell and return its exit status."""
        ...  # pragma: no cover

    def take_over(self, argv: Sequence[str]) -> None:
        """Replace the current process image with *argv*.

        Returns only when the replacement could not happen.
        """
        ...  # pragma: no cover

    @property
    def can_take_over(self) -> bool:
        """Whether the platform supports replacing the process image."""
        ...  # pragma: no cover
