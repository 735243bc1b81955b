"""Domain models for npx-wrap.

All models are **frozen** dataclasses — immutable value objects with no
behaviour beyond data access.  They carry zero I/O and zero dependencies
on external packages.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


# ---------------------------------------------------------------------------
# Invocation request
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class CommandRequest:
    """Everything one invocation was asked to do.

    Built once by the argument parser and never mutated afterwards.
    """

    command: str | None = None
    """Command (or local path) to run.  ``None`` only in call mode."""

    packages: tuple[str, ...] = ()
    """Package specifiers to provision, in the order given."""

    cmd_args: tuple[str, ...] = ()
    """Arguments passed through verbatim to the command."""

    call: str | None = None
    """Shell string to run in call mode (``-c``)."""

    is_local: bool = False
    """The command names an existing local path; trusted without lookup."""

    install: bool | None = None
    """``True`` install without asking, ``False`` never install, ``None`` ask."""

    quiet: bool = False
    """Suppress informational output and error messages."""

    node_args: tuple[str, ...] = ()
    """Extra Node.js flags; each entry may hold several whitespace-separated flags."""

    always_spawn: bool = False
    """Never take over the current process, always spawn a child."""

    ignore_existing: bool = False
    """Skip the existing-command short-circuit."""

    package_requested: bool = False
    """Packages were named explicitly with ``--package``."""

    cmd_had_version: bool = False
    """The command carried an ``@version`` suffix."""

    shell: str | None = None
    """Shell used to run the call string; ``None`` means the platform default."""

    npm: str = "npm"
    """Package-manager executable (or npm-cli.js script)."""

    userconfig: str | None = None
    """Alternate npm user configuration file."""

    cache: str | None = None
    """npm cache directory; queried from npm when absent."""

    @property
    def call_mode(self) -> bool:
        return self.call is not None


# ---------------------------------------------------------------------------
# Resolution result
# ---------------------------------------------------------------------------

class TargetKind(enum.Enum):
    """Discriminator for :class:`ResolvedTarget`."""

    NOT_FOUND = "not-found"
    BINARY = "binary"
    INTERPRETER_SCRIPT = "interpreter-script"
    DIRECTORY_PACKAGE = "directory-package"


@dataclass(frozen=True, slots=True)
class ResolvedTarget:
    """Tagged result of resolving a path to something executable."""

    kind: TargetKind
    path: Path | None = None

    @classmethod
    def not_found(cls) -> ResolvedTarget:
        return cls(TargetKind.NOT_FOUND)

    @classmethod
    def binary(cls, path: Path) -> ResolvedTarget:
        return cls(TargetKind.BINARY, path)

    @classmethod
    def script(cls, path: Path) -> ResolvedTarget:
        return cls(TargetKind.INTERPRETER_SCRIPT, path)

    @classmethod
    def package(cls, manifest_path: Path) -> ResolvedTarget:
        return cls(TargetKind.DIRECTORY_PACKAGE, manifest_path)

    @property
    def is_script(self) -> bool:
        return self.kind is TargetKind.INTERPRETER_SCRIPT

    def __bool__(self) -> bool:
        return self.kind is not TargetKind.NOT_FOUND


# ---------------------------------------------------------------------------
# Provisioning
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class EphemeralPrefix:
    """Process-scoped install root, ``<cache>/_npx/<pid>``."""

    root: Path
    """Directory handed to ``npm install --dir``."""

    bin: Path
    """Directory npm links package binaries into."""

    owner_pid: int
    """Process that created (and will remove) the prefix."""


@dataclass(frozen=True, slots=True)
class InstallOutcome:
    """Result of a successful provisioning run.

    ``report`` is the package manager's parsed JSON output, or ``None``
    when it emitted nothing machine-readable.  The counts are zero in
    that case.
    """

    prefix: Path
    bin: Path
    added: int = 0
    updated: int = 0
    report: dict[str, Any] | None = field(default=None, compare=False)

    @property
    def installed(self) -> int:
        return self.added + self.updated


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class ExecutionOutcome:
    """Terminal value of one invocation."""

    exit_code: int
    was_process_takeover: bool = False
