"""Core provisioning service — installs packages into an ephemeral prefix.

The service delegates every side effect to collaborators injected at
construction time:

* a :class:`~npx_wrap.core.protocols.PackageManager` for the cache query
  and the install itself;
* a :class:`~npx_wrap.core.protocols.PrefixFactory` that creates the
  prefix and registers its removal;
* a callable that splices a directory onto the front of ``PATH``.

Guarantees
----------
* The prefix is registered for removal before the install starts.
* Install failures propagate unchanged; nothing is retried.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

from npx_wrap.core.models import CommandRequest, InstallOutcome
from npx_wrap.core.protocols import PackageManager, PrefixFactory
from npx_wrap.exceptions import EnvironmentError, UsageError


class ProvisionService:
    """Ensures package specifiers are installed for this invocation only.

    Parameters
    ----------
    package_manager:
        Any object satisfying the :class:`PackageManager` protocol.
    prefix_factory:
        Creates ``<cache>/_npx/<pid>`` and registers its cleanup.
    prepend_path:
        Called with the prefix's bin directory once the install succeeds.
    """

    def __init__(
        self,
        package_manager: PackageManager,
        prefix_factory: PrefixFactory,
        prepend_path: Callable[[Path], None],
    ) -> None:
        self._package_manager: PackageManager = package_manager
        self._prefix_factory: PrefixFactory = prefix_factory
        self._prepend_path: Callable[[Path], None] = prepend_path

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def cache_root(self, request: CommandRequest) -> Path:
        """Return the npm cache directory, asking npm when not configured."""
        if request.cache:
            return Path(request.cache)
        cache = self._package_manager.config_get("cache").strip()
        if not cache:
            raise EnvironmentError(
                "Could not determine the npm cache directory.",
                hint="Pass --cache <dir> to choose one explicitly.",
            )
        return Path(cache)

    def ensure(
        self,
        specs: Sequence[str],
        request: CommandRequest,
        defer: Callable[[Callable[[], None]], object],
    ) -> InstallOutcome:
        """Install *specs* into a fresh ephemeral prefix.

        Parameters
        ----------
        specs:
            Package specifiers, installed in one package-manager call.
        request:
            The invocation; supplies the cache override.
        defer:
            Registers a cleanup callback for the end of the invocation,
            e.g. :meth:`contextlib.ExitStack.callback`.

        Raises
        ------
        UsageError
            When *specs* is empty.
        InstallFailureError
            When the package manager exits non-zero.
        """
        if not specs:
            raise UsageError("You must supply a package to install.")

        prefix = self._prefix_factory(self.cache_root(request), defer)
        stdout = self._package_manager.install(specs, prefix.root)

        # Provisioned binaries outrank even the local project's.
        self._prepend_path(prefix.bin)

        report = parse_install_report(stdout)
        if report is None:
            return InstallOutcome(prefix=prefix.root, bin=prefix.bin)
        return InstallOutcome(
            prefix=prefix.root,
            bin=prefix.bin,
            added=_count(report.get("added")),
            updated=_count(report.get("updated")),
            report=report,
        )


# ---------------------------------------------------------------------------
# Report parsing (pure)
# ---------------------------------------------------------------------------

def parse_install_report(stdout: str | None) -> dict[str, Any] | None:
    """Parse the installer's JSON report, or return ``None`` when absent.

    Installers that print human-readable text (or nothing) simply have
    no report; that is not an error.
    """
    if not stdout or not stdout.strip():
        return None
    try:
        report = json.loads(stdout)
    except ValueError:
        return None
    if not isinstance(report, dict):
        return None
    return report


def _count(value: object) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, (list, tuple)):
        return len(value)
    return 0
