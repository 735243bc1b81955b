"""npm backed implementation of :class:`~npx_wrap.core.protocols.PackageManager`.

This module is the **only** place in the codebase that runs the package
manager.  A failed install is re-raised as
:class:`~npx_wrap.exceptions.InstallFailureError` and a failed query as
:class:`~npx_wrap.exceptions.EnvironmentError`, both carrying npm's own
exit code. Nothing raw escapes the infrastructure boundary.
"""

from __future__ import annotations

import os
import subprocess
from collections.abc import Callable, Sequence
from pathlib import Path

from npx_wrap.core.arguments import RUN_ENV_ARGS, config_get_args, install_args
from npx_wrap.core.models import CommandRequest
from npx_wrap.exceptions import EnvironmentError, InstallFailureError
from npx_wrap.infra.process_runner import escape_arg, format_command


class NpmPackageManager:
    """Concrete :class:`PackageManager` that shells out to npm.

    Usage::

        npm = NpmPackageManager("npm", userconfig="/tmp/npmrc")
        cache = npm.config_get("cache").strip()

    Parameters
    ----------
    npm:
        npm executable, or the path of an ``npm-cli.js`` script.
    is_node_script:
        Decides whether *npm* must be run through the Node runtime.
    node_binary:
        Returns the Node runtime path; only called for script npms.
    userconfig:
        Forwarded as ``--userconfig``.
    quiet:
        Drop the installer's stderr instead of inheriting it.
    """

    def __init__(
        self,
        npm: str,
        *,
        is_node_script: Callable[[str], bool] = lambda _npm: False,
        node_binary: Callable[[], str] | None = None,
        userconfig: str | None = None,
        quiet: bool = False,
    ) -> None:
        self._npm: str = npm
        self._is_node_script: Callable[[str], bool] = is_node_script
        self._node_binary: Callable[[], str] | None = node_binary
        self._userconfig: str | None = userconfig
        self._quiet: bool = quiet

    @classmethod
    def from_request(
        cls,
        request: CommandRequest,
        *,
        is_node_script: Callable[[str], bool],
        node_binary: Callable[[], str],
    ) -> NpmPackageManager:
        return cls(
            request.npm,
            is_node_script=is_node_script,
            node_binary=node_binary,
            userconfig=request.userconfig,
            quiet=request.quiet,
        )

    # ------------------------------------------------------------------
    # Protocol methods
    # ------------------------------------------------------------------

    def config_get(self, key: str) -> str:
        """Return ``npm config get <key> --parseable`` output."""
        return self._capture(config_get_args(key, self._userconfig), "npm config get")

    def run_env(self) -> str:
        """Return ``npm run env --parseable`` output (``KEY=value`` lines)."""
        return self._capture(list(RUN_ENV_ARGS), "npm run env")

    def install(self, specs: Sequence[str], prefix: Path) -> str:
        """Install *specs* into *prefix*; stdout captured, stderr shown.

        Raises
        ------
        InstallFailureError
            When npm exits non-zero.  Carries npm's exit code.
        """
        argv = self._command(install_args(specs, prefix, self._userconfig))
        try:
            completed = subprocess.run(
                argv,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL if self._quiet else None,
                text=True,
                check=False,
            )
        except FileNotFoundError as exc:
            raise self._missing_npm() from exc

        if completed.returncode != 0:
            raise InstallFailureError(
                f"Install for {list(specs)} failed with code {completed.returncode}",
                hint=f"Command: {format_command(argv)}",
                exit_code=completed.returncode,
            )
        return completed.stdout or ""

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _command(self, args: list[str]) -> list[str]:
        """Prefix *args* with npm, run through Node when npm is a script."""
        if self._node_binary is not None and self._is_node_script(self._npm):
            return [self._node_binary(), self._npm, *args]
        return [self._npm, *args]

    def _capture(self, args: list[str], label: str) -> str:
        argv = self._command(args)
        try:
            completed = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                check=False,
            )
        except FileNotFoundError as exc:
            raise self._missing_npm() from exc

        if completed.returncode != 0:
            detail = completed.stderr.strip() or f"exit code {completed.returncode}"
            raise EnvironmentError(
                f"{label} failed: {detail}",
                exit_code=completed.returncode,
            )
        return completed.stdout

    def _missing_npm(self) -> EnvironmentError:
        return EnvironmentError(
            f"Could not run the package manager: {escape_arg(self._npm)}",
            hint="Install Node.js and npm, or pass --npm <path>.",
        )


def default_npm() -> str:
    """npm to use when ``--npm`` is not given.

    Inside an npm lifecycle script ``npm_execpath`` names the npm that
    launched us; otherwise plain ``npm`` from ``PATH``.
    """
    return os.environ.get("npm_execpath") or "npm"
