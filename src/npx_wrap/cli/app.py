"""CLI application entry point and command orchestration for npx-wrap.

This module is the **sole error boundary** for the entire application.
It catches :class:`~npx_wrap.exceptions.NpxWrapError`, ``KeyboardInterrupt``,
and any unexpected ``Exception``, rendering user-friendly messages via Rich
and returning well-defined exit codes.

Architecture notes
------------------
* Resolution, provisioning and execution logic live in the core and
  infrastructure layers; this module wires them together in order.
* ``print()`` is forbidden outside the CLI layer; Rich console is used
  exclusively.
* This module is the only place that translates between the domain world
  and the OS process exit code.
"""

from __future__ import annotations

import argparse
import os
import sys
import time
from concurrent.futures import ThreadPoolExecutor
from contextlib import ExitStack
from pathlib import Path

from npx_wrap.cli import exit_codes
from npx_wrap.cli.console import console, escape
from npx_wrap.core.models import CommandRequest
from npx_wrap.core.protocols import PackageManager
from npx_wrap.exceptions import ChildProcessError, NpxWrapError, UserDeclinedError
from npx_wrap.version import __version__


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    """Construct the top-level argument parser.

    Options must come before the command.  The command's own arguments
    never reach this parser; see :func:`_parse_args`.
    """
    from npx_wrap.infra.npm_provider import default_npm

    parser = argparse.ArgumentParser(
        prog="npx-wrap",
        usage="%(prog)s [options] <command>[@version] [command-arg]...",
        description="Execute binaries from npm packages, installing them on demand.",
        allow_abbrev=False,
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-p",
        "--package",
        action="append",
        metavar="SPEC",
        help="Package to install before running; may be repeated.",
    )
    parser.add_argument(
        "-c",
        "--call",
        metavar="STRING",
        help="Run a string through the shell, with npm run-script variables.",
    )
    parser.add_argument("-y", "--yes", action="store_true", help="Install without asking.")
    parser.add_argument("--no", action="store_true", help="Never install; fail instead.")
    parser.add_argument(
        "--no-install",
        action="store_true",
        help="Only run commands already on PATH (exit 127 otherwise).",
    )
    parser.add_argument(
        "--ignore-existing",
        action="store_true",
        help="Install even when the command is already on PATH.",
    )
    parser.add_argument("-q", "--quiet", action="store_true", help="Suppress npx-wrap output.")
    parser.add_argument(
        "--npm",
        default=default_npm(),
        help="npm executable to use for installs (default: %(default)s).",
    )
    parser.add_argument(
        "--userconfig",
        default=os.environ.get("npm_config_userconfig") or None,
        help="Path to an alternate npm user config.",
    )
    parser.add_argument(
        "--cache",
        default=os.environ.get("npm_config_cache") or None,
        help="npm cache directory; asked from npm when omitted.",
    )
    parser.add_argument(
        "--always-spawn",
        action="store_true",
        help="Always run in a child process, never take over this one.",
    )
    parser.add_argument(
        "-n",
        "--node-arg",
        action="append",
        metavar="FLAGS",
        help="Extra Node.js flags, e.g. -n '--inspect --harmony'; may be repeated.",
    )
    parser.add_argument("--shell", help="Shell to run the command with.")
    parser.add_argument("command", nargs="?", default=None, help=argparse.SUPPRESS)
    return parser


def _parse_args(parser: argparse.ArgumentParser, argv: list[str]) -> argparse.Namespace:
    """Parse npx-wrap's options; keep the command's arguments verbatim.

    argparse would drop a ``--`` meant for the command, so the argument
    list is cut at the command before parsing.
    """
    from npx_wrap.cli.request_builder import split_argv

    own, cmd_args = split_argv(argv)
    args = parser.parse_args(own)
    args.cmd_args = cmd_args
    return args


# ---------------------------------------------------------------------------
# Command orchestration
# ---------------------------------------------------------------------------

def _find_and_gather(
    request: CommandRequest,
    npm: PackageManager,
    *,
    in_project: bool,
) -> tuple[str | None, dict[str, str] | None]:
    """Run the existence check and the env gathering side by side.

    Both finish before either failure is raised.
    """
    from npx_wrap.infra.lifecycle_env import gather_env
    from npx_wrap.infra.path_lookup import find_on_search_path

    with ThreadPoolExecutor(max_workers=2) as pool:
        existing_future = (
            pool.submit(find_on_search_path, request.command, request)
            if request.command
            else None
        )
        env_future = (
            pool.submit(gather_env, npm)
            if request.call_mode and in_project
            else None
        )
        futures = [f for f in (existing_future, env_future) if f is not None]
        for future in futures:
            future.exception()

    existing = existing_future.result() if existing_future is not None else None
    env = env_future.result() if env_future is not None else None
    return existing, env


def _provision(
    request: CommandRequest,
    npm: PackageManager,
    cleanup: ExitStack,
    existing: str | None,
    started: float,
) -> str | None:
    """Install the requested packages and return the command to run."""
    from npx_wrap.cli.install_prompt import confirm_install
    from npx_wrap.core.arguments import select_installed_bin
    from npx_wrap.core.provision_service import ProvisionService
    from npx_wrap.exceptions import CommandNotFoundError
    from npx_wrap.infra.ephemeral_prefix import acquire_prefix
    from npx_wrap.infra.path_lookup import prepend_to_path

    packages = list(request.packages)
    if request.install is False:
        raise CommandNotFoundError(f"{' '.join(packages)} is not found")
    if request.install is None and not confirm_install(packages):
        raise UserDeclinedError("Cancelled")

    service = ProvisionService(npm, acquire_prefix, prepend_to_path)
    outcome = service.ensure(packages, request, cleanup.callback)

    if outcome.report is not None and not request.quiet:
        elapsed = time.monotonic() - started
        console.print(f"npx-wrap: installed {outcome.installed} in {elapsed:.3f}s")

    if request.command and not existing and not request.package_requested and len(packages) == 1:
        try:
            entries = [entry.name for entry in outcome.bin.iterdir()]
        except FileNotFoundError as exc:
            raise CommandNotFoundError(f"command not found: {request.command}") from exc
        chosen = select_installed_bin(request.command, entries, windows=os.name == "nt")
        return str(outcome.bin / chosen)
    return existing


def _handle_command(request: CommandRequest) -> int:
    """Resolve, provision if needed, and run the requested command.

    Flow:
    1. Put the local project's ``node_modules/.bin`` on PATH.
    2. Check for an existing command (and gather the run-script env in
       call mode) concurrently.
    3. Provision packages when the command is missing or ``-p`` was given.
    4. Hand execution over to the command.

    The ephemeral prefix is released when the ``ExitStack`` closes, on
    every exit path.
    """
    from npx_wrap.core.execution_service import ExecutionEngine
    from npx_wrap.infra.lifecycle_env import apply_env
    from npx_wrap.infra.node_runtime import node_binary
    from npx_wrap.infra.npm_provider import NpmPackageManager
    from npx_wrap.infra.path_lookup import local_bin_path, prepend_to_path
    from npx_wrap.infra.process_runner import SubprocessRunner
    from npx_wrap.infra.script_resolver import FileScriptResolver

    started = time.monotonic()
    resolver = FileScriptResolver()
    npm = NpmPackageManager.from_request(
        request,
        is_node_script=lambda path: resolver.resolve(path, is_local=True).is_script,
        node_binary=node_binary,
    )

    local_bin = local_bin_path(Path.cwd())
    if local_bin is not None:
        prepend_to_path(local_bin)

    existing, env = _find_and_gather(request, npm, in_project=local_bin is not None)
    if env:
        apply_env(env)

    with ExitStack() as cleanup:
        prefix_held = False
        if (not existing and not request.call_mode) or request.package_requested:
            existing = _provision(request, npm, cleanup, existing, started)
            prefix_held = True

        engine = ExecutionEngine(
            SubprocessRunner(),
            resolver,
            node_binary,
            running_script=Path(os.path.abspath(sys.argv[0])) if sys.argv[0] else None,
        )
        outcome = engine.execute(existing, request, prefix_held=prefix_held)
    return outcome.exit_code


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------

def _report(exc: NpxWrapError) -> None:
    console.print(f"[bold red]Error:[/bold red] {escape(exc)}")
    if exc.hint:
        console.print(f"[yellow]Hint:[/yellow] {escape(exc.hint)}")


def main(argv: list[str] | None = None) -> int:
    """Run the npx-wrap CLI.

    Parameters
    ----------
    argv:
        Explicit argument list.  When ``None`` (default), ``sys.argv[1:]``
        is used.  Accepting *argv* enables deterministic testing without
        monkeypatching.

    Returns
    -------
    int
        OS process exit code.
    """
    from npx_wrap.cli.request_builder import build_request
    from npx_wrap.exceptions import UsageError

    parser = _build_parser()
    args = _parse_args(parser, sys.argv[1:] if argv is None else list(argv))
    quiet: bool = args.quiet

    try:
        request = build_request(args)
        return _handle_command(request)
    except ChildProcessError as exc:
        if exc.operational and exc.exit_code:
            return exc.exit_code
        if not quiet:
            _report(exc)
        return exc.exit_code or exit_codes.GENERAL_ERROR
    except UserDeclinedError as exc:
        if not quiet:
            console.print(escape(exc))
        return exit_codes.GENERAL_ERROR
    except UsageError as exc:
        if not quiet:
            _report(exc)
            parser.print_usage(sys.stderr)
        return exc.exit_code or exit_codes.GENERAL_ERROR
    except NpxWrapError as exc:
        if not quiet:
            _report(exc)
        return exc.exit_code or exit_codes.GENERAL_ERROR
    except KeyboardInterrupt:
        if not quiet:
            console.print("\n[yellow]Aborted by user.[/yellow]")
        return exit_codes.KEYBOARD_INTERRUPT
    except Exception as exc:  # noqa: BLE001
        if not quiet:
            console.print(
                "[bold red]Unexpected error.[/bold red] "
                f"{escape(type(exc).__name__)}: {escape(exc)}"
            )
        return exit_codes.GENERAL_ERROR


# ---------------------------------------------------------------------------
# Script-level entry point
# ---------------------------------------------------------------------------

def cli() -> None:
    """Console-script entry point: run :func:`main` and exit with its code."""
    sys.exit(main())
