"""Translate parsed command-line options into a :class:`CommandRequest`.

Pure functions: the argparse namespace comes in, an immutable request
goes out.  All flag-combination checks live here so the rest of the
application only ever sees a valid request.
"""

from __future__ import annotations

import argparse
import re
import shlex
from dataclasses import dataclass

from npx_wrap.core.models import CommandRequest
from npx_wrap.exceptions import UsageError

# ./bin/cli.js  ../tool  /opt/tool  C:\tool  .
_LOCAL_PATH = re.compile(r"^(?:\.{1,2}(?:[\\/]|$)|[\\/]|[a-zA-Z]:[\\/])")

# name@1.2.3   @scope/name@^2   @scope/name
_PACKAGE_SPEC = re.compile(r"^(?P<scope>@[^/@]+/)?(?P<name>[^@/]+)(?:@(?P<version>.+))?$")


# Options that consume the following token as their value.
VALUE_OPTIONS: frozenset[str] = frozenset(
    {
        "-p", "--package",
        "-c", "--call",
        "-n", "--node-arg",
        "--npm", "--userconfig", "--cache", "--shell",
    }
)


def split_argv(argv: list[str]) -> tuple[list[str], list[str]]:
    """Split *argv* into npx-wrap's own options and the command's arguments.

    The first token that is neither an option nor an option's value is
    the command.  It ends the first list; everything after it is the
    second list, untouched (a literal ``--`` included).  A ``--`` before
    the command only ends option parsing.
    """
    index = 0
    while index < len(argv):
        token = argv[index]
        if token == "--":
            return argv[: index + 2], argv[index + 2 :]
        if not token.startswith("-") or token == "-":
            return argv[: index + 1], argv[index + 1 :]
        if token in VALUE_OPTIONS:
            index += 2
        else:
            index += 1
    return list(argv), []


@dataclass(frozen=True, slots=True)
class CommandSpec:
    """A command as typed by the user, split into its parts."""

    command: str
    package: str
    had_version: bool
    is_local: bool


def parse_command_spec(raw: str) -> CommandSpec:
    """Split ``name[@version]`` (or a local path) into its parts.

    ``cowsay@1.4`` runs ``cowsay`` from package ``cowsay@1.4``;
    ``@scope/tool`` runs ``tool`` from package ``@scope/tool``; anything
    that looks like a filesystem path is local and never installed.
    """
    if _LOCAL_PATH.match(raw):
        return CommandSpec(command=raw, package=raw, had_version=False, is_local=True)

    match = _PACKAGE_SPEC.match(raw)
    if match is None:
        # git URLs, tarballs and other specs npm understands
        return CommandSpec(command=raw, package=raw, had_version=False, is_local=False)
    return CommandSpec(
        command=match.group("name"),
        package=raw,
        had_version=match.group("version") is not None,
        is_local=False,
    )


def install_choice(yes: bool, no: bool, no_install: bool) -> bool | None:
    """Collapse ``--yes`` / ``--no`` / ``--no-install`` into one tri-state."""
    if yes and (no or no_install):
        raise UsageError("--yes cannot be combined with --no or --no-install.")
    if yes:
        return True
    if no or no_install:
        return False
    return None


def build_request(args: argparse.Namespace) -> CommandRequest:
    """Build the immutable request for one invocation.

    Raises
    ------
    UsageError
        When neither a command nor ``--call`` is given, or when flags
        contradict each other.
    """
    install = install_choice(args.yes, args.no, args.no_install)
    packages: list[str] = list(args.package or [])
    cmd_args = tuple(args.cmd_args or ())

    if args.call is not None:
        try:
            words = shlex.split(args.call)
        except ValueError as exc:
            raise UsageError(f"Could not parse --call string: {exc}") from exc
        if not words:
            raise UsageError("--call needs a command string.")
        command = args.command or words[0]
        spec = parse_command_spec(command)
        return CommandRequest(
            command=spec.command,
            packages=tuple(packages),
            cmd_args=cmd_args,
            call=args.call,
            is_local=spec.is_local,
            install=install,
            quiet=args.quiet,
            node_args=tuple(args.node_arg or ()),
            always_spawn=args.always_spawn,
            ignore_existing=args.ignore_existing,
            package_requested=bool(packages),
            shell=args.shell,
            npm=args.npm,
            userconfig=args.userconfig,
            cache=args.cache,
        )

    if not args.command:
        raise UsageError("You must supply a command.")

    spec = parse_command_spec(args.command)
    package_requested = bool(packages)
    if not packages and not spec.is_local:
        packages = [spec.package]

    return CommandRequest(
        command=spec.command,
        packages=tuple(packages),
        cmd_args=cmd_args,
        is_local=spec.is_local,
        install=install,
        quiet=args.quiet,
        node_args=tuple(args.node_arg or ()),
        always_spawn=args.always_spawn,
        ignore_existing=args.ignore_existing,
        package_requested=package_requested,
        cmd_had_version=spec.had_version,
        shell=args.shell,
        npm=args.npm,
        userconfig=args.userconfig,
        cache=args.cache,
    )
