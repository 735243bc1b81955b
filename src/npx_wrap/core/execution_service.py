"""Core execution engine — decides between process takeover and spawning.

Decision table
--------------
* Call mode: run the call string through the shell.  Call mode never
  resolves a script, so ``--node-arg`` is a usage error there.
* Node script, no ``--always-spawn``, no ``--node-arg``, no ``--shell``,
  not the running script: take over the current process with
  ``[node, script, *args]``.
* No script but ``--node-arg`` given: usage error.
* Otherwise spawn ``[node, *node_flags, script, *args]`` for a script,
  or ``[command, *args]`` for anything else.

Takeover is a terminal state: where the platform cannot replace the
process image, or an ephemeral prefix is still held and would never be
released after an exec, the engine spawns instead and forwards the
child's exit code.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from npx_wrap.core.arguments import script_argv
from npx_wrap.core.models import CommandRequest, ExecutionOutcome, ResolvedTarget
from npx_wrap.core.protocols import ProcessRunner, ScriptResolver
from npx_wrap.exceptions import ChildProcessError, UsageError

_NODE_ARGS_WITHOUT_SCRIPT = "--node-arg/-n can only be used on packages with node scripts."

class ExecutionEngine:
    """Runs the resolved command for one invocation.

    Parameters
    ----------
    runner:
        Starts child processes and performs the process takeover.
    resolver:
        Classifies the existing path as a Node script or not.
    node_binary:
        Returns the Node.js runtime path.  Called lazily, only when a
        script is actually run, so plain binaries never need Node.
    running_script:
        The script currently executing, which must never take itself over.
    """

    def __init__(
        self,
        runner: ProcessRunner,
        resolver: ScriptResolver,
        node_binary: Callable[[], str],
        *,
        running_script: Path | None = None,
    ) -> None:
        self._runner = runner
        self._resolver = resolver
        self._node_binary = node_binary
        self._running_script = running_script

    # ------------------------------------------------------------------
    # Decisions (pure)
    # ------------------------------------------------------------------

    def can_take_over(
        self,
        target: ResolvedTarget,
        request: CommandRequest,
        *,
        prefix_held: bool = False,
    ) -> bool:
        """Whether *target* may replace the current process."""
        if not target.is_script or target.path is None:
            return False
        if request.always_spawn or request.node_args or request.shell:
            return False
        if self._running_script is not None and target.path == self._running_script:
            return False
        return self._runner.can_take_over and not prefix_held

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def execute(
        self,
        existing: str | Path | None,
        request: CommandRequest,
        *,
        prefix_held: bool = False,
    ) -> ExecutionOutcome:
        """Run *existing* (or the bare command) and return its outcome.

        Raises
        ------
        UsageError
            When ``--node-arg`` is used without a Node script to run.
        CommandNotFoundError
            When a local package directory does not resolve to a script.
        ChildProcessError
            When spawning fails for a non-operational reason.
        """
        try:
            if request.call is not None:
                if request.node_args:
                    raise UsageError(_NODE_ARGS_WITHOUT_SCRIPT)
                return ExecutionOutcome(self._runner.spawn_shell(request.call, request))
            return self._execute_command(existing, request, prefix_held=prefix_held)
        except ChildProcessError as exc:
            if exc.operational and exc.exit_code:
                # The child already reported its failure.
                return ExecutionOutcome(exc.exit_code)
            raise

    def _execute_command(
        self,
        existing: str | Path | None,
        request: CommandRequest,
        *,
        prefix_held: bool,
    ) -> ExecutionOutcome:
        target = self._resolver.resolve(existing, is_local=request.is_local)

        if target.is_script and target.path is not None:
            node = self._node_binary()
            if self.can_take_over(target, request, prefix_held=prefix_held):
                self._runner.take_over(script_argv(node, target.path, request.cmd_args))
                return ExecutionOutcome(0, was_process_takeover=True)
            argv = script_argv(node, target.path, request.cmd_args, request.node_args)
            return ExecutionOutcome(self._runner.spawn(argv, request))

        if request.node_args:
            raise UsageError(_NODE_ARGS_WITHOUT_SCRIPT)

        command = str(existing) if existing else request.command
        if not command:
            raise UsageError("You must supply a command.")
        return ExecutionOutcome(self._runner.spawn([command, *request.cmd_args], request))
