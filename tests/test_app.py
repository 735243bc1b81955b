"""End-to-end tests for the CLI orchestration (cli/app.py).

Strategy
--------
* ``PATH`` points at a directory under ``tmp_path`` we control.
* ``NpmPackageManager.install`` is replaced by a fake that lays out
  ``<prefix>/bin`` the way npm would.
* ``subprocess.run`` / ``os.execv`` are patched in the process runner;
  no child is ever started.
* The real ephemeral prefix is used, so cleanup is observable.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from pathlib import Path
from unittest.mock import patch

import pytest

from npx_wrap.cli import exit_codes
from npx_wrap.cli.app import main
from npx_wrap.exceptions import InstallFailureError
from npx_wrap.infra.npm_provider import NpmPackageManager

NODE = "/usr/bin/node"
NODE_SHEBANG = "#!/usr/bin/env node\n"
RUN = "npx_wrap.infra.process_runner.subprocess.run"
EXECV = "npx_wrap.infra.process_runner.os.execv"


class _Completed:
    def __init__(self, returncode: int) -> None:
        self.returncode = returncode


@pytest.fixture
def sandbox(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolated PATH, Node and working directory; no enclosing project."""
    system_bin = tmp_path / "sysbin"
    system_bin.mkdir()
    monkeypatch.setenv("PATH", str(system_bin))
    monkeypatch.setenv("NPX_WRAP_NODE", NODE)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("npx_wrap.infra.path_lookup.local_bin_path", lambda cwd: None)
    return tmp_path


def _prefix_root(sandbox: Path) -> Path:
    return sandbox / "cache" / "_npx" / str(os.getpid())


def _fake_install(bin_name: str = "cowsay", *, fail_with: int | None = None):
    def install(self, specs, prefix: Path) -> str:
        bin_dir = prefix / "bin"
        bin_dir.mkdir(parents=True, exist_ok=True)
        (bin_dir / bin_name).write_text(NODE_SHEBANG + "console.log('moo')\n", encoding="utf-8")
        if fail_with is not None:
            raise InstallFailureError(
                f"Install for {list(specs)} failed with code {fail_with}",
                exit_code=fail_with,
            )
        return ""

    return install


# ---------------------------------------------------------------------------
# Provisioning
# ---------------------------------------------------------------------------

class TestProvisionedCommand:
    def test_installs_spawns_and_cleans_up(self, sandbox: Path) -> None:
        with patch.object(NpmPackageManager, "install", autospec=True, side_effect=_fake_install()) as install, \
                patch(RUN, return_value=_Completed(3)) as run, \
                patch(EXECV) as execv:
            code = main(["-y", "--cache", str(sandbox / "cache"), "cowsay", "moo"])

        assert code == 3
        install.assert_called_once()
        prefix = _prefix_root(sandbox)
        assert run.call_args.args[0] == [NODE, str(prefix / "bin" / "cowsay"), "moo"]
        execv.assert_not_called()
        assert not prefix.exists()

    def test_install_failure_propagates_code(
        self, sandbox: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        fake = _fake_install(fail_with=243)
        with patch.object(NpmPackageManager, "install", autospec=True, side_effect=fake), \
                patch(RUN) as run:
            code = main(["-y", "--cache", str(sandbox / "cache"), "nope"])

        assert code == 243
        run.assert_not_called()
        assert not _prefix_root(sandbox).exists()
        assert "['nope']" in capsys.readouterr().err

    def test_declined_prompt(self, sandbox: Path, capsys: pytest.CaptureFixture[str]) -> None:
        with patch("npx_wrap.cli.install_prompt.confirm_install", return_value=False) as confirm, \
                patch.object(NpmPackageManager, "install", autospec=True) as install:
            code = main(["--cache", str(sandbox / "cache"), "cowsay"])

        assert code == exit_codes.GENERAL_ERROR
        confirm.assert_called_once_with(["cowsay"])
        install.assert_not_called()
        assert "Cancelled" in capsys.readouterr().err

    def test_accepted_prompt(self, sandbox: Path) -> None:
        with patch("npx_wrap.cli.install_prompt.confirm_install", return_value=True), \
                patch.object(NpmPackageManager, "install", autospec=True, side_effect=_fake_install()), \
                patch(RUN, return_value=_Completed(0)):
            code = main(["--cache", str(sandbox / "cache"), "cowsay"])
        assert code == exit_codes.SUCCESS

    def test_package_flag_with_install_disabled(
        self, sandbox: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        with patch.object(NpmPackageManager, "install", autospec=True) as install:
            code = main(["--no", "-p", "cowsay", "cowsay"])

        assert code == exit_codes.GENERAL_ERROR
        install.assert_not_called()
        assert "cowsay is not found" in capsys.readouterr().err


# ---------------------------------------------------------------------------
# Commands already on PATH
# ---------------------------------------------------------------------------

@pytest.mark.skipif(os.name == "nt", reason="POSIX executable bits")
class TestExistingCommand:
    def test_binary_spawned_without_install(
        self, sandbox: Path, write_file: Callable[..., Path],
    ) -> None:
        tool = write_file("sysbin/tool", "#!/bin/sh\nexit 0\n", executable=True)
        with patch.object(NpmPackageManager, "install", autospec=True) as install, \
                patch(RUN, return_value=_Completed(0)) as run:
            code = main(["tool", "a"])

        assert code == exit_codes.SUCCESS
        install.assert_not_called()
        assert run.call_args.args[0] == [str(tool), "a"]

    def test_double_dash_forwarded(
        self, sandbox: Path, write_file: Callable[..., Path],
    ) -> None:
        tool = write_file("sysbin/tool", "#!/bin/sh\nexit 0\n", executable=True)
        with patch(RUN, return_value=_Completed(0)) as run:
            assert main(["tool", "--", "x"]) == exit_codes.SUCCESS
        assert run.call_args.args[0] == [str(tool), "--", "x"]

    def test_node_script_takes_over(
        self, sandbox: Path, write_file: Callable[..., Path],
    ) -> None:
        script = write_file("sysbin/tool", NODE_SHEBANG, executable=True)
        with patch(EXECV) as execv, patch(RUN) as run:
            code = main(["tool", "--flag"])

        assert code == exit_codes.SUCCESS
        run.assert_not_called()
        execv.assert_called_once_with(NODE, [NODE, str(script), "--flag"])

    def test_always_spawn(self, sandbox: Path, write_file: Callable[..., Path]) -> None:
        script = write_file("sysbin/tool", NODE_SHEBANG, executable=True)
        with patch(EXECV) as execv, patch(RUN, return_value=_Completed(0)) as run:
            main(["--always-spawn", "tool"])

        execv.assert_not_called()
        assert run.call_args.args[0] == [NODE, str(script)]


# ---------------------------------------------------------------------------
# Install disabled
# ---------------------------------------------------------------------------

class TestInstallDisabled:
    @pytest.mark.parametrize("flag", ["--no-install", "--no"])
    def test_missing_command_is_127(
        self, sandbox: Path, flag: str, capsys: pytest.CaptureFixture[str],
    ) -> None:
        with patch.object(NpmPackageManager, "install", autospec=True) as install:
            code = main([flag, "cowsay"])

        assert code == exit_codes.COMMAND_NOT_FOUND == 127
        install.assert_not_called()
        assert "command not found: cowsay" in capsys.readouterr().err

    def test_quiet_suppresses_message(
        self, sandbox: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        code = main(["-q", "--no-install", "cowsay"])
        assert code == 127
        assert capsys.readouterr().err == ""


# ---------------------------------------------------------------------------
# Call mode
# ---------------------------------------------------------------------------

class TestCallMode:
    def test_runs_through_shell_without_provisioning(self, sandbox: Path) -> None:
        with patch.object(NpmPackageManager, "install", autospec=True) as install, \
                patch(RUN, return_value=_Completed(0)) as run:
            code = main(["-c", "echo hi"])

        assert code == exit_codes.SUCCESS
        install.assert_not_called()
        assert run.call_args.args[0] == "echo hi"
        assert run.call_args.kwargs["shell"] is True

    def test_child_exit_code_mirrored(self, sandbox: Path) -> None:
        with patch(RUN, return_value=_Completed(5)):
            assert main(["-c", "exit 5"]) == 5

    def test_project_env_applied(
        self, sandbox: Path, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        local_bin = sandbox / "proj" / "node_modules" / ".bin"
        local_bin.mkdir(parents=True)
        monkeypatch.setattr("npx_wrap.infra.path_lookup.local_bin_path", lambda cwd: local_bin)
        monkeypatch.delenv("npm_package_name", raising=False)

        with patch.object(
            NpmPackageManager, "run_env", autospec=True, return_value="npm_package_name=demo\n",
        ) as run_env, patch(RUN, return_value=_Completed(0)):
            code = main(["-c", "echo $npm_package_name"])

        assert code == exit_codes.SUCCESS
        run_env.assert_called_once()
        assert os.environ["npm_package_name"] == "demo"

    def test_node_arg_with_call_is_usage_error(
        self, sandbox: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        with patch(RUN) as run:
            code = main(["-n=--inspect", "-c", "echo hi"])

        assert code == exit_codes.GENERAL_ERROR
        run.assert_not_called()
        assert "--node-arg/-n" in capsys.readouterr().err

    def test_env_not_gathered_outside_project(self, sandbox: Path) -> None:
        with patch.object(NpmPackageManager, "run_env", autospec=True) as run_env, \
                patch(RUN, return_value=_Completed(0)):
            main(["-c", "echo hi"])
        run_env.assert_not_called()


# ---------------------------------------------------------------------------
# Error boundary
# ---------------------------------------------------------------------------

class TestErrorBoundary:
    def test_no_command(self, sandbox: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main([]) == exit_codes.GENERAL_ERROR
        assert "You must supply a command." in capsys.readouterr().err

    @pytest.mark.skipif(os.name == "nt", reason="POSIX executable bits")
    def test_node_arg_on_binary(
        self, sandbox: Path, write_file: Callable[..., Path],
    ) -> None:
        write_file("sysbin/tool", "#!/bin/sh\n", executable=True)
        with patch(RUN) as run:
            assert main(["-n", "--inspect --harmony", "tool"]) == exit_codes.GENERAL_ERROR
        run.assert_not_called()

    def test_unexpected_error(self, sandbox: Path, capsys: pytest.CaptureFixture[str]) -> None:
        with patch("npx_wrap.cli.request_builder.build_request", side_effect=RuntimeError("boom")):
            assert main(["cowsay"]) == exit_codes.GENERAL_ERROR
        err = capsys.readouterr().err
        assert "Unexpected error." in err
        assert "RuntimeError: boom" in err

    def test_unexpected_error_quiet(
        self, sandbox: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        with patch("npx_wrap.cli.request_builder.build_request", side_effect=RuntimeError("boom")):
            assert main(["-q", "cowsay"]) == exit_codes.GENERAL_ERROR
        assert capsys.readouterr().err == ""

    def test_keyboard_interrupt(self, sandbox: Path) -> None:
        with patch("npx_wrap.cli.request_builder.build_request", side_effect=KeyboardInterrupt):
            assert main(["cowsay"]) == exit_codes.KEYBOARD_INTERRUPT
