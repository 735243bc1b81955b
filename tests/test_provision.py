"""Tests for provisioning (core/provision_service.py, infra/ephemeral_prefix.py).

Strategy
--------
* The package manager is a ``MagicMock``; its ``install`` side effect
  writes into the prefix the way npm would.
* The prefix factory is the real ``acquire_prefix`` with a fixed pid, so
  the directory lifecycle is exercised on ``tmp_path``.
* Cleanup runs through a real ``contextlib.ExitStack``.
"""

from __future__ import annotations

import functools
import json
from contextlib import ExitStack
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from npx_wrap.core.models import CommandRequest, EphemeralPrefix
from npx_wrap.core.provision_service import ProvisionService, parse_install_report
from npx_wrap.exceptions import EnvironmentError, InstallFailureError, UsageError
from npx_wrap.infra.ephemeral_prefix import (
    PrefixRelease,
    acquire_prefix,
    prefix_paths,
)

PID = 4242


def _factory(windows: bool = False):
    return functools.partial(acquire_prefix, pid=PID, windows=windows)


def _service(pm: MagicMock, prepended: list[Path] | None = None) -> ProvisionService:
    sink = prepended if prepended is not None else []
    return ProvisionService(pm, _factory(), sink.append)


def _fake_install(bin_name: str = "cowsay", stdout: str = ""):
    def install(specs, prefix: Path) -> str:
        bin_dir = prefix / "bin"
        bin_dir.mkdir(parents=True, exist_ok=True)
        (bin_dir / bin_name).write_text("#!/usr/bin/env node\n", encoding="utf-8")
        return stdout

    return install


# ---------------------------------------------------------------------------
# Prefix layout and release
# ---------------------------------------------------------------------------

class TestPrefixPaths:
    def test_posix_layout(self, tmp_path: Path) -> None:
        prefix = prefix_paths(tmp_path, 7)
        assert prefix.root == tmp_path / "_npx" / "7"
        assert prefix.bin == tmp_path / "_npx" / "7" / "bin"
        assert prefix.owner_pid == 7

    def test_windows_layout(self, tmp_path: Path) -> None:
        prefix = prefix_paths(tmp_path, 7, windows=True)
        assert prefix.bin == prefix.root


class TestPrefixRelease:
    def test_removes_tree(self, tmp_path: Path) -> None:
        prefix = prefix_paths(tmp_path, PID)
        (prefix.bin).mkdir(parents=True)
        (prefix.bin / "tool").write_text("x")

        PrefixRelease(prefix)()
        assert not prefix.root.exists()

    def test_idempotent(self, tmp_path: Path) -> None:
        prefix = prefix_paths(tmp_path, PID)
        prefix.root.mkdir(parents=True)
        release = PrefixRelease(prefix)

        release()
        release()
        assert release.released
        assert not prefix.root.exists()

    def test_missing_directory_is_fine(self, tmp_path: Path) -> None:
        PrefixRelease(prefix_paths(tmp_path, PID))()

    def test_errors_are_swallowed(self, tmp_path: Path) -> None:
        prefix = prefix_paths(tmp_path, PID)
        with patch(
            "npx_wrap.infra.ephemeral_prefix.shutil.rmtree",
            side_effect=PermissionError("locked"),
        ) as rmtree, patch("npx_wrap.infra.ephemeral_prefix.time.sleep"):
            PrefixRelease(prefix)()
        assert rmtree.call_count == 3


class TestAcquirePrefix:
    def test_registers_release_before_returning(self, tmp_path: Path) -> None:
        deferred: list = []
        prefix = acquire_prefix(tmp_path, deferred.append, pid=PID, windows=False)

        assert prefix.root.is_dir()
        assert len(deferred) == 1
        assert isinstance(deferred[0], PrefixRelease)
        assert deferred[0].prefix == prefix

    def test_stale_bin_removed(self, tmp_path: Path) -> None:
        stale = prefix_paths(tmp_path, PID).bin
        stale.mkdir(parents=True)
        (stale / "old-tool").write_text("x")

        acquire_prefix(tmp_path, lambda _: None, pid=PID, windows=False)
        assert not stale.exists()

    def test_stale_windows_contents_removed(self, tmp_path: Path) -> None:
        root = prefix_paths(tmp_path, PID, windows=True).root
        (root / "node_modules").mkdir(parents=True)
        (root / "old.cmd").write_text("x")

        acquire_prefix(tmp_path, lambda _: None, pid=PID, windows=True)
        assert root.is_dir()
        assert list(root.iterdir()) == []


# ---------------------------------------------------------------------------
# Cache root
# ---------------------------------------------------------------------------

class TestCacheRoot:
    def test_request_override_wins(self, tmp_path: Path) -> None:
        pm = MagicMock()
        root = _service(pm).cache_root(CommandRequest(command="x", cache=str(tmp_path)))
        assert root == tmp_path
        pm.config_get.assert_not_called()

    def test_queried_and_stripped(self) -> None:
        pm = MagicMock()
        pm.config_get.return_value = "/home/u/.npm\n"
        assert _service(pm).cache_root(CommandRequest(command="x")) == Path("/home/u/.npm")
        pm.config_get.assert_called_once_with("cache")

    def test_empty_answer(self) -> None:
        pm = MagicMock()
        pm.config_get.return_value = "\n"
        with pytest.raises(EnvironmentError):
            _service(pm).cache_root(CommandRequest(command="x"))


# ---------------------------------------------------------------------------
# ensure()
# ---------------------------------------------------------------------------

class TestEnsure:
    def test_installs_and_prepends_bin(self, tmp_path: Path) -> None:
        pm = MagicMock()
        pm.install.side_effect = _fake_install()
        prepended: list[Path] = []
        request = CommandRequest(command="cowsay", cache=str(tmp_path))

        with ExitStack() as stack:
            outcome = _service(pm, prepended).ensure(["cowsay"], request, stack.callback)
            expected_root = tmp_path / "_npx" / str(PID)
            assert outcome.prefix == expected_root
            assert outcome.bin == expected_root / "bin"
            assert (outcome.bin / "cowsay").exists()
            assert prepended == [expected_root / "bin"]

        pm.install.assert_called_once_with(["cowsay"], expected_root)
        assert not expected_root.exists()

    def test_specs_installed_in_one_call(self, tmp_path: Path) -> None:
        pm = MagicMock()
        pm.install.return_value = ""
        request = CommandRequest(command="cowsay", cache=str(tmp_path))
        with ExitStack() as stack:
            _service(pm).ensure(["cowsay", "lolcatjs@2"], request, stack.callback)
        assert pm.install.call_count == 1
        assert pm.install.call_args.args[0] == ["cowsay", "lolcatjs@2"]

    def test_failed_install_still_cleans_up(self, tmp_path: Path) -> None:
        pm = MagicMock()
        pm.install.side_effect = InstallFailureError("Install failed", exit_code=1)
        prepended: list[Path] = []
        request = CommandRequest(command="nope", cache=str(tmp_path))

        with pytest.raises(InstallFailureError):
            with ExitStack() as stack:
                _service(pm, prepended).ensure(["nope"], request, stack.callback)

        assert prepended == []
        assert not (tmp_path / "_npx" / str(PID)).exists()

    def test_prefix_exists_during_install(self, tmp_path: Path) -> None:
        seen: list[bool] = []

        def install(specs, prefix: Path) -> str:
            seen.append(prefix.is_dir())
            return ""

        pm = MagicMock()
        pm.install.side_effect = install
        with ExitStack() as stack:
            _service(pm).ensure(["x"], CommandRequest(command="x", cache=str(tmp_path)), stack.callback)
        assert seen == [True]

    def test_empty_specs(self, tmp_path: Path) -> None:
        pm = MagicMock()
        with pytest.raises(UsageError):
            _service(pm).ensure([], CommandRequest(command="x", cache=str(tmp_path)), lambda _: None)
        pm.install.assert_not_called()

    def test_report_counts(self, tmp_path: Path) -> None:
        report = {"added": [{"name": "cowsay"}, {"name": "yargs"}], "updated": 1}
        pm = MagicMock()
        pm.install.side_effect = _fake_install(stdout=json.dumps(report))
        request = CommandRequest(command="cowsay", cache=str(tmp_path))

        with ExitStack() as stack:
            outcome = _service(pm).ensure(["cowsay"], request, stack.callback)

        assert outcome.added == 2
        assert outcome.updated == 1
        assert outcome.installed == 3
        assert outcome.report == report

    def test_human_readable_output_has_no_report(self, tmp_path: Path) -> None:
        pm = MagicMock()
        pm.install.side_effect = _fake_install(stdout="+ cowsay@1.5.0\nadded 41 packages\n")
        request = CommandRequest(command="cowsay", cache=str(tmp_path))

        with ExitStack() as stack:
            outcome = _service(pm).ensure(["cowsay"], request, stack.callback)

        assert outcome.report is None
        assert outcome.installed == 0


class TestParseInstallReport:
    @pytest.mark.parametrize("stdout", [None, "", "  \n", "not json", "[1, 2]"])
    def test_no_report(self, stdout: str | None) -> None:
        assert parse_install_report(stdout) is None

    def test_object(self) -> None:
        assert parse_install_report('{"added": []}') == {"added": []}


def test_prefix_model_is_frozen(tmp_path: Path) -> None:
    prefix = EphemeralPrefix(root=tmp_path, bin=tmp_path, owner_pid=1)
    with pytest.raises(AttributeError):
        prefix.owner_pid = 2  # type: ignore[misc]
