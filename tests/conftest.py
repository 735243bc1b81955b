"""Shared pytest fixtures and configuration for the npx-wrap test suite.

Guidelines
----------
* No network access and no real npm or node in any test.
* subprocess / os.execv are mocked at the infra boundary.
* Core tests must be pure — no side effects.
* Tests that mutate PATH or the environment restore it via monkeypatch.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from pathlib import Path

import pytest


@pytest.fixture
def restore_path(monkeypatch: pytest.MonkeyPatch) -> None:
    """Snapshot PATH so in-process PATH splicing is undone after the test."""
    monkeypatch.setenv("PATH", os.environ.get("PATH", ""))


@pytest.fixture
def write_file(tmp_path: Path) -> Callable[..., Path]:
    """Create a file under ``tmp_path`` (parents included) and return it."""

    def _write(relative: str, content: str = "", *, executable: bool = False) -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8", newline="")
        if executable:
            path.chmod(0o755)
        return path

    return _write
