"""Infrastructure: classify a path as a Node.js script, shim or binary.

Rules
-----
* Read-only. Never installs and never touches ``PATH``.
* Only the leading bytes of a file are read.
* Local package directories are followed through ``package.json``,
  one hop per manifest, with a cycle guard and a depth limit.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from npx_wrap.core.models import ResolvedTarget
from npx_wrap.core.script_heads import (
    POSIX_HEAD_BYTES,
    SCRIPT_EXTENSIONS,
    WINDOWS_HEAD_BYTES,
    has_node_shebang,
    parse_windows_shim,
)
from npx_wrap.exceptions import CommandNotFoundError

MANIFEST_NAME: str = "package.json"
DEFAULT_ENTRY: str = "index.js"
MAX_MANIFEST_DEPTH: int = 8
"""Most ``package.json`` hops followed before giving up."""


class FileScriptResolver:
    """Concrete :class:`~npx_wrap.core.protocols.ScriptResolver`.

    Parameters
    ----------
    windows:
        Use the Windows shim parser instead of shebang sniffing.
        Defaults to the current platform.
    """

    def __init__(self, *, windows: bool | None = None) -> None:
        self._windows: bool = os.name == "nt" if windows is None else windows

    def resolve(self, candidate: str | Path | None, *, is_local: bool = False) -> ResolvedTarget:
        """Return what *candidate* points at.

        A file that is neither a Node script nor a shim resolves to
        ``NOT_FOUND``; the caller then spawns it as an opaque binary.
        """
        if not candidate:
            return ResolvedTarget.not_found()
        return self._resolve(Path(os.path.abspath(candidate)), is_local, ())

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _resolve(self, path: Path, is_local: bool, seen: tuple[Path, ...]) -> ResolvedTarget:
        if not path.exists():
            return ResolvedTarget.not_found()
        if is_local and path.suffix in SCRIPT_EXTENSIONS:
            return ResolvedTarget.script(path)
        if is_local and path.is_dir():
            return self._resolve_package_dir(path, seen)
        if self._windows:
            return self._resolve_windows_shim(path)
        return self._resolve_shebang(path)

    def _resolve_package_dir(self, directory: Path, seen: tuple[Path, ...]) -> ResolvedTarget:
        if directory in seen or len(seen) >= MAX_MANIFEST_DEPTH:
            raise CommandNotFoundError(
                f"command not found: {directory}",
                hint="package.json entries form a cycle or nest too deeply.",
            )

        manifest = _load_manifest(directory)
        entry = _manifest_entry(manifest) if manifest is not None else None
        if entry is None:
            raise CommandNotFoundError(f"command not found: {directory}")

        target = Path(os.path.abspath(directory / entry))
        resolved = self._resolve(target, True, (*seen, directory))
        if not resolved.is_script:
            raise CommandNotFoundError(f"command not found: {target}")
        return resolved

    def _resolve_shebang(self, path: Path) -> ResolvedTarget:
        head = _read_head(path, POSIX_HEAD_BYTES)
        if head is not None and has_node_shebang(head):
            return ResolvedTarget.script(path)
        return ResolvedTarget.not_found()

    def _resolve_windows_shim(self, path: Path) -> ResolvedTarget:
        head = _read_head(path, WINDOWS_HEAD_BYTES)
        script = parse_windows_shim(head) if head is not None else None
        if script is None:
            return ResolvedTarget.not_found()
        return ResolvedTarget.script(path.parent / script)


# ---------------------------------------------------------------------------
# Filesystem helpers
# ---------------------------------------------------------------------------

def _read_head(path: Path, size: int) -> bytes | None:
    """Return the first *size* bytes of *path*, or ``None`` for non-files."""
    if not path.is_file():
        return None
    with path.open("rb") as handle:
        return handle.read(size)


def _load_manifest(directory: Path) -> dict[str, Any] | None:
    try:
        data = json.loads((directory / MANIFEST_NAME).read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None
    return data if isinstance(data, dict) else None


def _manifest_entry(manifest: dict[str, Any]) -> str | None:
    """Return ``bin || main || "index.js"`` as a relative path.

    Empty values fall through to the next field; a non-empty value of
    the wrong type yields ``None``.
    """
    bin_field = manifest.get("bin")
    if bin_field:
        if isinstance(bin_field, str):
            return bin_field
        if isinstance(bin_field, dict):
            return _bin_from_mapping(bin_field, manifest.get("name"))
        return None
    main = manifest.get("main")
    if main:
        return main if isinstance(main, str) else None
    return DEFAULT_ENTRY


def _bin_from_mapping(bins: dict[str, Any], package_name: object) -> str | None:
    """Pick the package's own binary out of a ``bin`` mapping."""
    values = [value for value in bins.values() if isinstance(value, str)]
    if len(values) == 1:
        return values[0]
    if isinstance(package_name, str):
        own = bins.get(package_name.rsplit("/", 1)[-1])
        if isinstance(own, str):
            return own
    return None
