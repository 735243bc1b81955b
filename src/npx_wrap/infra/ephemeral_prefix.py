"""Infrastructure: the process-scoped ``<cache>/_npx/<pid>`` install root.

The prefix is created synchronously and its removal is registered with
the caller's deferred-cleanup mechanism (normally
:meth:`contextlib.ExitStack.callback`) *before* anything is installed
into it, so a crash mid-install never leaks the directory.
"""

from __future__ import annotations

import os
import shutil
import time
from collections.abc import Callable
from pathlib import Path

from npx_wrap.core.models import EphemeralPrefix

PREFIX_DIRNAME: str = "_npx"
REMOVE_ATTEMPTS: int = 3


def prefix_paths(cache_root: Path, pid: int, *, windows: bool = False) -> EphemeralPrefix:
    """Compute the prefix layout without touching the filesystem."""
    root = cache_root / PREFIX_DIRNAME / str(pid)
    # npm links global bins straight into the prefix on Windows.
    bin_dir = root if windows else root / "bin"
    return EphemeralPrefix(root=root, bin=bin_dir, owner_pid=pid)


class PrefixRelease:
    """Idempotent, never-raising removal of one ephemeral prefix."""

    def __init__(self, prefix: EphemeralPrefix) -> None:
        self.prefix: EphemeralPrefix = prefix
        self.released: bool = False

    def __call__(self) -> None:
        if self.released:
            return
        self.released = True
        for attempt in range(REMOVE_ATTEMPTS):
            try:
                shutil.rmtree(self.prefix.root)
            except FileNotFoundError:
                return
            except OSError:
                # Windows keeps files locked briefly after the child exits.
                if attempt + 1 < REMOVE_ATTEMPTS:
                    time.sleep(0.1 * (attempt + 1))
                continue
            return


def acquire_prefix(
    cache_root: Path,
    defer: Callable[[Callable[[], None]], object],
    *,
    pid: int | None = None,
    windows: bool | None = None,
) -> EphemeralPrefix:
    """Create the ephemeral prefix and schedule its removal.

    Satisfies :class:`~npx_wrap.core.protocols.PrefixFactory`.  Stale
    contents of the bin directory left by an earlier, unclean run with
    the same pid are removed before returning.
    """
    prefix = prefix_paths(
        cache_root,
        os.getpid() if pid is None else pid,
        windows=os.name == "nt" if windows is None else windows,
    )
    prefix.root.mkdir(parents=True, exist_ok=True)
    defer(PrefixRelease(prefix))

    if prefix.bin != prefix.root:
        shutil.rmtree(prefix.bin, ignore_errors=True)
    else:
        for entry in prefix.root.iterdir():
            if entry.is_dir() and not entry.is_symlink():
                shutil.rmtree(entry, ignore_errors=True)
            else:
                entry.unlink(missing_ok=True)
    return prefix
