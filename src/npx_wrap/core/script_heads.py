"""Classification of file heads as Node.js scripts or npm shims.

Pure functions over the leading bytes of a file.  The reading itself
happens in :mod:`npx_wrap.infra.script_resolver`.
"""

from __future__ import annotations

import re

POSIX_HEAD_BYTES: int = 400
"""Bytes read from a candidate file on POSIX when sniffing a shebang."""

WINDOWS_HEAD_BYTES: int = 1000
"""Bytes read from a candidate ``.cmd``/shim file on Windows."""

SCRIPT_EXTENSIONS: frozenset[str] = frozenset({".js", ".cjs", ".mjs"})
"""Extensions trusted as Node.js scripts inside a local project."""

_NODE_SHEBANG = re.compile(
    rb"#!\s*(?:/usr/bin/env\s*node|/usr/local/bin/node|/usr/bin/node)\s*\r?\n",
    re.IGNORECASE,
)

# "%~dp0\node.exe"  "%~dp0\..\cowsay\cli.js" %*
_CMD_SHIM = re.compile(r'"%~dp0\\node\.exe"\s+"%~dp0\\(.*)"\s+%\*')

# "$basedir/node"  "$basedir/../cowsay/cli.js" "$@"
_SH_SHIM = re.compile(r'"\$basedir/node"\s+"\$basedir/(.*)"\s+"\$@"', re.IGNORECASE)


def has_node_shebang(head: bytes) -> bool:
    """Return ``True`` when *head* carries one of the accepted Node shebangs.

    The directive must be followed by a line ending, so a file holding
    nothing but ``#!/usr/bin/node`` without a newline is not a script.
    """
    return _NODE_SHEBANG.search(head) is not None


def parse_windows_shim(head: bytes) -> str | None:
    """Extract the script a generated npm shim re-invokes Node with.

    Returns the shim-relative script path, or ``None`` when *head*
    matches neither shim template.
    """
    text = head.decode("utf-8", errors="replace").strip()
    match = _CMD_SHIM.search(text) or _SH_SHIM.search(text)
    if match is None:
        return None
    return match.group(1)
