"""Infrastructure layer — external system integration.

This layer wraps all interaction with npm, Node.js, child processes and
the filesystem.  Expected failures are re-raised as
:class:`~npx_wrap.exceptions.NpxWrapError` subclasses.

Rules
-----
* No imports from ``cli``.
* No user-facing output (no ``print()``, no Rich rendering).
* Must expose clean, typed interfaces consumed by the core layer.
"""

from npx_wrap.infra.ephemeral_prefix import acquire_prefix
from npx_wrap.infra.node_runtime import node_binary
from npx_wrap.infra.npm_provider import NpmPackageManager
from npx_wrap.infra.path_lookup import find_on_search_path, local_bin_path, prepend_to_path
from npx_wrap.infra.process_runner import SubprocessRunner
from npx_wrap.infra.script_resolver import FileScriptResolver

__all__: list[str] = [
    "FileScriptResolver",
    "NpmPackageManager",
    "SubprocessRunner",
    "acquire_prefix",
    "find_on_search_path",
    "local_bin_path",
    "node_binary",
    "prepend_to_path",
]
