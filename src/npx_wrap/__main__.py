"""Allow ``python -m npx_wrap`` invocation.

This module simply delegates to the CLI error-boundary entry point so
that ``python -m npx_wrap`` behaves identically to the ``npx-wrap``
console script.
"""

from __future__ import annotations

from npx_wrap.cli.app import cli

if __name__ == "__main__":
    cli()
