"""npm lifecycle-script environment for call mode.

``npx-wrap -c '<cmd>'`` inside a project gets the same variables an npm
run-script would see (``npm_package_name`` and friends).  npm reports
them with ``npm run env --parseable`` as dotenv-style ``KEY=value``
lines, parsed here with python-dotenv.
"""

from __future__ import annotations

import io
import os
from collections.abc import Mapping

from dotenv import dotenv_values

from npx_wrap.core.protocols import PackageManager


def parse_env(text: str) -> dict[str, str]:
    """Parse ``KEY=value`` lines, dropping keys without a value."""
    values = dotenv_values(stream=io.StringIO(text), interpolate=False)
    return {key: value for key, value in values.items() if value is not None}


def gather_env(package_manager: PackageManager) -> dict[str, str]:
    """Ask the package manager for the lifecycle environment."""
    return parse_env(package_manager.run_env())


def apply_env(env: Mapping[str, str]) -> None:
    """Merge *env* into this process's environment.

    npm already put ``node_modules/.bin`` on the ``PATH`` it reports, so
    the variable is taken over as-is.
    """
    os.environ.update(env)
