"""npx-wrap — run npm package binaries, installing them on demand.

Resolves a command to an existing executable, a local project binary or a
package provisioned into a throwaway prefix, then hands execution over to it.
"""

from npx_wrap.version import __version__

__all__: list[str] = ["__version__"]
