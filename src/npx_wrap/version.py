"""Single source of truth for the npx-wrap version string."""

__version__: str = "0.3.0"
