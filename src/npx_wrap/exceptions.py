"""Custom exception hierarchy for npx-wrap.

All exceptions that cross layer boundaries must inherit from
:class:`NpxWrapError`.  Raw OS and subprocess failures that represent an
*expected* condition (missing command, failed install, child exit status)
are caught in the infrastructure layer and re-raised as a typed subclass
defined here.  Anything else propagates unchanged and is reported by the
CLI error boundary as an unexpected error.

Hierarchy
---------
NpxWrapError
├── UsageError
├── CommandNotFoundError
├── InstallFailureError
├── UserDeclinedError
├── ChildProcessError
└── EnvironmentError
"""

from __future__ import annotations


class NpxWrapError(Exception):
    """Base exception for all npx-wrap errors.

    Every user-visible error condition maps to a subclass of this
    exception so that the CLI error boundary can render a clean message
    and pick the process exit code without leaking stack traces.
    """

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        exit_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.hint: str | None = hint
        """Optional actionable guidance shown below the error message."""
        self.exit_code: int | None = exit_code
        """Process exit code to use instead of the generic failure code."""


# --- Invocation -------------------------------------------------------------

class UsageError(NpxWrapError):
    """Raised for a missing command/package or an invalid flag combination."""


# --- Resolution -------------------------------------------------------------

class CommandNotFoundError(NpxWrapError):
    """Raised when a command cannot be located or resolved to a script."""


# --- Provisioning -----------------------------------------------------------

class InstallFailureError(NpxWrapError):
    """Raised when the package manager exits non-zero during install."""


class UserDeclinedError(NpxWrapError):
    """Raised when the user rejects the install confirmation prompt."""


# --- Execution --------------------------------------------------------------

class ChildProcessError(NpxWrapError):
    """Raised when a spawned child process fails.

    An *operational* failure is one the child already reported on its own
    streams (a non-zero exit or a signal).  The CLI boundary mirrors its exit
    code without printing anything further.
    """

    def __init__(
        self,
        message: str,
        *,
        exit_code: int,
        operational: bool = True,
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint, exit_code=exit_code)
        self.operational: bool = operational


# --- Environment / tooling --------------------------------------------------

class EnvironmentError(NpxWrapError):
    """Raised when a required runtime dependency is not available or a
    configuration query to it fails."""
