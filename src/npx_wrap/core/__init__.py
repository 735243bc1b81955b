"""Core / service layer — pure business logic and data transformations.

Rules
-----
* No ``print()`` calls.
* Side effects only through the protocols in :mod:`npx_wrap.core.protocols`.
* No imports from ``cli`` or ``infra``.
"""

from npx_wrap.core.execution_service import ExecutionEngine
from npx_wrap.core.models import (
    CommandRequest,
    EphemeralPrefix,
    ExecutionOutcome,
    InstallOutcome,
    ResolvedTarget,
    TargetKind,
)
from npx_wrap.core.protocols import PackageManager, PrefixFactory, ProcessRunner, ScriptResolver
from npx_wrap.core.provision_service import ProvisionService

__all__: list[str] = [
    "CommandRequest",
    "EphemeralPrefix",
    "ExecutionEngine",
    "ExecutionOutcome",
    "InstallOutcome",
    "PackageManager",
    "PrefixFactory",
    "ProcessRunner",
    "ProvisionService",
    "ResolvedTarget",
    "ScriptResolver",
    "TargetKind",
]
