"""
Core building blocks: deferred values, resources, exports and runs.
"""

from moraine.core.deferred import (
    DeferredState,
    DeferredValue,
    combine,
    concat,
    interpolate,
    lift,
)
from moraine.core.errors import (
    MoraineError,
    AlreadyResolvedError,
    DependencyFailedError,
    DuplicateNameError,
    UnresolvedAtSettleError,
    RegistryClosedError,
    RunCancelledError,
    CycleError,
    ConfigError,
    ProvisioningError,
)
from moraine.core.resource import ResourceHandle
from moraine.core.registry import (
    ExportEntry,
    ExportRegistry,
    ExportResult,
    RegistryState,
)
from moraine.core.dag import DependencyGraph
from moraine.core.run import ProvisioningRun, RunResult

__all__ = [
    "DeferredState",
    "DeferredValue",
    "combine",
    "concat",
    "interpolate",
    "lift",
    "MoraineError",
    "AlreadyResolvedError",
    "DependencyFailedError",
    "DuplicateNameError",
    "UnresolvedAtSettleError",
    "RegistryClosedError",
    "RunCancelledError",
    "CycleError",
    "ConfigError",
    "ProvisioningError",
    "ResourceHandle",
    "ExportEntry",
    "ExportRegistry",
    "ExportResult",
    "RegistryState",
    "DependencyGraph",
    "ProvisioningRun",
    "RunResult",
]
