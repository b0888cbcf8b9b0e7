"""
Moraine: Deferred outputs for hosted-project stacks.

Moraine declares hosted-platform projects and exports values derived from
attributes the platform only assigns once a project exists. Derived values
are composed without blocking, and every derived value remembers which
resources it came from so the engine can create things in the right order.

Core concepts:
- DeferredValue: A single-assignment value-to-be with map() and combine()
- ResourceHandle: A declared resource whose attributes are DeferredValues
- ExportRegistry: Named values surfaced once the run settles
- ProvisioningRun: One run, holding its resources and registry
- Provider: The engine that creates resources and resolves attributes

Example:
    from moraine import ProvisioningRun, LocalProvider

    run = ProvisioningRun(name="church-sas")
    api = run.declare("vercel:Project", "church-sas-api-preprod", {
        "name": "church-sas-api-preprod",
        "root_directory": "apps/api",
    })
    run.export("apiPreprodUrl", api.name.map(lambda n: f"https://{n}.vercel.app"))

    LocalProvider().apply(run)
    run.complete().outputs
    # {"apiPreprodUrl": "https://church-sas-api-preprod.vercel.app"}
"""

from moraine.core.deferred import DeferredValue, combine, concat, interpolate
from moraine.core.errors import (
    MoraineError,
    AlreadyResolvedError,
    DependencyFailedError,
    DuplicateNameError,
    UnresolvedAtSettleError,
    RunCancelledError,
)
from moraine.core.resource import ResourceHandle
from moraine.core.registry import ExportRegistry
from moraine.core.run import ProvisioningRun, RunResult
from moraine.providers import Provider, LocalProvider

__version__ = "0.1.0"
__all__ = [
    "DeferredValue",
    "combine",
    "concat",
    "interpolate",
    "ResourceHandle",
    "ExportRegistry",
    "ProvisioningRun",
    "RunResult",
    "Provider",
    "LocalProvider",
    # Errors
    "MoraineError",
    "AlreadyResolvedError",
    "DependencyFailedError",
    "DuplicateNameError",
    "UnresolvedAtSettleError",
    "RunCancelledError",
]
