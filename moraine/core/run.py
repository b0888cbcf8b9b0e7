"""
ProvisioningRun: Container for everything declared in one run.

A run tracks declared resources and owns the ExportRegistry. It is
constructed explicitly and passed to whatever declares resources; there is
no ambient global run.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from moraine.core.dag import DependencyGraph
from moraine.core.errors import DuplicateNameError, RunCancelledError
from moraine.core.registry import ExportEntry, ExportRegistry, ExportResult
from moraine.core.resource import DEFAULT_ATTRIBUTES, ResourceHandle

logger = logging.getLogger(__name__)


@dataclass
class ProvisioningRun:
    """
    One logical provisioning run.

    Example:
        run = ProvisioningRun(name="church-sas")

        api = run.declare("vercel:Project", "church-sas-api-preprod", {
            "name": "church-sas-api-preprod",
            "root_directory": "apps/api",
        })
        run.export("apiPreprodUrl", api.name.map(lambda n: f"https://{n}.vercel.app"))

        LocalProvider().apply(run)
        result = run.complete()
        result.outputs  # {"apiPreprodUrl": "https://church-sas-api-preprod.vercel.app"}
    """

    name: str
    """Run (stack) name"""

    registry: ExportRegistry = field(default_factory=ExportRegistry)
    """Exports of this run"""

    _resources: dict[str, ResourceHandle] = field(default_factory=dict)
    """Declared resources by URN, in declaration order"""

    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    cancelled: str | None = None
    """Abort reason, if the run was aborted"""

    def declare(
        self,
        resource_type: str,
        name: str,
        inputs: Mapping[str, Any] | None = None,
        depends_on: Iterable[ResourceHandle] = (),
        attributes: Iterable[str] = DEFAULT_ATTRIBUTES,
    ) -> ResourceHandle:
        """
        Declare a resource in this run.

        Args:
            resource_type: Platform resource type (e.g. "vercel:Project")
            name: Logical resource name, unique per type within the run
            inputs: Resource arguments; values may be DeferredValues
            depends_on: Explicit dependencies beyond those read from inputs
            attributes: Attributes the platform assigns on creation

        Returns:
            ResourceHandle whose attributes resolve once the engine creates it

        Raises:
            DuplicateNameError: If the resource was already declared
            RunCancelledError: If the run was aborted
        """
        handle = ResourceHandle(
            resource_type,
            name,
            inputs=inputs,
            depends_on=depends_on,
            attributes=attributes,
        )
        with self._lock:
            if self.cancelled is not None:
                raise RunCancelledError(self.cancelled)
            if handle.urn in self._resources:
                raise DuplicateNameError("Resource", handle.urn)
            self._resources[handle.urn] = handle

        logger.debug("Declared %s", handle.urn)
        return handle

    def export(self, name: str, value: Any) -> ExportEntry:
        """Export a value under name. See ExportRegistry.export()."""
        return self.registry.export(name, value)

    def resources(self) -> list[ResourceHandle]:
        """All declared resources in declaration order."""
        with self._lock:
            return list(self._resources.values())

    def list_resources(self) -> list[str]:
        """List all declared resource URNs."""
        return [handle.urn for handle in self.resources()]

    def get_resource(self, urn: str) -> ResourceHandle | None:
        """Get a resource by URN."""
        return self._resources.get(urn)

    def dependency_graph(self) -> DependencyGraph:
        """
        Build the creation dependency graph of the declared resources.

        Dependencies on resources declared outside this run are not part
        of the graph; the engine still waits for them via their values.
        """
        return DependencyGraph.from_handles(self.resources())

    def creation_order(self) -> list[list[ResourceHandle]]:
        """
        Group resources into levels that can be created concurrently.

        Raises:
            CycleError: If resources depend on each other in a cycle
        """
        graph = self.dependency_graph()
        return [[graph.item(urn) for urn in level] for level in graph.levels()]

    def abort(self, reason: str) -> RunResult:
        """
        Abort the run.

        Every pending attribute, resource input and export fails with
        RunCancelledError so nothing is left pending, then the registry is
        settled.
        """
        error = RunCancelledError(reason)
        with self._lock:
            self.cancelled = reason
        self.registry.close()
        logger.warning("Aborting run %s: %s", self.name, reason)

        failed = 0
        for handle in self.resources():
            failed += handle.fail_attributes(error)
        for handle in self.resources():
            for deferred in handle.deferred_inputs():
                if deferred.fail_if_pending(error):
                    failed += 1
        for entry in self.registry.entries():
            if entry.value.fail_if_pending(error):
                failed += 1
        logger.debug("Cancelled %d pending values", failed)

        return self.complete()

    def complete(self) -> RunResult:
        """
        Close and settle the registry and collect the outcome.

        Exports still pending at this point fail with UnresolvedAtSettleError.
        """
        results = self.registry.settle()
        result = RunResult(run_name=self.name, results=results)
        if result.ok:
            logger.info("Run %s completed with %d exports", self.name, len(results))
        else:
            logger.error(
                "Run %s completed with failed exports: %s",
                self.name,
                ", ".join(sorted(result.failures)),
            )
        return result


@dataclass
class RunResult:
    """Settled outcome of a provisioning run."""

    run_name: str
    """Run name"""

    results: dict[str, ExportResult]
    """Export name -> terminal outcome"""

    @property
    def ok(self) -> bool:
        """True if every export resolved."""
        return all(result.ok for result in self.results.values())

    @property
    def outputs(self) -> dict[str, Any]:
        """Resolved export values."""
        return {name: result.value for name, result in self.results.items() if result.ok}

    @property
    def failures(self) -> dict[str, str]:
        """Failure messages of failed exports."""
        return {name: str(result.error) for name, result in self.results.items() if not result.ok}

    def to_dict(self) -> dict[str, Any]:
        return {
            "run": self.run_name,
            "ok": self.ok,
            "exports": {name: result.to_dict() for name, result in self.results.items()},
        }
