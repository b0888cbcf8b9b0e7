"""
Base provider abstraction for provisioning engines.
"""

import functools
import logging
import threading
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable

from moraine.config.provider import ProviderConfig
from moraine.core.deferred import DeferredValue, combine
from moraine.core.errors import DependencyFailedError
from moraine.core.resource import ResourceHandle
from moraine.core.run import ProvisioningRun

logger = logging.getLogger(__name__)


@dataclass
class ApplyReport:
    """What happened to each resource during Provider.apply()."""

    created: list[str] = field(default_factory=list)
    """URNs of resources the platform created"""

    failed: dict[str, str] = field(default_factory=dict)
    """URN -> failure message for resources that were not created"""

    aborted: str | None = None
    """Abort reason, if the run was aborted while applying"""

    @property
    def ok(self) -> bool:
        return not self.failed and self.aborted is None


class Provider(ABC):
    """
    Base class for provisioning engines.

    A provider knows how to create one resource on its platform. apply()
    does the ordering. A resource is created only once every deferred value
    in its inputs has resolved and every resource in its depends_on exists.
    Independent resources are created concurrently on a thread pool, and
    attributes are resolved from the worker threads.

    Example:
        run = ProvisioningRun(name="church-sas")
        declare_church_sas(run)

        provider = LocalProvider()
        provider.apply(run)
        result = run.complete()
    """

    def __init__(self, config: ProviderConfig | None = None, **kwargs):
        """
        Initialize the provider.

        Args:
            config: Provider configuration (optional, can load from env)
            **kwargs: Overrides applied on top of the environment
        """
        self.config = config or self._load_config_from_env(**kwargs)
        self._validate_config()
        self._report_lock = threading.Lock()

    @abstractmethod
    def _load_config_from_env(self, **kwargs) -> ProviderConfig:
        """Load provider configuration from environment variables."""
        pass

    def _validate_config(self) -> None:
        """Validate that the provider is properly configured."""
        if not isinstance(self.config, ProviderConfig):
            raise TypeError(f"{self.__class__.__name__} expects a ProviderConfig")

    @abstractmethod
    def create(self, handle: ResourceHandle, inputs: dict[str, Any]) -> dict[str, Any]:
        """
        Create one resource on the platform.

        Args:
            handle: The declared resource
            inputs: Its inputs with every deferred value already resolved

        Returns:
            Attribute name -> value assigned by the platform

        Raises:
            Exception: Any failure; the resource's attributes fail with it
        """
        pass

    @abstractmethod
    def get_provider_type(self) -> str:
        """Return the provider type (local, ...)."""
        pass

    def apply(self, run: ProvisioningRun) -> ApplyReport:
        """
        Create every resource declared in the run, in dependency order.

        Blocks the calling thread (the engine's, not the declaring code's)
        until every resource is created or failed. If config.timeout
        elapses first, the run is aborted so nothing stays pending.

        Raises:
            CycleError: If declared resources depend on each other in a cycle
        """
        handles = [handle for level in run.creation_order() for handle in level]
        report = ApplyReport()
        logger.info(
            "Applying %d resources with %s provider", len(handles), self.get_provider_type()
        )

        remaining = len(handles)
        counter_lock = threading.Lock()
        done = threading.Event()
        futures: list[Future] = []

        def finished(handle: ResourceHandle) -> None:
            nonlocal remaining
            with counter_lock:
                remaining -= 1
                if remaining == 0:
                    done.set()

        if not handles:
            done.set()

        pool = ThreadPoolExecutor(
            max_workers=self.config.max_workers, thread_name_prefix="moraine"
        )
        for handle in handles:
            gate = combine(
                handle.prerequisites(),
                lambda *_: None,
                description=f"{handle.logical_name}.prerequisites",
            )
            gate.on_settled(functools.partial(
                self._schedule, pool, futures, counter_lock, handle, report, finished
            ))

        if done.wait(self.config.timeout):
            pool.shutdown(wait=True)
        else:
            reason = f"timed out after {self.config.timeout}s waiting for resources"
            logger.error("Run %s %s", run.name, reason)
            report.aborted = reason
            run.abort(reason)
            # Creations still running are abandoned
            pool.shutdown(wait=False, cancel_futures=True)

        # Errors raised on worker threads (such as a double resolution)
        # are programming errors and must reach the caller.
        with counter_lock:
            submitted = list(futures)
        for future in submitted:
            if future.done() and not future.cancelled():
                future.result()

        logger.info(
            "Applied %d resources (%d created, %d failed)",
            len(handles),
            len(report.created),
            len(report.failed),
        )
        return report

    def _schedule(
        self,
        pool: ThreadPoolExecutor,
        futures: list[Future],
        futures_lock: threading.Lock,
        handle: ResourceHandle,
        report: ApplyReport,
        finished: Callable[[ResourceHandle], None],
        gate: DeferredValue[None],
    ) -> None:
        if gate.terminated:
            # The run was aborted before this resource became creatable
            finished(handle)
            return

        if gate.is_failed:
            error = DependencyFailedError(gate.error)
            logger.warning("Skipping %s: dependency failed: %s", handle.urn, error)
            handle.fail_attributes(error)
            self._record_failure(report, handle, error)
            finished(handle)
            return

        if not any(attr.is_pending for attr in handle.attributes.values()):
            # Aborted while waiting for inputs
            finished(handle)
            return

        try:
            future = pool.submit(self._create_one, handle, report, finished)
        except RuntimeError:
            # Pool shut down after a timeout; abort already failed the attributes
            logger.debug("Not creating %s: run timed out", handle.urn)
            finished(handle)
            return
        with futures_lock:
            futures.append(future)

    def _create_one(
        self,
        handle: ResourceHandle,
        report: ApplyReport,
        finished: Callable[[ResourceHandle], None],
    ) -> None:
        try:
            inputs = handle.resolved_inputs()
            logger.debug("Creating %s", handle.urn)
            attributes = self.create(handle, inputs)
        except Exception as e:
            logger.error("Failed to create %s: %s", handle.urn, e)
            handle.fail_attributes(e)
            self._record_failure(report, handle, e)
        else:
            with self._report_lock:
                report.created.append(handle.urn)
            handle.resolve_attributes(attributes)
        finally:
            finished(handle)

    def _record_failure(
        self, report: ApplyReport, handle: ResourceHandle, error: BaseException
    ) -> None:
        with self._report_lock:
            report.failed[handle.urn] = str(error)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(type='{self.get_provider_type()}', max_workers={self.config.max_workers})"
