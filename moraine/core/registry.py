"""
Export Registry: Named values surfaced at the end of a provisioning run.

The registry moves through three states per run:

    open     accepting exports
    closed   exports fixed, values may still be resolving
    settled  every entry resolved or failed

Settling never leaves an entry pending: anything still unresolved is
failed with UnresolvedAtSettleError, because the engine blocks process
completion until every export reaches a terminal state.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any

from moraine.core.deferred import DeferredValue, lift
from moraine.core.errors import (
    DuplicateNameError,
    RegistryClosedError,
    UnresolvedAtSettleError,
)

logger = logging.getLogger(__name__)


class RegistryState(Enum):
    """Lifecycle of an ExportRegistry within one run."""

    OPEN = "open"
    CLOSED = "closed"
    SETTLED = "settled"


@dataclass(frozen=True)
class ExportEntry:
    """A named, externally observable deferred value."""

    name: str
    value: DeferredValue[str]


@dataclass(frozen=True)
class ExportResult:
    """Terminal outcome of one export."""

    name: str
    value: Any = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        if self.ok:
            return {"value": self.value}
        return {"error": str(self.error), "type": type(self.error).__name__}


class ExportRegistry:
    """
    Mapping of export names to deferred values for a single run.

    Construct one per run and pass it to whatever declares resources.
    Registration is thread-safe: when two callers race on the same name,
    the first wins and the second gets DuplicateNameError.

    Example:
        registry = ExportRegistry()
        registry.export("apiPreprodUrl", api.name.map(to_url))

        # after the engine has applied every resource
        registry.close()
        results = registry.settle()
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._entries: dict[str, ExportEntry] = {}
        self._state = RegistryState.OPEN
        self._results: dict[str, ExportResult] = {}

    @property
    def state(self) -> RegistryState:
        return self._state

    def export(self, name: str, value: Any) -> ExportEntry:
        """
        Register a value under name.

        Args:
            name: Export name, unique within the run
            value: DeferredValue, or a plain value to export as-is

        Raises:
            DuplicateNameError: If name was already exported in this run
            RegistryClosedError: If the registry no longer accepts exports
        """
        deferred = lift(value)
        with self._lock:
            if self._state is not RegistryState.OPEN:
                raise RegistryClosedError(name, self._state.value)
            if name in self._entries:
                raise DuplicateNameError("Export", name)
            entry = ExportEntry(name=name, value=deferred)
            self._entries[name] = entry

        logger.debug("Exported %s (%s)", name, deferred.state.value)
        return entry

    def get(self, name: str) -> ExportEntry | None:
        """Get an entry by name."""
        return self._entries.get(name)

    def entries(self) -> list[ExportEntry]:
        """All entries in registration order."""
        with self._lock:
            return list(self._entries.values())

    def list_exports(self) -> list[str]:
        """List all export names."""
        return [entry.name for entry in self.entries()]

    def pending(self) -> list[str]:
        """Names of exports that have not reached a terminal state."""
        return [entry.name for entry in self.entries() if entry.value.is_pending]

    def close(self) -> None:
        """Stop accepting exports. Closing twice is a no-op."""
        with self._lock:
            if self._state is RegistryState.OPEN:
                self._state = RegistryState.CLOSED
                logger.debug("Export registry closed with %d entries", len(self._entries))

    def settle(self) -> dict[str, ExportResult]:
        """
        Fix the outcome of every export.

        Closes the registry if it is still open. Entries still pending are
        failed with UnresolvedAtSettleError. Settling again returns the
        same results.

        Returns:
            Export name -> ExportResult, in registration order
        """
        self.close()
        with self._lock:
            if self._state is RegistryState.SETTLED:
                return dict(self._results)
            entries = list(self._entries.values())

        for entry in entries:
            if entry.value.fail_if_pending(UnresolvedAtSettleError(entry.name)):
                logger.warning("Export %s was still pending at settle", entry.name)

        results = {}
        for entry in entries:
            deferred = entry.value
            if deferred.is_resolved:
                results[entry.name] = ExportResult(entry.name, value=deferred.result())
            else:
                results[entry.name] = ExportResult(entry.name, error=deferred.error)

        with self._lock:
            self._results = results
            self._state = RegistryState.SETTLED
        logger.info(
            "Settled %d exports (%d failed)",
            len(results),
            sum(1 for result in results.values() if not result.ok),
        )
        return dict(results)

    def outputs(self) -> dict[str, Any]:
        """Resolved export values (settled registries only)."""
        return {name: result.value for name, result in self._results.items() if result.ok}

    def failures(self) -> dict[str, str]:
        """Failure messages of failed exports (settled registries only)."""
        return {name: str(result.error) for name, result in self._results.items() if not result.ok}

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly snapshot of the registry."""
        return {
            "state": self._state.value,
            "exports": {name: result.to_dict() for name, result in self._results.items()},
        }

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: str) -> bool:
        return name in self._entries

    def __repr__(self):
        return f"ExportRegistry(state={self._state.value}, exports={len(self._entries)})"
