"""
DeferredValue: A value that becomes known only after a resource is created.

A DeferredValue is a single-assignment container with an explicit state
(pending, resolved, failed) and a list of continuations waiting for it.
Transformations are registered with map() or combine() and run when the
inputs settle, so declaring code never blocks.

Each DeferredValue also carries the set of resources it depends on.
Composition unions those sets, which lets the provisioning engine order
anything that reads a derived value after every resource it came from.

Example:
    name = DeferredValue.pending(description="api.name")
    url = name.map(lambda n: f"https://{n}.vercel.app")

    name.resolve("church-sas-api-preprod")
    url.result()  # "https://church-sas-api-preprod.vercel.app"
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Generic, Iterable, Sequence, TypeVar

from moraine.core.errors import (
    AlreadyResolvedError,
    DependencyFailedError,
    RunCancelledError,
    UnresolvedAtSettleError,
)

if TYPE_CHECKING:
    from moraine.core.resource import ResourceHandle

logger = logging.getLogger(__name__)

T = TypeVar("T")
U = TypeVar("U")


class DeferredState(Enum):
    """Lifecycle states of a DeferredValue."""

    PENDING = "pending"
    RESOLVED = "resolved"
    FAILED = "failed"


class DeferredValue(Generic[T]):
    """
    A value-to-be, resolved or failed exactly once.

    Resolution may happen on any thread. Continuations run on the thread
    that settles the value (or immediately on the registering thread if
    the value is already settled), always outside the internal lock.
    """

    def __init__(
        self,
        resources: Iterable[ResourceHandle] = (),
        description: str | None = None,
    ):
        self._lock = threading.Lock()
        self._state = DeferredState.PENDING
        self._value: T | None = None
        self._error: BaseException | None = None
        self._continuations: list[Callable[[DeferredValue[T]], None]] = []
        self._resources = frozenset(resources)
        self.description = description or "deferred value"

    @classmethod
    def pending(
        cls,
        resources: Iterable[ResourceHandle] = (),
        description: str | None = None,
    ) -> DeferredValue[Any]:
        """Create a new value in the pending state."""
        return cls(resources=resources, description=description)

    create_pending = pending

    @classmethod
    def of(cls, value: T, description: str | None = None) -> DeferredValue[T]:
        """Create an already-resolved value with no resource dependencies."""
        deferred = cls(description=description or repr(value))
        deferred.resolve(value)
        return deferred

    @classmethod
    def all(cls, *values: Any) -> DeferredValue[list[Any]]:
        """Combine values into one resolving with the list of their results."""
        return combine(values, lambda *resolved: list(resolved), description="all")

    # State transitions

    def resolve(self, value: T) -> None:
        """
        Transition pending -> resolved and run registered continuations.

        Raises:
            AlreadyResolvedError: If the value is already resolved or failed
        """
        self._settle(DeferredState.RESOLVED, value=value)

    def fail(self, error: BaseException) -> None:
        """
        Transition pending -> failed and propagate the error to dependents.

        Raises:
            AlreadyResolvedError: If the value is already resolved or failed
        """
        if not isinstance(error, BaseException):
            raise TypeError(f"fail() expects an exception, got {type(error).__name__}")
        self._settle(DeferredState.FAILED, error=error)

    def fail_if_pending(self, error: BaseException) -> bool:
        """
        Fail the value only if nothing settled it first.

        Used by settle and abort, which race with the engine's own
        resolution callbacks.

        Returns:
            True if this call failed the value
        """
        continuations = self._transition(DeferredState.FAILED, error=error)
        if continuations is None:
            return False
        self._run(continuations)
        return True

    def complete(self, value: T | None = None, error: BaseException | None = None) -> None:
        """
        Resolve with value, or fail if error is given, from the engine side.

        Unlike resolve()/fail(), a value already failed by an aborted or
        settled run is left alone: the late completion is dropped.

        Raises:
            AlreadyResolvedError: If the value was settled any other way
        """
        if error is not None:
            continuations = self._transition(DeferredState.FAILED, error=error)
        else:
            continuations = self._transition(DeferredState.RESOLVED, value=value)
        if continuations is None:
            if self.terminated:
                logger.debug("Dropping late completion of %s", self.description)
                return
            raise AlreadyResolvedError(self.description, self._state.value)
        self._run(continuations)

    def _settle(
        self,
        state: DeferredState,
        value: T | None = None,
        error: BaseException | None = None,
    ) -> None:
        continuations = self._transition(state, value=value, error=error)
        if continuations is None:
            raise AlreadyResolvedError(self.description, self._state.value)
        self._run(continuations)

    def _transition(
        self,
        state: DeferredState,
        value: T | None = None,
        error: BaseException | None = None,
    ) -> list[Callable[[DeferredValue[T]], None]] | None:
        # Returns None when the value was already settled.
        with self._lock:
            if self._state is not DeferredState.PENDING:
                return None
            self._value = value
            self._error = error
            self._state = state
            continuations = self._continuations
            self._continuations = []
        logger.debug("%s -> %s", self.description, state.value)
        return continuations

    def _run(self, continuations: list[Callable[[DeferredValue[T]], None]]) -> None:
        for continuation in continuations:
            continuation(self)

    def on_settled(self, callback: Callable[[DeferredValue[T]], None]) -> None:
        """Register a continuation, or run it now if already settled."""
        with self._lock:
            if self._state is DeferredState.PENDING:
                self._continuations.append(callback)
                return
        callback(self)

    # Composition

    def map(self, fn: Callable[[T], U], description: str | None = None) -> DeferredValue[U]:
        """
        Derive a new value by applying fn once this value resolves.

        fn must be pure: it is called at most once, and never if this
        value fails. If fn raises, the derived value fails with that error.

        Args:
            fn: Transformation from T to U
            description: Optional label used in logs and errors

        Returns:
            A DeferredValue carrying the same resource dependencies
        """
        result: DeferredValue[U] = DeferredValue(
            resources=self._resources,
            description=description or f"{self.description}.map",
        )

        def continuation(source: DeferredValue[T]) -> None:
            if source._state is DeferredState.FAILED:
                result.complete(error=source._error)
                return
            try:
                mapped = fn(source._value)
            except AlreadyResolvedError:
                raise
            except Exception as exc:
                logger.debug("Transform for %s raised %r", result.description, exc)
                result.complete(error=exc)
                return
            result.complete(value=mapped)

        self.on_settled(continuation)
        return result

    apply = map

    # Inspection

    @property
    def state(self) -> DeferredState:
        return self._state

    @property
    def is_pending(self) -> bool:
        return self._state is DeferredState.PENDING

    @property
    def is_resolved(self) -> bool:
        return self._state is DeferredState.RESOLVED

    @property
    def is_failed(self) -> bool:
        return self._state is DeferredState.FAILED

    @property
    def error(self) -> BaseException | None:
        """The failure, if this value failed."""
        return self._error

    @property
    def terminated(self) -> bool:
        """True if an aborted or settled run failed this value before it resolved."""
        return self._state is DeferredState.FAILED and isinstance(
            self._error, (RunCancelledError, UnresolvedAtSettleError)
        )

    @property
    def resources(self) -> frozenset[ResourceHandle]:
        """Resources that must be created before this value is known."""
        return self._resources

    def result(self) -> T:
        """
        Return the resolved value without waiting.

        Raises:
            DependencyFailedError: If the value failed (message is the cause's)
            UnresolvedAtSettleError: If the value is still pending
        """
        state = self._state
        if state is DeferredState.RESOLVED:
            return self._value
        if state is DeferredState.FAILED:
            raise DependencyFailedError(self._error) from self._error
        raise UnresolvedAtSettleError(self.description)

    def __repr__(self):
        if self._state is DeferredState.RESOLVED:
            return f"DeferredValue({self.description}={self._value!r})"
        if self._state is DeferredState.FAILED:
            return f"DeferredValue({self.description}, failed={self._error!r})"
        return f"DeferredValue({self.description}, pending)"


def lift(value: Any) -> DeferredValue[Any]:
    """Return value unchanged if it is deferred, otherwise wrap it as resolved."""
    if isinstance(value, DeferredValue):
        return value
    return DeferredValue.of(value)


def combine(
    values: Sequence[Any],
    fn: Callable[..., U],
    description: str | None = None,
) -> DeferredValue[U]:
    """
    Compose N values into one via an N-ary pure function.

    The result depends on every resource any input depends on. fn is
    called with all resolved inputs in order, never with partial inputs.
    If inputs fail, the result fails with the leftmost failure once every
    input to its left has resolved, so the reported error does not depend
    on the order in which the engine happens to settle inputs.

    Args:
        values: DeferredValues or plain values (plain values are lifted)
        fn: Function taking one positional argument per input
        description: Optional label used in logs and errors

    Example:
        endpoint = combine(
            [api.name, "/v1"],
            lambda name, path: f"https://{name}.vercel.app{path}",
        )
    """
    inputs = [lift(value) for value in values]
    resources = frozenset().union(*(deferred.resources for deferred in inputs))
    result: DeferredValue[U] = DeferredValue(
        resources=resources,
        description=description or f"combine({len(inputs)})",
    )
    lock = threading.Lock()
    decided = False

    def check(_settled: DeferredValue[Any] | None) -> None:
        nonlocal decided
        with lock:
            if decided:
                return
            failure = None
            for deferred in inputs:
                if deferred.is_pending:
                    return
                if deferred.is_failed:
                    failure = deferred.error
                    break
            decided = True

        if failure is not None:
            result.complete(error=failure)
            return
        try:
            combined = fn(*(deferred._value for deferred in inputs))
        except AlreadyResolvedError:
            raise
        except Exception as exc:
            logger.debug("Transform for %s raised %r", result.description, exc)
            result.complete(error=exc)
            return
        result.complete(value=combined)

    if not inputs:
        check(None)
    for deferred in inputs:
        deferred.on_settled(check)
    return result


def concat(*parts: Any) -> DeferredValue[str]:
    """Join plain and deferred parts into one deferred string."""
    return combine(parts, lambda *resolved: "".join(str(part) for part in resolved), description="concat")


def interpolate(template: str, *args: Any, **kwargs: Any) -> DeferredValue[str]:
    """
    Format a template with deferred arguments once all of them resolve.

    Example:
        url = interpolate("https://{name}.vercel.app", name=project.name)
    """
    keys = list(kwargs)
    positional = len(args)

    def render(*resolved: Any) -> str:
        return template.format(
            *resolved[:positional],
            **dict(zip(keys, resolved[positional:])),
        )

    return combine([*args, *kwargs.values()], render, description=f"interpolate({template!r})")
