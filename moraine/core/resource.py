"""
ResourceHandle: A declared resource whose attributes are not known yet.

Declaring a resource returns a handle immediately. Each attribute the
platform assigns (id, name, ...) is exposed as a DeferredValue that
depends on the handle, so anything derived from it is ordered after the
resource's creation.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Iterable, Mapping

from moraine.core.deferred import DeferredValue
from moraine.core.errors import MoraineError


DEFAULT_ATTRIBUTES = ("id", "name")


class ResourceHandle:
    """
    A provisioned entity, referenced by declaring code.

    The handle is created once per declared resource and does not change
    afterwards: inputs and attributes are exposed as read-only mappings.
    The provisioning engine resolves the attributes once the resource
    exists.

    Example:
        api = run.declare("vercel:Project", "church-sas-api-preprod", {...})
        url = api.name.map(lambda n: f"https://{n}.vercel.app")
    """

    def __init__(
        self,
        resource_type: str,
        logical_name: str,
        inputs: Mapping[str, Any] | None = None,
        depends_on: Iterable[ResourceHandle] = (),
        attributes: Iterable[str] = DEFAULT_ATTRIBUTES,
    ):
        self.resource_type = resource_type
        self.logical_name = logical_name
        self.urn = f"{resource_type}::{logical_name}"
        self._inputs = MappingProxyType(dict(inputs or {}))
        self._depends_on = tuple(depends_on)
        self._attributes = MappingProxyType({
            attr: DeferredValue.pending(
                resources=(self,),
                description=f"{logical_name}.{attr}",
            )
            for attr in attributes
        })

    @property
    def inputs(self) -> Mapping[str, Any]:
        """Declared inputs; values may be plain or deferred."""
        return self._inputs

    @property
    def attributes(self) -> Mapping[str, DeferredValue[Any]]:
        """Attribute name -> DeferredValue assigned by the platform."""
        return self._attributes

    @property
    def depends_on(self) -> tuple[ResourceHandle, ...]:
        return self._depends_on

    def output(self, attr: str) -> DeferredValue[Any]:
        """Get the deferred value of an attribute."""
        try:
            return self._attributes[attr]
        except KeyError:
            raise AttributeError(
                f"{self.resource_type} '{self.logical_name}' has no attribute '{attr}'"
            ) from None

    def __getattr__(self, attr: str) -> DeferredValue[Any]:
        if attr.startswith("_"):
            raise AttributeError(attr)
        return self.output(attr)

    def deferred_inputs(self) -> list[DeferredValue[Any]]:
        """All deferred values nested anywhere in the inputs."""
        found: list[DeferredValue[Any]] = []
        _collect_deferred(dict(self._inputs), found)
        return found

    def prerequisites(self) -> list[DeferredValue[Any]]:
        """
        Values that must resolve before this resource can be created.

        Every deferred input, plus the first attribute of each explicit
        dependency, which resolves only once that dependency was created.
        """
        values = self.deferred_inputs()
        for dependency in self._depends_on:
            attributes = list(dependency.attributes.values())
            if attributes:
                values.append(attributes[0])
        return values

    def dependencies(self) -> set[ResourceHandle]:
        """Resources that must exist before this one can be created."""
        deps = set(self._depends_on)
        for deferred in self.deferred_inputs():
            deps.update(deferred.resources)
        deps.discard(self)
        return deps

    def resolved_inputs(self) -> dict[str, Any]:
        """
        Inputs with every deferred value replaced by its result.

        Raises:
            DependencyFailedError: If a deferred input failed
            UnresolvedAtSettleError: If a deferred input is still pending
        """
        return _substitute(dict(self._inputs))

    # Engine side

    def resolve_attributes(self, values: Mapping[str, Any]) -> None:
        """
        Resolve every attribute from the values the platform assigned.

        Attributes the platform did not report fail rather than stay pending.
        Attributes already failed by an aborted run are left alone.
        """
        for attr, deferred in self._attributes.items():
            if attr in values:
                deferred.complete(value=values[attr])
            else:
                deferred.complete(error=MoraineError(
                    f"{self.urn} was created without attribute '{attr}'"
                ))

    def fail_attributes(self, error: BaseException) -> int:
        """
        Fail every attribute that is still pending.

        Returns:
            Number of attributes this call failed
        """
        return sum(1 for deferred in self._attributes.values() if deferred.fail_if_pending(error))

    def __repr__(self):
        return f"ResourceHandle({self.urn})"


def _collect_deferred(value: Any, found: list[DeferredValue[Any]]) -> None:
    if isinstance(value, DeferredValue):
        found.append(value)
    elif isinstance(value, Mapping):
        for item in value.values():
            _collect_deferred(item, found)
    elif isinstance(value, (list, tuple)):
        for item in value:
            _collect_deferred(item, found)


def _substitute(value: Any) -> Any:
    if isinstance(value, DeferredValue):
        return value.result()
    if isinstance(value, Mapping):
        return {key: _substitute(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return type(value)(_substitute(item) for item in value)
    return value
