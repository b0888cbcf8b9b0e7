"""
Error kinds raised by deferred values, the export registry and runs.

All failures are terminal for the value chain they affect. Nothing at
this layer retries.
"""


class MoraineError(Exception):
    """Base class for all Moraine errors."""
    pass


class AlreadyResolvedError(MoraineError):
    """
    A deferred value was resolved or failed a second time.

    This is a programming error: it means the dependency graph is broken.
    It is never swallowed.
    """

    def __init__(self, description: str, state: str):
        self.description = description
        self.state = state
        super().__init__(f"{description} is already {state}")


class DependencyFailedError(MoraineError):
    """
    An upstream dependency failed.

    The message is the originating failure message so the root cause
    resource stays identifiable.
    """

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(str(cause))

    @property
    def root_cause(self) -> BaseException:
        """Follow nested dependency failures back to the originating error."""
        cause = self.cause
        while isinstance(cause, DependencyFailedError):
            cause = cause.cause
        return cause


class DuplicateNameError(MoraineError):
    """A name was registered twice within one run."""

    def __init__(self, kind: str, name: str):
        self.kind = kind
        self.name = name
        super().__init__(f"{kind} '{name}' is already registered in this run")


class UnresolvedAtSettleError(MoraineError):
    """A deferred value was still pending when the run settled."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"'{name}' was never resolved before the run settled")


class RegistryClosedError(MoraineError):
    """An export was attempted after the registry stopped accepting exports."""

    def __init__(self, name: str, state: str):
        self.name = name
        self.state = state
        super().__init__(f"Cannot export '{name}': registry is {state}")


class RunCancelledError(MoraineError):
    """The provisioning run was aborted before a value resolved."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Run cancelled: {reason}")


class CycleError(MoraineError):
    """Declared resources depend on each other in a cycle."""

    def __init__(self, cycle: list[str]):
        self.cycle = cycle
        super().__init__("Dependency cycle: " + " -> ".join(cycle))


class ConfigError(MoraineError):
    """A stack definition could not be loaded or is invalid."""
    pass


class ProvisioningError(MoraineError):
    """The platform failed to create a resource."""

    def __init__(self, message: str, urn: str | None = None):
        self.urn = urn
        super().__init__(message)
