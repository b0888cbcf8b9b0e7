"""
Local provider: an in-process stand-in for a hosted-project platform.

Resources are "created" on worker threads, assigned a deterministic id,
and keep the name they were declared with. Creation failures can be
injected per resource name to exercise error propagation.
"""

import hashlib
import logging
import threading
from typing import Any

from moraine.config.provider import LocalConfig
from moraine.core.errors import ProvisioningError
from moraine.core.resource import ResourceHandle
from moraine.providers.base import Provider

logger = logging.getLogger(__name__)


class LocalProvider(Provider):
    """
    Provider that simulates the platform in the current process.

    Example:
        provider = LocalProvider(
            config=LocalConfig(failures={"church-sas-api-prod": "creation quota exceeded"})
        )
        provider.apply(run)

        provider.state  # urn -> attributes of every created resource
    """

    def __init__(self, config: LocalConfig | None = None, **kwargs):
        super().__init__(config, **kwargs)
        self._state: dict[str, dict[str, Any]] = {}
        self._state_lock = threading.Lock()

    def _load_config_from_env(self, **kwargs) -> LocalConfig:
        return LocalConfig.from_env(**kwargs)

    def _validate_config(self) -> None:
        if not isinstance(self.config, LocalConfig):
            raise TypeError("LocalProvider expects a LocalConfig")

    def create(self, handle: ResourceHandle, inputs: dict[str, Any]) -> dict[str, Any]:
        name = inputs.get("name", handle.logical_name)
        message = self.config.failures.get(name) or self.config.failures.get(handle.logical_name)
        if message:
            raise ProvisioningError(message, urn=handle.urn)

        attributes = dict(inputs)
        attributes["name"] = name
        attributes["id"] = self.assign_id(handle)

        with self._state_lock:
            self._state[handle.urn] = attributes
        logger.info("Created %s (id=%s)", handle.urn, attributes["id"])
        return attributes

    def assign_id(self, handle: ResourceHandle) -> str:
        """Deterministic platform id for a resource."""
        digest = hashlib.sha256(handle.urn.encode()).hexdigest()
        return f"{self.config.id_prefix}{digest[:24]}"

    @property
    def state(self) -> dict[str, dict[str, Any]]:
        """Attributes of every created resource, by URN."""
        with self._state_lock:
            return {urn: dict(attributes) for urn, attributes in self._state.items()}

    def get_provider_type(self) -> str:
        return "local"
