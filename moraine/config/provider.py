"""
Provider-specific configuration classes.

These classes provide type-safe configuration for provisioning engines.
"""

import os

from pydantic import BaseModel, Field, ValidationError

from moraine.core.errors import ConfigError


class ProviderConfig(BaseModel):
    """
    Configuration shared by every provider.

    This can be loaded from:
    - Keyword arguments
    - MORAINE_* environment variables (see from_env)
    """

    max_workers: int = Field(
        default=4, ge=1, description="Worker threads used to create resources"
    )
    timeout: float | None = Field(
        default=300.0,
        gt=0,
        description="Seconds to wait for every resource before aborting the run",
    )

    class Config:
        extra = "forbid"

    @classmethod
    def from_env(cls, **overrides):
        """
        Build a config from MORAINE_* environment variables.

        Reads MORAINE_MAX_WORKERS and MORAINE_TIMEOUT; explicit keyword
        arguments that are not None win over the environment.

        Raises:
            ConfigError: If the resulting values are invalid
        """
        values = {}
        if "MORAINE_MAX_WORKERS" in os.environ:
            values["max_workers"] = os.environ["MORAINE_MAX_WORKERS"]
        if "MORAINE_TIMEOUT" in os.environ:
            values["timeout"] = os.environ["MORAINE_TIMEOUT"]
        values.update({key: value for key, value in overrides.items() if value is not None})
        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigError(f"invalid provider configuration: {e}") from e


class LocalConfig(ProviderConfig):
    """
    Local (in-process) Provider Configuration.

    Example:
        local_config = LocalConfig(
            max_workers=2,
            failures={"church-sas-api-prod": "creation quota exceeded"},
        )

        provider = LocalProvider(config=local_config)
    """

    failures: dict[str, str] = Field(
        default_factory=dict,
        description="Resource name -> error message to fail creation with",
    )
    id_prefix: str = Field(default="prj_", description="Prefix for assigned resource ids")
