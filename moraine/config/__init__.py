"""
Configuration classes for Moraine.

Stack definitions describe which projects to declare and which URLs to
export; provider configs tune the provisioning engine.
"""

from moraine.config.project import (
    GitRepositoryConfig,
    ProjectConfig,
    ExportConfig,
    StackConfig,
)
from moraine.config.provider import ProviderConfig, LocalConfig
from moraine.config.loader import (
    load_stack_config,
    parse_stack_config,
    dump_stack_config,
)

__all__ = [
    # Stack definitions
    "GitRepositoryConfig",
    "ProjectConfig",
    "ExportConfig",
    "StackConfig",
    # Provider configs
    "ProviderConfig",
    "LocalConfig",
    # Loading
    "load_stack_config",
    "parse_stack_config",
    "dump_stack_config",
]
