"""
Load stack definitions from YAML files.
"""

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from moraine.config.project import StackConfig
from moraine.core.errors import ConfigError

logger = logging.getLogger(__name__)


def parse_stack_config(data: Any, source: str = "<data>") -> StackConfig:
    """
    Validate already-parsed data as a StackConfig.

    Raises:
        ConfigError: If the data is not a valid stack definition
    """
    if not isinstance(data, dict):
        raise ConfigError(f"{source}: expected a mapping at the top level")
    try:
        return StackConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"{source}: invalid stack definition\n{e}") from e


def load_stack_config(path: str | Path) -> StackConfig:
    """
    Load and validate a stack definition from a YAML file.

    Args:
        path: Path to the YAML file

    Returns:
        Validated StackConfig

    Raises:
        ConfigError: If the file cannot be read, parsed or validated
    """
    path = Path(path)
    try:
        text = path.read_text()
    except OSError as e:
        raise ConfigError(f"Cannot read stack definition {path}: {e}") from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"{path}: invalid YAML: {e}") from e

    config = parse_stack_config(data, source=str(path))
    logger.debug(
        "Loaded stack %s from %s (%d projects, %d exports)",
        config.name,
        path,
        len(config.projects),
        len(config.exports),
    )
    return config


def dump_stack_config(config: StackConfig) -> str:
    """Serialize a StackConfig back to YAML."""
    return yaml.safe_dump(config.model_dump(exclude_none=True), sort_keys=False)
