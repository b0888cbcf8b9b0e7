"""
Declare a StackConfig into a ProvisioningRun.
"""

import logging

from moraine.config.project import ExportConfig, StackConfig
from moraine.core.deferred import DeferredValue
from moraine.core.resource import ResourceHandle
from moraine.core.run import ProvisioningRun

logger = logging.getLogger(__name__)


def render_export(handle: ResourceHandle, export: ExportConfig) -> DeferredValue[str]:
    """
    Derive an export from a project attribute.

    The template is applied once the attribute resolves; nothing here waits.
    """
    template = export.template
    return handle.output(export.attribute).map(
        lambda value: template.format(value=value),
        description=export.name,
    )


def declare_stack(run: ProvisioningRun, config: StackConfig) -> dict[str, ResourceHandle]:
    """
    Declare every project of a stack and register its exports.

    Args:
        run: The run to declare into
        config: Validated stack definition

    Returns:
        Project name -> ResourceHandle
    """
    handles: dict[str, ResourceHandle] = {}
    for project in config.projects:
        handles[project.name] = run.declare(
            config.resource_type,
            project.name,
            inputs=project.to_inputs(),
        )

    for export in config.exports:
        run.export(export.name, render_export(handles[export.project], export))

    logger.info(
        "Declared stack %s: %d projects, %d exports",
        config.name,
        len(handles),
        len(config.exports),
    )
    return handles
