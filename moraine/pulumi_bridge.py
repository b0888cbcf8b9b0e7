"""
Pulumi bridge: Hand Moraine values to a Pulumi program.

Moraine resolves exports itself; when it runs inside a Pulumi program the
settled outputs can be re-exported as Pulumi stack outputs.

Requires the optional dependency: pip install "moraine-infra[pulumi]"
"""

import logging
from typing import Any

from moraine.core.errors import DependencyFailedError
from moraine.core.run import RunResult

logger = logging.getLogger(__name__)


def _import_pulumi():
    try:
        import pulumi
    except ImportError:
        raise ImportError(
            "pulumi is required for the Pulumi bridge. Install it with:\n"
            '  pip install "moraine-infra[pulumi]"'
        )
    return pulumi


def export_to_pulumi(result: RunResult) -> dict[str, Any]:
    """
    Create Pulumi stack outputs for every resolved export.

    Args:
        result: Settled run result

    Returns:
        Dictionary of exported outputs

    Raises:
        DependencyFailedError: If any export failed (after exporting the rest)
    """
    pulumi = _import_pulumi()

    outputs = {}
    for name, value in result.outputs.items():
        pulumi.export(name, value)
        outputs[name] = value

    failed = [export for export in result.results.values() if not export.ok]
    if failed:
        logger.error("Not exporting failed outputs: %s", ", ".join(e.name for e in failed))
        raise DependencyFailedError(failed[0].error)

    return outputs

