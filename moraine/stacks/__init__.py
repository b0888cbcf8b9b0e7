"""
Stack definitions and the code that declares them into a run.
"""

from moraine.stacks.builder import declare_stack, render_export
from moraine.stacks.church_sas import (
    church_sas_config,
    declare_church_sas,
    vercel_url,
)

__all__ = [
    "declare_stack",
    "render_export",
    "church_sas_config",
    "declare_church_sas",
    "vercel_url",
]
