"""
Provisioning engines that create declared resources.
"""

from moraine.providers.base import Provider, ApplyReport
from moraine.providers.local import LocalProvider

__all__ = [
    "Provider",
    "ApplyReport",
    "LocalProvider",
]
