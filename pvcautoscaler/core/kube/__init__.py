"""
Platform adapters used to list and patch volume claims.
"""

from .base import VolumeClient  # noqa: F401
from .client import KubernetesVolumeClient, convert_claim, resize_patch  # noqa: F401

__all__ = [
    "KubernetesVolumeClient",
    "VolumeClient",
    "convert_claim",
    "resize_patch",
]
