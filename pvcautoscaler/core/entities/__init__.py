"""
Domain entities used throughout the pvc-autoscaler runtime.
"""

from .types import Action, AutoscaleConfig, NoAction, Resize, Skip, SkipReason  # noqa: F401
from .volume import UsageSample, VolumeIdentity, VolumeMode, VolumePhase, VolumeResource  # noqa: F401

__all__ = [
    "Action",
    "AutoscaleConfig",
    "NoAction",
    "Resize",
    "Skip",
    "SkipReason",
    "UsageSample",
    "VolumeIdentity",
    "VolumeMode",
    "VolumePhase",
    "VolumeResource",
]
