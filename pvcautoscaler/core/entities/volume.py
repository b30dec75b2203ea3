"""
Volume entity definitions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional


class VolumePhase(str, Enum):
    """Lifecycle phase reported by the platform for a claim."""

    PENDING = "Pending"
    BOUND = "Bound"
    LOST = "Lost"


class VolumeMode(str, Enum):
    """How the claim is exposed to pods."""

    FILESYSTEM = "Filesystem"
    BLOCK = "Block"


@dataclass(frozen=True, order=True)
class VolumeIdentity:
    """Namespaced name of a volume claim."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass
class VolumeResource:
    """
    Snapshot of a volume claim as seen at the start of a cycle.

    Attributes:
        identity: Namespace and claim name.
        current_capacity_bytes: Requested capacity (``spec.resources.requests``).
        reported_capacity_bytes: Capacity the platform reports as provisioned
            (``status.capacity``); ``None`` until the claim is bound.
        phase: Claim lifecycle phase.
        volume_mode: Filesystem or raw block.
        storage_class_name: Backing storage class, if any.
        expandable: Whether the storage class allows volume expansion.
        annotations: Raw metadata annotations.
    """

    identity: VolumeIdentity
    current_capacity_bytes: int
    phase: VolumePhase = VolumePhase.PENDING
    volume_mode: VolumeMode = VolumeMode.FILESYSTEM
    expandable: bool = False
    storage_class_name: Optional[str] = None
    reported_capacity_bytes: Optional[int] = None
    annotations: Dict[str, str] = field(default_factory=dict)

    @property
    def is_bound(self) -> bool:
        return self.phase == VolumePhase.BOUND

    @property
    def is_filesystem(self) -> bool:
        return self.volume_mode == VolumeMode.FILESYSTEM


@dataclass(frozen=True)
class UsageSample:
    """Used and total bytes reported by the metrics backend for one volume."""

    used_bytes: int
    capacity_bytes: int
