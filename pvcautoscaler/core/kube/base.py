"""
Volume client interface.

The reconciler only needs three things from the platform: the candidate
volumes, a way to raise a claim's request together with its bookkeeping
annotation, and a way to drop that annotation once the resize has landed.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

from pvcautoscaler.core.entities import VolumeIdentity, VolumeResource


class VolumeClient(ABC):
    """Base class for platform adapters."""

    @abstractmethod
    def list_volumes(self, *, timeout: Optional[float] = None) -> List[VolumeResource]:
        """Return every claim carrying the autoscaler ``enabled`` annotation."""

    @abstractmethod
    def apply_resize(self, identity: VolumeIdentity, new_capacity_bytes: int, *, timeout: Optional[float] = None) -> None:
        """
        Raise the requested capacity and record it as ``previous_capacity``.

        Both fields must change in a single write so the pending-resize guard
        never observes one without the other.
        """

    @abstractmethod
    def clear_previous_capacity(self, identity: VolumeIdentity, *, timeout: Optional[float] = None) -> None:
        """Remove the ``previous_capacity`` annotation from the claim."""
