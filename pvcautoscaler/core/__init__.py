"""
Core package for the pvc-autoscaler runtime.

Re-exports the reconciler so callers can simply do::

    from pvcautoscaler.core import Reconciler
"""

from __future__ import annotations

from pvcautoscaler.core.controllers.reconciler import Reconciler

__all__ = ["Reconciler"]
