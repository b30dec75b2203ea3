"""
Controllers orchestrating reconciliation cycles.
"""

from .loop import ReconcileLoop  # noqa: F401
from .reconciler import CycleReport, Deadline, ErrorTracker, ReconcileState, Reconciler  # noqa: F401

__all__ = [
    "CycleReport",
    "Deadline",
    "ErrorTracker",
    "ReconcileLoop",
    "ReconcileState",
    "Reconciler",
]
