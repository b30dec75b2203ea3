"""
pvc-autoscaler package.

This module exposes high-level entry points while keeping the Kubernetes and
HTTP client stacks lazy-imported so packaging tools do not require them
during metadata builds.
"""

from __future__ import annotations

from importlib import import_module
from importlib.metadata import PackageNotFoundError, version

__all__ = [
    "AutoscaleConfig",
    "ReconcileLoop",
    "Reconciler",
    "decide",
    "parse_autoscale_config",
    "__version__",
]


try:
    __version__ = version("pvc-autoscaler")
except PackageNotFoundError:
    __version__ = "0.0.0"


_LAZY_TARGETS = {
    "AutoscaleConfig": ("pvcautoscaler.core.entities", "AutoscaleConfig"),
    "ReconcileLoop": ("pvcautoscaler.core.controllers", "ReconcileLoop"),
    "Reconciler": ("pvcautoscaler.core.controllers", "Reconciler"),
    "decide": ("pvcautoscaler.core.decision", "decide"),
    "parse_autoscale_config": ("pvcautoscaler.core.parsing", "parse_autoscale_config"),
}


def __getattr__(name: str):
    """Dynamically load public symbols to avoid importing optional deps early."""
    target = _LAZY_TARGETS.get(name)
    if target is None:
        raise AttributeError(f"module '{__name__}' has no attribute '{name}'")

    module_name, attribute = target
    module = import_module(module_name)
    value = getattr(module, attribute)
    globals()[name] = value  # cache for subsequent lookups
    return value
