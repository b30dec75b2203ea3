"""
Static configuration shipped with pvc-autoscaler: annotation keys and the
bundled ``default.yaml``.
"""

from .annotations import (  # noqa: F401
    ANNOTATION_PREFIX,
    CEILING_ANNOTATION,
    DEFAULT_INCREASE,
    DEFAULT_THRESHOLD,
    ENABLED_ANNOTATION,
    INCREASE_ANNOTATION,
    PREVIOUS_CAPACITY_ANNOTATION,
    THRESHOLD_ANNOTATION,
)

__all__ = [
    "ANNOTATION_PREFIX",
    "CEILING_ANNOTATION",
    "DEFAULT_INCREASE",
    "DEFAULT_THRESHOLD",
    "ENABLED_ANNOTATION",
    "INCREASE_ANNOTATION",
    "PREVIOUS_CAPACITY_ANNOTATION",
    "THRESHOLD_ANNOTATION",
]
