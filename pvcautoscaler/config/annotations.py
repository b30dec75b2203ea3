"""
Annotation keys and defaults understood by the autoscaler.
"""

from __future__ import annotations

from typing import Dict

ANNOTATION_PREFIX = "pvc-autoscaler.mkihr.io/"

ENABLED_ANNOTATION = ANNOTATION_PREFIX + "enabled"
THRESHOLD_ANNOTATION = ANNOTATION_PREFIX + "threshold"
CEILING_ANNOTATION = ANNOTATION_PREFIX + "ceiling"
INCREASE_ANNOTATION = ANNOTATION_PREFIX + "increase"
PREVIOUS_CAPACITY_ANNOTATION = ANNOTATION_PREFIX + "previous_capacity"

DEFAULT_THRESHOLD = "80%"
DEFAULT_INCREASE = "20%"

# Field names used in ConfigParseError, keyed by annotation.
ANNOTATION_FIELDS: Dict[str, str] = {
    ENABLED_ANNOTATION: "enabled",
    THRESHOLD_ANNOTATION: "threshold",
    INCREASE_ANNOTATION: "increase",
    CEILING_ANNOTATION: "ceiling",
    PREVIOUS_CAPACITY_ANNOTATION: "previous_capacity",
}
