"""
Annotation parsing.

Turns the loosely typed ``pvc-autoscaler.mkihr.io/*`` annotations of a claim
into a validated :class:`AutoscaleConfig`.  Malformed values are reported as
:class:`ConfigParseError`, they are never clamped or silently defaulted.
"""

from __future__ import annotations

import re
from decimal import Decimal
from typing import Mapping, Optional

from pvcautoscaler.config.annotations import (
    ANNOTATION_FIELDS,
    CEILING_ANNOTATION,
    DEFAULT_INCREASE,
    DEFAULT_THRESHOLD,
    ENABLED_ANNOTATION,
    INCREASE_ANNOTATION,
    PREVIOUS_CAPACITY_ANNOTATION,
    THRESHOLD_ANNOTATION,
)
from pvcautoscaler.core.entities import AutoscaleConfig
from pvcautoscaler.core.errors import ConfigParseError
from pvcautoscaler.core.utils.units import parse_byte_quantity

_PERCENT = re.compile(r"^(\d+(?:\.\d+)?|\.\d+)%$")

__all__ = ["parse_autoscale_config", "parse_percent"]


def parse_percent(field: str, raw: str, *, upper_bound: Optional[Decimal] = None) -> Decimal:
    """
    Parse ``"<number>%"`` into a positive :class:`Decimal`.

    Args:
        field: Field name reported in errors.
        raw: Raw annotation value.
        upper_bound: Inclusive maximum, ``None`` for unbounded.
    """
    match = _PERCENT.match(raw.strip())
    if match is None:
        raise ConfigParseError(field, raw, "expected a number followed by '%'")
    value = Decimal(match.group(1))
    if value <= 0:
        raise ConfigParseError(field, raw, "must be greater than 0%")
    if upper_bound is not None and value > upper_bound:
        raise ConfigParseError(field, raw, f"must not exceed {upper_bound}%")
    return value


def _parse_quantity_field(field: str, raw: Optional[str]) -> Optional[int]:
    if raw is None:
        return None
    try:
        value = parse_byte_quantity(raw)
    except ValueError as exc:
        raise ConfigParseError(field, raw, "expected a byte quantity such as 20Gi") from exc
    if value <= 0:
        raise ConfigParseError(field, raw, "must be a positive quantity")
    return value


def parse_autoscale_config(annotations: Optional[Mapping[str, str]]) -> AutoscaleConfig:
    """
    Build the autoscale configuration of one volume from its annotations.

    Every field is validated even when the volume is not enabled, so a broken
    annotation is reported before anyone opts the volume in.

    Raises:
        ConfigParseError: naming the first malformed field and its raw value.
    """
    annotations = annotations or {}

    enabled = annotations.get(ENABLED_ANNOTATION) == "true"
    threshold = parse_percent(
        ANNOTATION_FIELDS[THRESHOLD_ANNOTATION],
        annotations.get(THRESHOLD_ANNOTATION, DEFAULT_THRESHOLD),
        upper_bound=Decimal(100),
    )
    increase = parse_percent(
        ANNOTATION_FIELDS[INCREASE_ANNOTATION],
        annotations.get(INCREASE_ANNOTATION, DEFAULT_INCREASE),
    )
    ceiling = _parse_quantity_field(
        ANNOTATION_FIELDS[CEILING_ANNOTATION], annotations.get(CEILING_ANNOTATION)
    )
    previous = _parse_quantity_field(
        ANNOTATION_FIELDS[PREVIOUS_CAPACITY_ANNOTATION], annotations.get(PREVIOUS_CAPACITY_ANNOTATION)
    )

    return AutoscaleConfig(
        enabled=enabled,
        threshold_percent=threshold,
        increase_percent=increase,
        ceiling_bytes=ceiling,
        previous_capacity_bytes=previous,
    )
