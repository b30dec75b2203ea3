"""
Resize decision engine.

:func:`decide` is a pure function of the volume's configuration, its usage
sample and the claim snapshot.  All arithmetic is done on integers and
:class:`~decimal.Decimal` so threshold comparisons and GiB rounding are exact.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pvcautoscaler.core.entities import (
    Action,
    AutoscaleConfig,
    NoAction,
    Resize,
    Skip,
    SkipReason,
    UsageSample,
    VolumeResource,
)
from pvcautoscaler.core.utils.units import GIB, round_up_to_gib

__all__ = ["decide", "is_over_threshold", "target_capacity"]

_HUNDRED = Decimal(100)


def is_over_threshold(sample: UsageSample, threshold_percent: Decimal) -> bool:
    """Return ``True`` when ``used / capacity`` is at or above the threshold."""
    return Decimal(sample.used_bytes) * _HUNDRED >= threshold_percent * Decimal(sample.capacity_bytes)


def target_capacity(current_bytes: int, config: AutoscaleConfig) -> int:
    """
    Grow ``current_bytes`` by the configured percentage, GiB aligned and capped.

    A ceiling that is not a whole number of GiB caps at the largest GiB
    multiple below it, so the result stays aligned.
    """
    raw = Decimal(current_bytes) * (_HUNDRED + config.increase_percent) / _HUNDRED
    rounded = round_up_to_gib(raw)
    if config.ceiling_bytes is not None:
        return min(rounded, config.ceiling_bytes - config.ceiling_bytes % GIB)
    return rounded


def decide(config: AutoscaleConfig, sample: Optional[UsageSample], resource: VolumeResource) -> Action:
    """
    Decide what to do with one volume this cycle.

    The checks run in a fixed order: opt-in, eligibility, metrics availability,
    pending resize, threshold, then growth.  A ``Resize`` is always GiB aligned,
    strictly larger than the current request and never above the ceiling.
    """
    if not config.enabled:
        return Skip(SkipReason.DISABLED)

    if not (resource.is_bound and resource.expandable and resource.is_filesystem):
        return Skip(SkipReason.INELIGIBLE)

    if sample is None or sample.capacity_bytes <= 0:
        return Skip(SkipReason.NO_METRICS)

    current = resource.current_capacity_bytes
    # A previous resize is still in flight until the annotation is cleared.
    if config.previous_capacity_bytes is not None and config.previous_capacity_bytes == current:
        return Skip(SkipReason.RESIZE_PENDING)

    if not is_over_threshold(sample, config.threshold_percent):
        return NoAction()

    new_capacity = target_capacity(current, config)
    if new_capacity <= current:
        return Skip(SkipReason.AT_CEILING)
    return Resize(new_capacity)
