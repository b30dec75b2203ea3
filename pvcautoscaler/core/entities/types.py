"""
Autoscale configuration and decision types shared by the parser, the
decision engine and the reconciler.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional, Union


@dataclass(frozen=True)
class AutoscaleConfig:
    """Validated per-volume configuration derived from annotations."""

    enabled: bool = False
    threshold_percent: Decimal = Decimal(80)
    increase_percent: Decimal = Decimal(20)
    ceiling_bytes: Optional[int] = None
    previous_capacity_bytes: Optional[int] = None


class SkipReason(str, Enum):
    """Why a volume was left untouched without evaluating usage."""

    DISABLED = "disabled"
    INELIGIBLE = "ineligible"
    NO_METRICS = "no-metrics"
    RESIZE_PENDING = "resize-pending"
    AT_CEILING = "at-ceiling"


@dataclass(frozen=True)
class NoAction:
    """Usage is below the threshold."""

    def describe(self) -> str:
        return "no-action"


@dataclass(frozen=True)
class Resize:
    """Raise the requested capacity to ``new_capacity_bytes``."""

    new_capacity_bytes: int

    def describe(self) -> str:
        return f"resize to {self.new_capacity_bytes} bytes"


@dataclass(frozen=True)
class Skip:
    """The volume cannot or must not be resized this cycle."""

    reason: SkipReason

    def describe(self) -> str:
        return f"skip ({self.reason.value})"


Action = Union[NoAction, Resize, Skip]
