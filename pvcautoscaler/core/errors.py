"""
Exception hierarchy for pvc-autoscaler.

Per-volume errors (``ConfigParseError``, ``ApplyError``) are recorded by the
reconciler and never abort a cycle.  Cycle-level errors (``VolumeListError``,
``MetricsFetchError``) abort the current cycle only.  ``StartupError`` is the
single fatal class.
"""

from __future__ import annotations


class PVCAutoscalerError(Exception):
    """Base class for every error raised by this package."""


class ConfigParseError(PVCAutoscalerError):
    """A volume annotation holds a malformed or out-of-range value."""

    def __init__(self, field: str, raw_value: str, reason: str = "") -> None:
        self.field = field
        self.raw_value = raw_value
        self.reason = reason
        message = f"invalid value {raw_value!r} for {field}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class MetricsFetchError(PVCAutoscalerError):
    """The metrics backend could not produce a usage snapshot for this cycle."""


class MetricsTimeoutError(MetricsFetchError, TimeoutError):
    """The metrics backend did not answer before the cycle deadline."""


class VolumeListError(PVCAutoscalerError):
    """Candidate volumes could not be listed from the platform."""


class VolumeListTimeoutError(VolumeListError, TimeoutError):
    """Listing candidate volumes did not complete before the cycle deadline."""


class ApplyError(PVCAutoscalerError):
    """A patch against a single volume failed."""


class ApplyTimeoutError(ApplyError, TimeoutError):
    """A volume patch did not complete before the cycle deadline."""


class ReconcileTimeoutError(PVCAutoscalerError, TimeoutError):
    """The cycle deadline elapsed before a blocking call could start."""


class StartupError(PVCAutoscalerError):
    """A client or setting required to start the reconcile loop is unusable."""


__all__ = [
    "ApplyError",
    "ApplyTimeoutError",
    "ConfigParseError",
    "MetricsFetchError",
    "MetricsTimeoutError",
    "PVCAutoscalerError",
    "ReconcileTimeoutError",
    "StartupError",
    "VolumeListError",
    "VolumeListTimeoutError",
]
