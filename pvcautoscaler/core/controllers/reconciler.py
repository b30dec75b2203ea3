"""
Reconciliation orchestrator.

One call to :meth:`Reconciler.reconcile` is one cycle: list the candidate
claims, fetch their usage once, then decide and apply per claim.  Per-volume
failures are recorded in the caller-owned :class:`ReconcileState` and never
stop the cycle; listing or metrics failures abort it.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import AbstractSet, Callable, Dict, List, Optional, Union

from pvcautoscaler.core.decision import decide
from pvcautoscaler.core.entities import (
    Action,
    AutoscaleConfig,
    Resize,
    Skip,
    SkipReason,
    UsageSample,
    VolumeIdentity,
    VolumeResource,
)
from pvcautoscaler.core.errors import (
    ApplyError,
    ConfigParseError,
    PVCAutoscalerError,
    ReconcileTimeoutError,
)
from pvcautoscaler.core.kube.base import VolumeClient
from pvcautoscaler.core.metrics.base import MetricsProvider
from pvcautoscaler.core.parsing import parse_autoscale_config
from pvcautoscaler.core.utils.units import format_byte_quantity

logger = logging.getLogger(__name__)


class Deadline:
    """Wall-clock budget shared by every blocking call of one cycle."""

    def __init__(self, timeout: Optional[float], *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self.timeout = timeout
        self._expires_at = None if timeout is None else clock() + timeout

    @classmethod
    def unbounded(cls) -> "Deadline":
        return cls(None)

    def remaining(self) -> Optional[float]:
        """
        Seconds left for the next blocking call, ``None`` when unbounded.

        Raises:
            ReconcileTimeoutError: once the budget is spent.
        """
        if self._expires_at is None:
            return None
        left = self._expires_at - self._clock()
        if left <= 0:
            raise ReconcileTimeoutError(f"reconcile deadline of {self.timeout:.1f}s exceeded")
        return left

    def expired(self) -> bool:
        return self._expires_at is not None and self._clock() >= self._expires_at


class ErrorTracker:
    """
    Remember which volumes are currently failing and why.

    Lets the reconciler log a failure once, stay quiet while the same failure
    repeats, and announce the recovery.
    """

    def __init__(self) -> None:
        self._errors: Dict[VolumeIdentity, str] = {}

    def record(self, identity: VolumeIdentity, message: str) -> bool:
        """Store the failure; return ``True`` if it is new for this volume."""
        previous = self._errors.get(identity)
        self._errors[identity] = message
        return previous != message

    def clear(self, identity: VolumeIdentity) -> bool:
        """Forget the volume; return ``True`` if it had a recorded failure."""
        return self._errors.pop(identity, None) is not None

    def retain(self, identities: AbstractSet[VolumeIdentity]) -> None:
        """Drop entries for volumes that are no longer candidates."""
        for identity in [key for key in self._errors if key not in identities]:
            del self._errors[identity]

    def get(self, identity: VolumeIdentity) -> Optional[str]:
        return self._errors.get(identity)

    def __contains__(self, identity: object) -> bool:
        return identity in self._errors

    def __len__(self) -> int:
        return len(self._errors)

    def snapshot(self) -> Dict[str, str]:
        return {str(identity): message for identity, message in sorted(self._errors.items())}


@dataclass
class ReconcileState:
    """Process-local state carried from one cycle to the next."""

    errors: ErrorTracker = field(default_factory=ErrorTracker)
    missing_metrics: ErrorTracker = field(default_factory=ErrorTracker)
    cycles: int = 0


Outcome = Union[Action, PVCAutoscalerError]


@dataclass
class CycleReport:
    """Per-volume outcome of one cycle."""

    started_at: datetime
    outcomes: Dict[VolumeIdentity, Outcome] = field(default_factory=dict)

    @property
    def resized(self) -> List[VolumeIdentity]:
        return [identity for identity, outcome in self.outcomes.items() if isinstance(outcome, Resize)]

    @property
    def failed(self) -> List[VolumeIdentity]:
        return [identity for identity, outcome in self.outcomes.items() if isinstance(outcome, PVCAutoscalerError)]


class Reconciler:
    """Drive reconciliation cycles over a volume client and a metrics provider."""

    def __init__(self, volumes: VolumeClient, metrics: MetricsProvider) -> None:
        self.volumes = volumes
        self.metrics = metrics

    def reconcile(
        self,
        state: ReconcileState,
        *,
        deadline: Optional[Deadline] = None,
        now: Optional[datetime] = None,
    ) -> CycleReport:
        """
        Run one cycle.

        Raises:
            VolumeListError: candidate claims could not be listed.
            MetricsFetchError: usage could not be fetched for the batch.
            ReconcileTimeoutError: the deadline elapsed before a blocking call.
        """
        deadline = deadline or Deadline.unbounded()
        now = now or datetime.now(timezone.utc)
        state.cycles += 1
        report = CycleReport(started_at=now)

        resources = self.volumes.list_volumes(timeout=deadline.remaining())
        identities = {resource.identity for resource in resources}
        samples = self.metrics.fetch_usage(identities, now, timeout=deadline.remaining()) if identities else {}

        state.errors.retain(identities)
        state.missing_metrics.retain(identities)

        logger.debug(
            "cycle %d: %d candidate volumes, %d with usage samples", state.cycles, len(resources), len(samples)
        )

        for resource in resources:
            identity = resource.identity
            try:
                outcome = self._reconcile_volume(resource, samples.get(identity), state, deadline)
            except (ConfigParseError, ApplyError) as exc:
                report.outcomes[identity] = exc
                self._report_failure(state, identity, exc)
                continue

            report.outcomes[identity] = outcome
            if state.errors.clear(identity):
                logger.info("volume %s recovered", identity, extra={"volume": str(identity)})
        return report

    def _reconcile_volume(
        self,
        resource: VolumeResource,
        sample: Optional[UsageSample],
        state: ReconcileState,
        deadline: Deadline,
    ) -> Action:
        identity = resource.identity
        config = parse_autoscale_config(resource.annotations)
        config = self._settle_previous_capacity(resource, config, deadline)

        action = decide(config, sample, resource)
        self._track_missing_metrics(state, identity, action)

        if isinstance(action, Resize):
            self.volumes.apply_resize(identity, action.new_capacity_bytes, timeout=deadline.remaining())
            logger.info(
                "volume %s resized from %s to %s",
                identity,
                format_byte_quantity(resource.current_capacity_bytes),
                format_byte_quantity(action.new_capacity_bytes),
                extra={
                    "volume": str(identity),
                    "used_bytes": sample.used_bytes,
                    "capacity_bytes": sample.capacity_bytes,
                },
            )
        elif isinstance(action, Skip) and action.reason is SkipReason.RESIZE_PENDING:
            logger.debug("volume %s is still resizing to %s", identity, format_byte_quantity(resource.current_capacity_bytes))
        else:
            logger.debug("volume %s: %s", identity, action.describe())
        return action

    def _settle_previous_capacity(
        self,
        resource: VolumeResource,
        config: AutoscaleConfig,
        deadline: Deadline,
    ) -> AutoscaleConfig:
        """Drop the pending marker of an enabled claim once the platform reports the requested size."""
        previous = config.previous_capacity_bytes
        reported = resource.reported_capacity_bytes
        if not config.enabled or previous is None or reported is None or reported < previous:
            return config

        self.volumes.clear_previous_capacity(resource.identity, timeout=deadline.remaining())
        logger.info(
            "volume %s finished resizing to %s",
            resource.identity,
            format_byte_quantity(reported),
            extra={"volume": str(resource.identity)},
        )
        return replace(config, previous_capacity_bytes=None)

    @staticmethod
    def _track_missing_metrics(state: ReconcileState, identity: VolumeIdentity, action: Action) -> None:
        if isinstance(action, Skip) and action.reason is SkipReason.NO_METRICS:
            if state.missing_metrics.record(identity, SkipReason.NO_METRICS.value):
                logger.warning("no usage metrics available for volume %s", identity, extra={"volume": str(identity)})
        elif state.missing_metrics.clear(identity):
            logger.info("usage metrics available again for volume %s", identity, extra={"volume": str(identity)})

    @staticmethod
    def _report_failure(state: ReconcileState, identity: VolumeIdentity, exc: PVCAutoscalerError) -> None:
        message = str(exc)
        if state.errors.record(identity, message):
            logger.error("volume %s: %s", identity, message, extra={"volume": str(identity)})
        else:
            logger.debug("volume %s still failing: %s", identity, message)
