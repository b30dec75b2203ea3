"""
Fixed-interval driver for the reconciler.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from pvcautoscaler.core.controllers.reconciler import CycleReport, Deadline, ReconcileState, Reconciler
from pvcautoscaler.core.errors import PVCAutoscalerError

logger = logging.getLogger(__name__)


class ReconcileLoop:
    """
    Run one reconciliation cycle per polling interval, never two at once.

    The first cycle starts one interval after :meth:`run_forever` is called.
    Each cycle gets its own :class:`Deadline`; a failed cycle is logged and the
    next tick proceeds normally.
    """

    def __init__(
        self,
        reconciler: Reconciler,
        *,
        polling_interval: float = 30.0,
        reconcile_timeout: Optional[float] = 60.0,
        state: Optional[ReconcileState] = None,
    ) -> None:
        if polling_interval <= 0:
            raise ValueError("polling_interval must be positive")
        self.reconciler = reconciler
        self.polling_interval = polling_interval
        self.reconcile_timeout = reconcile_timeout
        self.state = state or ReconcileState()
        self._stop = threading.Event()

    def run_once(self) -> Optional[CycleReport]:
        """Run a single cycle, returning ``None`` if it failed at cycle level."""
        deadline = Deadline(self.reconcile_timeout)
        try:
            report = self.reconciler.reconcile(self.state, deadline=deadline)
        except PVCAutoscalerError as exc:
            logger.error("failed to reconcile: %s", exc)
            return None
        except Exception:
            logger.exception("unexpected error during reconcile")
            return None

        if report.failed:
            logger.info(
                "reconcile cycle %d finished: %d volumes, %d resized, %d failed",
                self.state.cycles,
                len(report.outcomes),
                len(report.resized),
                len(report.failed),
            )
        else:
            logger.debug(
                "reconcile cycle %d finished: %d volumes, %d resized",
                self.state.cycles,
                len(report.outcomes),
                len(report.resized),
            )
        return report

    def run_forever(self) -> None:
        logger.info("reconcile loop started (interval=%.1fs timeout=%s)", self.polling_interval, self.reconcile_timeout)
        while not self._stop.wait(self.polling_interval):
            self.run_once()
        logger.info("reconcile loop stopped")

    def stop(self) -> None:
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()
