"""
Shared pytest fixtures.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

import pytest

from pvcautoscaler.config.annotations import ENABLED_ANNOTATION, PREVIOUS_CAPACITY_ANNOTATION
from pvcautoscaler.core.controllers import ReconcileState, Reconciler
from pvcautoscaler.core.entities import UsageSample, VolumeIdentity, VolumeMode, VolumePhase, VolumeResource
from pvcautoscaler.core.kube.base import VolumeClient
from pvcautoscaler.core.metrics.base import MetricsProvider
from pvcautoscaler.core.utils.units import GIB, format_byte_quantity

logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s", force=True)
logging.getLogger("pvcautoscaler").setLevel(logging.DEBUG)


class FakeVolumeClient(VolumeClient):
    """In-memory platform: patches mutate the stored resources."""

    def __init__(self, volumes: Optional[List[VolumeResource]] = None):
        self.volumes: Dict[VolumeIdentity, VolumeResource] = {v.identity: v for v in volumes or []}
        self.resize_calls: List[tuple[VolumeIdentity, int]] = []
        self.clear_calls: List[VolumeIdentity] = []
        self.timeouts: List[Optional[float]] = []
        self.fail_apply: Dict[VolumeIdentity, Exception] = {}
        self.list_error: Optional[Exception] = None

    def add(self, volume: VolumeResource) -> None:
        self.volumes[volume.identity] = volume

    def list_volumes(self, *, timeout=None):
        self.timeouts.append(timeout)
        if self.list_error is not None:
            raise self.list_error
        return [v for v in self.volumes.values() if ENABLED_ANNOTATION in v.annotations]

    def apply_resize(self, identity, new_capacity_bytes, *, timeout=None):
        self.timeouts.append(timeout)
        if identity in self.fail_apply:
            raise self.fail_apply[identity]
        self.resize_calls.append((identity, new_capacity_bytes))
        volume = self.volumes[identity]
        volume.current_capacity_bytes = new_capacity_bytes
        volume.annotations[PREVIOUS_CAPACITY_ANNOTATION] = format_byte_quantity(new_capacity_bytes)

    def clear_previous_capacity(self, identity, *, timeout=None):
        self.timeouts.append(timeout)
        self.clear_calls.append(identity)
        self.volumes[identity].annotations.pop(PREVIOUS_CAPACITY_ANNOTATION, None)

    def catch_up(self, identity: VolumeIdentity) -> None:
        """Simulate the storage driver finishing the expansion."""
        volume = self.volumes[identity]
        volume.reported_capacity_bytes = volume.current_capacity_bytes


class FakeMetricsProvider(MetricsProvider):
    """Return canned samples and record each batch request."""

    def __init__(self, samples: Optional[Dict[VolumeIdentity, UsageSample]] = None):
        self.samples: Dict[VolumeIdentity, UsageSample] = dict(samples or {})
        self.calls: List[frozenset] = []
        self.error: Optional[Exception] = None

    def fetch_usage(self, identities, at, *, timeout=None):
        self.calls.append(frozenset(identities))
        if self.error is not None:
            raise self.error
        return {identity: sample for identity, sample in self.samples.items() if identity in identities}


def make_volume(
    name: str = "data",
    namespace: str = "default",
    *,
    capacity_gib: float = 10,
    reported_gib: Optional[float] = None,
    annotations: Optional[Dict[str, str]] = None,
    enabled: bool = True,
    phase: VolumePhase = VolumePhase.BOUND,
    volume_mode: VolumeMode = VolumeMode.FILESYSTEM,
    expandable: bool = True,
) -> VolumeResource:
    capacity = int(capacity_gib * GIB)
    values = dict(annotations or {})
    if enabled:
        values.setdefault(ENABLED_ANNOTATION, "true")
    return VolumeResource(
        identity=VolumeIdentity(namespace, name),
        current_capacity_bytes=capacity,
        reported_capacity_bytes=int(reported_gib * GIB) if reported_gib is not None else capacity,
        phase=phase,
        volume_mode=volume_mode,
        expandable=expandable,
        storage_class_name="standard",
        annotations=values,
    )


def usage(used_gib: float, capacity_gib: float = 10) -> UsageSample:
    return UsageSample(used_bytes=int(used_gib * GIB), capacity_bytes=int(capacity_gib * GIB))


@pytest.fixture
def volume_factory():
    return make_volume


@pytest.fixture
def usage_factory():
    return usage


@pytest.fixture
def volume_client():
    return FakeVolumeClient()


@pytest.fixture
def metrics_provider():
    return FakeMetricsProvider()


@pytest.fixture
def reconciler(volume_client, metrics_provider):
    return Reconciler(volume_client, metrics_provider)


@pytest.fixture
def state():
    return ReconcileState()
