from __future__ import annotations

import threading

import pytest

from pvcautoscaler.core.controllers import ReconcileLoop
from pvcautoscaler.core.errors import MetricsFetchError


def test_polling_interval_must_be_positive(reconciler):
    with pytest.raises(ValueError):
        ReconcileLoop(reconciler, polling_interval=0)


def test_run_once_returns_report(reconciler, volume_client, metrics_provider, volume_factory, usage_factory):
    volume = volume_factory()
    volume_client.add(volume)
    metrics_provider.samples[volume.identity] = usage_factory(9)
    loop = ReconcileLoop(reconciler, polling_interval=1)

    report = loop.run_once()

    assert report is not None
    assert report.resized == [volume.identity]
    assert loop.state.cycles == 1


def test_cycle_failure_is_logged_and_next_cycle_proceeds(
    caplog, reconciler, volume_client, metrics_provider, volume_factory, usage_factory
):
    volume = volume_factory()
    volume_client.add(volume)
    metrics_provider.error = MetricsFetchError("prometheus unreachable")
    loop = ReconcileLoop(reconciler, polling_interval=1)

    assert loop.run_once() is None
    assert "prometheus unreachable" in caplog.text

    metrics_provider.error = None
    metrics_provider.samples[volume.identity] = usage_factory(1)
    report = loop.run_once()
    assert report is not None
    assert loop.state.cycles == 2


def test_unexpected_error_does_not_escape(reconciler, volume_client):
    volume_client.list_error = RuntimeError("bug")
    loop = ReconcileLoop(reconciler, polling_interval=1)
    assert loop.run_once() is None


def test_state_is_kept_between_cycles(reconciler, volume_client, metrics_provider, volume_factory, usage_factory):
    volume = volume_factory(reported_gib=10)
    volume_client.add(volume)
    metrics_provider.samples[volume.identity] = usage_factory(9)
    loop = ReconcileLoop(reconciler, polling_interval=1)

    loop.run_once()
    second = loop.run_once()

    assert len(volume_client.resize_calls) == 1
    assert second.resized == []


def test_run_forever_stops(reconciler):
    loop = ReconcileLoop(reconciler, polling_interval=0.01, reconcile_timeout=1)
    thread = threading.Thread(target=loop.run_forever, daemon=True)
    thread.start()
    for _ in range(500):
        if loop.state.cycles >= 2:
            break
        thread.join(0.01)
    loop.stop()
    thread.join(2)

    assert not thread.is_alive()
    assert loop.stopped
