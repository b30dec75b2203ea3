from __future__ import annotations

import logging

import pytest
from click.testing import CliRunner

from pvcautoscaler import cli as cli_module
from pvcautoscaler.core.config import ReconcilerSettings
from pvcautoscaler.core.errors import StartupError
from pvcautoscaler.core.metrics.prometheus import PrometheusMetricsProvider


class StubLoop:
    def __init__(self, report=object()):
        self.report = report
        self.runs = 0

    def run_once(self):
        self.runs += 1
        return self.report


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def captured(monkeypatch, tmp_path):
    """Record the settings handed to ``build_loop`` instead of touching a cluster."""
    for name in ("PVC_AUTOSCALER_CONFIG", "PVC_AUTOSCALER_METRICS_CLIENT_URL", "PVC_AUTOSCALER_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)

    calls = {"settings": [], "log_levels": []}
    loop = StubLoop()

    def fake_build_loop(settings):
        calls["settings"].append(settings)
        return loop

    monkeypatch.setattr(cli_module, "build_loop", fake_build_loop)
    monkeypatch.setattr(
        cli_module, "configure_runtime_logging", lambda level, formatter=None: calls["log_levels"].append(level)
    )
    calls["loop"] = loop
    return calls


def test_help(runner):
    result = runner.invoke(cli_module.cli, ["--help"])
    assert result.exit_code == 0
    assert "--metrics-client-url" in result.output
    assert "--polling-interval" in result.output


def test_once_runs_a_single_cycle(runner, captured):
    result = runner.invoke(
        cli_module.cli,
        ["--once", "--metrics-client-url", "http://prometheus:9090", "--polling-interval", "15s", "--log-level", "debug"],
    )

    assert result.exit_code == 0, result.output
    settings = captured["settings"][0]
    assert settings.metrics_client_url == "http://prometheus:9090"
    assert settings.polling_interval == 15.0
    assert settings.reconcile_timeout == 60.0
    assert captured["log_levels"] == [logging.DEBUG]
    assert captured["loop"].runs == 1


def test_failed_cycle_exits_non_zero(runner, captured):
    captured["loop"].report = None
    result = runner.invoke(cli_module.cli, ["--once"])
    assert result.exit_code == 1


def test_flags_override_config_file(runner, captured, tmp_path):
    config_file = tmp_path / "settings.yaml"
    config_file.write_text(
        "reconciler:\n  metrics_client_url: http://from-file:9090\n  polling_interval: 5m\n",
        encoding="utf-8",
    )

    result = runner.invoke(
        cli_module.cli, ["--once", "--config", str(config_file), "--metrics-client-url", "http://from-flag:9090"]
    )

    assert result.exit_code == 0, result.output
    settings = captured["settings"][0]
    assert settings.metrics_client_url == "http://from-flag:9090"
    assert settings.polling_interval == 300.0


def test_invalid_setting_is_reported(runner, captured):
    result = runner.invoke(cli_module.cli, ["--once", "--polling-interval", "soon"])
    assert result.exit_code != 0
    assert "polling_interval" in result.output
    assert captured["settings"] == []


def test_startup_failure_exits_one(runner, captured, monkeypatch):
    def failing_build_loop(settings):
        raise StartupError("unknown metrics client: datadog")

    monkeypatch.setattr(cli_module, "build_loop", failing_build_loop)
    result = runner.invoke(cli_module.cli, ["--once", "--metrics-client", "datadog"])
    assert result.exit_code == 1


def test_collect_overrides_skips_defaults():
    with cli_module.cli.make_context("pvc-autoscaler", ["--label-selector", "app=db"]) as ctx:
        overrides = cli_module.collect_overrides(ctx)
    assert overrides == {"label_selector": "app=db"}


def test_build_loop_wires_settings_into_the_clients(monkeypatch, tmp_path):
    token_file = tmp_path / "token"
    token_file.write_text("s3cret\n", encoding="utf-8")
    selectors = []

    def fake_from_environment(*, label_selector=None):
        selectors.append(label_selector)
        return object()

    monkeypatch.setattr(cli_module.KubernetesVolumeClient, "from_environment", staticmethod(fake_from_environment))
    settings = ReconcilerSettings(
        metrics_client_url="https://prometheus:9090",
        insecure_skip_verify=True,
        bearer_token_file=str(token_file),
        polling_interval=15.0,
        reconcile_timeout=20.0,
        label_selector="team=storage",
    )

    loop = cli_module.build_loop(settings)

    metrics = loop.reconciler.metrics
    assert isinstance(metrics, PrometheusMetricsProvider)
    assert metrics.url == "https://prometheus:9090"
    assert metrics._verify is False
    assert metrics._session.headers["Authorization"] == "Bearer s3cret"
    assert selectors == ["team=storage"]
    assert loop.polling_interval == 15.0
    assert loop.reconcile_timeout == 20.0


def test_build_loop_rejects_unknown_metrics_client(monkeypatch):
    monkeypatch.setattr(
        cli_module.KubernetesVolumeClient, "from_environment", staticmethod(lambda *, label_selector=None: object())
    )
    with pytest.raises(StartupError):
        cli_module.build_loop(ReconcilerSettings(metrics_client="graphite", metrics_client_url="http://graphite"))
