"""
Command line entry point: ``pvc-autoscaler``.
"""

from __future__ import annotations

import logging
import signal
from typing import Any, Dict

import click
from click.core import ParameterSource

from pvcautoscaler import __version__
from pvcautoscaler.core.config import ReconcilerSettings, load_settings
from pvcautoscaler.core.controllers import ReconcileLoop, Reconciler
from pvcautoscaler.core.errors import StartupError
from pvcautoscaler.core.kube import KubernetesVolumeClient
from pvcautoscaler.core.metrics import MetricsProviderOptions, create_metrics_provider
from pvcautoscaler.core.utils import JsonLogFormatter, configure_runtime_logging, resolve_log_level

logger = logging.getLogger("pvcautoscaler")

# Flags that feed ReconcilerSettings; anything left at its click default is
# resolved from the config layers instead.
_SETTING_PARAMS = (
    "metrics_client",
    "metrics_client_url",
    "polling_interval",
    "reconcile_timeout",
    "log_level",
    "insecure_skip_verify",
    "bearer_token_file",
    "label_selector",
)


def collect_overrides(ctx: click.Context) -> Dict[str, Any]:
    """Return the settings explicitly given on the command line."""
    overrides: Dict[str, Any] = {}
    for name in _SETTING_PARAMS:
        source = ctx.get_parameter_source(name)
        if source is not None and source is not ParameterSource.DEFAULT:
            overrides[name] = ctx.params[name]
    return overrides


def build_loop(settings: ReconcilerSettings) -> ReconcileLoop:
    """
    Construct the platform and metrics clients and wrap them in a loop.

    Raises:
        StartupError: if either client cannot be created.
    """
    volumes = KubernetesVolumeClient.from_environment(label_selector=settings.label_selector)
    logger.info("kubernetes client ready")

    metrics = create_metrics_provider(
        settings.metrics_client,
        MetricsProviderOptions(
            url=settings.metrics_client_url,
            insecure_skip_verify=settings.insecure_skip_verify,
            bearer_token_file=settings.bearer_token_file,
        ),
    )
    logger.info("metrics client (%s) ready at address %s", settings.metrics_client, settings.metrics_client_url)

    return ReconcileLoop(
        Reconciler(volumes, metrics),
        polling_interval=settings.polling_interval,
        reconcile_timeout=settings.reconcile_timeout,
    )


@click.command(name="pvc-autoscaler")
@click.option("--config", "config_path", type=click.Path(dir_okay=False), default=None, help="YAML settings file.")
@click.option("--metrics-client", default="prometheus", show_default=True, help="Metrics client used to query volume stats.")
@click.option("--metrics-client-url", default="", help="Metrics client URL used to query volume stats.")
@click.option("--polling-interval", default="30s", show_default=True, help="How often to check volume stats.")
@click.option(
    "--reconcile-timeout",
    default="1m",
    show_default=True,
    help="Time after which a reconciliation cycle is considered failed.",
)
@click.option("--log-level", default="INFO", show_default=True, help="DEBUG, INFO, WARNING or ERROR.")
@click.option("--insecure-skip-verify", is_flag=True, default=False, help="Skip TLS verification for the metrics client.")
@click.option("--bearer-token-file", default=None, help="File holding a bearer token for the metrics client.")
@click.option("--label-selector", default=None, help="Only consider claims matching this label selector.")
@click.option("--once", is_flag=True, default=False, help="Run a single reconciliation cycle and exit.")
@click.version_option(__version__, prog_name="pvc-autoscaler")
@click.pass_context
def cli(ctx: click.Context, config_path: str, once: bool, **_settings: Any) -> None:
    """Grow PersistentVolumeClaims automatically when they fill up."""
    try:
        settings = load_settings(config_path, collect_overrides(ctx))
    except StartupError as exc:
        raise click.ClickException(str(exc)) from exc

    configure_runtime_logging(resolve_log_level(settings.log_level), JsonLogFormatter())
    logger.info("pvc-autoscaler version %s", __version__)

    try:
        loop = build_loop(settings)
    except StartupError as exc:
        logger.error("%s", exc)
        ctx.exit(1)

    if once:
        report = loop.run_once()
        ctx.exit(0 if report is not None else 1)

    signal.signal(signal.SIGINT, lambda *_: loop.stop())
    signal.signal(signal.SIGTERM, lambda *_: loop.stop())
    logger.info("pvc-autoscaler ready")
    loop.run_forever()


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
