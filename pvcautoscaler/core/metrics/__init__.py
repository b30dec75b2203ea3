"""
Metrics providers for pvc-autoscaler.
"""

from __future__ import annotations

from .base import (
    MetricsProvider,
    MetricsProviderOptions,
    available_metrics_providers,
    create_metrics_provider,
    join_usage,
    register_metrics_provider,
    unregister_metrics_provider,
)
from .prometheus import PrometheusMetricsProvider

__all__ = [
    "MetricsProvider",
    "MetricsProviderOptions",
    "PrometheusMetricsProvider",
    "available_metrics_providers",
    "create_metrics_provider",
    "join_usage",
    "register_metrics_provider",
    "unregister_metrics_provider",
]
