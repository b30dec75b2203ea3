"""
Prometheus metrics provider.

Reads the kubelet volume statistics exported to Prometheus through the
instant query endpoint (``/api/v1/query``).
"""

from __future__ import annotations

import logging
import math
import time
from datetime import datetime
from typing import AbstractSet, Any, Dict, Optional

import requests

from pvcautoscaler.core.entities import UsageSample, VolumeIdentity
from pvcautoscaler.core.errors import MetricsFetchError, MetricsTimeoutError, StartupError
from pvcautoscaler.core.metrics.base import (
    MetricsProvider,
    MetricsProviderOptions,
    join_usage,
    register_metrics_provider,
)

logger = logging.getLogger(__name__)

USED_BYTES_QUERY = "kubelet_volume_stats_used_bytes"
CAPACITY_BYTES_QUERY = "kubelet_volume_stats_capacity_bytes"

NAMESPACE_LABEL = "namespace"
CLAIM_LABEL = "persistentvolumeclaim"


def _sample_value(sample: Dict[str, Any]) -> Optional[int]:
    """Return the sample value in whole bytes, ``None`` if it is missing, NaN or infinite."""
    try:
        _, raw_value = sample["value"]
        value = float(raw_value)
    except (KeyError, TypeError, ValueError):
        return None
    if not math.isfinite(value):
        return None
    return int(value)


class PrometheusMetricsProvider(MetricsProvider):
    """Fetch used / capacity bytes for volume claims from a Prometheus server."""

    def __init__(
        self,
        url: str,
        *,
        insecure_skip_verify: bool = False,
        bearer_token_file: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not url:
            raise StartupError("metrics client URL is required for the prometheus client")
        self.url = url.rstrip("/")
        self._query_url = f"{self.url}/api/v1/query"
        self._session = session or requests.Session()

        self._verify = True
        if insecure_skip_verify and self.url.startswith("https://"):
            self._verify = False
            logger.warning("InsecureSkipVerify is enabled. TLS certificate verification will be skipped.")

        if bearer_token_file:
            try:
                with open(bearer_token_file, "r", encoding="utf-8") as fh:
                    token = fh.read().strip()
            except OSError as exc:
                raise StartupError(f"failed to read bearer token file {bearer_token_file}: {exc}") from exc
            if token:
                self._session.headers["Authorization"] = f"Bearer {token}"
                logger.info("Using bearer token authentication for Prometheus")

    @classmethod
    def from_options(cls, options: MetricsProviderOptions) -> "PrometheusMetricsProvider":
        return cls(
            options.url,
            insecure_skip_verify=options.insecure_skip_verify,
            bearer_token_file=options.bearer_token_file,
        )

    def fetch_usage(
        self,
        identities: AbstractSet[VolumeIdentity],
        at: datetime,
        *,
        timeout: Optional[float] = None,
    ) -> Dict[VolumeIdentity, UsageSample]:
        deadline = None if timeout is None else time.monotonic() + timeout

        used = self.query_vector(USED_BYTES_QUERY, at, timeout=self._remaining(deadline))
        capacity = self.query_vector(CAPACITY_BYTES_QUERY, at, timeout=self._remaining(deadline))

        samples = join_usage(used, capacity, identities)
        logger.debug(
            "Prometheus returned used=%d capacity=%d series, %d usable for %d volumes",
            len(used),
            len(capacity),
            len(samples),
            len(identities),
        )
        return samples

    @staticmethod
    def _remaining(deadline: Optional[float]) -> Optional[float]:
        if deadline is None:
            return None
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise MetricsTimeoutError("reconcile deadline exceeded before querying Prometheus")
        return remaining

    def query_vector(self, query: str, at: datetime, *, timeout: Optional[float] = None) -> Dict[VolumeIdentity, int]:
        """Run an instant query and key the resulting vector by claim identity."""
        params = {"query": query, "time": f"{at.timestamp():.3f}"}
        try:
            response = self._session.get(self._query_url, params=params, timeout=timeout, verify=self._verify)
        except requests.Timeout as exc:
            raise MetricsTimeoutError(f"prometheus query {query!r} timed out: {exc}") from exc
        except requests.RequestException as exc:
            raise MetricsFetchError(f"prometheus query {query!r} failed: {exc}") from exc

        body = self._decode(query, response)
        data = body.get("data") or {}
        result_type = data.get("resultType")
        if result_type != "vector":
            raise MetricsFetchError(f"unknown response type: {result_type}")

        values: Dict[VolumeIdentity, int] = {}
        for sample in data.get("result") or []:
            metric = sample.get("metric") or {}
            identity = VolumeIdentity(
                namespace=str(metric.get(NAMESPACE_LABEL, "")),
                name=str(metric.get(CLAIM_LABEL, "")),
            )
            value = _sample_value(sample)
            if value is None:
                # The volume drops out of the join and is reported as missing metrics.
                logger.debug("ignoring unusable sample for %s in %r: %r", identity, query, sample.get("value"))
                continue
            values[identity] = value
        return values

    @staticmethod
    def _decode(query: str, response: requests.Response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            body = None

        if not isinstance(body, dict):
            raise MetricsFetchError(
                f"prometheus query {query!r} returned HTTP {response.status_code} with a non-JSON body"
            )
        if response.status_code >= 400 or body.get("status") != "success":
            raise MetricsFetchError(
                f"prometheus query {query!r} failed with HTTP {response.status_code}: "
                f"{body.get('errorType', 'error')}: {body.get('error', 'unknown error')}"
            )
        return body


register_metrics_provider("prometheus", PrometheusMetricsProvider.from_options)


__all__ = [
    "CAPACITY_BYTES_QUERY",
    "PrometheusMetricsProvider",
    "USED_BYTES_QUERY",
]
