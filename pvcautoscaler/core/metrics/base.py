"""
Metrics provider interface and registry.

A provider answers one question per cycle: for this set of volumes, how many
bytes are used and how many are available at instant ``at``.  Backends are
registered by name and chosen once at startup, so the reconciler only ever
sees the :class:`MetricsProvider` contract.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import AbstractSet, Callable, Dict, Mapping, Optional

from pvcautoscaler.core.entities import UsageSample, VolumeIdentity
from pvcautoscaler.core.errors import StartupError


@dataclass(frozen=True)
class MetricsProviderOptions:
    """Connection settings handed to a provider factory."""

    url: str
    insecure_skip_verify: bool = False
    bearer_token_file: Optional[str] = None


class MetricsProvider(ABC):
    """Base class for all metrics backends."""

    @abstractmethod
    def fetch_usage(
        self,
        identities: AbstractSet[VolumeIdentity],
        at: datetime,
        *,
        timeout: Optional[float] = None,
    ) -> Dict[VolumeIdentity, UsageSample]:
        """
        Return a usage sample per identity.

        Volumes lacking either the used or the capacity figure are left out of
        the result.  Any backend failure raises
        :class:`~pvcautoscaler.core.errors.MetricsFetchError` for the whole batch.
        """


def join_usage(
    used: Mapping[VolumeIdentity, int],
    capacity: Mapping[VolumeIdentity, int],
    identities: Optional[AbstractSet[VolumeIdentity]] = None,
) -> Dict[VolumeIdentity, UsageSample]:
    """Combine the two per-identity series, dropping identities missing a capacity."""
    samples: Dict[VolumeIdentity, UsageSample] = {}
    for identity, used_bytes in used.items():
        if identities is not None and identity not in identities:
            continue
        capacity_bytes = capacity.get(identity)
        if capacity_bytes is None:
            continue
        samples[identity] = UsageSample(used_bytes=used_bytes, capacity_bytes=capacity_bytes)
    return samples


ProviderFactory = Callable[[MetricsProviderOptions], MetricsProvider]

_PROVIDER_REGISTRY: Dict[str, ProviderFactory] = {}


def register_metrics_provider(name: str, factory: ProviderFactory, *, replace: bool = False) -> None:
    """
    Register a metrics backend under ``name``.

    Args:
        name: Backend name, normalised to lower case.
        factory: Callable building the provider from :class:`MetricsProviderOptions`.
        replace: Allow overriding an existing registration.
    """
    key = name.strip().lower()
    if not key:
        raise ValueError("Metrics provider name must be a non-empty string.")
    if key in _PROVIDER_REGISTRY and not replace:
        raise ValueError(f"Metrics provider '{key}' already registered.")
    _PROVIDER_REGISTRY[key] = factory


def unregister_metrics_provider(name: str) -> None:
    _PROVIDER_REGISTRY.pop(name.strip().lower(), None)


def available_metrics_providers() -> tuple[str, ...]:
    return tuple(sorted(_PROVIDER_REGISTRY))


def create_metrics_provider(name: str, options: MetricsProviderOptions) -> MetricsProvider:
    """
    Build the provider registered as ``name``.

    Raises:
        StartupError: for unknown names or when the factory fails.
    """
    key = name.strip().lower()
    try:
        factory = _PROVIDER_REGISTRY[key]
    except KeyError as exc:
        raise StartupError(
            f"unknown metrics client: {name}. "
            f"Available: {', '.join(available_metrics_providers()) or '<none>'}"
        ) from exc
    provider = factory(options)
    if not isinstance(provider, MetricsProvider):
        raise StartupError(f"metrics client factory '{key}' did not return a MetricsProvider")
    return provider


__all__ = [
    "MetricsProvider",
    "MetricsProviderOptions",
    "available_metrics_providers",
    "create_metrics_provider",
    "join_usage",
    "register_metrics_provider",
    "unregister_metrics_provider",
]
