"""
Kubernetes implementation of :class:`VolumeClient`.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import urllib3
from kubernetes import client, config
from kubernetes.client.rest import ApiException

from pvcautoscaler.config.annotations import ENABLED_ANNOTATION, PREVIOUS_CAPACITY_ANNOTATION
from pvcautoscaler.core.entities import VolumeIdentity, VolumeMode, VolumePhase, VolumeResource
from pvcautoscaler.core.errors import (
    ApplyError,
    ApplyTimeoutError,
    StartupError,
    VolumeListError,
    VolumeListTimeoutError,
)
from pvcautoscaler.core.kube.base import VolumeClient
from pvcautoscaler.core.utils.units import format_byte_quantity, parse_byte_quantity

logger = logging.getLogger(__name__)


def _is_timeout(exc: BaseException) -> bool:
    if isinstance(exc, (TimeoutError, urllib3.exceptions.TimeoutError)):
        return True
    reason = getattr(exc, "reason", None)
    return isinstance(reason, (TimeoutError, urllib3.exceptions.TimeoutError))


def _storage_quantity(values: Optional[Dict[str, str]]) -> Optional[int]:
    if not values or "storage" not in values:
        return None
    return parse_byte_quantity(values["storage"])


def _phase(raw: Optional[str]) -> VolumePhase:
    try:
        return VolumePhase(raw)
    except ValueError:
        return VolumePhase.PENDING


def convert_claim(pvc: Any, expandable_classes: Dict[str, bool]) -> VolumeResource:
    """
    Flatten a ``V1PersistentVolumeClaim`` into a :class:`VolumeResource`.

    Raises:
        ValueError: if the claim has no parseable storage request.
    """
    metadata = pvc.metadata
    spec = pvc.spec
    status = pvc.status

    requests = spec.resources.requests if spec.resources is not None else None
    current = _storage_quantity(requests)
    if current is None:
        raise ValueError("claim has no storage request")

    reported = _storage_quantity(status.capacity) if status is not None else None
    storage_class = spec.storage_class_name
    volume_mode = VolumeMode.BLOCK if spec.volume_mode == VolumeMode.BLOCK.value else VolumeMode.FILESYSTEM

    return VolumeResource(
        identity=VolumeIdentity(namespace=metadata.namespace, name=metadata.name),
        current_capacity_bytes=current,
        reported_capacity_bytes=reported,
        phase=_phase(status.phase if status is not None else None),
        volume_mode=volume_mode,
        storage_class_name=storage_class,
        expandable=bool(storage_class and expandable_classes.get(storage_class, False)),
        annotations=dict(metadata.annotations or {}),
    )


def resize_patch(new_capacity_bytes: int) -> Dict[str, Any]:
    """Patch body raising the request and recording it in the same write."""
    quantity = format_byte_quantity(new_capacity_bytes)
    return {
        "metadata": {"annotations": {PREVIOUS_CAPACITY_ANNOTATION: quantity}},
        "spec": {"resources": {"requests": {"storage": quantity}}},
    }


def clear_previous_capacity_patch() -> Dict[str, Any]:
    return {"metadata": {"annotations": {PREVIOUS_CAPACITY_ANNOTATION: None}}}


class KubernetesVolumeClient(VolumeClient):
    """Read and patch PersistentVolumeClaims through the Kubernetes API."""

    def __init__(
        self,
        core_api: Optional[client.CoreV1Api] = None,
        storage_api: Optional[client.StorageV1Api] = None,
        *,
        label_selector: Optional[str] = None,
    ) -> None:
        self._core = core_api or client.CoreV1Api()
        self._storage = storage_api or client.StorageV1Api()
        self.label_selector = label_selector or None

    @classmethod
    def from_environment(cls, *, label_selector: Optional[str] = None) -> "KubernetesVolumeClient":
        """Use in-cluster credentials, falling back to the local kubeconfig."""
        try:
            config.load_incluster_config()
        except config.ConfigException:
            try:
                config.load_kube_config()
            except Exception as exc:
                raise StartupError(f"an error occurred while creating the Kubernetes client: {exc}") from exc
        return cls(label_selector=label_selector)

    def _expandable_classes(self, timeout: Optional[float]) -> Dict[str, bool]:
        classes = self._storage.list_storage_class(_request_timeout=timeout)
        return {sc.metadata.name: bool(sc.allow_volume_expansion) for sc in classes.items}

    def list_volumes(self, *, timeout: Optional[float] = None) -> List[VolumeResource]:
        kwargs: Dict[str, Any] = {"_request_timeout": timeout}
        if self.label_selector:
            kwargs["label_selector"] = self.label_selector
        try:
            claims = self._core.list_persistent_volume_claim_for_all_namespaces(**kwargs)
            expandable = self._expandable_classes(timeout)
        except ApiException as exc:
            raise VolumeListError(f"failed to list volume claims: {exc.status} {exc.reason}") from exc
        except urllib3.exceptions.HTTPError as exc:
            if _is_timeout(exc):
                raise VolumeListTimeoutError(f"listing volume claims timed out: {exc}") from exc
            raise VolumeListError(f"failed to list volume claims: {exc}") from exc

        volumes: List[VolumeResource] = []
        for pvc in claims.items:
            annotations = pvc.metadata.annotations or {}
            if ENABLED_ANNOTATION not in annotations:
                continue
            try:
                volumes.append(convert_claim(pvc, expandable))
            except ValueError as exc:
                logger.warning(
                    "ignoring volume claim %s/%s: %s", pvc.metadata.namespace, pvc.metadata.name, exc
                )
        logger.debug("listed %d candidate volume claims out of %d", len(volumes), len(claims.items))
        return volumes

    def _patch(self, identity: VolumeIdentity, body: Dict[str, Any], timeout: Optional[float]) -> None:
        try:
            self._core.patch_namespaced_persistent_volume_claim(
                identity.name, identity.namespace, body, _request_timeout=timeout
            )
        except ApiException as exc:
            raise ApplyError(f"failed to patch {identity}: {exc.status} {exc.reason}") from exc
        except urllib3.exceptions.HTTPError as exc:
            if _is_timeout(exc):
                raise ApplyTimeoutError(f"patching {identity} timed out: {exc}") from exc
            raise ApplyError(f"failed to patch {identity}: {exc}") from exc

    def apply_resize(self, identity: VolumeIdentity, new_capacity_bytes: int, *, timeout: Optional[float] = None) -> None:
        self._patch(identity, resize_patch(new_capacity_bytes), timeout)

    def clear_previous_capacity(self, identity: VolumeIdentity, *, timeout: Optional[float] = None) -> None:
        self._patch(identity, clear_previous_capacity_patch(), timeout)
