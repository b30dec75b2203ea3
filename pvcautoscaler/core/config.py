"""Runtime settings for the pvc-autoscaler process.

Settings are layered, later sources winning:

1. Built-in defaults bundled with the package (``config/default.yaml``).
2. A YAML file: the explicit ``--config`` path, else the file named by the
   ``PVC_AUTOSCALER_CONFIG`` environment variable, else
   ``pvc-autoscaler.yaml`` in the current working directory.
3. Environment variables ``PVC_AUTOSCALER_METRICS_CLIENT_URL`` and
   ``PVC_AUTOSCALER_LOG_LEVEL``.
4. Command line flags (passed in as ``overrides``).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from importlib import resources
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from pvcautoscaler.core.errors import StartupError
from pvcautoscaler.core.utils.units import parse_duration

__all__ = [
    "ReconcilerSettings",
    "load_settings",
]


_ENV_VAR = "PVC_AUTOSCALER_CONFIG"
_CWD_FILE = "pvc-autoscaler.yaml"
_ENV_OVERRIDES = {
    "PVC_AUTOSCALER_METRICS_CLIENT_URL": "metrics_client_url",
    "PVC_AUTOSCALER_LOG_LEVEL": "log_level",
}
_OPTIONAL_STRINGS = {"bearer_token_file", "label_selector"}


@dataclass
class ReconcilerSettings:
    metrics_client: str = "prometheus"
    metrics_client_url: str = ""
    polling_interval: float = 30.0
    reconcile_timeout: float = 60.0
    log_level: str = "INFO"
    insecure_skip_verify: bool = False
    bearer_token_file: Optional[str] = None
    label_selector: Optional[str] = None


def _resolve_config_path(explicit: Optional[str] = None) -> Optional[Path]:
    if explicit:
        candidate = Path(explicit).expanduser()
        if not candidate.is_file():
            raise StartupError(f"config file {explicit} does not exist")
        return candidate

    env_path = os.environ.get(_ENV_VAR)
    if env_path:
        candidate = Path(env_path).expanduser()
        if candidate.is_file():
            return candidate

    cwd_file = Path.cwd() / _CWD_FILE
    if cwd_file.is_file():
        return cwd_file
    return None


def _reconciler_section(data: Any, source: str) -> Dict[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise StartupError(f"{source}: top level must be a mapping")
    node = data.get("reconciler", {}) or {}
    if not isinstance(node, dict):
        raise StartupError(f"{source}: 'reconciler' section must be a mapping")
    return node


def _load_yaml_layers(explicit: Optional[str]) -> Dict[str, Any]:
    bundled = resources.files("pvcautoscaler.config").joinpath("default.yaml").read_text(encoding="utf-8")
    merged = dict(_reconciler_section(yaml.safe_load(bundled), "default.yaml"))

    path = _resolve_config_path(explicit)
    if path is not None:
        try:
            with path.open("r", encoding="utf-8") as fh:
                merged.update(_reconciler_section(yaml.safe_load(fh), str(path)))
        except yaml.YAMLError as exc:
            raise StartupError(f"failed to parse config file {path}: {exc}") from exc
    return merged


def _coerce_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {"true", "1", "yes"}:
        return True
    if isinstance(value, str) and value.strip().lower() in {"false", "0", "no", ""}:
        return False
    raise StartupError(f"setting '{key}' must be a boolean, got {value!r}")


def _build_settings(raw: Mapping[str, Any]) -> ReconcilerSettings:
    known = {f.name for f in fields(ReconcilerSettings)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise StartupError(f"unknown settings: {', '.join(unknown)}")

    settings = ReconcilerSettings()
    for key, value in raw.items():
        if key in _OPTIONAL_STRINGS:
            value = str(value).strip() if value is not None else ""
            value = value or None
        elif value is None:
            continue
        elif key in {"polling_interval", "reconcile_timeout"}:
            try:
                value = parse_duration(value)
            except ValueError as exc:
                raise StartupError(f"setting '{key}': {exc}") from exc
        elif key == "insecure_skip_verify":
            value = _coerce_bool(key, value)
        else:
            value = str(value).strip()
        setattr(settings, key, value)

    if settings.polling_interval <= 0:
        raise StartupError("setting 'polling_interval' must be positive")
    if settings.reconcile_timeout <= 0:
        raise StartupError("setting 'reconcile_timeout' must be positive")
    return settings


def load_settings(config_path: Optional[str] = None, overrides: Optional[Mapping[str, Any]] = None) -> ReconcilerSettings:
    """
    Resolve the effective settings.

    Args:
        config_path: Explicit YAML file, takes precedence over discovery.
        overrides: Values from the command line; ``None`` entries are ignored.

    Raises:
        StartupError: for unreadable files or invalid values.
    """
    raw = _load_yaml_layers(config_path)
    for env_key, setting in _ENV_OVERRIDES.items():
        env_value = os.environ.get(env_key)
        if env_value:
            raw[setting] = env_value
    for key, value in (overrides or {}).items():
        if value is not None:
            raw[key] = value
    return _build_settings(raw)
