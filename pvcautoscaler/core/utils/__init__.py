"""Utility helpers for pvc-autoscaler."""

from .logging import JsonLogFormatter, configure_runtime_logging, resolve_log_level  # noqa: F401
from .units import (  # noqa: F401
    GIB,
    format_byte_quantity,
    parse_byte_quantity,
    parse_duration,
    round_up_to_gib,
)

__all__ = [
    "GIB",
    "JsonLogFormatter",
    "configure_runtime_logging",
    "format_byte_quantity",
    "parse_byte_quantity",
    "parse_duration",
    "resolve_log_level",
    "round_up_to_gib",
]
