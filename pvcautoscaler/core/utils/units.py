"""
Byte quantity and duration helpers.

Kubernetes expresses storage sizes as quantities (``20Gi``, ``500M``,
``1073741824``) and the command line takes Go-style durations (``30s``,
``1m30s``).  Both are converted here into plain integers / floats so the rest
of the code never handles raw strings.
"""

from __future__ import annotations

import math
import re
from decimal import ROUND_CEILING, Decimal, InvalidOperation
from typing import Union

from kubernetes.utils.quantity import parse_quantity

GIB = 1 << 30

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ns|us|µs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_byte_quantity(raw: Union[str, int]) -> int:
    """
    Parse a Kubernetes byte quantity into a whole number of bytes.

    Fractional byte counts (``1.5Ki`` is exact, ``0.1Ki`` is not) are rounded
    up, matching how the API server canonicalises storage requests.

    Raises:
        ValueError: if ``raw`` is not a valid quantity.
    """
    if isinstance(raw, int):
        return raw
    text = str(raw).strip()
    if not text:
        raise ValueError("empty quantity")
    try:
        value = parse_quantity(text)
    except (ValueError, InvalidOperation) as exc:
        raise ValueError(f"invalid quantity {raw!r}") from exc
    if not value.is_finite():
        raise ValueError(f"invalid quantity {raw!r}")
    return int(value.to_integral_value(rounding=ROUND_CEILING))


def round_up_to_gib(value: Union[int, Decimal]) -> int:
    """Round a byte count up to the next multiple of 2^30."""
    units = (Decimal(value) / GIB).to_integral_value(rounding=ROUND_CEILING)
    return int(units) * GIB


def format_byte_quantity(num_bytes: int) -> str:
    """Render bytes as ``<n>Gi`` when GiB aligned, otherwise as a bare integer."""
    if num_bytes > 0 and num_bytes % GIB == 0:
        return f"{num_bytes // GIB}Gi"
    return str(num_bytes)


def parse_duration(raw: Union[str, int, float]) -> float:
    """
    Convert ``30s`` / ``1m30s`` / ``500ms`` / ``45`` into seconds.

    Bare numbers are taken as seconds.

    Raises:
        ValueError: for empty, negative or malformed durations.
    """
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        seconds = float(raw)
    else:
        text = str(raw).strip()
        if not text:
            raise ValueError("empty duration")
        try:
            seconds = float(text)
        except ValueError:
            position = 0
            seconds = 0.0
            for match in _DURATION_PART.finditer(text):
                if match.start() != position:
                    break
                seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
                position = match.end()
            if position != len(text):
                raise ValueError(f"invalid duration {raw!r}") from None
    if math.isnan(seconds) or math.isinf(seconds) or seconds < 0:
        raise ValueError(f"invalid duration {raw!r}")
    return seconds
