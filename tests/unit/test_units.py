from decimal import Decimal

import pytest

from pvcautoscaler.core.utils.units import (
    GIB,
    format_byte_quantity,
    parse_byte_quantity,
    parse_duration,
    round_up_to_gib,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("1Ki", 1024),
        ("1.5Gi", GIB + GIB // 2),
        ("10Gi", 10 * GIB),
        ("1k", 1000),
        ("100", 100),
        (" 2Mi ", 2 * 1024 * 1024),
        (4096, 4096),
    ],
)
def test_parse_byte_quantity(raw, expected):
    assert parse_byte_quantity(raw) == expected


def test_fractional_bytes_round_up():
    assert parse_byte_quantity("0.1Ki") == 103


@pytest.mark.parametrize("raw", ["", "   ", "ten", "10GiB", "NaN", "Infinity"])
def test_parse_byte_quantity_rejects_garbage(raw):
    with pytest.raises(ValueError):
        parse_byte_quantity(raw)


def test_round_up_to_gib():
    assert round_up_to_gib(0) == 0
    assert round_up_to_gib(1) == GIB
    assert round_up_to_gib(GIB) == GIB
    assert round_up_to_gib(GIB + 1) == 2 * GIB
    assert round_up_to_gib(Decimal(12 * GIB)) == 12 * GIB
    assert round_up_to_gib(Decimal("12884901888.4")) == 13 * GIB


def test_format_byte_quantity():
    assert format_byte_quantity(12 * GIB) == "12Gi"
    assert format_byte_quantity(GIB + 1) == str(GIB + 1)
    assert format_byte_quantity(0) == "0"


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("30s", 30.0),
        ("1m", 60.0),
        ("1m30s", 90.0),
        ("500ms", 0.5),
        ("2h", 7200.0),
        ("45", 45.0),
        ("2.5", 2.5),
        (10, 10.0),
    ],
)
def test_parse_duration(raw, expected):
    assert parse_duration(raw) == pytest.approx(expected)


@pytest.mark.parametrize("raw", ["", "soon", "10x", "-5", "1m-30s", "nan"])
def test_parse_duration_rejects_garbage(raw):
    with pytest.raises(ValueError):
        parse_duration(raw)
