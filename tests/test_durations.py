from __future__ import annotations

import pytest

from loadgauge.metrics import format_duration
from loadgauge.metrics.durations import ms_to_ns


@pytest.mark.parametrize(
    ("ns", "expected"),
    [
        (0, "0s"),
        (850, "850ns"),
        (1_000, "1µs"),
        (12_500, "12.5µs"),
        (15_000_000, "15ms"),
        (123_456_000, "123.456ms"),
        (1_500_000_000, "1.5s"),
        (62_500_000_000, "1m2.5s"),
        (3_600_000_000_000, "1h0m0s"),
        (-2_000_000, "-2ms"),
    ],
)
def test_format_duration(ns: int, expected: str) -> None:
    assert format_duration(ns) == expected


def test_ms_to_ns_rounds() -> None:
    assert ms_to_ns(30.0) == 30_000_000
    assert ms_to_ns(0.0015) == 1_500
