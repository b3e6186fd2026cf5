from __future__ import annotations

import pytest

from loadgauge.metrics import ErrorType, Outcome
from loadgauge.metrics.durations import ms_to_ns


def ok(latency_ms: float, status: int = 200, worker_id: int = 0) -> Outcome:
    return Outcome(worker_id=worker_id, latency_ns=ms_to_ns(latency_ms), status_code=status)


def failed(latency_ms: float = 1.0, worker_id: int = 0) -> Outcome:
    return Outcome(
        worker_id=worker_id,
        latency_ns=ms_to_ns(latency_ms),
        status_code=None,
        error_type=ErrorType.CONNECT,
        error="ConnectError: refused",
    )


@pytest.fixture
def mixed_outcomes() -> list[Outcome]:
    return [ok(50.0)] * 3 + [failed(), failed()]
