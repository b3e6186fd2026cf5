from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping

import httpx


class ConfigurationError(ValueError):
    """Raised for run parameters that must be rejected before any work starts."""


class DispatchStrategy(str, Enum):
    EPOCH_BATCHED = "epoch_batched"
    WORKER_PACED = "worker_paced"


def _require_positive_int(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        msg = f"{name} must be an integer, got {value!r}"
        raise ConfigurationError(msg)
    if value <= 0:
        msg = f"{name} must be positive, got {value}"
        raise ConfigurationError(msg)


@dataclass(frozen=True, slots=True)
class TestParameters:
    __test__ = False

    url: str
    rate: int
    duration_sec: int

    def __post_init__(self) -> None:
        _require_positive_int("rate", self.rate)
        _require_positive_int("duration", self.duration_sec)
        try:
            parsed = httpx.URL(self.url)
        except (httpx.InvalidURL, TypeError) as exc:
            msg = f"Invalid target URL {self.url!r}: {exc}"
            raise ConfigurationError(msg) from exc
        if parsed.scheme not in ("http", "https") or not parsed.host:
            msg = f"Target URL must be an absolute http(s) URL, got {self.url!r}"
            raise ConfigurationError(msg)

    @property
    def total_requests(self) -> int:
        return self.rate * self.duration_sec


def parse_test_parameters(url: str, rate: str | int, duration: str | int) -> TestParameters:
    return TestParameters(
        url=url,
        rate=_parse_int("rate", rate),
        duration_sec=_parse_int("duration", duration),
    )


def _parse_int(name: str, raw: str | int) -> int:
    if isinstance(raw, int) and not isinstance(raw, bool):
        return raw
    try:
        return int(str(raw).strip())
    except ValueError as exc:
        msg = f"{name} must be an integer, got {raw!r}"
        raise ConfigurationError(msg) from exc


@dataclass(frozen=True, slots=True)
class RunConfig:
    params: TestParameters
    strategy: DispatchStrategy = DispatchStrategy.EPOCH_BATCHED
    workers: int | None = None
    timeout_sec: float = 10.0
    max_in_flight: int | None = None
    grace_sec: float = 5.0
    epoch_sec: float = 1.0
    headers: Mapping[str, str] = field(default_factory=dict)
    run_id: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    notes: str = ""

    def __post_init__(self) -> None:
        if self.workers is not None:
            _require_positive_int("workers", self.workers)
        if self.max_in_flight is not None:
            _require_positive_int("max_in_flight", self.max_in_flight)
        if self.timeout_sec <= 0:
            msg = f"timeout must be positive, got {self.timeout_sec}"
            raise ConfigurationError(msg)
        if self.epoch_sec <= 0:
            msg = f"epoch length must be positive, got {self.epoch_sec}"
            raise ConfigurationError(msg)
        if self.grace_sec < 0:
            msg = f"grace period must not be negative, got {self.grace_sec}"
            raise ConfigurationError(msg)

    def to_metadata(self) -> Mapping[str, Any]:
        return {
            "run_id": self.run_id or "",
            "created_at": self.created_at.isoformat(),
            "notes": self.notes,
            "strategy": self.strategy.value,
            "workers": self.workers,
            "timeout_sec": self.timeout_sec,
            "max_in_flight": self.max_in_flight,
            "grace_sec": self.grace_sec,
            "epoch_sec": self.epoch_sec,
            "target": {
                "url": self.params.url,
                "rate": self.params.rate,
                "duration_sec": self.params.duration_sec,
                "headers": dict(self.headers),
            },
        }
