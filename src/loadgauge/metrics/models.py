from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from loadgauge.metrics.durations import format_duration


class ErrorType(str, Enum):
    TIMEOUT = "timeout"
    CONNECT = "connect"
    READ = "read"
    OTHER = "other"
    PANIC = "panic"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class Outcome:
    worker_id: int
    latency_ns: int
    status_code: int | None
    error_type: ErrorType | None = None
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.error_type is not None


@dataclass(slots=True)
class StatusAggregate:
    count: int = 0
    sum_ns: int = 0
    min_ns: int = 0
    max_ns: int = 0

    def add(self, latency_ns: int) -> None:
        if self.count == 0 or latency_ns < self.min_ns:
            self.min_ns = latency_ns
        if latency_ns > self.max_ns:
            self.max_ns = latency_ns
        self.count += 1
        self.sum_ns += latency_ns


@dataclass(slots=True)
class RunningAggregate:
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    sum_ns: int = 0
    min_ns: int = 0
    max_ns: int = 0
    by_status: dict[int, StatusAggregate] = field(default_factory=dict)
    latencies: list[int] = field(default_factory=list)

    def add(self, outcome: Outcome) -> None:
        self.total += 1
        if outcome.failed or outcome.status_code is None:
            self.failed += 1
            return
        latency = outcome.latency_ns
        if self.succeeded == 0 or latency < self.min_ns:
            self.min_ns = latency
        if latency > self.max_ns:
            self.max_ns = latency
        self.succeeded += 1
        self.sum_ns += latency
        self.latencies.append(latency)
        status = self.by_status.get(outcome.status_code)
        if status is None:
            status = self.by_status[outcome.status_code] = StatusAggregate()
        status.add(latency)


@dataclass(frozen=True, slots=True)
class StatusMetrics:
    count: int
    min_latency_ns: int
    max_latency_ns: int
    avg_latency_ns: int

    def to_record(self) -> dict[str, Any]:
        return {
            "count": self.count,
            "min_latency": format_duration(self.min_latency_ns),
            "max_latency": format_duration(self.max_latency_ns),
            "avg_latency": format_duration(self.avg_latency_ns),
        }


@dataclass(frozen=True, slots=True)
class FinalReport:
    url: str
    total_requests: int
    requests_per_second: int
    failed_requests: int
    error_rate: float
    average_latency_ns: int
    min_latency_ns: int
    max_latency_ns: int
    p50_ns: int
    p90_ns: int
    p95_ns: int
    p99_ns: int
    status_metrics: dict[int, StatusMetrics]
    interrupted: bool = False

    def to_record(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "total_requests": self.total_requests,
            "average_latency": format_duration(self.average_latency_ns),
            "requests_per_second": self.requests_per_second,
            "min_latency": format_duration(self.min_latency_ns),
            "max_latency": format_duration(self.max_latency_ns),
            "error_rate": self.error_rate,
            "status_metrics": {
                code: metrics.to_record() for code, metrics in self.status_metrics.items()
            },
            "p50": format_duration(self.p50_ns),
            "p90": format_duration(self.p90_ns),
            "p95": format_duration(self.p95_ns),
            "p99": format_duration(self.p99_ns),
        }
