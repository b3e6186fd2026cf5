from __future__ import annotations

from typing import AsyncIterable, Iterable

from loadgauge.metrics.models import FinalReport, Outcome, RunningAggregate, StatusMetrics
from loadgauge.metrics.percentile import percentiles

REPORTED_PERCENTILES = (50, 90, 95, 99)


def aggregate(outcomes: Iterable[Outcome]) -> RunningAggregate:
    running = RunningAggregate()
    for outcome in outcomes:
        running.add(outcome)
    return running


async def drain(outcomes: AsyncIterable[Outcome]) -> RunningAggregate:
    running = RunningAggregate()
    async for outcome in outcomes:
        running.add(outcome)
    return running


def build_report(
    url: str,
    requests_per_second: int,
    running: RunningAggregate,
    interrupted: bool = False,
) -> FinalReport:
    total = running.total
    # Failed attempts stay in the denominator.
    average = running.sum_ns // total if total > 0 else 0
    error_rate = running.failed / total * 100 if total > 0 else 0.0
    p50, p90, p95, p99 = percentiles(running.latencies, REPORTED_PERCENTILES)
    status_metrics = {
        code: StatusMetrics(
            count=status.count,
            min_latency_ns=status.min_ns,
            max_latency_ns=status.max_ns,
            avg_latency_ns=status.sum_ns // status.count,
        )
        for code, status in sorted(running.by_status.items())
    }
    return FinalReport(
        url=url,
        total_requests=total,
        requests_per_second=requests_per_second,
        failed_requests=running.failed,
        error_rate=error_rate,
        average_latency_ns=average,
        min_latency_ns=running.min_ns,
        max_latency_ns=running.max_ns,
        p50_ns=p50,
        p90_ns=p90,
        p95_ns=p95,
        p99_ns=p99,
        status_metrics=status_metrics,
        interrupted=interrupted,
    )
