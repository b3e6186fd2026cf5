from __future__ import annotations

import asyncio

from hypothesis import given, strategies as st

from conftest import failed, ok
from loadgauge.loadgen.channel import ResultChannel
from loadgauge.metrics import Outcome, aggregate, build_report, drain

MS = 1_000_000


def test_all_success_two_latency_bands() -> None:
    outcomes = [ok(10.0)] * 10 + [ok(20.0)] * 10
    report = build_report("http://svc.local/", 10, aggregate(outcomes))
    assert report.total_requests == 20
    assert report.error_rate == 0.0
    assert report.min_latency_ns == 10 * MS
    assert report.max_latency_ns == 20 * MS
    assert report.average_latency_ns == 15 * MS
    assert 10 * MS <= report.p50_ns <= 20 * MS
    assert report.p50_ns == 15 * MS
    status = report.status_metrics[200]
    assert status.count == 20
    assert status.min_latency_ns == 10 * MS
    assert status.max_latency_ns == 20 * MS
    assert status.avg_latency_ns == 15 * MS


def test_failures_count_in_average_denominator(mixed_outcomes: list[Outcome]) -> None:
    report = build_report("http://svc.local/", 5, aggregate(mixed_outcomes))
    assert report.total_requests == 5
    assert report.failed_requests == 2
    assert report.error_rate == 40.0
    assert report.average_latency_ns == 30 * MS
    assert set(report.status_metrics) == {200}
    assert report.status_metrics[200].count == 3
    assert report.status_metrics[200].avg_latency_ns == 50 * MS


def test_failures_excluded_from_latency_stats() -> None:
    running = aggregate([failed(999.0), ok(5.0), failed(0.1)])
    assert running.latencies == [5 * MS]
    assert running.min_ns == running.max_ns == 5 * MS


def test_empty_run_reports_zeros() -> None:
    report = build_report("http://svc.local/", 1, aggregate([]))
    assert report.total_requests == 0
    assert report.error_rate == 0.0
    assert report.average_latency_ns == 0
    assert report.p99_ns == 0
    assert report.status_metrics == {}


def test_all_failed_run() -> None:
    report = build_report("http://svc.local/", 3, aggregate([failed()] * 3))
    assert report.error_rate == 100.0
    assert report.min_latency_ns == report.max_latency_ns == 0
    assert report.p50_ns == 0


def test_status_codes_tracked_separately() -> None:
    outcomes = [ok(10.0, 200), ok(30.0, 200), ok(100.0, 503), ok(5.0, 404)]
    report = build_report("http://svc.local/", 4, aggregate(outcomes))
    assert list(report.status_metrics) == [200, 404, 503]
    assert report.status_metrics[200].avg_latency_ns == 20 * MS
    assert report.status_metrics[503].min_latency_ns == 100 * MS
    assert report.error_rate == 0.0


def test_record_uses_duration_strings(mixed_outcomes: list[Outcome]) -> None:
    record = build_report("http://svc.local/", 5, aggregate(mixed_outcomes)).to_record()
    assert record["average_latency"] == "30ms"
    assert record["min_latency"] == "50ms"
    assert record["requests_per_second"] == 5
    assert record["error_rate"] == 40.0
    assert record["status_metrics"] == {
        200: {"count": 3, "min_latency": "50ms", "max_latency": "50ms", "avg_latency": "50ms"}
    }
    assert {"p50", "p90", "p95", "p99"} <= set(record)


def test_drain_consumes_until_closed(mixed_outcomes: list[Outcome]) -> None:
    async def scenario() -> int:
        channel = ResultChannel(len(mixed_outcomes))
        consumer = asyncio.create_task(drain(channel))
        for outcome in mixed_outcomes:
            channel.put(outcome)
            await asyncio.sleep(0)
        channel.close()
        running = await consumer
        return running.total

    assert asyncio.run(scenario()) == 5


outcome_strategy = st.one_of(
    st.builds(
        Outcome,
        worker_id=st.integers(min_value=0, max_value=100),
        latency_ns=st.integers(min_value=0, max_value=10**10),
        status_code=st.sampled_from([200, 201, 404, 500, 503]),
    ),
    st.builds(failed, latency_ms=st.floats(min_value=0.0, max_value=1000.0)),
)


@given(data=st.data(), outcomes=st.lists(outcome_strategy, max_size=60))
def test_report_invariant_under_reordering(data: st.DataObject, outcomes: list[Outcome]) -> None:
    shuffled = data.draw(st.permutations(outcomes))
    first = build_report("http://svc.local/", 10, aggregate(outcomes))
    second = build_report("http://svc.local/", 10, aggregate(shuffled))
    assert first == second


@given(outcomes=st.lists(outcome_strategy, max_size=60))
def test_status_counts_and_error_rate(outcomes: list[Outcome]) -> None:
    report = build_report("http://svc.local/", 10, aggregate(outcomes))
    assert sum(m.count for m in report.status_metrics.values()) == (
        report.total_requests - report.failed_requests
    )
    assert 0.0 <= report.error_rate <= 100.0
    if report.total_requests:
        assert report.error_rate == report.failed_requests / report.total_requests * 100
        successful = [o.latency_ns for o in outcomes if not o.failed]
        assert report.average_latency_ns == sum(successful) // report.total_requests
