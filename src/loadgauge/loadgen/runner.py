from __future__ import annotations

import asyncio
import logging
import os
import time
import uuid
from typing import Sequence

import httpx

from loadgauge.config import DispatchStrategy, RunConfig
from loadgauge.loadgen.channel import ResultChannel
from loadgauge.loadgen.client import cancelled_outcome, send_request
from loadgauge.loadgen.counter import ErrorCounter
from loadgauge.metrics import FinalReport, build_report, drain
from loadgauge.storage import Storage

logger = logging.getLogger(__name__)


def new_run_id() -> str:
    return uuid.uuid4().hex


async def run_experiment(
    config: RunConfig,
    storage: Storage,
    cancel: asyncio.Event | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> str:
    run_id = config.run_id or new_run_id()
    if storage.run_exists(run_id):
        msg = f"Run {run_id} already exists"
        raise ValueError(msg)
    report = await run_load_test(config, cancel=cancel, transport=transport)
    storage.save_report(config, run_id, report)
    return run_id


async def run_load_test(
    config: RunConfig,
    *,
    errors: ErrorCounter | None = None,
    cancel: asyncio.Event | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FinalReport:
    params = config.params
    counter = errors if errors is not None else ErrorCounter()
    counter.reset()
    channel = ResultChannel(params.total_requests)
    consumer = asyncio.create_task(drain(channel))
    tasks: list[asyncio.Task[None]] = []
    bound = in_flight_bound(config)
    limits = httpx.Limits(max_connections=bound, max_keepalive_connections=bound)
    logger.info(
        "Starting %s run against %s: %d rps for %ds (%d requests, at most %d in flight)",
        config.strategy.value,
        params.url,
        params.rate,
        params.duration_sec,
        params.total_requests,
        bound,
    )
    try:
        async with httpx.AsyncClient(
            transport=transport,
            headers=dict(config.headers),
            limits=limits,
        ) as client:
            started = time.perf_counter()
            try:
                if config.strategy is DispatchStrategy.WORKER_PACED:
                    _worker_paced(client, config, channel, counter, cancel, started, tasks)
                else:
                    await _epoch_batched(client, config, channel, counter, cancel, started, tasks)
                cut_short = await _join(tasks, cancel, config.grace_sec)
            except BaseException:
                await _abandon(tasks)
                raise
            elapsed = time.perf_counter() - started
    except BaseException:
        consumer.cancel()
        await asyncio.gather(consumer, return_exceptions=True)
        raise
    channel.close()
    running = await consumer

    if running.failed != counter.value:
        logger.warning(
            "Error counter (%d) disagrees with aggregated failures (%d)",
            counter.value,
            running.failed,
        )
    interrupted = cut_short or running.total < params.total_requests
    report = build_report(params.url, params.rate, running, interrupted=interrupted)
    logger.info(
        "Finished %d/%d requests in %.2fs, error rate %.2f%%%s",
        running.total,
        params.total_requests,
        elapsed,
        report.error_rate,
        " (interrupted)" if interrupted else "",
    )
    return report


def in_flight_bound(config: RunConfig) -> int:
    if config.strategy is DispatchStrategy.WORKER_PACED:
        return worker_count(config)
    return config.max_in_flight or config.params.total_requests


def worker_count(config: RunConfig) -> int:
    workers = config.workers or os.cpu_count() or 1
    return max(1, min(workers, config.params.total_requests))


def split_requests(total: int, workers: int) -> list[int]:
    base, extra = divmod(total, workers)
    return [base + (1 if i < extra else 0) for i in range(workers)]


async def _epoch_batched(
    client: httpx.AsyncClient,
    config: RunConfig,
    channel: ResultChannel,
    errors: ErrorCounter,
    cancel: asyncio.Event | None,
    started: float,
    tasks: list[asyncio.Task[None]],
) -> None:
    params = config.params
    limiter = asyncio.Semaphore(in_flight_bound(config))
    for epoch in range(params.duration_sec):
        if _is_set(cancel):
            logger.info("Cancellation requested; stopping dispatch after %d epochs", epoch)
            break
        for i in range(params.rate):
            tasks.append(
                asyncio.create_task(
                    _dispatch_one(
                        client,
                        config,
                        channel,
                        errors,
                        cancel,
                        epoch * params.rate + i,
                        limiter,
                    )
                )
            )
        if epoch + 1 < params.duration_sec:
            await _sleep_until(started + (epoch + 1) * config.epoch_sec, cancel)


def _worker_paced(
    client: httpx.AsyncClient,
    config: RunConfig,
    channel: ResultChannel,
    errors: ErrorCounter,
    cancel: asyncio.Event | None,
    started: float,
    tasks: list[asyncio.Task[None]],
) -> None:
    params = config.params
    workers = worker_count(config)
    quotas = split_requests(params.total_requests, workers)
    interval = config.epoch_sec * workers / params.rate

    async def worker(worker_id: int, quota: int) -> None:
        offset = interval * worker_id / workers
        for n in range(quota):
            await _sleep_until(started + offset + n * interval, cancel)
            if _is_set(cancel):
                return
            await _dispatch_one(client, config, channel, errors, cancel, worker_id)

    tasks.extend(asyncio.create_task(worker(i, quota)) for i, quota in enumerate(quotas))


async def _dispatch_one(
    client: httpx.AsyncClient,
    config: RunConfig,
    channel: ResultChannel,
    errors: ErrorCounter,
    cancel: asyncio.Event | None,
    worker_id: int,
    limiter: asyncio.Semaphore | None = None,
) -> None:
    start = time.perf_counter_ns()
    try:
        if limiter is None:
            outcome = await send_request(client, worker_id, config.params.url, config.timeout_sec, errors)
        else:
            async with limiter:
                if _is_set(cancel):
                    outcome = cancelled_outcome(worker_id, time.perf_counter_ns() - start, errors)
                else:
                    outcome = await send_request(
                        client, worker_id, config.params.url, config.timeout_sec, errors
                    )
    except asyncio.CancelledError:
        channel.put(cancelled_outcome(worker_id, time.perf_counter_ns() - start, errors))
        raise
    channel.put(outcome)


async def _join(
    tasks: Sequence[asyncio.Task[None]],
    cancel: asyncio.Event | None,
    grace_sec: float,
) -> bool:
    """Wait for every task; on cancellation allow ``grace_sec`` before abandoning the rest.

    Returns whether cancellation arrived before all tasks were done.
    """
    if not tasks:
        return _is_set(cancel)
    gathered = asyncio.gather(*tasks, return_exceptions=True)
    cut_short = False
    if cancel is not None:
        waiter = asyncio.ensure_future(cancel.wait())
        try:
            await asyncio.wait({gathered, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
        if not gathered.done():
            cut_short = True
            logger.info("Waiting up to %.1fs for in-flight requests to finish", grace_sec)
            await asyncio.wait({gathered}, timeout=grace_sec)
            pending = [task for task in tasks if not task.done()]
            if pending:
                logger.warning("Abandoning %d tasks still running after the grace period", len(pending))
                for task in pending:
                    task.cancel()
    results = await gathered
    for result in results:
        if isinstance(result, BaseException) and not isinstance(result, asyncio.CancelledError):
            raise result
    return cut_short


async def _abandon(tasks: Sequence[asyncio.Task[None]]) -> None:
    # Executors still record a cancelled outcome each.
    pending = [task for task in tasks if not task.done()]
    if pending:
        logger.warning("Run aborted; cancelling %d unfinished tasks", len(pending))
    for task in pending:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


async def _sleep_until(target: float, cancel: asyncio.Event | None = None) -> None:
    delay = target - time.perf_counter()
    if delay <= 0:
        return
    if cancel is None:
        await asyncio.sleep(delay)
        return
    waiter = asyncio.ensure_future(cancel.wait())
    try:
        await asyncio.wait({waiter}, timeout=delay)
    finally:
        waiter.cancel()


def _is_set(cancel: asyncio.Event | None) -> bool:
    return cancel is not None and cancel.is_set()
