from __future__ import annotations

import logging
import time

import httpx

from loadgauge.loadgen.counter import ErrorCounter
from loadgauge.metrics import ErrorType, Outcome

logger = logging.getLogger(__name__)


async def send_request(
    client: httpx.AsyncClient,
    worker_id: int,
    url: str,
    timeout_sec: float,
    errors: ErrorCounter,
) -> Outcome:
    start = time.perf_counter_ns()
    try:
        resp = await client.get(url, timeout=timeout_sec)
    except httpx.TimeoutException as exc:
        err, detail = ErrorType.TIMEOUT, exc
    except httpx.ConnectError as exc:
        err, detail = ErrorType.CONNECT, exc
    except httpx.ReadError as exc:
        err, detail = ErrorType.READ, exc
    except httpx.HTTPError as exc:
        err, detail = ErrorType.OTHER, exc
    except Exception as exc:
        logger.warning("Worker %d crashed while requesting %s", worker_id, url, exc_info=True)
        err, detail = ErrorType.PANIC, exc
    else:
        latency_ns = time.perf_counter_ns() - start
        return Outcome(worker_id=worker_id, latency_ns=latency_ns, status_code=resp.status_code)
    latency_ns = time.perf_counter_ns() - start
    errors.increment()
    logger.debug("Worker %d request failed (%s): %r", worker_id, err.value, detail)
    return Outcome(
        worker_id=worker_id,
        latency_ns=latency_ns,
        status_code=None,
        error_type=err,
        error=_describe(detail),
    )


def cancelled_outcome(worker_id: int, latency_ns: int, errors: ErrorCounter) -> Outcome:
    errors.increment()
    return Outcome(
        worker_id=worker_id,
        latency_ns=latency_ns,
        status_code=None,
        error_type=ErrorType.CANCELLED,
        error="request abandoned after shutdown grace period",
    )


def _describe(exc: BaseException) -> str:
    text = str(exc)
    return f"{type(exc).__name__}: {text}" if text else type(exc).__name__
