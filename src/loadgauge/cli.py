from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
from pathlib import Path

from loadgauge.config import (
    ConfigurationError,
    DispatchStrategy,
    RunConfig,
    parse_test_parameters,
)
from loadgauge.loadgen.runner import new_run_id, run_load_test
from loadgauge.metrics import FinalReport
from loadgauge.storage import Storage, append_csv, default_storage

logger = logging.getLogger(__name__)


def _build_config(args: argparse.Namespace) -> RunConfig:
    params = parse_test_parameters(args.target, args.rate, args.duration)
    return RunConfig(
        params=params,
        strategy=DispatchStrategy(args.strategy),
        workers=args.workers,
        timeout_sec=args.timeout,
        max_in_flight=args.max_in_flight,
        grace_sec=args.grace,
        notes=args.notes,
    )


async def _run(config: RunConfig) -> FinalReport:
    cancel = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _request_shutdown, cancel, sig)
        except NotImplementedError:
            logger.debug("Signal handlers unavailable on this platform")
            break
    return await run_load_test(config, cancel=cancel)


def _request_shutdown(cancel: asyncio.Event, sig: signal.Signals) -> None:
    if not cancel.is_set():
        logger.warning("%s received, finishing in-flight requests", sig.name)
        cancel.set()


def _open_storage(args: argparse.Namespace) -> Storage | None:
    if args.no_store:
        return None
    if args.db is None:
        return default_storage()
    return Storage(args.db)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="HTTP load generator")
    parser.add_argument("--target", required=True, help="Target URL")
    parser.add_argument("--rate", required=True, help="Requests per second")
    parser.add_argument("--duration", required=True, help="Test duration in seconds")
    parser.add_argument(
        "--strategy",
        choices=[s.value for s in DispatchStrategy],
        default=DispatchStrategy.EPOCH_BATCHED.value,
    )
    parser.add_argument("--workers", type=int, default=None, help="Worker pool size (worker_paced)")
    parser.add_argument("--timeout", type=float, default=10.0, help="Per-request timeout in seconds")
    parser.add_argument("--max-in-flight", type=int, default=None)
    parser.add_argument("--grace", type=float, default=5.0, help="Shutdown grace period in seconds")
    parser.add_argument("--db", type=Path, default=None, help="DuckDB file for stored reports")
    parser.add_argument("--no-store", action="store_true", help="Skip saving the report")
    parser.add_argument("--csv", type=Path, default=None, help="Append the report to a CSV file")
    parser.add_argument("--notes", default="")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="INFO",
    )
    return parser


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = _build_config(args)
    except ConfigurationError as exc:
        parser.error(str(exc))

    storage = _open_storage(args)
    report = asyncio.run(_run(config))
    if storage is not None:
        run_id = config.run_id or new_run_id()
        storage.save_report(config, run_id, report)
        logger.info("Run stored as %s", run_id)
    if args.csv is not None:
        append_csv(args.csv, report)
    print(json.dumps(report.to_record(), indent=2))


if __name__ == "__main__":
    main()
