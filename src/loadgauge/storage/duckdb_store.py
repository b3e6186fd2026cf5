from __future__ import annotations

import csv
import json
import logging
from dataclasses import dataclass
from pathlib import Path

import duckdb
import pandas as pd

from loadgauge.config import RunConfig
from loadgauge.metrics import FinalReport, format_duration

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Storage:
    db_path: Path

    def __post_init__(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _connect(self) -> duckdb.DuckDBPyConnection:
        return duckdb.connect(str(self.db_path))

    def _init_schema(self) -> None:
        with self._connect() as con:
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS run_meta (
                    run_id TEXT PRIMARY KEY,
                    created_at TIMESTAMP,
                    config_json TEXT,
                    notes TEXT
                );
                """
            )
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS reports (
                    run_id TEXT,
                    url TEXT,
                    total_requests BIGINT,
                    requests_per_second BIGINT,
                    failed_requests BIGINT,
                    error_rate DOUBLE,
                    average_latency TEXT,
                    min_latency TEXT,
                    max_latency TEXT,
                    p50 TEXT,
                    p90 TEXT,
                    p95 TEXT,
                    p99 TEXT,
                    average_latency_ns BIGINT,
                    min_latency_ns BIGINT,
                    max_latency_ns BIGINT,
                    p50_ns BIGINT,
                    p90_ns BIGINT,
                    p95_ns BIGINT,
                    p99_ns BIGINT,
                    interrupted BOOLEAN
                );
                """
            )
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS status_metrics (
                    run_id TEXT,
                    status_code INTEGER,
                    count BIGINT,
                    min_latency TEXT,
                    max_latency TEXT,
                    avg_latency TEXT,
                    min_latency_ns BIGINT,
                    max_latency_ns BIGINT,
                    avg_latency_ns BIGINT
                );
                """
            )

    def run_exists(self, run_id: str) -> bool:
        with self._connect() as con:
            result = con.execute(
                "SELECT COUNT(*) FROM run_meta WHERE run_id = ?",
                [run_id],
            ).fetchone()
            return bool(result and result[0] > 0)

    def save_report(self, config: RunConfig, run_id: str, report: FinalReport) -> None:
        config_json = json.dumps(config.to_metadata())
        with self._connect() as con:
            con.execute(
                "INSERT INTO run_meta VALUES (?, ?, ?, ?)",
                [run_id, config.created_at, config_json, config.notes],
            )
            report_df = pd.DataFrame(
                [
                    {
                        "run_id": run_id,
                        "url": report.url,
                        "total_requests": report.total_requests,
                        "requests_per_second": report.requests_per_second,
                        "failed_requests": report.failed_requests,
                        "error_rate": report.error_rate,
                        "average_latency": format_duration(report.average_latency_ns),
                        "min_latency": format_duration(report.min_latency_ns),
                        "max_latency": format_duration(report.max_latency_ns),
                        "p50": format_duration(report.p50_ns),
                        "p90": format_duration(report.p90_ns),
                        "p95": format_duration(report.p95_ns),
                        "p99": format_duration(report.p99_ns),
                        "average_latency_ns": report.average_latency_ns,
                        "min_latency_ns": report.min_latency_ns,
                        "max_latency_ns": report.max_latency_ns,
                        "p50_ns": report.p50_ns,
                        "p90_ns": report.p90_ns,
                        "p95_ns": report.p95_ns,
                        "p99_ns": report.p99_ns,
                        "interrupted": report.interrupted,
                    }
                ]
            )
            con.execute("INSERT INTO reports SELECT * FROM report_df")
            status_df = pd.DataFrame(
                [
                    {
                        "run_id": run_id,
                        "status_code": code,
                        "count": m.count,
                        "min_latency": format_duration(m.min_latency_ns),
                        "max_latency": format_duration(m.max_latency_ns),
                        "avg_latency": format_duration(m.avg_latency_ns),
                        "min_latency_ns": m.min_latency_ns,
                        "max_latency_ns": m.max_latency_ns,
                        "avg_latency_ns": m.avg_latency_ns,
                    }
                    for code, m in report.status_metrics.items()
                ]
            )
            if not status_df.empty:
                con.execute("INSERT INTO status_metrics SELECT * FROM status_df")
        logger.info("Saved report for run %s to %s", run_id, self.db_path)

    def list_runs(self) -> pd.DataFrame:
        with self._connect() as con:
            return con.execute(
                """
                SELECT m.run_id, m.created_at, r.url, r.total_requests, r.error_rate, m.notes
                FROM run_meta m JOIN reports r USING (run_id)
                ORDER BY m.created_at DESC
                """
            ).fetchdf()

    def load_run_meta(self, run_id: str) -> dict[str, object] | None:
        with self._connect() as con:
            row = con.execute(
                "SELECT config_json FROM run_meta WHERE run_id = ?",
                [run_id],
            ).fetchone()
            if not row:
                return None
            return json.loads(row[0])

    def load_report(self, run_id: str) -> pd.DataFrame:
        with self._connect() as con:
            return con.execute(
                "SELECT * FROM reports WHERE run_id = ?",
                [run_id],
            ).fetchdf()

    def load_status_metrics(self, run_id: str) -> pd.DataFrame:
        with self._connect() as con:
            return con.execute(
                "SELECT * FROM status_metrics WHERE run_id = ? ORDER BY status_code",
                [run_id],
            ).fetchdf()


def append_csv(path: Path, report: FinalReport) -> None:
    """Append one headerless row per run; the status-code groups vary in number."""
    row: list[object] = [
        report.url,
        report.total_requests,
        format_duration(report.average_latency_ns),
        report.requests_per_second,
        format_duration(report.min_latency_ns),
        format_duration(report.max_latency_ns),
        f"{report.error_rate:.2f}",
    ]
    for code, m in report.status_metrics.items():
        row.extend(
            [
                code,
                m.count,
                format_duration(m.min_latency_ns),
                format_duration(m.max_latency_ns),
                format_duration(m.avg_latency_ns),
            ]
        )
    row.extend(format_duration(ns) for ns in (report.p50_ns, report.p90_ns, report.p95_ns, report.p99_ns))
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", newline="", encoding="utf-8") as fh:
        csv.writer(fh).writerow(row)
