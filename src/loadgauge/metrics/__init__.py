from __future__ import annotations

from loadgauge.metrics.aggregator import aggregate, build_report, drain
from loadgauge.metrics.durations import format_duration
from loadgauge.metrics.models import (
    ErrorType,
    FinalReport,
    Outcome,
    RunningAggregate,
    StatusAggregate,
    StatusMetrics,
)
from loadgauge.metrics.percentile import percentile, percentiles

__all__ = [
    "ErrorType",
    "FinalReport",
    "Outcome",
    "RunningAggregate",
    "StatusAggregate",
    "StatusMetrics",
    "aggregate",
    "build_report",
    "drain",
    "format_duration",
    "percentile",
    "percentiles",
]
