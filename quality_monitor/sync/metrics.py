"""Prometheus metrics helpers for the sync pipelines."""

from __future__ import annotations

from typing import Literal

from prometheus_client import Counter, Gauge, Histogram

Pipeline = Literal["issues", "returns", "roster"]

_sync_runs_counter = Counter(
    "quality_monitor_sync_runs_total",
    "Sync runs by pipeline and terminal status.",
    ["pipeline", "status"],
)
_sync_rows_counter = Counter(
    "quality_monitor_sync_rows_total",
    "Sheet rows processed by pipeline and outcome.",
    ["pipeline", "outcome"],
)
_sync_duration = Histogram(
    "quality_monitor_sync_duration_seconds",
    "Duration of a sync run in seconds.",
    ["pipeline"],
    buckets=(0.5, 1, 2, 5, 10, 30, 60, 120, 300, 600),
)
_sheets_adapter_ready_gauge = Gauge(
    "quality_monitor_sheets_adapter_ready",
    "Whether the Google Sheets adapter is configured (1) or not (0).",
)


def record_sync_run(*, pipeline: Pipeline, status: str, duration_seconds: float) -> None:
    """Count a finished run and observe its duration."""

    _sync_runs_counter.labels(pipeline=pipeline, status=status).inc()
    _sync_duration.labels(pipeline=pipeline).observe(duration_seconds)


def record_sync_rows(*, pipeline: Pipeline, outcome: str, count: int) -> None:
    if count <= 0:
        return
    _sync_rows_counter.labels(pipeline=pipeline, outcome=outcome).inc(count)


def record_sheets_adapter_status(ready: bool) -> None:
    _sheets_adapter_ready_gauge.set(1 if ready else 0)


__all__ = ["record_sheets_adapter_status", "record_sync_rows", "record_sync_run"]
