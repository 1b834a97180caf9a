"""
Sync Celery tasks.

Each task builds its own sheet extractor and returns a JSON-ready summary so
results can be inspected through the result backend.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from celery import shared_task
from flask import current_app

from quality_monitor.models import SyncStatus

from .runner import returns_configured, run_all_sources, run_returns, run_roster, run_source


@shared_task(name="sync.healthcheck", bind=True)
def sync_healthcheck(self) -> dict[str, Any]:
    """
    Simple heartbeat task used by worker health checks.
    """
    now = datetime.now(timezone.utc)
    return {
        "status": "ok",
        "timestamp": now.isoformat(),
        "worker_hostname": self.request.hostname,
    }


@shared_task(name="sync.run_source", bind=True)
def run_source_sync(self, *, source_id: int) -> dict[str, Any]:
    """Sync one issue source."""
    outcome = run_source(source_id)
    current_app.logger.info(
        "Sync task finished for source %s",
        outcome.source_name,
        extra={"sync_task_id": self.request.id, "sync_log_id": outcome.log_id, "sync_status": outcome.status.value},
    )
    return outcome.as_dict()


def _summarize_sources(outcomes) -> dict[str, Any]:
    return {
        "outcomes": [outcome.as_dict() for outcome in outcomes],
        "succeeded": sum(1 for outcome in outcomes if outcome.status == SyncStatus.SUCCESS),
        "total": len(outcomes),
    }


@shared_task(name="sync.run_all", bind=True)
def run_all_sources_sync(self) -> dict[str, Any]:
    return _summarize_sources(run_all_sources())


@shared_task(name="sync.run_returns", bind=True)
def run_returns_sync(self) -> dict[str, Any]:
    return run_returns().as_dict()


@shared_task(name="sync.run_periodic", bind=True)
def run_periodic_sync(self) -> dict[str, Any]:
    """
    Scheduled job: every active issue source, then returns when configured.
    """
    issues = _summarize_sources(run_all_sources())
    payload: dict[str, Any] = {"issues": issues, "returns": None}
    if returns_configured():
        payload["returns"] = run_returns().as_dict()
    else:
        current_app.logger.info("Periodic sync skipping returns; RETURNS_SHEET_ID is not configured.")
    current_app.logger.info(
        "Periodic sync completed: %s/%s sources",
        issues["succeeded"],
        issues["total"],
        extra={"sync_task_id": self.request.id},
    )
    return payload


@shared_task(name="sync.run_roster", bind=True)
def run_roster_sync(self) -> dict[str, Any]:
    outcome, linked = run_roster()
    payload = outcome.as_dict()
    payload["returns_linked"] = linked
    return payload
