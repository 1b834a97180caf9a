"""
Service helpers for sync log querying and serialization.

The sync API and CLI consume these helpers so ordering, limits, and the
JSON shape of logs stay identical across surfaces.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from quality_monitor.models import IssueSource, ReturnsSyncLog, SyncLog, SyncStatus, db

DEFAULT_LOG_LIMIT = 50
DEFAULT_RETURNS_LOG_LIMIT = 20
MAX_LOG_LIMIT = 500


class SyncLogService:
    """Facade for reading sync logs and source state."""

    def __init__(self, session: Session | None = None) -> None:
        self.session: Session = session or db.session

    # ---------------------------------------------------------------------
    # Public API
    # ---------------------------------------------------------------------

    def list_logs(self, limit: int | str | None = None) -> list[dict[str, Any]]:
        """Most recent issue sync logs first, with the source name attached."""

        resolved_limit = coerce_limit(limit, fallback=DEFAULT_LOG_LIMIT)
        rows = (
            self.session.query(SyncLog, IssueSource.name)
            .outerjoin(IssueSource, SyncLog.source_id == IssueSource.id)
            .order_by(SyncLog.started_at.desc(), SyncLog.id.desc())
            .limit(resolved_limit)
            .all()
        )
        return [serialize_sync_log(log, source_name=source_name) for log, source_name in rows]

    def list_returns_logs(self, limit: int | str | None = None) -> list[dict[str, Any]]:
        resolved_limit = coerce_limit(limit, fallback=DEFAULT_RETURNS_LOG_LIMIT)
        logs = (
            self.session.query(ReturnsSyncLog)
            .order_by(ReturnsSyncLog.started_at.desc(), ReturnsSyncLog.id.desc())
            .limit(resolved_limit)
            .all()
        )
        return [serialize_returns_log(log) for log in logs]

    def get_status(self) -> dict[str, Any]:
        """
        Summarize sync health.

        ``last_sync`` is the latest successful completion, ``is_running`` is
        true while any issue sync log is still open.
        """

        last_sync = (
            self.session.query(func.max(SyncLog.completed_at)).filter(SyncLog.status == SyncStatus.SUCCESS).scalar()
        )
        running = self.session.query(func.count(SyncLog.id)).filter(SyncLog.status == SyncStatus.RUNNING).scalar()
        sources = self.list_sources(active_only=True)
        return {
            "last_sync": _isoformat(last_sync),
            "is_running": bool(running),
            "sources": [{"name": source["name"], "last_sync": source["last_sync_at"]} for source in sources],
        }

    def list_sources(self, active_only: bool = True) -> list[dict[str, Any]]:
        query = self.session.query(IssueSource)
        if active_only:
            query = query.filter(IssueSource.is_active.is_(True))
        return [serialize_source(source) for source in query.order_by(IssueSource.name.asc()).all()]


# -------------------------------------------------------------------------
# Helper functions
# -------------------------------------------------------------------------


def coerce_limit(candidate: int | str | None, *, fallback: int) -> int:
    if candidate in (None, ""):
        return fallback
    if isinstance(candidate, int):
        return min(max(1, candidate), MAX_LOG_LIMIT)
    if isinstance(candidate, str) and candidate.strip().isdigit():
        return min(max(1, int(candidate.strip())), MAX_LOG_LIMIT)
    raise ValueError(f"Expected positive integer limit, received '{candidate}'.")


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def serialize_source(source: IssueSource) -> dict[str, Any]:
    return {
        "id": source.id,
        "name": source.name,
        "display_name": source.display_name,
        "google_sheet_id": source.google_sheet_id,
        "sheet_gid": source.sheet_gid,
        "is_active": source.is_active,
        "last_sync_at": _isoformat(source.last_sync_at),
    }


def serialize_sync_log(log: SyncLog, *, source_name: str | None = None) -> dict[str, Any]:
    if source_name is None and log.source is not None:
        source_name = log.source.name
    return {
        "id": log.id,
        "source_id": log.source_id,
        "source_name": source_name,
        "status": log.status.value,
        "started_at": _isoformat(log.started_at),
        "completed_at": _isoformat(log.completed_at),
        "rows_fetched": log.rows_fetched,
        "rows_inserted": log.rows_inserted,
        "rows_updated": log.rows_updated,
        "rows_skipped": log.rows_skipped,
        "error_message": log.error_message,
        "details": log.details_json or {},
    }


def serialize_returns_log(log: ReturnsSyncLog) -> dict[str, Any]:
    return {
        "id": log.id,
        "status": log.status.value,
        "started_at": _isoformat(log.started_at),
        "completed_at": _isoformat(log.completed_at),
        "rows_fetched": log.rows_fetched,
        "rows_with_cc_fault": log.rows_with_cc_fault,
        "rows_inserted": log.rows_inserted,
        "rows_updated": log.rows_updated,
        "rows_skipped": log.rows_skipped,
        "error_message": log.error_message,
    }


__all__ = [
    "DEFAULT_LOG_LIMIT",
    "DEFAULT_RETURNS_LOG_LIMIT",
    "MAX_LOG_LIMIT",
    "SyncLogService",
    "coerce_limit",
    "serialize_returns_log",
    "serialize_source",
    "serialize_sync_log",
]
