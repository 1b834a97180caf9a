"""
Issue sheet sync engine.

One run pulls every row of a source's tab, upserts the valid ones keyed by
``(source_id, row hash)``, links owners by name, and closes the run's
``SyncLog``. Each upsert commits on its own, so a failure midway keeps every
row written before it.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Mapping

from flask import current_app
from sqlalchemy.orm import Session

from quality_monitor.models import Issue, IssueSource, SyncLog, SyncStatus, db
from quality_monitor.models.base import utcnow
from quality_monitor.sync.adapters.google_sheets.extractor import SheetSource
from quality_monitor.sync.contracts import map_issue_row, missing_required_fields
from quality_monitor.sync.errors import SourceNotFoundError
from quality_monitor.sync.metrics import record_sync_rows, record_sync_run

from .hashing import compute_row_hash
from .idempotency import resolve_upsert_target
from .linking import link_issue_owners
from .parsing import normalize_date, parse_category, parse_rate

MAX_SKIP_SAMPLES = 5
MAX_ROW_ERRORS = 50
SKIP_NO_DATE = "no_date"
SKIP_NO_TYPE = "no_type"


@dataclass
class SyncOutcome:
    """Operational summary for one issue-source sync run."""

    source_id: int
    source_name: str
    log_id: int | None = None
    status: SyncStatus = SyncStatus.PENDING
    rows_fetched: int = 0
    rows_inserted: int = 0
    rows_updated: int = 0
    rows_errored: int = 0
    rows_linked: int = 0
    skip_counts: dict[str, int] = field(default_factory=lambda: {SKIP_NO_DATE: 0, SKIP_NO_TYPE: 0})
    skip_samples: list[dict[str, Any]] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    missing_fields: list[str] = field(default_factory=list)
    error_message: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def rows_skipped(self) -> int:
        return sum(self.skip_counts.values())

    def record_skip(self, reason: str, sample: Mapping[str, Any]) -> None:
        self.skip_counts[reason] = self.skip_counts.get(reason, 0) + 1
        if len(self.skip_samples) < MAX_SKIP_SAMPLES:
            self.skip_samples.append({"reason": reason, **sample})

    def record_error(self, message: str) -> None:
        self.rows_errored += 1
        if len(self.errors) < MAX_ROW_ERRORS:
            self.errors.append(message)

    def details(self) -> dict[str, Any]:
        return {
            "skip_counts": dict(self.skip_counts),
            "skip_samples": list(self.skip_samples),
            "rows_errored": self.rows_errored,
            "rows_linked": self.rows_linked,
            "errors": list(self.errors),
            "missing_fields": list(self.missing_fields),
        }

    def as_dict(self) -> dict[str, Any]:
        return {
            "log_id": self.log_id,
            "source_id": self.source_id,
            "source": self.source_name,
            "status": self.status.value,
            "rows_fetched": self.rows_fetched,
            "rows_inserted": self.rows_inserted,
            "rows_updated": self.rows_updated,
            "rows_skipped": self.rows_skipped,
            "error_message": self.error_message,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            **self.details(),
        }


def _close_log(log: SyncLog, outcome: SyncOutcome, status: SyncStatus) -> None:
    outcome.status = status
    outcome.completed_at = utcnow()
    log.status = status
    log.completed_at = outcome.completed_at
    log.rows_fetched = outcome.rows_fetched
    log.rows_inserted = outcome.rows_inserted
    log.rows_updated = outcome.rows_updated
    log.rows_skipped = outcome.rows_skipped
    log.error_message = outcome.error_message
    log.details_json = outcome.details()


def _upsert_issue_row(session: Session, source_id: int, row: Mapping[str, str], outcome: SyncOutcome) -> None:
    fields = map_issue_row(row)

    issue_date = normalize_date(fields.issue_date)
    if issue_date is None:
        outcome.record_skip(SKIP_NO_DATE, {"date_value": fields.issue_date, "row": dict(row)})
        return
    if not fields.issue_type:
        outcome.record_skip(
            SKIP_NO_TYPE,
            {"date_value": fields.issue_date, "parsed_date": issue_date, "row": dict(row)},
        )
        return

    target = resolve_upsert_target(
        session,
        Issue,
        source_id=source_id,
        external_row_hash=compute_row_hash(row),
    )
    issue = target.record
    issue.issue_date = date.fromisoformat(issue_date)
    issue.responsible_cc_name = fields.responsible_cc_name
    issue.cid = fields.cid
    issue.issue_type = fields.issue_type
    issue.comment = fields.comment
    issue.issue_rate = parse_rate(fields.issue_rate)
    issue.issue_category = parse_category(fields.issue_category)
    issue.reported_by = fields.reported_by
    issue.task_id = fields.task_id
    issue.raw_data = dict(row)
    session.commit()

    if target.created:
        outcome.rows_inserted += 1
    else:
        outcome.rows_updated += 1


def sync_source(source_id: int, *, extractor: SheetSource, session: Session | None = None) -> SyncOutcome:
    """
    Run a full sync for one issue source.

    The run's ``SyncLog`` is committed as ``running`` before the sheet is
    fetched and closed exactly once. Row-level problems are counted or
    captured on the outcome; run-level problems (fetch, credentials, linking)
    mark the run ``failed`` and are never re-raised.

    Raises:
        SourceNotFoundError: If no source has ``source_id``. No log is written.
    """

    session = session or db.session
    logger = current_app.logger

    source = session.get(IssueSource, source_id)
    if source is None:
        raise SourceNotFoundError(source_id)

    outcome = SyncOutcome(source_id=source.id, source_name=source.name)
    log = SyncLog(source_id=source.id, status=SyncStatus.RUNNING, started_at=utcnow())
    session.add(log)
    session.commit()
    outcome.log_id = log.id
    outcome.status = SyncStatus.RUNNING
    outcome.started_at = log.started_at
    sheet_id, sheet_gid = source.google_sheet_id, source.sheet_gid

    started = time.monotonic()
    logger.info(
        "Issue sync started for source %s",
        outcome.source_name,
        extra={"sync_source": outcome.source_name, "sync_log_id": outcome.log_id},
    )
    try:
        sheet = extractor.fetch_sheet(sheet_id, sheet_gid)
        outcome.rows_fetched = len(sheet.rows)
        if sheet.rows:
            outcome.missing_fields = list(missing_required_fields(sheet.headers))
        if outcome.missing_fields:
            logger.warning(
                "Issue sheet for source %s has no column for: %s",
                outcome.source_name,
                ", ".join(outcome.missing_fields),
                extra={"sync_source": outcome.source_name, "sync_missing_fields": outcome.missing_fields},
            )

        # Sheet row numbers: header is row 1.
        for row_number, row in enumerate(sheet.rows, start=2):
            try:
                _upsert_issue_row(session, outcome.source_id, row, outcome)
            except Exception as exc:
                session.rollback()
                outcome.record_error(f"Row {row_number}: {exc}")
                logger.warning(
                    "Issue sync for source %s failed on row %s: %s",
                    outcome.source_name,
                    row_number,
                    exc,
                    extra={"sync_source": outcome.source_name, "sync_log_id": outcome.log_id},
                )

        if outcome.rows_skipped:
            logger.info(
                "Issue sync for source %s skipped %s rows (no date) and %s rows (no type)",
                outcome.source_name,
                outcome.skip_counts[SKIP_NO_DATE],
                outcome.skip_counts[SKIP_NO_TYPE],
                extra={"sync_source": outcome.source_name, "sync_skip_samples": outcome.skip_samples},
            )

        outcome.rows_linked = link_issue_owners(session, outcome.source_id)
        source = session.get(IssueSource, outcome.source_id)
        source.last_sync_at = utcnow()
        _close_log(log, outcome, SyncStatus.SUCCESS)
        session.commit()
    except Exception as exc:
        session.rollback()
        outcome.error_message = str(exc) or exc.__class__.__name__
        _close_log(log, outcome, SyncStatus.FAILED)
        session.commit()
        logger.error(
            "Issue sync failed for source %s: %s",
            outcome.source_name,
            outcome.error_message,
            exc_info=True,
            extra={"sync_source": outcome.source_name, "sync_log_id": outcome.log_id},
        )
    finally:
        record_sync_run(pipeline="issues", status=outcome.status.value, duration_seconds=time.monotonic() - started)
        record_sync_rows(pipeline="issues", outcome="inserted", count=outcome.rows_inserted)
        record_sync_rows(pipeline="issues", outcome="updated", count=outcome.rows_updated)
        record_sync_rows(pipeline="issues", outcome="skipped", count=outcome.rows_skipped)
        record_sync_rows(pipeline="issues", outcome="errored", count=outcome.rows_errored)

    logger.info(
        "Issue sync finished for source %s",
        outcome.source_name,
        extra={
            "sync_source": outcome.source_name,
            "sync_log_id": outcome.log_id,
            "sync_status": outcome.status.value,
            "sync_rows_fetched": outcome.rows_fetched,
            "sync_rows_inserted": outcome.rows_inserted,
            "sync_rows_updated": outcome.rows_updated,
            "sync_rows_skipped": outcome.rows_skipped,
        },
    )
    return outcome


def get_active_sources(session: Session | None = None) -> list[IssueSource]:
    session = session or db.session
    return session.query(IssueSource).filter(IssueSource.is_active.is_(True)).order_by(IssueSource.name).all()


def find_source_by_name(name: str, session: Session | None = None) -> IssueSource | None:
    """Case-insensitive lookup among active sources."""

    session = session or db.session
    return (
        session.query(IssueSource)
        .filter(IssueSource.is_active.is_(True), db.func.lower(IssueSource.name) == name.strip().lower())
        .one_or_none()
    )


def sync_all_sources(*, extractor: SheetSource, session: Session | None = None) -> list[SyncOutcome]:
    """
    Sync every active source in name order.

    A failing source never stops its siblings; the result holds one outcome
    per source in the same order.
    """

    session = session or db.session
    sources = [(source.id, source.name) for source in get_active_sources(session)]
    outcomes: list[SyncOutcome] = []
    for source_id, source_name in sources:
        try:
            outcomes.append(sync_source(source_id, extractor=extractor, session=session))
        except Exception as exc:
            session.rollback()
            current_app.logger.error(
                "Issue sync could not start for source %s: %s",
                source_name,
                exc,
                exc_info=True,
                extra={"sync_source": source_name},
            )
            outcomes.append(
                SyncOutcome(
                    source_id=source_id,
                    source_name=source_name,
                    status=SyncStatus.FAILED,
                    error_message=str(exc) or exc.__class__.__name__,
                )
            )
    return outcomes


__all__ = [
    "MAX_ROW_ERRORS",
    "MAX_SKIP_SAMPLES",
    "SyncOutcome",
    "find_source_by_name",
    "get_active_sources",
    "sync_all_sources",
    "sync_source",
]
