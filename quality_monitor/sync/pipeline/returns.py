"""
Returns sheet sync engine.

Every row with a positive initial returns number becomes a ``Return`` keyed by
a hash of its identifying fields and reasons. CC reasons are always kept;
QC/CAT reasons only when they are attributed to the agent (``CC:`` prefix).
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Mapping

from flask import current_app
from sqlalchemy.orm import Session

from quality_monitor.models import Return, ReturnsSyncLog, SyncStatus, db
from quality_monitor.models.base import utcnow
from quality_monitor.sync.adapters.google_sheets.extractor import SheetSource
from quality_monitor.sync.contracts import (
    QC_CC_REASON_PREFIX,
    find_column_value,
    iter_reason_slots,
    return_column_value,
)
from quality_monitor.sync.metrics import record_sync_rows, record_sync_run

from .hashing import compute_return_hash
from .idempotency import resolve_upsert_target
from .linking import build_abbreviation_map, link_return_owners
from .parsing import normalize_date, parse_count

MAX_ROW_ERRORS = 200


@dataclass
class ReturnsSyncOutcome:
    """Operational summary for one returns sync run."""

    log_id: int | None = None
    status: SyncStatus = SyncStatus.PENDING
    rows_fetched: int = 0
    rows_with_cc_fault: int = 0
    rows_inserted: int = 0
    rows_updated: int = 0
    rows_skipped: int = 0
    errors: list[str] = field(default_factory=list)
    error_message: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None

    def record_error(self, message: str) -> None:
        if len(self.errors) < MAX_ROW_ERRORS:
            self.errors.append(message)

    def as_dict(self) -> dict[str, Any]:
        return {
            "log_id": self.log_id,
            "status": self.status.value,
            "rows_fetched": self.rows_fetched,
            "rows_with_cc_fault": self.rows_with_cc_fault,
            "rows_inserted": self.rows_inserted,
            "rows_updated": self.rows_updated,
            "rows_skipped": self.rows_skipped,
            "errors": list(self.errors),
            "error_message": self.error_message,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


def parse_reasons(row: Mapping[str, str]) -> list[dict[str, Any]]:
    """
    Collect ``{"reason", "count"}`` pairs in slot order.

    CC slots need a non-blank reason and a positive count. QC/CAT slots
    additionally need the reason to start with ``CC:``.
    """

    reasons: list[dict[str, Any]] = []
    for slot in iter_reason_slots():
        reason = (find_column_value(row, slot.reason_keys) or "").strip()
        count = parse_count(find_column_value(row, slot.count_keys))
        if not reason or count <= 0:
            continue
        if slot.cc_only and not reason.startswith(QC_CC_REASON_PREFIX):
            continue
        reasons.append({"reason": reason, "count": count})
    return reasons


def _close_log(log: ReturnsSyncLog, outcome: ReturnsSyncOutcome, status: SyncStatus) -> None:
    outcome.status = status
    outcome.completed_at = utcnow()
    if status == SyncStatus.SUCCESS and outcome.errors:
        outcome.error_message = "; ".join(outcome.errors)
    log.status = status
    log.completed_at = outcome.completed_at
    log.rows_fetched = outcome.rows_fetched
    log.rows_with_cc_fault = outcome.rows_with_cc_fault
    log.rows_inserted = outcome.rows_inserted
    log.rows_updated = outcome.rows_updated
    log.rows_skipped = outcome.rows_skipped
    log.error_message = outcome.error_message
    log.details_json = {"errors": list(outcome.errors)}


def _upsert_return_row(
    session: Session,
    row: Mapping[str, str],
    row_number: int,
    abbreviation_map: Mapping[str, int],
    outcome: ReturnsSyncOutcome,
) -> None:
    cc_fault = parse_count(return_column_value(row, "cc_fault"))
    if cc_fault > 0:
        outcome.rows_with_cc_fault += 1

    initial_returns_number = parse_count(return_column_value(row, "initial_returns_number"))
    if initial_returns_number <= 0:
        outcome.rows_skipped += 1
        return

    return_date = normalize_date(return_column_value(row, "return_date"))
    if return_date is None:
        outcome.rows_skipped += 1
        outcome.record_error(f"Row {row_number}: Invalid return date")
        return

    client_name = return_column_value(row, "client_name")
    cid = return_column_value(row, "cid")
    cc_abbreviation = return_column_value(row, "cc_abbreviation").strip().upper()
    reasons = parse_reasons(row)

    target = resolve_upsert_target(
        session,
        Return,
        external_row_hash=compute_return_hash(return_date, client_name, cid, cc_abbreviation, reasons),
    )
    record = target.record
    record.return_date = date.fromisoformat(return_date)
    record.client_name = client_name
    record.block = return_column_value(row, "block")
    record.cid = cid
    record.cc_abbreviation = cc_abbreviation or None
    record.cc_user_id = abbreviation_map.get(cc_abbreviation)
    record.team_lead_name = return_column_value(row, "team_lead_name")
    record.reasons = reasons
    record.total_leads = sum(reason["count"] for reason in reasons)
    record.cc_fault = cc_fault
    record.initial_returns_number = initial_returns_number
    record.raw_data = dict(row)
    session.commit()

    if target.created:
        outcome.rows_inserted += 1
    else:
        outcome.rows_updated += 1


def sync_returns(
    *,
    extractor: SheetSource,
    sheet_id: str,
    sheet_gid: str = "0",
    session: Session | None = None,
) -> ReturnsSyncOutcome:
    """
    Run a full returns sync.

    Row errors are captured as ``Row N: message`` and joined into the log's
    ``error_message`` when the run itself succeeds. Run-level failures mark
    the log ``failed`` and are never re-raised.
    """

    session = session or db.session
    logger = current_app.logger

    outcome = ReturnsSyncOutcome()
    log = ReturnsSyncLog(status=SyncStatus.RUNNING, started_at=utcnow())
    session.add(log)
    session.commit()
    outcome.log_id = log.id
    outcome.status = SyncStatus.RUNNING
    outcome.started_at = log.started_at

    started = time.monotonic()
    logger.info("Returns sync started", extra={"sync_log_id": outcome.log_id, "sync_sheet_id": sheet_id})
    try:
        sheet = extractor.fetch_sheet(sheet_id, sheet_gid)
        outcome.rows_fetched = len(sheet.rows)

        if sheet.rows:
            abbreviation_map = build_abbreviation_map(session)
            for row_number, row in enumerate(sheet.rows, start=2):
                try:
                    _upsert_return_row(session, row, row_number, abbreviation_map, outcome)
                except Exception as exc:
                    session.rollback()
                    outcome.record_error(f"Row {row_number}: {exc}")
                    logger.warning(
                        "Returns sync failed on row %s: %s",
                        row_number,
                        exc,
                        extra={"sync_log_id": outcome.log_id},
                    )

            link_return_owners(session)
        _close_log(log, outcome, SyncStatus.SUCCESS)
        session.commit()
    except Exception as exc:
        session.rollback()
        outcome.error_message = str(exc) or exc.__class__.__name__
        outcome.record_error(f"Sync failed: {outcome.error_message}")
        _close_log(log, outcome, SyncStatus.FAILED)
        session.commit()
        logger.error(
            "Returns sync failed: %s",
            outcome.error_message,
            exc_info=True,
            extra={"sync_log_id": outcome.log_id},
        )
    finally:
        record_sync_run(pipeline="returns", status=outcome.status.value, duration_seconds=time.monotonic() - started)
        record_sync_rows(pipeline="returns", outcome="inserted", count=outcome.rows_inserted)
        record_sync_rows(pipeline="returns", outcome="updated", count=outcome.rows_updated)
        record_sync_rows(pipeline="returns", outcome="skipped", count=outcome.rows_skipped)

    logger.info(
        "Returns sync finished",
        extra={
            "sync_log_id": outcome.log_id,
            "sync_status": outcome.status.value,
            "sync_rows_fetched": outcome.rows_fetched,
            "sync_rows_with_cc_fault": outcome.rows_with_cc_fault,
            "sync_rows_inserted": outcome.rows_inserted,
            "sync_rows_updated": outcome.rows_updated,
        },
    )
    return outcome


__all__ = ["ReturnsSyncOutcome", "parse_reasons", "sync_returns"]
