"""
Entry points that resolve configuration and extractors for a sync run.

Tasks, CLI commands, and API triggers call these so every surface runs the
pipelines the same way.
"""

from __future__ import annotations

from quality_monitor.models import db
from quality_monitor.utils.sync import get_returns_sheet, get_roster_sheet, get_sheet_extractor

from .errors import SyncError
from .pipeline import (
    ReturnsSyncOutcome,
    RosterSyncOutcome,
    SyncOutcome,
    link_return_owners,
    sync_all_sources,
    sync_returns,
    sync_source,
    sync_team_roster,
)


def run_source(source_id: int, app=None) -> SyncOutcome:
    return sync_source(source_id, extractor=get_sheet_extractor(app))


def run_all_sources(app=None) -> list[SyncOutcome]:
    return sync_all_sources(extractor=get_sheet_extractor(app))


def returns_configured(app=None) -> bool:
    sheet_id, _ = get_returns_sheet(app)
    return bool(sheet_id)


def run_returns(app=None) -> ReturnsSyncOutcome:
    """
    Sync the configured returns workbook.

    Raises:
        SyncError: If ``RETURNS_SHEET_ID`` is not configured.
    """
    sheet_id, sheet_gid = get_returns_sheet(app)
    if not sheet_id:
        raise SyncError("RETURNS_SHEET_ID is not configured.")
    return sync_returns(extractor=get_sheet_extractor(app), sheet_id=sheet_id, sheet_gid=sheet_gid)


def run_roster(app=None) -> tuple[RosterSyncOutcome, int]:
    """
    Sync the configured team roster, then backfill return owners.

    Returns:
        tuple: The roster outcome and the number of returns newly linked.
    """
    sheet_id, sheet_gid = get_roster_sheet(app)
    if not sheet_id:
        raise SyncError("ROSTER_SHEET_ID is not configured.")
    outcome = sync_team_roster(extractor=get_sheet_extractor(app), sheet_id=sheet_id, sheet_gid=sheet_gid)
    linked = link_return_owners(db.session)
    db.session.commit()
    return outcome, linked


__all__ = [
    "returns_configured",
    "run_all_sources",
    "run_returns",
    "run_roster",
    "run_source",
]
