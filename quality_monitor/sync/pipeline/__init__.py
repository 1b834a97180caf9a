"""
Sync pipeline package: parsing, hashing, upserts, linking, and run engines.
"""

from .hashing import compute_return_hash, compute_row_hash
from .idempotency import UpsertTarget, resolve_upsert_target
from .issues import SyncOutcome, find_source_by_name, get_active_sources, sync_all_sources, sync_source
from .linking import build_abbreviation_map, link_issue_owners, link_return_owners
from .parsing import normalize_date, parse_category, parse_count, parse_rate
from .returns import ReturnsSyncOutcome, parse_reasons, sync_returns
from .roster import RosterSyncOutcome, determine_team, sync_team_roster
from .run_service import SyncLogService, serialize_returns_log, serialize_sync_log

__all__ = [
    "ReturnsSyncOutcome",
    "RosterSyncOutcome",
    "SyncLogService",
    "SyncOutcome",
    "UpsertTarget",
    "build_abbreviation_map",
    "compute_return_hash",
    "compute_row_hash",
    "determine_team",
    "find_source_by_name",
    "get_active_sources",
    "link_issue_owners",
    "link_return_owners",
    "normalize_date",
    "parse_category",
    "parse_count",
    "parse_rate",
    "parse_reasons",
    "resolve_upsert_target",
    "serialize_returns_log",
    "serialize_sync_log",
    "sync_all_sources",
    "sync_returns",
    "sync_source",
    "sync_team_roster",
]
