"""
Spreadsheet ingestion models: sources, issues, returns, and run logs.
"""

from .schema import (
    Issue,
    IssueCategory,
    IssueSource,
    Return,
    ReturnsSyncLog,
    SyncLog,
    SyncStatus,
)

__all__ = [
    "Issue",
    "IssueCategory",
    "IssueSource",
    "Return",
    "ReturnsSyncLog",
    "SyncLog",
    "SyncStatus",
]
