"""Exception taxonomy shared by the sync pipelines."""

from __future__ import annotations


class SyncError(RuntimeError):
    """Base error for spreadsheet sync failures."""


class SourceNotFoundError(SyncError):
    """Raised when a sync is requested for an issue source that does not exist."""

    def __init__(self, source_ref):
        self.source_ref = source_ref
        super().__init__(f"Issue source {source_ref!r} not found")


__all__ = ["SyncError", "SourceNotFoundError"]
