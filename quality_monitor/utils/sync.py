"""
Utility helpers for sync feature flag checks and sheet configuration.
"""

from __future__ import annotations

from typing import Callable

from flask import current_app

SYNC_EXTENSION_KEY = "sync"


def _get_config(app=None):
    if app is not None:
        return app.config
    return current_app.config


def _get_app(app=None):
    return app if app is not None else current_app._get_current_object()


def is_sync_enabled(app=None) -> bool:
    """Return True when the sync feature flag is enabled."""
    config = _get_config(app)
    return bool(config.get("SYNC_ENABLED", True))


def is_sync_worker_enabled(app=None) -> bool:
    config = _get_config(app)
    return bool(config.get("SYNC_WORKER_ENABLED", False))


def get_returns_sheet(app=None) -> tuple[str | None, str]:
    """Return ``(sheet_id, gid)`` for the returns workbook."""
    config = _get_config(app)
    return config.get("RETURNS_SHEET_ID") or None, str(config.get("RETURNS_SHEET_GID") or "0")


def get_roster_sheet(app=None) -> tuple[str | None, str]:
    """Return ``(sheet_id, gid)`` for the team roster workbook."""
    config = _get_config(app)
    return config.get("ROSTER_SHEET_ID") or None, str(config.get("ROSTER_SHEET_GID") or "0")


def get_sheet_extractor(app=None):
    """
    Build a sheet extractor for one sync invocation.

    ``app.extensions['sync']['extractor_factory']`` overrides the default
    Google Sheets extractor (used by tests and local fixtures).
    """
    flask_app = _get_app(app)
    state = flask_app.extensions.get(SYNC_EXTENSION_KEY) or {}
    factory: Callable[[], object] | None = state.get("extractor_factory")
    if factory is not None:
        return factory()

    from quality_monitor.sync.adapters.google_sheets.extractor import create_sheets_extractor

    return create_sheets_extractor(timeout=float(flask_app.config.get("GOOGLE_SHEETS_TIMEOUT", 30)))
