"""
Sheet sync feature package.

Provides conditional blueprint and CLI registration plus Google Sheets adapter
readiness tracking, staying inert when sync is disabled.
"""

from __future__ import annotations

from typing import Any, Callable

from flask import Flask

from quality_monitor.utils.sync import SYNC_EXTENSION_KEY, is_sync_enabled, is_sync_worker_enabled

from .celery_app import ensure_celery_app, get_celery_app
from .cli import get_disabled_sync_group, sync_cli
from .errors import SourceNotFoundError, SyncError
from .metrics import record_sheets_adapter_status
from .pipeline import SyncLogService
from .readiness import ensure_extension_state, get_adapter_readiness, refresh_adapter_readiness
from .views import sync_blueprint

__all__ = [
    "SYNC_EXTENSION_KEY",
    "SourceNotFoundError",
    "SyncError",
    "SyncLogService",
    "get_adapter_readiness",
    "get_celery_app",
    "init_sync",
    "refresh_adapter_readiness",
]


def _set_cli(app: Flask, enabled: bool) -> None:
    """Register the appropriate CLI group based on flag state."""
    # Tests build many apps; drop any previous registration first.
    command_name = sync_cli.name
    if command_name in app.cli.commands:
        app.cli.commands.pop(command_name)

    if enabled:
        app.cli.add_command(sync_cli)
    else:
        app.cli.add_command(get_disabled_sync_group())


def init_sync(app: Flask, *, extractor_factory: Callable[[], Any] | None = None) -> None:
    """
    Conditionally mount the sync blueprint, CLI, and Celery app.

    State lives in ``app.extensions['sync']`` for reuse by tasks, views, and
    the CLI. ``extractor_factory`` replaces the Google Sheets extractor.
    """
    enabled = is_sync_enabled(app)
    state = ensure_extension_state(app)
    state.update(
        {
            "enabled": enabled,
            "worker_enabled": is_sync_worker_enabled(app),
        }
    )
    if extractor_factory is not None:
        state["extractor_factory"] = extractor_factory

    if not enabled:
        record_sheets_adapter_status(False)
        _set_cli(app, enabled=False)
        app.logger.info("Sync disabled via SYNC_ENABLED flag; skipping registration.")
        return

    ensure_celery_app(app, state)
    if state.get("extractor_factory") is None:
        refresh_adapter_readiness(app)

    if sync_blueprint.name not in app.blueprints:
        app.register_blueprint(sync_blueprint)
    _set_cli(app, enabled=True)

    app.logger.info(
        "Sync enabled (worker=%s, auto=%s)",
        state["worker_enabled"],
        bool(app.config.get("SYNC_AUTO_ENABLED", False)),
    )
