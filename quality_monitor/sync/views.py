"""
Sync blueprint: JSON endpoints for sync status, logs, and manual triggers.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import Any

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user

from quality_monitor.models import SyncStatus
from quality_monitor.utils.sync import SYNC_EXTENSION_KEY, is_sync_enabled, is_sync_worker_enabled

from .celery_app import get_celery_app
from .errors import SyncError
from .pipeline import SyncLogService, find_source_by_name
from .readiness import get_adapter_readiness
from .runner import returns_configured, run_all_sources, run_returns, run_source

sync_blueprint = Blueprint("sync", __name__, url_prefix="/api/sync")


def _json_error(message: str, status: HTTPStatus):
    return jsonify({"error": message}), status


def _ensure_sync_enabled_api():
    if not is_sync_enabled(current_app):
        return _json_error("Sync is disabled.", HTTPStatus.NOT_FOUND)
    return None


def _ensure_authenticated_api():
    if not current_user.is_authenticated:
        return _json_error("Authentication required.", HTTPStatus.UNAUTHORIZED)
    return None


def _ensure_admin_api():
    if not current_user.is_authenticated:
        return _json_error("Authentication required.", HTTPStatus.UNAUTHORIZED)
    if not current_user.is_admin:
        return _json_error("Admin role required.", HTTPStatus.FORBIDDEN)
    return None


def _guard(*checks):
    for check in checks:
        response = check()
        if response:
            return response
    return None


def _enqueue(task_name: str, kwargs: dict[str, Any] | None = None):
    celery_app = get_celery_app(current_app)
    if celery_app is None:
        return _json_error("Sync worker is unavailable.", HTTPStatus.SERVICE_UNAVAILABLE)
    try:
        async_result = celery_app.send_task(task_name, kwargs=kwargs or {})
    except Exception as exc:  # pragma: no cover - broker failures
        current_app.logger.exception("Failed to enqueue %s", task_name, exc_info=exc)
        return _json_error("Failed to queue sync.", HTTPStatus.SERVICE_UNAVAILABLE)

    current_app.logger.info(
        "Sync task queued via API",
        extra={"sync_task_name": task_name, "sync_task_id": async_result.id, "user_id": current_user.id},
    )
    return jsonify({"status": "queued", "task": task_name, "task_id": async_result.id}), HTTPStatus.ACCEPTED


@sync_blueprint.get("/health")
def sync_healthcheck():
    """
    Lightweight health endpoint proving the sync blueprint mounted correctly.
    """
    state = current_app.extensions.get(SYNC_EXTENSION_KEY, {})
    return (
        jsonify(
            {
                "status": "ok",
                "enabled": state.get("enabled", False),
                "worker_enabled": state.get("worker_enabled", False),
                "adapter": get_adapter_readiness(current_app),
            }
        ),
        HTTPStatus.OK,
    )


@sync_blueprint.get("/status")
def sync_status():
    guard = _guard(_ensure_sync_enabled_api, _ensure_authenticated_api)
    if guard:
        return guard
    return jsonify(SyncLogService().get_status()), HTTPStatus.OK


@sync_blueprint.get("/logs")
def sync_logs():
    guard = _guard(_ensure_sync_enabled_api, _ensure_authenticated_api)
    if guard:
        return guard
    try:
        logs = SyncLogService().list_logs(request.args.get("limit"))
    except ValueError as exc:
        return _json_error(str(exc), HTTPStatus.BAD_REQUEST)
    return jsonify({"logs": logs}), HTTPStatus.OK


@sync_blueprint.get("/returns/logs")
def sync_returns_logs():
    guard = _guard(_ensure_sync_enabled_api, _ensure_authenticated_api)
    if guard:
        return guard
    try:
        logs = SyncLogService().list_returns_logs(request.args.get("limit"))
    except ValueError as exc:
        return _json_error(str(exc), HTTPStatus.BAD_REQUEST)
    return jsonify({"logs": logs}), HTTPStatus.OK


@sync_blueprint.get("/sources")
def sync_sources():
    guard = _guard(_ensure_sync_enabled_api, _ensure_authenticated_api)
    if guard:
        return guard
    return jsonify({"sources": SyncLogService().list_sources()}), HTTPStatus.OK


@sync_blueprint.post("/trigger")
def sync_trigger_all():
    """Sync every active issue source."""
    guard = _guard(_ensure_sync_enabled_api, _ensure_admin_api)
    if guard:
        return guard
    if is_sync_worker_enabled(current_app):
        return _enqueue("sync.run_all")

    outcomes = run_all_sources()
    succeeded = sum(1 for outcome in outcomes if outcome.status == SyncStatus.SUCCESS)
    return (
        jsonify(
            {
                "results": [outcome.as_dict() for outcome in outcomes],
                "succeeded": succeeded,
                "total": len(outcomes),
            }
        ),
        HTTPStatus.OK,
    )


@sync_blueprint.post("/trigger/<string:source_name>")
def sync_trigger_source(source_name: str):
    guard = _guard(_ensure_sync_enabled_api, _ensure_admin_api)
    if guard:
        return guard
    source = find_source_by_name(source_name)
    if source is None:
        return _json_error(f"Unknown source: {source_name}", HTTPStatus.NOT_FOUND)
    if is_sync_worker_enabled(current_app):
        return _enqueue("sync.run_source", {"source_id": source.id})
    return jsonify(run_source(source.id).as_dict()), HTTPStatus.OK


@sync_blueprint.post("/returns/trigger")
def sync_trigger_returns():
    guard = _guard(_ensure_sync_enabled_api, _ensure_admin_api)
    if guard:
        return guard
    if not returns_configured():
        return _json_error("RETURNS_SHEET_ID is not configured.", HTTPStatus.BAD_REQUEST)
    if is_sync_worker_enabled(current_app):
        return _enqueue("sync.run_returns")
    try:
        outcome = run_returns()
    except SyncError as exc:
        return _json_error(str(exc), HTTPStatus.BAD_REQUEST)
    return jsonify(outcome.as_dict()), HTTPStatus.OK
