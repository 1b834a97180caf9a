"""
CLI commands for the sheet sync (``flask sync ...``).

Runs execute inline in the CLI process by default; ``--queue`` hands them to
the Celery worker instead.
"""

from __future__ import annotations

import json
from typing import Any, Optional

import click
from celery import Celery
from celery.exceptions import TimeoutError as CeleryTimeoutError
from flask import current_app
from flask.cli import AppGroup, ScriptInfo, with_appcontext

from quality_monitor.models import SyncStatus
from quality_monitor.utils.sync import SYNC_EXTENSION_KEY, is_sync_enabled

from .celery_app import DEFAULT_QUEUE_NAME, get_celery_app
from .errors import SyncError
from .pipeline import SyncLogService, find_source_by_name
from .pipeline.run_service import DEFAULT_LOG_LIMIT
from .readiness import refresh_adapter_readiness
from .runner import run_all_sources, run_returns, run_roster, run_source


def _echo_json(payload: Any) -> None:
    click.echo(json.dumps(payload, indent=2, default=str))


@click.group(name="sync", cls=AppGroup, invoke_without_command=True)
@with_appcontext
@click.pass_context
def sync_cli(ctx):
    """
    Google Sheets sync commands.

    Prints the current sync status when invoked without a subcommand.
    """
    info = ctx.ensure_object(ScriptInfo)
    app = info.load_app()
    if not is_sync_enabled(app):
        raise click.ClickException("Sync is disabled via SYNC_ENABLED=false. Enable it to run sync CLI commands.")
    if ctx.invoked_subcommand is None:
        _echo_json(SyncLogService().get_status())


def get_disabled_sync_group() -> click.Group:
    """
    Return a minimal command group that informs the operator sync is disabled.
    """

    @click.group(name="sync", invoke_without_command=True)
    def disabled_group():
        raise click.ClickException("Sync commands are unavailable because SYNC_ENABLED=false.")

    return disabled_group


def _resolve_celery(app) -> Celery:
    celery_app = get_celery_app(app)
    if celery_app is None:
        raise click.ClickException(
            "Sync Celery app is unavailable. Ensure SYNC_ENABLED=true and the "
            "sync package initialises before running worker commands."
        )
    return celery_app


def _enqueue(app, task_name: str, kwargs: Optional[dict[str, Any]] = None) -> None:
    celery_app = _resolve_celery(app)
    try:
        async_result = celery_app.send_task(task_name, kwargs=kwargs or {})
    except Exception as exc:  # pragma: no cover - broker failures
        raise click.ClickException(f"Failed to enqueue {task_name}: {exc}") from exc
    app.logger.info(
        "Sync task queued via CLI",
        extra={"sync_task_name": task_name, "sync_task_id": async_result.id},
    )
    _echo_json({"task": task_name, "task_id": async_result.id, "status": "queued"})


@sync_cli.command("sources")
@click.option("--all", "include_inactive", is_flag=True, help="Include inactive sources.")
def sync_sources(include_inactive: bool):
    """List configured issue sources."""
    _echo_json(SyncLogService().list_sources(active_only=not include_inactive))


@sync_cli.command("run")
@click.option("--source", "source_name", help="Name of the issue source to sync.")
@click.option("--all", "run_all", is_flag=True, help="Sync every active issue source.")
@click.option("--queue", is_flag=True, help="Queue the run on the Celery worker instead of running inline.")
@click.pass_context
def sync_run(ctx, source_name: Optional[str], run_all: bool, queue: bool):
    """Sync one issue source or all of them."""
    if bool(source_name) == run_all:
        raise click.UsageError("Provide exactly one of --source NAME or --all.")

    info = ctx.ensure_object(ScriptInfo)
    app = info.load_app()

    if run_all:
        if queue:
            _enqueue(app, "sync.run_all")
            return
        outcomes = run_all_sources(app)
        _echo_json([outcome.as_dict() for outcome in outcomes])
        return

    source = find_source_by_name(source_name)
    if source is None:
        raise click.ClickException(f"Unknown or inactive source '{source_name}'.")
    if queue:
        _enqueue(app, "sync.run_source", {"source_id": source.id})
        return
    outcome = run_source(source.id, app)
    _echo_json(outcome.as_dict())
    if outcome.status == SyncStatus.FAILED:
        ctx.exit(1)


@sync_cli.command("returns")
@click.option("--queue", is_flag=True, help="Queue the run on the Celery worker instead of running inline.")
@click.pass_context
def sync_returns_command(ctx, queue: bool):
    """Sync the returns workbook configured by RETURNS_SHEET_ID."""
    info = ctx.ensure_object(ScriptInfo)
    app = info.load_app()
    if queue:
        _enqueue(app, "sync.run_returns")
        return
    try:
        outcome = run_returns(app)
    except SyncError as exc:
        raise click.ClickException(str(exc)) from exc
    _echo_json(outcome.as_dict())
    if outcome.status == SyncStatus.FAILED:
        ctx.exit(1)


@sync_cli.command("roster")
@click.option("--queue", is_flag=True, help="Queue the run on the Celery worker instead of running inline.")
@click.pass_context
def sync_roster_command(ctx, queue: bool):
    """Sync users from the team roster configured by ROSTER_SHEET_ID."""
    info = ctx.ensure_object(ScriptInfo)
    app = info.load_app()
    if queue:
        _enqueue(app, "sync.run_roster")
        return
    try:
        outcome, linked = run_roster(app)
    except SyncError as exc:
        raise click.ClickException(str(exc)) from exc
    payload = outcome.as_dict()
    payload["returns_linked"] = linked
    _echo_json(payload)


@sync_cli.command("logs")
@click.option("--returns", "returns_logs", is_flag=True, help="Show returns sync logs instead of issue logs.")
@click.option("--limit", default=None, type=int, help=f"Maximum number of logs (default {DEFAULT_LOG_LIMIT}).")
def sync_logs(returns_logs: bool, limit: Optional[int]):
    """Show the most recent sync logs."""
    service = SyncLogService()
    try:
        logs = service.list_returns_logs(limit) if returns_logs else service.list_logs(limit)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--limit") from exc
    _echo_json(logs)


@sync_cli.command("status")
@click.option("--check-adapter", is_flag=True, help="Re-check Google Sheets credentials and include the result.")
def sync_status(check_adapter: bool):
    """Show last successful sync, whether a sync is running, and per-source state."""
    payload = SyncLogService().get_status()
    if check_adapter:
        payload["adapter"] = refresh_adapter_readiness(current_app)
    _echo_json(payload)


@sync_cli.group(name="worker")
@click.pass_context
def worker_group(ctx):
    """Manage the sync background worker."""
    info = ctx.ensure_object(ScriptInfo)
    app = info.load_app()
    state = app.extensions.get(SYNC_EXTENSION_KEY, {})
    if not state.get("worker_enabled") and not app.config.get("SYNC_WORKER_ENABLED"):
        click.echo(
            "Warning: SYNC_WORKER_ENABLED is false. API triggers will run inline until it is enabled.",
            err=True,
        )


@worker_group.command("run")
@click.option("--loglevel", default="info", show_default=True)
@click.option("--concurrency", type=int, help="Number of worker processes/threads.")
@click.option("--pool", type=str, help="Celery pool implementation (e.g., 'prefork', 'solo', 'threads').")
@click.option("--queues", default=DEFAULT_QUEUE_NAME, show_default=True, help="Comma-separated queue list to consume.")
@click.option("--beat", is_flag=True, help="Embed the beat scheduler so the periodic sync runs.")
@click.pass_context
def worker_run(ctx, loglevel: str, concurrency: Optional[int], pool: Optional[str], queues: str, beat: bool):
    """
    Start the Celery worker in the current process.
    """
    info = ctx.ensure_object(ScriptInfo)
    app = info.load_app()
    celery_app = _resolve_celery(app)

    state = app.extensions.get(SYNC_EXTENSION_KEY)
    if state is not None:
        state["worker_enabled"] = True

    argv = ["worker", "--loglevel", loglevel, "-Q", queues]
    if concurrency:
        argv.extend(["--concurrency", str(concurrency)])
    if pool:
        argv.extend(["--pool", pool])
    if beat:
        argv.append("--beat")

    click.echo(f"Starting sync worker (queues: {queues}, loglevel: {loglevel}, beat: {beat})")
    try:
        celery_app.worker_main(argv=argv)
    except KeyboardInterrupt:
        click.echo("Worker shutdown requested. Exiting...")


@worker_group.command("ping")
@click.option("--timeout", default=10.0, show_default=True, help="Seconds to wait for a response.")
@click.pass_context
def worker_ping(ctx, timeout: float):
    """
    Validate worker connectivity by executing the heartbeat task.
    """
    info = ctx.ensure_object(ScriptInfo)
    app = info.load_app()
    celery_app = _resolve_celery(app)
    task = celery_app.tasks.get("sync.healthcheck")
    if task is None:
        raise click.ClickException("Heartbeat task 'sync.healthcheck' is not registered.")

    result = task.apply_async()
    try:
        payload = result.get(timeout=timeout)
    except CeleryTimeoutError as exc:
        raise click.ClickException(f"Worker did not respond within {timeout}s") from exc

    _echo_json(payload)
