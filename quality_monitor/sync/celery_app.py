"""
Celery configuration helpers for the sync worker.

The worker defaults to a SQLite transport so local development does not
need Redis; set ``CELERY_BROKER_URL``/``CELERY_RESULT_BACKEND`` to swap it.
"""

from __future__ import annotations

import json
import logging
from datetime import timedelta
from pathlib import Path
from typing import Any, Mapping

from celery import Celery
from flask import Flask
from kombu import Queue

DEFAULT_QUEUE_NAME = "sync"
DEFAULT_SQLITE_FILENAME = "celery.sqlite"
PERIODIC_SYNC_ENTRY = "sync-periodic"
PERIODIC_SYNC_TASK = "sync.run_periodic"
DEFAULT_SYNC_INTERVAL_MINUTES = 10


def _configure_quiet_loggers(app: Flask) -> None:
    """Keep SQLAlchemy and Celery strategy logs out of task output unless echo is on."""
    if not app.config.get("SQLALCHEMY_ECHO", False):
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("celery.worker.strategy").setLevel(logging.WARNING)


def _normalize_sqlite_path(app: Flask) -> Path:
    """
    Determine the path backing the SQLite transport/result backend.

    ``CELERY_SQLITE_PATH`` overrides the default file in the Flask instance
    folder. Relative paths resolve against the instance folder.
    """
    configured = app.config.get("CELERY_SQLITE_PATH")
    if configured:
        sqlite_path = Path(configured)
        if not sqlite_path.is_absolute():
            sqlite_path = Path(app.instance_path) / sqlite_path
    else:
        sqlite_path = Path(app.instance_path) / DEFAULT_SQLITE_FILENAME

    sqlite_path.parent.mkdir(parents=True, exist_ok=True)
    return sqlite_path


def _determine_connection_urls(app: Flask) -> tuple[str, str]:
    broker_url = app.config.get("CELERY_BROKER_URL")
    result_backend = app.config.get("CELERY_RESULT_BACKEND")

    if broker_url and result_backend:
        return broker_url, result_backend

    # Celery expects forward slashes even on Windows.
    normalized = _normalize_sqlite_path(app).as_posix()
    return broker_url or f"sqla+sqlite:///{normalized}", result_backend or f"db+sqlite:///{normalized}"


def resolve_sync_interval(app: Flask) -> int:
    try:
        interval = int(app.config.get("SYNC_INTERVAL_MINUTES", DEFAULT_SYNC_INTERVAL_MINUTES))
    except (TypeError, ValueError):
        app.logger.warning("SYNC_INTERVAL_MINUTES is not an integer; using %s.", DEFAULT_SYNC_INTERVAL_MINUTES)
        interval = DEFAULT_SYNC_INTERVAL_MINUTES
    return max(1, interval)


def build_beat_schedule(app: Flask) -> dict[str, dict[str, Any]]:
    """Periodic issues + returns sync, registered only when auto sync is on."""
    if not app.config.get("SYNC_AUTO_ENABLED", False):
        return {}
    return {
        PERIODIC_SYNC_ENTRY: {
            "task": PERIODIC_SYNC_TASK,
            "schedule": timedelta(minutes=resolve_sync_interval(app)),
            "options": {"queue": DEFAULT_QUEUE_NAME},
        }
    }


def create_celery_app(app: Flask) -> Celery:
    """
    Create and configure a Celery instance bound to the given Flask app.
    """
    broker_url, result_backend = _determine_connection_urls(app)
    celery_app = Celery(
        app.import_name,
        broker=broker_url,
        backend=result_backend,
        include=("quality_monitor.sync.tasks",),
    )

    celery_app.conf.update(
        task_default_queue=DEFAULT_QUEUE_NAME,
        task_queues=[Queue(DEFAULT_QUEUE_NAME)],
        task_default_exchange=DEFAULT_QUEUE_NAME,
        task_default_routing_key=DEFAULT_QUEUE_NAME,
        task_acks_late=True,
        worker_prefetch_multiplier=1,
        task_track_started=True,
        result_extended=True,
        broker_connection_retry_on_startup=True,
        task_time_limit=app.config.get("SYNC_TASK_TIME_LIMIT", 15 * 60),
        task_soft_time_limit=app.config.get("SYNC_TASK_SOFT_TIME_LIMIT", 12 * 60),
        beat_schedule=build_beat_schedule(app),
        worker_log_format="[%(asctime)s: %(levelname)s/%(processName)s] %(message)s",
        worker_task_log_format="[%(asctime)s: %(levelname)s/%(processName)s][%(task_name)s(%(task_id)s)] %(message)s",
        worker_hijack_root_logger=False,
    )

    extra_conf: Mapping[str, Any] | str | None = app.config.get("CELERY_CONFIG")
    if isinstance(extra_conf, str):
        try:
            extra_conf = json.loads(extra_conf)
        except json.JSONDecodeError:
            app.logger.warning("CELERY_CONFIG is not valid JSON; ignoring value.", exc_info=True)
            extra_conf = None

    app.logger.info(
        "Sync Celery configuration resolved",
        extra={
            "sync_celery_extra_conf": extra_conf,
            "sync_celery_broker_url": broker_url,
            "sync_celery_result_backend": result_backend,
            "sync_worker_enabled": app.config.get("SYNC_WORKER_ENABLED"),
            "sync_auto_enabled": app.config.get("SYNC_AUTO_ENABLED"),
        },
    )

    if extra_conf:
        celery_app.conf.update(extra_conf)

    _configure_quiet_loggers(app)

    class FlaskContextTask(celery_app.Task):  # type: ignore[misc]
        """Run Celery tasks inside a Flask application context automatically."""

        def __call__(self, *args, **kwargs):
            with app.app_context():
                return super().__call__(*args, **kwargs)

    celery_app.Task = FlaskContextTask  # type: ignore[assignment]
    celery_app.loader.import_default_modules()
    return celery_app


def ensure_celery_app(app: Flask, state: dict[str, Any]) -> Celery:
    """Return (and cache) the Celery instance inside the sync extension state."""
    celery_app: Celery | None = state.get("celery_app")
    if celery_app is None:
        celery_app = create_celery_app(app)
        state["celery_app"] = celery_app
    return celery_app


def get_celery_app(app: Flask) -> Celery | None:
    """
    Fetch the Celery instance from the sync extension, initialising it if
    sync is enabled but the worker has not yet been configured.
    """
    state: dict[str, Any] | None = app.extensions.get("sync")  # type: ignore[arg-type]
    if not state:
        return None
    celery_app: Celery | None = state.get("celery_app")
    if celery_app is None and state.get("enabled"):
        celery_app = ensure_celery_app(app, state)
    return celery_app
