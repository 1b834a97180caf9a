"""Sync extension state and Google Sheets adapter readiness snapshots."""

from __future__ import annotations

from typing import Any, Dict, Mapping

from flask import Flask

from quality_monitor.utils.sync import SYNC_EXTENSION_KEY

from .adapters.google_sheets import check_sheets_adapter_readiness
from .metrics import record_sheets_adapter_status


def ensure_extension_state(app: Flask) -> dict:
    return app.extensions.setdefault(
        SYNC_EXTENSION_KEY,
        {
            "enabled": False,
            "worker_enabled": False,
            "celery_app": None,
            "extractor_factory": None,
            "adapter_readiness": {},
        },
    )


def compute_adapter_readiness(app: Flask) -> Dict[str, Any]:
    readiness = check_sheets_adapter_readiness()
    record_sheets_adapter_status(readiness.status == "ready")
    payload = readiness.as_dict()
    if readiness.status != "ready":
        messages = list(readiness.messages())
        app.logger.warning(
            "Google Sheets adapter not ready (status=%s). %s",
            readiness.status,
            "; ".join(messages) or "No additional context provided.",
            extra={
                "sync_adapter_status": readiness.status,
                "sync_adapter_missing_env": payload.get("missing_env_vars"),
            },
        )
    return payload


def get_adapter_readiness(app: Flask) -> Mapping[str, Any]:
    state = ensure_extension_state(app)
    return dict(state.get("adapter_readiness", {}))


def refresh_adapter_readiness(app: Flask) -> Mapping[str, Any]:
    """
    Recompute Google Sheets readiness and store it on the sync extension state.
    """
    state = ensure_extension_state(app)
    state["adapter_readiness"] = compute_adapter_readiness(app)
    return dict(state["adapter_readiness"])
