"""Google Sheets adapter readiness and dependency validation utilities."""

from __future__ import annotations

import os
from dataclasses import dataclass
from importlib import import_module
from typing import Mapping, Tuple

from quality_monitor.sync.errors import SyncError

REQUIRED_ENV_VARS: Tuple[str, ...] = ("GOOGLE_SERVICE_ACCOUNT_EMAIL", "GOOGLE_PRIVATE_KEY")
READONLY_SCOPES: Tuple[str, ...] = ("https://www.googleapis.com/auth/spreadsheets.readonly",)


class SheetsAdapterError(SyncError):
    """Base error for Google Sheets adapter readiness issues."""


class SheetsAdapterDependencyError(SheetsAdapterError):
    """Raised when the Google API client stack cannot be imported."""


class SheetsAdapterConfigError(SheetsAdapterError):
    """Raised when service account credentials are not configured."""


@dataclass(frozen=True)
class SheetsAdapterReadiness:
    dependency_ok: bool
    dependency_errors: Tuple[str, ...]
    missing_env_vars: Tuple[str, ...]

    @property
    def status(self) -> str:
        if not self.dependency_ok:
            return "missing-deps"
        if self.missing_env_vars:
            return "missing-env"
        return "ready"

    def messages(self) -> Tuple[str, ...]:
        messages: list[str] = list(self.dependency_errors)
        if self.missing_env_vars:
            messages.append(f"Missing required Google Sheets env vars: {', '.join(self.missing_env_vars)}")
        return tuple(messages)

    def as_dict(self) -> dict[str, object]:
        return {
            "status": self.status,
            "dependency_ok": self.dependency_ok,
            "dependency_errors": list(self.dependency_errors),
            "missing_env_vars": list(self.missing_env_vars),
            "messages": list(self.messages()),
        }


def _collect_dependency_errors() -> list[str]:
    dependency_errors: list[str] = []
    for module_name in ("google.oauth2.service_account", "googleapiclient.discovery", "google_auth_httplib2"):
        try:
            import_module(module_name)
        except ImportError as exc:
            dependency_errors.append(
                f"{module_name} import failed: {exc}. Install google-api-python-client and google-auth-httplib2."
            )
    return dependency_errors


def check_sheets_adapter_readiness(env: Mapping[str, str] | None = None) -> SheetsAdapterReadiness:
    """
    Perform a non-raising readiness check for the Google Sheets adapter.

    Args:
        env: Optional mapping of environment variables to inspect. Defaults to os.environ.
    """

    env = os.environ if env is None else env
    dependency_errors = _collect_dependency_errors()
    missing_env = tuple(sorted(var for var in REQUIRED_ENV_VARS if not env.get(var)))
    return SheetsAdapterReadiness(
        dependency_ok=not dependency_errors,
        dependency_errors=tuple(dependency_errors),
        missing_env_vars=missing_env,
    )


def ensure_sheets_adapter_ready(env: Mapping[str, str] | None = None) -> SheetsAdapterReadiness:
    """
    Validate adapter readiness, raising actionable errors when not ready.
    """

    readiness = check_sheets_adapter_readiness(env=env)
    if not readiness.dependency_ok:
        raise SheetsAdapterDependencyError("; ".join(readiness.dependency_errors))
    if readiness.missing_env_vars:
        raise SheetsAdapterConfigError(
            "Google Sheets credentials not configured; missing env vars: "
            + ", ".join(readiness.missing_env_vars)
            + "."
        )
    return readiness


__all__ = [
    "READONLY_SCOPES",
    "REQUIRED_ENV_VARS",
    "SheetsAdapterConfigError",
    "SheetsAdapterDependencyError",
    "SheetsAdapterError",
    "SheetsAdapterReadiness",
    "check_sheets_adapter_readiness",
    "ensure_sheets_adapter_ready",
]
