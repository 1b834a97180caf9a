"""
Google Sheets v4 extractor for the sync pipelines.

Reads one tab (addressed by its numeric ``gid``) and returns normalized
headers plus one ``dict`` per data row. The API service object is injected so
tests and callers decide how credentials are built.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from typing import Any, Callable, List, Mapping, Protocol, Sequence

import httplib2
from google.auth.exceptions import GoogleAuthError
from googleapiclient.errors import HttpError

from quality_monitor.sync.adapters.google_sheets import (
    READONLY_SCOPES,
    SheetsAdapterError,
    ensure_sheets_adapter_ready,
)
from quality_monitor.sync.contracts import normalize_header

DEFAULT_SHEET_TITLE = "Sheet1"
DEFAULT_NUM_RETRIES = 2
_PLAIN_TITLE_RE = re.compile(r"^\w+$")


class SheetsFetchError(SheetsAdapterError):
    """Raised when the Sheets API rejects a request or cannot be reached."""


@dataclass
class SheetData:
    """Normalized headers plus rows keyed by those headers."""

    headers: List[str] = field(default_factory=list)
    rows: List[dict[str, str]] = field(default_factory=list)


class SheetSource(Protocol):
    def fetch_sheet(self, spreadsheet_id: str, gid: str = "0", cell_range: str | None = None) -> SheetData: ...


def build_sheet_data(values: Sequence[Sequence[object]]) -> SheetData:
    """
    Turn a raw ``values`` matrix into :class:`SheetData`.

    The first row is the header row. Short rows are padded with ``""`` so every
    row carries every header; cells beyond the header width are dropped.
    """

    if not values:
        return SheetData()
    headers = [normalize_header(str(header)) for header in values[0]]
    rows: list[dict[str, str]] = []
    for raw_row in values[1:]:
        cells = ["" if cell is None else str(cell) for cell in raw_row]
        rows.append({header: cells[index] if index < len(cells) else "" for index, header in enumerate(headers)})
    return SheetData(headers=headers, rows=rows)


def quote_sheet_title(title: str) -> str:
    if _PLAIN_TITLE_RE.match(title):
        return title
    escaped = title.replace("'", "''")
    return f"'{escaped}'"


def _http_status(exc: HttpError) -> int:
    status = getattr(exc, "status_code", None)
    if status is None:
        status = getattr(getattr(exc, "resp", None), "status", 0)
    try:
        return int(status)
    except (TypeError, ValueError):
        return 0


class SheetsExtractor:
    """Fetch sheet tabs through a ``googleapiclient`` Sheets v4 service."""

    def __init__(
        self,
        *,
        service: Any | None = None,
        service_factory: Callable[[], Any] | None = None,
        num_retries: int = DEFAULT_NUM_RETRIES,
        logger: logging.Logger | None = None,
    ) -> None:
        self._service = service
        self._service_factory = service_factory
        self.num_retries = num_retries
        self.logger = logger or logging.getLogger(__name__)

    # Public API -----------------------------------------------------------------

    def fetch_sheet(self, spreadsheet_id: str, gid: str = "0", cell_range: str | None = None) -> SheetData:
        """Read the tab identified by ``gid`` and return normalized rows."""

        title = self.resolve_sheet_title(spreadsheet_id, gid)
        a1_range = quote_sheet_title(title)
        if cell_range:
            a1_range = f"{a1_range}!{cell_range}"
        payload = self._execute(
            lambda service: service.spreadsheets().values().get(spreadsheetId=spreadsheet_id, range=a1_range),
            spreadsheet_id,
        )
        values = payload.get("values") or []
        sheet = build_sheet_data(values)
        self.logger.debug(
            "Fetched sheet tab %s (%s rows)",
            title,
            len(sheet.rows),
            extra={"sheet_id": spreadsheet_id, "sheet_gid": gid, "sheet_headers": sheet.headers},
        )
        return sheet

    def resolve_sheet_title(self, spreadsheet_id: str, gid: str) -> str:
        """Map a tab ``gid`` to its title, falling back to ``Sheet1``."""

        payload = self._execute(
            lambda service: service.spreadsheets().get(spreadsheetId=spreadsheet_id, fields="sheets.properties"),
            spreadsheet_id,
        )
        for sheet in payload.get("sheets") or ():
            properties: Mapping[str, object] = sheet.get("properties") or {}
            if str(properties.get("sheetId")) == str(gid):
                title = properties.get("title")
                if title:
                    return str(title)
        return DEFAULT_SHEET_TITLE

    @property
    def service(self) -> Any:
        """The Sheets API service, built on first use when only a factory was given."""

        if self._service is None:
            if self._service_factory is None:
                raise SheetsAdapterError("SheetsExtractor requires a service or a service_factory.")
            self._service = self._service_factory()
        return self._service

    # Internal helpers -----------------------------------------------------------

    def _execute(self, build_request: Callable[[Any], Any], spreadsheet_id: str) -> dict:
        try:
            return build_request(self.service).execute(num_retries=self.num_retries) or {}
        except HttpError as exc:
            status = _http_status(exc)
            detail = getattr(exc, "reason", None) or str(exc)
            self.logger.error(
                "Google Sheets request failed with status %s",
                status,
                extra={"status_code": status, "error": detail, "sheet_id": spreadsheet_id},
            )
            raise SheetsFetchError(f"Google Sheets request failed ({status}): {detail}") from exc
        except (httplib2.HttpLib2Error, GoogleAuthError, OSError) as exc:
            raise SheetsFetchError(f"Google Sheets request failed: {exc}") from exc


def create_sheets_service(env: Mapping[str, str] | None = None, *, timeout: float = 30.0) -> Any:
    """Build a Sheets v4 service from service account environment credentials."""

    env = os.environ if env is None else env
    ensure_sheets_adapter_ready(env)
    import google_auth_httplib2
    from google.oauth2 import service_account
    from googleapiclient.discovery import build

    info = {
        "type": "service_account",
        "client_email": env["GOOGLE_SERVICE_ACCOUNT_EMAIL"],
        "private_key": env["GOOGLE_PRIVATE_KEY"].replace("\\n", "\n"),
        "token_uri": "https://oauth2.googleapis.com/token",
    }
    try:
        credentials = service_account.Credentials.from_service_account_info(info, scopes=list(READONLY_SCOPES))
    except ValueError as exc:
        raise SheetsFetchError(f"Invalid Google service account credentials: {exc}") from exc
    authorized_http = google_auth_httplib2.AuthorizedHttp(credentials, http=httplib2.Http(timeout=timeout))
    return build("sheets", "v4", http=authorized_http, cache_discovery=False)


def create_sheets_extractor(
    env: Mapping[str, str] | None = None, *, timeout: float = 30.0, **kwargs
) -> SheetsExtractor:
    """
    Build an extractor whose credentials are resolved on the first request.

    Missing or invalid credentials therefore raise from ``fetch_sheet``.
    """

    return SheetsExtractor(service_factory=lambda: create_sheets_service(env, timeout=timeout), **kwargs)


__all__ = [
    "DEFAULT_SHEET_TITLE",
    "SheetData",
    "SheetSource",
    "SheetsExtractor",
    "SheetsFetchError",
    "build_sheet_data",
    "create_sheets_extractor",
    "create_sheets_service",
    "quote_sheet_title",
]
