"""
Cell value parsers shared by the issue and returns pipelines.

Sheet cells arrive as strings typed by hand, so every parser is lenient on
input and strict on output: dates come back as canonical ``YYYY-MM-DD``
strings, numbers as ``int``, and anything unrecognised as ``None`` (or ``0``
for counts).
"""

from __future__ import annotations

import re
from datetime import date, datetime

from dateutil import parser as dateparser

from quality_monitor.models import IssueCategory

_ISO_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
_SLASH_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4}|\d{2})$")
_DOT_RE = re.compile(r"^(\d{1,2})\.(\d{1,2})\.(\d{4}|\d{2})$")
_FULL_YEAR_RE = re.compile(r"\d{4}")
_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")
_FALLBACK_DEFAULT = datetime(2000, 1, 1)


def _build_date(year: int, month: int, day: int) -> str | None:
    if year < 100:
        year += 2000
    if not (1 <= month <= 12 and 1 <= day <= 31):
        return None
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        # Impossible calendar day such as 2024-02-30.
        return None


def normalize_date(value: str | None) -> str | None:
    """
    Normalize a spreadsheet date to ``YYYY-MM-DD``.

    Formats are tried in order: ISO ``YYYY-M-D``; slash ``A/B/YYYY`` where
    ``B > 12`` means month-first, ``A > 12`` means day-first and the ambiguous
    case defaults to month-first; dotted ``D.M.YYYY`` (always day-first); and
    finally a generic calendar string via ``dateutil``. Two-digit years are
    promoted to the 2000s.

    Returns:
        str | None: Canonical date, or ``None`` when the value is not a date.
    """

    if value is None:
        return None
    trimmed = str(value).strip()
    if not trimmed:
        return None

    match = _ISO_RE.match(trimmed)
    if match:
        year, month, day = (int(part) for part in match.groups())
        return _build_date(year, month, day)

    match = _SLASH_RE.match(trimmed)
    if match:
        first, second, year = (int(part) for part in match.groups())
        if second > 12:
            month, day = first, second
        elif first > 12:
            day, month = first, second
        else:
            month, day = first, second
        return _build_date(year, month, day)

    match = _DOT_RE.match(trimmed)
    if match:
        day, month, year = (int(part) for part in match.groups())
        return _build_date(year, month, day)

    # Missing month or day resolve to the 1st, never to parts of today's date.
    if not _FULL_YEAR_RE.search(trimmed):
        return None
    try:
        parsed: datetime = dateparser.parse(trimmed, default=_FALLBACK_DEFAULT, dayfirst="." in trimmed)
    except (ValueError, OverflowError):
        return None
    return parsed.date().isoformat()


def parse_iso_date(value: str | None) -> date | None:
    """Normalize and convert to :class:`datetime.date` for persistence."""

    normalized = normalize_date(value)
    if normalized is None:
        return None
    return date.fromisoformat(normalized)


def _leading_int(value: str | None) -> int | None:
    if value is None:
        return None
    match = _LEADING_INT_RE.match(str(value))
    if not match:
        return None
    return int(match.group(1))


def parse_rate(value: str | None) -> int | None:
    """Severity rating 1..3, or ``None``."""

    number = _leading_int(value)
    if number is not None and 1 <= number <= 3:
        return number
    return None


def parse_category(value: str | None) -> IssueCategory | None:
    if not value:
        return None
    lowered = value.lower()
    if "client" in lowered or "клиент" in lowered:
        return IssueCategory.CLIENT
    if "internal" in lowered or "внутр" in lowered:
        return IssueCategory.INTERNAL
    return None


def parse_count(value: str | None) -> int:
    """Lenient integer parse (``"3"``, ``" 3 "``, ``"3.0"``); ``0`` when unparseable."""

    number = _leading_int(value)
    return number if number is not None else 0


__all__ = [
    "normalize_date",
    "parse_category",
    "parse_count",
    "parse_iso_date",
    "parse_rate",
]
