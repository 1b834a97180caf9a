"""Issue sheet column contract.

Issue sheets are maintained by hand in several languages, so every canonical
field accepts an ordered list of normalized header synonyms. The first
non-empty synonym present on a row wins.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Mapping, Sequence, Tuple

_WHITESPACE_RE = re.compile(r"\s+")
_NON_WORD_RE = re.compile(r"[^\w]")


def normalize_header(header: str) -> str:
    """Normalize a sheet header to a lookup key (``"QC / CAT Reason 1"`` -> ``"qc__cat_reason_1"``)."""

    token = _WHITESPACE_RE.sub("_", str(header).lower().strip())
    return _NON_WORD_RE.sub("", token)


@dataclass(frozen=True)
class FieldSpec:
    """Metadata describing a canonical issue field and its header synonyms."""

    name: str
    description: str
    aliases: Tuple[str, ...]
    required: bool = False

    def keys(self) -> Tuple[str, ...]:
        """Ordered lookup keys; earlier synonyms take precedence."""

        return self.aliases


ISSUE_FIELDS: Tuple[FieldSpec, ...] = (
    FieldSpec(
        name="issue_date",
        description="Date the issue was observed.",
        aliases=("date", "issue_date", "дата", "data"),
        required=True,
    ),
    FieldSpec(
        name="responsible_cc_name",
        description="Full name of the responsible contact-centre agent.",
        aliases=("cc", "responsible", "cc_name", "responsible_cc", "ответственный", "сотрудник"),
    ),
    FieldSpec(
        name="cid",
        description="Client identifier.",
        aliases=("cid", "client_id", "customer_id", "id_клиента"),
    ),
    FieldSpec(
        name="issue_type",
        description="Issue type label.",
        aliases=("type", "issue_type", "тип", "тип_ошибки", "error_type"),
        required=True,
    ),
    FieldSpec(
        name="comment",
        description="Free-text reviewer comment.",
        aliases=("comment", "comments", "комментарий", "примечание", "note", "notes"),
    ),
    FieldSpec(
        name="issue_rate",
        description="Severity rating from 1 to 3.",
        aliases=("rate", "issue_rate", "severity", "критичность", "оценка"),
    ),
    FieldSpec(
        name="issue_category",
        description="Client-facing or internal issue.",
        aliases=("category", "issue_category", "категория", "тип_клиент"),
    ),
    FieldSpec(
        name="reported_by",
        description="QA reviewer who reported the issue.",
        aliases=("reported_by", "reporter", "qa", "проверяющий"),
    ),
    FieldSpec(
        name="task_id",
        description="Ticket or task reference.",
        aliases=("task_id", "task", "ticket", "тикет", "задача"),
    ),
)

_ISSUE_FIELDS_BY_NAME = {field.name: field for field in ISSUE_FIELDS}


def get_issue_field_keys(name: str) -> Tuple[str, ...]:
    """Return the ordered synonym keys for a canonical issue field."""

    try:
        return _ISSUE_FIELDS_BY_NAME[name].keys()
    except KeyError as exc:
        raise KeyError(f"Unknown issue field: {name}") from exc


def find_column_value(row: Mapping[str, str], keys: Sequence[str]) -> str | None:
    """Return the first non-empty value among ``keys`` (exact match), else ``None``."""

    for key in keys:
        value = row.get(key)
        if value is not None and value != "":
            return value
    return None


@dataclass(frozen=True)
class IssueRowFields:
    """Raw cell values for the canonical issue fields of one sheet row."""

    issue_date: str | None = None
    responsible_cc_name: str | None = None
    cid: str | None = None
    issue_type: str | None = None
    comment: str | None = None
    issue_rate: str | None = None
    issue_category: str | None = None
    reported_by: str | None = None
    task_id: str | None = None


def map_issue_row(row: Mapping[str, str]) -> IssueRowFields:
    """Resolve every canonical issue field from a normalized sheet row."""

    return IssueRowFields(**{field.name: find_column_value(row, field.keys()) for field in ISSUE_FIELDS})


def missing_required_fields(headers: Sequence[str]) -> Tuple[str, ...]:
    """Names of required issue fields that none of ``headers`` can supply."""

    present = set(headers)
    return tuple(field.name for field in ISSUE_FIELDS if field.required and not present.intersection(field.keys()))


__all__ = [
    "FieldSpec",
    "ISSUE_FIELDS",
    "IssueRowFields",
    "find_column_value",
    "get_issue_field_keys",
    "map_issue_row",
    "missing_required_fields",
    "normalize_header",
]
