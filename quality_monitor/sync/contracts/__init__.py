"""Column contracts for the spreadsheets the sync pipelines ingest."""

from __future__ import annotations

from .issue import (
    ISSUE_FIELDS,
    FieldSpec,
    IssueRowFields,
    find_column_value,
    get_issue_field_keys,
    map_issue_row,
    missing_required_fields,
    normalize_header,
)
from .returns import (
    QC_CC_REASON_PREFIX,
    REASON_SLOT_COUNT,
    RETURN_COLUMNS,
    ReasonSlot,
    iter_reason_slots,
    return_column_value,
)

__all__ = [
    "FieldSpec",
    "ISSUE_FIELDS",
    "IssueRowFields",
    "find_column_value",
    "get_issue_field_keys",
    "map_issue_row",
    "missing_required_fields",
    "normalize_header",
    "QC_CC_REASON_PREFIX",
    "REASON_SLOT_COUNT",
    "RETURN_COLUMNS",
    "ReasonSlot",
    "iter_reason_slots",
    "return_column_value",
]
