"""Returns sheet column contract.

The returns workbook has a fixed layout but its headers drift between
``snake_case`` and squashed spellings, so each column lists both. Reason
columns come in numbered slots: ten CC slots and ten QC/CAT slots.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Mapping, Tuple

from .issue import find_column_value

REASON_SLOT_COUNT = 10
QC_CC_REASON_PREFIX = "CC:"

RETURN_COLUMNS: Mapping[str, Tuple[str, ...]] = {
    "return_date": ("return_receive_date", "returnreceivedate"),
    "client_name": ("client_name", "clientname"),
    "block": ("block",),
    "cid": ("cid",),
    "cc_abbreviation": ("cc",),
    "team_lead_name": ("tl_cm", "tlcm", "tl"),
    "cc_fault": ("cc_fault", "ccfault"),
    "initial_returns_number": ("initial_returns_number", "initialreturnsnumber"),
}


@dataclass(frozen=True)
class ReasonSlot:
    """One reason/count column pair; ``cc_only`` slots must start with ``CC:``."""

    index: int
    reason_keys: Tuple[str, ...]
    count_keys: Tuple[str, ...]
    cc_only: bool = False


def iter_reason_slots() -> Iterator[ReasonSlot]:
    """Yield CC slots 1..10 followed by QC/CAT slots 1..10."""

    for index in range(1, REASON_SLOT_COUNT + 1):
        yield ReasonSlot(
            index=index,
            reason_keys=(f"cc_reason_{index}", f"ccreason{index}"),
            count_keys=(f"cc_count_{index}", f"cccount{index}"),
        )
    for index in range(1, REASON_SLOT_COUNT + 1):
        yield ReasonSlot(
            index=index,
            reason_keys=(f"qc__cat_reason_{index}", f"qc_cat_reason_{index}"),
            count_keys=(f"qc__cat_count_{index}", f"qc_cat_count_{index}"),
            cc_only=True,
        )


def return_column_value(row: Mapping[str, str], column: str) -> str:
    """Return the first non-empty value for a returns column, or ``""``."""

    return find_column_value(row, RETURN_COLUMNS[column]) or ""


__all__ = [
    "QC_CC_REASON_PREFIX",
    "REASON_SLOT_COUNT",
    "RETURN_COLUMNS",
    "ReasonSlot",
    "iter_reason_slots",
    "return_column_value",
]
