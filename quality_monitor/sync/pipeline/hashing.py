"""
Content hashes used as deduplication keys for sheet rows.
"""

from __future__ import annotations

import hashlib
import json
from typing import Mapping, Sequence


def compute_row_hash(row: Mapping[str, object | None]) -> str:
    """Return a stable SHA-256 of the whole row; column order never changes it."""

    serialized = json.dumps(row, sort_keys=True, separators=(",", ":"), default=str, ensure_ascii=False)
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()


def compute_return_hash(
    return_date: str,
    client_name: str,
    cid: str,
    cc_abbreviation: str,
    reasons: Sequence[Mapping[str, object]],
) -> str:
    """
    Hash the identifying fields of a return row.

    Reasons are serialized in slot order, so editing any reason or count
    yields a new hash (and a new row) rather than an update.
    """

    reasons_json = json.dumps(list(reasons), separators=(",", ":"), ensure_ascii=False)
    source = f"{return_date}|{client_name}|{cid}|{cc_abbreviation}|{reasons_json}"
    return hashlib.sha256(source.encode("utf-8")).hexdigest()


__all__ = ["compute_row_hash", "compute_return_hash"]
