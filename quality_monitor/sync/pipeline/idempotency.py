"""
Helpers for idempotent upsert decisions keyed by content hashes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Literal, TypeVar

from sqlalchemy.orm import Session

ModelT = TypeVar("ModelT")


class MissingUpsertKey(ValueError):
    """Raised when an upsert is attempted without any key columns."""


@dataclass(frozen=True)
class UpsertTarget(Generic[ModelT]):
    """
    Resolution outcome for an incoming row.

    `action` values:
    - ``create``: no row carries the key yet; a new record was built and added.
    - ``update``: an existing record matches; the caller overwrites mutable fields.
    """

    action: Literal["create", "update"]
    record: ModelT

    @property
    def created(self) -> bool:
        return self.action == "create"


def resolve_upsert_target(session: Session, model: type[ModelT], **key: Any) -> UpsertTarget[ModelT]:
    """
    Find the record for ``key`` or stage a new one carrying it.

    Key columns are only ever set on creation, so the dedup key of an
    existing row is never rewritten.
    """

    if not key:
        raise MissingUpsertKey(f"No key columns supplied for {model.__name__} upsert.")

    existing = session.query(model).filter_by(**key).one_or_none()
    if existing is not None:
        return UpsertTarget(action="update", record=existing)

    record = model(**key)
    session.add(record)
    return UpsertTarget(action="create", record=record)


__all__ = ["MissingUpsertKey", "UpsertTarget", "resolve_upsert_target"]
