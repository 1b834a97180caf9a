"""
Link ingested rows to internal users.

Issues carry the agent's full name and returns carry the agent's
abbreviation; both are resolved to ``users.id`` with set-based updates that
only touch rows still unlinked, so re-running a link is a no-op.
"""

from __future__ import annotations

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from quality_monitor.models import Issue, Return, User


def _name_key(column):
    return func.lower(func.trim(column))


def link_issue_owners(session: Session, source_id: int) -> int:
    """
    Fill ``Issue.responsible_cc_id`` for unlinked issues of a source.

    Matching is case- and whitespace-insensitive on ``User.full_name``. When
    several users share a name the lowest id wins.

    Returns:
        int: Number of issues linked by this call.
    """

    name_matches = _name_key(User.full_name) == _name_key(Issue.responsible_cc_name)
    matched_user_id = select(func.min(User.id)).where(name_matches).scalar_subquery()
    statement = (
        update(Issue)
        .where(
            Issue.source_id == source_id,
            Issue.responsible_cc_id.is_(None),
            Issue.responsible_cc_name.is_not(None),
            select(User.id).where(name_matches).exists(),
        )
        .values(responsible_cc_id=matched_user_id)
        .execution_options(synchronize_session=False)
    )
    result = session.execute(statement)
    return result.rowcount or 0


def build_abbreviation_map(session: Session) -> dict[str, int]:
    """
    Map upper-cased CC abbreviations to user ids.

    On duplicate abbreviations the lowest user id wins, matching issue linking.
    """

    rows = session.execute(
        select(User.id, User.cc_abbreviation)
        .where(User.cc_abbreviation.is_not(None), User.cc_abbreviation != "")
        .order_by(User.id.desc())
    )
    return {abbreviation.strip().upper(): user_id for user_id, abbreviation in rows}


def link_return_owners(session: Session) -> int:
    """Backfill ``Return.cc_user_id`` for returns whose abbreviation now has a user."""

    abbreviation_matches = func.upper(func.trim(User.cc_abbreviation)) == Return.cc_abbreviation
    matched_user_id = select(func.min(User.id)).where(abbreviation_matches).scalar_subquery()
    statement = (
        update(Return)
        .where(
            Return.cc_user_id.is_(None),
            Return.cc_abbreviation.is_not(None),
            select(User.id).where(abbreviation_matches).exists(),
        )
        .values(cc_user_id=matched_user_id)
        .execution_options(synchronize_session=False)
    )
    result = session.execute(statement)
    return result.rowcount or 0


__all__ = ["build_abbreviation_map", "link_issue_owners", "link_return_owners"]
