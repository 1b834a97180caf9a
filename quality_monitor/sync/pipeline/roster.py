"""
Team roster sync.

The roster sheet lists one contact-centre agent per row with their team lead.
Team leads are upserted first so agents can reference them; existing admins
and team leads are never downgraded.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Mapping

from flask import current_app
from sqlalchemy.orm import Session

from quality_monitor.models import User, UserRole, db
from quality_monitor.sync.adapters.google_sheets.extractor import SheetSource
from quality_monitor.sync.metrics import record_sync_run

TEAM_LEAD_TEAM = "Management"
DEFAULT_TEAM = "Operations"
ITBF_TEAM = "ITBF"


@dataclass
class RosterSyncOutcome:
    team_leads_created: int = 0
    team_leads_updated: int = 0
    ccs_created: int = 0
    ccs_updated: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def as_dict(self) -> dict[str, Any]:
        return {
            "team_leads_created": self.team_leads_created,
            "team_leads_updated": self.team_leads_updated,
            "ccs_created": self.ccs_created,
            "ccs_updated": self.ccs_updated,
            "errors": list(self.errors),
        }


def determine_team(cc_code: str | None) -> str:
    if cc_code and ITBF_TEAM in cc_code:
        return ITBF_TEAM
    return DEFAULT_TEAM


def _cell(row: Mapping[str, str], key: str) -> str:
    return (row.get(key) or "").strip()


def _find_user(session: Session, email: str) -> User | None:
    return session.query(User).filter(db.func.lower(User.email) == email).one_or_none()


def _collect_team_leads(rows) -> dict[str, str]:
    team_leads: dict[str, str] = {}
    for row in rows:
        email = _cell(row, "tl_email").lower()
        name = _cell(row, "cc_tl")
        if email and name and email not in team_leads:
            team_leads[email] = name
    return team_leads


def _upsert_team_lead(session: Session, email: str, name: str, outcome: RosterSyncOutcome) -> None:
    user = _find_user(session, email)
    if user is None:
        session.add(User(email=email, full_name=name, team=TEAM_LEAD_TEAM, role=UserRole.TEAM_LEAD, is_active=True))
        session.commit()
        outcome.team_leads_created += 1
        return
    user.full_name = name
    if user.role != UserRole.ADMIN:
        user.role = UserRole.TEAM_LEAD
    user.is_active = True
    session.commit()
    outcome.team_leads_updated += 1


def _upsert_cc(session: Session, row: Mapping[str, str], outcome: RosterSyncOutcome) -> None:
    email = _cell(row, "cc_email").lower()
    cc_code = _cell(row, "cc")
    full_name = _cell(row, "cc_full_name") or cc_code or email
    tl_email = _cell(row, "tl_email").lower()

    team_lead_id = None
    if tl_email:
        team_lead = _find_user(session, tl_email)
        if team_lead is not None:
            team_lead_id = team_lead.id

    values = {
        "full_name": full_name,
        "team": determine_team(cc_code),
        "team_lead_id": team_lead_id,
        "cc_abbreviation": cc_code.upper() or None,
        "is_active": True,
    }
    user = _find_user(session, email)
    if user is None:
        session.add(User(email=email, role=UserRole.CC, **values))
        session.commit()
        outcome.ccs_created += 1
        return
    for key, value in values.items():
        setattr(user, key, value)
    if user.role not in (UserRole.ADMIN, UserRole.TEAM_LEAD):
        user.role = UserRole.CC
    session.commit()
    outcome.ccs_updated += 1


def sync_team_roster(
    *,
    extractor: SheetSource,
    sheet_id: str,
    sheet_gid: str = "0",
    session: Session | None = None,
) -> RosterSyncOutcome:
    """Upsert team leads then agents from the roster sheet; errors are collected, not raised."""

    session = session or db.session
    logger = current_app.logger
    outcome = RosterSyncOutcome()
    started = time.monotonic()

    try:
        sheet = extractor.fetch_sheet(sheet_id, sheet_gid)
    except Exception as exc:
        outcome.errors.append(f"Sync failed: {exc}")
        logger.error("Roster sync failed: %s", exc, exc_info=True)
        record_sync_run(pipeline="roster", status="failed", duration_seconds=time.monotonic() - started)
        return outcome

    if not sheet.rows:
        outcome.errors.append("No team members found in sheet")
        record_sync_run(pipeline="roster", status="failed", duration_seconds=time.monotonic() - started)
        return outcome

    for email, name in _collect_team_leads(sheet.rows).items():
        try:
            _upsert_team_lead(session, email, name, outcome)
        except Exception as exc:
            session.rollback()
            outcome.errors.append(f"Team lead {email}: {exc}")

    for row in sheet.rows:
        email = _cell(row, "cc_email").lower()
        if not email:
            continue
        try:
            _upsert_cc(session, row, outcome)
        except Exception as exc:
            session.rollback()
            outcome.errors.append(f"CC {email}: {exc}")

    status = "success" if outcome.ok else "partial"
    record_sync_run(pipeline="roster", status=status, duration_seconds=time.monotonic() - started)
    logger.info(
        "Roster sync finished",
        extra={"sync_status": status, **{f"sync_{key}": value for key, value in outcome.as_dict().items()}},
    )
    return outcome


__all__ = ["RosterSyncOutcome", "determine_team", "sync_team_roster"]
