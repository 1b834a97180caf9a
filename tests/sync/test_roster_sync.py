from quality_monitor.models import User, UserRole
from quality_monitor.sync.adapters.google_sheets.extractor import SheetsFetchError
from quality_monitor.sync.pipeline import determine_team, sync_team_roster

HEADER = ["CC", "CC Full Name", "CC Email", "CC TL", "TL Email"]


def _values():
    return [
        HEADER,
        ["ivp", "Ivan Petrov", "Ivan@Example.com", "Olga Lead", "olga@example.com"],
        ["ITBF-ans", "Anna Smirnova", "anna@example.com", "Olga Lead", "olga@example.com"],
        ["", "", "", "Orphan Row", ""],
    ]


def test_determine_team():
    assert determine_team("ITBF-ans") == "ITBF"
    assert determine_team("ivp") == "Operations"
    assert determine_team(None) == "Operations"


def test_roster_creates_team_leads_and_agents(fake_extractor):
    fake_extractor.add_sheet("roster", _values())

    outcome = sync_team_roster(extractor=fake_extractor, sheet_id="roster")

    assert outcome.ok
    assert outcome.team_leads_created == 1
    assert outcome.ccs_created == 2
    lead = User.query.filter_by(email="olga@example.com").one()
    assert lead.role == UserRole.TEAM_LEAD
    assert lead.team == "Management"
    ivan = User.query.filter_by(email="ivan@example.com").one()
    assert ivan.role == UserRole.CC
    assert ivan.team_lead_id == lead.id
    assert ivan.cc_abbreviation == "IVP"
    assert ivan.team == "Operations"
    assert User.query.filter_by(email="anna@example.com").one().team == "ITBF"


def test_roster_never_downgrades_admins(fake_extractor, user_factory):
    user_factory("Olga Lead", email="olga@example.com", role=UserRole.ADMIN)
    user_factory("Ivan Petrov", email="ivan@example.com", role=UserRole.ADMIN)
    fake_extractor.add_sheet("roster", _values())

    outcome = sync_team_roster(extractor=fake_extractor, sheet_id="roster")

    assert outcome.team_leads_updated == 1
    assert outcome.ccs_updated == 1
    assert User.query.filter_by(email="olga@example.com").one().role == UserRole.ADMIN
    assert User.query.filter_by(email="ivan@example.com").one().role == UserRole.ADMIN


def test_roster_reports_fetch_and_empty_errors(fake_extractor):
    fake_extractor.fail_sheet("roster", SheetsFetchError("denied"))
    assert sync_team_roster(extractor=fake_extractor, sheet_id="roster").errors == ["Sync failed: denied"]

    fake_extractor.add_sheet("roster", [HEADER])
    assert sync_team_roster(extractor=fake_extractor, sheet_id="roster").errors == ["No team members found in sheet"]
