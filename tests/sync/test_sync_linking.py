from datetime import date

from quality_monitor.models import Issue, Return, db
from quality_monitor.sync.pipeline import build_abbreviation_map, link_issue_owners, link_return_owners


def _issue(source, name, cid):
    issue = Issue(
        source_id=source.id,
        external_row_hash=f"hash-{cid}",
        issue_date=date(2024, 1, 15),
        responsible_cc_name=name,
        cid=cid,
        issue_type="Wrong info",
    )
    db.session.add(issue)
    return issue


def test_link_issue_owners_is_case_and_space_insensitive(source_factory, user_factory):
    source = source_factory("LV")
    ivan = user_factory("Ivan Petrov")
    _issue(source, "  ivan petrov ", "C-1")
    _issue(source, "Nobody Known", "C-2")
    _issue(source, None, "C-3")
    db.session.commit()

    assert link_issue_owners(db.session, source.id) == 1
    db.session.commit()

    assert Issue.query.filter_by(cid="C-1").one().responsible_cc_id == ivan.id
    assert Issue.query.filter_by(cid="C-2").one().responsible_cc_id is None


def test_link_issue_owners_is_idempotent_and_never_relinks(source_factory, user_factory):
    source = source_factory("LV")
    first = user_factory("Ivan Petrov", email="ivan1@example.com")
    _issue(source, "Ivan Petrov", "C-1")
    db.session.commit()

    assert link_issue_owners(db.session, source.id) == 1
    db.session.commit()
    user_factory("Ivan Petrov", email="ivan2@example.com")

    assert link_issue_owners(db.session, source.id) == 0
    db.session.commit()
    assert Issue.query.filter_by(cid="C-1").one().responsible_cc_id == first.id


def test_duplicate_names_link_lowest_user_id(source_factory, user_factory):
    source = source_factory("LV")
    lowest = user_factory("Anna Smirnova", email="anna1@example.com")
    user_factory("Anna Smirnova", email="anna2@example.com")
    _issue(source, "Anna Smirnova", "C-1")
    db.session.commit()

    link_issue_owners(db.session, source.id)
    db.session.commit()

    assert Issue.query.filter_by(cid="C-1").one().responsible_cc_id == lowest.id


def test_link_only_touches_requested_source(source_factory, user_factory):
    lv = source_factory("LV")
    cs = source_factory("CS")
    user_factory("Ivan Petrov")
    _issue(lv, "Ivan Petrov", "C-1")
    _issue(cs, "Ivan Petrov", "C-2")
    db.session.commit()

    assert link_issue_owners(db.session, lv.id) == 1
    db.session.commit()
    assert Issue.query.filter_by(cid="C-2").one().responsible_cc_id is None


def test_abbreviation_map_prefers_lowest_id(user_factory):
    lowest = user_factory("Ivan Petrov", email="ivan1@example.com", cc_abbreviation="ivp")
    user_factory("Ivan Popov", email="ivan2@example.com", cc_abbreviation=" IVP ")
    user_factory("No Code")

    assert build_abbreviation_map(db.session) == {"IVP": lowest.id}


def test_link_return_owners_backfills_once(user_factory):
    record = Return(
        external_row_hash="r-1",
        return_date=date(2024, 1, 15),
        cc_abbreviation="IVP",
        reasons=[],
    )
    db.session.add(record)
    db.session.commit()
    assert link_return_owners(db.session) == 0

    agent = user_factory("Ivan Petrov", cc_abbreviation="ivp")
    assert link_return_owners(db.session) == 1
    db.session.commit()
    assert link_return_owners(db.session) == 0
    assert db.session.get(Return, record.id).cc_user_id == agent.id
