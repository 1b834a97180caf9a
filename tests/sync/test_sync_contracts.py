import pytest

from quality_monitor.sync.contracts import (
    ISSUE_FIELDS,
    get_issue_field_keys,
    iter_reason_slots,
    map_issue_row,
    missing_required_fields,
    normalize_header,
    return_column_value,
)


@pytest.mark.parametrize(
    "header,expected",
    [
        ("Date", "date"),
        ("  Issue Date ", "issue_date"),
        ("CC Reason 1", "cc_reason_1"),
        ("QC / CAT Reason 1", "qc__cat_reason_1"),
        ("Return Receive Date", "return_receive_date"),
        ("Tip (%)", "tip_"),
        ("Дата", "дата"),
        ("ID клиента", "id_клиента"),
    ],
)
def test_normalize_header(header, expected):
    assert normalize_header(header) == expected


def test_issue_fields_cover_canonical_names():
    names = [field.name for field in ISSUE_FIELDS]
    assert names == [
        "issue_date",
        "responsible_cc_name",
        "cid",
        "issue_type",
        "comment",
        "issue_rate",
        "issue_category",
        "reported_by",
        "task_id",
    ]
    required = {field.name for field in ISSUE_FIELDS if field.required}
    assert required == {"issue_date", "issue_type"}


def test_missing_required_fields_checks_synonyms():
    assert missing_required_fields(["data", "error_type", "comment"]) == ()
    assert missing_required_fields(["cc", "type"]) == ("issue_date",)
    assert missing_required_fields([]) == ("issue_date", "issue_type")


def test_unknown_issue_field_raises():
    with pytest.raises(KeyError):
        get_issue_field_keys("nope")


def test_first_non_empty_synonym_wins():
    row = {"date": "", "issue_date": "2024-03-01", "дата": "2024-04-01", "type": "Wrong info"}
    fields = map_issue_row(row)
    assert fields.issue_date == "2024-03-01"
    assert fields.issue_type == "Wrong info"
    assert fields.comment is None


def test_synonym_order_prefers_earlier_alias():
    row = {"cc": "Ivan Petrov", "responsible": "Someone Else", "тип": "Ошибка"}
    fields = map_issue_row(row)
    assert fields.responsible_cc_name == "Ivan Petrov"
    assert fields.issue_type == "Ошибка"


def test_reason_slots_order_and_prefix_rules():
    slots = list(iter_reason_slots())
    assert len(slots) == 20
    assert slots[0].reason_keys[0] == "cc_reason_1"
    assert not any(slot.cc_only for slot in slots[:10])
    assert all(slot.cc_only for slot in slots[10:])
    assert slots[10].reason_keys[0] == "qc__cat_reason_1"


def test_return_column_value_accepts_squashed_headers():
    row = {"returnreceivedate": "2024-01-15", "clientname": "Acme"}
    assert return_column_value(row, "return_date") == "2024-01-15"
    assert return_column_value(row, "client_name") == "Acme"
    assert return_column_value(row, "cid") == ""
