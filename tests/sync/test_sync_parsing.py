import pytest

from quality_monitor.models import IssueCategory
from quality_monitor.sync.pipeline.parsing import (
    normalize_date,
    parse_category,
    parse_count,
    parse_iso_date,
    parse_rate,
)


@pytest.mark.parametrize(
    "value,expected",
    [
        ("2024-01-15", "2024-01-15"),
        ("2024-1-5", "2024-01-05"),
        ("1/15/2024", "2024-01-15"),
        ("15/1/2024", "2024-01-15"),
        ("3/4/2024", "2024-03-04"),
        ("1/15/24", "2024-01-15"),
        ("15.01.2024", "2024-01-15"),
        ("5.1.24", "2024-01-05"),
        ("  2024-01-15  ", "2024-01-15"),
        ("January 15, 2024", "2024-01-15"),
    ],
)
def test_normalize_date_accepts_known_formats(value, expected):
    assert normalize_date(value) == expected


@pytest.mark.parametrize(
    "value",
    [None, "", "   ", "not a date", "2024-02-30", "13/13/2024", "32.01.2024", "2024-13-01", "yesterday", "12"],
)
def test_normalize_date_rejects_invalid(value):
    assert normalize_date(value) is None


@pytest.mark.parametrize(
    "value,expected",
    [
        ("2024", "2024-01-01"),
        ("March 2024", "2024-03-01"),
        ("Feb 2024", "2024-02-01"),
        ("05.01.2024 10:30", "2024-01-05"),
    ],
)
def test_normalize_date_partial_values_do_not_depend_on_today(value, expected):
    assert normalize_date(value) == expected


def test_parse_iso_date_returns_date():
    parsed = parse_iso_date("15.01.2024")
    assert parsed.isoformat() == "2024-01-15"
    assert parse_iso_date("bad") is None


@pytest.mark.parametrize(
    "value,expected",
    [("1", 1), ("3", 3), ("2 - medium", 2), (" 2", 2), ("0", None), ("4", None), ("high", None), (None, None)],
)
def test_parse_rate(value, expected):
    assert parse_rate(value) == expected


@pytest.mark.parametrize(
    "value,expected",
    [
        ("Client", IssueCategory.CLIENT),
        ("клиентская", IssueCategory.CLIENT),
        ("Internal", IssueCategory.INTERNAL),
        ("Внутренняя", IssueCategory.INTERNAL),
        ("other", None),
        ("", None),
        (None, None),
    ],
)
def test_parse_category(value, expected):
    assert parse_category(value) == expected


@pytest.mark.parametrize("value,expected", [("3", 3), (" 3 ", 3), ("3.0", 3), ("", 0), (None, 0), ("n/a", 0)])
def test_parse_count(value, expected):
    assert parse_count(value) == expected
