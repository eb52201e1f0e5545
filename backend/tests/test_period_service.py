from datetime import date

import pytest

from ciderhouse.services.period_service import (
    PERIOD_PRESETS,
    build_period_query,
    format_period_label,
    get_period_date_range,
    parse_period_query,
    period_type,
)


def test_annual_range_starts_on_prior_year_end():
    assert get_period_date_range(2025) == (date(2024, 12, 31), date(2025, 12, 31))


@pytest.mark.parametrize("period,expected", [
    ("q1", (date(2024, 12, 31), date(2025, 3, 31))),
    ("q2", (date(2025, 3, 31), date(2025, 6, 30))),
    ("q4", (date(2025, 9, 30), date(2025, 12, 31))),
    ("m1", (date(2024, 12, 31), date(2025, 1, 31))),
    ("m3", (date(2025, 2, 28), date(2025, 3, 31))),
])
def test_period_ranges(period, expected):
    assert get_period_date_range(2025, period) == expected


def test_leap_year_february():
    assert get_period_date_range(2024, "m2") == (date(2024, 1, 31), date(2024, 2, 29))


def test_labels():
    assert format_period_label(2025, "q2") == "Q2 2025"
    assert format_period_label(2025, "m3") == "March 2025"
    assert format_period_label(2025) == "2025"


def test_period_type():
    assert period_type("annual") == "annual"
    assert period_type("q3") == "quarterly"
    assert period_type("m11") == "monthly"


def test_query_round_trip():
    for period in PERIOD_PRESETS:
        query = build_period_query(2025, period)
        params = dict(pair.split("=") for pair in query.split("&"))
        assert parse_period_query(params, 2000) == (2025, period)


def test_annual_omitted_from_query():
    assert build_period_query(2025, "annual") == "year=2025"


def test_invalid_query_falls_back():
    assert parse_period_query({"year": "abc", "period": "q9"}, 2024) == (2024, "annual")
    assert parse_period_query({}, 2024) == (2024, "annual")
