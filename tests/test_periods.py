from __future__ import annotations
import datetime as dt

import pytest

from comptalog.errors import PeriodFormatError
from comptalog.services import periods


def test_month_bounds_handles_leap_year():
    assert periods.month_bounds("2024-02") == (dt.date(2024, 2, 1), dt.date(2024, 2, 29))
    assert periods.month_bounds("2023-02")[1] == dt.date(2023, 2, 28)


def test_quarter_bounds():
    assert periods.quarter_bounds("2024-Q1") == (dt.date(2024, 1, 1), dt.date(2024, 3, 31))
    assert periods.quarter_bounds("2024-q4") == (dt.date(2024, 10, 1), dt.date(2024, 12, 31))


def test_year_bounds():
    assert periods.year_bounds(2024) == (dt.date(2024, 1, 1), dt.date(2024, 12, 31))


@pytest.mark.parametrize("bad", ["2024-00", "2024-13", "2024/05", "", "mai 2024"])
def test_invalid_month(bad):
    with pytest.raises(PeriodFormatError):
        periods.month_bounds(bad)


def test_in_period_is_inclusive():
    start, end = periods.month_bounds("2024-05")
    assert periods.in_period("2024-05-01", start, end)
    assert periods.in_period(dt.datetime(2024, 5, 31, 23, 59), start, end)
    assert not periods.in_period(dt.date(2024, 6, 1), start, end)


def test_period_key():
    assert periods.period_key(dt.datetime(2024, 5, 31, 12)) == "2024-05"
    assert periods.period_key("2024-11-02") == "2024-11"
