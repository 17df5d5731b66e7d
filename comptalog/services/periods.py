from __future__ import annotations
import calendar
import datetime as dt
import re
from typing import Tuple, Union

from comptalog.errors import PeriodFormatError

_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")
_QUARTER_RE = re.compile(r"^(\d{4})-Q([1-4])$", re.IGNORECASE)

Bounds = Tuple[dt.date, dt.date]


def as_date(value: Union[str, dt.date, dt.datetime]) -> dt.date:
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    try:
        return dt.date.fromisoformat(str(value)[:10])
    except ValueError as e:
        raise PeriodFormatError(f"date ISO invalide: {value!r}") from e

def period_key(value: Union[str, dt.date, dt.datetime]) -> str:
    """YYYY-MM"""
    return as_date(value).strftime("%Y-%m")

def month_bounds(period: str) -> Bounds:
    m = _MONTH_RE.match(period or "")
    if not m or not 1 <= int(m.group(2)) <= 12:
        raise PeriodFormatError(f"mois attendu au format YYYY-MM: {period!r}")
    year, month = int(m.group(1)), int(m.group(2))
    last = calendar.monthrange(year, month)[1]
    return dt.date(year, month, 1), dt.date(year, month, last)

def quarter_bounds(quarter: str) -> Bounds:
    m = _QUARTER_RE.match(quarter or "")
    if not m:
        raise PeriodFormatError(f"trimestre attendu au format YYYY-Qn: {quarter!r}")
    year, q = int(m.group(1)), int(m.group(2))
    first_month = 3 * (q - 1) + 1
    start = dt.date(year, first_month, 1)
    end = dt.date(year, first_month + 2, calendar.monthrange(year, first_month + 2)[1])
    return start, end

def year_bounds(year: int) -> Bounds:
    try:
        return dt.date(int(year), 1, 1), dt.date(int(year), 12, 31)
    except (TypeError, ValueError) as e:
        raise PeriodFormatError(f"exercice invalide: {year!r}") from e

def in_period(value, start: dt.date, end: dt.date) -> bool:
    """Bornes incluses."""
    return start <= as_date(value) <= end
