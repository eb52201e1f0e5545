"""
Reporting Period Helpers
Year/period presets, date ranges, labels and URL query persistence
"""

from datetime import date
from typing import Mapping, Optional, Tuple
from urllib.parse import urlencode
import calendar

ANNUAL = "annual"
QUARTERS = ["q1", "q2", "q3", "q4"]
MONTHS = [f"m{n}" for n in range(1, 13)]
PERIOD_PRESETS = [ANNUAL] + QUARTERS + MONTHS


def is_valid_period(period: Optional[str]) -> bool:
    return period in PERIOD_PRESETS


def period_type(period: str) -> str:
    """annual, quarterly or monthly"""
    if period in QUARTERS:
        return "quarterly"
    if period in MONTHS:
        return "monthly"
    return "annual"


def _month_end(year: int, month: int) -> date:
    return date(year, month, calendar.monthrange(year, month)[1])


def get_period_date_range(year: int, period: str = ANNUAL) -> Tuple[date, date]:
    """
    Return (start, end) for a preset.

    start is the last day of the previous period (the opening-balance date),
    end is the last day of the period. Activity is counted for start < day <= end.
    """
    if period in QUARTERS:
        quarter = QUARTERS.index(period) + 1
        end = _month_end(year, quarter * 3)
        start = date(year - 1, 12, 31) if quarter == 1 else _month_end(year, (quarter - 1) * 3)
        return start, end

    if period in MONTHS:
        month = MONTHS.index(period) + 1
        end = _month_end(year, month)
        start = date(year - 1, 12, 31) if month == 1 else _month_end(year, month - 1)
        return start, end

    return date(year - 1, 12, 31), date(year, 12, 31)


def format_period_label(year: int, period: str = ANNUAL) -> str:
    """Human label: 'Q2 2025', 'March 2025', '2025'"""
    if period in QUARTERS:
        return f"{period.upper()} {year}"
    if period in MONTHS:
        return f"{calendar.month_name[MONTHS.index(period) + 1]} {year}"
    return str(year)


def build_period_query(year: int, period: str = ANNUAL) -> str:
    """Encode the selected period for the URL; annual is the default and is omitted"""
    params = {"year": year}
    if period and period != ANNUAL:
        params["period"] = period
    return urlencode(params)


def parse_period_query(params: Mapping[str, str], default_year: int) -> Tuple[int, str]:
    """Inverse of build_period_query; invalid values fall back to defaults"""
    try:
        year = int(params.get("year", default_year))
    except (TypeError, ValueError):
        year = default_year
    if year < 1900 or year > 9999:
        year = default_year

    period = params.get("period") or ANNUAL
    if not is_valid_period(period):
        period = ANNUAL
    return year, period
