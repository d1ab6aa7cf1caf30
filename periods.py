from dataclasses import dataclass
from datetime import date
from typing import Optional

from models import PeriodType


@dataclass(frozen=True)
class Period:
    slug: str
    start: date
    end: date


def month_end(year: int, month: int) -> date:
    if month == 12:
        return date(year + 1, 1, 1) - date.resolution
    return date(year, month + 1, 1) - date.resolution


def resolve_period(
    period: Optional[str],
    start: Optional[str],
    end: Optional[str],
    *,
    today: Optional[date] = None,
) -> Period:
    today = today or date.today()
    if not period or period == "this_month":
        first = today.replace(day=1)
        return Period("this_month", first, month_end(today.year, today.month))
    if period == "all":
        return Period("all", date(1970, 1, 1), today)
    if period == "last_month":
        first_this = today.replace(day=1)
        last_month_end = first_this - date.resolution
        last_month_start = last_month_end.replace(day=1)
        return Period("last_month", last_month_start, last_month_end)
    if period == "this_year":
        return Period("this_year", date(today.year, 1, 1), date(today.year, 12, 31))
    if period == "custom":
        if not start or not end:
            raise ValueError("Custom period requires start and end dates")
        start_date = date.fromisoformat(start)
        end_date = date.fromisoformat(end)
        if start_date > end_date:
            raise ValueError("Start date must be before end date")
        return Period("custom", start_date, end_date)
    raise ValueError(f"Unknown period: {period}")


def limit_window(
    period_type: PeriodType,
    *,
    period_start: Optional[date] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> tuple[date, date]:
    """Return the inclusive ``(start, end)`` window of an expense limit.

    Custom limits take ``start``/``end`` verbatim. Monthly limits run from
    ``period_start`` to the end of that month. Yearly limits run from
    ``period_start`` to the last day of the month before the same month of
    the following year, so a yearly limit starting 2025-03-15 ends on
    2026-02-28.
    """
    if period_type == PeriodType.custom:
        if start is None or end is None:
            raise ValueError("Custom limits require start_date and end_date")
        window = (start, end)
    else:
        anchor = period_start or start
        if anchor is None:
            raise ValueError(f"{period_type.value} limits require a period_start")
        if period_type == PeriodType.monthly:
            window = (anchor, month_end(anchor.year, anchor.month))
        else:
            window = (
                anchor,
                date(anchor.year + 1, anchor.month, 1) - date.resolution,
            )
    if window[0] > window[1]:
        raise ValueError("Start date must be before end date")
    return window
