"""Date manipulation utilities"""

import calendar
from datetime import date, datetime, timezone


def today_utc() -> date:
    """Current calendar date in UTC"""
    return datetime.now(timezone.utc).date()


def add_months(from_date: date, months: int) -> date:
    """Add calendar months, clamping the day to the target month's length"""
    month_index = from_date.month - 1 + months
    year = from_date.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(from_date.day, last_day))


def due_date(index: int, has_down_payment: bool, anchor: date | None = None) -> date:
    """
    Due date of the installment at 1-based position `index`.

    A down payment (index 1 when present) is due on the anchor date itself.
    Every other installment falls whole months after the anchor:
    index - 1 months with a down payment, index months without one.
    """
    if anchor is None:
        anchor = today_utc()

    if has_down_payment and index == 1:
        return anchor

    months_to_add = index - 1 if has_down_payment else index
    return add_months(anchor, months_to_add)
