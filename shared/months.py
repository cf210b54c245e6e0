"""Month filter parsing and matching helpers."""

from __future__ import annotations

import calendar
from datetime import datetime, timezone

from shared.models import MonthFilter, MonthMatchMode, format_date_of_sale


_MONTH_NAME_TO_NUMBER: dict[str, int] = {
    **{name.lower(): index for index, name in enumerate(calendar.month_name) if name},
    **{abbr.lower(): index for index, abbr in enumerate(calendar.month_abbr) if abbr},
}


def parse_month_number(value: str) -> int | None:
    """Return the calendar month (1-12) named by `value`, or None.

    Accepts `3`, `03`, `March` and `mar`, case-insensitive.
    """

    cleaned = value.strip().lower()
    if not cleaned:
        return None
    if cleaned.isdecimal():
        try:
            number = int(cleaned)
        except ValueError:
            return None
        return number if 1 <= number <= 12 else None
    return _MONTH_NAME_TO_NUMBER.get(cleaned)


def build_month_filter(raw_month: str | None, mode: MonthMatchMode) -> MonthFilter:
    pattern = (raw_month or "").strip()
    if not pattern:
        return MonthFilter(mode=mode)
    if mode == MonthMatchMode.SUBSTRING:
        return MonthFilter(mode=mode, pattern=pattern)
    return MonthFilter(mode=mode, pattern=pattern, month_number=parse_month_number(pattern))


def month_matches(month_filter: MonthFilter, date_of_sale: datetime) -> bool:
    if month_filter.is_empty:
        return True
    if month_filter.mode == MonthMatchMode.SUBSTRING:
        needle = (month_filter.pattern or "").lower()
        return needle in format_date_of_sale(date_of_sale).lower()
    if month_filter.month_number is None:
        return False
    return date_of_sale.astimezone(timezone.utc).month == month_filter.month_number
