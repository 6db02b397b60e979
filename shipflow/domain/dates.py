import calendar
from datetime import date, datetime, timezone


def as_date(value: date | datetime) -> date:
    """Collapse a datetime to its calendar date; dates pass through."""
    if isinstance(value, datetime):
        return value.date()
    return value


def add_months(base: date, months: int) -> date:
    """Add calendar months, clamping the day to the end of the target month.

    2024-01-31 + 1 month is 2024-02-29, not an overflow into March.
    """
    month_index = base.month - 1 + months
    year = base.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(base.day, last_day))


def extended_end_date(current_end_date: date | None, now: date | datetime, months: int) -> date:
    """End date after extending by `months`.

    Counts forward from the later of today and the current end date, so
    extending an already expired subscription never "loses" time and
    extending a running one never shortens it.
    """
    today = as_date(now)
    base = today if current_end_date is None else max(as_date(current_end_date), today)
    return add_months(base, months)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
