"""Date range checks run before every analytics query."""

from datetime import datetime, timedelta, timezone
from typing import Optional

from sales_tracker.errors import InvalidDateRange, MissingParameter, PeriodTooLarge

DEFAULT_MAX_RANGE = timedelta(days=365)


def to_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime; naive values are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def validate_range(
    start: Optional[datetime],
    end: Optional[datetime],
    max_range: timedelta = DEFAULT_MAX_RANGE,
) -> None:
    """Reject missing, inverted or oversized ranges.

    Both bounds are inclusive, so ``start == end`` is a valid one-instant range.
    """
    if start is None or end is None:
        raise MissingParameter("both 'from' and 'to' are required")

    start, end = to_utc(start), to_utc(end)
    if start > end:
        raise InvalidDateRange("'from' must not be after 'to'")
    if end - start > max_range:
        raise PeriodTooLarge(
            f"date range exceeds maximum allowed period of {max_range.days} days"
        )
