"""Named reporting periods resolved to inclusive date ranges."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Optional, Tuple

from labor_insights.utils.dates import DateLike, to_day

PERIODS = ("today", "week", "last_week", "month", "last30", "custom")


def resolve_period(
    period: str,
    today: date,
    custom: Optional[Tuple[DateLike, DateLike]] = None,
) -> Tuple[date, date]:
    """Return ``(start, end)`` for a named period relative to ``today``.

    Weeks run Sunday to Saturday. ``last30`` is a rolling window that includes
    today; ``month`` is the calendar month to date.
    """

    if period == "today":
        return today, today
    # date.weekday() is Monday=0; shift so Sunday starts the week
    days_since_sunday = (today.weekday() + 1) % 7
    if period == "week":
        return today - timedelta(days=days_since_sunday), today
    if period == "last_week":
        this_sunday = today - timedelta(days=days_since_sunday)
        return this_sunday - timedelta(days=7), this_sunday - timedelta(days=1)
    if period == "month":
        return today.replace(day=1), today
    if period == "last30":
        return today - timedelta(days=29), today
    if period == "custom":
        if custom is None:
            raise ValueError("custom period requires a (start, end) range")
        start, end = to_day(custom[0]), to_day(custom[1])
        if start > end:
            raise ValueError("custom period start must not be after its end")
        return start, end
    raise ValueError(f"Unsupported period '{period}'")
