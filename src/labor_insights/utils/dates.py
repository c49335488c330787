"""Calendar helpers shared by partition keys, staleness and queries."""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Union

from labor_insights.domain.exceptions import InvalidDateError

DateLike = Union[date, datetime, str]

_ISO_DAY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def to_day(value: DateLike) -> date:
    """Return the calendar day for a date, datetime or strict YYYY-MM-DD string."""

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not _ISO_DAY.match(text):
            raise InvalidDateError(
                "Date must be formatted as YYYY-MM-DD", context={"value": value}
            )
        try:
            return date.fromisoformat(text)
        except ValueError as exc:
            raise InvalidDateError(
                "Date is not a valid calendar day", context={"value": value}
            ) from exc
    raise InvalidDateError(
        "Unsupported date type", context={"type": type(value).__name__}
    )


def normalize_date(value: DateLike) -> str:
    return to_day(value).isoformat()


def local_now() -> datetime:
    """Timezone-aware wall-clock time in the local zone."""

    return datetime.now().astimezone()


def ensure_aware(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.astimezone()
    return moment

