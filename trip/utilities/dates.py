"""Calendar helpers: day-key derivation, month navigation and month grid days.

The day key is the single identifier of a plan: local calendar year, month and
day, zero padded and joined with hyphens (``2024-07-04``). Every component
derives keys through :func:`key_of` so the grid, the store and the report
agree on the same day.
"""
from __future__ import annotations
import calendar
import re
from datetime import date, datetime, timedelta
from typing import Iterator, List, Union

from trip.utilities.constants import DATE_KEY_PATTERN
from trip.utilities.errors import ValidationFailure

DateLike = Union[date, datetime]

_KEY_RE = re.compile(DATE_KEY_PATTERN)
_FIRST_MONTH_INDEX = date.min.year * 12
_LAST_MONTH_INDEX = date.max.year * 12 + 11


def local_date(day: DateLike) -> date:
    """Calendar date of ``day`` in local time.

    Aware datetimes are converted to the local zone first; naive datetimes
    are taken as local already.
    """
    if isinstance(day, datetime):
        if day.tzinfo is not None:
            day = day.astimezone()
        return day.date()
    if isinstance(day, date):
        return day
    raise ValidationFailure(f"Not a calendar date: {day!r}")


def key_of(day: DateLike) -> str:
    d = local_date(day)
    return f"{d.year:04d}-{d.month:02d}-{d.day:02d}"


def date_from_key(key: str) -> date:
    """Inverse of :func:`key_of`; raises ValidationFailure on malformed keys."""
    match = _KEY_RE.match(key or "") if isinstance(key, str) else None
    if not match:
        raise ValidationFailure(f"Invalid date key: {key!r}")
    year, month, day = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError as e:
        raise ValidationFailure(f"Invalid date key: {key!r} ({e})", cause=e) from e


def is_valid_key(key: str) -> bool:
    try:
        date_from_key(key)
    except ValidationFailure:
        return False
    return True


def first_of_month(day: DateLike) -> date:
    d = local_date(day)
    return d.replace(day=1)


def shift_month(month: date, delta: int) -> date:
    """First day of the month ``delta`` months away from ``month``.

    Clamped to the months ``date`` can represent (January 1 .. December 9999).
    """
    index = month.year * 12 + (month.month - 1) + delta
    index = max(_FIRST_MONTH_INDEX, min(index, _LAST_MONTH_INDEX))
    return date(index // 12, index % 12 + 1, 1)


def days_in_month(month: date) -> List[date]:
    count = calendar.monthrange(month.year, month.month)[1]
    return [date(month.year, month.month, n) for n in range(1, count + 1)]


def leading_blanks(month: date) -> int:
    """Empty grid cells before the 1st, for a Sunday-first week."""
    # date.weekday(): Monday=0 .. Sunday=6
    return (first_of_month(month).weekday() + 1) % 7


def iter_days(start: date, end: date) -> Iterator[date]:
    """Every calendar day in the inclusive range (empty if end < start)."""
    if end < start:
        return
    current = start
    while True:
        yield current
        if current == end:
            break
        current += timedelta(days=1)


__all__ = [
    'local_date', 'key_of', 'date_from_key', 'is_valid_key', 'first_of_month',
    'shift_month', 'days_in_month', 'leading_blanks', 'iter_days'
]
