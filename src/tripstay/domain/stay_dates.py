"""Stay date model: calendar-day normalization and the two overlap predicates.

Dates are compared as fixed-width ``YYYY-MM-DD`` strings, which sort the same
way as the days they name. Everything entering a comparison goes through
``normalize_date`` first.

Two predicates, two product rules. They must not be merged:

- ``is_night_occupied``: half-open ``[start, end)``. ``end`` is the checkout
  morning, never an occupied night. Used for room capacity.
- ``stay_conflicts``: closed ``[start, end]`` on both sides. A person cannot
  hold two stays that touch the same calendar day, even when one ends and
  the other begins on it. Used for same-person exclusivity.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta
from typing import Iterator

from tripstay.domain.errors import InvalidDateError, ValidationError

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def normalize_date(value: date | str) -> str:
    """Return the canonical ``YYYY-MM-DD`` string for a calendar date.

    Accepts ``datetime.date`` instances and strings already in zero-padded
    ISO form that name a real day. ``datetime`` values are rejected: a stay
    boundary has no time of day.

    Raises:
        InvalidDateError: For any other representation.
    """
    if isinstance(value, datetime):
        raise InvalidDateError(value)
    if isinstance(value, date):
        return value.isoformat()
    if not isinstance(value, str) or not _ISO_DATE.match(value):
        raise InvalidDateError(value)
    try:
        date.fromisoformat(value)
    except ValueError:
        raise InvalidDateError(value) from None
    return value


def to_date(value: date | str) -> date:
    """Parse a normalized date into a ``datetime.date``."""
    return date.fromisoformat(normalize_date(value))


def validate_date_range(start: date | str, end: date | str) -> tuple[str, str]:
    """Normalize a stay range and check ``start <= end``.

    Equal values are allowed and denote a zero-night, same-day stay.

    Raises:
        InvalidDateError: If either bound is malformed.
        ValidationError: If ``start`` is after ``end``.
    """
    start_s = normalize_date(start)
    end_s = normalize_date(end)
    if start_s > end_s:
        raise ValidationError(
            f"Invalid date range: start date ({start_s}) must be on or "
            f"before end date ({end_s})"
        )
    return start_s, end_s


def is_night_occupied(start: str, end: str, night: str) -> bool:
    """True if ``night`` is a night spent in a stay checking in on ``start``
    and checking out on ``end``."""
    return start <= night < end


def stay_conflicts(a_start: str, a_end: str, b_start: str, b_end: str) -> bool:
    """True if two stays of the same person share at least one calendar day."""
    return a_start <= b_end and b_start <= a_end


def add_days(day: date | str, days: int) -> str:
    return (to_date(day) + timedelta(days=days)).isoformat()


def night_count(start: date | str, end: date | str) -> int:
    """Number of nights in ``[start, end)``; zero when the range is empty."""
    return max(0, (to_date(end) - to_date(start)).days)


def iter_nights(start: date | str, end: date | str) -> Iterator[str]:
    """Yield each night of the half-open range ``[start, end)``."""
    current = to_date(start)
    stop = to_date(end)
    one_day = timedelta(days=1)
    while current < stop:
        yield current.isoformat()
        current += one_day
