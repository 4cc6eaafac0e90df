from __future__ import annotations

from datetime import date

from hr_leave.exceptions import InvalidRangeError

# date.weekday(): Monday is 0, Saturday 5, Sunday 6.
_WEEKEND = frozenset({5, 6})
_WORKDAYS_PER_WEEK = 5


def count_chargeable_days(start: date, end: date) -> int:
    """Count the weekdays in the inclusive range [start, end].

    Saturdays and Sundays are never charged. Public holidays are not
    considered. Raises InvalidRangeError when start falls after end.

    Whole weeks count five days each; only the trailing partial week
    (at most six days) is walked, and no date past ``end`` is constructed.
    """
    if start > end:
        raise InvalidRangeError("start_date must not be after end_date")

    span = (end - start).days + 1
    full_weeks, remainder = divmod(span, 7)
    total_days = full_weeks * _WORKDAYS_PER_WEEK

    first_weekday = start.weekday()
    for offset in range(remainder):
        if (first_weekday + offset) % 7 not in _WEEKEND:
            total_days += 1

    return total_days
