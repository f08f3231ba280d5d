from __future__ import annotations

from session_finder.context import SearchBudget, SearchContext
from session_finder.models import Availability, Day, DayType

A = Availability.AVAILABLE
M = Availability.MAYBE
X = Availability.UNAVAILABLE


def make_day(date_key, holiday=False, label=None, **availability):
    return Day(
        date_key=date_key,
        day_type=DayType.HOLIDAY if holiday else DayType.WEEKDAY,
        availability=dict(availability),
        label=label,
    )


def make_context(limit=150000, **kwargs):
    return SearchContext(budget=SearchBudget(limit=limit), **kwargs)


def keys_of(date_sets):
    return [ds.date_keys for ds in date_sets]


def weekday_run(count, first_key=101, **availability):
    """``count`` consecutive weekdays, everyone listed available on all of them."""
    return [make_day(first_key + i, **availability) for i in range(count)]
