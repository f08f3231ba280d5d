from __future__ import annotations

import pytest

from session_finder.models import DayHours
from tests.utils import A, X, make_day


@pytest.fixture
def hours():
    return DayHours(weekday_hours=3, holiday_hours=15)


@pytest.fixture
def worked_calendar():
    """D1, D2 weekdays (3h each), D3 holiday (15h); Bob cannot make D3."""
    return [
        make_day(301, label="D1", Alice=A, Bob=A, Carol=A),
        make_day(302, label="D2", Alice=A, Bob=A, Carol=A),
        make_day(303, holiday=True, label="D3", Alice=A, Bob=X, Carol=A),
    ]
