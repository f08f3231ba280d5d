"""Session Finder - Core Package

Finds sets of calendar days that cover a required number of hours and the
participant assignments that can attend all of them.
"""

__version__ = "1.0.0"

from .assignments import check_group, find_group_candidates, find_slot_candidates
from .context import SearchBudget, SearchContext, SearchProgress
from .date_sets import find_date_sets, is_strict_subset
from .models import (
    Availability,
    Candidate,
    DateSet,
    Day,
    DayHours,
    DayType,
    RoleSlot,
    SortMode,
)
from .ranking import rank_candidates
from .search_runner import (
    InvalidSearchOptions,
    SearchOptions,
    SearchOutcome,
    SearchRunner,
    validate_search_options,
)

__all__ = [
    "Availability",
    "Candidate",
    "DateSet",
    "Day",
    "DayHours",
    "DayType",
    "InvalidSearchOptions",
    "RoleSlot",
    "SearchBudget",
    "SearchContext",
    "SearchOptions",
    "SearchOutcome",
    "SearchProgress",
    "SearchRunner",
    "SortMode",
    "check_group",
    "find_date_sets",
    "find_group_candidates",
    "find_slot_candidates",
    "is_strict_subset",
    "rank_candidates",
    "validate_search_options",
]
