"""Calendar, availability and candidate records shared by the search stages."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional, Tuple

from .config import DEFAULT_HOLIDAY_HOURS, DEFAULT_WEEKDAY_HOURS


class Availability(str, Enum):
    AVAILABLE = "available"
    MAYBE = "maybe"
    UNAVAILABLE = "unavailable"

    @classmethod
    def parse(cls, value: object) -> "Availability":
        """Accept enum values as well as the ○ / △ / × tally marks."""
        if isinstance(value, Availability):
            return value
        text = str(value or "").strip()
        if text in ("○", "◯", cls.AVAILABLE.value):
            return cls.AVAILABLE
        if text in ("△", cls.MAYBE.value):
            return cls.MAYBE
        return cls.UNAVAILABLE


class DayType(str, Enum):
    WEEKDAY = "weekday"
    HOLIDAY = "holiday"


class SortMode(str, Enum):
    HOLIDAY_FIRST = "holiday-first"
    WEEKDAY_FIRST = "weekday-first"
    BALANCED = "balanced"


@dataclass(frozen=True)
class Day:
    date_key: int
    day_type: DayType
    availability: Mapping[str, Availability] = field(default_factory=dict, hash=False)
    label: Optional[str] = None

    @property
    def is_holiday(self) -> bool:
        return self.day_type == DayType.HOLIDAY

    def symbol_for(self, name: str) -> Availability:
        return self.availability.get(name, Availability.UNAVAILABLE)


@dataclass(frozen=True)
class DayHours:
    """Hours a single day contributes, per classification."""
    weekday_hours: int = DEFAULT_WEEKDAY_HOURS
    holiday_hours: int = DEFAULT_HOLIDAY_HOURS

    def capacity(self, day: Day) -> int:
        return self.holiday_hours if day.is_holiday else self.weekday_hours


@dataclass(frozen=True)
class RoleSlot:
    label: str
    candidates: Tuple[str, ...]


@dataclass(frozen=True)
class DateSet:
    days: Tuple[Day, ...]
    is_contiguous: bool
    capacity: int

    @property
    def date_keys(self) -> Tuple[int, ...]:
        return tuple(day.date_key for day in self.days)


@dataclass(frozen=True)
class Candidate:
    """A date-set together with one concrete role assignment.

    Exactly one of ``group`` (fixed-size supporting group) or ``slots``
    (ordered ``(label, name)`` pairs, one per role slot) is set.
    """
    date_set: DateSet
    lead: Tuple[str, ...]
    uses_maybe: bool
    group: Optional[Tuple[str, ...]] = None
    slots: Optional[Tuple[Tuple[str, str], ...]] = None

    @property
    def days(self) -> Tuple[Day, ...]:
        return self.date_set.days

    @property
    def is_contiguous(self) -> bool:
        return self.date_set.is_contiguous

    @property
    def variant(self) -> str:
        return "slots" if self.slots is not None else "group"

    @property
    def members(self) -> Tuple[str, ...]:
        if self.slots is not None:
            return self.lead + tuple(name for _, name in self.slots)
        return self.lead + tuple(self.group or ())


__all__ = [
    "Availability",
    "Candidate",
    "DateSet",
    "Day",
    "DayHours",
    "DayType",
    "RoleSlot",
    "SortMode",
]
