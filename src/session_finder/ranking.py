"""Deterministic presentation order for search candidates."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Tuple

from .models import Candidate, SortMode


@dataclass(frozen=True)
class CandidateSummary:
    total_days: int
    num_holiday: int
    num_weekday: int
    holiday_ratio: float
    first_key: int
    last_key: int

    @property
    def span(self) -> int:
        return self.last_key - self.first_key


def summarize(candidate: Candidate) -> CandidateSummary:
    days = candidate.days
    total = len(days)
    num_holiday = sum(1 for day in days if day.is_holiday)
    return CandidateSummary(
        total_days=total,
        num_holiday=num_holiday,
        num_weekday=total - num_holiday,
        holiday_ratio=num_holiday / total if total else 0.0,
        first_key=days[0].date_key if total else 0,
        last_key=days[-1].date_key if total else 0,
    )


def _mode_key(ratio: float, mode: SortMode) -> float:
    if mode == SortMode.HOLIDAY_FIRST:
        return -ratio
    if mode == SortMode.WEEKDAY_FIRST:
        return ratio
    return abs(ratio - 0.5)


def sort_key(candidate: Candidate, mode: SortMode) -> Tuple:
    """
    Ascending key, in priority order:

    1. candidates that never rely on a maybe
    2. contiguous date-sets
    3. holiday ratio according to ``mode``
    4. shorter date-key span
    5. fewer days
    6. earlier first day
    """
    summary = summarize(candidate)
    return (
        candidate.uses_maybe,
        not candidate.is_contiguous,
        _mode_key(summary.holiday_ratio, mode),
        summary.span,
        summary.total_days,
        summary.first_key,
    )


def rank_candidates(candidates: Iterable[Candidate], mode: SortMode | str = SortMode.HOLIDAY_FIRST) -> List[Candidate]:
    # sorted() is stable, so full ties keep their search order
    mode = SortMode(mode)
    return sorted(candidates, key=lambda c: sort_key(c, mode))


__all__ = ["CandidateSummary", "rank_candidates", "sort_key", "summarize"]
