from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .assignments import find_group_candidates, find_slot_candidates
from .config import DEFAULT_MAX_RESULTS, get_settings
from .context import ProgressSink, SearchBudget, SearchContext
from .date_sets import find_date_sets
from .models import Candidate, Day, DayHours, RoleSlot, SortMode
from .ranking import rank_candidates

logger = logging.getLogger("uvicorn.error")

STATUS_COMPLETED = "completed"
STATUS_ABORTED = "aborted"
STATUS_CANCELLED = "cancelled"


class InvalidSearchOptions(ValueError):
    """Raised before a search starts when the request cannot be searched."""


@dataclass
class SearchOptions:
    days: Sequence[Day]
    lead: Sequence[str]
    required_hours: int
    pool: Optional[Sequence[str]] = None
    group_size: Optional[int] = None
    role_slots: Optional[Sequence[RoleSlot]] = None
    allow_maybe: bool = True
    max_results: Optional[int] = DEFAULT_MAX_RESULTS  # None means unbounded
    step_limit: Optional[int] = None  # None falls back to settings
    hours: DayHours = field(default_factory=DayHours)
    sort_mode: SortMode = SortMode.HOLIDAY_FIRST

    @property
    def uses_slots(self) -> bool:
        return self.role_slots is not None


@dataclass
class SearchOutcome:
    status: str
    candidates: List[Candidate]
    aborted: bool
    cancelled: bool
    steps: int
    step_limit: int
    date_set_count: int
    elapsed_sec: float = 0.0


def _duplicates(values: Sequence[Any]) -> List[Any]:
    seen = set()
    dupes = []
    for value in values:
        if value in seen and value not in dupes:
            dupes.append(value)
        seen.add(value)
    return dupes


def _lead_overlap(lead: Sequence[str], names: Sequence[str]) -> List[str]:
    lead_names = set(lead)
    return [name for name in names if name in lead_names]


def validate_search_options(opts: SearchOptions) -> None:
    """Reject requests the search engine is not meant to see."""
    if opts.required_hours is None or opts.required_hours <= 0:
        raise InvalidSearchOptions("required_hours must be a positive number")
    if opts.hours.weekday_hours <= 0 or opts.hours.holiday_hours <= 0:
        raise InvalidSearchOptions("weekday_hours and holiday_hours must be positive")
    if opts.max_results is not None and opts.max_results <= 0:
        raise InvalidSearchOptions("max_results must be positive or omitted for no limit")
    if opts.step_limit is not None and opts.step_limit <= 0:
        raise InvalidSearchOptions("step_limit must be positive")

    dup_keys = _duplicates([day.date_key for day in opts.days])
    if dup_keys:
        raise InvalidSearchOptions(f"Calendar contains duplicate date keys: {dup_keys}")
    dup_lead = _duplicates(list(opts.lead))
    if dup_lead:
        raise InvalidSearchOptions(f"Lead role lists participants more than once: {dup_lead}")

    has_group = opts.pool is not None or opts.group_size is not None
    if has_group == opts.uses_slots:
        raise InvalidSearchOptions("Configure either pool with group_size or role_slots, not both")

    if has_group:
        pool = list(opts.pool or [])
        if _duplicates(pool):
            raise InvalidSearchOptions(f"Pool lists participants more than once: {_duplicates(pool)}")
        overlap = _lead_overlap(opts.lead, pool)
        if overlap:
            raise InvalidSearchOptions(f"Pool must not list lead participants: {overlap}")
        if opts.group_size is None or not 1 <= opts.group_size <= len(pool):
            raise InvalidSearchOptions(f"group_size must be between 1 and the pool size ({len(pool)})")
        return

    slots = list(opts.role_slots or [])
    if not slots:
        raise InvalidSearchOptions("role_slots must contain at least one slot")
    dup_labels = _duplicates([slot.label for slot in slots])
    if dup_labels:
        raise InvalidSearchOptions(f"Role slot labels must be unique: {dup_labels}")
    for slot in slots:
        if not slot.candidates:
            raise InvalidSearchOptions(f"Role slot '{slot.label}' has no candidates")
        overlap = _lead_overlap(opts.lead, slot.candidates)
        if overlap:
            raise InvalidSearchOptions(f"Role slot '{slot.label}' must not list lead participants: {overlap}")


class SearchRunner:
    def __init__(self, settings: Optional[Dict[str, Any]] = None) -> None:
        self._settings = settings if settings is not None else get_settings()

    @property
    def settings(self) -> Dict[str, Any]:
        return self._settings

    def build_context(
        self,
        opts: SearchOptions,
        cancel_event: Optional[threading.Event] = None,
        on_progress: Optional[ProgressSink] = None,
    ) -> SearchContext:
        limit = opts.step_limit or int(self._settings["step_limit"])
        return SearchContext(
            budget=SearchBudget(limit=limit),
            cancel_event=cancel_event,
            on_progress=on_progress,
            progress_interval=int(self._settings["progress_interval"]),
        )

    def solve(
        self,
        opts: SearchOptions,
        cancel_event: Optional[threading.Event] = None,
        on_progress: Optional[ProgressSink] = None,
        context: Optional[SearchContext] = None,
    ) -> SearchOutcome:
        ctx = context or self.build_context(opts, cancel_event=cancel_event, on_progress=on_progress)
        start_wall = time.monotonic()
        logger.info(
            "search.run.start days=%s lead=%s required_hours=%s variant=%s step_limit=%s max_results=%s allow_maybe=%s",
            len(opts.days),
            len(opts.lead),
            opts.required_hours,
            "slots" if opts.uses_slots else "group",
            ctx.limit,
            opts.max_results,
            opts.allow_maybe,
        )

        date_search = find_date_sets(opts.days, opts.required_hours, opts.hours, ctx)
        logger.info(
            "search.run.date_sets found=%s aborted=%s steps=%s",
            len(date_search.date_sets),
            date_search.aborted,
            ctx.steps,
        )

        candidates: List[Candidate] = []
        if not ctx.cancelled:
            if opts.uses_slots:
                candidates = find_slot_candidates(
                    date_search.date_sets,
                    opts.lead,
                    opts.role_slots or [],
                    opts.allow_maybe,
                    opts.max_results,
                    ctx,
                )
            else:
                candidates = find_group_candidates(
                    date_search.date_sets,
                    opts.lead,
                    opts.pool or [],
                    int(opts.group_size or 0),
                    opts.allow_maybe,
                    opts.max_results,
                    ctx,
                )

        elapsed = time.monotonic() - start_wall
        if ctx.cancelled:
            logger.info("search.run.cancelled steps=%s elapsed=%.3fs", ctx.steps, elapsed)
            # aborted mirrors the budget at the moment of cancellation, not the cancel itself
            return SearchOutcome(
                status=STATUS_CANCELLED,
                candidates=[],
                aborted=date_search.aborted,
                cancelled=True,
                steps=ctx.steps,
                step_limit=ctx.limit,
                date_set_count=len(date_search.date_sets),
                elapsed_sec=elapsed,
            )

        ranked = rank_candidates(candidates, opts.sort_mode)
        status = STATUS_ABORTED if date_search.aborted else STATUS_COMPLETED
        logger.info(
            "search.run.finished status=%s candidates=%s date_sets=%s steps=%s elapsed=%.3fs",
            status,
            len(ranked),
            len(date_search.date_sets),
            ctx.steps,
            elapsed,
        )
        return SearchOutcome(
            status=status,
            candidates=ranked,
            aborted=date_search.aborted,
            cancelled=False,
            steps=ctx.steps,
            step_limit=ctx.limit,
            date_set_count=len(date_search.date_sets),
            elapsed_sec=elapsed,
        )


runner = SearchRunner()

__all__ = [
    "InvalidSearchOptions",
    "SearchOptions",
    "SearchOutcome",
    "SearchRunner",
    "runner",
    "validate_search_options",
]
