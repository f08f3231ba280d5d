"""Per-request search state: step budget, cancellation token and progress sink."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional

from .config import DEFAULT_PROGRESS_INTERVAL, DEFAULT_SEARCH_STEP_LIMIT

logger = logging.getLogger("uvicorn.error")


@dataclass(frozen=True)
class SearchProgress:
    steps: int
    limit: int
    date_set_count: int


ProgressSink = Callable[[SearchProgress], None]


@dataclass
class SearchBudget:
    limit: int = DEFAULT_SEARCH_STEP_LIMIT
    steps: int = 0
    exhausted: bool = False

    def consume(self) -> bool:
        """Count one step; False once the ceiling has been exceeded."""
        self.steps += 1
        if self.steps > self.limit:
            self.exhausted = True
        return not self.exhausted


class SearchContext:
    """
    Threaded through every search stage of a single request.

    Only the search loop mutates the budget; the cancel event is the one
    thing another thread may touch.
    """

    def __init__(
        self,
        budget: Optional[SearchBudget] = None,
        cancel_event: Optional[threading.Event] = None,
        on_progress: Optional[ProgressSink] = None,
        progress_interval: int = DEFAULT_PROGRESS_INTERVAL,
    ) -> None:
        self.budget = budget or SearchBudget()
        self.cancel_event = cancel_event or threading.Event()
        self.on_progress = on_progress
        self.progress_interval = max(1, int(progress_interval))
        self.date_set_count = 0

    @property
    def steps(self) -> int:
        return self.budget.steps

    @property
    def limit(self) -> int:
        return self.budget.limit

    @property
    def aborted(self) -> bool:
        return self.budget.exhausted

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    @property
    def stopped(self) -> bool:
        return self.aborted or self.cancelled

    def step(self) -> bool:
        """Record one branch decision. Returns False when the search must stop."""
        if self.stopped:
            return False
        if not self.budget.consume():
            return False
        if self.on_progress is not None and self.budget.steps % self.progress_interval == 0:
            self._emit_progress()
        return not self.cancelled

    def snapshot(self) -> SearchProgress:
        return SearchProgress(steps=self.steps, limit=self.limit, date_set_count=self.date_set_count)

    def _emit_progress(self) -> None:
        try:
            self.on_progress(self.snapshot())
        except Exception as exc:  # pragma: no cover - sink failures must not change results
            logger.warning("search.progress.sink_failed steps=%s error=%s", self.steps, exc)


__all__ = ["ProgressSink", "SearchBudget", "SearchContext", "SearchProgress"]
