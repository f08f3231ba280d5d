from __future__ import annotations

import logging
import queue
import threading
import time
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from .context import SearchContext, SearchProgress
from .schemas import ErrorMessage, ProgressMessage, ResultMessage
from .search_runner import SearchOptions, SearchRunner, runner, validate_search_options
from .search_utils import format_search_response

logger = logging.getLogger("uvicorn.error")


class SearchStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self not in (SearchStatus.IDLE, SearchStatus.RUNNING)


@dataclass
class SearchRunRecord:
    id: str
    status: SearchStatus
    created_at: float
    step_limit: int
    started_at: Optional[float] = None
    finished_at: Optional[float] = None
    steps: int = 0
    date_set_count: int = 0
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class SearchController:
    """
    Runs one search at a time off the caller's thread.

    Each request id owns its own budget and cancel event. Starting a new
    request supersedes the active one: the old run is told to stop and no
    further messages are published for it. Messages (progress, result,
    error) go to every subscriber queue.
    """

    def __init__(self, search_runner: Optional[SearchRunner] = None, max_workers: int = 1) -> None:
        self._runner = search_runner or runner
        self._runs: Dict[str, SearchRunRecord] = {}
        self._contexts: Dict[str, SearchContext] = {}
        self._futures: Dict[str, Future] = {}
        self._subscribers: List[queue.Queue] = []
        self._active_request_id: Optional[str] = None
        self._lock = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="search")

    @property
    def active_request_id(self) -> Optional[str]:
        with self._lock:
            return self._active_request_id

    def subscribe(self) -> queue.Queue:
        q: queue.Queue = queue.Queue()
        with self._lock:
            self._subscribers.append(q)
        return q

    def unsubscribe(self, q: queue.Queue) -> None:
        with self._lock:
            if q in self._subscribers:
                self._subscribers.remove(q)

    def start(self, options: SearchOptions, request_id: Optional[str] = None) -> SearchRunRecord:
        validate_search_options(options)
        request_id = request_id or uuid.uuid4().hex[:12]

        with self._lock:
            if request_id in self._runs:
                raise ValueError(f"Request id '{request_id}' has already been used")
            previous = self._active_request_id
            if previous is not None and previous in self._contexts:
                self._contexts[previous].cancel_event.set()
                logger.info("search.controller.superseded request_id=%s by=%s", previous, request_id)

            context = self._runner.build_context(
                options,
                cancel_event=threading.Event(),
                on_progress=lambda progress: self._on_progress(request_id, progress),
            )
            record = SearchRunRecord(
                id=request_id,
                status=SearchStatus.IDLE,
                created_at=time.time(),
                step_limit=context.limit,
                metadata={
                    "variant": "slots" if options.uses_slots else "group",
                    "days": len(options.days),
                    "required_hours": options.required_hours,
                },
            )
            self._runs[request_id] = record
            self._contexts[request_id] = context
            self._active_request_id = request_id
            self._futures[request_id] = self._executor.submit(self._execute, request_id, options, context)

        logger.info("search.controller.start request_id=%s step_limit=%s", request_id, context.limit)
        return record

    def cancel(self, request_id: str) -> bool:
        with self._lock:
            if request_id != self._active_request_id:
                logger.info("search.controller.cancel_ignored request_id=%s active=%s", request_id, self._active_request_id)
                return False
            context = self._contexts.get(request_id)
            record = self._runs.get(request_id)
            if context is None or record is None or record.status.is_terminal:
                return False
            context.cancel_event.set()
        logger.info("search.controller.cancel request_id=%s", request_id)
        return True

    def get(self, request_id: str) -> Optional[SearchRunRecord]:
        with self._lock:
            record = self._runs.get(request_id)
            if record is not None and record.status == SearchStatus.RUNNING:
                context = self._contexts.get(request_id)
                if context is not None:
                    record.steps = context.steps
                    record.date_set_count = context.date_set_count
            return record

    def list_runs(self) -> Dict[str, SearchRunRecord]:
        with self._lock:
            return dict(self._runs)

    def wait(self, request_id: str, timeout: Optional[float] = None) -> Optional[SearchRunRecord]:
        """Block until the run has finished; mainly for scripts and tests."""
        with self._lock:
            future = self._futures.get(request_id)
        if future is not None:
            future.result(timeout=timeout)
        return self.get(request_id)

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            for context in self._contexts.values():
                context.cancel_event.set()
        self._executor.shutdown(wait=wait)

    def _is_active(self, request_id: str) -> bool:
        with self._lock:
            return request_id == self._active_request_id

    def _publish(self, request_id: str, message: BaseModel) -> None:
        if not self._is_active(request_id):
            return
        with self._lock:
            subscribers = list(self._subscribers)
        for q in subscribers:
            q.put(message)

    def _on_progress(self, request_id: str, progress: SearchProgress) -> None:
        context = self._contexts.get(request_id)
        if context is None or context.cancelled:
            return
        self._publish(
            request_id,
            ProgressMessage(
                request_id=request_id,
                steps=progress.steps,
                limit=progress.limit,
                date_set_count=progress.date_set_count,
            ),
        )

    def _execute(self, request_id: str, options: SearchOptions, context: SearchContext) -> None:
        try:
            self._run(request_id, options, context)
        finally:
            self._release(request_id)

    def _release(self, request_id: str) -> None:
        # finished runs keep only their record
        with self._lock:
            self._contexts.pop(request_id, None)
            self._futures.pop(request_id, None)

    def _run(self, request_id: str, options: SearchOptions, context: SearchContext) -> None:
        with self._lock:
            record = self._runs[request_id]
            cancelled_before_start = context.cancelled
            if cancelled_before_start:
                record.status = SearchStatus.CANCELLED
                record.finished_at = time.time()
            else:
                record.status = SearchStatus.RUNNING
                record.started_at = time.time()
        if cancelled_before_start:
            # aborted only ever reports budget exhaustion; a cancel never sets it
            self._publish(request_id, ResultMessage(request_id=request_id, results=[], aborted=False, cancelled=True))
            return

        try:
            outcome = self._runner.solve(options, context=context)
            payload = format_search_response(outcome, options)
        except Exception as exc:
            logger.exception("search.controller.failed request_id=%s error=%s", request_id, exc)
            message = str(exc) or exc.__class__.__name__
            with self._lock:
                record.status = SearchStatus.FAILED
                record.error = message
                record.steps = context.steps
                record.date_set_count = context.date_set_count
                record.finished_at = time.time()
            self._publish(request_id, ErrorMessage(request_id=request_id, message=message))
            return

        with self._lock:
            record.status = SearchStatus(outcome.status)
            record.result = payload
            record.steps = outcome.steps
            record.date_set_count = outcome.date_set_count
            record.finished_at = time.time()
        logger.info(
            "search.controller.finished request_id=%s status=%s results=%s",
            request_id,
            outcome.status,
            len(outcome.candidates),
        )
        # aborted and cancelled are independent: a cancelled run keeps the budget state it saw
        self._publish(
            request_id,
            ResultMessage(
                request_id=request_id,
                results=payload["results"],
                aborted=outcome.aborted,
                cancelled=outcome.cancelled,
            ),
        )


search_controller = SearchController(max_workers=int(runner.settings.get("max_workers", 1)))

__all__ = ["SearchController", "SearchRunRecord", "SearchStatus", "search_controller"]
