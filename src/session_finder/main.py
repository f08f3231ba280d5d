from __future__ import annotations

import argparse
import asyncio
import os
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .models import Candidate, DateSet, Day, DayHours, RoleSlot, SortMode
from .ranking import rank_candidates
from .schemas import (
    CandidateRecord,
    RankRequest,
    SearchPayload,
    SearchResult,
    SearchRunResponse,
    StartSearchRequest,
)
from .search_runner import InvalidSearchOptions, SearchOptions, runner, validate_search_options
from .search_tasks import SearchRunRecord, search_controller
from .search_utils import candidate_to_dict, format_search_response

app = FastAPI(title="Session Finder API", version=__version__)


def _parse_origins(value: str | None) -> list[str]:
    if not value:
        return []
    return [entry.strip() for entry in value.split(",") if entry.strip()]


def _resolve_allowed_origins() -> list[str]:
    explicit = _parse_origins(os.getenv("ALLOWED_ORIGINS"))
    if explicit:
        return explicit
    return [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]


app.add_middleware(
    CORSMiddleware,
    allow_origins=_resolve_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _options_from_payload(payload: SearchPayload) -> SearchOptions:
    days = [
        Day(
            date_key=record.date_key,
            day_type=record.day_type,
            availability=dict(record.availability),
            label=record.label,
        )
        for record in payload.days
    ]
    role_slots = None
    if payload.role_slots is not None:
        role_slots = [RoleSlot(label=slot.label, candidates=tuple(slot.candidates)) for slot in payload.role_slots]
    settings = runner.settings
    if payload.max_results == "unbounded":
        max_results = None
    elif payload.max_results is None:
        max_results = settings["max_results"]
    else:
        max_results = int(payload.max_results)
    hours = DayHours(
        weekday_hours=payload.weekday_hours or int(settings["weekday_hours"]),
        holiday_hours=payload.holiday_hours or int(settings["holiday_hours"]),
    )
    opts = SearchOptions(
        days=days,
        lead=list(payload.lead),
        required_hours=payload.required_hours,
        pool=list(payload.pool) if payload.pool is not None else None,
        group_size=payload.group_size,
        role_slots=role_slots,
        allow_maybe=payload.allow_maybe,
        max_results=max_results,
        step_limit=payload.step_limit,
        hours=hours,
        sort_mode=payload.sort_mode or SortMode(settings["sort_mode"]),
    )
    try:
        validate_search_options(opts)
    except InvalidSearchOptions as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return opts


def _candidate_from_record(record: CandidateRecord) -> Candidate:
    days = tuple(Day(date_key=d.date_key, day_type=d.day_type, label=d.label) for d in record.days)
    slots = None
    if record.slots is not None:
        slots = tuple((s.label, s.name) for s in record.slots)
    return Candidate(
        date_set=DateSet(days=days, is_contiguous=record.is_contiguous, capacity=record.capacity),
        lead=tuple(record.lead),
        uses_maybe=record.uses_maybe,
        group=tuple(record.group or ()) if slots is None else None,
        slots=slots,
    )


def _run_to_response(record: SearchRunRecord) -> SearchRunResponse:
    return SearchRunResponse(
        request_id=record.id,
        status=record.status.value,
        created_at=record.created_at,
        started_at=record.started_at,
        finished_at=record.finished_at,
        steps=record.steps,
        step_limit=record.step_limit,
        date_set_count=record.date_set_count,
        active=record.id == search_controller.active_request_id,
        error=record.error,
        result=record.result,
    )


@app.get("/health")
def health_check():
    return {
        "status": "healthy",
        "service": "session-finder",
        "version": __version__,
    }


@app.post("/api/search")
async def search(payload: SearchPayload) -> SearchResult:
    opts = _options_from_payload(payload)
    loop = asyncio.get_running_loop()
    outcome = await loop.run_in_executor(None, runner.solve, opts)
    return SearchResult(**format_search_response(outcome, opts))


@app.post("/api/search/runs")
def start_search_run(req: StartSearchRequest) -> SearchRunResponse:
    opts = _options_from_payload(req.payload)
    try:
        record = search_controller.start(opts, request_id=req.request_id)
    except ValueError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return _run_to_response(record)


@app.get("/api/search/runs")
def list_search_runs() -> Dict[str, Any]:
    runs = [_run_to_response(record) for record in search_controller.list_runs().values()]
    return {"runs": runs, "active_request_id": search_controller.active_request_id}


@app.get("/api/search/runs/{request_id}")
def read_search_run(request_id: str) -> SearchRunResponse:
    record = search_controller.get(request_id)
    if not record:
        raise HTTPException(status_code=404, detail="Run not found")
    return _run_to_response(record)


@app.post("/api/search/runs/{request_id}/cancel")
def cancel_search_run(request_id: str) -> Dict[str, Any]:
    accepted = search_controller.cancel(request_id)
    return {"request_id": request_id, "accepted": accepted}


@app.post("/api/results/rank")
def rank_results(req: RankRequest) -> Dict[str, Any]:
    candidates = [_candidate_from_record(record) for record in req.results]
    ranked: List[Dict[str, Any]] = [candidate_to_dict(c) for c in rank_candidates(candidates, req.sort_mode)]
    return {"sort_mode": req.sort_mode.value, "results": ranked, "num_results": len(ranked)}


def main(argv: Optional[List[str]] = None) -> None:
    import uvicorn

    parser = argparse.ArgumentParser(description="Serve the session finder API")
    parser.add_argument("--host", default=os.getenv("HOST", "127.0.0.1"))
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", "8000")))
    parser.add_argument("--log-level", default="info")
    args = parser.parse_args(argv)
    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level)


if __name__ == "__main__":
    main()
