from __future__ import annotations

from typing import Any, Dict, List

from .models import Candidate, Day
from .search_runner import SearchOptions, SearchOutcome


def day_to_dict(day: Day) -> Dict[str, Any]:
    return {
        "date_key": day.date_key,
        "label": day.label,
        "day_type": day.day_type.value,
    }


def candidate_to_dict(candidate: Candidate) -> Dict[str, Any]:
    row: Dict[str, Any] = {
        "variant": candidate.variant,
        "days": [day_to_dict(day) for day in candidate.days],
        "lead": list(candidate.lead),
        "uses_maybe": candidate.uses_maybe,
        "is_contiguous": candidate.is_contiguous,
        "capacity": candidate.date_set.capacity,
    }
    if candidate.slots is not None:
        row["slots"] = [{"label": label, "name": name} for label, name in candidate.slots]
    else:
        row["group"] = list(candidate.group or ())
    return row


def format_search_response(outcome: SearchOutcome, opts: SearchOptions) -> Dict[str, Any]:
    results: List[Dict[str, Any]] = [candidate_to_dict(c) for c in outcome.candidates]
    return {
        "status": outcome.status,
        "aborted": outcome.aborted,
        "cancelled": outcome.cancelled,
        "sort_mode": opts.sort_mode.value,
        "steps": outcome.steps,
        "step_limit": outcome.step_limit,
        "date_set_count": outcome.date_set_count,
        "elapsed_ms": int(outcome.elapsed_sec * 1000),
        "results": results,
        "num_results": len(results),
    }


__all__ = ["candidate_to_dict", "day_to_dict", "format_search_response"]
