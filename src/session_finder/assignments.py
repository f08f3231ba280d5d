"""Role assignment over date-sets: fixed-size supporting groups and labeled role slots."""
from __future__ import annotations

from dataclasses import dataclass
from itertools import combinations
from typing import Iterable, List, Optional, Sequence, Set

from .context import SearchContext
from .models import Availability, Candidate, DateSet, Day, RoleSlot


@dataclass(frozen=True)
class Feasibility:
    ok: bool
    uses_maybe: bool = False


INFEASIBLE = Feasibility(ok=False)


def check_group(days: Iterable[Day], names: Iterable[str], allow_maybe: bool) -> Feasibility:
    """Every member must be free on every day; maybe counts only when allowed."""
    names = tuple(names)
    uses_maybe = False
    for day in days:
        for name in names:
            symbol = day.symbol_for(name)
            if symbol == Availability.UNAVAILABLE:
                return INFEASIBLE
            if symbol == Availability.MAYBE:
                if not allow_maybe:
                    return INFEASIBLE
                uses_maybe = True
    return Feasibility(ok=True, uses_maybe=uses_maybe)


def is_member_feasible(days: Iterable[Day], name: str, allow_maybe: bool) -> bool:
    return check_group(days, (name,), allow_maybe).ok


def _has_room(results: List[Candidate], max_results: Optional[int]) -> bool:
    return max_results is None or len(results) < max_results


def find_group_candidates(
    date_sets: Sequence[DateSet],
    lead: Sequence[str],
    pool: Sequence[str],
    group_size: int,
    allow_maybe: bool,
    max_results: Optional[int],
    context: SearchContext,
) -> List[Candidate]:
    """Pair each date-set with every feasible ``group_size`` combination of ``pool``."""
    lead = tuple(lead)
    results: List[Candidate] = []

    for date_set in date_sets:
        if not _has_room(results, max_results) or context.cancelled:
            break

        lead_check = check_group(date_set.days, lead, allow_maybe)
        if not lead_check.ok:
            continue

        for group in combinations(pool, group_size):
            if not _has_room(results, max_results) or context.cancelled:
                break
            group_check = check_group(date_set.days, lead + group, allow_maybe)
            if not group_check.ok:
                continue
            results.append(
                Candidate(
                    date_set=date_set,
                    lead=lead,
                    group=tuple(group),
                    uses_maybe=lead_check.uses_maybe or group_check.uses_maybe,
                )
            )

    return results


def find_slot_candidates(
    date_sets: Sequence[DateSet],
    lead: Sequence[str],
    role_slots: Sequence[RoleSlot],
    allow_maybe: bool,
    max_results: Optional[int],
    context: SearchContext,
) -> List[Candidate]:
    """Give every role slot one distinct assignee who is free on all days of the set."""
    lead = tuple(lead)
    results: List[Candidate] = []

    for date_set in date_sets:
        if not _has_room(results, max_results) or context.cancelled:
            break

        lead_check = check_group(date_set.days, lead, allow_maybe)
        if not lead_check.ok:
            continue

        feasible_pools = [
            [name for name in slot.candidates if is_member_feasible(date_set.days, name, allow_maybe)]
            for slot in role_slots
        ]
        if any(not pool for pool in feasible_pools):
            continue

        used: Set[str] = set()
        assignment: List[str] = []

        def backtrack(index: int) -> None:
            if not _has_room(results, max_results) or context.cancelled:
                return

            if index >= len(role_slots):
                # Slot filtering is per person; the whole group still has to hold.
                group_check = check_group(date_set.days, lead + tuple(assignment), allow_maybe)
                if not group_check.ok:
                    return
                results.append(
                    Candidate(
                        date_set=date_set,
                        lead=lead,
                        slots=tuple((slot.label, name) for slot, name in zip(role_slots, assignment)),
                        uses_maybe=lead_check.uses_maybe or group_check.uses_maybe,
                    )
                )
                return

            for name in feasible_pools[index]:
                if not _has_room(results, max_results) or context.cancelled:
                    return
                if name in used:
                    continue
                used.add(name)
                assignment.append(name)
                backtrack(index + 1)
                assignment.pop()
                used.discard(name)

        backtrack(0)

    return results


__all__ = [
    "Feasibility",
    "check_group",
    "find_group_candidates",
    "find_slot_candidates",
    "is_member_feasible",
]
