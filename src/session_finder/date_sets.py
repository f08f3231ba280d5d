"""Capacity-bounded enumeration of calendar day subsets."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Sequence, Set, Tuple

from .context import SearchContext
from .models import DateSet, Day, DayHours

logger = logging.getLogger("uvicorn.error")


@dataclass(frozen=True)
class DateSetSearchResult:
    date_sets: List[DateSet]
    aborted: bool


def is_strict_subset(small: Sequence[int], big: Sequence[int]) -> bool:
    """Merge-walk over two ascending date-key sequences."""
    if len(small) >= len(big):
        return False
    i = 0
    j = 0
    while i < len(small) and j < len(big):
        if small[i] == big[j]:
            i += 1
            j += 1
        elif small[i] > big[j]:
            j += 1
        else:
            return False
    return i == len(small)


def _is_index_contiguous(chosen: Sequence[int]) -> bool:
    return all(chosen[t] == chosen[t - 1] + 1 for t in range(1, len(chosen)))


def find_date_sets(
    days: Sequence[Day],
    required_hours: int,
    hours: DayHours,
    context: SearchContext,
) -> DateSetSearchResult:
    """
    Collect every minimal set of days whose capacity reaches ``required_hours``.

    For each start offset the suffix of the calendar from that offset is a
    window whose subsets are explored by include/exclude backtracking. A
    branch is pruned when even the whole remaining window cannot reach the
    requirement, and stops as soon as the requirement is met. Every branch
    decision costs one step of the shared budget; once the budget runs out
    the sets found so far are kept and the result is flagged as aborted.

    Args:
        days: Calendar days, in any order.
        required_hours: Quota to reach, must be positive.
        hours: Capacity per day classification.
        context: Budget, cancellation and progress for this request.

    Returns:
        Minimal, duplicate-free date-sets plus the aborted flag.
    """
    ordered = sorted(days, key=lambda d: d.date_key)
    caps = [hours.capacity(day) for day in ordered]
    n = len(ordered)

    recorded: List[Tuple[Tuple[int, ...], DateSet]] = []
    seen: Set[Tuple[int, ...]] = set()

    for start in range(n):
        if context.stopped:
            break

        # suffix[k] = capacity still obtainable from position k to the end
        suffix = [0] * (n - start + 1)
        for k in range(n - 1, start - 1, -1):
            suffix[k - start] = suffix[k - start + 1] + caps[k]

        def backtrack(pos: int, chosen: List[int], cap_so_far: int) -> None:
            if not context.step():
                return

            if cap_so_far >= required_hours:
                if not chosen:
                    return
                keys = tuple(ordered[idx].date_key for idx in chosen)
                if keys in seen:
                    return
                seen.add(keys)
                date_set = DateSet(
                    days=tuple(ordered[idx] for idx in chosen),
                    is_contiguous=_is_index_contiguous(chosen),
                    capacity=cap_so_far,
                )
                recorded.append((keys, date_set))
                context.date_set_count = len(recorded)
                return

            if pos >= n:
                return
            if cap_so_far + suffix[pos - start] < required_hours:
                return

            chosen.append(pos)
            backtrack(pos + 1, chosen, cap_so_far + caps[pos])
            chosen.pop()
            if context.stopped:
                return

            backtrack(pos + 1, chosen, cap_so_far)

        backtrack(start, [], 0)

    if context.aborted:
        logger.info(
            "search.date_sets.aborted steps=%s limit=%s recorded=%s",
            context.steps,
            context.limit,
            len(recorded),
        )

    minimal = _drop_supersets(recorded)
    return DateSetSearchResult(date_sets=minimal, aborted=context.aborted)


def _drop_supersets(recorded: List[Tuple[Tuple[int, ...], DateSet]]) -> List[DateSet]:
    final: List[DateSet] = []
    for i, (keys_i, date_set) in enumerate(recorded):
        dominated = False
        for j, (keys_j, _) in enumerate(recorded):
            if i == j:
                continue
            if is_strict_subset(keys_j, keys_i):
                dominated = True
                break
        if not dominated:
            final.append(date_set)
    return final


__all__ = ["DateSetSearchResult", "find_date_sets", "is_strict_subset"]
