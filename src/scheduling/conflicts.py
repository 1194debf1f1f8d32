from __future__ import annotations

from typing import Iterable, List

from dayshift.models import Conflict, ScheduleBlock, overlaps


def sort_by_start(blocks: Iterable[ScheduleBlock]) -> List[ScheduleBlock]:
    # sorted() is stable: equal starts keep their input order
    return sorted(blocks, key=lambda b: b.start_minute)


def find_conflicts(blocks: Iterable[ScheduleBlock]) -> List[Conflict]:
    """
    Return every overlapping pair, ordered by the earlier block's start.

    Sorted sweep: once a later block starts at or after block ``i`` ends, no
    block further along can overlap ``i`` either, so the inner scan stops there.
    """
    ordered = sort_by_start(blocks)
    out: List[Conflict] = []

    for i, current in enumerate(ordered):
        for other in ordered[i + 1:]:
            if other.start_minute >= current.end_minute:
                break
            if overlaps(current, other):
                out.append(Conflict(a=current, b=other))

    return out
