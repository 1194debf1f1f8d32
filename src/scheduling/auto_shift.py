from __future__ import annotations

import logging
from typing import Iterable

from dayshift.models import Flexibility, ScheduleBlock, ShiftResult
from scheduling.conflicts import find_conflicts, sort_by_start
from scheduling.suggestions import build_suggestions

logger = logging.getLogger(__name__)


def apply_late(
    blocks: Iterable[ScheduleBlock],
    late_block_id: str,
    actual_end_minute: int,
) -> ShiftResult:
    """
    Model "block ``late_block_id`` ran until ``actual_end_minute``".

    The late block is stretched to the real end and every later block is pushed
    by the overrun, up to (not including) the first fixed block. Fixed blocks
    and everything behind them stay put; whatever overlaps as a result is
    reported as conflicts with suggestions, never resolved here.

    Returns a new snapshot; the input blocks are not modified. An unknown id or
    a block that finished on time yields the sorted input unchanged.
    """
    ordered = sort_by_start(blocks)

    idx = next((i for i, b in enumerate(ordered) if b.id == late_block_id), None)
    if idx is None:
        logger.debug(f"Late block {late_block_id} not in schedule, nothing to shift")
        return ShiftResult(blocks=ordered)

    late = ordered[idx]
    overrun = max(0, actual_end_minute - late.end_minute)
    if overrun == 0:
        logger.debug(f"Block {late_block_id} ended on time, nothing to shift")
        return ShiftResult(blocks=ordered)

    shifted = list(ordered)
    shifted[idx] = late.model_copy(
        update={"duration_minutes": max(1, actual_end_minute - late.start_minute)}
    )

    moved = 0
    for i in range(idx + 1, len(shifted)):
        block = shifted[i]
        if block.flexibility == Flexibility.FIXED:
            break
        shifted[i] = block.model_copy(update={"start_minute": block.start_minute + overrun})
        moved += 1

    shifted = sort_by_start(shifted)
    conflicts = find_conflicts(shifted)
    suggestions = build_suggestions(shifted, conflicts)

    logger.debug(
        f"Applied {overrun} min overrun from {late_block_id}: "
        f"{moved} blocks shifted, {len(conflicts)} conflicts"
    )
    return ShiftResult(
        blocks=shifted,
        applied_overrun_minutes=overrun,
        conflicts=conflicts,
        suggestions=suggestions,
    )
