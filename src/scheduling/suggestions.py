from __future__ import annotations

import logging
from typing import Dict, List, Sequence, Tuple

from dayshift.models import (
    SHORTENABLE_KINDS,
    Conflict,
    MoveBlock,
    ScheduleBlock,
    ShortenBlock,
    ShrinkBuffers,
    SpillToNextDay,
    Suggestion,
)

logger = logging.getLogger(__name__)

MAX_BUFFER_SHRINK_MIN = 10
MAX_SHORTEN_MIN = 10
MIN_BLOCK_MIN = 5
MAX_SPILL_MIN = 30


def format_clock(minute_of_day: int) -> str:
    """12-hour clock label, e.g. 735 -> "12:15 PM". Wraps past midnight."""
    m = max(0, minute_of_day)
    hour = (m // 60) % 24
    minute = m % 60
    hour12 = (hour + 11) % 12 + 1
    return f"{hour12}:{minute:02d} {'PM' if hour >= 12 else 'AM'}"


def choose_mover(a: ScheduleBlock, b: ScheduleBlock) -> Tuple[ScheduleBlock, ScheduleBlock]:
    """Return (mover, anchor): the more flexible block moves, ties go to ``a``."""
    if a.flexibility.rank >= b.flexibility.rank:
        return a, b
    return b, a


def suggestions_for_conflict(conflict: Conflict, conflict_index: int) -> List[Suggestion]:
    mover, anchor = choose_mover(conflict.a, conflict.b)
    out: List[Suggestion] = []

    buffer_total = mover.total_buffer_minutes
    if buffer_total > 0:
        minutes = min(MAX_BUFFER_SHRINK_MIN, buffer_total)
        out.append(
            ShrinkBuffers(
                block_id=mover.id,
                conflict_index=conflict_index,
                minutes=minutes,
                title=f"Shrink buffers on “{mover.title}” by {minutes} min",
            )
        )

    if mover.kind in SHORTENABLE_KINDS and mover.duration_minutes > MIN_BLOCK_MIN:
        minutes = min(MAX_SHORTEN_MIN, mover.duration_minutes - MIN_BLOCK_MIN)
        out.append(
            ShortenBlock(
                block_id=mover.id,
                conflict_index=conflict_index,
                minutes=minutes,
                title=f"Shorten “{mover.title}” by {minutes} min",
            )
        )

    out.append(
        MoveBlock(
            block_id=mover.id,
            conflict_index=conflict_index,
            new_start_minute=anchor.end_minute,
            title=f"Move “{mover.title}” to {format_clock(anchor.end_minute)}",
        )
    )

    out.append(
        SpillToNextDay(
            block_id=mover.id,
            conflict_index=conflict_index,
            minutes=min(MAX_SPILL_MIN, mover.duration_minutes),
            title=f"Spill part of “{mover.title}” to tomorrow",
        )
    )
    return out


def build_suggestions(
    blocks: Sequence[ScheduleBlock], conflicts: Sequence[Conflict]
) -> List[Suggestion]:
    """
    Ranked, advisory remedies for each conflict, least disruptive first:
    shrink buffers, shorten, move after the anchor, spill to tomorrow.

    ``blocks`` is the day the conflicts were detected on. Remedies repeat when
    one block sits in several conflicts; see ``group_suggestions``.
    """
    out: List[Suggestion] = []
    for idx, conflict in enumerate(conflicts):
        out.extend(suggestions_for_conflict(conflict, idx))

    logger.debug(
        f"Built {len(out)} suggestions for {len(conflicts)} conflicts over {len(blocks)} blocks"
    )
    return out


def group_suggestions(suggestions: Sequence[Suggestion]) -> List[Suggestion]:
    """Collapse duplicates by (kind, block_id), keeping the first occurrence."""
    seen: Dict[Tuple[str, str], Suggestion] = {}
    for s in suggestions:
        seen.setdefault((s.kind, s.block_id), s)
    return list(seen.values())
