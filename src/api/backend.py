from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from dayshift.models import (
    Conflict,
    MoveBlock,
    ScheduleBlock,
    ShiftResult,
    ShortenBlock,
    ShrinkBuffers,
    SpillToNextDay,
    Suggestion,
)
from learning.duration_store import (
    MIN_SUGGEST_DELTA_MIN,
    DurationLearningStore,
    suggested_duration,
)
from scheduling.auto_shift import apply_late
from scheduling.conflicts import find_conflicts, sort_by_start
from scheduling.suggestions import MIN_BLOCK_MIN, build_suggestions

logger = logging.getLogger(__name__)


class BlockNotFoundError(LookupError):
    def __init__(self, block_id: str):
        super().__init__(f"block {block_id} not found")
        self.block_id = block_id


@dataclass
class DayOverview:
    blocks: List[ScheduleBlock]
    conflicts: List[Conflict]
    suggestions: List[Suggestion]
    suggested_durations: Dict[str, int] = field(default_factory=dict)


@dataclass
class AppliedSuggestion:
    blocks: List[ScheduleBlock]
    conflicts: List[Conflict]
    # part of the block carried over to the next day, if any
    spilled: Optional[ScheduleBlock] = None


def _replace(blocks: Sequence[ScheduleBlock], updated: ScheduleBlock) -> List[ScheduleBlock]:
    return [updated if b.id == updated.id else b for b in blocks]


def _find(blocks: Sequence[ScheduleBlock], block_id: str) -> ScheduleBlock:
    for b in blocks:
        if b.id == block_id:
            return b
    raise BlockNotFoundError(block_id)


class BackendAPI:
    """Caller side of the engine: owns what to do with shifts, suggestions and learning."""

    def __init__(self, suggest_min_delta: int = MIN_SUGGEST_DELTA_MIN):
        self.suggest_min_delta = suggest_min_delta

    def overview(
        self,
        blocks: Sequence[ScheduleBlock],
        store: Optional[DurationLearningStore] = None,
    ) -> DayOverview:
        ordered = sort_by_start(blocks)
        conflicts = find_conflicts(ordered)
        out = DayOverview(
            blocks=ordered,
            conflicts=conflicts,
            suggestions=build_suggestions(ordered, conflicts),
        )
        if store is not None:
            for b in ordered:
                minutes = suggested_duration(store, b, self.suggest_min_delta)
                if minutes is not None:
                    out.suggested_durations[b.id] = minutes
        return out

    def ran_late(
        self,
        blocks: Sequence[ScheduleBlock],
        late_block_id: str,
        actual_end_minute: int,
    ) -> ShiftResult:
        result = apply_late(blocks, late_block_id, actual_end_minute)
        logger.info(
            f"Late shift for {late_block_id}: overrun {result.applied_overrun_minutes} min, "
            f"{len(result.conflicts)} conflicts, {len(result.suggestions)} suggestions"
        )
        return result

    def apply_suggestion(
        self, blocks: Sequence[ScheduleBlock], suggestion: Suggestion
    ) -> AppliedSuggestion:
        """
        Apply one suggestion to a day and re-detect conflicts.

        Buffers shrink from the after-side first. A spill shortens the block by
        the spilled minutes and returns that part as a new block for tomorrow;
        spilling the whole block removes it from today.
        """
        target = _find(blocks, suggestion.block_id)
        spilled: Optional[ScheduleBlock] = None

        if isinstance(suggestion, ShrinkBuffers):
            after_cut = min(target.buffer_after_minutes, suggestion.minutes)
            before_cut = min(target.buffer_before_minutes, suggestion.minutes - after_cut)
            updated = _replace(
                blocks,
                target.model_copy(
                    update={
                        "buffer_after_minutes": target.buffer_after_minutes - after_cut,
                        "buffer_before_minutes": target.buffer_before_minutes - before_cut,
                    }
                ),
            )
        elif isinstance(suggestion, ShortenBlock):
            updated = _replace(
                blocks,
                target.model_copy(
                    update={
                        "duration_minutes": max(
                            min(target.duration_minutes, MIN_BLOCK_MIN),
                            target.duration_minutes - suggestion.minutes,
                        )
                    }
                ),
            )
        elif isinstance(suggestion, MoveBlock):
            updated = _replace(
                blocks, target.model_copy(update={"start_minute": suggestion.new_start_minute})
            )
        elif isinstance(suggestion, SpillToNextDay):
            moved = min(suggestion.minutes, target.duration_minutes)
            spilled = ScheduleBlock(
                id=f"{target.id}-spill",
                title=target.title,
                kind=target.kind,
                flexibility=target.flexibility,
                start_minute=target.start_minute,
                duration_minutes=moved,
            )
            remaining = target.duration_minutes - moved
            if remaining > 0:
                updated = _replace(
                    blocks, target.model_copy(update={"duration_minutes": remaining})
                )
            else:
                updated = [b for b in blocks if b.id != target.id]
        else:
            raise TypeError(f"unsupported suggestion: {suggestion!r}")

        ordered = sort_by_start(updated)
        logger.info(f"Applied {suggestion.kind} to {target.id}")
        return AppliedSuggestion(
            blocks=ordered,
            conflicts=find_conflicts(ordered),
            spilled=spilled,
        )

    def carry_over(
        self, next_day: Sequence[ScheduleBlock], spilled: ScheduleBlock
    ) -> List[ScheduleBlock]:
        """Add a spilled block to the next day, merging into an earlier spill of the same block."""
        for existing in next_day:
            if existing.id == spilled.id:
                merged = existing.model_copy(
                    update={
                        "duration_minutes": existing.duration_minutes + spilled.duration_minutes
                    }
                )
                return _replace(next_day, merged)
        return list(next_day) + [spilled]

    def apply_suggested_duration(
        self,
        blocks: Sequence[ScheduleBlock],
        block_id: str,
        store: DurationLearningStore,
    ) -> List[ScheduleBlock]:
        """Resize a block to its learned duration; unchanged if there is nothing to suggest."""
        target = _find(blocks, block_id)
        minutes = suggested_duration(store, target, self.suggest_min_delta)
        if minutes is None:
            return list(blocks)
        return _replace(blocks, target.model_copy(update={"duration_minutes": minutes}))
