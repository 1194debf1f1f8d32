from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from learning.keys import normalize_learn_key


class BlockKind(str, Enum):
    TASK = "task"
    EVENT = "event"
    REMINDER = "reminder"
    FOCUS = "focus"
    BREAK = "break"


class Flexibility(str, Enum):
    FIXED = "fixed"  # meetings, classes: never auto-rescheduled
    SEMI_FLEXIBLE = "semi-flexible"
    FLEXIBLE = "flexible"

    @property
    def rank(self) -> int:
        return _FLEX_RANK[self]


_FLEX_RANK = {
    Flexibility.FIXED: 0,
    Flexibility.SEMI_FLEXIBLE: 1,
    Flexibility.FLEXIBLE: 2,
}

SHORTENABLE_KINDS = frozenset({BlockKind.TASK, BlockKind.FOCUS})


def _new_block_id() -> str:
    return uuid.uuid4().hex


class ScheduleBlock(BaseModel):
    """One planned activity, positioned in minutes since midnight.

    Intervals are half-open: a block ending at 10:00 and one starting at 10:00
    do not overlap. ``start_minute`` may run past 1439 while an overrun is
    being modelled.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_block_id)
    title: str = Field(..., min_length=1)
    kind: BlockKind = BlockKind.TASK
    flexibility: Flexibility = Flexibility.FLEXIBLE

    start_minute: int
    duration_minutes: int = Field(..., ge=1)

    buffer_before_minutes: int = Field(0, ge=0)
    buffer_after_minutes: int = Field(0, ge=0)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        v2 = v.strip()
        if not v2:
            raise ValueError("title must not be blank")
        return v2

    @computed_field
    @property
    def end_minute(self) -> int:
        return self.start_minute + self.duration_minutes

    @computed_field
    @property
    def learn_key(self) -> str:
        return normalize_learn_key(self.title)

    @property
    def total_buffer_minutes(self) -> int:
        return self.buffer_before_minutes + self.buffer_after_minutes

    def overlaps(self, other: ScheduleBlock) -> bool:
        return overlaps(self, other)


def overlaps(a: ScheduleBlock, b: ScheduleBlock) -> bool:
    """True iff the half-open spans of ``a`` and ``b`` intersect."""
    return a.start_minute < b.end_minute and b.start_minute < a.end_minute


class Conflict(BaseModel):
    """Unordered pair of overlapping blocks; ``a`` is the one that starts first."""

    model_config = ConfigDict(frozen=True)

    a: ScheduleBlock
    b: ScheduleBlock

    @property
    def block_ids(self) -> frozenset:
        return frozenset({self.a.id, self.b.id})

    def involves(self, block_id: str) -> bool:
        return block_id in self.block_ids


class _SuggestionBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    block_id: str
    conflict_index: int = Field(..., ge=0)
    title: str = ""


class ShrinkBuffers(_SuggestionBase):
    kind: Literal["shrink-buffers"] = "shrink-buffers"
    minutes: int = Field(..., ge=1)


class ShortenBlock(_SuggestionBase):
    kind: Literal["shorten-block"] = "shorten-block"
    minutes: int = Field(..., ge=1)


class MoveBlock(_SuggestionBase):
    kind: Literal["move-block"] = "move-block"
    new_start_minute: int


class SpillToNextDay(_SuggestionBase):
    kind: Literal["spill-to-next-day"] = "spill-to-next-day"
    minutes: int = Field(..., ge=1)


Suggestion = Annotated[
    Union[ShrinkBuffers, ShortenBlock, MoveBlock, SpillToNextDay],
    Field(discriminator="kind"),
]


class ShiftResult(BaseModel):
    blocks: List[ScheduleBlock] = Field(default_factory=list)
    applied_overrun_minutes: int = 0
    conflicts: List[Conflict] = Field(default_factory=list)
    suggestions: List[Suggestion] = Field(default_factory=list)


class LearnStats(BaseModel):
    ewma_minutes: float
    sample_count: int = Field(0, ge=0)
    last_updated: datetime


class BackendTask(BaseModel):
    """Task as delivered by the task backend, before it becomes a block."""

    id: Optional[Union[int, str]] = None
    title: str = Field(..., min_length=1)
    notes: str = ""

    duration_minutes: int = Field(30, ge=1)
    priority: str = "medium"
    tags: Optional[str] = None

    # either an explicit start or a due timestamp; neither means 09:00
    start_minute: Optional[int] = None
    due_at: Optional[datetime] = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        v2 = v.strip()
        if not v2:
            raise ValueError("title must not be blank")
        return v2

    @field_validator("notes", mode="before")
    @classmethod
    def notes_default(cls, v):
        return "" if v is None else v
