import logging
import time
from datetime import datetime, timedelta
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from api import state
from api.backend import BackendAPI, BlockNotFoundError
from api.dependencies import get_backend, get_learning_store
from api.metrics import (
    CONFLICTS_DETECTED_TOTAL,
    LATE_SHIFTS_TOTAL,
    REQUESTS_TOTAL,
    REQUEST_LATENCY_SECONDS,
    SUGGESTIONS_TOTAL,
)
from dayshift.models import BackendTask, ScheduleBlock, Suggestion
from learning.duration_store import DurationLearningStore
from scheduling.blocks import blocks_from_tasks

router = APIRouter(prefix="/days")
logger = logging.getLogger(__name__)


class PutBlocksIn(BaseModel):
    blocks: List[ScheduleBlock] = Field(default_factory=list)
    tasks: List[BackendTask] = Field(default_factory=list)


class LateIn(BaseModel):
    block_id: str
    actual_end_minute: int
    commit: bool = True


class ApplySuggestionIn(BaseModel):
    suggestion: Suggestion


def _day_key(date: str) -> str:
    try:
        return datetime.strptime(date, "%Y-%m-%d").strftime("%Y-%m-%d")
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid date format. Use YYYY-MM-DD")


def _next_day_key(day: str) -> str:
    return (datetime.strptime(day, "%Y-%m-%d") + timedelta(days=1)).strftime("%Y-%m-%d")


def _dump(items) -> list:
    return [i.model_dump(mode="json") for i in items]


@router.put("/{date}/blocks")
async def put_blocks(payload: PutBlocksIn, date: str) -> dict:
    """Replace a day's blocks, e.g. after re-fetching tasks from the backend."""
    day = _day_key(date)
    blocks = list(payload.blocks) + blocks_from_tasks(payload.tasks)

    ids = [b.id for b in blocks]
    if len(ids) != len(set(ids)):
        REQUESTS_TOTAL.labels(endpoint="/days/blocks", status="rejected").inc()
        raise HTTPException(status_code=400, detail="Block ids must be unique")

    state.days[day] = blocks
    state.pre_shift_snapshots.pop(day, None)
    logger.info(f"Stored {len(blocks)} blocks for {day}")
    REQUESTS_TOTAL.labels(endpoint="/days/blocks", status="stored").inc()
    return {"date": day, "blocks": _dump(blocks)}


@router.get("/{date}/blocks")
async def get_blocks(
    date: str,
    backend: BackendAPI = Depends(get_backend),
    store: DurationLearningStore = Depends(get_learning_store),
) -> dict:
    day = _day_key(date)
    overview = backend.overview(state.days.get(day, []), store)
    return {
        "date": day,
        "blocks": _dump(overview.blocks),
        "conflicts": _dump(overview.conflicts),
        "suggested_durations": overview.suggested_durations,
    }


@router.get("/{date}/conflicts")
async def get_conflicts(date: str, backend: BackendAPI = Depends(get_backend)) -> dict:
    day = _day_key(date)
    overview = backend.overview(state.days.get(day, []))
    return {
        "date": day,
        "conflicts": _dump(overview.conflicts),
        "suggestions": _dump(overview.suggestions),
    }


@router.post("/{date}/late")
async def ran_late(
    payload: LateIn,
    date: str,
    backend: BackendAPI = Depends(get_backend),
) -> dict:
    """
    Propagate an overrun through the day.

    With ``commit`` the shifted blocks replace the stored day and the previous
    list is kept for ``/undo``; otherwise this is a preview.
    """
    start = time.time()
    day = _day_key(date)
    current = state.days.get(day, [])

    result = backend.ran_late(current, payload.block_id, payload.actual_end_minute)
    applied = result.applied_overrun_minutes > 0
    committed = payload.commit and applied

    if committed:
        state.pre_shift_snapshots[day] = list(current)
        state.days[day] = list(result.blocks)

    LATE_SHIFTS_TOTAL.labels(outcome="applied" if applied else "noop").inc()
    CONFLICTS_DETECTED_TOTAL.inc(len(result.conflicts))
    for s in result.suggestions:
        SUGGESTIONS_TOTAL.labels(kind=s.kind).inc()
    REQUESTS_TOTAL.labels(endpoint="/days/late", status="committed" if committed else "preview").inc()
    REQUEST_LATENCY_SECONDS.labels(endpoint="/days/late").observe(time.time() - start)

    return {"date": day, "committed": committed, **result.model_dump(mode="json")}


@router.post("/{date}/undo")
async def undo_late(date: str) -> dict:
    day = _day_key(date)
    snapshot = state.pre_shift_snapshots.pop(day, None)
    if snapshot is None:
        raise HTTPException(status_code=404, detail="Nothing to undo")

    state.days[day] = snapshot
    logger.info(f"Restored {len(snapshot)} blocks for {day}")
    return {"date": day, "blocks": _dump(snapshot)}


@router.post("/{date}/suggestions/apply")
async def apply_suggestion(
    payload: ApplySuggestionIn,
    date: str,
    backend: BackendAPI = Depends(get_backend),
) -> dict:
    day = _day_key(date)
    try:
        outcome = backend.apply_suggestion(state.days.get(day, []), payload.suggestion)
    except BlockNotFoundError as e:
        REQUESTS_TOTAL.labels(endpoint="/days/suggestions/apply", status="not_found").inc()
        raise HTTPException(status_code=404, detail=str(e))

    state.days[day] = outcome.blocks
    # the pre-shift snapshot no longer matches this day
    state.pre_shift_snapshots.pop(day, None)
    if outcome.spilled is not None:
        tomorrow = _next_day_key(day)
        state.days[tomorrow] = backend.carry_over(state.days.get(tomorrow, []), outcome.spilled)
        logger.info(f"Spilled {outcome.spilled.duration_minutes} min of {outcome.spilled.title} to {tomorrow}")

    REQUESTS_TOTAL.labels(endpoint="/days/suggestions/apply", status="applied").inc()
    return {
        "date": day,
        "blocks": _dump(outcome.blocks),
        "conflicts": _dump(outcome.conflicts),
        "spilled": outcome.spilled.model_dump(mode="json") if outcome.spilled else None,
    }


@router.post("/{date}/blocks/{block_id}/suggested-duration/apply")
async def apply_suggested_duration(
    date: str,
    block_id: str,
    backend: BackendAPI = Depends(get_backend),
    store: DurationLearningStore = Depends(get_learning_store),
) -> dict:
    day = _day_key(date)
    try:
        blocks = backend.apply_suggested_duration(state.days.get(day, []), block_id, store)
    except BlockNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    state.days[day] = blocks
    state.pre_shift_snapshots.pop(day, None)
    return {"date": day, "blocks": _dump(blocks)}
