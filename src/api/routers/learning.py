import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from api.dependencies import get_learning_store
from api.metrics import (
    COMPLETIONS_RECORDED_TOTAL,
    LEARN_KEYS,
    LEARN_SAVE_FAILURES_TOTAL,
    REQUESTS_TOTAL,
)
from learning.duration_store import DurationLearningStore
from learning.keys import normalize_learn_key

router = APIRouter(prefix="/learning")
logger = logging.getLogger(__name__)


class CompletionIn(BaseModel):
    key: str = Field(..., min_length=1)
    actual_minutes: int
    alpha: Optional[float] = Field(None, gt=0, le=1)


class SeedIn(BaseModel):
    key: str = Field(..., min_length=1)
    minutes: int = Field(..., ge=1)


def _after_write(store: DurationLearningStore) -> None:
    LEARN_KEYS.set(len(store))
    if store.dirty:
        LEARN_SAVE_FAILURES_TOTAL.inc()


@router.post("/completions")
async def record_completion(
    payload: CompletionIn,
    store: DurationLearningStore = Depends(get_learning_store),
) -> dict:
    stats = await asyncio.to_thread(
        store.record, payload.key, payload.actual_minutes, alpha=payload.alpha
    )
    key = normalize_learn_key(payload.key)
    logger.info(f"Recorded completion for '{key}' ({payload.actual_minutes} min)")

    COMPLETIONS_RECORDED_TOTAL.inc()
    _after_write(store)
    REQUESTS_TOTAL.labels(endpoint="/learning/completions", status="recorded").inc()
    return {
        "key": key,
        "stats": stats.model_dump(mode="json"),
        "predicted_minutes": store.predict(key),
        "persisted": not store.dirty,
    }


@router.get("/predictions/{key}")
async def get_prediction(
    key: str,
    store: DurationLearningStore = Depends(get_learning_store),
) -> dict:
    norm = normalize_learn_key(key)
    stats = store.get(norm)
    return {
        "key": norm,
        "predicted_minutes": store.predict(norm),
        "sample_count": stats.sample_count if stats else 0,
    }


@router.post("/seed")
async def seed_key(
    payload: SeedIn,
    store: DurationLearningStore = Depends(get_learning_store),
) -> dict:
    created = await asyncio.to_thread(store.seed_if_missing, payload.key, payload.minutes)
    _after_write(store)
    return {"key": normalize_learn_key(payload.key), "seeded": created}


@router.delete("/{key}")
async def reset_key(
    key: str,
    store: DurationLearningStore = Depends(get_learning_store),
) -> dict:
    removed = await asyncio.to_thread(store.reset, key)
    _after_write(store)
    return {"key": normalize_learn_key(key), "removed": removed}


@router.delete("")
async def reset_all(store: DurationLearningStore = Depends(get_learning_store)) -> dict:
    removed = await asyncio.to_thread(store.reset)
    _after_write(store)
    logger.info(f"Cleared learning stats ({removed} keys)")
    return {"removed": removed}
