import logging

from fastapi import APIRouter, Depends, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from api import state
from api.dependencies import get_learning_store
from api.metrics import LEARN_KEYS
from learning.duration_store import DurationLearningStore

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check(
    store: DurationLearningStore = Depends(get_learning_store),
) -> dict:
    """Health check endpoint for container orchestration."""
    health = {
        "status": "healthy",
        "days_loaded": len(state.days),
        "learn_keys": len(store),
        "learn_stats_persisted": not store.dirty,
    }
    if store.dirty:
        # in-memory stats are still served, only the last write failed
        health["status"] = "degraded"
    return health


@router.get("/metrics")
async def metrics(
    store: DurationLearningStore = Depends(get_learning_store),
) -> Response:
    """
    Prometheus scrape endpoint.
    """
    LEARN_KEYS.set(len(store))
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
