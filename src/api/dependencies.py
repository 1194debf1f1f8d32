import logging
import os

from api import state
from api.backend import BackendAPI
from learning.duration_store import DurationLearningStore
from storage.learn_stats_store import JsonLearnStatsStore

logger = logging.getLogger(__name__)

# Configuration
LEARN_STATS_PATH = os.getenv("DAYSHIFT_LEARN_STATS_PATH", "data/learn_stats.json")
LEARN_ALPHA = float(os.getenv("DAYSHIFT_LEARN_ALPHA", "0.25"))
SUGGEST_MIN_DELTA_MIN = int(os.getenv("DAYSHIFT_SUGGEST_MIN_DELTA_MIN", "5"))

backend = BackendAPI(suggest_min_delta=SUGGEST_MIN_DELTA_MIN)


def get_learning_store() -> DurationLearningStore:
    if state.learning_store is None:
        logger.info(f"Loading learning stats from {LEARN_STATS_PATH}")
        state.learning_store = DurationLearningStore(
            persistence=JsonLearnStatsStore(LEARN_STATS_PATH),
            alpha=LEARN_ALPHA,
        )
    return state.learning_store


def get_backend() -> BackendAPI:
    return backend
