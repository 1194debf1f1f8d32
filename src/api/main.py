import asyncio
import logging
import os

from fastapi import FastAPI

from api.dependencies import get_learning_store
from api.routers import days, learning, ops

# Logging configuration
logging.basicConfig(
    level=os.getenv("DAYSHIFT_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="dayshift")

app.include_router(days.router)
app.include_router(learning.router)
app.include_router(ops.router)


@app.on_event("shutdown")
async def shutdown() -> None:
    # last chance to persist stats whose earlier write failed
    store = get_learning_store()
    if store.dirty and not await asyncio.to_thread(store.flush):
        logger.error("Learning stats could not be saved on shutdown")
