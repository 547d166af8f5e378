# driveease/core/lifespan.py
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from driveease.db import mongo, redis as r

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # --- Startup ---
    # Mongo is required; a failed ping only defers the connection
    await mongo.connect()
    # Redis is optional: the cache client runs in pass-through mode without it
    await r.connect()

    yield

    # --- Shutdown ---
    await r.disconnect()
    await mongo.disconnect()
    logger.info("Shutdown complete")
