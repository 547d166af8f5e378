# driveease/db/mongo.py
import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from driveease.core.config import get_settings
import certifi

logger = logging.getLogger(__name__)
settings = get_settings()

_client: AsyncIOMotorClient | None = None
_db: AsyncIOMotorDatabase | None = None


def get_client() -> AsyncIOMotorClient:
    assert _client is not None, "Mongo client not initialized"
    return _client


def get_db() -> AsyncIOMotorDatabase:
    assert _db is not None, "Mongo DB not initialized"
    return _db


def _new_client() -> AsyncIOMotorClient:
    kwargs = dict(
        uuidRepresentation="standard",
        serverSelectionTimeoutMS=6000,
        connectTimeoutMS=6000,
    )
    # Atlas (SRV) implies TLS; containers often lack a system CA bundle
    if settings.MONGO_URI.startswith("mongodb+srv://") or "tls=true" in settings.MONGO_URI:
        kwargs.update(tls=True, tlsCAFile=certifi.where())
    return AsyncIOMotorClient(settings.MONGO_URI, **kwargs)


async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    await db["cars"].create_index([("available", 1), ("category", 1), ("rating", -1)])
    await db["cars"].create_index([("name", "text"), ("brand", "text"), ("model", "text"), ("description", "text")])
    await db["categories"].create_index("slug", unique=True)
    await db["bookings"].create_index([("user", 1), ("status", 1)])


async def connect():
    """
    Create the Motor client.
    Do not crash the app if the initial ping fails: Motor connects lazily,
    so the first real query retries once the network is OK.
    """
    global _client, _db

    _client = _new_client()
    _db = _client[settings.MONGO_DB]
    try:
        await _client.admin.command("ping")
        logger.info("Mongo connected (ping ok) db=%s", settings.MONGO_DB)
        await ensure_indexes(_db)
    except Exception as e:
        logger.warning("Mongo ping at startup failed, will connect lazily on first query: %s", e)


async def disconnect():
    global _client, _db
    if _client:
        _client.close()
    _client = None
    _db = None
