# driveease/api/v1/routers/health.py
import time
import subprocess
from fastapi import APIRouter
from driveease.core.config import get_settings
from driveease.db import mongo
from driveease.db.redis import get_cache

router = APIRouter(tags=["health"])
START_TIME = time.time()


def _git_sha(short: bool = True) -> str:
    try:
        cmd = ["git", "rev-parse", "--short" if short else "HEAD"]
        return subprocess.check_output(cmd).decode().strip()
    except (OSError, subprocess.CalledProcessError):
        return "unknown"


@router.get("/health")
async def health():
    """
    Tolerant health check:
    - ping Mongo via Motor
    - Redis 'skipped' when not configured; a down cache only degrades the service
    """
    settings = get_settings()
    checks: dict[str, object] = {
        "app_name": settings.APP_NAME,
        "env": settings.APP_ENV,
        "debug": settings.DEBUG,
        "version": settings.GIT_SHA if settings.GIT_SHA != "unknown" else _git_sha(),
        "uptime_seconds": int(time.time() - START_TIME),
    }

    # --- Mongo ---
    try:
        db = mongo.get_db()
        await db.command("ping")
        checks["mongodb"] = "ok"
    except Exception as e:
        checks["mongodb"] = f"error: {e}"

    # --- Redis (cache only) ---
    cache = get_cache()
    if not settings.REDIS_URL:
        checks["redis"] = "skipped"
    else:
        checks["redis"] = "ok" if await cache.ping() else "degraded"

    checks["openai_api_key_set"] = bool(settings.OPENAI_API_KEY)

    status = "ok" if checks["mongodb"] == "ok" else "error"
    return {"status": status, "checks": checks, "timestamp": int(time.time())}
