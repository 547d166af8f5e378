from fastapi import FastAPI
from driveease.core.config import get_settings
from driveease.core.lifespan import lifespan
from driveease.api.v1.routers.health import router as health_router
from driveease.api.v1.routers.cars import router as cars_router
from driveease.api.v1.routers.ai import router as ai_router
from driveease.api.v1.routers.categories import router as categories_router
from driveease.core.logging import configure_logging

from fastapi.middleware.cors import CORSMiddleware
import logging, os

settings = get_settings()
configure_logging(level=logging.DEBUG if settings.DEBUG else logging.INFO)

app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

# ------- CORS -------
# ALLOWED_ORIGINS is a CSV, e.g. "https://driveease.app,https://www.driveease.app"
allowed_origins_env = os.getenv("ALLOWED_ORIGINS", "")
allowed_origins = [o.strip() for o in allowed_origins_env.split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins or ["http://localhost:5173"],
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Cache"],
    max_age=86400,
)

# ------- Routes -------
app.include_router(health_router)
app.include_router(cars_router)      # catalog reads (cached) + admin writes
app.include_router(ai_router)        # recommendations, availability tool, chat
app.include_router(categories_router)  # category registry admin
