# driveease/api/v1/routers/ai.py
from fastapi import APIRouter, Depends, HTTPException, Query
import time
import logging

from driveease.api.deps import booking_repo_dep, car_repo_dep, optional_viewer
from driveease.api.v1.schemas.cars import AvailabilityQuery, ChatIn, envelope
from driveease.core.config import get_settings
from driveease.domain.services.availability_svc import check_availability
from driveease.domain.services.chat_svc import ChatUnavailableError, chat
from driveease.domain.services.recommendation_svc import get_recommendations

logger = logging.getLogger(__name__)

settings = get_settings()
router = APIRouter(prefix=f"{settings.api_prefix}/ai", tags=["ai"])


@router.get("/recommendations")
async def recommendations(
    limit: int = Query(settings.recommendation_limit, ge=1, le=50),
    viewer = Depends(optional_viewer),
    cars = Depends(car_repo_dep),
    bookings = Depends(booking_repo_dep),
):
    """
    Personalized recommendations for a known viewer (X-User-Id), a diverse
    one-per-category mix for guests. Not cached: depends on the viewer and
    the guest order is shuffled on every call.
    """
    logger.info("Request: recommendations viewer=%s limit=%s", viewer.id if viewer else None, limit)
    t0 = time.perf_counter()
    items = await get_recommendations(cars, bookings, viewer=viewer, limit=limit)
    logger.info("Response: recommendations count=%s elapsed_time=%.4fs", len(items), time.perf_counter() - t0)
    return envelope([r.to_public() for r in items])


@router.post("/tools/check-availability")
async def availability_tool(payload: AvailabilityQuery, cars = Depends(car_repo_dep)):
    """Tool endpoint for the external assistant."""
    try:
        return await check_availability(cars, query=payload.query, intent=payload.intent)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/chat")
async def chat_endpoint(payload: ChatIn, cars = Depends(car_repo_dep)):
    try:
        reply = await chat(
            cars,
            message=payload.message,
            history=[m.model_dump() for m in payload.history],
            settings=get_settings(),
        )
    except ChatUnavailableError as e:
        logger.warning("chat unavailable: %s", e)
        raise HTTPException(status_code=503, detail="AI assistant is temporarily unavailable")
    return envelope({"reply": reply})
