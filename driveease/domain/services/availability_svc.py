import logging
import re
import time
from typing import Any, Dict

from driveease.domain.services.constants import (
    AVAILABILITY_MAX_RESULTS,
    INTENT_SALE,
    LISTING_TYPES_FOR_INTENT,
)

logger = logging.getLogger(__name__)


async def check_availability(car_repo, *, query: str, intent: str = INTENT_SALE) -> Dict[str, Any]:
    """
    Answer "is X available?" for the chat assistant.
    `query` is matched case-insensitively against name, brand, model and
    category; `intent` selects which listing types qualify and which price is
    reported. Store errors propagate to the caller.
    """
    if intent not in LISTING_TYPES_FOR_INTENT:
        raise ValueError(f"intent must be one of {sorted(LISTING_TYPES_FOR_INTENT)}, got {intent!r}")
    query = (query or "").strip()
    if not query:
        raise ValueError("query must not be empty")

    t0 = time.perf_counter()
    # User text goes into a regex: escape it
    cars = await car_repo.search_available(re.escape(query), LISTING_TYPES_FOR_INTENT[intent])
    logger.info(
        "check_availability query=%r intent=%s matches=%s time=%.3fs",
        query, intent, len(cars), time.perf_counter() - t0,
    )

    if not cars:
        return {
            "available": False,
            "message": f'No cars found matching "{query}" for {intent}.',
        }

    return {
        "available": True,
        "count": len(cars),
        "cars": [
            {
                "name": c.name,
                "price": c.sale_price if intent == INTENT_SALE else c.rent_price,
                "type": c.listing_type,
                "category": c.category,
            }
            for c in cars[:AVAILABILITY_MAX_RESULTS]
        ],
    }
