from pydantic import BaseModel, Field
from typing import List

# Booking statuses that count as real history for personalization
COUNTED_BOOKING_STATUSES = ("completed", "confirmed", "active")
BOOKING_STATUSES = ("pending", "confirmed", "active", "completed", "cancelled")


class Viewer(BaseModel):
    """Identity context of an authenticated requester."""
    id: str = Field(..., min_length=1)
    favorites: List[str] = []
    preferred_category_slugs: List[str] = []

    model_config = {"frozen": True}
