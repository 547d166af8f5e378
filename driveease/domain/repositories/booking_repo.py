# driveease/domain/repositories/booking_repo.py
from __future__ import annotations
from typing import Any, Dict, List, Sequence
import logging
import time
from motor.motor_asyncio import AsyncIOMotorDatabase
from driveease.domain.models.viewer import COUNTED_BOOKING_STATUSES
from driveease.domain.repositories.car_repo import to_object_id

logger = logging.getLogger(__name__)


class BookingRepo:
    """
    Read-only view of the 'bookings' collection.
    A booking document references its user and car by ObjectId.
    """

    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = "bookings"):
        self.col = db[collection_name]

    async def booked_categories(
        self,
        user_id: str,
        statuses: Sequence[str] = COUNTED_BOOKING_STATUSES,
    ) -> List[str]:
        """Distinct categories of the cars this user booked with one of `statuses`."""
        user = to_object_id(user_id) or user_id
        pipeline: List[Dict[str, Any]] = [
            {"$match": {"user": user, "status": {"$in": list(statuses)}}},
            {"$lookup": {"from": "cars", "localField": "car", "foreignField": "_id", "as": "car_doc"}},
            {"$unwind": {"path": "$car_doc", "preserveNullAndEmptyArrays": False}},
            {"$match": {"car_doc.category": {"$nin": [None, ""]}}},
            {"$group": {"_id": "$car_doc.category"}},
            {"$sort": {"_id": 1}},
        ]
        t0 = time.perf_counter()
        docs = await self.col.aggregate(pipeline).to_list(length=None)
        logger.debug("booked_categories user_id=%s n=%s db_time=%.3fs", user_id, len(docs), time.perf_counter() - t0)
        return [d["_id"] for d in docs]
