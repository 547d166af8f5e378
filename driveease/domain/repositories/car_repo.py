# driveease/domain/repositories/car_repo.py

from __future__ import annotations
from typing import Any, Dict, List, Optional, Sequence, Tuple
from datetime import datetime, timezone
from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from driveease.domain.models.car import Car

# Highest rating first; ties resolved by ascending id so results are deterministic
TOP_RATED_SORT: List[Tuple[str, int]] = [("rating", -1), ("_id", 1)]


def to_object_id(car_id: str) -> Optional[ObjectId]:
    try:
        return ObjectId(car_id)
    except (InvalidId, TypeError):
        return None


def to_car(doc: Dict[str, Any]) -> Car:
    data = dict(doc)
    data["id"] = str(data.pop("_id"))
    return Car.model_validate(data)


class CarRepo:
    """
    Car repository backed by the 'cars' collection.
    Documents keep Mongo's `_id`; every read converts it to `Car.id`.
    """

    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = "cars"):
        self.col = db[collection_name]

    async def get(self, car_id: str) -> Optional[Car]:
        oid = to_object_id(car_id)
        if oid is None:
            return None
        doc = await self.col.find_one({"_id": oid})
        return to_car(doc) if doc else None

    async def list_available(self) -> List[Car]:
        """Snapshot of every available car, top rated first."""
        cursor = self.col.find({"available": True}).sort(TOP_RATED_SORT)
        return [to_car(doc) async for doc in cursor]

    async def find(
        self,
        query: Dict[str, Any],
        *,
        sort: Sequence[Tuple[str, int]],
        skip: int = 0,
        limit: int = 0,
    ) -> List[Car]:
        cursor = self.col.find(query).sort(list(sort)).skip(skip).limit(limit)
        return [to_car(doc) async for doc in cursor]

    async def count(self, query: Dict[str, Any]) -> int:
        return await self.col.count_documents(query)

    async def distinct(self, field: str, query: Optional[Dict[str, Any]] = None) -> List[Any]:
        return await self.col.distinct(field, query or {})

    async def featured(self, limit: int, now: Optional[datetime] = None) -> List[Car]:
        """Admin-featured available cars whose featuring has not expired."""
        now = now or datetime.now(timezone.utc)
        query = {
            "is_featured": True,
            "available": True,
            "$or": [{"featured_until": None}, {"featured_until": {"$gte": now}}],
        }
        return await self.find(query, sort=[("featured_rank", -1), ("created_at", -1)], limit=limit)

    async def top_rated(self, *, min_rating: float, exclude_ids: Sequence[str], limit: int) -> List[Car]:
        query = {
            "available": True,
            "rating": {"$gte": min_rating},
            "_id": {"$nin": [oid for oid in map(to_object_id, exclude_ids) if oid is not None]},
        }
        return await self.find(query, sort=TOP_RATED_SORT, limit=limit)

    async def search_available(self, pattern: str, listing_types: Sequence[str]) -> List[Car]:
        """
        Case-insensitive regex match on name/brand/model/category among
        available cars offered with one of `listing_types`.
        """
        regex = {"$regex": pattern, "$options": "i"}
        query = {
            "available": True,
            "listing_type": {"$in": list(listing_types)},
            "$or": [{"name": regex}, {"brand": regex}, {"model": regex}, {"category": regex}],
        }
        return await self.find(query, sort=TOP_RATED_SORT)

    async def price_range(self) -> Optional[Tuple[float, float]]:
        pipeline = [
            {"$match": {"available": True}},
            {"$group": {"_id": None, "min": {"$min": "$sale_price"}, "max": {"$max": "$sale_price"}}},
        ]
        docs = await self.col.aggregate(pipeline).to_list(length=1)
        if not docs:
            return None
        return docs[0]["min"], docs[0]["max"]

    async def samples_by_category(self, per_category: int = 2) -> List[Dict[str, Any]]:
        """Top rated `per_category` available cars of each category (for LLM context)."""
        pipeline = [
            {"$match": {"available": True}},
            {"$sort": {"rating": -1, "_id": 1}},
            {"$group": {
                "_id": "$category",
                "samples": {"$push": {
                    "brand": "$brand",
                    "model": "$model",
                    "price": "$sale_price",
                    "type": "$listing_type",
                }},
            }},
            {"$project": {"_id": 0, "category": "$_id", "samples": {"$slice": ["$samples", per_category]}}},
            {"$sort": {"category": 1}},
        ]
        return await self.col.aggregate(pipeline).to_list(length=None)

    # ----- Writes -------------------------------------------------------------

    async def create(self, fields: Dict[str, Any]) -> Car:
        doc = dict(fields)
        doc.setdefault("created_at", datetime.now(timezone.utc))
        res = await self.col.insert_one(doc)
        doc["_id"] = res.inserted_id
        return to_car(doc)

    async def update(self, car_id: str, fields: Dict[str, Any]) -> Optional[Car]:
        oid = to_object_id(car_id)
        if oid is None:
            return None
        doc = await self.col.find_one_and_update(
            {"_id": oid},
            {"$set": fields},
            return_document=ReturnDocument.AFTER,
        )
        return to_car(doc) if doc else None

    async def delete(self, car_id: str) -> bool:
        oid = to_object_id(car_id)
        if oid is None:
            return False
        res = await self.col.delete_one({"_id": oid})
        return res.deleted_count == 1
