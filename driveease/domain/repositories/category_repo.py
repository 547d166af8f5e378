# driveease/domain/repositories/category_repo.py
from __future__ import annotations
from typing import Any, Dict, List, Optional
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from driveease.domain.models.car import Category

REGISTRY_SORT = [("sort_order", 1), ("name", 1)]


class CategoryRepo:
    """
    Mutable category registry ('categories' collection), keyed by `slug`.
    The unique index on `slug` (see db/mongo.py) is what rejects duplicates:
    `create` lets pymongo's DuplicateKeyError through.
    """

    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = "categories"):
        self.col = db[collection_name]

    async def list_active(self) -> List[Category]:
        cursor = self.col.find({"is_active": True}, {"_id": 0}).sort(REGISTRY_SORT)
        return [Category.model_validate(doc) async for doc in cursor]

    async def list_all(self) -> List[Category]:
        cursor = self.col.find({}, {"_id": 0}).sort(REGISTRY_SORT)
        return [Category.model_validate(doc) async for doc in cursor]

    async def get_active(self, slug: str) -> Optional[Category]:
        doc = await self.col.find_one({"slug": slug, "is_active": True}, {"_id": 0})
        return Category.model_validate(doc) if doc else None

    async def get(self, slug: str) -> Optional[Category]:
        doc = await self.col.find_one({"slug": slug}, {"_id": 0})
        return Category.model_validate(doc) if doc else None

    async def create(self, category: Category) -> Category:
        await self.col.insert_one(category.model_dump())
        return category

    async def update(self, slug: str, fields: Dict[str, Any]) -> Optional[Category]:
        doc = await self.col.find_one_and_update(
            {"slug": slug},
            {"$set": fields},
            projection={"_id": 0},
            return_document=ReturnDocument.AFTER,
        )
        return Category.model_validate(doc) if doc else None

    async def delete(self, slug: str) -> bool:
        res = await self.col.delete_one({"slug": slug})
        return res.deleted_count == 1
