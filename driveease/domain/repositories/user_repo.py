# driveease/domain/repositories/user_repo.py
from __future__ import annotations
from typing import Optional
from motor.motor_asyncio import AsyncIOMotorDatabase
from driveease.domain.models.viewer import Viewer
from driveease.domain.repositories.car_repo import to_object_id


class UserRepo:
    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = "users"):
        self.col = db[collection_name]

    async def get_viewer(self, user_id: str) -> Optional[Viewer]:
        """Load the personalization fields of a user; None if unknown."""
        oid = to_object_id(user_id)
        if oid is None:
            return None
        doc = await self.col.find_one({"_id": oid}, {"favorites": 1, "preferred_category_slugs": 1})
        if not doc:
            return None
        return Viewer(
            id=str(doc["_id"]),
            favorites=[str(f) for f in doc.get("favorites") or []],
            preferred_category_slugs=list(doc.get("preferred_category_slugs") or []),
        )
