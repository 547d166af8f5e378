# driveease/api/deps.py
from typing import Optional
from fastapi import Depends, Header, HTTPException
from driveease.core.config import get_settings
from driveease.db.mongo import get_db
from driveease.db.redis import CacheClient, get_cache
from driveease.domain.models.viewer import Viewer
from driveease.domain.repositories.booking_repo import BookingRepo
from driveease.domain.repositories.car_repo import CarRepo, to_object_id
from driveease.domain.repositories.category_repo import CategoryRepo
from driveease.domain.repositories.response_cache_repo import ResponseCacheRepo
from driveease.domain.repositories.user_repo import UserRepo

# Dependency for injecting the MongoDB database into endpoints/services
async def mongo_db(db = Depends(get_db)):
    return db

# Dependency for injecting the shared cache client (never None)
def cache_dep() -> CacheClient:
    return get_cache()


def car_repo_dep(db = Depends(mongo_db)) -> CarRepo:
    return CarRepo(db)

def category_repo_dep(db = Depends(mongo_db)) -> CategoryRepo:
    return CategoryRepo(db)

def booking_repo_dep(db = Depends(mongo_db)) -> BookingRepo:
    return BookingRepo(db)

def user_repo_dep(db = Depends(mongo_db)) -> UserRepo:
    return UserRepo(db)

def response_cache_dep(cache: CacheClient = Depends(cache_dep)) -> ResponseCacheRepo:
    return ResponseCacheRepo(cache, get_settings().cache_prefix)


async def optional_viewer(
    x_user_id: Optional[str] = Header(default=None),
    users = Depends(user_repo_dep),
) -> Optional[Viewer]:
    """
    Viewer set by the auth gateway through `X-User-Id`; absent means guest.
    A malformed id is rejected before touching the store.
    """
    if not x_user_id:
        return None
    if to_object_id(x_user_id) is None:
        raise HTTPException(status_code=400, detail="Malformed X-User-Id header")
    viewer = await users.get_viewer(x_user_id)
    if viewer is None:
        raise HTTPException(status_code=401, detail="Unknown user")
    return viewer


def require_admin(x_admin_key: Optional[str] = Header(default=None)) -> None:
    expected = get_settings().ADMIN_API_KEY
    if not expected or x_admin_key != expected:
        raise HTTPException(status_code=401, detail="Admin access required")
