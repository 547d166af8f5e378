"""Shared fixtures: in-memory stand-ins for the Mongo repositories and Redis."""

import fnmatch
import re
import time
from typing import Any, Dict, List, Optional

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from pymongo.errors import DuplicateKeyError
from redis.exceptions import ConnectionError as RedisConnectionError

from driveease.db.redis import CacheClient
from driveease.domain.models.car import Car, Category
from driveease.domain.models.viewer import Viewer


# ---------------------------------------------------------------------------
# Redis
# ---------------------------------------------------------------------------

class FakeRedis:
    """Subset of redis.asyncio.Redis used by CacheClient (decode_responses=True)."""

    def __init__(self):
        self.data: Dict[str, str] = {}
        self.expiry: Dict[str, float] = {}
        self.ttls: Dict[str, int] = {}

    def _alive(self, key: str) -> bool:
        exp = self.expiry.get(key)
        if exp is not None and time.monotonic() >= exp:
            self.data.pop(key, None)
            self.expiry.pop(key, None)
        return key in self.data

    async def ping(self):
        return True

    async def get(self, key):
        return self.data[key] if self._alive(key) else None

    async def set(self, key, value, ex=None):
        self.data[key] = value
        self.ttls[key] = ex
        if ex is not None:
            self.expiry[key] = time.monotonic() + ex
        return True

    async def scan_iter(self, match="*", count=None):
        for key in list(self.data):
            if self._alive(key) and fnmatch.fnmatchcase(key, match):
                yield key

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
            self.expiry.pop(key, None)
        return removed

    async def aclose(self):
        pass


class BrokenRedis(FakeRedis):
    """Every command fails as if the server went away."""

    async def _fail(self, *args, **kwargs):
        raise RedisConnectionError("Connection refused")

    ping = get = set = delete = _fail

    async def scan_iter(self, match="*", count=None):
        raise RedisConnectionError("Connection refused")
        yield  # pragma: no cover


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def cache_client(fake_redis):
    return CacheClient(client=fake_redis)


# ---------------------------------------------------------------------------
# Mongo repositories
# ---------------------------------------------------------------------------

def make_car(category: str = "sedan", rating: float = 4.0, **kw) -> Car:
    data: Dict[str, Any] = dict(
        id=kw.pop("id", None) or str(ObjectId()),
        name=kw.pop("name", None) or f"Toyota {category.title()}",
        brand="Toyota",
        model=category.title(),
        year=2022,
        category=category,
        rating=rating,
        location="Nairobi",
        sale_price=3_000_000,
        rent_price=8_000,
    )
    data.update(kw)
    return Car(**data)


def _matches(car: Car, query: Dict[str, Any]) -> bool:
    doc = car.model_dump()
    for field, cond in query.items():
        if field.startswith("$"):
            continue  # $text / $or are not emulated
        value = doc.get(field)
        if isinstance(cond, dict):
            for op, arg in cond.items():
                if op == "$in" and value not in arg:
                    return False
                if op == "$gt" and not value > arg:
                    return False
                if op == "$gte" and not value >= arg:
                    return False
                if op == "$lt" and not value < arg:
                    return False
                if op == "$lte" and not value <= arg:
                    return False
        elif value != cond:
            return False
    return True


def _top_rated(cars):
    return sorted(cars, key=lambda c: (-c.rating, c.id))


class FakeCarRepo:
    def __init__(self, cars: Optional[List[Car]] = None):
        self.cars: Dict[str, Car] = {c.id: c for c in cars or []}
        self.fail_with: Optional[Exception] = None
        self.reads = 0

    def _check(self):
        self.reads += 1
        if self.fail_with is not None:
            raise self.fail_with

    async def get(self, car_id):
        self._check()
        return self.cars.get(car_id)

    async def list_available(self):
        self._check()
        return _top_rated(c for c in self.cars.values() if c.available)

    async def find(self, query, *, sort, skip=0, limit=0):
        self._check()
        found = [c for c in self.cars.values() if _matches(c, query)]
        for field, direction in reversed(list(sort)):
            found.sort(key=lambda c: (getattr(c, field) is None, getattr(c, field) or 0), reverse=direction < 0)
        found = found[skip:]
        return found[:limit] if limit else found

    async def count(self, query):
        self._check()
        return sum(1 for c in self.cars.values() if _matches(c, query))

    async def distinct(self, field, query=None):
        self._check()
        return sorted({getattr(c, field) for c in self.cars.values() if _matches(c, query or {})})

    async def featured(self, limit, now=None):
        self._check()
        cars = [c for c in self.cars.values() if c.is_featured and c.available]
        return sorted(cars, key=lambda c: -c.featured_rank)[:limit]

    async def top_rated(self, *, min_rating, exclude_ids, limit):
        self._check()
        cars = [c for c in self.cars.values() if c.available and c.rating >= min_rating and c.id not in exclude_ids]
        return _top_rated(cars)[:limit]

    async def search_available(self, pattern, listing_types):
        self._check()
        rx = re.compile(pattern, re.IGNORECASE)
        return _top_rated(
            c for c in self.cars.values()
            if c.available and c.listing_type in listing_types
            and any(rx.search(v) for v in (c.name, c.brand, c.model, c.category))
        )

    async def price_range(self):
        self._check()
        prices = [c.sale_price for c in self.cars.values() if c.available]
        return (min(prices), max(prices)) if prices else None

    async def samples_by_category(self, per_category=2):
        self._check()
        out = []
        for cat in sorted({c.category for c in self.cars.values() if c.available}):
            cars = _top_rated(c for c in self.cars.values() if c.available and c.category == cat)
            out.append({"category": cat, "samples": [
                {"brand": c.brand, "model": c.model, "price": c.sale_price, "type": c.listing_type}
                for c in cars[:per_category]
            ]})
        return out

    async def create(self, fields):
        car = Car(id=str(ObjectId()), **fields)
        self.cars[car.id] = car
        return car

    async def update(self, car_id, fields):
        car = self.cars.get(car_id)
        if car is None:
            return None
        self.cars[car_id] = car.model_copy(update=fields)
        return self.cars[car_id]

    async def delete(self, car_id):
        return self.cars.pop(car_id, None) is not None


class FakeCategoryRepo:
    def __init__(self, slugs=("sedan", "suv", "luxury")):
        self.categories = [Category(slug=s, name=s.upper() if s == "suv" else s.title(), sort_order=i)
                           for i, s in enumerate(slugs)]

    async def list_active(self):
        return [c for c in self.categories if c.is_active]

    async def list_all(self):
        return sorted(self.categories, key=lambda c: (c.sort_order, c.name))

    async def get_active(self, slug):
        return next((c for c in self.categories if c.slug == slug and c.is_active), None)

    async def get(self, slug):
        return next((c for c in self.categories if c.slug == slug), None)

    async def create(self, category):
        if await self.get(category.slug) is not None:
            raise DuplicateKeyError("E11000 duplicate key error", code=11000)
        self.categories.append(category)
        return category

    async def update(self, slug, fields):
        for i, c in enumerate(self.categories):
            if c.slug == slug:
                self.categories[i] = c.model_copy(update=fields)
                return self.categories[i]
        return None

    async def delete(self, slug):
        before = len(self.categories)
        self.categories = [c for c in self.categories if c.slug != slug]
        return len(self.categories) < before


class FakeBookingRepo:
    def __init__(self, booked: Optional[Dict[str, List[str]]] = None):
        self.booked = booked or {}
        self.calls: List[str] = []

    async def booked_categories(self, user_id, statuses=None):
        self.calls.append(user_id)
        return list(self.booked.get(user_id, []))


class FakeUserRepo:
    def __init__(self, viewers: Optional[List[Viewer]] = None):
        self.viewers = {v.id: v for v in viewers or []}

    async def get_viewer(self, user_id):
        return self.viewers.get(user_id)


@pytest.fixture
def car_repo():
    return FakeCarRepo()


@pytest.fixture
def booking_repo():
    return FakeBookingRepo()


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------

@pytest.fixture
def api(car_repo, booking_repo, cache_client):
    """
    TestClient wired to the fakes. Not entered as a context manager, so the
    lifespan (real Mongo/Redis connections) never runs.
    """
    from driveease.api import deps
    from driveease.main import app

    users = FakeUserRepo()
    categories = FakeCategoryRepo()
    app.dependency_overrides[deps.car_repo_dep] = lambda: car_repo
    app.dependency_overrides[deps.booking_repo_dep] = lambda: booking_repo
    app.dependency_overrides[deps.category_repo_dep] = lambda: categories
    app.dependency_overrides[deps.user_repo_dep] = lambda: users
    app.dependency_overrides[deps.cache_dep] = lambda: cache_client

    client = TestClient(app)
    client.users = users
    client.categories = categories
    yield client
    app.dependency_overrides.clear()
