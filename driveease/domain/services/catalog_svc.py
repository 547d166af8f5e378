# driveease/domain/services/catalog_svc.py
from __future__ import annotations
from typing import Any, Dict, List, Mapping, Optional, Tuple
import logging
import math
import re
import time

from driveease.domain.models.car import Car
from driveease.domain.services.constants import TOP_RATED_THRESHOLD

logger = logging.getLogger(__name__)


class CarNotFound(LookupError):
    pass


class UnknownCategory(ValueError):
    pass


# Query params accepted as filters on /cars, with the type used to coerce them
FILTER_FIELDS: Dict[str, type] = {
    "brand": str,
    "model": str,
    "year": int,
    "category": str,
    "location": str,
    "listing_type": str,
    "transmission": str,
    "fuel_type": str,
    "condition": str,
    "seats": int,
    "rating": float,
    "sale_price": float,
    "rent_price": float,
    "mileage": int,
    "available": bool,
    "is_featured": bool,
}
SORT_FIELDS = set(FILTER_FIELDS) | {"created_at", "name"}
OPERATORS = {"gt", "gte", "lt", "lte", "in"}
DEFAULT_SORT: List[Tuple[str, int]] = [("created_at", -1)]

# e.g. "sale_price[gte]"
_OP_PARAM_RE = re.compile(r"^(?P<field>\w+)\[(?P<op>\w+)\]$")


def _coerce(field: str, raw: str) -> Any:
    kind = FILTER_FIELDS[field]
    if kind is bool:
        low = raw.strip().lower()
        if low in {"true", "1", "yes"}:
            return True
        if low in {"false", "0", "no"}:
            return False
        raise ValueError(f"invalid boolean for {field}: {raw!r}")
    try:
        return kind(raw)
    except ValueError as e:
        raise ValueError(f"invalid value for {field}: {raw!r}") from e


def build_filter(params: Mapping[str, str]) -> Dict[str, Any]:
    """
    Turn query params into a Mongo filter.
    `field=value` is equality, `field[op]=value` maps to `$op` (gt/gte/lt/lte/in,
    `in` takes a comma separated list). Unknown params are ignored.
    """
    query: Dict[str, Any] = {}
    for key, raw in params.items():
        m = _OP_PARAM_RE.match(key)
        if m:
            field, op = m.group("field"), m.group("op")
            if field not in FILTER_FIELDS or op not in OPERATORS:
                continue
            value = [_coerce(field, v) for v in raw.split(",") if v] if op == "in" else _coerce(field, raw)
            query.setdefault(field, {})[f"${op}"] = value
        elif key in FILTER_FIELDS:
            value = _coerce(key, raw)
            query[key] = value.lower() if key == "category" else value
    return query


def parse_sort(sort: Optional[str]) -> List[Tuple[str, int]]:
    """'-rating,sale_price' -> [('rating', -1), ('sale_price', 1)]"""
    if not sort:
        return list(DEFAULT_SORT)
    order: List[Tuple[str, int]] = []
    for part in sort.split(","):
        part = part.strip()
        direction = -1 if part.startswith("-") else 1
        field = part.lstrip("-+")
        if field in SORT_FIELDS:
            order.append((field, direction))
    return order or list(DEFAULT_SORT)


def parse_select(select: Optional[str]) -> Optional[set]:
    """'name,brand' -> {'id', 'name', 'brand'}; unknown fields are ignored, None means every field."""
    if not select:
        return None
    fields = set(re.split(r"[,\s]+", select.strip())) & set(Car.model_fields)
    return (fields | {"id"}) if fields else None


def title_case(s: str) -> str:
    return re.sub(r"(^|\s|-)(\S)", lambda m: m.group(1) + m.group(2).upper(), s.strip().lower())


# ----- Reads -----------------------------------------------------------------

async def list_cars(
    car_repo,
    *,
    params: Mapping[str, str],
    search: Optional[str] = None,
    sort: Optional[str] = None,
    select: Optional[str] = None,
    page: int = 1,
    limit: int = 24,
) -> Dict[str, Any]:
    t0 = time.perf_counter()
    query = build_filter(params)
    if search:
        query["$text"] = {"$search": search}
    fields = parse_select(select)
    total = await car_repo.count(query)
    cars = await car_repo.find(query, sort=parse_sort(sort), skip=(page - 1) * limit, limit=limit)
    logger.info(
        "list_cars query=%s page=%s limit=%s total=%s time=%.3fs",
        query, page, limit, total, time.perf_counter() - t0,
    )
    return {
        "cars": [c.model_dump(mode="json", include=fields) for c in cars],
        "total": total,
        "page": page,
        "pages": math.ceil(total / limit) if limit else 0,
    }


async def featured_cars(car_repo, *, limit: int = 6) -> List[Car]:
    """Admin-featured cars first, topped up with top rated ones."""
    cars = await car_repo.featured(limit)
    if len(cars) < limit:
        cars += await car_repo.top_rated(
            min_rating=TOP_RATED_THRESHOLD,
            exclude_ids=[c.id for c in cars],
            limit=limit - len(cars),
        )
    logger.info("featured_cars limit=%s items=%s", limit, len(cars))
    return cars


async def categories(category_repo) -> List[Dict[str, str]]:
    return [{"id": c.slug, "name": c.name, "icon": c.icon} for c in await category_repo.list_active()]


async def brands(car_repo) -> List[str]:
    return sorted(b for b in await car_repo.distinct("brand") if b)


async def years(car_repo) -> List[int]:
    return sorted((y for y in await car_repo.distinct("year") if y is not None), reverse=True)


async def get_car(car_repo, car_id: str) -> Car:
    car = await car_repo.get(car_id)
    if car is None:
        raise CarNotFound(car_id)
    return car


# ----- Writes (each one invalidates the response cache before returning) -------

async def _checked_category(category_repo, slug: str) -> str:
    slug = slug.strip().lower()
    if await category_repo.get_active(slug) is None:
        raise UnknownCategory(f"Unknown or inactive category: {slug}")
    return slug


async def create_car(car_repo, category_repo, response_cache, fields: Dict[str, Any]) -> Car:
    doc = dict(fields)
    doc["category"] = await _checked_category(category_repo, doc["category"])
    doc["brand"] = title_case(doc["brand"])
    doc["model"] = title_case(doc["model"])
    if not doc.get("name"):
        doc["name"] = f"{doc['brand']} {doc['model']}"

    car = await car_repo.create(doc)
    await response_cache.invalidate()
    logger.info("create_car id=%s name=%s category=%s", car.id, car.name, car.category)
    return car


async def update_car(car_repo, category_repo, response_cache, car_id: str, fields: Dict[str, Any]) -> Car:
    existing = await get_car(car_repo, car_id)
    doc = dict(fields)
    if "category" in doc:
        doc["category"] = await _checked_category(category_repo, doc["category"])
    for key in ("brand", "model"):
        if key in doc:
            doc[key] = title_case(doc[key])
    if ("brand" in doc or "model" in doc) and not doc.get("name"):
        doc["name"] = f"{doc.get('brand', existing.brand)} {doc.get('model', existing.model)}"

    car = await car_repo.update(car_id, doc) if doc else existing
    if car is None:
        # deleted between the read and the write
        raise CarNotFound(car_id)
    await response_cache.invalidate()
    logger.info("update_car id=%s fields=%s", car_id, sorted(doc))
    return car


async def delete_car(car_repo, response_cache, car_id: str) -> None:
    if not await car_repo.delete(car_id):
        raise CarNotFound(car_id)
    await response_cache.invalidate()
    logger.info("delete_car id=%s", car_id)
