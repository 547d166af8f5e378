# driveease/api/v1/routers/cars.py

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from typing import Optional

from driveease.api.caching import cached_json
from driveease.api.deps import (
    car_repo_dep,
    category_repo_dep,
    require_admin,
    response_cache_dep,
)
from driveease.api.v1.schemas.cars import CarIn, CarUpdate, envelope
from driveease.core.config import get_settings
from driveease.domain.services import catalog_svc
from driveease.domain.services.catalog_svc import CarNotFound, UnknownCategory

import logging
logger = logging.getLogger(__name__)

settings = get_settings()
router = APIRouter(prefix=f"{settings.api_prefix}/cars", tags=["cars"])

# Query params that shape the listing instead of filtering it
# ('path' is added by some hosting rewrites)
RESERVED_PARAMS = {"select", "sort", "page", "limit", "search", "featured", "path"}


@router.get("")
async def list_cars(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.cars_page_size, ge=1, le=100),
    search: Optional[str] = Query(None, max_length=100),
    sort: Optional[str] = Query(None, description="Comma separated, '-' prefix for descending"),
    select: Optional[str] = Query(None, description="Comma separated fields to return"),
    cars = Depends(car_repo_dep),
    cache = Depends(response_cache_dep),
):
    params = {k: v for k, v in request.query_params.items() if k not in RESERVED_PARAMS}

    async def produce():
        try:
            data = await catalog_svc.list_cars(cars, params=params, search=search, sort=sort, select=select, page=page, limit=limit)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return envelope(data)

    return await cached_json(request, cache, settings.cars_cache_ttl, produce)


@router.get("/featured")
async def featured_cars(
    request: Request,
    limit: int = Query(settings.featured_limit, ge=1, le=50),
    cars = Depends(car_repo_dep),
    cache = Depends(response_cache_dep),
):
    async def produce():
        return envelope(await catalog_svc.featured_cars(cars, limit=limit))

    return await cached_json(request, cache, settings.featured_cache_ttl, produce)


@router.get("/categories")
async def list_categories(
    request: Request,
    categories = Depends(category_repo_dep),
    cache = Depends(response_cache_dep),
):
    async def produce():
        return envelope(await catalog_svc.categories(categories))

    return await cached_json(request, cache, settings.categories_cache_ttl, produce)


@router.get("/locations")
async def list_locations(request: Request, cache = Depends(response_cache_dep)):
    async def produce():
        return envelope(sorted(settings.locations))

    return await cached_json(request, cache, settings.locations_cache_ttl, produce)


@router.get("/brands")
async def list_brands(cars = Depends(car_repo_dep)):
    return envelope(await catalog_svc.brands(cars))


@router.get("/years")
async def list_years(cars = Depends(car_repo_dep)):
    return envelope(await catalog_svc.years(cars))


@router.get("/{car_id}")
async def get_car(car_id: str, cars = Depends(car_repo_dep)):
    # Not cached: booking needs fresh availability
    try:
        car = await catalog_svc.get_car(cars, car_id)
    except CarNotFound:
        raise HTTPException(status_code=404, detail="Car not found")
    return envelope(car.model_dump(mode="json"))


# ----- Admin -------------------------------------------------------------------

@router.post("", status_code=201, dependencies=[Depends(require_admin)])
async def create_car(
    payload: CarIn,
    cars = Depends(car_repo_dep),
    categories = Depends(category_repo_dep),
    cache = Depends(response_cache_dep),
):
    try:
        car = await catalog_svc.create_car(cars, categories, cache, payload.model_dump())
    except UnknownCategory as e:
        raise HTTPException(status_code=400, detail=str(e))
    return envelope(car.model_dump(mode="json"), "Car created successfully")


@router.put("/{car_id}", dependencies=[Depends(require_admin)])
async def update_car(
    car_id: str,
    payload: CarUpdate,
    cars = Depends(car_repo_dep),
    categories = Depends(category_repo_dep),
    cache = Depends(response_cache_dep),
):
    try:
        car = await catalog_svc.update_car(cars, categories, cache, car_id, payload.model_dump(exclude_unset=True))
    except CarNotFound:
        raise HTTPException(status_code=404, detail="Car not found")
    except UnknownCategory as e:
        raise HTTPException(status_code=400, detail=str(e))
    return envelope(car.model_dump(mode="json"), "Car updated successfully")


@router.delete("/{car_id}", dependencies=[Depends(require_admin)])
async def delete_car(
    car_id: str,
    cars = Depends(car_repo_dep),
    cache = Depends(response_cache_dep),
):
    try:
        await catalog_svc.delete_car(cars, cache, car_id)
    except CarNotFound:
        raise HTTPException(status_code=404, detail="Car not found")
    return envelope(None, "Car deleted successfully")
