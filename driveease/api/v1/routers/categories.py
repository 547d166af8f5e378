# driveease/api/v1/routers/categories.py

from fastapi import APIRouter, Depends, HTTPException

from driveease.api.deps import car_repo_dep, category_repo_dep, require_admin, response_cache_dep
from driveease.api.v1.schemas.cars import envelope
from driveease.api.v1.schemas.categories import CategoryIn, CategoryUpdate
from driveease.core.config import get_settings
from driveease.domain.services import category_svc
from driveease.domain.services.category_svc import CategoryNotFound, DuplicateCategory

settings = get_settings()
router = APIRouter(
    prefix=f"{settings.api_prefix}/admin/categories",
    tags=["categories"],
    dependencies=[Depends(require_admin)],
)


@router.get("")
async def list_categories(categories = Depends(category_repo_dep)):
    return envelope([c.model_dump() for c in await category_svc.list_all(categories)])


@router.post("", status_code=201)
async def create_category(
    payload: CategoryIn,
    categories = Depends(category_repo_dep),
    cache = Depends(response_cache_dep),
):
    try:
        category = await category_svc.create_category(categories, cache, payload.model_dump())
    except DuplicateCategory as e:
        raise HTTPException(status_code=400, detail=str(e))
    return envelope(category.model_dump(), "Category created successfully")


@router.put("/{slug}")
async def update_category(
    slug: str,
    payload: CategoryUpdate,
    categories = Depends(category_repo_dep),
    cache = Depends(response_cache_dep),
):
    try:
        category = await category_svc.update_category(categories, cache, slug, payload.model_dump(exclude_none=True))
    except CategoryNotFound:
        raise HTTPException(status_code=404, detail="Category not found")
    return envelope(category.model_dump(), "Category updated successfully")


@router.delete("/{slug}")
async def delete_category(
    slug: str,
    categories = Depends(category_repo_dep),
    cars = Depends(car_repo_dep),
    cache = Depends(response_cache_dep),
):
    try:
        category, in_use = await category_svc.delete_category(categories, cars, cache, slug)
    except CategoryNotFound:
        raise HTTPException(status_code=404, detail="Category not found")
    if in_use:
        return envelope(category.model_dump() if category else None, f"Category deactivated ({in_use} cars still use it)")
    return envelope(None, "Category deleted successfully")
