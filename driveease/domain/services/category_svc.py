# driveease/domain/services/category_svc.py
from __future__ import annotations
from typing import Any, Dict, List, Optional, Tuple
import logging

from pymongo.errors import DuplicateKeyError

from driveease.domain.models.car import Category

logger = logging.getLogger(__name__)


class CategoryNotFound(LookupError):
    pass


class DuplicateCategory(ValueError):
    pass


async def list_all(category_repo) -> List[Category]:
    """Admin view: inactive categories included."""
    return await category_repo.list_all()


async def create_category(category_repo, response_cache, fields: Dict[str, Any]) -> Category:
    category = Category(**fields)
    try:
        await category_repo.create(category)
    except DuplicateKeyError:
        raise DuplicateCategory("Category with this slug already exists")
    await response_cache.invalidate()
    logger.info("create_category slug=%s", category.slug)
    return category


async def update_category(category_repo, response_cache, slug: str, fields: Dict[str, Any]) -> Category:
    category = await category_repo.update(slug, fields) if fields else await category_repo.get(slug)
    if category is None:
        raise CategoryNotFound(slug)
    await response_cache.invalidate()
    logger.info("update_category slug=%s fields=%s", slug, sorted(fields))
    return category


async def delete_category(category_repo, car_repo, response_cache, slug: str) -> Tuple[Optional[Category], int]:
    """
    Hard delete when no car uses the category, otherwise deactivate it so the
    cars keep a valid slug. Returns (deactivated category or None, cars using it).
    """
    if await category_repo.get(slug) is None:
        raise CategoryNotFound(slug)

    in_use = await car_repo.count({"category": slug})
    if in_use:
        category = await category_repo.update(slug, {"is_active": False})
    else:
        category = None
        await category_repo.delete(slug)
    await response_cache.invalidate()
    logger.info("delete_category slug=%s cars_using=%s soft=%s", slug, in_use, bool(in_use))
    return category, in_use
