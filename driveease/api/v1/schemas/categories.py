# driveease/api/v1/schemas/categories.py
from pydantic import BaseModel, Field
from typing import Optional


class CategoryIn(BaseModel):
    slug: str = Field(..., min_length=1, max_length=50, pattern=r"^[a-z0-9-]+$")
    name: str = Field(..., min_length=1, max_length=50)
    icon: str = Field(default="🚗", min_length=1)
    is_active: bool = True
    sort_order: int = 0


class CategoryUpdate(BaseModel):
    """Partial update; null means "leave as is". The slug cannot be renamed, cars reference it."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    icon: Optional[str] = Field(default=None, min_length=1)
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None
