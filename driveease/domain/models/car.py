from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Literal
from datetime import datetime

ListingType = Literal["Rent", "Sale", "Both"]


class Car(BaseModel):
    """A vehicle listing as stored in the `cars` collection (`_id` rendered as `id`)."""
    id: str
    name: str
    brand: str
    model: str
    year: int
    category: str                      # registry slug, opaque outside the write boundary
    available: bool = True
    rating: float = Field(default=0, ge=0, le=5)
    review_count: int = 0
    is_featured: bool = False
    featured_rank: int = 0
    featured_until: Optional[datetime] = None
    sale_price: float = 0
    rent_price: float = 0
    listing_type: ListingType = "Sale"
    location: str
    seats: Optional[int] = None
    transmission: Optional[str] = None
    fuel_type: Optional[str] = None
    features: List[str] = []
    description: Optional[str] = None
    image_url: Optional[str] = None
    images: List[str] = []
    mileage: Optional[int] = None
    condition: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"frozen": True}  # immuable = safe

    @field_validator("rating", mode="before")
    @classmethod
    def unset_rating_is_zero(cls, v):
        return 0 if v is None else v


class Category(BaseModel):
    slug: str
    name: str
    icon: str = "🚗"
    is_active: bool = True
    sort_order: int = 0

    model_config = {"frozen": True}


class Recommendation(BaseModel):
    """A car plus why it was picked. `score` is only set on the personalized path."""
    car: Car
    reason: str
    tags: List[str]
    score: Optional[float] = None

    model_config = {"frozen": True}

    def to_public(self) -> dict:
        # Flatten the car so clients get one object per recommendation
        out = self.car.model_dump(mode="json")
        out["reason"] = self.reason
        out["tags"] = list(self.tags)
        if self.score is not None:
            out["score"] = round(self.score, 4)
        return out
