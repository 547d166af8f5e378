# driveease/api/v1/schemas/cars.py
from datetime import datetime
from pydantic import BaseModel, Field, model_validator
from typing import Any, ClassVar, Dict, List, Literal, Optional

from driveease.domain.models.car import ListingType

Transmission = Literal["automatic", "manual"]
FuelType = Literal["petrol", "diesel", "electric", "hybrid"]
Condition = Literal["New", "Used", "Certified Pre-Owned"]


class CarIn(BaseModel):
    name: Optional[str] = Field(default=None, max_length=50)
    brand: str = Field(..., min_length=1)
    model: str = Field(..., min_length=1)
    year: int = Field(..., ge=1900, le=2100)
    category: str = Field(..., min_length=1)
    rent_price: float = Field(default=0, ge=0)
    sale_price: float = Field(default=0, ge=0)
    listing_type: ListingType = "Sale"
    seats: int = Field(..., ge=1, le=100)
    transmission: Transmission
    fuel_type: FuelType
    features: List[str] = []
    location: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    available: bool = True
    rating: float = Field(default=0, ge=0, le=5)
    review_count: int = Field(default=0, ge=0)
    is_featured: bool = False
    featured_rank: int = 0
    featured_until: Optional[datetime] = None
    image_url: Optional[str] = None
    images: List[str] = []
    mileage: Optional[int] = Field(default=None, ge=0)
    condition: Optional[Condition] = None


class CarUpdate(BaseModel):
    """Partial update: only the fields sent are written."""
    # Fields a stored car can hold as null; everything else must carry a value when sent
    NULLABLE: ClassVar[frozenset] = frozenset({"featured_until", "image_url", "mileage", "condition"})

    name: Optional[str] = Field(default=None, max_length=50)
    brand: Optional[str] = Field(default=None, min_length=1)
    model: Optional[str] = Field(default=None, min_length=1)
    year: Optional[int] = Field(default=None, ge=1900, le=2100)
    category: Optional[str] = Field(default=None, min_length=1)
    rent_price: Optional[float] = Field(default=None, ge=0)
    sale_price: Optional[float] = Field(default=None, ge=0)
    listing_type: Optional[ListingType] = None
    seats: Optional[int] = Field(default=None, ge=1, le=100)
    transmission: Optional[Transmission] = None
    fuel_type: Optional[FuelType] = None
    features: Optional[List[str]] = None
    location: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = Field(default=None, min_length=1)
    available: Optional[bool] = None
    rating: Optional[float] = Field(default=None, ge=0, le=5)
    review_count: Optional[int] = Field(default=None, ge=0)
    is_featured: Optional[bool] = None
    featured_rank: Optional[int] = None
    featured_until: Optional[datetime] = None
    image_url: Optional[str] = None
    images: Optional[List[str]] = None
    mileage: Optional[int] = Field(default=None, ge=0)
    condition: Optional[Condition] = None

    @model_validator(mode="before")
    @classmethod
    def reject_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            nulls = sorted(k for k, v in data.items() if v is None and k in cls.model_fields and k not in cls.NULLABLE)
            if nulls:
                raise ValueError(f"fields cannot be null: {', '.join(nulls)}")
        return data


class AvailabilityQuery(BaseModel):
    query: str = Field(..., min_length=1, max_length=100)
    intent: Literal["sale", "rent"] = "sale"


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatIn(BaseModel):
    message: str = Field(..., min_length=1, max_length=2000)
    history: List[ChatMessage] = []


def envelope(data: Any = None, message: Optional[str] = None) -> Dict[str, Any]:
    """Success envelope shared by every endpoint: {success, data[, message]}."""
    out: Dict[str, Any] = {"success": True, "data": data}
    if message:
        out["message"] = message
    return out
