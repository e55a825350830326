"""Pydantic v2 request/response schemas for horse listing endpoints."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from equimarket.schemas.seller import Location

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class HorseAge(BaseModel):
    years: int = Field(..., ge=0, le=60)
    months: int = Field(0, ge=0, le=11)


class ListingCreate(BaseModel):
    """A new listing. It starts as a draft; images are added through the photo endpoints."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=255)
    breed: str | None = Field(None, max_length=100)
    age: HorseAge | None = None
    gender: str | None = Field(None, pattern="^(Stallion|Mare|Gelding|Other)$")
    color: str | None = Field(None, max_length=50)
    price: int | None = Field(None, ge=0)
    description: str | None = None
    location: Location | None = None
    specifications: dict | None = None


class ListingUpdate(BaseModel):
    """Partial update of the horse details. Only explicitly set fields are changed.

    Status, boost, spotlight and verification fields are owned by their own
    endpoints and cannot be set here.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(None, min_length=1, max_length=255)
    breed: str | None = Field(None, max_length=100)
    age: HorseAge | None = None
    gender: str | None = Field(None, pattern="^(Stallion|Mare|Gelding|Other)$")
    color: str | None = Field(None, max_length=50)
    price: int | None = Field(None, ge=0)
    description: str | None = None
    location: Location | None = None
    specifications: dict | None = None

    @field_validator("name")
    @classmethod
    def _name_required(cls, value: str | None) -> str:
        if value is None:
            raise ValueError("name cannot be cleared")
        return value


class VerificationRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    documents: list[str] = []
    notes: str | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class ListingImage(BaseModel):
    url: str | None = None
    public_id: str
    thumbnail_url: str | None = None
    width: int | None = None
    height: int | None = None
    format: str | None = None


class ListingResponse(BaseModel):
    id: uuid.UUID
    seller_id: uuid.UUID
    name: str
    breed: str | None = None
    age: dict | None = None
    gender: str | None = None
    color: str | None = None
    price: int | None = None
    description: str | None = None
    location: dict | None = None
    specifications: dict | None = None
    images: list[ListingImage]
    listing_status: str
    activated_at: datetime | None = None
    verification_status: str
    boost_start_date: datetime | None = None
    boost_end_date: datetime | None = None
    featured_end_date: datetime | None = None
    is_boosted: bool = False
    is_featured: bool = False
    created_at: datetime

    @classmethod
    def from_listing(cls, listing, now: datetime) -> "ListingResponse":
        """Build from a HorseListing, evaluating boost and featured windows against ``now``."""
        data = {
            name: getattr(listing, name)
            for name in cls.model_fields
            if name not in ("is_boosted", "is_featured")
        }
        return cls(**data, is_boosted=listing.is_boosted(now), is_featured=listing.is_featured(now))


class ListingLimitsResponse(BaseModel):
    plan: str | None
    status: str
    max_listings: int
    active_listings: int
    remaining: int
    listing_duration_days: int
    boost_duration_days: int


class VerificationStatusResponse(BaseModel):
    listing_id: uuid.UUID
    verification_status: str
    verification_details: dict | None = None


class MessageResponse(BaseModel):
    message: str
