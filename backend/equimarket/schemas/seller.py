"""Pydantic v2 request/response schemas for seller profile endpoints."""

import uuid

from pydantic import BaseModel, ConfigDict, Field

from equimarket.schemas.subscription import SubscriptionResponse

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class Location(BaseModel):
    state: str | None = Field(None, max_length=100)
    city: str | None = Field(None, max_length=100)
    pincode: str | None = Field(None, max_length=20)


class ContactDetails(BaseModel):
    phone: str | None = Field(None, max_length=30)
    email: str | None = Field(None, max_length=255)
    whatsapp: str | None = Field(None, max_length=30)


class SellerProfileCreate(BaseModel):
    """Fields a user supplies when registering as a seller. Nothing else is accepted."""

    model_config = ConfigDict(extra="forbid")

    business_name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    location: Location | None = None
    contact_details: ContactDetails | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class SellerResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    business_name: str
    description: str | None = None
    location: dict | None = None
    contact_details: dict | None = None
    subscription: SubscriptionResponse
