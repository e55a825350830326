"""Pydantic v2 request/response schemas for photo endpoints."""

import uuid

from pydantic import BaseModel, ConfigDict, Field

from equimarket.schemas.listing import ListingImage


class ReorderPhotosRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    order: list[str] = Field(..., min_length=1)  # public ids, new order


class PhotosResponse(BaseModel):
    horse_id: uuid.UUID
    images: list[ListingImage]
    max_photos: int
