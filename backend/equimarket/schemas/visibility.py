"""Pydantic v2 request/response schemas for spotlight and featured listing endpoints."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from equimarket.schemas.listing import ListingResponse


class SpotlightResponse(BaseModel):
    id: uuid.UUID
    horse_id: uuid.UUID | None
    seller_id: uuid.UUID
    start_date: datetime
    end_date: datetime
    status: str
    plan: str

    model_config = ConfigDict(from_attributes=True)


class FeaturedListResponse(BaseModel):
    items: list[ListingResponse]
    total: int


class SpotlightHistoryItem(BaseModel):
    id: uuid.UUID
    start_date: datetime
    end_date: datetime
    status: str
    plan: str
    is_live: bool


class VisibilityStatsResponse(BaseModel):
    """Promotion state of one listing as its owner sees it."""

    horse_id: uuid.UUID
    is_featured: bool
    featured_end_date: datetime | None = None
    is_boosted: bool
    boost_end_date: datetime | None = None
    total_spotlights: int
    spotlight_history: list[SpotlightHistoryItem]

    @classmethod
    def from_listing(cls, listing, spotlights, now: datetime) -> "VisibilityStatsResponse":
        featured = listing.is_featured(now)
        boosted = listing.is_boosted(now)
        return cls(
            horse_id=listing.id,
            is_featured=featured,
            featured_end_date=listing.featured_end_date if featured else None,
            is_boosted=boosted,
            boost_end_date=listing.boost_end_date if boosted else None,
            total_spotlights=len(spotlights),
            spotlight_history=[
                SpotlightHistoryItem(
                    id=s.id,
                    start_date=s.start_date,
                    end_date=s.end_date,
                    status=s.status,
                    plan=s.plan,
                    is_live=s.is_live(now),
                )
                for s in spotlights
            ],
        )
