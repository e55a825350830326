"""Visibility API routes — homepage spotlights and featured listings."""

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from equimarket.api.deps import (
    get_audit_sink,
    get_current_user,
    get_current_seller,
    get_db,
    get_subscription_machine,
)
from equimarket.billing.subscription import SubscriptionStateMachine
from equimarket.models.seller import Seller
from equimarket.models.user import User
from equimarket.schemas.listing import ListingResponse
from equimarket.schemas.visibility import FeaturedListResponse, SpotlightResponse, VisibilityStatsResponse
from equimarket.services import listing_service, spotlight_service
from equimarket.services.audit import AuditSink

router = APIRouter(prefix="/api/v1/visibility", tags=["visibility"])


@router.post(
    "/spotlight/{horse_id}",
    response_model=SpotlightResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Put a listing in the homepage spotlight",
)
async def create_spotlight(
    horse_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    seller: Seller = Depends(get_current_seller),
    machine: SubscriptionStateMachine = Depends(get_subscription_machine),
    audit: AuditSink = Depends(get_audit_sink),
) -> SpotlightResponse:
    listing = await listing_service.get_owned_listing(db, seller, horse_id)
    spotlight = await spotlight_service.create_spotlight(db, seller, listing, current_user, machine, audit)
    return SpotlightResponse.model_validate(spotlight)


@router.get("/featured", response_model=FeaturedListResponse, summary="Listings currently in the spotlight")
async def list_featured(
    db: AsyncSession = Depends(get_db),
    machine: SubscriptionStateMachine = Depends(get_subscription_machine),
) -> FeaturedListResponse:
    """Public, no auth required."""
    now = machine.clock.now()
    listings = await spotlight_service.list_featured_listings(db, machine)
    return FeaturedListResponse(
        items=[ListingResponse.from_listing(listing, now) for listing in listings],
        total=len(listings),
    )


@router.get(
    "/stats/{horse_id}",
    response_model=VisibilityStatsResponse,
    summary="Spotlight history and promotion state of one of your listings",
)
async def visibility_stats(
    horse_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    seller: Seller = Depends(get_current_seller),
    machine: SubscriptionStateMachine = Depends(get_subscription_machine),
) -> VisibilityStatsResponse:
    listing = await listing_service.get_owned_listing(db, seller, horse_id)
    spotlights = await spotlight_service.spotlight_history(db, listing)
    return VisibilityStatsResponse.from_listing(listing, spotlights, machine.clock.now())
