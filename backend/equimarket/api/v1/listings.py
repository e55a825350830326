"""Horse listing API routes — ownership-scoped, gated by the seller's plan."""

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from equimarket.api.deps import (
    get_audit_sink,
    get_current_user,
    get_current_seller,
    get_db,
    get_media_store,
    get_subscription_machine,
)
from equimarket.billing.subscription import SubscriptionStateMachine
from equimarket.models.seller import Seller
from equimarket.models.user import User
from equimarket.schemas.listing import (
    ListingCreate,
    ListingLimitsResponse,
    ListingResponse,
    ListingUpdate,
    MessageResponse,
    VerificationRequest,
    VerificationStatusResponse,
)
from equimarket.services import listing_service
from equimarket.services.audit import AuditSink
from equimarket.services.media_store import MediaStore

router = APIRouter(prefix="/api/v1/listings", tags=["listings"])


@router.post(
    "",
    response_model=ListingResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a draft listing",
)
async def create_listing(
    body: ListingCreate,
    db: AsyncSession = Depends(get_db),
    seller: Seller = Depends(get_current_seller),
    machine: SubscriptionStateMachine = Depends(get_subscription_machine),
    audit: AuditSink = Depends(get_audit_sink),
) -> ListingResponse:
    listing = await listing_service.create_listing(db, seller, body, machine, audit)
    return ListingResponse.from_listing(listing, machine.clock.now())


@router.get("/limits", response_model=ListingLimitsResponse, summary="Listing quota for the current plan")
async def get_limits(
    db: AsyncSession = Depends(get_db),
    seller: Seller = Depends(get_current_seller),
    machine: SubscriptionStateMachine = Depends(get_subscription_machine),
    audit: AuditSink = Depends(get_audit_sink),
) -> ListingLimitsResponse:
    state, active = await listing_service.listing_limits(db, seller, machine, audit)
    features = state.features
    return ListingLimitsResponse(
        plan=state.plan.value if state.plan else None,
        status=state.status.value,
        max_listings=features.max_listings,
        active_listings=active,
        remaining=max(features.max_listings - active, 0),
        listing_duration_days=features.listing_duration_days,
        boost_duration_days=features.featured_listing_boosts.duration_days,
    )


@router.get("/{listing_id}", response_model=ListingResponse, summary="Get a listing by ID")
async def get_listing(
    listing_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    seller: Seller = Depends(get_current_seller),
    machine: SubscriptionStateMachine = Depends(get_subscription_machine),
) -> ListingResponse:
    listing = await listing_service.get_owned_listing(db, seller, listing_id)
    return ListingResponse.from_listing(listing, machine.clock.now())


@router.patch("/{listing_id}", response_model=ListingResponse, summary="Update a listing's details")
async def update_listing(
    listing_id: uuid.UUID,
    body: ListingUpdate,
    db: AsyncSession = Depends(get_db),
    seller: Seller = Depends(get_current_seller),
    machine: SubscriptionStateMachine = Depends(get_subscription_machine),
    audit: AuditSink = Depends(get_audit_sink),
) -> ListingResponse:
    listing = await listing_service.get_owned_listing(db, seller, listing_id)
    listing = await listing_service.update_listing(db, seller, listing, body, audit)
    return ListingResponse.from_listing(listing, machine.clock.now())


@router.delete("/{listing_id}", response_model=MessageResponse, summary="Delete a listing and its photos")
async def delete_listing(
    listing_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    seller: Seller = Depends(get_current_seller),
    store: MediaStore = Depends(get_media_store),
    audit: AuditSink = Depends(get_audit_sink),
) -> MessageResponse:
    listing = await listing_service.get_owned_listing(db, seller, listing_id)
    await listing_service.delete_listing(db, seller, listing, store, audit)
    return MessageResponse(message="Listing deleted")


@router.post("/{listing_id}/activate", response_model=ListingResponse, summary="Publish a listing")
async def activate_listing(
    listing_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    seller: Seller = Depends(get_current_seller),
    machine: SubscriptionStateMachine = Depends(get_subscription_machine),
    audit: AuditSink = Depends(get_audit_sink),
) -> ListingResponse:
    listing = await listing_service.get_owned_listing(db, seller, listing_id)
    listing = await listing_service.activate_listing(db, seller, listing, machine, audit)
    return ListingResponse.from_listing(listing, machine.clock.now())


@router.post("/{listing_id}/boost", response_model=ListingResponse, summary="Boost a listing")
async def boost_listing(
    listing_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    seller: Seller = Depends(get_current_seller),
    machine: SubscriptionStateMachine = Depends(get_subscription_machine),
    audit: AuditSink = Depends(get_audit_sink),
) -> ListingResponse:
    listing = await listing_service.get_owned_listing(db, seller, listing_id)
    listing = await listing_service.boost_listing(db, seller, listing, machine, audit)
    return ListingResponse.from_listing(listing, machine.clock.now())


@router.post(
    "/{listing_id}/verify",
    response_model=VerificationStatusResponse,
    summary="Submit a listing for verification",
)
async def submit_for_verification(
    listing_id: uuid.UUID,
    body: VerificationRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    seller: Seller = Depends(get_current_seller),
    machine: SubscriptionStateMachine = Depends(get_subscription_machine),
    audit: AuditSink = Depends(get_audit_sink),
) -> VerificationStatusResponse:
    listing = await listing_service.get_owned_listing(db, seller, listing_id)
    listing = await listing_service.submit_for_verification(
        db, seller, listing, current_user, machine, audit, body.documents, body.notes
    )
    return VerificationStatusResponse(
        listing_id=listing.id,
        verification_status=listing.verification_status,
        verification_details=listing.verification_details,
    )


@router.get(
    "/{listing_id}/verification",
    response_model=VerificationStatusResponse,
    summary="Get a listing's verification status",
)
async def get_verification_status(
    listing_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    seller: Seller = Depends(get_current_seller),
) -> VerificationStatusResponse:
    listing = await listing_service.get_owned_listing(db, seller, listing_id)
    return VerificationStatusResponse(
        listing_id=listing.id,
        verification_status=listing.verification_status,
        verification_details=listing.verification_details,
    )
