"""Listing photo API routes."""

import uuid

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from equimarket.api.deps import (
    get_audit_sink,
    get_current_seller,
    get_db,
    get_media_store,
    get_subscription_machine,
)
from equimarket.billing.subscription import SubscriptionState, SubscriptionStateMachine
from equimarket.models.horse import HorseListing
from equimarket.models.seller import Seller
from equimarket.schemas.photo import PhotosResponse, ReorderPhotosRequest
from equimarket.services import listing_service, photo_service
from equimarket.services.audit import AuditSink
from equimarket.services.media_store import MediaStore
from equimarket.services.subscription_service import reconcile_subscription

router = APIRouter(prefix="/api/v1/photos", tags=["photos"])


def _photos_response(listing: HorseListing, state: SubscriptionState) -> PhotosResponse:
    return PhotosResponse(
        horse_id=listing.id,
        images=listing.images,
        max_photos=state.features.max_photos,
    )


@router.post("/upload/{horse_id}", response_model=PhotosResponse, summary="Upload listing photos")
async def upload_photos(
    horse_id: uuid.UUID,
    files: list[UploadFile] = File(...),
    db: AsyncSession = Depends(get_db),
    seller: Seller = Depends(get_current_seller),
    store: MediaStore = Depends(get_media_store),
    machine: SubscriptionStateMachine = Depends(get_subscription_machine),
    audit: AuditSink = Depends(get_audit_sink),
) -> PhotosResponse:
    listing = await listing_service.get_owned_listing(db, seller, horse_id)
    contents = [await upload.read() for upload in files]
    listing = await photo_service.upload_photos(db, seller, listing, contents, store, machine, audit)
    return _photos_response(listing, seller.subscription_state)


@router.put("/{horse_id}/reorder", response_model=PhotosResponse, summary="Reorder listing photos")
async def reorder_photos(
    horse_id: uuid.UUID,
    body: ReorderPhotosRequest,
    db: AsyncSession = Depends(get_db),
    seller: Seller = Depends(get_current_seller),
    machine: SubscriptionStateMachine = Depends(get_subscription_machine),
    audit: AuditSink = Depends(get_audit_sink),
) -> PhotosResponse:
    listing = await listing_service.get_owned_listing(db, seller, horse_id)
    state = await reconcile_subscription(db, seller, machine, audit)
    listing = await photo_service.reorder_photos(db, listing, body.order)
    return _photos_response(listing, state)


@router.delete("/{horse_id}/{public_id:path}", response_model=PhotosResponse, summary="Delete a listing photo")
async def delete_photo(
    horse_id: uuid.UUID,
    public_id: str,
    db: AsyncSession = Depends(get_db),
    seller: Seller = Depends(get_current_seller),
    store: MediaStore = Depends(get_media_store),
    machine: SubscriptionStateMachine = Depends(get_subscription_machine),
    audit: AuditSink = Depends(get_audit_sink),
) -> PhotosResponse:
    listing = await listing_service.get_owned_listing(db, seller, horse_id)
    state = await reconcile_subscription(db, seller, machine, audit)
    listing = await photo_service.delete_photo(db, seller, listing, public_id, store, audit)
    return _photos_response(listing, state)
