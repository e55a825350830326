"""Listing photos: quota-gated, staged uploads to the media store."""

import logging

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.ext.asyncio import AsyncSession

from equimarket.billing import entitlements
from equimarket.billing.subscription import SubscriptionStateMachine
from equimarket.database import flush_or_fail
from equimarket.errors import InvalidPhotoOrder, MediaStoreError, NotFound
from equimarket.models.horse import HorseListing
from equimarket.models.seller import Seller
from equimarket.services.audit import AuditEvent, AuditSink, record_event
from equimarket.services.media_store import MediaStore
from equimarket.services.subscription_service import reconcile_subscription

logger = logging.getLogger(__name__)


async def upload_photos(
    db: AsyncSession,
    seller: Seller,
    listing: HorseListing,
    contents: list[bytes],
    store: MediaStore,
    machine: SubscriptionStateMachine,
    audit: AuditSink,
) -> HorseListing:
    """Upload every file or none of them.

    The quota is checked before anything is sent to the media store. If one
    upload fails, the ones that already went through are deleted again and
    the listing is left untouched.
    """
    state = await reconcile_subscription(db, seller, machine, audit)
    existing = list(listing.images or [])
    entitlements.can_add_photos(state, len(existing), len(contents)).raise_for_denial()

    uploaded: list[dict] = []
    try:
        for content in contents:
            uploaded.append(await run_in_threadpool(store.upload, content))
    except MediaStoreError:
        logger.warning("Upload to listing %s failed, removing %d staged image(s)", listing.id, len(uploaded))
        for image in uploaded:
            try:
                await run_in_threadpool(store.delete, image["public_id"])
            except MediaStoreError:
                logger.exception("Could not remove staged image %s", image["public_id"])
        raise

    listing.images = existing + uploaded
    await flush_or_fail(db, "save listing photos")

    record_event(
        audit,
        AuditEvent(
            action="listing_update",
            user_id=seller.user_id,
            entity_type="horse",
            entity_id=listing.id,
            description=f"Added {len(uploaded)} photo(s)",
            details={"public_ids": [image["public_id"] for image in uploaded]},
        ),
    )
    return listing


async def delete_photo(
    db: AsyncSession,
    seller: Seller,
    listing: HorseListing,
    public_id: str,
    store: MediaStore,
    audit: AuditSink,
) -> HorseListing:
    images = list(listing.images or [])
    remaining = [image for image in images if image.get("public_id") != public_id]
    if len(remaining) == len(images):
        raise NotFound("Photo")

    await run_in_threadpool(store.delete, public_id)
    listing.images = remaining
    await flush_or_fail(db, "delete listing photo")

    record_event(
        audit,
        AuditEvent(
            action="listing_update",
            user_id=seller.user_id,
            entity_type="horse",
            entity_id=listing.id,
            description="Removed a photo",
            details={"public_id": public_id},
        ),
    )
    return listing


async def reorder_photos(
    db: AsyncSession,
    listing: HorseListing,
    order: list[str],
) -> HorseListing:
    """Reorder images by public id. ``order`` must name every existing image exactly once."""
    by_id = {image.get("public_id"): image for image in listing.images or []}
    if len(order) != len(by_id) or set(order) != set(by_id):
        raise InvalidPhotoOrder()

    listing.images = [by_id[public_id] for public_id in order]
    await flush_or_fail(db, "reorder listing photos")
    return listing
