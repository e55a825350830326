"""Listing lifecycle: creation, activation, boosts, verification and expiry."""

import logging
import uuid
from datetime import timedelta

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from equimarket.billing import entitlements
from equimarket.billing.subscription import SubscriptionState, SubscriptionStateMachine
from equimarket.database import flush_or_fail
from equimarket.errors import Denied, DenyReason, Forbidden, NotFound
from equimarket.models.horse import HorseListing
from equimarket.models.seller import Seller
from equimarket.models.spotlight import Spotlight
from equimarket.models.user import User
from equimarket.schemas.listing import ListingCreate, ListingUpdate
from equimarket.services.audit import AuditEvent, AuditSink, record_event
from equimarket.services.media_store import MediaStore
from equimarket.services.subscription_service import reconcile_subscription

logger = logging.getLogger(__name__)

VERIFICATION_REQUIRED_FIELDS = (
    "name",
    "breed",
    "age",
    "gender",
    "color",
    "price",
    "description",
    "location",
    "specifications",
)


async def create_listing(
    db: AsyncSession,
    seller: Seller,
    body: ListingCreate,
    machine: SubscriptionStateMachine,
    audit: AuditSink,
) -> HorseListing:
    """Create a draft listing. Drafts do not count against the listing quota."""
    listing = HorseListing(
        seller_id=seller.id,
        name=body.name,
        breed=body.breed,
        age=body.age.model_dump() if body.age else None,
        gender=body.gender,
        color=body.color,
        price=body.price,
        description=body.description,
        location=body.location.model_dump() if body.location else None,
        specifications=body.specifications,
        images=[],
        listing_status="draft",
        created_at=machine.clock.now(),
    )
    db.add(listing)
    await flush_or_fail(db, "create listing")
    record_event(
        audit,
        AuditEvent(
            action="listing_update",
            user_id=seller.user_id,
            entity_type="horse",
            entity_id=listing.id,
            description=f"Created draft listing {listing.name}",
        ),
    )
    return listing


async def get_owned_listing(db: AsyncSession, seller: Seller, listing_id: uuid.UUID) -> HorseListing:
    """Fetch a listing the seller owns. NotFound if missing, Forbidden if someone else's."""
    listing = await db.get(HorseListing, listing_id)
    if listing is None:
        raise NotFound("Listing")
    if listing.seller_id != seller.id:
        raise Forbidden()
    return listing


async def update_listing(
    db: AsyncSession,
    seller: Seller,
    listing: HorseListing,
    body: ListingUpdate,
    audit: AuditSink,
) -> HorseListing:
    """Apply the fields the seller explicitly sent."""
    changes = body.model_dump(exclude_unset=True)
    for name, value in changes.items():
        setattr(listing, name, value)
    await flush_or_fail(db, "update listing")

    record_event(
        audit,
        AuditEvent(
            action="listing_update",
            user_id=seller.user_id,
            entity_type="horse",
            entity_id=listing.id,
            description=f"Updated listing {listing.name}",
            details={"fields": sorted(changes)},
        ),
    )
    return listing


async def delete_listing(
    db: AsyncSession,
    seller: Seller,
    listing: HorseListing,
    store: MediaStore,
    audit: AuditSink,
) -> None:
    """Remove the listing's images from the media store, then the listing itself.

    A media store failure aborts before the row is touched; destroying an
    already-removed image is a no-op, so the delete can simply be retried.
    Spotlight rows stay behind, detached, so they keep counting towards the
    seller's monthly quota.
    """
    for image in listing.images or []:
        if image.get("public_id"):
            await run_in_threadpool(store.delete, image["public_id"])

    await db.execute(
        update(Spotlight)
        .where(Spotlight.horse_id == listing.id, Spotlight.status == "active")
        .values(status="cancelled")
    )
    await db.execute(update(Spotlight).where(Spotlight.horse_id == listing.id).values(horse_id=None))
    await db.delete(listing)
    await flush_or_fail(db, "delete listing")

    record_event(
        audit,
        AuditEvent(
            action="listing_delete",
            user_id=seller.user_id,
            entity_type="horse",
            entity_id=listing.id,
            description=f"Deleted listing {listing.name}",
            details={"images_removed": len(listing.images or [])},
        ),
    )
    logger.info("Seller %s deleted listing %s", seller.id, listing.id)


async def count_active_listings(db: AsyncSession, seller: Seller) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(HorseListing)
        .where(
            HorseListing.seller_id == seller.id,
            HorseListing.listing_status == "active",
        )
    )
    return result.scalar_one()


async def activate_listing(
    db: AsyncSession,
    seller: Seller,
    listing: HorseListing,
    machine: SubscriptionStateMachine,
    audit: AuditSink,
) -> HorseListing:
    """Publish a draft (or relist an expired listing) if the plan has room for it."""
    if listing.listing_status == "active":
        raise Denied(DenyReason.ALREADY_ACTIVE, "Listing is already active")
    if listing.listing_status == "sold":
        raise Denied(DenyReason.ALREADY_ACTIVE, "Listing has been sold")

    state = await reconcile_subscription(db, seller, machine, audit)
    active_count = await count_active_listings(db, seller)
    entitlements.can_activate_listing(state, active_count).raise_for_denial()

    listing.listing_status = "active"
    listing.activated_at = machine.clock.now()
    await flush_or_fail(db, "activate listing")

    record_event(
        audit,
        AuditEvent(
            action="listing_activate",
            user_id=seller.user_id,
            entity_type="horse",
            entity_id=listing.id,
            description=f"Activated listing {listing.name}",
            details={"active_listings": active_count + 1, "plan": state.plan.value if state.plan else None},
        ),
    )
    return listing


async def boost_listing(
    db: AsyncSession,
    seller: Seller,
    listing: HorseListing,
    machine: SubscriptionStateMachine,
    audit: AuditSink,
) -> HorseListing:
    """Open a boost window of the plan's boost duration. An unexpired boost is never extended."""
    state = await reconcile_subscription(db, seller, machine, audit)
    now = machine.clock.now()
    entitlements.can_boost(state, listing, now).raise_for_denial()

    duration = state.features.featured_listing_boosts.duration_days
    listing.boost_active = True
    listing.boost_start_date = now
    listing.boost_end_date = now + timedelta(days=duration)
    await flush_or_fail(db, "boost listing")

    record_event(
        audit,
        AuditEvent(
            action="listing_boost",
            user_id=seller.user_id,
            entity_type="horse",
            entity_id=listing.id,
            description=f"Boosted listing {listing.name} for {duration} days",
            details={"end_date": listing.boost_end_date.isoformat()},
        ),
    )
    logger.info("Boosted listing %s until %s", listing.id, listing.boost_end_date.isoformat())
    return listing


def missing_verification_fields(listing: HorseListing) -> list[str]:
    missing = [name for name in VERIFICATION_REQUIRED_FIELDS if getattr(listing, name) in (None, "", {}, [])]
    if not listing.images:
        missing.append("images")
    return missing


async def submit_for_verification(
    db: AsyncSession,
    seller: Seller,
    listing: HorseListing,
    user: User,
    machine: SubscriptionStateMachine,
    audit: AuditSink,
    documents: list[str] | None = None,
    notes: str | None = None,
) -> HorseListing:
    missing = missing_verification_fields(listing)
    if missing:
        raise Denied(
            DenyReason.MISSING_FIELDS,
            "Listing is missing fields required for verification",
            fields=missing,
        )
    if listing.verification_status == "pending":
        raise Denied(DenyReason.ALREADY_ACTIVE, "Verification request already pending")

    now = machine.clock.now()
    listing.verification_status = "pending"
    listing.verification_details = {
        "submitted_by": str(user.id),
        "submitted_at": now.isoformat(),
        "documents": list(documents or []),
        "notes": notes,
    }
    await flush_or_fail(db, "submit listing for verification")

    record_event(
        audit,
        AuditEvent(
            action="listing_verify_submit",
            user_id=user.id,
            entity_type="horse",
            entity_id=listing.id,
            description=f"Submitted listing {listing.name} for verification",
            details={"documents": len(documents or [])},
        ),
    )
    return listing


async def listing_limits(
    db: AsyncSession,
    seller: Seller,
    machine: SubscriptionStateMachine,
    audit: AuditSink,
) -> tuple[SubscriptionState, int]:
    """Reconciled subscription plus the seller's active listing count."""
    state = await reconcile_subscription(db, seller, machine, audit)
    return state, await count_active_listings(db, seller)


async def sweep_expiry(
    db: AsyncSession,
    machine: SubscriptionStateMachine,
    audit: AuditSink,
) -> int:
    """Expire active listings older than their seller's plan allows.

    The allowed age comes from each seller's reconciled plan at the time of the
    sweep, so upgrading extends listings that are already live and a lapsed
    plan (zero listing duration) expires them all. Age runs from activation.
    """
    now = machine.clock.now()
    result = await db.execute(
        select(HorseListing, Seller)
        .join(Seller, HorseListing.seller_id == Seller.id)
        .where(HorseListing.listing_status == "active")
        .order_by(HorseListing.seller_id)
    )

    expired = 0
    states: dict[uuid.UUID, SubscriptionState] = {}
    for listing, seller in result.all():
        state = states.get(seller.id)
        if state is None:
            state = await reconcile_subscription(db, seller, machine, audit)
            states[seller.id] = state

        started = listing.activated_at or listing.created_at
        if started + timedelta(days=state.features.listing_duration_days) >= now:
            continue

        listing.listing_status = "expired"
        expired += 1
        record_event(
            audit,
            AuditEvent(
                action="listing_expire",
                user_id=seller.user_id,
                entity_type="horse",
                entity_id=listing.id,
                description=f"Listing {listing.name} expired",
                details={"plan": state.plan.value if state.plan else None},
            ),
        )

    await flush_or_fail(db, "expire listings")
    logger.info("Expiry sweep at %s expired %d listing(s)", now.isoformat(), expired)
    return expired
