"""Homepage spotlights and featured listings."""

import logging
from datetime import timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from equimarket.billing import entitlements
from equimarket.billing.subscription import SubscriptionStateMachine
from equimarket.clock import start_of_month
from equimarket.database import flush_or_fail
from equimarket.errors import Denied, DenyReason
from equimarket.models.horse import HorseListing
from equimarket.models.seller import Seller
from equimarket.models.spotlight import Spotlight
from equimarket.models.user import User
from equimarket.services.audit import AuditEvent, AuditSink, record_event
from equimarket.services.subscription_service import reconcile_subscription

logger = logging.getLogger(__name__)


async def count_monthly_spotlights(db: AsyncSession, seller: Seller, machine: SubscriptionStateMachine) -> int:
    """Spotlights the seller started since the first of the current calendar month."""
    month_start = start_of_month(machine.clock.now())
    result = await db.execute(
        select(func.count())
        .select_from(Spotlight)
        .where(
            Spotlight.seller_id == seller.id,
            Spotlight.start_date >= month_start,
        )
    )
    return result.scalar_one()


async def create_spotlight(
    db: AsyncSession,
    seller: Seller,
    listing: HorseListing,
    user: User,
    machine: SubscriptionStateMachine,
    audit: AuditSink,
) -> Spotlight:
    state = await reconcile_subscription(db, seller, machine, audit)
    monthly_count = await count_monthly_spotlights(db, seller, machine)
    entitlements.can_spotlight(state, monthly_count).raise_for_denial()

    now = machine.clock.now()
    if listing.is_featured(now):
        raise Denied(DenyReason.ALREADY_ACTIVE, "Listing is already in the spotlight")

    end = now + timedelta(days=state.features.spotlight_duration_days)
    spotlight = Spotlight(
        horse_id=listing.id,
        seller_id=seller.id,
        start_date=now,
        end_date=end,
        status="active",
        plan=state.plan.value if state.plan else "",
        created_by=user.id,
    )
    db.add(spotlight)

    listing.featured_active = True
    listing.featured_start_date = now
    listing.featured_end_date = end
    await flush_or_fail(db, "create spotlight")

    record_event(
        audit,
        AuditEvent(
            action="add_spotlight",
            user_id=user.id,
            entity_type="horse",
            entity_id=listing.id,
            description=f"Spotlighted {listing.name} until {end.isoformat()}",
            details={"spotlight_id": str(spotlight.id), "monthly_count": monthly_count + 1},
        ),
    )
    logger.info("Spotlight %s for listing %s until %s", spotlight.id, listing.id, end.isoformat())
    return spotlight


async def list_featured_listings(db: AsyncSession, machine: SubscriptionStateMachine) -> list[HorseListing]:
    """Active listings with a live spotlight, latest spotlight first."""
    now = machine.clock.now()
    result = await db.execute(
        select(HorseListing)
        .join(Spotlight, Spotlight.horse_id == HorseListing.id)
        .where(
            Spotlight.status == "active",
            Spotlight.end_date > now,
            HorseListing.listing_status == "active",
        )
        .order_by(Spotlight.start_date.desc())
    )
    return list(result.scalars().unique().all())


async def spotlight_history(db: AsyncSession, listing: HorseListing) -> list[Spotlight]:
    """Every spotlight the listing has had, newest first."""
    result = await db.execute(
        select(Spotlight)
        .where(Spotlight.horse_id == listing.id)
        .order_by(Spotlight.start_date.desc())
    )
    return list(result.scalars().all())
