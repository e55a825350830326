"""Subscription service: persistence around the subscription state machine."""

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from equimarket.billing.plans import PlanName
from equimarket.billing.subscription import (
    SubscriptionState,
    SubscriptionStateMachine,
    SubscriptionStatus,
)
from equimarket.database import flush_or_fail
from equimarket.errors import Conflict, NotFound, PersistenceError
from equimarket.models.seller import Seller
from equimarket.models.transaction import Transaction
from equimarket.models.user import User
from equimarket.schemas.seller import SellerProfileCreate
from equimarket.services.audit import AuditEvent, AuditSink, record_event

logger = logging.getLogger(__name__)


async def get_seller_for_user(db: AsyncSession, user: User) -> Seller:
    """Return the user's seller profile or raise NotFound."""
    result = await db.execute(select(Seller).where(Seller.user_id == user.id))
    seller = result.scalar_one_or_none()
    if seller is None:
        raise NotFound("Seller")
    return seller


async def create_seller_profile(
    db: AsyncSession, user: User, profile: SellerProfileCreate
) -> Seller:
    """Create a seller profile with an inactive, no-plan subscription."""
    result = await db.execute(select(Seller.id).where(Seller.user_id == user.id))
    if result.scalar_one_or_none() is not None:
        raise Conflict("Seller profile already exists")

    seller = Seller(
        user_id=user.id,
        business_name=profile.business_name,
        description=profile.description,
        location=profile.location.model_dump() if profile.location else None,
        contact_details=profile.contact_details.model_dump() if profile.contact_details else None,
        subscription=SubscriptionState().to_document(),
    )
    db.add(seller)
    user.promote_to_seller()
    await flush_or_fail(db, "create seller profile")
    logger.info("Created seller profile %s for user %s", seller.id, user.id)
    return seller


async def reconcile_subscription(
    db: AsyncSession,
    seller: Seller,
    machine: SubscriptionStateMachine,
    audit: AuditSink,
) -> SubscriptionState:
    """Run the lazy expiry check and persist the result if anything moved.

    If the write fails, PersistenceError carries the reconciled state in
    ``view`` so a read-only caller can still show it.
    """
    outcome = machine.reconcile(seller.subscription_state)
    if not outcome.changed:
        return outcome.state

    seller.store_subscription(outcome.state)
    try:
        await db.flush()
    except SQLAlchemyError as e:
        logger.error("Could not persist reconciled subscription for seller %s: %s", seller.id, e)
        raise PersistenceError("Could not persist subscription state", view=outcome.state) from e

    for plan in outcome.activated:
        record_event(
            audit,
            AuditEvent(
                action="subscription_purchase",
                user_id=seller.user_id,
                entity_type="subscription",
                entity_id=seller.id,
                description=f"Queued plan {plan.value} activated",
                details={"plan": plan.value},
            ),
        )
    if outcome.expired:
        record_event(
            audit,
            AuditEvent(
                action="subscription_expire",
                user_id=seller.user_id,
                entity_type="subscription",
                entity_id=seller.id,
                description=f"Plan {outcome.state.plan} expired",
                details={"plan": outcome.state.plan.value if outcome.state.plan else None},
            ),
        )
    return outcome.state


async def record_transaction(
    db: AsyncSession,
    seller: Seller,
    *,
    plan: PlanName,
    amount: int,
    currency: str,
    payment_method: str,
    window: tuple[datetime, datetime],
    created_at: datetime,
    order_id: str | None = None,
    payment_id: str | None = None,
    signature: str | None = None,
) -> Transaction:
    """Insert a completed subscription transaction and flush so it has an id."""
    start, end = window
    transaction = Transaction(
        seller_id=seller.id,
        type="subscription",
        amount=amount,
        currency=currency,
        status="completed",
        payment_method=payment_method,
        order_id=order_id,
        payment_id=payment_id,
        signature=signature,
        subscription_details={
            "package": plan.value,
            "duration_days": (end - start).days,
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
        },
        created_at=created_at,
    )
    db.add(transaction)
    await flush_or_fail(db, "record transaction")
    return transaction


async def activate_free_plan(
    db: AsyncSession,
    seller: Seller,
    machine: SubscriptionStateMachine,
    audit: AuditSink,
    plan_name: str | PlanName = PlanName.FREE,
) -> tuple[SubscriptionState, Transaction]:
    """Zero-cost tiers skip the gateway: record a free transaction and activate."""
    state = await reconcile_subscription(db, seller, machine, audit)
    plan = machine.catalog.resolve(plan_name)
    machine.check_upgrade(state, plan)

    transaction = await record_transaction(
        db,
        seller,
        plan=plan,
        amount=0,
        currency="INR",
        payment_method="free",
        window=machine.activation_window(state, plan),
        created_at=machine.clock.now(),
    )
    new_state = machine.confirm_payment(state, plan, transaction.id)
    seller.store_subscription(new_state)
    await flush_or_fail(db, "activate free plan")

    record_event(
        audit,
        AuditEvent(
            action="subscription_purchase",
            user_id=seller.user_id,
            entity_type="subscription",
            entity_id=seller.id,
            description=f"Activated {plan.value} plan",
            details={"plan": plan.value, "transaction_id": str(transaction.id)},
        ),
    )
    return new_state, transaction


async def select_package(
    db: AsyncSession,
    seller: Seller,
    plan_name: str,
    queue: bool,
    machine: SubscriptionStateMachine,
    audit: AuditSink,
) -> SubscriptionState:
    """Select a plan for the seller. Free tiers activate immediately."""
    state = await reconcile_subscription(db, seller, machine, audit)
    plan = machine.catalog.resolve(plan_name)

    if machine.catalog.get(plan).is_free:
        new_state, _ = await activate_free_plan(db, seller, machine, audit, plan)
        return new_state

    new_state = machine.select_package(state, plan_name, queue=queue)
    seller.store_subscription(new_state)
    await flush_or_fail(db, "select package")

    if queue and state.is_active:
        record_event(
            audit,
            AuditEvent(
                action="subscription_queue",
                user_id=seller.user_id,
                entity_type="subscription",
                entity_id=seller.id,
                description=f"Reserved {plan.value} after current {state.plan.value if state.plan else None}",
                details={"plan": plan.value},
            ),
        )
    logger.info("Seller %s selected %s (status=%s)", seller.id, plan.value, new_state.status.value)
    return new_state


async def cancel_subscription(
    db: AsyncSession,
    seller: Seller,
    machine: SubscriptionStateMachine,
    audit: AuditSink,
) -> SubscriptionState:
    """Cancel the running or pending plan and drop the queue."""
    state = await reconcile_subscription(db, seller, machine, audit)
    if state.status not in (SubscriptionStatus.ACTIVE, SubscriptionStatus.PENDING_PAYMENT):
        raise Conflict("No active subscription to cancel")

    new_state = machine.cancel(state)
    seller.store_subscription(new_state)
    await flush_or_fail(db, "cancel subscription")
    logger.info("Cancelled subscription %s for seller %s", state.plan, seller.id)
    return new_state


async def list_transactions(db: AsyncSession, seller: Seller) -> list[Transaction]:
    """Payment history, newest first."""
    result = await db.execute(
        select(Transaction)
        .where(Transaction.seller_id == seller.id)
        .order_by(Transaction.created_at.desc())
    )
    return list(result.scalars().all())


async def find_completed_transaction(db: AsyncSession, order_id: str) -> Transaction | None:
    result = await db.execute(
        select(Transaction).where(
            Transaction.order_id == order_id,
            Transaction.status == "completed",
        )
    )
    return result.scalars().first()
