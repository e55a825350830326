"""Subscription API endpoints — plan selection, Razorpay orders and payment verification."""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from equimarket.api.deps import (
    get_audit_sink,
    get_current_seller,
    get_db,
    get_payment_gate,
    get_plan_catalog,
    get_subscription_machine,
)
from equimarket.billing.payments import PaymentGate
from equimarket.billing.plans import PlanCatalog
from equimarket.billing.subscription import SubscriptionStateMachine
from equimarket.config import settings
from equimarket.errors import PersistenceError
from equimarket.models.seller import Seller
from equimarket.schemas.subscription import (
    CreateOrderRequest,
    OrderResponse,
    PaymentVerifiedResponse,
    PlanResponse,
    PlansListResponse,
    SelectPackageRequest,
    SubscriptionResponse,
    TransactionListResponse,
    TransactionResponse,
    VerifyPaymentRequest,
)
from equimarket.services import subscription_service
from equimarket.services.audit import AuditSink

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/subscription", tags=["subscription"])


@router.get("/plans", response_model=PlansListResponse)
async def list_plans(catalog: PlanCatalog = Depends(get_plan_catalog)) -> PlansListResponse:
    """List available plans (public, no auth required)."""
    return PlansListResponse(
        plans=[
            PlanResponse(
                name=p.name.value,
                price=p.price_minor,
                currency=settings.razorpay.currency,
                duration_days=p.duration_days,
                priority=p.priority,
                features=p.features,
            )
            for p in catalog
        ]
    )


@router.get("", response_model=SubscriptionResponse)
async def get_subscription(
    db: AsyncSession = Depends(get_db),
    seller: Seller = Depends(get_current_seller),
    machine: SubscriptionStateMachine = Depends(get_subscription_machine),
    audit: AuditSink = Depends(get_audit_sink),
) -> SubscriptionResponse:
    """Current subscription, reconciled against the clock."""
    try:
        state = await subscription_service.reconcile_subscription(db, seller, machine, audit)
    except PersistenceError as e:
        if e.view is None:
            raise
        # Serve the reconciled view even though it could not be saved.
        logger.warning("Serving unsaved subscription view for seller %s", seller.id)
        await db.rollback()
        state = e.view
    return SubscriptionResponse.from_state(state)


@router.post("/package", response_model=SubscriptionResponse)
async def select_package(
    body: SelectPackageRequest,
    db: AsyncSession = Depends(get_db),
    seller: Seller = Depends(get_current_seller),
    machine: SubscriptionStateMachine = Depends(get_subscription_machine),
    audit: AuditSink = Depends(get_audit_sink),
) -> SubscriptionResponse:
    """Pick a plan. Paid plans wait for payment; the free tier activates right away."""
    state = await subscription_service.select_package(
        db, seller, body.package, body.queue, machine, audit
    )
    return SubscriptionResponse.from_state(state)


@router.post("/order", response_model=OrderResponse)
async def create_order(
    body: CreateOrderRequest,
    db: AsyncSession = Depends(get_db),
    seller: Seller = Depends(get_current_seller),
    gate: PaymentGate = Depends(get_payment_gate),
) -> OrderResponse:
    """Create a Razorpay order for the plan's catalog price."""
    result = await gate.create_order(db, seller, body.package)
    if result.order is None:
        return OrderResponse(
            amount=0,
            currency=gate.currency,
            package=result.subscription.plan.value,
            subscription=SubscriptionResponse.from_state(result.subscription),
        )
    return OrderResponse(
        order_id=result.order.order_id,
        amount=result.order.amount,
        currency=result.order.currency,
        key_id=result.order.key_id,
        package=result.order.plan.value,
    )


@router.post("/verify-payment", response_model=PaymentVerifiedResponse)
async def verify_payment(
    body: VerifyPaymentRequest,
    db: AsyncSession = Depends(get_db),
    seller: Seller = Depends(get_current_seller),
    gate: PaymentGate = Depends(get_payment_gate),
) -> PaymentVerifiedResponse:
    """Verify the checkout signature, then record the payment and commit the plan."""
    state, transaction = await gate.verify_and_commit(
        db,
        seller,
        order_id=body.razorpay_order_id,
        payment_id=body.razorpay_payment_id,
        signature=body.razorpay_signature,
        plan_name=body.package,
    )
    return PaymentVerifiedResponse(
        message="Payment verified",
        transaction=TransactionResponse.model_validate(transaction),
        subscription=SubscriptionResponse.from_state(state),
    )


@router.get("/transactions", response_model=TransactionListResponse)
async def list_transactions(
    db: AsyncSession = Depends(get_db),
    seller: Seller = Depends(get_current_seller),
) -> TransactionListResponse:
    """Payment history for the current seller, newest first."""
    transactions = await subscription_service.list_transactions(db, seller)
    return TransactionListResponse(
        items=[TransactionResponse.model_validate(t) for t in transactions],
        total=len(transactions),
    )


@router.delete("", response_model=SubscriptionResponse, status_code=status.HTTP_200_OK)
async def cancel_subscription(
    db: AsyncSession = Depends(get_db),
    seller: Seller = Depends(get_current_seller),
    machine: SubscriptionStateMachine = Depends(get_subscription_machine),
    audit: AuditSink = Depends(get_audit_sink),
) -> SubscriptionResponse:
    """Cancel the current plan. Entitlements drop to the baseline immediately."""
    state = await subscription_service.cancel_subscription(db, seller, machine, audit)
    return SubscriptionResponse.from_state(state)
