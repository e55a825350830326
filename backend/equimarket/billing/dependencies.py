"""Billing and entitlement dependencies: collaborators injected per request."""

import logging
from functools import lru_cache

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from equimarket.auth.dependencies import get_current_user
from equimarket.billing.payments import PaymentGate
from equimarket.billing.plans import PlanCatalog
from equimarket.billing.razorpay_client import PaymentGateway, get_razorpay_client
from equimarket.billing.subscription import SubscriptionStateMachine
from equimarket.clock import Clock, SystemClock
from equimarket.config import settings
from equimarket.database import get_db
from equimarket.models.seller import Seller
from equimarket.models.user import User
from equimarket.services.audit import AuditSink, LoggingAuditSink
from equimarket.services.media_store import MediaStore, get_cloudinary_store
from equimarket.services.subscription_service import get_seller_for_user

logger = logging.getLogger(__name__)


@lru_cache
def get_plan_catalog() -> PlanCatalog:
    """The plan catalog is immutable, so one instance serves every request."""
    return PlanCatalog()


def get_clock() -> Clock:
    return SystemClock()


def get_subscription_machine(
    catalog: PlanCatalog = Depends(get_plan_catalog),
    clock: Clock = Depends(get_clock),
) -> SubscriptionStateMachine:
    return SubscriptionStateMachine(catalog, clock)


def get_audit_sink() -> AuditSink:
    return LoggingAuditSink()


def get_payment_gateway() -> PaymentGateway:
    return get_razorpay_client()


def get_payment_gate(
    gateway: PaymentGateway = Depends(get_payment_gateway),
    machine: SubscriptionStateMachine = Depends(get_subscription_machine),
    audit: AuditSink = Depends(get_audit_sink),
) -> PaymentGate:
    return PaymentGate(
        gateway,
        machine,
        audit,
        key_id=settings.razorpay.key_id,
        key_secret=settings.razorpay.key_secret,
        currency=settings.razorpay.currency,
        test_mode=settings.razorpay.test_mode,
    )


def get_media_store() -> MediaStore:
    return get_cloudinary_store()


async def get_current_seller(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Seller:
    """Resolve the authenticated user's seller profile (404 if they have none)."""
    return await get_seller_for_user(db, user)
