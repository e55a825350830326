"""Pydantic v2 request/response schemas for subscription and payment endpoints."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from equimarket.billing.plans import FeatureBundle
from equimarket.billing.subscription import SubscriptionState

# --- Request schemas ---


class SelectPackageRequest(BaseModel):
    """Choose a plan. ``queue`` reserves it behind the running plan instead."""

    model_config = ConfigDict(extra="forbid")

    package: str = Field(..., min_length=1)
    queue: bool = False


class CreateOrderRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    package: str = Field(..., min_length=1)


class VerifyPaymentRequest(BaseModel):
    """Checkout result posted back by the client after paying on the gateway."""

    model_config = ConfigDict(extra="forbid")

    razorpay_order_id: str = Field(..., min_length=1)
    razorpay_payment_id: str = Field(..., min_length=1)
    razorpay_signature: str = Field(..., min_length=1)
    package: str = Field(..., min_length=1)


# --- Response schemas ---


class PlanResponse(BaseModel):
    """Plan details for display."""

    name: str
    price: int  # minor units (paise)
    currency: str
    duration_days: int
    priority: int
    features: FeatureBundle


class PlansListResponse(BaseModel):
    plans: list[PlanResponse]


class QueuedPlanResponse(BaseModel):
    plan: str
    transaction_id: uuid.UUID | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None


class SubscriptionResponse(BaseModel):
    """A seller's (reconciled) subscription."""

    plan: str | None
    status: str
    start_date: datetime | None
    end_date: datetime | None
    features: FeatureBundle
    last_payment: uuid.UUID | None
    queued_plans: list[QueuedPlanResponse]

    @classmethod
    def from_state(cls, state: SubscriptionState) -> "SubscriptionResponse":
        return cls(
            plan=state.plan.value if state.plan else None,
            status=state.status.value,
            start_date=state.start_date,
            end_date=state.end_date,
            features=state.features,
            last_payment=state.last_payment,
            queued_plans=[
                QueuedPlanResponse(
                    plan=q.plan.value,
                    transaction_id=q.transaction_id,
                    start_date=q.start_date,
                    end_date=q.end_date,
                )
                for q in state.queued_plans
            ],
        )


class OrderResponse(BaseModel):
    """Gateway order to open checkout with. Empty for free tiers, which activate immediately."""

    order_id: str | None = None
    amount: int
    currency: str
    key_id: str | None = None
    package: str
    subscription: SubscriptionResponse | None = None


class TransactionResponse(BaseModel):
    id: uuid.UUID
    type: str
    amount: int
    currency: str
    status: str
    payment_method: str
    order_id: str | None = None
    payment_id: str | None = None
    subscription_details: dict | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PaymentVerifiedResponse(BaseModel):
    message: str
    transaction: TransactionResponse
    subscription: SubscriptionResponse


class TransactionListResponse(BaseModel):
    items: list[TransactionResponse]
    total: int
