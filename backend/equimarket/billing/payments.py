"""Payment verification gate.

Orders are created on the gateway for the catalog price of a plan. When the
checkout comes back, the signature is verified locally before anything is
written; only then is a completed Transaction recorded and the plan committed
through the state machine. Both writes share the request's unit of work, so a
failure in either leaves neither behind.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from equimarket.billing.plans import PlanName, plan_priority
from equimarket.billing.razorpay_client import PaymentGateway, verify_signature
from equimarket.billing.subscription import SubscriptionState, SubscriptionStateMachine
from equimarket.database import flush_or_fail
from equimarket.errors import Conflict, InvalidSignature, InvalidUpgrade, PaymentMismatch
from equimarket.models.seller import Seller
from equimarket.models.transaction import Transaction
from equimarket.services.audit import AuditEvent, AuditSink, record_event
from equimarket.services.subscription_service import (
    activate_free_plan,
    find_completed_transaction,
    reconcile_subscription,
    record_transaction,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderHandle:
    """What the client needs to open the gateway checkout."""

    order_id: str
    amount: int
    currency: str
    key_id: str
    plan: PlanName


@dataclass(frozen=True)
class CheckoutResult:
    """Either a gateway order to pay, or a subscription that is already active (free tiers)."""

    order: OrderHandle | None = None
    subscription: SubscriptionState | None = None
    transaction: Transaction | None = None


class PaymentGate:
    def __init__(
        self,
        gateway: PaymentGateway,
        machine: SubscriptionStateMachine,
        audit: AuditSink,
        *,
        key_id: str,
        key_secret: str,
        currency: str = "INR",
        test_mode: bool = False,
    ) -> None:
        self.gateway = gateway
        self.machine = machine
        self.audit = audit
        self.key_id = key_id
        self._key_secret = key_secret
        self.currency = currency
        self.test_mode = test_mode

    def verify(self, order_id: str, payment_id: str, signature: str) -> bool:
        """Check the checkout signature. Test mode accepts anything."""
        if self.test_mode:
            logger.warning("Payment test mode: skipping signature check for order %s", order_id)
            return True
        return verify_signature(order_id, payment_id, signature, self._key_secret)

    async def create_order(
        self, db: AsyncSession, seller: Seller, plan_name: str
    ) -> CheckoutResult:
        """Open a gateway order for a plan, or activate it outright if it costs nothing.

        Re-buying the running tier is allowed here (renewal); dropping to a
        lower tier is not.
        """
        state = await reconcile_subscription(db, seller, self.machine, self.audit)
        plan = self.machine.catalog.resolve(plan_name)
        definition = self.machine.catalog.get(plan)

        if definition.is_free:
            new_state, transaction = await activate_free_plan(
                db, seller, self.machine, self.audit, plan
            )
            return CheckoutResult(subscription=new_state, transaction=transaction)

        current = self.machine.current_plan(state)
        if current is not None and plan_priority(plan) < plan_priority(current):
            raise InvalidUpgrade(current.value, plan.value)

        now = self.machine.clock.now()
        receipt = f"sub_{seller.id.hex[:12]}_{int(now.timestamp())}"
        order = await self.gateway.create_order(
            definition.price_minor,
            self.currency,
            receipt,
            notes={"package": plan.value, "seller_id": str(seller.id)},
        )
        return CheckoutResult(
            order=OrderHandle(
                order_id=order["id"],
                amount=order.get("amount", definition.price_minor),
                currency=order.get("currency", self.currency),
                key_id=self.key_id,
                plan=plan,
            )
        )

    async def verify_and_commit(
        self,
        db: AsyncSession,
        seller: Seller,
        *,
        order_id: str,
        payment_id: str,
        signature: str,
        plan_name: str,
    ) -> tuple[SubscriptionState, Transaction]:
        """Verify a completed checkout, record the payment and commit the plan.

        Nothing is written when the signature is invalid.
        """
        if not self.verify(order_id, payment_id, signature):
            logger.warning("Rejected payment %s for order %s: bad signature", payment_id, order_id)
            raise InvalidSignature()

        plan = self.machine.catalog.resolve(plan_name)
        amount = self.machine.catalog.price_minor(plan)

        if await find_completed_transaction(db, order_id) is not None:
            raise Conflict(f"Order {order_id} has already been processed")

        if not self.test_mode:
            order = await self.gateway.fetch_order(order_id)
            notes = order.get("notes") or {}
            if (
                notes.get("package") != plan.value
                or order.get("amount") != amount
                or notes.get("seller_id") != str(seller.id)
            ):
                logger.warning(
                    "Order %s was opened for %s (%s) by seller %s, not %s by seller %s",
                    order_id,
                    notes.get("package"),
                    order.get("amount"),
                    notes.get("seller_id"),
                    plan.value,
                    seller.id,
                )
                raise PaymentMismatch(order_id)

        state = await reconcile_subscription(db, seller, self.machine, self.audit)
        window = self.machine.activation_window(state, plan)
        queued = window[0] > self.machine.clock.now()
        transaction = await record_transaction(
            db,
            seller,
            plan=plan,
            amount=amount,
            currency=self.currency,
            payment_method="test" if self.test_mode else "razorpay",
            window=window,
            created_at=self.machine.clock.now(),
            order_id=order_id,
            payment_id=payment_id,
            signature=signature,
        )

        new_state = self.machine.confirm_payment(state, plan, transaction.id)
        seller.store_subscription(new_state)
        await flush_or_fail(db, "commit subscription payment")

        record_event(
            self.audit,
            AuditEvent(
                action="subscription_queue" if queued else "subscription_purchase",
                user_id=seller.user_id,
                entity_type="subscription",
                entity_id=seller.id,
                description=(
                    f"Queued {plan.value} after {state.plan.value if state.plan else None}"
                    if queued
                    else f"Purchased {plan.value} plan"
                ),
                details={
                    "plan": plan.value,
                    "amount": amount,
                    "transaction_id": str(transaction.id),
                    "order_id": order_id,
                },
            ),
        )
        logger.info(
            "Payment %s committed %s for seller %s (queued=%s)",
            payment_id,
            plan.value,
            seller.id,
            queued,
        )
        return new_state, transaction
