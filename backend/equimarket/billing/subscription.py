"""Subscription state machine.

A seller's subscription is a single embedded document (``SubscriptionState``)
that moves through::

    inactive -> pending_payment -> active -> expired | cancelled

An active subscription can also carry a FIFO queue of paid-for future plans.
Expiry is detected lazily: ``reconcile`` is run on every read that gates an
action, and either activates the head of the queue or collapses the seller to
the expired baseline bundle.

The machine is pure. Every method takes a state, returns a new state and never
touches the input, so callers can stage a transition and persist it in one
write (or drop it if something else fails first).
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any

from pydantic import BaseModel, model_validator

from equimarket.billing.plans import (
    EXPIRED_FEATURES,
    NO_PLAN_FEATURES,
    FeatureBundle,
    PlanCatalog,
    PlanName,
    plan_priority,
)
from equimarket.clock import Clock
from equimarket.errors import InvalidUpgrade

logger = logging.getLogger(__name__)


class SubscriptionStatus(str, Enum):
    INACTIVE = "inactive"
    PENDING_PAYMENT = "pending_payment"
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class QueuedPlan(BaseModel):
    """A plan bought while another is still running.

    Dates are provisional; the real window is fixed when the plan is dequeued.
    ``transaction_id`` stays empty for a reservation that has not been paid yet.
    """

    plan: PlanName
    features: FeatureBundle
    transaction_id: uuid.UUID | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None


class SubscriptionState(BaseModel):
    plan: PlanName | None = None
    status: SubscriptionStatus = SubscriptionStatus.INACTIVE
    start_date: datetime | None = None
    end_date: datetime | None = None
    features: FeatureBundle = NO_PLAN_FEATURES
    last_payment: uuid.UUID | None = None
    queued_plans: list[QueuedPlan] = []

    @model_validator(mode="after")
    def _window_is_ordered(self) -> "SubscriptionState":
        if self.status in (SubscriptionStatus.ACTIVE, SubscriptionStatus.EXPIRED):
            if self.start_date is None or self.end_date is None:
                raise ValueError(f"A {self.status.value} subscription needs a start and end date")
            if self.end_date < self.start_date:
                raise ValueError("Subscription end_date precedes start_date")
        return self

    @classmethod
    def from_document(cls, document: dict[str, Any] | None) -> "SubscriptionState":
        if not document:
            return cls()
        return cls.model_validate(document)

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    @property
    def is_active(self) -> bool:
        return self.status == SubscriptionStatus.ACTIVE


@dataclass
class Reconciliation:
    """Result of a lazy expiry check."""

    state: SubscriptionState
    activated: list[PlanName] = field(default_factory=list)
    dropped: list[PlanName] = field(default_factory=list)
    expired: bool = False

    @property
    def changed(self) -> bool:
        return bool(self.activated) or bool(self.dropped) or self.expired


class SubscriptionStateMachine:
    """Applies purchase, renewal, upgrade and expiry transitions to a SubscriptionState."""

    def __init__(self, catalog: PlanCatalog, clock: Clock) -> None:
        self.catalog = catalog
        self.clock = clock

    def current_plan(self, state: SubscriptionState) -> PlanName | None:
        """The plan the upgrade rule compares against. Lapsed plans do not count."""
        if state.status in (SubscriptionStatus.ACTIVE, SubscriptionStatus.PENDING_PAYMENT):
            return state.plan
        return None

    def check_upgrade(self, state: SubscriptionState, plan: PlanName) -> None:
        current = self.current_plan(state)
        if current is not None and plan_priority(plan) <= plan_priority(current):
            raise InvalidUpgrade(current.value, plan.value)

    def select_package(
        self, state: SubscriptionState, plan_name: str, queue: bool = False
    ) -> SubscriptionState:
        """Choose a plan. Queues it behind an active plan, else marks it pending payment."""
        plan = self.catalog.resolve(plan_name)
        self.check_upgrade(state, plan)
        new_state = state.model_copy(deep=True)

        if queue and state.is_active:
            new_state.queued_plans.append(
                QueuedPlan(plan=plan, features=self.catalog.features_for(plan))
            )
            logger.info("Reserved queued plan %s behind active %s", plan.value, state.plan)
            return new_state

        now = self.clock.now()
        new_state.plan = plan
        new_state.status = SubscriptionStatus.PENDING_PAYMENT
        new_state.start_date = now
        new_state.end_date = now + timedelta(days=self.catalog.duration_days(plan))
        new_state.features = self.catalog.features_for(plan)
        return new_state

    def activation_window(
        self, state: SubscriptionState, plan_name: str | PlanName
    ) -> tuple[datetime, datetime]:
        """Where a plan confirmed right now would sit on the timeline."""
        plan = self.catalog.resolve(plan_name)
        duration = timedelta(days=self.catalog.duration_days(plan))
        if self._runs_past_now(state):
            start = self._queue_tail(state)
        else:
            start = self.clock.now()
        return start, start + duration

    def confirm_payment(
        self,
        state: SubscriptionState,
        plan_name: str | PlanName,
        transaction_id: uuid.UUID | None,
    ) -> SubscriptionState:
        """Commit a paid (or zero-cost) plan: queue it behind a running plan or activate it now."""
        plan = self.catalog.resolve(plan_name)
        start, end = self.activation_window(state, plan)
        new_state = state.model_copy(deep=True)

        if self._runs_past_now(state):
            reserved = next(
                (q for q in new_state.queued_plans if q.plan == plan and q.transaction_id is None),
                None,
            )
            if reserved is None:
                reserved = QueuedPlan(plan=plan, features=self.catalog.features_for(plan))
            else:
                new_state.queued_plans.remove(reserved)
            # Paid entries run in payment order, so the filled slot goes behind them
            new_state.queued_plans.append(reserved)
            reserved.transaction_id = transaction_id
            reserved.start_date = start
            reserved.end_date = end
            logger.info(
                "Queued %s from %s to %s behind active %s",
                plan.value,
                start.isoformat(),
                end.isoformat(),
                state.plan,
            )
            return new_state

        new_state.plan = plan
        new_state.status = SubscriptionStatus.ACTIVE
        new_state.start_date = start
        new_state.end_date = end
        new_state.features = self.catalog.features_for(plan)
        new_state.last_payment = transaction_id
        logger.info("Activated %s until %s", plan.value, end.isoformat())
        return new_state

    def reconcile(self, state: SubscriptionState) -> Reconciliation:
        """Detect a lapsed plan and roll forward through the queue. Idempotent."""
        now = self.clock.now()
        if not self._has_lapsed(state, now):
            return Reconciliation(state=state)

        new_state = state.model_copy(deep=True)
        outcome = Reconciliation(state=new_state)
        while self._has_lapsed(new_state, now):
            # Reservations never paid for lapse together with the plan they were queued behind
            for entry in [q for q in new_state.queued_plans if q.transaction_id is None]:
                new_state.queued_plans.remove(entry)
                outcome.dropped.append(entry.plan)
                logger.info("Dropped unpaid reservation for %s", entry.plan.value)

            if new_state.queued_plans:
                entry = new_state.queued_plans.pop(0)
                start = new_state.end_date
                new_state.plan = entry.plan
                new_state.start_date = start
                new_state.end_date = start + timedelta(days=self.catalog.duration_days(entry.plan))
                new_state.features = entry.features
                new_state.last_payment = entry.transaction_id
                outcome.activated.append(entry.plan)
                logger.info(
                    "Dequeued %s, active from %s to %s",
                    entry.plan.value,
                    new_state.start_date.isoformat(),
                    new_state.end_date.isoformat(),
                )
            else:
                new_state.status = SubscriptionStatus.EXPIRED
                new_state.features = EXPIRED_FEATURES.model_copy(deep=True)
                outcome.expired = True
                logger.info("Plan %s expired at %s", new_state.plan, new_state.end_date.isoformat())
        return outcome

    def cancel(self, state: SubscriptionState) -> SubscriptionState:
        """Stop the current plan now and drop anything queued behind it."""
        new_state = state.model_copy(deep=True)
        now = self.clock.now()
        if new_state.start_date is None or new_state.start_date > now:
            new_state.start_date = now
        new_state.status = SubscriptionStatus.CANCELLED
        new_state.end_date = now
        new_state.features = EXPIRED_FEATURES.model_copy(deep=True)
        new_state.queued_plans = []
        return new_state

    def _runs_past_now(self, state: SubscriptionState) -> bool:
        return state.is_active and state.end_date is not None and state.end_date > self.clock.now()

    def _queue_tail(self, state: SubscriptionState) -> datetime:
        dated = [q.end_date for q in state.queued_plans if q.end_date is not None]
        return max([state.end_date, *dated])  # type: ignore[list-item]

    @staticmethod
    def _has_lapsed(state: SubscriptionState, now: datetime) -> bool:
        return state.is_active and state.end_date is not None and now > state.end_date
