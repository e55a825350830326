"""Entitlement checks against a seller's reconciled feature bundle.

Every function here is pure: it reads the subscription state plus whatever
counts the caller already fetched and returns a ``Decision``. Callers must
reconcile the subscription first, otherwise a lapsed seller would still be
judged against the plan they no longer have.

Counts are read-then-act with no locking, so a burst of concurrent requests
can over-admit by the size of the burst. Quotas are a soft ceiling.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from equimarket.billing.subscription import SubscriptionState
from equimarket.errors import Denied, DenyReason


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: DenyReason | None = None
    message: str = ""
    limit: int | None = None
    current: int | None = None
    plan: str | None = None

    @classmethod
    def allow(cls) -> "Decision":
        return cls(allowed=True)

    def raise_for_denial(self) -> None:
        if not self.allowed:
            raise Denied(
                self.reason or DenyReason.FEATURE_UNAVAILABLE,
                self.message,
                limit=self.limit,
                current=self.current,
                plan=self.plan,
            )


class Boostable(Protocol):
    boost_active: bool
    boost_end_date: datetime | None


def _plan_label(state: SubscriptionState) -> str | None:
    return state.plan.value if state.plan is not None else None


def _inactive(state: SubscriptionState) -> Decision | None:
    if state.is_active:
        return None
    return Decision(
        allowed=False,
        reason=DenyReason.FEATURE_UNAVAILABLE,
        message=f"An active subscription is required (current status: {state.status.value})",
        plan=_plan_label(state),
    )


def can_add_photos(state: SubscriptionState, existing_count: int, count_to_add: int) -> Decision:
    denied = _inactive(state)
    if denied is not None:
        return denied
    limit = state.features.max_photos
    if existing_count + count_to_add > limit:
        return Decision(
            allowed=False,
            reason=DenyReason.QUOTA_EXCEEDED,
            message=f"Cannot upload more than {limit} photos with the current subscription plan",
            limit=limit,
            current=existing_count,
            plan=_plan_label(state),
        )
    return Decision.allow()


def can_activate_listing(state: SubscriptionState, active_count: int) -> Decision:
    denied = _inactive(state)
    if denied is not None:
        return denied
    limit = state.features.max_listings
    if active_count >= limit:
        return Decision(
            allowed=False,
            reason=DenyReason.QUOTA_EXCEEDED,
            message=f"Active listing limit reached ({active_count}/{limit}). Upgrade your plan for more listings.",
            limit=limit,
            current=active_count,
            plan=_plan_label(state),
        )
    return Decision.allow()


def has_unexpired_boost(listing: Boostable, now: datetime) -> bool:
    return bool(
        listing.boost_active and listing.boost_end_date is not None and listing.boost_end_date > now
    )


def can_boost(state: SubscriptionState, listing: Boostable, now: datetime) -> Decision:
    denied = _inactive(state)
    if denied is not None:
        return denied
    if state.features.featured_listing_boosts.duration_days <= 0:
        return Decision(
            allowed=False,
            reason=DenyReason.FEATURE_UNAVAILABLE,
            message=f"Boost feature not available in the {_plan_label(state)} plan",
            plan=_plan_label(state),
        )
    if has_unexpired_boost(listing, now):
        return Decision(
            allowed=False,
            reason=DenyReason.ALREADY_ACTIVE,
            message="Listing is already boosted",
            plan=_plan_label(state),
        )
    return Decision.allow()


def can_spotlight(state: SubscriptionState, monthly_count: int) -> Decision:
    denied = _inactive(state)
    if denied is not None:
        return denied
    limit = state.features.homepage_spotlights_per_month
    if limit <= 0 or state.features.spotlight_duration_days <= 0:
        return Decision(
            allowed=False,
            reason=DenyReason.FEATURE_UNAVAILABLE,
            message=f"Spotlight feature not available in the {_plan_label(state)} plan",
            plan=_plan_label(state),
        )
    if monthly_count >= limit:
        return Decision(
            allowed=False,
            reason=DenyReason.QUOTA_EXCEEDED,
            message=f"Monthly spotlight limit ({limit}) reached",
            limit=limit,
            current=monthly_count,
            plan=_plan_label(state),
        )
    return Decision.allow()
