"""Shared API dependencies: single import point for all routers.

Re-exports the database session, authentication and billing collaborators so
router modules can import everything they need from one place::

    from equimarket.api.deps import get_db, get_current_seller
"""

from equimarket.auth.dependencies import get_current_user
from equimarket.billing.dependencies import (
    get_audit_sink,
    get_clock,
    get_current_seller,
    get_media_store,
    get_payment_gate,
    get_plan_catalog,
    get_subscription_machine,
)
from equimarket.database import get_db

__all__ = [
    "get_db",
    "get_current_user",
    "get_current_seller",
    "get_audit_sink",
    "get_clock",
    "get_media_store",
    "get_payment_gate",
    "get_plan_catalog",
    "get_subscription_machine",
]
