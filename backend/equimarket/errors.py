"""Domain error taxonomy, rendered as JSON by the API exception handler."""

from enum import Enum
from typing import Any

from fastapi import status


class MarketplaceError(Exception):
    """Base class for caller-visible errors. None of these are retried by the core."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_detail(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message}


class InvalidPlan(MarketplaceError):
    code = "invalid_plan"

    def __init__(self, plan_name: str | None) -> None:
        super().__init__(f"Invalid subscription plan: {plan_name!r}")
        self.plan_name = plan_name


class InvalidUpgrade(MarketplaceError):
    code = "invalid_upgrade"

    def __init__(self, current_plan: str, requested_plan: str) -> None:
        super().__init__(
            f"Cannot move from {current_plan} to {requested_plan}. Only upgrades to a higher tier are allowed."
        )
        self.current_plan = current_plan
        self.requested_plan = requested_plan

    def to_detail(self) -> dict[str, Any]:
        detail = super().to_detail()
        detail.update(current_plan=self.current_plan, requested_plan=self.requested_plan)
        return detail


class InvalidSignature(MarketplaceError):
    code = "invalid_signature"

    def __init__(self) -> None:
        super().__init__("Invalid payment signature")


class DenyReason(str, Enum):
    MISSING_FIELDS = "missing_fields"
    QUOTA_EXCEEDED = "quota_exceeded"
    FEATURE_UNAVAILABLE = "feature_unavailable"
    ALREADY_ACTIVE = "already_active"


_DENY_STATUS = {
    DenyReason.MISSING_FIELDS: status.HTTP_400_BAD_REQUEST,
    DenyReason.QUOTA_EXCEEDED: status.HTTP_402_PAYMENT_REQUIRED,
    DenyReason.FEATURE_UNAVAILABLE: status.HTTP_402_PAYMENT_REQUIRED,
    DenyReason.ALREADY_ACTIVE: status.HTTP_409_CONFLICT,
}


class Denied(MarketplaceError):
    """An entitlement or lifecycle check refused the action."""

    code = "denied"

    def __init__(
        self,
        reason: DenyReason,
        message: str,
        *,
        limit: int | None = None,
        current: int | None = None,
        plan: str | None = None,
        fields: list[str] | None = None,
    ) -> None:
        super().__init__(message)
        self.reason = reason
        self.limit = limit
        self.current = current
        self.plan = plan
        self.fields = fields or []
        self.status_code = _DENY_STATUS[reason]

    def to_detail(self) -> dict[str, Any]:
        detail = super().to_detail()
        detail["reason"] = self.reason.value
        if self.limit is not None:
            detail["limit"] = self.limit
        if self.current is not None:
            detail["current"] = self.current
        if self.plan is not None:
            detail["plan"] = self.plan
        if self.fields:
            detail["fields"] = self.fields
        if self.reason in (DenyReason.QUOTA_EXCEEDED, DenyReason.FEATURE_UNAVAILABLE):
            detail["upgrade_url"] = "/api/v1/subscription/plans"
        return detail


class NotFound(MarketplaceError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"

    def __init__(self, entity: str) -> None:
        super().__init__(f"{entity} not found")
        self.entity = entity


class Forbidden(MarketplaceError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"

    def __init__(self, message: str = "Not authorized to modify this listing") -> None:
        super().__init__(message)


class Conflict(MarketplaceError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"


class PersistenceError(MarketplaceError):
    """Storage failed. ``view`` optionally carries an in-memory result for the caller."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "persistence_error"

    def __init__(self, message: str, view: Any = None) -> None:
        super().__init__(message)
        self.view = view


class PaymentGatewayError(MarketplaceError):
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "payment_gateway_error"


class MediaStoreError(MarketplaceError):
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "media_store_error"


class TransactionImmutableError(MarketplaceError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "transaction_immutable"

    def __init__(self, transaction_id: Any) -> None:
        super().__init__(f"Completed transaction {transaction_id} cannot be modified")


class PaymentMismatch(MarketplaceError):
    code = "payment_mismatch"

    def __init__(self, order_id: str) -> None:
        super().__init__(f"Order {order_id} does not match the requested plan")
        self.order_id = order_id


class InvalidPhotoOrder(MarketplaceError):
    code = "invalid_photo_order"

    def __init__(self) -> None:
        super().__init__("Photo order must list every existing photo exactly once")
