"""Transaction model — append-only record of a subscription payment."""

import uuid
from datetime import datetime

from sqlalchemy import JSON, ForeignKey, Integer, String, event, inspect
from sqlalchemy.orm import Mapped, mapped_column

from equimarket.database import Base, UUIDPrimaryKeyMixin
from equimarket.errors import TransactionImmutableError


class Transaction(UUIDPrimaryKeyMixin, Base):
    """A monetary or zero-cost subscription event. Frozen once completed."""

    __tablename__ = "transactions"

    seller_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("sellers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type: Mapped[str] = mapped_column(String(50), nullable=False, default="subscription")
    amount: Mapped[int] = mapped_column(Integer, nullable=False)  # minor units (paise)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="INR")
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="pending")  # pending, completed, failed
    payment_method: Mapped[str] = mapped_column(String(50), nullable=False)  # razorpay, free, test

    # Gateway correlation
    order_id: Mapped[str | None] = mapped_column(String(255), index=True, default=None)
    payment_id: Mapped[str | None] = mapped_column(String(255), default=None)
    signature: Mapped[str | None] = mapped_column(String(255), default=None)

    # package, duration_days, start_date, end_date
    subscription_details: Mapped[dict | None] = mapped_column(JSON, default=None)
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<Transaction(id={self.id}, seller_id={self.seller_id}, amount={self.amount}, status={self.status})>"


@event.listens_for(Transaction, "before_update")
def _reject_completed_updates(mapper, connection, target: Transaction) -> None:
    history = inspect(target).attrs.status.history
    previous_status = history.deleted[0] if history.deleted else target.status
    if previous_status == "completed":
        raise TransactionImmutableError(target.id)
