"""Seller model — business profile with its embedded subscription document."""

import uuid
from typing import Any

from sqlalchemy import JSON, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from equimarket.billing.subscription import SubscriptionState
from equimarket.database import Base, TimestampMixin, UUIDPrimaryKeyMixin


def _default_subscription() -> dict[str, Any]:
    return SubscriptionState().to_document()


class Seller(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """One per registered business account.

    ``subscription`` holds the whole SubscriptionState as JSON. It is only ever
    replaced wholesale (never mutated in place) so each state transition is a
    single write of this row.
    """

    __tablename__ = "sellers"

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        index=True,
    )
    business_name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    location: Mapped[dict | None] = mapped_column(JSON, default=None)  # state, city, pincode
    contact_details: Mapped[dict | None] = mapped_column(JSON, default=None)  # phone, email, whatsapp
    subscription: Mapped[dict] = mapped_column(JSON, nullable=False, default=_default_subscription)

    # Relationships
    user: Mapped["User"] = relationship(back_populates="seller", lazy="selectin")  # type: ignore[name-defined]  # noqa: F821

    @property
    def subscription_state(self) -> SubscriptionState:
        return SubscriptionState.from_document(self.subscription)

    def store_subscription(self, state: SubscriptionState) -> None:
        self.subscription = state.to_document()

    def __repr__(self) -> str:
        return f"<Seller(id={self.id}, business_name={self.business_name!r})>"
