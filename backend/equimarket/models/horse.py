"""Horse listing model — one per horse for sale."""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from equimarket.database import Base, UUIDPrimaryKeyMixin


class HorseListing(UUIDPrimaryKeyMixin, Base):
    """A horse offered for sale by a seller."""

    __tablename__ = "horse_listings"
    __table_args__ = (Index("ix_horse_listings_seller_status", "seller_id", "listing_status"),)

    seller_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("sellers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    breed: Mapped[str | None] = mapped_column(String(100), default=None)
    age: Mapped[dict | None] = mapped_column(JSON, default=None)  # years, months
    gender: Mapped[str | None] = mapped_column(String(20), default=None)  # Stallion, Mare, Gelding, Other
    color: Mapped[str | None] = mapped_column(String(50), default=None)
    price: Mapped[int | None] = mapped_column(Integer, default=None)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    location: Mapped[dict | None] = mapped_column(JSON, default=None)  # state, city, pincode
    specifications: Mapped[dict | None] = mapped_column(JSON, default=None)

    # Ordered; each entry is {url, public_id, thumbnail_url, width, height, format}
    images: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)

    listing_status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")  # draft, active, expired, sold
    activated_at: Mapped[datetime | None] = mapped_column(default=None)

    verification_status: Mapped[str] = mapped_column(String(20), nullable=False, default="unverified")  # unverified, pending, verified, rejected
    verification_details: Mapped[dict | None] = mapped_column(JSON, default=None)

    boost_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    boost_start_date: Mapped[datetime | None] = mapped_column(default=None)
    boost_end_date: Mapped[datetime | None] = mapped_column(default=None)

    featured_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    featured_start_date: Mapped[datetime | None] = mapped_column(default=None)
    featured_end_date: Mapped[datetime | None] = mapped_column(default=None)

    created_at: Mapped[datetime] = mapped_column(nullable=False)

    def is_boosted(self, now: datetime) -> bool:
        return bool(self.boost_active and self.boost_end_date and self.boost_end_date > now)

    def is_featured(self, now: datetime) -> bool:
        return bool(self.featured_active and self.featured_end_date and self.featured_end_date > now)

    def __repr__(self) -> str:
        return f"<HorseListing(id={self.id}, name={self.name!r}, status={self.listing_status!r})>"
