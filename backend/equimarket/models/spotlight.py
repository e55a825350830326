"""Spotlight model — a time-boxed homepage promotion of one listing."""

import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from equimarket.database import Base, UUIDPrimaryKeyMixin


class Spotlight(UUIDPrimaryKeyMixin, Base):
    """Homepage spotlight. Lapses when end_date passes; deleting the listing cancels it."""

    __tablename__ = "spotlights"
    __table_args__ = (Index("ix_spotlights_seller_start", "seller_id", "start_date"),)

    # Detached (NULL) once the listing is deleted; the row still counts towards the monthly quota
    horse_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("horse_listings.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    seller_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("sellers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    start_date: Mapped[datetime] = mapped_column(nullable=False)
    end_date: Mapped[datetime] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")  # active, expired, cancelled
    plan: Mapped[str] = mapped_column(String(50), nullable=False)
    created_by: Mapped[uuid.UUID | None] = mapped_column(default=None)

    def is_live(self, now: datetime) -> bool:
        return self.status == "active" and self.end_date > now

    def __repr__(self) -> str:
        return f"<Spotlight(id={self.id}, horse_id={self.horse_id}, status={self.status!r})>"
