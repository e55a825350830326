"""Account identity as seen by the marketplace.

Accounts are created by the account service; this table mirrors the fields the
marketplace needs to authorize requests and to show contact details on listings.
"""

import enum

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from equimarket.database import Base, TimestampMixin, UUIDPrimaryKeyMixin


class UserRole(str, enum.Enum):
    BUYER = "buyer"
    SELLER = "seller"
    ADMIN = "admin"


class User(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    role: Mapped[str] = mapped_column(String(20), default=UserRole.BUYER.value, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Set once the user opens a seller profile
    seller: Mapped["Seller | None"] = relationship(  # type: ignore[name-defined]  # noqa: F821
        "Seller", back_populates="user", uselist=False, lazy="selectin"
    )

    @property
    def is_seller(self) -> bool:
        return self.role == UserRole.SELLER.value

    def promote_to_seller(self) -> None:
        # Admins keep their role when they also sell
        if self.role == UserRole.BUYER.value:
            self.role = UserRole.SELLER.value
