"""create_marketplace_tables

Revision ID: 5f1c2a9b7d3e
Revises:
Create Date: 2025-03-01 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5f1c2a9b7d3e'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.UUID(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("role", sa.String(20), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # The whole subscription document lives on the seller row
    op.create_table(
        "sellers",
        sa.Column("id", sa.UUID(), primary_key=True),
        sa.Column("user_id", sa.UUID(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("business_name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("location", sa.JSON(), nullable=True),
        sa.Column("contact_details", sa.JSON(), nullable=True),
        sa.Column("subscription", sa.JSON(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_sellers_user_id", "sellers", ["user_id"], unique=True)

    op.create_table(
        "transactions",
        sa.Column("id", sa.UUID(), primary_key=True),
        sa.Column("seller_id", sa.UUID(), sa.ForeignKey("sellers.id", ondelete="CASCADE"), nullable=False),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column("status", sa.String(50), nullable=False),
        sa.Column("payment_method", sa.String(50), nullable=False),
        sa.Column("order_id", sa.String(255), nullable=True),
        sa.Column("payment_id", sa.String(255), nullable=True),
        sa.Column("signature", sa.String(255), nullable=True),
        sa.Column("subscription_details", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_transactions_seller_id", "transactions", ["seller_id"])
    op.create_index("ix_transactions_order_id", "transactions", ["order_id"])

    op.create_table(
        "horse_listings",
        sa.Column("id", sa.UUID(), primary_key=True),
        sa.Column("seller_id", sa.UUID(), sa.ForeignKey("sellers.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("breed", sa.String(100), nullable=True),
        sa.Column("age", sa.JSON(), nullable=True),
        sa.Column("gender", sa.String(20), nullable=True),
        sa.Column("color", sa.String(50), nullable=True),
        sa.Column("price", sa.Integer(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("location", sa.JSON(), nullable=True),
        sa.Column("specifications", sa.JSON(), nullable=True),
        sa.Column("images", sa.JSON(), nullable=False),
        sa.Column("listing_status", sa.String(20), nullable=False),
        sa.Column("activated_at", sa.DateTime(), nullable=True),
        sa.Column("verification_status", sa.String(20), nullable=False),
        sa.Column("verification_details", sa.JSON(), nullable=True),
        sa.Column("boost_active", sa.Boolean(), nullable=False),
        sa.Column("boost_start_date", sa.DateTime(), nullable=True),
        sa.Column("boost_end_date", sa.DateTime(), nullable=True),
        sa.Column("featured_active", sa.Boolean(), nullable=False),
        sa.Column("featured_start_date", sa.DateTime(), nullable=True),
        sa.Column("featured_end_date", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_horse_listings_seller_id", "horse_listings", ["seller_id"])
    op.create_index("ix_horse_listings_seller_status", "horse_listings", ["seller_id", "listing_status"])

    op.create_table(
        "spotlights",
        sa.Column("id", sa.UUID(), primary_key=True),
        sa.Column("horse_id", sa.UUID(), sa.ForeignKey("horse_listings.id", ondelete="SET NULL"), nullable=True),
        sa.Column("seller_id", sa.UUID(), sa.ForeignKey("sellers.id", ondelete="CASCADE"), nullable=False),
        sa.Column("start_date", sa.DateTime(), nullable=False),
        sa.Column("end_date", sa.DateTime(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("plan", sa.String(50), nullable=False),
        sa.Column("created_by", sa.UUID(), nullable=True),
    )
    op.create_index("ix_spotlights_horse_id", "spotlights", ["horse_id"])
    op.create_index("ix_spotlights_seller_id", "spotlights", ["seller_id"])
    # Monthly spotlight quota counts by (seller_id, start_date >= first of month)
    op.create_index("ix_spotlights_seller_start", "spotlights", ["seller_id", "start_date"])


def downgrade() -> None:
    op.drop_table("spotlights")
    op.drop_table("horse_listings")
    op.drop_table("transactions")
    op.drop_table("sellers")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
