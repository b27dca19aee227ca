"""Initial schema: experiences, slots, bookings, promo codes with constraints.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Experiences table
    op.create_table(
        "experiences",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("location", sa.String(255), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("image_url", sa.String(500), nullable=True),
        sa.Column("duration", sa.Integer(), nullable=False),
        sa.Column("rating", sa.Numeric(3, 2), nullable=True),
        sa.Column("reviews_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("category", sa.String(100), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("price >= 0", name="check_experience_price_non_negative"),
        sa.CheckConstraint("duration > 0", name="check_experience_duration_positive"),
        sa.CheckConstraint(
            "rating IS NULL OR (rating >= 0 AND rating <= 5)", name="check_experience_rating_range"
        ),
    )
    op.create_index("ix_experiences_id", "experiences", ["id"])
    op.create_index("ix_experiences_rating", "experiences", ["rating"])
    op.create_index("ix_experiences_category", "experiences", ["category"])

    # Slots table
    op.create_table(
        "slots",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "experience_id", sa.Integer(),
            sa.ForeignKey("experiences.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("booked_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        *_timestamps(),
        # Overbooking is impossible at the DB level even if application locking were bypassed
        sa.CheckConstraint("capacity >= 0", name="check_slot_capacity_non_negative"),
        sa.CheckConstraint("booked_count >= 0", name="check_slot_booked_non_negative"),
        sa.CheckConstraint("booked_count <= capacity", name="check_slot_booked_lte_capacity"),
        sa.CheckConstraint("end_time > start_time", name="check_slot_time_order"),
        sa.UniqueConstraint("experience_id", "date", "start_time", name="uq_slot_experience_start"),
    )
    op.create_index("ix_slots_id", "slots", ["id"])
    # Detail page and availability queries: WHERE experience_id = ? AND date >= today
    op.create_index("ix_slots_experience_date", "slots", ["experience_id", "date"])

    # Bookings table
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("experience_id", sa.Integer(), sa.ForeignKey("experiences.id"), nullable=False),
        sa.Column("slot_id", sa.Integer(), sa.ForeignKey("slots.id"), nullable=False),
        sa.Column("user_name", sa.String(255), nullable=False),
        sa.Column("user_email", sa.String(255), nullable=False),
        sa.Column("user_phone", sa.String(50), nullable=False),
        sa.Column("participants", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("total_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("promo_code", sa.String(50), nullable=True),
        sa.Column("discount_amount", sa.Numeric(10, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'confirmed'")),
        *_timestamps(),
        sa.CheckConstraint("participants > 0", name="check_booking_participants_positive"),
        sa.CheckConstraint("total_price >= 0", name="check_booking_total_non_negative"),
        sa.CheckConstraint("discount_amount >= 0", name="check_booking_discount_non_negative"),
        sa.CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled')", name="check_booking_status"
        ),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_experience_id", "bookings", ["experience_id"])
    op.create_index("ix_bookings_slot_id", "bookings", ["slot_id"])
    op.create_index("ix_bookings_user_email", "bookings", ["user_email"])
    op.create_index("ix_bookings_promo_code", "bookings", ["promo_code"])

    # Promo codes table
    op.create_table(
        "promo_codes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("code", sa.String(50), nullable=False),
        sa.Column("discount_type", sa.String(20), nullable=False),
        sa.Column("discount_value", sa.Numeric(10, 2), nullable=False),
        sa.Column("min_amount", sa.Numeric(10, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("max_uses", sa.Integer(), nullable=True),
        sa.Column("used_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("valid_until", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "discount_type IN ('percentage', 'fixed')", name="check_promo_discount_type"
        ),
        sa.CheckConstraint("discount_value > 0", name="check_promo_discount_value_positive"),
        sa.CheckConstraint("min_amount >= 0", name="check_promo_min_amount_non_negative"),
        sa.CheckConstraint("used_count >= 0", name="check_promo_used_non_negative"),
        sa.CheckConstraint("max_uses IS NULL OR used_count <= max_uses", name="check_promo_used_lte_max"),
    )
    op.create_index("ix_promo_codes_id", "promo_codes", ["id"])
    op.create_index("ix_promo_codes_code", "promo_codes", ["code"], unique=True)


def downgrade() -> None:
    op.drop_table("bookings")
    op.drop_table("slots")
    op.drop_table("promo_codes")
    op.drop_table("experiences")
