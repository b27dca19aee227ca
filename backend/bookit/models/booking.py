"""
Booking model representing a customer's reservation against one slot.

Key design decisions:
- Status field allows cancellation without deleting records
- `total_price` and `discount_amount` are frozen at creation time
- `promo_code` is stored as the normalized (uppercase) code string, so the
  usage counter can be decremented on cancellation
"""

import enum

from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import relationship

from bookit.db.base import Base, TimestampMixin


class BookingStatus(str, enum.Enum):
    # PENDING is never entered by the booking flow; kept so other tooling can filter on it
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    experience_id = Column(Integer, ForeignKey("experiences.id"), nullable=False, index=True)
    slot_id = Column(Integer, ForeignKey("slots.id"), nullable=False, index=True)
    user_name = Column(String(255), nullable=False)
    user_email = Column(String(255), nullable=False)
    user_phone = Column(String(50), nullable=False)
    participants = Column(Integer, nullable=False, default=1)
    total_price = Column(Numeric(10, 2), nullable=False)
    promo_code = Column(String(50), nullable=True)
    discount_amount = Column(Numeric(10, 2), nullable=False, default=0)
    status = Column(String(20), nullable=False, default=BookingStatus.CONFIRMED.value)

    # Relationships
    experience = relationship("Experience", lazy="raise")
    slot = relationship("Slot", lazy="raise")

    __table_args__ = (
        CheckConstraint("participants > 0", name="check_booking_participants_positive"),
        CheckConstraint("total_price >= 0", name="check_booking_total_non_negative"),
        CheckConstraint("discount_amount >= 0", name="check_booking_discount_non_negative"),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled')", name="check_booking_status"
        ),
        Index("ix_bookings_user_email", "user_email"),
        Index("ix_bookings_promo_code", "promo_code"),
    )

    @property
    def is_cancelled(self) -> bool:
        return self.status == BookingStatus.CANCELLED.value

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, slot={self.slot_id}, participants={self.participants}, status={self.status})>"
