"""
Slot model: one dated, timed instance of an experience with fixed capacity.

Key design decisions:
- `booked_count` is denormalized so capacity checks never COUNT bookings
- CHECK constraints back the `0 <= booked_count <= capacity` invariant that the
  booking transaction enforces under a row lock
- Composite index on (experience_id, date) serves the "future slots" queries
"""

from sqlalchemy import (
    Column, Integer, Date, Time, ForeignKey, Index, CheckConstraint, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from bookit.db.base import Base, TimestampMixin


class Slot(Base, TimestampMixin):
    __tablename__ = "slots"

    id = Column(Integer, primary_key=True, index=True)
    experience_id = Column(
        Integer, ForeignKey("experiences.id", ondelete="CASCADE"), nullable=False
    )
    date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    capacity = Column(Integer, nullable=False)
    booked_count = Column(Integer, nullable=False, default=0)

    experience = relationship("Experience", back_populates="slots", lazy="raise")

    __table_args__ = (
        CheckConstraint("capacity >= 0", name="check_slot_capacity_non_negative"),
        CheckConstraint("booked_count >= 0", name="check_slot_booked_non_negative"),
        CheckConstraint("booked_count <= capacity", name="check_slot_booked_lte_capacity"),
        CheckConstraint("end_time > start_time", name="check_slot_time_order"),
        UniqueConstraint("experience_id", "date", "start_time", name="uq_slot_experience_start"),
        Index("ix_slots_experience_date", "experience_id", "date"),
    )

    @property
    def available_spots(self) -> int:
        return self.capacity - self.booked_count

    @property
    def is_available(self) -> bool:
        return self.booked_count < self.capacity

    def __repr__(self) -> str:
        return f"<Slot(id={self.id}, experience={self.experience_id}, booked={self.booked_count}/{self.capacity})>"
