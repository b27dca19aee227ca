"""
Experience model: the bookable product.

Experiences are read-only for the booking core; the transaction manager only
reads `price` while holding the slot lock.
"""

from sqlalchemy import Column, Integer, String, Text, Numeric, Index, CheckConstraint
from sqlalchemy.orm import relationship

from bookit.db.base import Base, TimestampMixin


class Experience(Base, TimestampMixin):
    __tablename__ = "experiences"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    location = Column(String(255), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)  # per participant
    image_url = Column(String(500), nullable=True)
    duration = Column(Integer, nullable=False)  # minutes
    rating = Column(Numeric(3, 2), nullable=True)
    reviews_count = Column(Integer, nullable=False, default=0)
    category = Column(String(100), nullable=True)

    slots = relationship("Slot", back_populates="experience", lazy="raise")

    __table_args__ = (
        CheckConstraint("price >= 0", name="check_experience_price_non_negative"),
        CheckConstraint("duration > 0", name="check_experience_duration_positive"),
        CheckConstraint("rating IS NULL OR (rating >= 0 AND rating <= 5)", name="check_experience_rating_range"),
        # Default listing order and the category filter
        Index("ix_experiences_rating", "rating"),
        Index("ix_experiences_category", "category"),
    )

    def __repr__(self) -> str:
        return f"<Experience(id={self.id}, title={self.title}, price={self.price})>"
