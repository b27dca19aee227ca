"""
Promo code model: a discount rule identified by a unique uppercase code.
"""

import enum

from sqlalchemy import Column, Integer, String, Numeric, Boolean, DateTime, CheckConstraint, func

from bookit.db.base import Base


class DiscountType(str, enum.Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class PromoCode(Base):
    __tablename__ = "promo_codes"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(50), unique=True, index=True, nullable=False)
    discount_type = Column(String(20), nullable=False)
    discount_value = Column(Numeric(10, 2), nullable=False)
    min_amount = Column(Numeric(10, 2), nullable=False, default=0)
    max_uses = Column(Integer, nullable=True)
    used_count = Column(Integer, nullable=False, default=0)
    valid_until = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        CheckConstraint(
            "discount_type IN ('percentage', 'fixed')", name="check_promo_discount_type"
        ),
        CheckConstraint("discount_value > 0", name="check_promo_discount_value_positive"),
        CheckConstraint("min_amount >= 0", name="check_promo_min_amount_non_negative"),
        CheckConstraint("used_count >= 0", name="check_promo_used_non_negative"),
        CheckConstraint(
            "max_uses IS NULL OR used_count <= max_uses", name="check_promo_used_lte_max"
        ),
    )

    def __repr__(self) -> str:
        return f"<PromoCode(code={self.code}, type={self.discount_type}, used={self.used_count})>"
