"""
Pydantic schemas for promo code validation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field, field_validator

from bookit.models.promo_code import DiscountType
from bookit.schemas.common import Money


class PromoValidateRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    amount: Decimal = Field(..., gt=0)

    @field_validator("code", mode="before")
    @classmethod
    def normalize_code(cls, value):
        if isinstance(value, str):
            return value.strip().upper()
        return value


class PromoValidationResult(BaseModel):
    valid: bool
    discount_amount: Money = Decimal("0")
    discount_type: Optional[DiscountType] = None
    discount_value: Optional[Money] = None
    message: str


class PromoValidateData(BaseModel):
    valid: bool
    code: str
    discount_amount: Money
    discount_type: Optional[DiscountType] = None
    discount_value: Optional[Money] = None
    final_amount: Optional[Money] = None


class PromoPublic(BaseModel):
    """Public view of an active promo code (usage counters are not exposed)."""

    code: str
    discount_type: DiscountType
    discount_value: Money
    min_amount: Money
    valid_until: Optional[datetime]

    model_config = {"from_attributes": True}
