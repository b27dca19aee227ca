"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import date, datetime, time
from typing import Optional
from pydantic import BaseModel, EmailStr, Field, field_validator

from bookit.models.booking import BookingStatus
from bookit.schemas.common import Money


class BookingCreate(BaseModel):
    experience_id: int = Field(..., gt=0)
    slot_id: int = Field(..., gt=0)
    user_name: str = Field(..., min_length=2, max_length=255)
    user_email: EmailStr
    user_phone: str = Field(..., min_length=10, max_length=50)
    participants: int = Field(..., ge=1)
    promo_code: Optional[str] = Field(None, max_length=50)

    model_config = {"str_strip_whitespace": True}

    @field_validator("user_email", mode="before")
    @classmethod
    def normalize_email(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("promo_code", mode="before")
    @classmethod
    def normalize_promo_code(cls, value):
        if isinstance(value, str):
            value = value.strip().upper()
            return value or None
        return value


class BookingResponse(BaseModel):
    id: int
    experience_id: int
    slot_id: int
    user_name: str
    user_email: str
    user_phone: str
    participants: int
    total_price: Money
    promo_code: Optional[str]
    discount_amount: Money
    status: BookingStatus
    created_at: datetime

    model_config = {"from_attributes": True}


class BookingDetailResponse(BookingResponse):
    """Booking joined with the experience and slot it was made against."""

    experience_title: Optional[str] = None
    experience_location: Optional[str] = None
    slot_date: Optional[date] = None
    slot_start_time: Optional[time] = None
    slot_end_time: Optional[time] = None
