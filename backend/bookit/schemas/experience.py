"""
Pydantic schemas for experience and slot responses.
"""

from datetime import date, datetime, time
from typing import Optional
from pydantic import BaseModel

from bookit.schemas.common import Money


class ExperienceResponse(BaseModel):
    id: int
    title: str
    description: str
    location: str
    price: Money
    image_url: Optional[str]
    duration: int
    rating: Optional[Money]
    reviews_count: int
    category: Optional[str]
    created_at: datetime

    model_config = {"from_attributes": True}


class SlotResponse(BaseModel):
    id: int
    experience_id: int
    date: date
    start_time: time
    end_time: time
    capacity: int
    booked_count: int
    available_spots: int
    is_available: bool

    model_config = {"from_attributes": True}


class ExperienceDetailResponse(ExperienceResponse):
    available_slots: list[SlotResponse]
