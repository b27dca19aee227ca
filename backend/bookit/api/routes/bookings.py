"""
Booking endpoints: create, fetch, list by email and cancel.
"""

from fastapi import APIRouter, Depends, Path, status
from pydantic import EmailStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from bookit.db.session import get_db
from bookit.core.exceptions import ValidationError
from bookit.core.logging import get_logger
from bookit.schemas.booking import BookingCreate, BookingDetailResponse, BookingResponse
from bookit.schemas.common import Envelope, ListEnvelope
from bookit.services.booking_service import (
    cancel_booking,
    find_bookings_by_email,
    get_booking_details,
    place_booking,
)

logger = get_logger(__name__)
router = APIRouter(prefix="/bookings", tags=["Bookings"])

_email_adapter = TypeAdapter(EmailStr)


@router.post(
    "",
    response_model=Envelope[BookingDetailResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_booking_endpoint(
    booking_data: BookingCreate,
    db: AsyncSession = Depends(get_db),
):
    """
    Book spots on a slot.

    The slot row is locked for the duration of the transaction, so concurrent
    requests for the same slot serialize and can never overbook it. No payment
    is captured; the booking is confirmed immediately.
    """
    booking = await place_booking(db, booking_data)
    return Envelope[BookingDetailResponse](data=booking, message="Booking created successfully")


@router.get("/user/{email}", response_model=ListEnvelope[BookingDetailResponse])
async def list_bookings_by_email_endpoint(
    email: str,
    db: AsyncSession = Depends(get_db),
):
    email = email.strip().lower()
    try:
        _email_adapter.validate_python(email)
    except PydanticValidationError:
        raise ValidationError(f"'{email}' is not a valid email address", error="Invalid email format") from None

    bookings = await find_bookings_by_email(db, email)
    return ListEnvelope[BookingDetailResponse](data=bookings, count=len(bookings))


@router.get("/{booking_id}", response_model=Envelope[BookingDetailResponse])
async def get_booking_endpoint(
    booking_id: int = Path(..., gt=0),
    db: AsyncSession = Depends(get_db),
):
    booking = await get_booking_details(db, booking_id)
    return Envelope[BookingDetailResponse](data=booking)


@router.delete("/{booking_id}", response_model=Envelope[BookingResponse])
async def cancel_booking_endpoint(
    booking_id: int = Path(..., gt=0),
    db: AsyncSession = Depends(get_db),
):
    """Cancel a booking and release its spots. A second cancel returns 400."""
    booking = await cancel_booking(db, booking_id)
    return Envelope[BookingResponse](
        data=BookingResponse.model_validate(booking),
        message="Booking cancelled successfully",
    )
