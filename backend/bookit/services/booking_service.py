"""
Booking service: the booking-creation transaction and its inverse, cancellation.

CONCURRENCY STRATEGY: Pessimistic Row Locking
=============================================

Problem:
  Two customers try to book the last spots of a slot simultaneously.
  Both read booked_count=0 of capacity=2, both insert, both increment.
  Result: Overbooking.

Solution:
  Every create/cancel takes an exclusive row lock as its first data-touching
  statement and holds it until commit:

  create:  SELECT slots JOIN experiences ... FOR UPDATE OF slots
  cancel:  SELECT bookings ... FOR UPDATE, then UPDATE slots (row lock)

  All create/cancel operations on one slot therefore serialize in commit
  order. A waiter re-reads the committed booked_count once the lock is
  released, so the capacity check under the lock is authoritative.

  Lock order is always slot -> promo code. The promo row is locked only after
  the slot, in both directions, so create and cancel never deadlock.

  The counters (slots.booked_count, promo_codes.used_count) are only ever
  changed here, with relative UPDATEs, inside the same transaction as the
  booking row. CHECK constraints on both tables are the final safety net.

Failure semantics:
  Any error between the lock and the commit rolls the whole unit back.
  Database errors surface as StoreError. Nothing is retried automatically and
  there is no idempotency key, so a client retry after an ambiguous failure
  may create a second booking.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, update, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bookit.core.config import get_settings
from bookit.core.exceptions import (
    DomainError,
    NotFoundError,
    CapacityError,
    ConflictError,
    ExperienceNotFound,
    SlotNotFound,
    BookingNotFound,
    InsufficientCapacity,
    AlreadyCancelled,
    PromoRejected,
    StaleDiscount,
    StoreError,
    InvariantViolation,
)
from bookit.core.logging import get_logger
from bookit.core.metrics import (
    booking_latency,
    record_booking_attempt,
    record_cancellation,
    record_store_error,
)
from bookit.models.booking import Booking, BookingStatus
from bookit.models.experience import Experience
from bookit.models.promo_code import PromoCode
from bookit.models.slot import Slot
from bookit.schemas.booking import BookingCreate, BookingDetailResponse
from bookit.services.availability_service import check_availability
from bookit.services.experience_service import find_experience_by_id
from bookit.services.promo_service import evaluate_promo, find_promo_by_code, validate_promo

logger = get_logger(__name__)
settings = get_settings()


async def _set_lock_timeout(db: AsyncSession) -> None:
    """Bound how long this transaction waits on a row lock (PostgreSQL only)."""
    bind = db.bind
    if bind is not None and bind.dialect.name == "postgresql":
        await db.execute(text(f"SET LOCAL lock_timeout = '{int(settings.DB_LOCK_TIMEOUT_MS)}ms'"))


def _store_error(exc: SQLAlchemyError) -> StoreError:
    store_error = StoreError.from_exception(exc)
    record_store_error(store_error.sqlstate)
    logger.error("store_error", sqlstate=store_error.sqlstate, error=str(exc))
    return store_error


def _outcome(exc: Exception) -> str:
    if isinstance(exc, CapacityError):
        return "capacity"
    if isinstance(exc, (PromoRejected, StaleDiscount)):
        return "promo"
    if isinstance(exc, NotFoundError):
        return "not_found"
    if isinstance(exc, ConflictError):
        return "conflict"
    return "error"


async def place_booking(db: AsyncSession, booking_data: BookingCreate) -> BookingDetailResponse:
    """
    Validate a booking request against current state and run the booking transaction.

    The availability and promo checks here are unlocked fast-fail checks;
    create_booking repeats both under lock.
    """
    try:
        experience = await find_experience_by_id(db, booking_data.experience_id)
        if experience is None:
            raise ExperienceNotFound(booking_data.experience_id)

        if not await check_availability(db, booking_data.slot_id, booking_data.participants):
            slot = await db.get(Slot, booking_data.slot_id)
            if slot is None or slot.experience_id != booking_data.experience_id:
                raise SlotNotFound(booking_data.slot_id, booking_data.experience_id)
            raise CapacityError("Not enough spots available for the selected slot")

        discount_amount = Decimal("0")
        if booking_data.promo_code:
            base_price = Decimal(experience.price) * booking_data.participants
            promo_result = await validate_promo(db, booking_data.promo_code, base_price)
            if not promo_result.valid:
                raise PromoRejected(promo_result.message)
            discount_amount = promo_result.discount_amount

        booking = await create_booking(db, booking_data, discount_amount)
    except DomainError as exc:
        record_booking_attempt(_outcome(exc))
        logger.warning(
            "booking_rejected",
            reason=exc.code,
            slot_id=booking_data.slot_id,
            participants=booking_data.participants,
            message=exc.message,
        )
        raise

    record_booking_attempt("success")
    return booking


async def create_booking(
    db: AsyncSession,
    booking_data: BookingCreate,
    discount_amount: Decimal = Decimal("0"),
) -> BookingDetailResponse:
    """
    Atomically book `participants` spots on a slot.

    Steps (single transaction):
      1. Lock the slot row joined with its experience
      2. Re-check remaining capacity under the lock
      3. Lock and re-evaluate the promo code, compare with `discount_amount`
      4. Insert the booking as confirmed
      5. booked_count += participants, used_count += 1
      6. Commit, then read the joined booking record
    """
    discount_amount = Decimal(discount_amount)
    participants = booking_data.participants

    try:
        with booking_latency.time():
            await _set_lock_timeout(db)

            result = await db.execute(
                select(Slot, Experience.price)
                .join(Experience, Experience.id == Slot.experience_id)
                .where(
                    Slot.id == booking_data.slot_id,
                    Slot.experience_id == booking_data.experience_id,
                )
                .with_for_update(of=Slot)
                .execution_options(populate_existing=True)
            )
            row = result.one_or_none()
            if row is None:
                raise SlotNotFound(booking_data.slot_id, booking_data.experience_id)

            slot, price = row
            available_spots = slot.capacity - slot.booked_count
            if available_spots < participants:
                logger.warning(
                    "booking_failed_no_spots",
                    slot_id=slot.id,
                    requested=participants,
                    available=available_spots,
                )
                raise InsufficientCapacity(available_spots, participants)

            base_price = Decimal(price) * participants

            promo: Optional[PromoCode] = None
            if booking_data.promo_code:
                promo = await find_promo_by_code(db, booking_data.promo_code, for_update=True)
                locked_result = evaluate_promo(promo, base_price, datetime.now(timezone.utc))
                if not locked_result.valid:
                    raise PromoRejected(locked_result.message)
                if locked_result.discount_amount != discount_amount:
                    raise StaleDiscount(discount_amount, locked_result.discount_amount)

            booking = Booking(
                experience_id=booking_data.experience_id,
                slot_id=slot.id,
                user_name=booking_data.user_name,
                user_email=booking_data.user_email,
                user_phone=booking_data.user_phone,
                participants=participants,
                total_price=base_price - discount_amount,
                promo_code=promo.code if promo is not None else None,
                discount_amount=discount_amount,
                status=BookingStatus.CONFIRMED.value,
            )
            db.add(booking)

            reserved = await db.execute(
                update(Slot)
                .where(
                    Slot.id == slot.id,
                    Slot.capacity - Slot.booked_count >= participants,
                )
                .values(booked_count=Slot.booked_count + participants)
            )
            if reserved.rowcount != 1:
                raise InvariantViolation(f"Slot {slot.id} occupancy would exceed its capacity")

            if promo is not None:
                await db.execute(
                    update(PromoCode)
                    .where(PromoCode.id == promo.id)
                    .values(used_count=PromoCode.used_count + 1)
                )

            await db.flush()
            await db.refresh(booking)
            await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise _store_error(exc) from exc
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "booking_created",
        booking_id=booking.id,
        slot_id=booking.slot_id,
        participants=participants,
        total_price=str(booking.total_price),
        promo_code=booking.promo_code,
    )

    committed = BookingDetailResponse.model_validate(booking)
    try:
        return await get_booking_details(db, booking.id)
    except (SQLAlchemyError, BookingNotFound) as exc:
        # The booking is committed; only the joined read failed
        logger.warning("booking_detail_read_failed", booking_id=committed.id, error=str(exc))
        await db.rollback()
        return committed


async def cancel_booking(db: AsyncSession, booking_id: int) -> Booking:
    """
    Cancel a confirmed booking and release its spots and promo usage.

    Cancelling an already-cancelled booking raises AlreadyCancelled; the
    operation is deliberately not idempotent.
    """
    try:
        await _set_lock_timeout(db)

        result = await db.execute(
            select(Booking)
            .where(Booking.id == booking_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        booking = result.scalar_one_or_none()

        if booking is None:
            raise BookingNotFound(booking_id)

        if booking.is_cancelled:
            raise AlreadyCancelled(booking_id)

        booking.status = BookingStatus.CANCELLED.value

        released = await db.execute(
            update(Slot)
            .where(
                Slot.id == booking.slot_id,
                Slot.booked_count >= booking.participants,
            )
            .values(booked_count=Slot.booked_count - booking.participants)
        )
        if released.rowcount != 1:
            raise InvariantViolation(
                f"Releasing booking {booking_id} would drop slot {booking.slot_id} below zero"
            )

        if booking.promo_code:
            await db.execute(
                update(PromoCode)
                .where(PromoCode.code == booking.promo_code, PromoCode.used_count > 0)
                .values(used_count=PromoCode.used_count - 1)
            )

        await db.flush()
        await db.refresh(booking)
        await db.commit()
    except BookingNotFound:
        await db.rollback()
        record_cancellation("not_found")
        raise
    except AlreadyCancelled:
        await db.rollback()
        record_cancellation("already_cancelled")
        raise
    except SQLAlchemyError as exc:
        await db.rollback()
        record_cancellation("error")
        raise _store_error(exc) from exc
    except Exception:
        await db.rollback()
        record_cancellation("error")
        raise

    record_cancellation("success")
    logger.info(
        "booking_cancelled",
        booking_id=booking.id,
        slot_id=booking.slot_id,
        spots_released=booking.participants,
        promo_code=booking.promo_code,
    )
    return booking


def _details_query():
    return (
        select(
            Booking,
            Experience.title,
            Experience.location,
            Slot.date,
            Slot.start_time,
            Slot.end_time,
        )
        .join(Experience, Experience.id == Booking.experience_id)
        .join(Slot, Slot.id == Booking.slot_id)
    )


def _to_details(row) -> BookingDetailResponse:
    booking, title, location, slot_date, start_time, end_time = row
    return BookingDetailResponse.model_validate(booking).model_copy(
        update={
            "experience_title": title,
            "experience_location": location,
            "slot_date": slot_date,
            "slot_start_time": start_time,
            "slot_end_time": end_time,
        }
    )


async def get_booking_details(db: AsyncSession, booking_id: int) -> BookingDetailResponse:
    """Booking joined with experience title/location and slot date/times."""
    result = await db.execute(
        _details_query()
        .where(Booking.id == booking_id)
        .execution_options(populate_existing=True)
    )
    row = result.one_or_none()
    if row is None:
        raise BookingNotFound(booking_id)
    return _to_details(row)


async def find_bookings_by_email(db: AsyncSession, email: str) -> list[BookingDetailResponse]:
    """All bookings for an email address, newest first."""
    result = await db.execute(
        _details_query()
        .where(Booking.user_email == email.strip().lower())
        .order_by(Booking.created_at.desc(), Booking.id.desc())
    )
    return [_to_details(row) for row in result.all()]
