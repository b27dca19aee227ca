"""
Slot availability reads.

`check_availability` is an unlocked, optimistic pre-check used to fail fast
before opening the booking transaction. It is advisory only: the booking
transaction re-reads capacity under a row lock and that check is the one that
counts.
"""

from datetime import date
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bookit.models.slot import Slot


async def check_availability(db: AsyncSession, slot_id: int, participants: int) -> bool:
    """True iff the slot exists and has at least `participants` spots left."""
    result = await db.execute(
        select((Slot.capacity - Slot.booked_count).label("available_spots"))
        .where(Slot.id == slot_id)
    )
    available = result.scalar_one_or_none()
    if available is None:
        return False
    return available >= participants


async def find_available_slots(db: AsyncSession, experience_id: int) -> list[Slot]:
    """Future slots of an experience that still have room, soonest first."""
    result = await db.execute(
        select(Slot)
        .where(
            Slot.experience_id == experience_id,
            Slot.date >= date.today(),
            Slot.booked_count < Slot.capacity,
        )
        .order_by(Slot.date, Slot.start_time)
    )
    return list(result.scalars().all())


async def find_slots(
    db: AsyncSession,
    experience_id: int,
    on_date: Optional[date] = None,
) -> list[Slot]:
    """All future slots of an experience, including full ones."""
    query = select(Slot).where(
        Slot.experience_id == experience_id,
        Slot.date >= date.today(),
    )
    if on_date is not None:
        query = query.where(Slot.date == on_date)

    result = await db.execute(query.order_by(Slot.date, Slot.start_time))
    return list(result.scalars().all())


async def find_available_dates(db: AsyncSession, experience_id: int) -> list[date]:
    result = await db.execute(
        select(Slot.date)
        .where(
            Slot.experience_id == experience_id,
            Slot.date >= date.today(),
            Slot.booked_count < Slot.capacity,
        )
        .distinct()
        .order_by(Slot.date)
    )
    return list(result.scalars().all())
