"""
Load sample experiences, slots and promo codes for local development.

    python -m bookit.db.seed

Existing rows are left alone: experiences are matched by title and promo
codes by code, so the script can be re-run safely.
"""

import asyncio
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal

from sqlalchemy import select, func

from bookit.core.logging import setup_logging, get_logger
from bookit.db.session import AsyncSessionLocal, engine
from bookit.models import Experience, Slot, PromoCode, DiscountType
from bookit.services.cache_service import invalidate_experience_cache, close_redis

logger = get_logger(__name__)

EXPERIENCES = [
    {
        "title": "Sunset Kayak Tour",
        "description": "Paddle through calm mangrove channels and watch the sun set over the bay.",
        "location": "Goa",
        "price": Decimal("45.00"),
        "duration": 150,
        "rating": Decimal("4.80"),
        "reviews_count": 214,
        "category": "Water Sports",
    },
    {
        "title": "Old Town Food Walk",
        "description": "Taste twelve local specialities with a guide who grew up in the old town.",
        "location": "Jaipur",
        "price": Decimal("30.00"),
        "duration": 180,
        "rating": Decimal("4.60"),
        "reviews_count": 512,
        "category": "Food & Drink",
    },
    {
        "title": "Himalayan Sunrise Trek",
        "description": "A guided pre-dawn hike to a ridge viewpoint with breakfast at the top.",
        "location": "Manali",
        "price": Decimal("65.00"),
        "duration": 300,
        "rating": Decimal("4.90"),
        "reviews_count": 98,
        "category": "Adventure",
    },
    {
        "title": "Pottery Workshop",
        "description": "Throw, trim and glaze your own bowl in a small studio class.",
        "location": "Pondicherry",
        "price": Decimal("25.00"),
        "duration": 120,
        "rating": Decimal("4.40"),
        "reviews_count": 67,
        "category": "Workshops",
    },
]

SLOT_TIMES = [(time(9, 0), time(11, 30), 10), (time(16, 0), time(18, 30), 8)]
SLOT_DAYS = 7

PROMO_CODES = [
    {"code": "SAVE10", "discount_type": DiscountType.PERCENTAGE.value, "discount_value": Decimal("10"),
     "min_amount": Decimal("50")},
    {"code": "FLAT5", "discount_type": DiscountType.FIXED.value, "discount_value": Decimal("5"),
     "min_amount": Decimal("0")},
    {"code": "WELCOME20", "discount_type": DiscountType.PERCENTAGE.value, "discount_value": Decimal("20"),
     "min_amount": Decimal("100"), "max_uses": 100,
     "valid_until": datetime.now(timezone.utc) + timedelta(days=90)},
]


async def seed() -> None:
    async with AsyncSessionLocal() as db:
        created_slots = 0
        for data in EXPERIENCES:
            existing = await db.execute(select(Experience).where(Experience.title == data["title"]))
            experience = existing.scalar_one_or_none()
            if experience is None:
                experience = Experience(**data)
                db.add(experience)
                await db.flush()

            for offset in range(1, SLOT_DAYS + 1):
                slot_date = date.today() + timedelta(days=offset)
                for start, end, capacity in SLOT_TIMES:
                    found = await db.execute(
                        select(Slot.id).where(
                            Slot.experience_id == experience.id,
                            Slot.date == slot_date,
                            Slot.start_time == start,
                        )
                    )
                    if found.scalar_one_or_none() is None:
                        db.add(Slot(
                            experience_id=experience.id,
                            date=slot_date,
                            start_time=start,
                            end_time=end,
                            capacity=capacity,
                            booked_count=0,
                        ))
                        created_slots += 1

        for data in PROMO_CODES:
            found = await db.execute(select(PromoCode.id).where(PromoCode.code == data["code"]))
            if found.scalar_one_or_none() is None:
                db.add(PromoCode(**data))

        await db.commit()

        experience_count = (await db.execute(select(func.count(Experience.id)))).scalar()
        slot_count = (await db.execute(select(func.count(Slot.id)))).scalar()
        promo_count = (await db.execute(select(func.count(PromoCode.id)))).scalar()

    logger.info(
        "seed_completed",
        experiences=experience_count,
        slots=slot_count,
        slots_created=created_slots,
        promo_codes=promo_count,
    )
    await invalidate_experience_cache()


async def main() -> None:
    setup_logging()
    try:
        await seed()
    finally:
        await close_redis()
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
