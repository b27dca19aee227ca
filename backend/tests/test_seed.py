"""
Tests for the development seed script.
"""

import pytest
from sqlalchemy import select, func

from bookit.db.seed import seed, EXPERIENCES, PROMO_CODES, SLOT_DAYS, SLOT_TIMES
from bookit.db.session import engine
from bookit.models import Experience, Slot, PromoCode


async def count(db_session, column):
    return (await db_session.execute(select(func.count(column)))).scalar_one()


@pytest.mark.asyncio
async def test_seed_is_idempotent(db_session):
    try:
        await seed()
        await seed()
    finally:
        await engine.dispose()

    assert await count(db_session, Experience.id) == len(EXPERIENCES)
    assert await count(db_session, Slot.id) == len(EXPERIENCES) * SLOT_DAYS * len(SLOT_TIMES)
    assert await count(db_session, PromoCode.id) == len(PROMO_CODES)

    save10 = (await db_session.execute(select(PromoCode).where(PromoCode.code == "SAVE10"))).scalar_one()
    assert save10.used_count == 0
    assert save10.discount_type == "percentage"
