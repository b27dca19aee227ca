"""
Pytest fixtures for test database, client, and sample catalogue data.

Tables are created and dropped around every test for isolation. The database
defaults to a local SQLite file; point TEST_DATABASE_URL at PostgreSQL
(postgresql+asyncpg://...) to also run the row-locking concurrency tests.
"""

import os

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite:///./bookit_test.db")

# Must be set before bookit settings are first loaded
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from bookit.main import app
from bookit.db.base import Base
from bookit.db.session import get_db
from bookit.models import Experience, Slot, PromoCode, DiscountType

test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
TestSessionLocal = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

IS_POSTGRES = TEST_DATABASE_URL.startswith("postgresql")


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create tables, yield session, then drop tables for isolation."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the DB dependency with the test session."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def _persist(db_session: AsyncSession, obj):
    db_session.add(obj)
    await db_session.commit()
    await db_session.refresh(obj)
    return obj


async def reload(db_session: AsyncSession, model, pk):
    """Fetch the committed state of a row, bypassing the identity map."""
    return await db_session.get(model, pk, populate_existing=True)


@pytest_asyncio.fixture
async def test_experience(db_session: AsyncSession) -> Experience:
    """A $50.00 per-participant experience."""
    return await _persist(db_session, Experience(
        title="Sunset Kayak Tour",
        description="Paddle through mangroves at golden hour",
        location="Goa",
        price=Decimal("50.00"),
        duration=150,
        rating=Decimal("4.80"),
        reviews_count=120,
        category="Water Sports",
    ))


@pytest_asyncio.fixture
async def cheap_experience(db_session: AsyncSession) -> Experience:
    """A $3.00 experience, cheaper than the FLAT5 discount."""
    return await _persist(db_session, Experience(
        title="Harbour Ferry Ride",
        description="Short hop across the harbour",
        location="Mumbai",
        price=Decimal("3.00"),
        duration=20,
        rating=Decimal("3.90"),
        reviews_count=8,
        category="Sightseeing",
    ))


def _slot(experience: Experience, capacity: int, days_ahead: int = 7, booked: int = 0,
          start: time = time(9, 0)) -> Slot:
    return Slot(
        experience_id=experience.id,
        date=date.today() + timedelta(days=days_ahead),
        start_time=start,
        end_time=time(start.hour + 2, start.minute),
        capacity=capacity,
        booked_count=booked,
    )


@pytest_asyncio.fixture
async def test_slot(db_session: AsyncSession, test_experience: Experience) -> Slot:
    """A slot with 10 free spots."""
    return await _persist(db_session, _slot(test_experience, capacity=10))


@pytest_asyncio.fixture
async def small_slot(db_session: AsyncSession, test_experience: Experience) -> Slot:
    """A slot with capacity 2."""
    return await _persist(db_session, _slot(test_experience, capacity=2, start=time(14, 0)))


@pytest_asyncio.fixture
async def full_slot(db_session: AsyncSession, test_experience: Experience) -> Slot:
    return await _persist(db_session, _slot(test_experience, capacity=4, booked=4, start=time(17, 0)))


@pytest_asyncio.fixture
async def cheap_slot(db_session: AsyncSession, cheap_experience: Experience) -> Slot:
    return await _persist(db_session, _slot(cheap_experience, capacity=20))


@pytest_asyncio.fixture
async def save10(db_session: AsyncSession) -> PromoCode:
    """10% off with a $50 minimum purchase."""
    return await _persist(db_session, PromoCode(
        code="SAVE10",
        discount_type=DiscountType.PERCENTAGE.value,
        discount_value=Decimal("10"),
        min_amount=Decimal("50"),
        used_count=0,
        is_active=True,
    ))


@pytest_asyncio.fixture
async def flat5(db_session: AsyncSession) -> PromoCode:
    """$5 off, no minimum."""
    return await _persist(db_session, PromoCode(
        code="FLAT5",
        discount_type=DiscountType.FIXED.value,
        discount_value=Decimal("5"),
        min_amount=Decimal("0"),
        used_count=0,
        is_active=True,
    ))


@pytest_asyncio.fixture
async def limited_promo(db_session: AsyncSession) -> PromoCode:
    """Single-use code that has not been used yet."""
    return await _persist(db_session, PromoCode(
        code="ONCE",
        discount_type=DiscountType.FIXED.value,
        discount_value=Decimal("10"),
        min_amount=Decimal("0"),
        max_uses=1,
        used_count=0,
        is_active=True,
    ))


@pytest_asyncio.fixture
async def expired_promo(db_session: AsyncSession) -> PromoCode:
    return await _persist(db_session, PromoCode(
        code="OLDNEWS",
        discount_type=DiscountType.PERCENTAGE.value,
        discount_value=Decimal("50"),
        min_amount=Decimal("0"),
        used_count=0,
        valid_until=datetime.now(timezone.utc) - timedelta(days=1),
        is_active=True,
    ))


@pytest_asyncio.fixture
async def inactive_promo(db_session: AsyncSession) -> PromoCode:
    return await _persist(db_session, PromoCode(
        code="RETIRED",
        discount_type=DiscountType.FIXED.value,
        discount_value=Decimal("15"),
        min_amount=Decimal("0"),
        used_count=0,
        is_active=False,
    ))


def booking_payload(experience_id: int, slot_id: int, **overrides) -> dict:
    payload = {
        "experience_id": experience_id,
        "slot_id": slot_id,
        "user_name": "Asha Rao",
        "user_email": "asha@example.com",
        "user_phone": "+91 98765 43210",
        "participants": 2,
    }
    payload.update(overrides)
    return payload
