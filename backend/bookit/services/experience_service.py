"""
Experience read layer: listing, filtering, search and detail lookups.

Plain parameterized queries with no locking; nothing here touches the
capacity or promo usage counters.
"""

from decimal import Decimal
from typing import Optional

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from bookit.core.config import get_settings
from bookit.models.experience import Experience

settings = get_settings()

SORT_COLUMNS = {
    "price": Experience.price,
    "rating": Experience.rating,
    "reviews_count": Experience.reviews_count,
    "created_at": Experience.created_at,
}
DEFAULT_SORT = "rating"


def normalize_sort(sort_by: Optional[str], sort_order: Optional[str]) -> tuple[str, str]:
    """Unknown sort columns fall back to rating, unknown directions to desc."""
    column = sort_by if sort_by in SORT_COLUMNS else DEFAULT_SORT
    direction = "asc" if (sort_order or "").lower() == "asc" else "desc"
    return column, direction


async def list_experiences(
    db: AsyncSession,
    limit: int = 50,
    offset: int = 0,
    category: Optional[str] = None,
    min_price: Optional[Decimal] = None,
    max_price: Optional[Decimal] = None,
    sort_by: str = DEFAULT_SORT,
    sort_order: str = "desc",
) -> list[Experience]:
    query = select(Experience)

    if category:
        query = query.where(Experience.category == category)
    if min_price is not None:
        query = query.where(Experience.price >= min_price)
    if max_price is not None:
        query = query.where(Experience.price <= max_price)

    column_name, direction = normalize_sort(sort_by, sort_order)
    column = SORT_COLUMNS[column_name]
    ordering = column.asc() if direction == "asc" else column.desc()

    result = await db.execute(
        query.order_by(ordering, Experience.id.asc()).limit(limit).offset(offset)
    )
    return list(result.scalars().all())


async def find_experience_by_id(db: AsyncSession, experience_id: int) -> Optional[Experience]:
    result = await db.execute(select(Experience).where(Experience.id == experience_id))
    return result.scalar_one_or_none()


async def list_categories(db: AsyncSession) -> list[str]:
    result = await db.execute(
        select(Experience.category)
        .where(Experience.category.is_not(None))
        .distinct()
        .order_by(Experience.category)
    )
    return list(result.scalars().all())


async def search_experiences(db: AsyncSession, term: str) -> list[Experience]:
    """Case-insensitive substring match on title or description. Wildcards in `term` match literally."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    pattern = f"%{escaped}%"
    result = await db.execute(
        select(Experience)
        .where(or_(
            Experience.title.ilike(pattern, escape="\\"),
            Experience.description.ilike(pattern, escape="\\"),
        ))
        .order_by(Experience.rating.desc(), Experience.id.asc())
        .limit(settings.SEARCH_RESULT_LIMIT)
    )
    return list(result.scalars().all())
