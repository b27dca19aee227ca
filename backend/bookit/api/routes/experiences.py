"""
Experience endpoints: listing, categories, search, detail and slot availability.
Listings and categories are cached in Redis; anything carrying slot counts is not.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from bookit.db.session import get_db
from bookit.core.config import get_settings
from bookit.core.exceptions import ExperienceNotFound, ValidationError
from bookit.core.logging import get_logger
from bookit.schemas.common import Envelope, ListEnvelope, PageEnvelope, Pagination
from bookit.schemas.experience import ExperienceResponse, ExperienceDetailResponse, SlotResponse
from bookit.services.availability_service import (
    find_available_slots, find_slots, find_available_dates,
)
from bookit.services.cache_service import (
    CATEGORIES_KEY, get_cached, set_cached, make_listing_key,
)
from bookit.services.experience_service import (
    find_experience_by_id, list_categories, list_experiences, normalize_sort, search_experiences,
)

logger = get_logger(__name__)
settings = get_settings()
router = APIRouter(prefix="/experiences", tags=["Experiences"])


@router.get("", response_model=PageEnvelope[ExperienceResponse])
async def list_experiences_endpoint(
    limit: int = Query(settings.EXPERIENCE_PAGE_DEFAULT, ge=1),
    offset: int = Query(0, ge=0),
    category: Optional[str] = Query(None),
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    sort_by: str = Query("rating"),
    sort_order: str = Query("desc"),
    db: AsyncSession = Depends(get_db),
):
    """
    List experiences with filtering, sorting and pagination.
    `limit` is clamped to EXPERIENCE_PAGE_MAX; unknown sort columns fall back to rating.
    """
    limit = min(limit, settings.EXPERIENCE_PAGE_MAX)
    sort_by, sort_order = normalize_sort(sort_by, sort_order)

    cache_key = make_listing_key(
        limit=limit, offset=offset, category=category,
        min_price=min_price, max_price=max_price,
        sort_by=sort_by, sort_order=sort_order,
    )
    cached = await get_cached(cache_key)
    if cached is not None:
        logger.info("experiences_list_cache_hit", key=cache_key)
        experiences = cached
    else:
        rows = await list_experiences(
            db, limit=limit, offset=offset, category=category,
            min_price=min_price, max_price=max_price,
            sort_by=sort_by, sort_order=sort_order,
        )
        experiences = [ExperienceResponse.model_validate(e).model_dump(mode="json") for e in rows]
        await set_cached(cache_key, experiences)

    return PageEnvelope[ExperienceResponse](
        data=experiences,
        pagination=Pagination(limit=limit, offset=offset, count=len(experiences)),
    )


@router.get("/categories", response_model=Envelope[list[str]])
async def list_categories_endpoint(db: AsyncSession = Depends(get_db)):
    categories = await get_cached(CATEGORIES_KEY)
    if categories is None:
        categories = await list_categories(db)
        await set_cached(CATEGORIES_KEY, categories)
    return Envelope[list[str]](data=categories)


@router.get("/search", response_model=ListEnvelope[ExperienceResponse])
async def search_experiences_endpoint(
    q: Optional[str] = Query(None, description="Search term"),
    db: AsyncSession = Depends(get_db),
):
    """Case-insensitive search on title and description."""
    term = (q or "").strip()
    if not term:
        raise ValidationError(
            'Please provide a search term using the "q" query parameter',
            error="Search term is required",
        )
    if len(term) < settings.SEARCH_MIN_LENGTH:
        raise ValidationError(
            f"Search term must be at least {settings.SEARCH_MIN_LENGTH} characters",
            error="Search term too short",
        )

    experiences = await search_experiences(db, term)
    return ListEnvelope[ExperienceResponse](
        data=[ExperienceResponse.model_validate(e) for e in experiences],
        count=len(experiences),
    )


async def _require_experience(db: AsyncSession, experience_id: int):
    experience = await find_experience_by_id(db, experience_id)
    if experience is None:
        raise ExperienceNotFound(experience_id)
    return experience


@router.get("/{experience_id}", response_model=Envelope[ExperienceDetailResponse])
async def get_experience_endpoint(
    experience_id: int = Path(..., gt=0),
    db: AsyncSession = Depends(get_db),
):
    """Experience details with its future, not sold-out slots. Never cached."""
    experience = await _require_experience(db, experience_id)
    slots = await find_available_slots(db, experience_id)

    detail = ExperienceDetailResponse(
        **ExperienceResponse.model_validate(experience).model_dump(),
        available_slots=[SlotResponse.model_validate(s) for s in slots],
    )
    return Envelope[ExperienceDetailResponse](data=detail)


@router.get("/{experience_id}/slots", response_model=ListEnvelope[SlotResponse])
async def list_slots_endpoint(
    experience_id: int = Path(..., gt=0),
    on_date: Optional[date] = Query(None, alias="date"),
    db: AsyncSession = Depends(get_db),
):
    """All future slots (full ones included) with their remaining spots."""
    await _require_experience(db, experience_id)
    slots = await find_slots(db, experience_id, on_date)
    return ListEnvelope[SlotResponse](
        data=[SlotResponse.model_validate(s) for s in slots],
        count=len(slots),
    )


@router.get("/{experience_id}/available-dates", response_model=ListEnvelope[date])
async def list_available_dates_endpoint(
    experience_id: int = Path(..., gt=0),
    db: AsyncSession = Depends(get_db),
):
    await _require_experience(db, experience_id)
    dates = await find_available_dates(db, experience_id)
    return ListEnvelope[date](data=dates, count=len(dates))
