"""
Promo code evaluation.

`evaluate_promo` is a pure function over a loaded PromoCode row so the
booking transaction can re-run the exact same rules against the locked row.
`validate_promo` is the lookup + evaluate entry point used by the API layer.

Checks short-circuit in this order: exists, active, not expired, under the
usage cap, minimum purchase met. The discount is rounded to cents and never
exceeds the purchase amount.
"""

from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from bookit.models.promo_code import PromoCode, DiscountType
from bookit.schemas.promo import PromoValidationResult
from bookit.core.metrics import record_promo_validation
from bookit.core.logging import get_logger

logger = get_logger(__name__)

CENTS = Decimal("0.01")


def normalize_code(code: str) -> str:
    return code.strip().upper()


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; stored values are UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _invalid(message: str) -> PromoValidationResult:
    return PromoValidationResult(valid=False, discount_amount=Decimal("0"), message=message)


def compute_discount(discount_type: str, discount_value: Decimal, amount: Decimal) -> Decimal:
    if discount_type == DiscountType.PERCENTAGE.value:
        discount = amount * Decimal(discount_value) / Decimal(100)
    else:
        discount = Decimal(discount_value)
    discount = discount.quantize(CENTS, rounding=ROUND_HALF_UP)
    return min(discount, amount)


def evaluate_promo(
    promo: Optional[PromoCode],
    amount: Decimal,
    now: Optional[datetime] = None,
) -> PromoValidationResult:
    """Apply the promo rules to `amount` without touching the database."""
    now = now or datetime.now(timezone.utc)
    amount = Decimal(amount)

    if promo is None:
        return _invalid("Invalid promo code")

    if not promo.is_active:
        return _invalid("This promo code is no longer active")

    if promo.valid_until is not None and now > _as_utc(promo.valid_until):
        return _invalid("This promo code has expired")

    if promo.max_uses is not None and promo.used_count >= promo.max_uses:
        return _invalid("This promo code has reached its usage limit")

    min_amount = Decimal(promo.min_amount or 0)
    if amount < min_amount:
        return _invalid(
            f"This promo code requires a minimum purchase of ${min_amount:.2f}"
        )

    discount = compute_discount(promo.discount_type, promo.discount_value, amount)
    return PromoValidationResult(
        valid=True,
        discount_amount=discount,
        discount_type=DiscountType(promo.discount_type),
        discount_value=Decimal(promo.discount_value),
        message=f"Promo code applied! You saved ${discount:.2f}",
    )


async def find_promo_by_code(
    db: AsyncSession,
    code: str,
    for_update: bool = False,
) -> Optional[PromoCode]:
    query = select(PromoCode).where(PromoCode.code == normalize_code(code))
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def validate_promo(db: AsyncSession, code: str, amount: Decimal) -> PromoValidationResult:
    """Look up `code` (case-insensitive) and evaluate it against `amount`."""
    promo = await find_promo_by_code(db, code)
    result = evaluate_promo(promo, amount)
    record_promo_validation(result.valid)

    if result.valid:
        logger.info("promo_validated", code=normalize_code(code), discount=str(result.discount_amount))
    else:
        logger.info("promo_rejected", code=normalize_code(code), reason=result.message)
    return result


async def find_active_promos(db: AsyncSession, now: Optional[datetime] = None) -> list[PromoCode]:
    """Active, unexpired codes that still have uses left, best discount first."""
    now = now or datetime.now(timezone.utc)
    result = await db.execute(
        select(PromoCode)
        .where(
            PromoCode.is_active.is_(True),
            or_(PromoCode.valid_until.is_(None), PromoCode.valid_until >= now),
            or_(PromoCode.max_uses.is_(None), PromoCode.used_count < PromoCode.max_uses),
        )
        .order_by(PromoCode.discount_value.desc())
    )
    return list(result.scalars().all())
