"""
Promo code endpoints: validation and the public list of active codes.
"""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from bookit.db.session import get_db
from bookit.api.errors import error_envelope
from bookit.schemas.common import Envelope, ListEnvelope
from bookit.schemas.promo import PromoPublic, PromoValidateData, PromoValidateRequest
from bookit.services.promo_service import find_active_promos, validate_promo

router = APIRouter(prefix="/promo", tags=["Promo"])


@router.post(
    "/validate",
    response_model=Envelope[PromoValidateData],
    responses={400: {"description": "Promo code rejected"}},
)
async def validate_promo_endpoint(
    payload: PromoValidateRequest,
    db: AsyncSession = Depends(get_db),
):
    """Check a code against a purchase amount and report the discount it yields."""
    result = await validate_promo(db, payload.code, payload.amount)

    if not result.valid:
        data = PromoValidateData(valid=False, code=payload.code, discount_amount=result.discount_amount)
        return JSONResponse(
            error_envelope(
                "Invalid promo code",
                result.message,
                data=data.model_dump(mode="json", exclude_none=True),
            ),
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    data = PromoValidateData(
        valid=True,
        code=payload.code,
        discount_amount=result.discount_amount,
        discount_type=result.discount_type,
        discount_value=result.discount_value,
        final_amount=payload.amount - result.discount_amount,
    )
    return Envelope[PromoValidateData](data=data, message=result.message)


@router.get("/active", response_model=ListEnvelope[PromoPublic])
async def list_active_promos_endpoint(db: AsyncSession = Depends(get_db)):
    promos = await find_active_promos(db)
    return ListEnvelope[PromoPublic](
        data=[PromoPublic.model_validate(p) for p in promos],
        count=len(promos),
    )
