from bookit.schemas.common import Envelope, ListEnvelope, PageEnvelope, Pagination
from bookit.schemas.experience import ExperienceResponse, ExperienceDetailResponse, SlotResponse
from bookit.schemas.booking import BookingCreate, BookingResponse, BookingDetailResponse
from bookit.schemas.promo import (
    PromoValidateRequest, PromoValidationResult, PromoValidateData, PromoPublic,
)

__all__ = [
    "Envelope", "ListEnvelope", "PageEnvelope", "Pagination",
    "ExperienceResponse", "ExperienceDetailResponse", "SlotResponse",
    "BookingCreate", "BookingResponse", "BookingDetailResponse",
    "PromoValidateRequest", "PromoValidationResult", "PromoValidateData", "PromoPublic",
]
