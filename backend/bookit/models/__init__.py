from bookit.models.experience import Experience
from bookit.models.slot import Slot
from bookit.models.booking import Booking, BookingStatus
from bookit.models.promo_code import PromoCode, DiscountType

__all__ = [
    "Experience", "Slot",
    "Booking", "BookingStatus",
    "PromoCode", "DiscountType",
]
