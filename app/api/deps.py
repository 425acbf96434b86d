from functools import lru_cache

from app.services.booking_service import BookingService

@lru_cache
def get_booking_service() -> BookingService:
    return BookingService()
