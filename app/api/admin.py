from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from app.api.deps import get_booking_service
from app.core.config import settings
from app.core.logger import logger
from app.core.security import authenticate_admin, create_admin_token, require_admin
from app.models.db_models import Booking, DisabledDate
from app.models.schemas import AdminLoginRequest, CancelResponse, DisabledDateCreate, TokenResponse
from app.services.booking_service import ADMIN_WINDOW_DAYS, BookingService

router = APIRouter(prefix="/admin")

@router.post("/login", response_model=TokenResponse)
async def login(req: AdminLoginRequest):
    if not authenticate_admin(req.password):
        logger.warning("🔒 Failed admin login attempt")
        raise HTTPException(status_code=401, detail="Invalid password")

    logger.info("🔑 Admin logged in")
    return TokenResponse(
        access_token=create_admin_token(),
        expires_in=settings.ADMIN_TOKEN_EXPIRE_MINUTES * 60,
    )

@router.get("/bookings", response_model=List[Booking], dependencies=[Depends(require_admin)])
async def upcoming_bookings(
    start: Optional[date] = None,
    days: int = Query(ADMIN_WINDOW_DAYS, ge=1, le=31),
    booking_service: BookingService = Depends(get_booking_service),
):
    return await booking_service.get_admin_bookings(start_day=start, days=days)

@router.post("/bookings/{booking_id}/cancel", response_model=CancelResponse, dependencies=[Depends(require_admin)])
async def cancel_booking(booking_id: str, booking_service: BookingService = Depends(get_booking_service)):
    booking = await booking_service.cancel_booking(booking_id)
    logger.info(f"🗑️ Admin cancelled booking {booking.id}")
    return CancelResponse(success=True, message="The booking has been cancelled.")

@router.get("/disabled-dates", response_model=List[DisabledDate], dependencies=[Depends(require_admin)])
async def all_disabled_dates(booking_service: BookingService = Depends(get_booking_service)):
    return await booking_service.list_disabled_dates()

@router.post("/disabled-dates", response_model=DisabledDate, status_code=201, dependencies=[Depends(require_admin)])
async def disable_date(req: DisabledDateCreate, booking_service: BookingService = Depends(get_booking_service)):
    return await booking_service.add_disabled_date(req.date, req.reason)

@router.delete("/disabled-dates/{day}", status_code=204, dependencies=[Depends(require_admin)])
async def enable_date(day: date, booking_service: BookingService = Depends(get_booking_service)):
    await booking_service.remove_disabled_date(day)
