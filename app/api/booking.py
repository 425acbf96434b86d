from datetime import date
from typing import List

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_booking_service
from app.core.logger import logger
from app.models.db_models import Barber, Booking, DisabledDate, Service
from app.models.schemas import (
    AvailabilityResponse,
    BookingCreateRequest,
    BookingResponse,
    CancelResponse,
)
from app.services.booking_service import BookingService

router = APIRouter()

@router.get("/services", response_model=List[Service])
async def list_services(booking_service: BookingService = Depends(get_booking_service)):
    return await booking_service.get_services()

@router.get("/barbers", response_model=List[Barber])
async def list_barbers(booking_service: BookingService = Depends(get_booking_service)):
    return await booking_service.get_barbers()

@router.get("/availability", response_model=AvailabilityResponse)
async def availability(
    barber_id: str,
    service_id: str,
    day: date = Query(..., alias="date"),
    booking_service: BookingService = Depends(get_booking_service),
):
    service, slots = await booking_service.get_slots_for_service(barber_id, service_id, day)
    # An open day with every slot taken is still bookable
    bookable = await booking_service.is_bookable(day)
    return AvailabilityResponse(
        date=day,
        barber_id=barber_id,
        service_id=service.id,
        duration_minutes=service.duration_minutes,
        bookable=bookable,
        slots=slots,
    )

@router.get("/disabled-dates", response_model=List[DisabledDate])
async def disabled_dates(booking_service: BookingService = Depends(get_booking_service)):
    return await booking_service.list_disabled_dates(from_day=booking_service.now().date())

@router.post("/bookings", response_model=BookingResponse, status_code=201)
async def create_booking(
    req: BookingCreateRequest,
    booking_service: BookingService = Depends(get_booking_service),
):
    booking, reactivated = await booking_service.create_booking(
        service_id=req.service_id,
        barber_id=req.barber_id,
        customer_name=req.customer_name,
        customer_phone=req.customer_phone,
        customer_email=req.customer_email,
        booking_date=req.booking_date,
    )
    return BookingResponse(booking=booking, reactivated=reactivated)

@router.get("/bookings", response_model=List[Booking])
async def my_bookings(phone: str, booking_service: BookingService = Depends(get_booking_service)):
    return await booking_service.get_bookings_by_phone(phone)

@router.post("/bookings/{booking_id}/cancel", response_model=CancelResponse)
async def cancel_booking(booking_id: str, booking_service: BookingService = Depends(get_booking_service)):
    booking = await booking_service.cancel_booking(booking_id)
    logger.info(f"🗑️ Customer cancelled booking {booking.id}")
    when = booking.booking_date.astimezone(booking_service.tz)
    return CancelResponse(
        success=True,
        message=f"Your booking on {when.strftime('%d.%m.')} at {when.strftime('%H:%M')} has been cancelled.",
    )
