from typing import Any, Dict, List, Optional, Tuple
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from app.services.db_service import db_service, DBService, day_bounds
from app.services.slot_service import (
    filter_available_slots,
    generate_slot_grid,
    is_bookable_date,
    is_slot_free,
    opening_window,
)
from app.core.config import settings
from app.core.config_loader import load_shop_config
from app.core.exceptions import (
    BookingNotFoundError,
    BookingValidationError,
    DateDisabledError,
    DuplicateBookingError,
)
from app.core.logger import logger
from app.core.validators import normalize_phone, is_valid_phone, validate_customer_details
from app.models.db_models import Barber, Booking, DisabledDate, NewBooking, Service

ADMIN_WINDOW_DAYS = 7

class BookingService:
    def __init__(self, db: DBService = None, config: Dict[str, Any] = None):
        self.db = db or db_service
        self.config = config or load_shop_config()
        self.tz = ZoneInfo(settings.TIMEZONE)

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def to_local(self, value: datetime) -> datetime:
        """Naive datetimes are shop local time; aware ones are converted."""
        if value.tzinfo is None:
            return value.replace(tzinfo=self.tz)
        return value.astimezone(self.tz)

    # --- Reference data ---

    async def get_services(self) -> List[Service]:
        return await self.db.get_services()

    async def get_barbers(self) -> List[Barber]:
        return await self.db.get_barbers()

    async def _require_service(self, service_id: str) -> Service:
        service = await self.db.get_service(service_id)
        if not service:
            raise BookingValidationError("Unknown service.", field="service_id")
        return service

    async def _require_barber(self, barber_id: str) -> Barber:
        barber = await self.db.get_barber(barber_id)
        if not barber:
            raise BookingValidationError("Unknown barber.", field="barber_id")
        return barber

    # --- Availability ---

    async def is_bookable(self, day: date, now: Optional[datetime] = None) -> bool:
        today = (now or self.now()).date()
        if not is_bookable_date(day, [], self.config, today=today):
            return False
        return not await self.db.is_date_disabled(day)

    async def get_available_slots(
        self,
        barber_id: str,
        duration_minutes: int,
        day: date,
        now: Optional[datetime] = None,
    ) -> List[str]:
        """
        Free slot labels for a barber on a date, given the service duration.
        Closed, past and disabled dates have no slots.
        """
        now = now or self.now()
        if not await self.is_bookable(day, now=now):
            logger.info(f"📅 {day.isoformat()} is not bookable")
            return []

        grid = generate_slot_grid(day, self.config)
        booked = await self.db.get_booking_intervals(barber_id, day, self.tz)
        slots = filter_available_slots(day, grid, duration_minutes, booked, now=now, tz=self.tz)
        logger.debug(f"🔎 {len(slots)}/{len(grid)} slots free for barber {barber_id} on {day.isoformat()}")
        return slots

    async def get_slots_for_service(
        self, barber_id: str, service_id: str, day: date, now: Optional[datetime] = None
    ) -> Tuple[Service, List[str]]:
        service = await self._require_service(service_id)
        await self._require_barber(barber_id)
        slots = await self.get_available_slots(barber_id, service.duration_minutes, day, now=now)
        return service, slots

    async def check_availability(self, barber_id: str, start: datetime, duration_minutes: int) -> bool:
        """Single-slot check used right before a slot is accepted."""
        start = self.to_local(start)
        booked = await self.db.get_booking_intervals(barber_id, start.date(), self.tz)
        return is_slot_free(start, duration_minutes, booked)

    # --- Booking lifecycle ---

    def _check_slot_shape(self, start: datetime, now: datetime):
        day = start.date()
        if day < now.date():
            raise BookingValidationError("Cannot book a date in the past.", field="booking_date")
        if opening_window(day, self.config) is None:
            raise DateDisabledError("The shop is closed on this day.")
        if start.strftime("%H:%M") not in generate_slot_grid(day, self.config) or start.second or start.microsecond:
            raise BookingValidationError("Please pick one of the offered time slots.", field="booking_date")
        if start <= now:
            raise BookingValidationError("This time has already passed.", field="booking_date")

    async def create_booking(
        self,
        service_id: str,
        barber_id: str,
        customer_name: str,
        customer_phone: str,
        booking_date: datetime,
        customer_email: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Tuple[Booking, bool]:
        """
        Creates a confirmed booking. Returns (booking, reactivated).

        A cancelled row at the same (barber, timestamp) is reused instead of
        inserting a second row. The store's constraints decide the winner when
        two requests race; the checks here only narrow the window.

        Raises BookingValidationError, DateDisabledError, DuplicateBookingError
        or StoreUnavailableError.
        """
        name, phone, email = validate_customer_details(customer_name, customer_phone, customer_email)

        now = now or self.now()
        start = self.to_local(booking_date)
        self._check_slot_shape(start, now)

        logger.info(f"📥 Booking request - barber {barber_id}, service {service_id}, {start.isoformat()}")
        started_at = datetime.now()

        service = await self._require_service(service_id)
        barber = await self._require_barber(barber_id)
        day = start.date()

        if await self.db.is_date_disabled(day):
            logger.warning(f"🚫 Booking refused, {day.isoformat()} is disabled")
            raise DateDisabledError("The shop is closed for bookings on this date.")

        booked = await self.db.get_booking_intervals(barber_id, day, self.tz)
        if not is_slot_free(start, service.duration_minutes, booked):
            logger.info(f"⛔ Slot {start.isoformat()} overlaps an existing booking for barber {barber_id}")
            raise DuplicateBookingError("This time slot is already booked. Please pick another time.")

        new_booking = NewBooking(
            service_id=service.id,
            barber_id=barber.id,
            customer_name=name,
            customer_phone=phone,
            customer_email=email,
            booking_date=start,
            booking_end=start + timedelta(minutes=service.duration_minutes),
        )

        reactivated = False
        cancelled_id = await self.db.find_cancelled_booking(barber.id, start)
        if cancelled_id:
            booking = await self.db.reactivate_booking(cancelled_id, new_booking)
            if booking is None:
                logger.info(f"⛔ Cancelled row {cancelled_id} was taken by another request")
                raise DuplicateBookingError("This time slot has just been booked. Please pick another time.")
            reactivated = True
        else:
            booking = await self.db.insert_booking(new_booking)

        booking.service = service
        booking.barber = barber

        duration = (datetime.now() - started_at).total_seconds()
        logger.info(f"🏁 Booking {booking.id} confirmed in {duration:.2f}s (reactivated={reactivated})")
        return booking, reactivated

    async def cancel_booking(self, booking_id: str) -> Booking:
        """Sets the booking to cancelled. Cancelling twice leaves it cancelled."""
        return await self.db.cancel_booking(booking_id)

    async def get_bookings_by_phone(self, phone: str) -> List[Booking]:
        phone = normalize_phone(phone)
        if not is_valid_phone(phone):
            raise BookingValidationError(
                "Phone number must be 8 digits starting with 9, 2, 4 or 5.", field="phone"
            )
        return await self.db.get_bookings_by_phone(phone)

    # --- Admin ---

    async def get_admin_bookings(self, start_day: Optional[date] = None, days: int = ADMIN_WINDOW_DAYS) -> List[Booking]:
        start_day = start_day or self.now().date()
        start, _ = day_bounds(start_day, self.tz)
        return await self.db.get_bookings(start=start, end=start + timedelta(days=days))

    async def list_disabled_dates(self, from_day: Optional[date] = None) -> List[DisabledDate]:
        return await self.db.get_disabled_dates(start=from_day)

    async def add_disabled_date(self, day: date, reason: Optional[str] = None) -> DisabledDate:
        reason = (reason or "").strip() or None
        return await self.db.add_disabled_date(day, reason)

    async def remove_disabled_date(self, day: date) -> None:
        if not await self.db.remove_disabled_date(day):
            raise BookingNotFoundError(f"{day.isoformat()} is not disabled.")
