"""
Multi-step booking flow: service -> barber -> date/time -> details -> confirm.

The stepper keeps only transient state for one customer. Every store call
goes through BookingService, and every failure sends the customer back to
the step where it can be fixed, with `message` explaining why.
"""
from enum import Enum
from datetime import date
from typing import List, Optional

from app.core.exceptions import (
    BookingValidationError,
    DateDisabledError,
    DuplicateBookingError,
    StoreUnavailableError,
)
from app.core.logger import logger
from app.core.validators import validate_customer_details
from app.models.db_models import Barber, Booking, Service
from app.services.booking_service import BookingService
from app.services.slot_service import slot_to_datetime

class Step(str, Enum):
    SERVICE = "service"
    BARBER = "barber"
    DATETIME = "datetime"
    DETAILS = "details"
    CONFIRM = "confirm"
    DONE = "done"

STEP_ORDER = [Step.SERVICE, Step.BARBER, Step.DATETIME, Step.DETAILS, Step.CONFIRM]

RETRY_MESSAGE = "Something went wrong while talking to the booking system. Please try again."

class BookingStepper:
    def __init__(self, booking_service: BookingService, services: List[Service], barbers: List[Barber], lang: str = "en"):
        self.booking_service = booking_service
        self.services = {s.id: s for s in services}
        self.barbers = {b.id: b for b in barbers}
        self.lang = lang
        self.reset()

    @classmethod
    async def start(cls, booking_service: BookingService, lang: str = "en") -> "BookingStepper":
        services = await booking_service.get_services()
        barbers = await booking_service.get_barbers()
        return cls(booking_service, services, barbers, lang=lang)

    def reset(self):
        self.step = Step.SERVICE
        self.service: Optional[Service] = None
        self.barber: Optional[Barber] = None
        self.date: Optional[date] = None
        self.time: Optional[str] = None
        self.slots: List[str] = []
        self.customer_name = ""
        self.customer_phone = ""
        self.customer_email: Optional[str] = None
        self.booking: Optional[Booking] = None
        self.message: Optional[str] = None

    def _expect(self, *steps: Step):
        if self.step not in steps:
            raise ValueError(f"Cannot do that on step '{self.step.value}'")

    @property
    def step_index(self) -> int:
        if self.step == Step.DONE:
            return len(STEP_ORDER)
        return STEP_ORDER.index(self.step)

    def back(self):
        self._expect(Step.BARBER, Step.DATETIME, Step.DETAILS, Step.CONFIRM)
        self.message = None
        self.step = STEP_ORDER[self.step_index - 1]

    # --- Transitions ---

    def select_service(self, service_id: str) -> bool:
        self._expect(Step.SERVICE)
        service = self.services.get(service_id)
        if not service:
            self.message = "Please choose one of the listed services."
            return False
        self.service = service
        self.message = None
        self.step = Step.BARBER
        return True

    def select_barber(self, barber_id: str) -> bool:
        self._expect(Step.BARBER)
        barber = self.barbers.get(barber_id)
        if not barber:
            self.message = "Please choose one of the listed barbers."
            return False
        self.barber = barber
        self.message = None
        self.step = Step.DATETIME
        return True

    async def select_date(self, day: date) -> bool:
        self._expect(Step.DATETIME)
        self.time = None
        try:
            if not await self.booking_service.is_bookable(day):
                self.date = None
                self.slots = []
                self.message = "This date is not available. Please choose another day."
                return False
            self.date = day
            await self._refresh_slots()
        except StoreUnavailableError:
            self.message = RETRY_MESSAGE
            return False

        self.message = None if self.slots else "No free times left on this day. Please choose another day."
        return bool(self.slots)

    async def select_time(self, label: str) -> bool:
        self._expect(Step.DATETIME)
        if self.date is None:
            self.message = "Please choose a date first."
            return False
        if label not in self.slots:
            self.message = "Please pick one of the offered times."
            return False

        start = slot_to_datetime(self.date, label, self.booking_service.tz)
        try:
            available = await self.booking_service.check_availability(
                self.barber.id, start, self.service.duration_minutes
            )
        except StoreUnavailableError:
            self.message = RETRY_MESSAGE
            return False

        if not available:
            self.message = "This time slot is already booked. Please select another time."
            await self._refresh_slots()
            return False

        self.time = label
        self.message = None
        self.step = Step.DETAILS
        return True

    def submit_details(self, name: str, phone: str, email: Optional[str] = None) -> bool:
        self._expect(Step.DETAILS)
        try:
            self.customer_name, self.customer_phone, self.customer_email = validate_customer_details(name, phone, email)
        except BookingValidationError as e:
            self.message = str(e)
            return False
        self.message = None
        self.step = Step.CONFIRM
        return True

    async def confirm(self) -> bool:
        self._expect(Step.CONFIRM)
        start = slot_to_datetime(self.date, self.time, self.booking_service.tz)

        try:
            booking, _ = await self.booking_service.create_booking(
                service_id=self.service.id,
                barber_id=self.barber.id,
                customer_name=self.customer_name,
                customer_phone=self.customer_phone,
                customer_email=self.customer_email,
                booking_date=start,
            )
        except DuplicateBookingError as e:
            logger.info(f"🔁 Slot {self.time} lost, sending customer back to slot selection")
            self.step = Step.DATETIME
            self.time = None
            self.message = str(e)
            await self._refresh_slots_quietly()
            return False
        except DateDisabledError as e:
            self.step = Step.DATETIME
            self.date = None
            self.time = None
            self.slots = []
            self.message = str(e)
            return False
        except BookingValidationError as e:
            self.step = Step.DATETIME if e.field == "booking_date" else Step.DETAILS
            if self.step == Step.DATETIME:
                self.time = None
                await self._refresh_slots_quietly()
            self.message = str(e)
            return False
        except StoreUnavailableError:
            self.message = RETRY_MESSAGE
            return False

        self.booking = booking
        self.step = Step.DONE
        self.message = (
            f"Your appointment with {self.barber.display_name(self.lang)} is confirmed for "
            f"{start.strftime('%d.%m.%Y')} at {self.time}."
        )
        return True

    # --- Helpers ---

    async def _refresh_slots(self):
        self.slots = await self.booking_service.get_available_slots(
            self.barber.id, self.service.duration_minutes, self.date
        )

    async def _refresh_slots_quietly(self):
        try:
            await self._refresh_slots()
        except StoreUnavailableError:
            self.slots = []
