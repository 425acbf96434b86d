from supabase import create_async_client, AsyncClient
from postgrest.exceptions import APIError
from app.core.config import settings
from app.core.exceptions import (
    BookingError,
    BookingNotFoundError,
    DateDisabledError,
    DisabledDateExistsError,
    DuplicateBookingError,
    StoreUnavailableError,
)
from app.models.db_models import (
    Barber,
    Booking,
    BookingInterval,
    BookingStatus,
    DisabledDate,
    NewBooking,
    Service,
)
import logging
from datetime import date, datetime, time, timedelta
from typing import List, Optional
from zoneinfo import ZoneInfo

logger = logging.getLogger("app")

BOOKING_WITH_REFS = "*, service:services(*), barber:barbers(*)"
DEFAULT_DURATION_MINUTES = 30

# Postgres SQLSTATEs the schema raises for a taken slot
UNIQUE_VIOLATION = "23505"
EXCLUSION_VIOLATION = "23P01"

def translate_api_error(e: APIError, operation: str) -> BookingError:
    """Maps a PostgREST error onto the booking error taxonomy."""
    code = getattr(e, "code", None) or ""
    message = getattr(e, "message", None) or str(e)

    if code in (UNIQUE_VIOLATION, EXCLUSION_VIOLATION) or "duplicate key" in message \
            or "unique constraint" in message or "conflicting key value" in message:
        return DuplicateBookingError("This time slot has just been booked. Please pick another time.")
    if "DATE_DISABLED" in message:
        return DateDisabledError("The shop is closed for bookings on this date.")

    logger.error(f"❌ DB Error ({operation}): code={code} message={message}")
    return StoreUnavailableError("The booking service is temporarily unavailable. Please try again.")

def parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))

def day_bounds(day: date, tz: ZoneInfo):
    start = datetime.combine(day, time.min, tzinfo=tz)
    return start, start + timedelta(days=1)

class DBService:
    _instance = None
    _client: AsyncClient = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(DBService, cls).__new__(cls)
            # Async client is created on first use
        return cls._instance

    async def get_client(self):
        if not self._client:
            if not (settings.SUPABASE_URL and settings.SUPABASE_KEY):
                logger.warning("⚠️ Supabase credentials missing")
                raise StoreUnavailableError("The booking service is not configured.")
            try:
                self._client = await create_async_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)
                logger.info("✅ Supabase Async client initialized")
            except Exception as e:
                logger.error(f"❌ Failed to initialize Supabase Async: {e}")
                raise StoreUnavailableError("The booking service is temporarily unavailable. Please try again.") from e
        return self._client

    async def _execute(self, query, operation: str):
        try:
            return await query.execute()
        except APIError as e:
            raise translate_api_error(e, operation) from e
        except BookingError:
            raise
        except Exception as e:
            logger.error(f"❌ DB Error ({operation}): {e}")
            raise StoreUnavailableError("The booking service is temporarily unavailable. Please try again.") from e

    # --- Reference data ---

    async def get_barbers(self) -> List[Barber]:
        client = await self.get_client()
        response = await self._execute(
            client.table('barbers').select("*").order('name'), "get_barbers"
        )
        return [Barber(**row) for row in response.data or []]

    async def get_services(self) -> List[Service]:
        client = await self.get_client()
        response = await self._execute(
            client.table('services').select("*").order('price_tnd'), "get_services"
        )
        return [Service(**row) for row in response.data or []]

    async def get_service(self, service_id: str) -> Optional[Service]:
        client = await self.get_client()
        response = await self._execute(
            client.table('services').select("*").eq('id', service_id).limit(1), "get_service"
        )
        if response.data:
            return Service(**response.data[0])
        return None

    async def get_barber(self, barber_id: str) -> Optional[Barber]:
        client = await self.get_client()
        response = await self._execute(
            client.table('barbers').select("*").eq('id', barber_id).limit(1), "get_barber"
        )
        if response.data:
            return Barber(**response.data[0])
        return None

    # --- Bookings ---

    async def get_bookings(
        self,
        barber_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[Booking]:
        """
        Confirmed bookings, optionally narrowed to one barber and a time range.
        """
        client = await self.get_client()
        query = client.table('bookings').select(BOOKING_WITH_REFS).eq('status', BookingStatus.CONFIRMED.value)

        if barber_id:
            query = query.eq('barber_id', barber_id)
        if start:
            query = query.gte('booking_date', start.isoformat())
        if end:
            query = query.lte('booking_date', end.isoformat())

        response = await self._execute(query.order('booking_date'), "get_bookings")
        return [Booking(**row) for row in response.data or []]

    async def get_bookings_by_phone(self, phone: str) -> List[Booking]:
        client = await self.get_client()
        response = await self._execute(
            client.table('bookings')
            .select(BOOKING_WITH_REFS)
            .eq('customer_phone', phone)
            .eq('status', BookingStatus.CONFIRMED.value)
            .order('booking_date', desc=True),
            "get_bookings_by_phone",
        )
        return [Booking(**row) for row in response.data or []]

    async def get_booking(self, booking_id: str) -> Optional[Booking]:
        client = await self.get_client()
        response = await self._execute(
            client.table('bookings').select(BOOKING_WITH_REFS).eq('id', booking_id).limit(1),
            "get_booking",
        )
        if response.data:
            return Booking(**response.data[0])
        return None

    async def get_booking_intervals(self, barber_id: str, day: date, tz: ZoneInfo) -> List[BookingInterval]:
        """
        Confirmed bookings of one barber on one local calendar day as [start, end) spans.
        """
        client = await self.get_client()
        day_start, day_end = day_bounds(day, tz)

        response = await self._execute(
            client.table('bookings')
            .select("id, booking_date, booking_end, service:services(duration_minutes)")
            .eq('barber_id', barber_id)
            .eq('status', BookingStatus.CONFIRMED.value)
            .gte('booking_date', day_start.isoformat())
            .lt('booking_date', day_end.isoformat()),
            "get_booking_intervals",
        )

        intervals = []
        for row in response.data or []:
            start = parse_timestamp(row['booking_date'])
            service = row.get('service') or {}
            duration = service.get('duration_minutes') or DEFAULT_DURATION_MINUTES
            end = start + timedelta(minutes=duration)
            if row.get('booking_end'):
                end = max(end, parse_timestamp(row['booking_end']))
            intervals.append(BookingInterval(start=start, end=end))
        return intervals

    async def find_cancelled_booking(self, barber_id: str, when: datetime) -> Optional[str]:
        """Returns the id of a cancelled row at exactly (barber, timestamp), if any."""
        client = await self.get_client()
        response = await self._execute(
            client.table('bookings')
            .select("id")
            .eq('barber_id', barber_id)
            .eq('booking_date', when.isoformat())
            .eq('status', BookingStatus.CANCELLED.value)
            .limit(1),
            "find_cancelled_booking",
        )
        if response.data:
            return response.data[0]['id']
        return None

    async def insert_booking(self, booking: NewBooking) -> Booking:
        client = await self.get_client()
        response = await self._execute(
            client.table('bookings').insert(booking.to_row()), "insert_booking"
        )
        if not response.data:
            raise StoreUnavailableError("The booking could not be saved. Please try again.")
        logger.info(f"✅ Booking {response.data[0]['id']} inserted for barber {booking.barber_id}")
        return Booking(**response.data[0])

    async def reactivate_booking(self, booking_id: str, booking: NewBooking) -> Optional[Booking]:
        """
        Turns a cancelled row back into a confirmed one carrying the new customer.
        Returns None when the row is no longer cancelled (someone else took it).
        """
        client = await self.get_client()
        changes = booking.to_row()
        changes.pop('barber_id', None)
        changes.pop('booking_date', None)

        response = await self._execute(
            client.table('bookings')
            .update(changes)
            .eq('id', booking_id)
            .eq('status', BookingStatus.CANCELLED.value),
            "reactivate_booking",
        )
        if not response.data:
            return None
        logger.info(f"♻️ Booking {booking_id} reactivated for {booking.customer_phone}")
        return Booking(**response.data[0])

    async def cancel_booking(self, booking_id: str) -> Booking:
        client = await self.get_client()
        response = await self._execute(
            client.table('bookings')
            .update({'status': BookingStatus.CANCELLED.value})
            .eq('id', booking_id)
            .neq('status', BookingStatus.COMPLETED.value),
            "cancel_booking",
        )
        if not response.data:
            # Completed bookings keep their status
            raise BookingNotFoundError(f"Booking {booking_id} not found or already completed.")
        logger.info(f"🗑️ Booking {booking_id} cancelled.")
        return Booking(**response.data[0])

    # --- Disabled dates ---

    async def get_disabled_dates(
        self, start: Optional[date] = None, end: Optional[date] = None
    ) -> List[DisabledDate]:
        client = await self.get_client()
        query = client.table('disabled_dates').select("*")
        if start:
            query = query.gte('date', start.isoformat())
        if end:
            query = query.lte('date', end.isoformat())
        response = await self._execute(query.order('date'), "get_disabled_dates")
        return [DisabledDate(**row) for row in response.data or []]

    async def is_date_disabled(self, day: date) -> bool:
        client = await self.get_client()
        response = await self._execute(
            client.table('disabled_dates').select("id").eq('date', day.isoformat()).limit(1),
            "is_date_disabled",
        )
        return bool(response.data)

    async def add_disabled_date(self, day: date, reason: Optional[str] = None) -> DisabledDate:
        client = await self.get_client()
        try:
            response = await self._execute(
                client.table('disabled_dates').insert({'date': day.isoformat(), 'reason': reason}),
                "add_disabled_date",
            )
        except DuplicateBookingError as e:
            raise DisabledDateExistsError(f"{day.isoformat()} is already disabled.") from e

        logger.info(f"🚫 Date {day.isoformat()} disabled ({reason or 'no reason'})")
        return DisabledDate(**response.data[0])

    async def remove_disabled_date(self, day: date) -> bool:
        client = await self.get_client()
        response = await self._execute(
            client.table('disabled_dates').delete().eq('date', day.isoformat()),
            "remove_disabled_date",
        )
        removed = bool(response.data)
        if removed:
            logger.info(f"✅ Date {day.isoformat()} enabled again")
        return removed

db_service = DBService()
