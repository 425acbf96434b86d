from enum import Enum
from typing import Optional
from datetime import date, datetime, timedelta
from pydantic import BaseModel, Field

class BookingStatus(str, Enum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"

class Service(BaseModel):
    id: str
    name_en: str
    name_ar: str
    description_en: str = ""
    description_ar: str = ""
    duration_minutes: int
    price_tnd: float

    def display_name(self, lang: str = "en") -> str:
        return self.name_ar if lang == "ar" else self.name_en

class Barber(BaseModel):
    id: str
    name: str
    name_ar: str

    def display_name(self, lang: str = "en") -> str:
        return self.name_ar if lang == "ar" else self.name

class Booking(BaseModel):
    id: str
    service_id: str
    barber_id: str
    customer_name: str
    customer_phone: str
    customer_email: Optional[str] = None
    booking_date: datetime
    booking_end: Optional[datetime] = None
    status: BookingStatus = BookingStatus.CONFIRMED
    created_at: Optional[datetime] = None
    service: Optional[Service] = None
    barber: Optional[Barber] = None

class DisabledDate(BaseModel):
    id: Optional[str] = None
    date: date
    reason: Optional[str] = None

class BookingInterval(BaseModel):
    """Half-open [start, end) span a confirmed booking occupies."""
    start: datetime
    end: datetime

    @classmethod
    def from_start(cls, start: datetime, duration_minutes: int) -> "BookingInterval":
        return cls(start=start, end=start + timedelta(minutes=duration_minutes))

class NewBooking(BaseModel):
    service_id: str
    barber_id: str
    customer_name: str
    customer_phone: str
    customer_email: Optional[str] = None
    booking_date: datetime
    booking_end: datetime
    status: BookingStatus = Field(default=BookingStatus.CONFIRMED)

    def to_row(self) -> dict:
        return self.model_dump(mode="json")
