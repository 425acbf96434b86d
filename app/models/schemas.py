from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from app.models.db_models import Booking

# --- Public booking API ---

class BookingCreateRequest(BaseModel):
    service_id: str
    barber_id: str
    customer_name: str
    customer_phone: str
    customer_email: Optional[str] = None
    booking_date: datetime = Field(..., description="Slot start; naive values are read in shop local time.")

class BookingResponse(BaseModel):
    booking: Booking
    reactivated: bool = False

class AvailabilityResponse(BaseModel):
    date: date
    barber_id: str
    service_id: str
    duration_minutes: int
    bookable: bool
    slots: List[str]

class CancelResponse(BaseModel):
    success: bool
    message: str

class ErrorResponse(BaseModel):
    code: str
    message: str
    field: Optional[str] = None

# --- Admin API ---

class AdminLoginRequest(BaseModel):
    password: str

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int

class DisabledDateCreate(BaseModel):
    date: date
    reason: Optional[str] = None
