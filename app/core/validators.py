import re
from typing import Optional, Tuple

from app.core.exceptions import BookingValidationError

# Local mobile/landline numbers: 8 digits, leading 9, 2, 4 or 5
PHONE_RE = re.compile(r"^[2459][0-9]{7}$")
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

def normalize_phone(raw: str) -> str:
    if not raw:
        return ""
    return re.sub(r"\s+", "", raw)

def is_valid_phone(phone: str) -> bool:
    return bool(phone) and PHONE_RE.fullmatch(phone) is not None

def validate_customer_details(
    name: str, phone: str, email: Optional[str] = None
) -> Tuple[str, str, Optional[str]]:
    """
    Checks the contact fields of a booking before anything is sent to the store.
    Returns the cleaned (name, phone, email).
    """
    name = (name or "").strip()
    phone = normalize_phone(phone)
    email = (email or "").strip() or None

    if not name:
        raise BookingValidationError("Please enter your name.", field="customer_name")
    if not phone:
        raise BookingValidationError("Please enter your phone number.", field="customer_phone")
    if not is_valid_phone(phone):
        raise BookingValidationError(
            "Phone number must be 8 digits starting with 9, 2, 4 or 5.", field="customer_phone"
        )
    if email and not EMAIL_RE.match(email):
        raise BookingValidationError("Email address is not valid.", field="customer_email")

    return name, phone, email
