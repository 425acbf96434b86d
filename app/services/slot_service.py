"""
Slot grid and availability filtering.

Pure functions only: callers fetch bookings and disabled dates from the
store and pass them in, so everything here can be checked without a
database.
"""
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional
from zoneinfo import ZoneInfo

from app.core.config import settings
from app.core.config_loader import get_business_hours, get_slot_minutes
from app.models.db_models import BookingInterval

def shop_tz() -> ZoneInfo:
    return ZoneInfo(settings.TIMEZONE)

def _parse_hhmm(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)

def _format_minutes(total: int) -> str:
    return f"{total // 60:02d}:{total % 60:02d}"

def opening_window(day: date, config: Dict[str, Any]) -> Optional[Dict[str, str]]:
    """Returns {'start', 'end'} for the weekday of `day`, or None on the closed day."""
    return get_business_hours(config, day.strftime("%A"))

def generate_slot_grid(day: date, config: Dict[str, Any]) -> List[str]:
    """
    Half-hour labels ('HH:MM') from opening time up to, not including, closing time.
    The grid never depends on service duration.
    """
    hours = opening_window(day, config)
    if not hours:
        return []

    step = get_slot_minutes(config)
    start = _parse_hhmm(hours["start"])
    end = _parse_hhmm(hours["end"])

    # Align the first slot to the grid
    if start % step:
        start += step - start % step

    return [_format_minutes(m) for m in range(start, end, step)]

def is_bookable_date(
    day: date,
    disabled_dates: Iterable[date],
    config: Dict[str, Any],
    today: Optional[date] = None,
) -> bool:
    today = today or datetime.now(shop_tz()).date()
    if day < today:
        return False
    if opening_window(day, config) is None:
        return False
    return day not in set(disabled_dates)

def slot_to_datetime(day: date, label: str, tz: Optional[ZoneInfo] = None) -> datetime:
    minutes = _parse_hhmm(label)
    return datetime(day.year, day.month, day.day, minutes // 60, minutes % 60, tzinfo=tz or shop_tz())

def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    # Half-open: touching endpoints are not a conflict
    return a_start < b_end and a_end > b_start

def is_slot_free(start: datetime, duration_minutes: int, booked: Iterable[BookingInterval]) -> bool:
    end = start + timedelta(minutes=duration_minutes)
    return not any(overlaps(start, end, b.start, b.end) for b in booked)

def filter_available_slots(
    day: date,
    slots: List[str],
    duration_minutes: int,
    booked: Iterable[BookingInterval],
    now: Optional[datetime] = None,
    tz: Optional[ZoneInfo] = None,
) -> List[str]:
    """
    Drops every slot whose [start, start + duration) overlaps a booked interval.
    On the current day, slots that have already started are dropped too.
    """
    tz = tz or shop_tz()
    booked = list(booked)
    now = now or datetime.now(tz)

    available = []
    for label in slots:
        start = slot_to_datetime(day, label, tz)
        if start <= now:
            continue
        if is_slot_free(start, duration_minutes, booked):
            available.append(label)
    return available
