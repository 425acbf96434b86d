import asyncio
import copy
import re
import uuid
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest
from postgrest.exceptions import APIError

from app.core.config import settings
from app.core.config_loader import load_shop_config
from app.services.booking_service import BookingService
from app.services.db_service import DBService

TZ = ZoneInfo(settings.TIMEZONE)

SERVICES = [
    {"id": "svc-cut", "name_en": "Haircut", "name_ar": "قص الشعر", "description_en": "Classic cut",
     "description_ar": "", "duration_minutes": 30, "price_tnd": 20},
    {"id": "svc-beard", "name_en": "Beard Trim", "name_ar": "تشذيب اللحية", "description_en": "Hot towel trim",
     "description_ar": "", "duration_minutes": 45, "price_tnd": 15},
    {"id": "svc-full", "name_en": "Cut & Beard", "name_ar": "قص ولحية", "description_en": "Full service",
     "description_ar": "", "duration_minutes": 60, "price_tnd": 30},
]

BARBERS = [
    {"id": "brb-ali", "name": "Ali", "name_ar": "علي"},
    {"id": "brb-sami", "name": "Sami", "name_ar": "سامي"},
]

EMBED_RE = re.compile(r"^(\w+):(\w+)\((.*)\)$")

# --- In-memory stand-in for the Supabase query builder ---

def _coerce(value):
    if isinstance(value, str) and "-" in value and len(value) >= 10:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
    return value

def _split_columns(spec: str):
    parts, depth, current = [], 0, ""
    for ch in spec:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        if ch == "," and depth == 0:
            parts.append(current.strip())
            current = ""
        else:
            current += ch
    if current.strip():
        parts.append(current.strip())
    return parts

class FakeResponse:
    def __init__(self, data):
        self.data = data
        self.count = None

class FakeQuery:
    def __init__(self, store: "FakeSupabase", table: str):
        self.store = store
        self.table_name = table
        self.action = "select"
        self.columns = "*"
        self.payload = None
        self.filters = []
        self.ordering = None
        self.max_rows = None

    def select(self, columns="*"):
        self.action, self.columns = "select", columns
        return self

    def insert(self, row):
        self.action, self.payload = "insert", row
        return self

    def update(self, changes):
        self.action, self.payload = "update", changes
        return self

    def delete(self):
        self.action = "delete"
        return self

    def _filter(self, op, column, value):
        self.filters.append((op, column, value))
        return self

    def eq(self, column, value):
        return self._filter("eq", column, value)

    def neq(self, column, value):
        return self._filter("neq", column, value)

    def gte(self, column, value):
        return self._filter("gte", column, value)

    def gt(self, column, value):
        return self._filter("gt", column, value)

    def lte(self, column, value):
        return self._filter("lte", column, value)

    def lt(self, column, value):
        return self._filter("lt", column, value)

    def order(self, column, desc=False):
        self.ordering = (column, desc)
        return self

    def limit(self, n):
        self.max_rows = n
        return self

    def _matches(self, row):
        for op, column, value in self.filters:
            left, right = _coerce(row.get(column)), _coerce(value)
            if op == "eq":
                if left != right:
                    return False
                continue
            if op == "neq":
                if left == right:
                    return False
                continue
            if left is None:
                return False
            if op == "gte" and not left >= right:
                return False
            if op == "gt" and not left > right:
                return False
            if op == "lte" and not left <= right:
                return False
            if op == "lt" and not left < right:
                return False
        return True

    def _project(self, row):
        out = {}
        for col in _split_columns(self.columns):
            embed = EMBED_RE.match(col)
            if embed:
                alias, table, inner = embed.groups()
                target = self.store.find(table, row.get(f"{alias}_id"))
                if target is None:
                    out[alias] = None
                elif inner.strip() == "*":
                    out[alias] = dict(target)
                else:
                    out[alias] = {c.strip(): target.get(c.strip()) for c in inner.split(",")}
            elif col == "*":
                out.update(row)
            else:
                out[col] = row.get(col)
        return out

    async def execute(self):
        self.store.calls += 1
        # Yield so concurrent requests interleave between round trips
        await asyncio.sleep(0)
        if self.store.fail_with is not None:
            raise self.store.fail_with
        return FakeResponse(getattr(self, f"_run_{self.action}")())

    def _run_select(self):
        rows = [r for r in self.store.tables[self.table_name] if self._matches(r)]
        if self.ordering:
            column, desc = self.ordering
            rows.sort(key=lambda r: _coerce(r.get(column)), reverse=desc)
        if self.max_rows is not None:
            rows = rows[: self.max_rows]
        return [self._project(r) for r in rows]

    def _run_insert(self):
        row = dict(self.payload)
        row.setdefault("id", str(uuid.uuid4()))
        if self.table_name == "bookings":
            row.setdefault("status", "confirmed")
            row.setdefault("created_at", datetime.now(TZ).isoformat())
        self.store.check_constraints(self.table_name, row)
        self.store.tables[self.table_name].append(row)
        return [dict(row)]

    def _run_update(self):
        matched = [r for r in self.store.tables[self.table_name] if self._matches(r)]
        updated = []
        for row in matched:
            candidate = {**row, **self.payload}
            self.store.check_constraints(self.table_name, candidate, ignore_id=row["id"])
            row.update(self.payload)
            updated.append(dict(row))
        return updated

    def _run_delete(self):
        table = self.store.tables[self.table_name]
        removed = [r for r in table if self._matches(r)]
        self.store.tables[self.table_name] = [r for r in table if r not in removed]
        return removed

class FakeSupabase:
    """Enforces the same constraints as supabase/schema.sql."""

    def __init__(self):
        self.tables = {
            "services": copy.deepcopy(SERVICES),
            "barbers": copy.deepcopy(BARBERS),
            "bookings": [],
            "disabled_dates": [],
        }
        self.calls = 0
        self.fail_with = None

    def table(self, name):
        return FakeQuery(self, name)

    def find(self, table, row_id):
        return next((r for r in self.tables[table] if r["id"] == row_id), None)

    def check_constraints(self, table, row, ignore_id=None):
        others = [r for r in self.tables[table] if r["id"] != ignore_id]

        if table == "disabled_dates":
            if any(r["date"] == row["date"] for r in others):
                raise APIError({"code": "23505", "message": 'duplicate key value violates unique constraint "disabled_dates_date_key"'})
            return

        if table != "bookings":
            return

        start = _coerce(row["booking_date"])
        if row["status"] == "confirmed":
            day = start.astimezone(TZ).date().isoformat()
            if any(d["date"] == day for d in self.tables["disabled_dates"]):
                raise APIError({"code": "P0001", "message": f"DATE_DISABLED: bookings are closed on {day}"})

        if row["status"] != "cancelled":
            for other in others:
                if other["status"] != "cancelled" and other["barber_id"] == row["barber_id"] \
                        and _coerce(other["booking_date"]) == start:
                    raise APIError({"code": "23505", "message": 'duplicate key value violates unique constraint "bookings_barber_slot_unique"'})

        if row["status"] == "confirmed":
            end = _coerce(row["booking_end"])
            for other in others:
                if other["status"] == "confirmed" and other["barber_id"] == row["barber_id"] \
                        and start < _coerce(other["booking_end"]) and end > _coerce(other["booking_date"]):
                    raise APIError({"code": "23P01", "message": 'conflicting key value violates exclusion constraint "bookings_no_overlap"'})

    def confirmed(self, barber_id=None):
        return [
            r for r in self.tables["bookings"]
            if r["status"] == "confirmed" and (barber_id is None or r["barber_id"] == barber_id)
        ]

# --- Helpers ---

def upcoming(weekday: int, weeks_ahead: int = 2) -> date:
    """A date `weeks_ahead` weeks out falling on `weekday` (0 = Monday)."""
    base = datetime.now(TZ).date() + timedelta(weeks=weeks_ahead)
    return base + timedelta(days=(weekday - base.weekday()) % 7)

def at(day: date, hhmm: str) -> datetime:
    hours, minutes = map(int, hhmm.split(":"))
    return datetime(day.year, day.month, day.day, hours, minutes, tzinfo=TZ)

def seed_booking(store: FakeSupabase, barber_id: str, start: datetime, service_id: str = "svc-cut", status: str = "confirmed", phone: str = "98000000"):
    duration = store.find("services", service_id)["duration_minutes"]
    row = {
        "id": str(uuid.uuid4()),
        "service_id": service_id,
        "barber_id": barber_id,
        "customer_name": "Seeded Customer",
        "customer_phone": phone,
        "customer_email": None,
        "booking_date": start.isoformat(),
        "booking_end": (start + timedelta(minutes=duration)).isoformat(),
        "status": status,
        "created_at": datetime.now(TZ).isoformat(),
    }
    store.tables["bookings"].append(row)
    return row

# --- Fixtures ---

@pytest.fixture
def shop_config():
    return load_shop_config()

@pytest.fixture
def store():
    return FakeSupabase()

@pytest.fixture
def db(store):
    service = DBService()
    service._client = store
    yield service
    service._client = None

@pytest.fixture
def booking_service(db, shop_config):
    return BookingService(db=db, config=shop_config)
