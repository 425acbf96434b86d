from datetime import date, datetime
from typing import List, Optional
from zoneinfo import ZoneInfo

import pandas as pd
import requests
import streamlit as st

from app.core.config import settings

API_BASE_URL = settings.API_BASE_URL
TIMEOUT = 10

COLUMNS = {
    "id": "ID",
    "date": "Date",
    "time": "Time",
    "service": "Service",
    "barber": "Barber",
    "customer_name": "Customer",
    "customer_phone": "Phone",
    "customer_email": "Email",
}

def bookings_to_frame(bookings: List[dict]) -> pd.DataFrame:
    """Flattens API booking payloads into one row per booking, earliest first."""
    shop_tz = ZoneInfo(settings.TIMEZONE)
    rows = []
    for b in bookings:
        # The API may return UTC; the panel shows shop local time
        start = datetime.fromisoformat(b["booking_date"].replace("Z", "+00:00")).astimezone(shop_tz)
        rows.append({
            "id": b["id"],
            "date": start.strftime("%Y-%m-%d"),
            "time": start.strftime("%H:%M"),
            "service": (b.get("service") or {}).get("name_en", ""),
            "barber": (b.get("barber") or {}).get("name", ""),
            "customer_name": b.get("customer_name", ""),
            "customer_phone": b.get("customer_phone", ""),
            "customer_email": b.get("customer_email") or "",
        })

    df = pd.DataFrame(rows, columns=list(COLUMNS))
    return df.sort_values(["date", "time"]).reset_index(drop=True)

def _headers() -> dict:
    return {"Authorization": f"Bearer {st.session_state['token']}"}

def login(password: str) -> Optional[str]:
    response = requests.post(f"{API_BASE_URL}/admin/login", json={"password": password}, timeout=TIMEOUT)
    if response.status_code != 200:
        return None
    return response.json()["access_token"]

def fetch_bookings(start: date) -> List[dict]:
    response = requests.get(
        f"{API_BASE_URL}/admin/bookings",
        params={"start": start.isoformat()},
        headers=_headers(),
        timeout=TIMEOUT,
    )
    response.raise_for_status()
    return response.json()

def main():
    st.set_page_config(page_title="Barbershop Admin", page_icon="💈", layout="wide")
    st.title("Barbershop - Admin Panel")

    if "token" not in st.session_state:
        password = st.text_input("Password", type="password")
        if st.button("Login"):
            token = login(password)
            if token:
                st.session_state["token"] = token
                st.rerun()
            else:
                st.error("Invalid password")
        return

    start = st.date_input("Bookings from", value=date.today())

    try:
        df = bookings_to_frame(fetch_bookings(start))
    except requests.HTTPError as e:
        if e.response is not None and e.response.status_code == 401:
            # Session expired
            del st.session_state["token"]
            st.rerun()
        st.error(f"Error loading bookings: {e}")
        return

    col1, col2 = st.columns(2)
    col1.metric("Bookings in the next 7 days", len(df))
    col2.metric("Barbers booked", df["barber"].nunique() if not df.empty else 0)

    st.subheader("Upcoming bookings")
    if df.empty:
        st.info("No bookings in this period.")
    else:
        st.dataframe(df.rename(columns=COLUMNS), use_container_width=True)

        to_cancel = st.selectbox("Cancel booking", df["id"].tolist())
        if st.button("Cancel selected booking"):
            response = requests.post(f"{API_BASE_URL}/admin/bookings/{to_cancel}/cancel", headers=_headers(), timeout=TIMEOUT)
            if response.ok:
                st.success("Booking cancelled.")
                st.rerun()
            else:
                st.error("Cancellation failed.")

    st.subheader("Disabled dates")
    response = requests.get(f"{API_BASE_URL}/admin/disabled-dates", headers=_headers(), timeout=TIMEOUT)
    disabled = response.json() if response.ok else []
    if disabled:
        st.table(pd.DataFrame(disabled, columns=["date", "reason"]))

    new_date = st.date_input("Disable date", value=None, key="disable_date")
    reason = st.text_input("Reason (optional)")
    if st.button("Disable") and new_date:
        response = requests.post(
            f"{API_BASE_URL}/admin/disabled-dates",
            json={"date": new_date.isoformat(), "reason": reason or None},
            headers=_headers(),
            timeout=TIMEOUT,
        )
        if response.status_code == 409:
            st.warning("That date is already disabled.")
        elif response.ok:
            st.rerun()
        else:
            st.error("Could not disable the date.")

    if disabled:
        to_enable = st.selectbox("Enable date", [d["date"] for d in disabled])
        if st.button("Enable"):
            requests.delete(f"{API_BASE_URL}/admin/disabled-dates/{to_enable}", headers=_headers(), timeout=TIMEOUT)
            st.rerun()

    # Footer
    st.markdown("---")
    st.caption("Barbershop booking system")

if __name__ == "__main__":
    main()
