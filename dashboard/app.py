"""Streamlit operator console for the click-and-collect pickup desk."""

from __future__ import annotations

import datetime
from typing import Any, Dict, List, Optional

import pandas as pd
import requests
import streamlit as st

# ==========================================
# Configuration & Constants
# ==========================================
# Point this to your local FastAPI server
API_BASE_URL = "http://127.0.0.1:8000"

ORDER_STATUSES = ["Preparing", "Ready for Pickup", "Completed", "Canceled"]
PRIORITY_TIERS = ["High", "Medium", "Low"]

st.set_page_config(
    page_title="Pickup Desk",
    page_icon="📦",
    layout="wide",
)


# ==========================================
# API Helper Functions
# ==========================================
def _error_detail(response: requests.Response) -> str:
    try:
        return str(response.json().get("detail", response.text))
    except ValueError:
        return response.text


def fetch_list(path: str) -> List[Dict[str, Any]]:
    try:
        response = requests.get(f"{API_BASE_URL}{path}", timeout=5)
        response.raise_for_status()
        return response.json()
    except requests.exceptions.RequestException as e:
        st.error(f"Backend connection failed: {e}")
        return []


def submit(method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
    """Send a mutation; business rejections (409/404) are shown as warnings."""
    try:
        response = requests.request(method, f"{API_BASE_URL}{path}", json=payload, timeout=5)
    except requests.exceptions.RequestException as e:
        st.error(f"Backend connection failed: {e}")
        return None
    if response.status_code in (404, 409):
        st.warning(_error_detail(response))
        return None
    if not response.ok:
        st.error(f"Request failed ({response.status_code}): {_error_detail(response)}")
        return None
    return response.json()


# ==========================================
# UI Page Functions
# ==========================================
def render_capacity_page() -> None:
    st.header("📊 Zone & Slot Capacity")

    zones = fetch_list("/zones")
    if zones:
        st.write("### Zones")
        zone_frame = pd.DataFrame(zones)
        zone_frame["utilization_pct"] = (zone_frame["utilization"] / zone_frame["capacity"] * 100).round(1)
        st.dataframe(zone_frame, use_container_width=True)

    slots = fetch_list("/slots")
    if slots:
        st.write("### Pickup Slots")
        slot_frame = pd.DataFrame(slots)
        st.dataframe(slot_frame, use_container_width=True)
        st.bar_chart(slot_frame.set_index("start_time")[["booked", "remaining"]])


def render_order_page() -> None:
    st.header("🧾 Order Intake")

    col1, col2, col3 = st.columns(3)
    with col1:
        order_id = st.number_input("Order ID", min_value=1, value=1001)
        customer_id = st.number_input("Customer ID", min_value=1, value=918393)
    with col2:
        amount = st.number_input("Amount", min_value=0.0, value=50.0, step=0.01)
        priority = st.selectbox("Priority", PRIORITY_TIERS)
    with col3:
        new_status = st.selectbox("New Status", ORDER_STATUSES[1:])

    action_col1, action_col2 = st.columns(2)
    if action_col1.button("Place Order", type="primary"):
        result = submit(
            "POST",
            "/orders",
            {
                "order_id": int(order_id),
                "customer_id": int(customer_id),
                "created_at": datetime.datetime.now().isoformat(),
                "amount": f"{amount:.2f}",
                "priority": priority,
            },
        )
        if result:
            st.success(f"Order {result['order_id']} placed in zone {result['zone_id']}")

    if action_col2.button("Update Status"):
        result = submit("PATCH", f"/orders/{int(order_id)}/status", {"status": new_status})
        if result:
            st.success(f"Order {result['order_id']} is now {result['status']}")


def render_booking_page() -> None:
    st.header("🕒 Pickup Booking")

    slots = fetch_list("/slots")
    staff = fetch_list("/staff")
    if not slots or not staff:
        st.info("No slots or staff available.")
        return

    slot_labels = {
        f"{slot['start_time']}–{slot['end_time']} ({slot['remaining']} left)": slot["slot_id"]
        for slot in slots
    }
    staff_labels = {f"{member['name']} ({member['role']})": member["staff_id"] for member in staff}

    col1, col2 = st.columns(2)
    with col1:
        appointment_id = st.number_input("Appointment ID", min_value=1, value=401)
        order_id = st.number_input("Order ID", min_value=1, value=1001, key="booking_order")
        customer_id = st.number_input("Customer ID", min_value=1, value=918393, key="booking_customer")
    with col2:
        slot_label = st.selectbox("Slot", list(slot_labels))
        staff_label = st.selectbox("Staff", list(staff_labels))

    if st.button("Book Slot", type="primary"):
        result = submit(
            "POST",
            "/appointments",
            {
                "appointment_id": int(appointment_id),
                "order_id": int(order_id),
                "customer_id": int(customer_id),
                "slot_id": slot_labels[slot_label],
                "staff_id": staff_labels[staff_label],
            },
        )
        if result:
            st.success(f"Assignment {result['assignment_id']} created")

    st.write("### Cancel Assignment")
    assignment_id = st.number_input("Assignment ID", min_value=1, value=1)
    if st.button("Cancel Assignment"):
        result = submit("DELETE", f"/assignments/{int(assignment_id)}")
        if result:
            st.success(f"Assignment {result['assignment_id']} cancelled; slot released")


# ==========================================
# Main App Router
# ==========================================
def main() -> None:
    st.sidebar.title("Pickup Desk")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigation Module",
        ["Capacity", "Order Intake", "Pickup Booking"],
    )

    st.sidebar.markdown("---")
    st.sidebar.caption(f"Engine API: {API_BASE_URL}")

    if page == "Capacity":
        render_capacity_page()
    elif page == "Order Intake":
        render_order_page()
    elif page == "Pickup Booking":
        render_booking_page()


if __name__ == "__main__":
    main()
