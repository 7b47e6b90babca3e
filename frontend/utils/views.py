"""
Role views shared by the dashboard and the visitor-management pages
"""

import streamlit as st
import pandas as pd
import plotly.express as px
from datetime import date, datetime

from utils.api_client import api_client
from utils.permissions import Action, has_permission

STATUS_COLORS = {
    "Pending": "#ffb300",
    "Checked-In": "#43a047",
    "Checked-Out": "#1e88e5",
    "Expired": "#9e9e9e",
}

STATUS_ICONS = {
    "Pending": "🟡",
    "Checked-In": "🟢",
    "Checked-Out": "🔵",
    "Expired": "⚪",
}


def format_date(value: str) -> str:
    """ISO date -> 'June 15, 2024'"""
    if not value:
        return "N/A"
    return date.fromisoformat(value[:10]).strftime("%B %d, %Y")


def format_time(value: str) -> str:
    if not value:
        return "N/A"
    return datetime.fromisoformat(value.replace("Z", "+00:00")).strftime("%b %d, %Y %I:%M %p")


def visitors_dataframe(visitors: list) -> pd.DataFrame:
    return pd.DataFrame([
        {
            "Name": v["name"],
            "Purpose": v["purpose"],
            "Access Code": v["access_code"],
            "Visit Date": format_date(v["visit_date"]),
            "Status": f"{STATUS_ICONS.get(v['status'], '')} {v['status']}",
            "Authorized By": v["authorized_by"],
            "Entry": format_time(v.get("entry_time")),
            "Exit": format_time(v.get("exit_time")),
        }
        for v in visitors
    ])


def render_status_chart(stats: dict):
    """Pie of visitor statuses from dashboard stats"""
    counts = {
        "Pending": stats.get("pending", 0),
        "Checked-In": stats.get("checked_in", 0),
        "Checked-Out": stats.get("checked_out", 0),
        "Expired": stats.get("expired", 0),
    }
    if not any(counts.values()):
        st.info("No visitors yet")
        return

    df = pd.DataFrame({"Status": list(counts), "Count": list(counts.values())})
    fig = px.pie(
        df,
        values="Count",
        names="Status",
        color="Status",
        color_discrete_map=STATUS_COLORS,
        hole=0.4
    )
    fig.update_layout(margin=dict(t=20, b=20, l=20, r=20), height=300)
    st.plotly_chart(fig, use_container_width=True)


# ==================== Resident ====================

def render_pre_authorize_form():
    st.subheader("👤 Pre-Authorize Visitor")
    st.caption("Enter visitor details to generate an access code.")

    with st.form("pre_authorize_form", clear_on_submit=True):
        name = st.text_input("Visitor's Full Name *", placeholder="e.g., Jane Doe")
        purpose = st.text_input("Purpose of Visit *", placeholder="e.g., Delivery, Personal Visit")
        visit_date = st.date_input("Visit Date *", value=date.today(), min_value=date.today())

        submitted = st.form_submit_button("🎫 Generate Access Code", type="primary", use_container_width=True)

    if submitted:
        if len(name.strip()) < 2:
            st.error("Visitor name must be at least 2 characters.")
            return
        if len(purpose.strip()) < 3:
            st.error("Purpose of visit is required.")
            return

        result = api_client.create_visitor({
            "name": name.strip(),
            "purpose": purpose.strip(),
            "visit_date": visit_date.isoformat(),
        })

        if "error" in result:
            st.error(f"❌ {result['error']}")
        else:
            st.success(f"✅ {result['message']}")
            st.code(result["access_code"], language=None)


def render_my_visitors():
    st.subheader("🎫 My Authorized Visitors")
    st.caption("List of visitors you have pre-authorized.")

    result = api_client.get_visitors()
    if "error" in result:
        st.error(f"Error: {result['error']}")
        return

    visitors = result.get("visitors", [])
    if not visitors:
        st.info("No visitors authorized yet.")
        return

    can_revoke = has_permission(Action.VISITOR_REVOKE.value)

    for visitor in visitors:
        with st.container(border=True):
            col1, col2, col3 = st.columns([3, 2, 1])
            with col1:
                st.markdown(f"**{visitor['name']}**")
                st.caption(f"{visitor['purpose']} · {format_date(visitor['visit_date'])}")
            with col2:
                st.code(visitor["access_code"], language=None)
                st.caption(f"{STATUS_ICONS.get(visitor['status'], '')} {visitor['status']}")
            with col3:
                if can_revoke and st.button("🗑️ Revoke", key=f"revoke_{visitor['id']}"):
                    revoked = api_client.revoke_visitor(visitor["id"])
                    if "error" in revoked:
                        st.error(revoked["error"])
                    else:
                        st.success("The visitor authorization has been revoked.")
                        st.rerun()


# ==================== Security ====================

def render_verify_panel():
    st.subheader("🔍 Verify Visitor Access Code")
    st.caption("Enter visitor's access code to verify their details.")

    with st.form("verify_form"):
        access_code = st.text_input("Access Code", placeholder="EW-XXXXXXXX")
        submitted = st.form_submit_button("Verify", type="primary", use_container_width=True)

    if submitted:
        if not access_code.strip():
            st.error("Access code is required.")
        else:
            result = api_client.verify_code(access_code.strip().upper())
            if "error" in result:
                st.error(f"❌ {result['error']}")
                st.session_state.pop("verified_visitor", None)
            elif result["status"] == "verified":
                st.session_state.verified_visitor = result["visitor"]
                st.success(f"✅ {result['message']}")
            else:
                st.session_state.pop("verified_visitor", None)
                st.error(f"🚫 Verification Failed: {result['message']}")

    visitor = st.session_state.get("verified_visitor")
    if visitor:
        render_verified_visitor(visitor)


def render_verified_visitor(visitor: dict):
    with st.container(border=True):
        st.markdown("#### 🛡️ Visitor Details")
        st.caption("Visitor successfully verified. Please confirm identity.")

        col1, col2 = st.columns(2)
        with col1:
            st.markdown(f"**Name:** {visitor['name']}")
            st.markdown(f"**Purpose:** {visitor['purpose']}")
            st.markdown(f"**Authorized By:** {visitor['authorized_by']}")
        with col2:
            st.markdown(f"**Visit Date:** {format_date(visitor['visit_date'])}")
            st.markdown(f"**Status:** {STATUS_ICONS.get(visitor['status'], '')} {visitor['status']}")
            if visitor.get("entry_time"):
                st.markdown(f"**Entry:** {format_time(visitor['entry_time'])}")

        if visitor["status"] == "Pending" and has_permission(Action.VISITOR_CHECK_IN.value):
            if st.button("✅ Check In", type="primary", use_container_width=True):
                result = api_client.check_in_visitor(visitor["id"])
                if "error" in result:
                    st.error(result["error"])
                else:
                    st.session_state.verified_visitor = result
                    st.success(f"{result['name']} has been checked in.")
                    st.rerun()

        elif visitor["status"] == "Checked-In" and has_permission(Action.VISITOR_CHECK_OUT.value):
            if st.button("🚪 Check Out", type="primary", use_container_width=True):
                result = api_client.check_out_visitor(visitor["id"])
                if "error" in result:
                    st.error(result["error"])
                else:
                    st.session_state.pop("verified_visitor", None)
                    st.success(f"{result['name']} has been checked out.")
                    st.rerun()
