"""
Permission utilities for role-based access control in Streamlit UI

The backend owns the route and action tables; pages ask it rather than
keeping a copy here.
"""

import streamlit as st
from enum import Enum
from typing import List

from utils.api_client import api_client


class Action(str, Enum):
    VISITOR_CREATE = "visitor:create"
    VISITOR_REVOKE = "visitor:revoke"
    VISITOR_VERIFY = "visitor:verify"
    VISITOR_CHECK_IN = "visitor:check_in"
    VISITOR_CHECK_OUT = "visitor:check_out"
    VISITOR_READ_LOGS = "visitor:read_logs"
    VISITOR_EXPIRE = "visitor:expire"


# Navigation hrefs that have a page in this app
ROUTE_PAGES = {
    "/dashboard": "pages/1_🏠_Dashboard.py",
    "/dashboard/visitor-management/pre-authorize": "pages/2_👤_Pre_Authorize.py",
    "/dashboard/visitor-management/check-in-out": "pages/3_🚪_Check_In_Out.py",
    "/dashboard/visitor-management/logs": "pages/4_📋_Visitor_Logs.py",
}

ROLE_DISPLAY_NAMES = {
    "Super Admin": "🔴 Super Admin",
    "Admin": "🟠 Admin",
    "Estate Manager": "🔵 Estate Manager",
    "Security Operative": "🟢 Security Operative",
    "Resident": "🟣 Resident",
}


def get_user_role() -> str:
    """Get current user's role from session state"""
    return st.session_state.get("user_role", "unknown")


def get_user_permissions() -> List[str]:
    return st.session_state.get("permissions", [])


def has_permission(permission: str) -> bool:
    """Check if current user may use an action"""
    return permission in get_user_permissions()


def require_auth(redirect: bool = True) -> bool:
    """
    Check if user is authenticated
    Returns True if authenticated, False otherwise
    """
    if not st.session_state.get("authenticated"):
        if redirect:
            st.warning("⚠️ Please login to access this page")
            if st.button("🔑 Go to Login"):
                st.switch_page("pages/0_🔑_Login.py")
        return False
    return True


def require_route(route: str) -> bool:
    """Ask the API whether the current role may open a route"""
    result = api_client.check_route(route)
    if "error" in result:
        st.error(f"Error: {result['error']}")
        return False
    if not result.get("allowed"):
        show_permission_denied()
        return False
    return True


def get_role_display_name(role: str) -> str:
    return ROLE_DISPLAY_NAMES.get(role, role)


def show_storage_warning():
    """Show (once) that the backend is running without persistence"""
    warning = st.session_state.pop("storage_warning", None)
    if warning:
        st.warning(f"⚠️ Changes may not be saved: {warning}")


def show_permission_denied():
    """Show permission denied message with helpful info"""
    st.error("🚫 Access Denied")
    st.markdown("""
    You don't have permission to access this feature.

    If you believe this is an error, please contact your administrator.
    """)

    st.info(f"Your current role: **{get_role_display_name(get_user_role())}**")


def render_sidebar():
    """Role-filtered navigation from the API, plus user info and logout"""
    with st.sidebar:
        st.title("🏘️ EstateWatch")
        st.markdown("---")

        st.subheader("👤 Current User")
        st.markdown(f"**{st.session_state.get('user_name', 'User')}**")
        st.markdown(get_role_display_name(get_user_role()))
        st.markdown("---")

        navigation = api_client.get_navigation()
        if isinstance(navigation, dict) and "error" in navigation:
            st.error(navigation["error"])
        else:
            for item in navigation:
                _render_nav_item(item)
                for child in item.get("sub_items", []):
                    _render_nav_item(child, indent=True)

        st.markdown("---")
        if st.button("🚪 Logout", use_container_width=True):
            api_client.logout()
            st.switch_page("pages/0_🔑_Login.py")


def _render_nav_item(item: dict, indent: bool = False):
    label = f"↳ {item['label']}" if indent else item["label"]
    page = ROUTE_PAGES.get(item["href"])
    if page:
        st.page_link(page, label=label)
    else:
        st.caption(f"{label} (coming soon)")
