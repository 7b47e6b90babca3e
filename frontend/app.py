import streamlit as st

# Page configuration - must be first Streamlit command
st.set_page_config(
    page_title="EstateWatch",
    page_icon="🏘️",
    layout="wide",
    initial_sidebar_state="expanded"
)

from utils.api_client import api_client
from utils.permissions import get_role_display_name, render_sidebar, show_storage_warning

# Custom CSS for dark mode compatible styling
st.markdown("""
<style>
    /* Main container */
    .main > div {
        padding-top: 1rem;
    }

    /* Metric cards */
    [data-testid="stMetricValue"] {
        font-size: 2rem;
        font-weight: bold;
    }

    .feature-card {
        background: linear-gradient(145deg, #1a1a2e, #16213e);
        padding: 1.5rem;
        border-radius: 12px;
        border: 1px solid #0f3460;
        margin-bottom: 1rem;
    }

    .feature-card h4 {
        color: #00d9ff !important;
        margin-bottom: 1rem;
    }

    .feature-card p, .feature-card li {
        color: #e0e0e0 !important;
    }

    /* Hide Streamlit branding */
    #MainMenu {visibility: hidden;}
    footer {visibility: hidden;}
</style>
""", unsafe_allow_html=True)


ROLE_FEATURES = {
    "Resident": [
        "Pre-authorize visitors",
        "Share access codes",
        "Revoke your authorizations",
    ],
    "Security Operative": [
        "Verify access codes",
        "Check visitors in and out",
        "View visitor logs",
    ],
    "Estate Manager": [
        "View visitor logs",
        "Expire stale authorizations",
        "Estate administration (coming soon)",
    ],
    "Admin": [
        "View visitor logs",
        "Revoke any authorization",
        "System management (coming soon)",
    ],
    "Super Admin": [
        "Revoke any authorization",
        "System management (coming soon)",
    ],
}


def main():
    """Main application entry point"""

    if not st.session_state.get("authenticated"):
        st.markdown("""
        <div style="text-align: center; padding: 2rem;">
            <h1>🏘️ EstateWatch</h1>
            <p style="color: #888; margin-bottom: 2rem;">Visitor management for residential estates</p>
        </div>
        """, unsafe_allow_html=True)

        st.warning("⚠️ Please login to access the system")

        col1, col2, col3 = st.columns([1, 2, 1])
        with col2:
            if st.button("🔑 Go to Login", use_container_width=True, type="primary"):
                st.switch_page("pages/0_🔑_Login.py")
        return

    # ==================== AUTHENTICATED USER VIEW ====================

    me = api_client.get_current_user()
    if "error" in me:
        st.warning(f"⚠️ {me['error']}")
        if st.button("🔑 Go to Login"):
            st.switch_page("pages/0_🔑_Login.py")
        return

    render_sidebar()
    show_storage_warning()

    st.title("🏘️ EstateWatch")
    st.markdown(f"Welcome back, **{st.session_state.get('user_name', 'User')}**!")

    if st.button("🏠 Open Dashboard", type="primary"):
        st.switch_page("pages/1_🏠_Dashboard.py")

    st.markdown("---")
    st.markdown("### 📌 Your Access Level")

    role = me["role"]
    features = ROLE_FEATURES.get(role, ["Basic access"])

    st.markdown(f"""
    <div class="feature-card">
        <h4>{get_role_display_name(role)}</h4>
        <ul>
            {"".join([f"<li>{f}</li>" for f in features])}
        </ul>
    </div>
    """, unsafe_allow_html=True)


if __name__ == "__main__":
    main()
