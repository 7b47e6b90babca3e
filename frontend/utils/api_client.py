import requests
from typing import Optional, Dict, Any
import streamlit as st
import os

# API Base URL
API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000/api")

STORAGE_WARNING_HEADER = "X-Storage-Warning"

# Session keys set at login
SESSION_KEYS = ["authenticated", "access_token", "user_name", "user_role",
                "permissions", "dashboard_view", "storage_warning"]


class APIClient:
    """Client for interacting with the EstateWatch API"""

    def __init__(self, base_url: str = API_BASE_URL):
        self.base_url = base_url

    def _get_headers(self) -> Dict[str, str]:
        """Get headers including auth token if available"""
        headers = {"Content-Type": "application/json"}

        if st.session_state.get("access_token"):
            headers["Authorization"] = f"Bearer {st.session_state.access_token}"

        return headers

    def _request(
        self,
        method: str,
        endpoint: str,
        data: Optional[Dict] = None,
        params: Optional[Dict] = None,
        require_auth: bool = True
    ) -> Dict[str, Any]:
        """Make HTTP request to API"""
        url = f"{self.base_url}{endpoint}"

        if require_auth and not st.session_state.get("access_token"):
            return {"error": "Authentication required. Please login."}

        try:
            response = requests.request(
                method=method,
                url=url,
                json=data,
                params=params,
                headers=self._get_headers(),
                timeout=30
            )

            # Storage problems are non-fatal; keep the latest for the page to show
            warning = response.headers.get(STORAGE_WARNING_HEADER)
            if warning:
                st.session_state.storage_warning = warning

            if response.status_code == 401 and require_auth:
                self.clear_auth()
                return {"error": "Session expired. Please login again."}

            response.raise_for_status()
            if response.status_code == 204:
                return {}
            try:
                return response.json()
            except ValueError:
                return {"error": f"Invalid JSON response (status {response.status_code})"}

        except requests.exceptions.ConnectionError:
            return {"error": "Cannot connect to server. Please check if the backend is running."}
        except requests.exceptions.RequestException as e:
            error_detail = str(e)
            if e.response is not None:
                try:
                    error_detail = e.response.json().get("detail", error_detail)
                except ValueError:
                    pass
            if isinstance(error_detail, dict):
                error_detail = error_detail.get("message", str(error_detail))
            return {"error": error_detail}

    def clear_auth(self):
        """Clear authentication data from session"""
        for key in SESSION_KEYS:
            st.session_state.pop(key, None)

    def store_session(self, result: Dict):
        """Store login result in session state"""
        st.session_state.authenticated = True
        st.session_state.access_token = result["access_token"]
        st.session_state.user_name = result["user"]["name"]
        st.session_state.user_role = result["user"]["role"]
        st.session_state.permissions = result["user"]["permissions"]
        st.session_state.dashboard_view = result["user"]["dashboard_view"]

    # ==================== Auth ====================

    def login(self, role: str, name: Optional[str] = None) -> Dict:
        """Open a session for the selected role"""
        data = {"role": role}
        if name:
            data["name"] = name
        return self._request("POST", "/auth/login", data=data, require_auth=False)

    def logout(self) -> Dict:
        result = self._request("POST", "/auth/logout")
        self.clear_auth()
        return result

    def get_current_user(self) -> Dict:
        return self._request("GET", "/auth/me")

    def get_roles(self) -> Any:
        return self._request("GET", "/auth/roles", require_auth=False)

    # ==================== Navigation ====================

    def get_navigation(self) -> Any:
        return self._request("GET", "/navigation")

    def check_route(self, route: str) -> Dict:
        return self._request("GET", "/navigation/check", params={"route": route})

    # ==================== Dashboard ====================

    def get_dashboard(self) -> Dict:
        return self._request("GET", "/dashboard")

    # ==================== Visitors ====================

    def create_visitor(self, visitor_data: Dict) -> Dict:
        return self._request("POST", "/visitors/", data=visitor_data)

    def get_visitors(
        self,
        search: Optional[str] = None,
        status: Optional[str] = None
    ) -> Dict:
        params = {}
        if search:
            params["search"] = search
        if status:
            params["status"] = status
        return self._request("GET", "/visitors/", params=params)

    def revoke_visitor(self, visitor_id: str) -> Dict:
        return self._request("DELETE", f"/visitors/{visitor_id}")

    def expire_stale(self) -> Dict:
        return self._request("POST", "/visitors/expire-stale")

    # ==================== Gate ====================

    def verify_code(self, access_code: str) -> Dict:
        return self._request("POST", "/gate/verify", data={"access_code": access_code})

    def check_in_visitor(self, visitor_id: str) -> Dict:
        return self._request("POST", f"/gate/{visitor_id}/check-in")

    def check_out_visitor(self, visitor_id: str) -> Dict:
        return self._request("POST", f"/gate/{visitor_id}/check-out")


# Global API client instance
@st.cache_resource
def get_api_client():
    return APIClient()


api_client = get_api_client()
