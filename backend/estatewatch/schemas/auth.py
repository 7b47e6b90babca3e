"""
Session and Access Control Schemas
"""

from pydantic import BaseModel, Field
from typing import Optional, List
from enum import Enum

from ..models.profile import UserRole


class Action(str, Enum):
    """Gated actions, checked alongside navigable routes"""
    VISITOR_CREATE = "visitor:create"
    VISITOR_REVOKE = "visitor:revoke"
    VISITOR_VERIFY = "visitor:verify"
    VISITOR_CHECK_IN = "visitor:check_in"
    VISITOR_CHECK_OUT = "visitor:check_out"
    VISITOR_READ_LOGS = "visitor:read_logs"
    VISITOR_EXPIRE = "visitor:expire"


# ==================== Session Schemas ====================

class LoginRequest(BaseModel):
    """Role selection at login. The role is trusted; no credentials are checked."""
    role: UserRole
    name: Optional[str] = Field(None, min_length=1, max_length=100, description="Display name, defaults to the role")


class SessionUser(BaseModel):
    """Identity of the current session"""
    name: str
    role: UserRole
    permissions: List[str]
    dashboard_view: str


class TokenResponse(BaseModel):
    """Bearer token for a new session"""
    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds
    user: SessionUser


class RoleInfo(BaseModel):
    name: UserRole
    permissions: List[str]


# ==================== Navigation Schemas ====================

class NavItemResponse(BaseModel):
    href: str
    label: str
    sub_items: List["NavItemResponse"] = []


class RouteCheckResponse(BaseModel):
    route: str
    role: UserRole
    allowed: bool


# Forward reference update
NavItemResponse.model_rebuild()
