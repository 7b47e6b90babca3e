"""
Authentication Router - role login, logout, session info
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import List, Optional

from ..models.profile import ALL_USER_ROLES
from ..schemas.auth import Action, LoginRequest, RoleInfo, SessionUser, TokenResponse
from ..services.access_policy import allowed_actions, is_allowed
from ..services.auth_service import AuthService, CurrentSession
from ..services.visitor_service import VisitorService

router = APIRouter(prefix="/auth", tags=["Authentication"])

# Security scheme; missing credentials are reported as 401 below
security = HTTPBearer(auto_error=False)


# ==================== Dependency Functions ====================

def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_visitor_service(request: Request) -> VisitorService:
    return request.app.state.visitor_service


def get_current_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> CurrentSession:
    """Get current authenticated session"""
    session = auth_service.get_current_session(credentials.credentials) if credentials else None

    if not session:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"}
        )

    return session


def require_action(*actions: Action):
    """Dependency to check the session role against the action table"""
    def action_checker(session: CurrentSession = Depends(get_current_session)):
        for action in actions:
            if not is_allowed(session.role, action):
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail=f"Permission denied: {action.value}"
                )

        return session

    return action_checker


# ==================== Endpoints ====================

@router.post("/login", response_model=TokenResponse)
def login(
    login_data: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    """
    Sign in by selecting a role

    Returns a bearer token for the new session
    """
    token, session = auth_service.login(login_data.role, login_data.name)

    return TokenResponse(
        access_token=token,
        expires_in=auth_service.expire_minutes * 60,
        user=session.user
    )


@router.post("/logout")
def logout(
    session: CurrentSession = Depends(get_current_session),
    auth_service: AuthService = Depends(get_auth_service)
):
    """End the session; its token stops working immediately"""
    auth_service.logout(session.session_id)
    return {"message": "Logged out"}


@router.get("/me", response_model=SessionUser)
def get_me(session: CurrentSession = Depends(get_current_session)):
    """Get current session info"""
    return session.user


@router.get("/roles", response_model=List[RoleInfo])
def list_roles():
    """List the selectable roles with their allowed actions"""
    return [
        RoleInfo(name=role, permissions=[a.value for a in allowed_actions(role)])
        for role in ALL_USER_ROLES
    ]
