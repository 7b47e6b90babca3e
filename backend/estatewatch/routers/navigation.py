"""
Navigation Router - role-filtered navigation and route checks
"""

from fastapi import APIRouter, Depends, Query
from typing import List

from ..schemas.auth import NavItemResponse, RouteCheckResponse
from ..services.access_policy import NavItem, is_allowed, navigation_for
from ..services.auth_service import CurrentSession
from .auth import get_current_session

router = APIRouter(prefix="/navigation", tags=["Navigation"])


def nav_item_to_response(item: NavItem) -> NavItemResponse:
    return NavItemResponse(
        href=item.href,
        label=item.label,
        sub_items=[nav_item_to_response(child) for child in item.sub_items]
    )


@router.get("", response_model=List[NavItemResponse])
def get_navigation(session: CurrentSession = Depends(get_current_session)):
    """Navigation entries visible to the session's role"""
    return [nav_item_to_response(item) for item in navigation_for(session.role)]


@router.get("/check", response_model=RouteCheckResponse)
def check_route(
    route: str = Query(..., description="Route or action identifier"),
    session: CurrentSession = Depends(get_current_session)
):
    """Whether the session's role may open a route or use an action"""
    return RouteCheckResponse(
        route=route,
        role=session.role,
        allowed=is_allowed(session.role, route)
    )
