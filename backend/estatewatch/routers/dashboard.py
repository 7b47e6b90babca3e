from fastapi import APIRouter, Depends

from ..models.profile import UserRole
from ..schemas.schemas import DashboardStats, DashboardResponse
from ..services.access_policy import dashboard_view_for
from ..services.auth_service import CurrentSession
from ..services.visitor_service import VisitorService
from .auth import get_current_session, get_visitor_service

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("", response_model=DashboardResponse)
def get_dashboard(
    session: CurrentSession = Depends(get_current_session),
    visitor_service: VisitorService = Depends(get_visitor_service)
):
    """Role-specific landing view"""
    view = dashboard_view_for(session.role)

    if view == "resident":
        stats = visitor_service.get_stats(authorized_by=session.name)
        return DashboardResponse(
            role=session.role,
            view=view,
            title="Pre-Authorize Visitor",
            stats=DashboardStats(**stats)
        )

    if view == "security":
        return DashboardResponse(
            role=session.role,
            view=view,
            title="Verify Visitor Access Code",
            stats=DashboardStats(**visitor_service.get_stats())
        )

    if view == "placeholder":
        return DashboardResponse(
            role=session.role,
            view=view,
            title=f"{session.role.value} Dashboard"
        )

    return DashboardResponse(
        role=UserRole.parse(session.role),
        view="denied",
        title="Access Denied or Role Undefined"
    )

