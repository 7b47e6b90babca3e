"""
Visitors Router - pre-authorization, listing, revocation
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from typing import Optional
import logging

from ..errors import DuplicateAccessCode, PermissionDenied, ValidationError
from ..models.visitor import VisitorStatus
from ..schemas.auth import Action
from ..schemas.schemas import (
    VisitorCreate, VisitorRecord, VisitorResponse, VisitorCreatedResponse,
    VisitorListResponse, ExpireResponse
)
from ..services.access_policy import is_allowed
from ..services.auth_service import CurrentSession
from ..services.visitor_service import VisitorService
from .auth import get_current_session, get_visitor_service, require_action

router = APIRouter(prefix="/visitors", tags=["Visitors"])
logger = logging.getLogger(__name__)


# ==================== Helper Functions ====================

def visitor_to_response(record: VisitorRecord) -> VisitorResponse:
    """Convert VisitorRecord to the snake_case VisitorResponse"""
    return VisitorResponse.model_validate(record)


def visible_owner(session: CurrentSession) -> Optional[str]:
    """
    Restrict listings to the session's own visitors unless it may read logs.

    Raises 403 for roles that neither read logs nor authorize visitors.
    """
    if is_allowed(session.role, Action.VISITOR_READ_LOGS):
        return None
    if is_allowed(session.role, Action.VISITOR_CREATE):
        return session.name
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail=f"Permission denied: {Action.VISITOR_READ_LOGS.value}"
    )


# ==================== Endpoints ====================

@router.post("/", response_model=VisitorCreatedResponse, status_code=status.HTTP_201_CREATED)
def create_visitor(
    visitor_data: VisitorCreate,
    session: CurrentSession = Depends(require_action(Action.VISITOR_CREATE)),
    visitor_service: VisitorService = Depends(get_visitor_service)
):
    """
    Pre-authorize a visitor

    Generates a unique access code for the visit date.
    """
    try:
        record = visitor_service.create(visitor_data, authorized_by=session.name)
    except ValidationError as e:
        raise HTTPException(
            status_code=422,
            detail={"message": e.message, "errors": e.errors}
        )
    except DuplicateAccessCode as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)

    return VisitorCreatedResponse(
        visitor=visitor_to_response(record),
        access_code=record.access_code,
        message=f"{record.name} has been pre-authorized. Access Code: {record.access_code}"
    )


@router.get("/", response_model=VisitorListResponse)
def list_visitors(
    search: Optional[str] = Query(None, description="Match name, access code or status"),
    status_filter: Optional[VisitorStatus] = Query(None, alias="status"),
    session: CurrentSession = Depends(get_current_session),
    visitor_service: VisitorService = Depends(get_visitor_service)
):
    """List visitors, newest first. Residents only see their own."""
    visitors = visitor_service.list_visitors(
        authorized_by=visible_owner(session),
        status=status_filter,
        search=search
    )

    return VisitorListResponse(
        visitors=[visitor_to_response(v) for v in visitors],
        total=len(visitors)
    )


@router.post("/expire-stale", response_model=ExpireResponse)
def expire_stale_visitors(
    session: CurrentSession = Depends(require_action(Action.VISITOR_EXPIRE)),
    visitor_service: VisitorService = Depends(get_visitor_service)
):
    """Mark pending authorizations for past dates as Expired"""
    expired_count = visitor_service.expire_stale()
    logger.info(f"Stale sweep by {session.name}: {expired_count} expired")
    return ExpireResponse(expired_count=expired_count)


@router.get("/{visitor_id}", response_model=VisitorResponse)
def get_visitor(
    visitor_id: str,
    session: CurrentSession = Depends(get_current_session),
    visitor_service: VisitorService = Depends(get_visitor_service)
):
    """Get visitor by ID"""
    owner = visible_owner(session)
    record = visitor_service.get_visitor(visitor_id)

    if not record or (owner is not None and record.authorized_by != owner):
        raise HTTPException(status_code=404, detail="Visitor not found")

    return visitor_to_response(record)


@router.delete("/{visitor_id}", status_code=status.HTTP_204_NO_CONTENT)
def revoke_visitor(
    visitor_id: str,
    session: CurrentSession = Depends(require_action(Action.VISITOR_REVOKE)),
    visitor_service: VisitorService = Depends(get_visitor_service)
):
    """Revoke a visitor authorization. Revoking an unknown id succeeds."""
    try:
        visitor_service.revoke(visitor_id, requested_by=session.name, role=session.role)
    except PermissionDenied as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)

    return Response(status_code=status.HTTP_204_NO_CONTENT)
