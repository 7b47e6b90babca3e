from fastapi import APIRouter, Depends, HTTPException
import logging

from ..errors import InvalidTransition, NotFound, WrongDate
from ..schemas.auth import Action
from ..schemas.schemas import VerificationRequest, VerificationResponse, VisitorResponse
from ..services.auth_service import CurrentSession
from ..services.visitor_service import VisitorService
from .auth import get_visitor_service, require_action
from .visitors import visitor_to_response

router = APIRouter(prefix="/gate", tags=["Gate Verification"])
logger = logging.getLogger(__name__)


@router.post("/verify", response_model=VerificationResponse)
def verify_access_code(
    request: VerificationRequest,
    session: CurrentSession = Depends(require_action(Action.VISITOR_VERIFY)),
    visitor_service: VisitorService = Depends(get_visitor_service)
):
    """
    Verify a visitor's access code at the gate.

    A denied verification is a normal outcome, reported with a reason
    rather than an error status.
    """
    access_code = request.access_code.strip()

    try:
        record = visitor_service.verify(access_code)
    except NotFound as e:
        logger.info(f"Access code {access_code} denied by {session.name}: not found")
        return VerificationResponse(status="denied", reason="not_found", message=e.message)
    except WrongDate as e:
        logger.info(f"Access code {access_code} denied by {session.name}: booked for {e.visit_date}")
        return VerificationResponse(status="denied", reason="wrong_date", message=e.message)

    return VerificationResponse(
        status="verified",
        message=f"Details for {record.name} loaded.",
        visitor=visitor_to_response(record)
    )


@router.post("/{visitor_id}/check-in", response_model=VisitorResponse)
def check_in(
    visitor_id: str,
    session: CurrentSession = Depends(require_action(Action.VISITOR_CHECK_IN)),
    visitor_service: VisitorService = Depends(get_visitor_service)
):
    """Check a verified visitor in"""
    try:
        record = visitor_service.check_in(visitor_id)
    except NotFound:
        raise HTTPException(status_code=404, detail="Visitor not found")
    except (InvalidTransition, WrongDate) as e:
        raise HTTPException(status_code=409, detail=e.message)

    return visitor_to_response(record)


@router.post("/{visitor_id}/check-out", response_model=VisitorResponse)
def check_out(
    visitor_id: str,
    session: CurrentSession = Depends(require_action(Action.VISITOR_CHECK_OUT)),
    visitor_service: VisitorService = Depends(get_visitor_service)
):
    """Check a visitor out"""
    try:
        record = visitor_service.check_out(visitor_id)
    except NotFound:
        raise HTTPException(status_code=404, detail="Visitor not found")
    except InvalidTransition as e:
        raise HTTPException(status_code=409, detail=e.message)

    return visitor_to_response(record)
