import logging
import secrets
import string
import uuid
from datetime import date, datetime, timezone
from typing import Callable, Dict, List, Optional, Union
from zoneinfo import ZoneInfo

from pydantic import ValidationError as PydanticValidationError

from ..config import settings
from ..errors import (
    DuplicateAccessCode, InvalidTransition, NotFound,
    PermissionDenied, ValidationError, WrongDate
)
from ..models.profile import UserRole
from ..models.visitor import VisitorStatus
from ..schemas.schemas import VisitorCreate, VisitorRecord
from .access_policy import REVOKE_OVERRIDE_ROLES
from .visitor_store import VisitorStore

logger = logging.getLogger(__name__)

# Statuses that can no longer be presented at the gate
CLOSED_STATUSES = (VisitorStatus.CHECKED_OUT, VisitorStatus.EXPIRED)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class VisitorService:
    """
    Visitor lifecycle: Pending -> Checked-In -> Checked-Out, with
    Pending -> Expired through the stale sweep and removal through revoke.

    Every mutation re-reads the authoritative record under the store lock,
    so concurrent callers cannot both apply the same transition.
    """

    def __init__(
        self,
        store: VisitorStore,
        now_fn: Callable[[], datetime] = utc_now,
        tz_name: Optional[str] = None,
        code_prefix: Optional[str] = None,
        code_length: Optional[int] = None,
        max_code_attempts: Optional[int] = None
    ):
        self.store = store
        self.now_fn = now_fn
        self.tz = ZoneInfo(tz_name or settings.ESTATE_TIMEZONE)
        self.code_prefix = settings.ACCESS_CODE_PREFIX if code_prefix is None else code_prefix
        self.code_length = code_length or settings.ACCESS_CODE_LENGTH
        self.max_code_attempts = max_code_attempts or settings.ACCESS_CODE_MAX_ATTEMPTS

    # ==================== Clock ====================

    def now(self) -> datetime:
        return self.now_fn()

    def today(self) -> date:
        """Calendar day in the estate's time zone"""
        return self.now().astimezone(self.tz).date()

    # ==================== Access Codes ====================

    def generate_access_code(self) -> str:
        """Generate a prefixed access code, e.g. EW-7K2QX9AB"""
        characters = string.ascii_uppercase + string.digits
        token = ''.join(secrets.choice(characters) for _ in range(self.code_length))
        return f"{self.code_prefix}{token}"

    def _unique_access_code(self) -> str:
        for _ in range(self.max_code_attempts):
            access_code = self.generate_access_code()
            if not self.store.code_in_use(access_code):
                return access_code
        raise DuplicateAccessCode(
            f"Could not generate a unique access code after {self.max_code_attempts} attempts"
        )

    # ==================== Lifecycle ====================

    def create(
        self,
        visitor_data: Union[VisitorCreate, dict],
        authorized_by: str
    ) -> VisitorRecord:
        """
        Pre-authorize a visitor and store the new Pending record.

        Raises ValidationError (and stores nothing) on bad input.
        """
        if not isinstance(visitor_data, VisitorCreate):
            try:
                visitor_data = VisitorCreate.model_validate(visitor_data)
            except PydanticValidationError as e:
                errors = [
                    {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
                    for err in e.errors()
                ]
                raise ValidationError("Invalid visitor details", errors=errors) from e

        if not authorized_by or not authorized_by.strip():
            raise ValidationError("An authorizing resident is required")

        today = self.today()
        if visitor_data.visit_date < today:
            raise ValidationError(
                f"Visit date {visitor_data.visit_date.isoformat()} is in the past",
                errors=[{"field": "visit_date", "message": "Visit date cannot be in the past"}]
            )

        with self.store.lock:
            record = VisitorRecord(
                id=str(uuid.uuid4()),
                name=visitor_data.name,
                purpose=visitor_data.purpose,
                access_code=self._unique_access_code(),
                authorized_by=authorized_by,
                status=VisitorStatus.PENDING,
                authorization_date=self.now(),
                visit_date=visitor_data.visit_date,
            )
            self.store.add(record)

        logger.info(f"Visitor pre-authorized: {record.name} by {authorized_by} for {record.visit_date} ({record.access_code})")
        return record

    def revoke(
        self,
        record_id: str,
        requested_by: Optional[str] = None,
        role: Optional[UserRole] = None
    ) -> None:
        """
        Remove a visitor authorization entirely. Unknown ids are a no-op.

        When requested_by is given, only the authorizing identity or an
        override role may revoke.
        """
        with self.store.lock:
            record = self.store.get(record_id)
            if record is None:
                logger.info(f"Revoke ignored, visitor {record_id} not found")
                return None

            if requested_by is not None and record.authorized_by != requested_by:
                if UserRole.parse(role) not in REVOKE_OVERRIDE_ROLES:
                    raise PermissionDenied(
                        f"Only {record.authorized_by} or an administrator can revoke this visitor"
                    )

            self.store.remove(record_id)

        logger.info(f"Visitor authorization revoked: {record.name} ({record.access_code}, was {record.status.value})")
        return None

    def verify(
        self,
        access_code: str,
        records: Optional[List[VisitorRecord]] = None
    ) -> VisitorRecord:
        """
        Look up a presentable record by access code. Read-only.

        Raises NotFound when no live record matches, WrongDate when a
        Pending record is booked for another day.
        """
        candidates = records if records is not None else self.store.list()

        match = next(
            (r for r in candidates if r.access_code == access_code and r.status not in CLOSED_STATUSES),
            None
        )
        if match is None:
            raise NotFound("Access code is invalid, expired, or already used.")

        if match.status == VisitorStatus.PENDING:
            today = self.today()
            if match.visit_date != today:
                raise WrongDate(
                    f"Access code is for a visit on {match.visit_date:%B %d, %Y}. Today is {today:%B %d, %Y}.",
                    visit_date=match.visit_date,
                    today=today
                )

        return match

    def check_in(self, record: Union[VisitorRecord, str]) -> VisitorRecord:
        """
        Pending -> Checked-In, stamping entry_time.

        Raises WrongDate when the visit is booked for another day, the same
        as verify.
        """
        return self._transition(record, VisitorStatus.PENDING, VisitorStatus.CHECKED_IN, "entry_time")

    def check_out(self, record: Union[VisitorRecord, str]) -> VisitorRecord:
        """Checked-In -> Checked-Out, stamping exit_time"""
        return self._transition(record, VisitorStatus.CHECKED_IN, VisitorStatus.CHECKED_OUT, "exit_time")

    def _transition(
        self,
        record: Union[VisitorRecord, str],
        expected: VisitorStatus,
        target: VisitorStatus,
        stamp_field: str
    ) -> VisitorRecord:
        record_id = record.id if isinstance(record, VisitorRecord) else record

        with self.store.lock:
            current = self.store.get(record_id)
            if current is None:
                raise NotFound(f"Visitor {record_id} not found")

            if current.status != expected:
                raise InvalidTransition(
                    f"Cannot move {current.name} from {current.status.value} to {target.value}",
                    current_status=current.status,
                    attempted=target
                )

            if current.status == VisitorStatus.PENDING:
                self.verify(current.access_code, records=[current])

            updated = VisitorRecord(**{
                **current.model_dump(),
                "status": target,
                stamp_field: self.now(),
            })
            self.store.replace(updated)

        logger.info(f"Visitor {updated.name} ({updated.access_code}) {expected.value} -> {target.value}")
        return updated

    def expire_stale(self) -> int:
        """Mark Pending records whose visit date has passed as Expired"""
        today = self.today()

        with self.store.lock:
            stale = [
                VisitorRecord(**{**r.model_dump(), "status": VisitorStatus.EXPIRED})
                for r in self.store.list()
                if r.status == VisitorStatus.PENDING and r.visit_date < today
            ]
            if stale:
                self.store.replace_many(stale)

        if stale:
            logger.info(f"Expired {len(stale)} stale visitor authorizations")
        return len(stale)

    # ==================== Queries ====================

    def get_visitor(self, record_id: str) -> Optional[VisitorRecord]:
        return self.store.get(record_id)

    def list_visitors(
        self,
        authorized_by: Optional[str] = None,
        status: Optional[VisitorStatus] = None,
        search: Optional[str] = None
    ) -> List[VisitorRecord]:
        """Visitors newest first, with optional filters"""
        visitors = self.store.list()

        if authorized_by is not None:
            visitors = [v for v in visitors if v.authorized_by == authorized_by]
        if status:
            visitors = [v for v in visitors if v.status == status]
        if search:
            term = search.lower()
            visitors = [
                v for v in visitors
                if term in v.name.lower()
                or term in v.access_code.lower()
                or term in v.status.value.lower()
            ]

        return visitors

    def get_stats(self, authorized_by: Optional[str] = None) -> Dict[str, int]:
        visitors = self.list_visitors(authorized_by=authorized_by)
        today = self.today()

        def count(status):
            return sum(1 for v in visitors if v.status == status)

        return {
            "total_visitors": len(visitors),
            "pending": count(VisitorStatus.PENDING),
            "checked_in": count(VisitorStatus.CHECKED_IN),
            "checked_out": count(VisitorStatus.CHECKED_OUT),
            "expired": count(VisitorStatus.EXPIRED),
            "expected_today": sum(
                1 for v in visitors
                if v.status == VisitorStatus.PENDING and v.visit_date == today
            ),
        }
