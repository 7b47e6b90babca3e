from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from typing import Optional, List, Literal
from datetime import date, datetime

from ..models.visitor import VisitorStatus
from ..models.profile import UserRole


# ==================== Visitor Record ====================

class VisitorRecord(BaseModel):
    """
    One pre-authorized visit, as held by the visitor store.

    Records are frozen: every transition builds a new record that replaces
    the old one by id. The persisted form uses camelCase keys.
    """
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str
    name: str
    purpose: str
    access_code: str
    authorized_by: str
    status: VisitorStatus = VisitorStatus.PENDING
    authorization_date: datetime
    visit_date: date
    entry_time: Optional[datetime] = None
    exit_time: Optional[datetime] = None

    @field_validator("visit_date", mode="before")
    @classmethod
    def _date_part(cls, value):
        # Older payloads stored the visit date as a full ISO timestamp
        if isinstance(value, str) and "T" in value:
            return value.split("T", 1)[0]
        if isinstance(value, datetime):
            return value.date()
        return value

    @model_validator(mode="after")
    def _check_timestamps(self):
        has_entered = self.status in (VisitorStatus.CHECKED_IN, VisitorStatus.CHECKED_OUT)
        if has_entered != (self.entry_time is not None):
            raise ValueError(f"entry_time must be set iff status is Checked-In or later (status={self.status.value})")
        if (self.status == VisitorStatus.CHECKED_OUT) != (self.exit_time is not None):
            raise ValueError(f"exit_time must be set iff status is Checked-Out (status={self.status.value})")
        return self

    def to_storage(self) -> dict:
        """JSON-ready dict in the persisted (camelCase) layout"""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_storage(cls, data: dict) -> "VisitorRecord":
        return cls.model_validate(data)


# ==================== Visitor Schemas ====================

class VisitorCreate(BaseModel):
    name: str = Field(..., min_length=2, description="Visitor name must be at least 2 characters")
    purpose: str = Field(..., min_length=3, description="Purpose of visit is required")
    visit_date: date


class VisitorResponse(BaseModel):
    id: str
    name: str
    purpose: str
    access_code: str
    authorized_by: str
    status: VisitorStatus
    authorization_date: datetime
    visit_date: date
    entry_time: Optional[datetime] = None
    exit_time: Optional[datetime] = None

    class Config:
        from_attributes = True


class VisitorCreatedResponse(BaseModel):
    visitor: VisitorResponse
    access_code: str
    message: str


class VisitorListResponse(BaseModel):
    visitors: List[VisitorResponse]
    total: int


# ==================== Gate Verification Schemas ====================

class VerificationRequest(BaseModel):
    access_code: str = Field(..., min_length=1, description="Access code is required")


class VerificationResponse(BaseModel):
    status: Literal["verified", "denied"]
    reason: Optional[Literal["not_found", "wrong_date"]] = None
    message: str
    visitor: Optional[VisitorResponse] = None


class ExpireResponse(BaseModel):
    expired_count: int


# ==================== Dashboard Schemas ====================

class DashboardStats(BaseModel):
    total_visitors: int
    pending: int
    checked_in: int
    checked_out: int
    expired: int
    expected_today: int


class DashboardResponse(BaseModel):
    role: Optional[UserRole] = None
    view: Literal["resident", "security", "placeholder", "denied"]
    title: str
    stats: Optional[DashboardStats] = None
