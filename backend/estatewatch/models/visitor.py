import enum
from sqlalchemy import Column, String, DateTime, Date, Enum, Index, text
from sqlalchemy.sql import func
from ..database import Base


class VisitorStatus(str, enum.Enum):
    PENDING = "Pending"          # Pre-authorized, not yet arrived
    CHECKED_IN = "Checked-In"    # Currently inside
    CHECKED_OUT = "Checked-Out"  # Left the premises
    EXPIRED = "Expired"          # Visit date passed without check-in


def _values(enum_cls):
    return [member.value for member in enum_cls]


class VisitorRow(Base):
    """
    Pre-authorized visitor in the declared relational schema
    """
    __tablename__ = "visitors"
    __table_args__ = (
        # Codes are unique among live visitors; an Expired code may be issued again
        Index(
            "uq_visitors_live_access_code",
            "access_code",
            unique=True,
            sqlite_where=text("status != 'Expired'"),
            postgresql_where=text("status != 'Expired'"),
        ),
    )

    id = Column(String(36), primary_key=True, index=True)

    # Visitor Information
    name = Column(String(255), nullable=False)
    purpose = Column(String(255), nullable=False)

    # Authorization
    access_code = Column(String(32), nullable=False)
    authorized_by = Column(String(255), nullable=False)

    # Gate movements
    entry_time = Column(DateTime(timezone=True), nullable=True)
    exit_time = Column(DateTime(timezone=True), nullable=True)

    status = Column(
        Enum(VisitorStatus, name="visitor_status", values_callable=_values),
        default=VisitorStatus.PENDING,
        nullable=False
    )

    authorization_date = Column(DateTime(timezone=True), nullable=False)
    visit_date = Column(Date, nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<VisitorRow {self.name} - {self.status.value}>"

    @classmethod
    def from_record(cls, record) -> "VisitorRow":
        """Build a row from a VisitorRecord"""
        return cls(
            id=record.id,
            name=record.name,
            purpose=record.purpose,
            access_code=record.access_code,
            authorized_by=record.authorized_by,
            entry_time=record.entry_time,
            exit_time=record.exit_time,
            status=record.status,
            authorization_date=record.authorization_date,
            visit_date=record.visit_date,
        )

    def to_record(self):
        """Convert this row back into a VisitorRecord"""
        from ..schemas.schemas import VisitorRecord
        return VisitorRecord(
            id=self.id,
            name=self.name,
            purpose=self.purpose,
            access_code=self.access_code,
            authorized_by=self.authorized_by,
            entry_time=self.entry_time,
            exit_time=self.exit_time,
            status=self.status,
            authorization_date=self.authorization_date,
            visit_date=self.visit_date,
        )
