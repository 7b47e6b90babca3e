import enum
from sqlalchemy import Column, String, DateTime, Enum
from sqlalchemy.sql import func
from ..database import Base


class UserRole(str, enum.Enum):
    """Roles for RBAC. Values are the persisted strings."""
    SUPER_ADMIN = "Super Admin"
    ADMIN = "Admin"
    ESTATE_MANAGER = "Estate Manager"
    RESIDENT = "Resident"
    SECURITY_OPERATIVE = "Security Operative"

    @classmethod
    def parse(cls, value):
        """Return the role for a persisted string, or None if unknown"""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


ALL_USER_ROLES = list(UserRole)


def _values(enum_cls):
    return [member.value for member in enum_cls]


class Profile(Base):
    """
    User profile in the declared relational schema
    """
    __tablename__ = "profiles"
    
    id = Column(String(36), primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    role = Column(
        Enum(UserRole, name="user_role", values_callable=_values),
        nullable=False
    )
    
    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    
    def __repr__(self):
        return f"<Profile {self.email} - {self.role.value}>"
