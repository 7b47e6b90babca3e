from .profile import Profile, UserRole
from .visitor import VisitorRow, VisitorStatus
from .app_state import StateEntry

__all__ = [
    "Profile", "UserRole",
    "VisitorRow", "VisitorStatus",
    "StateEntry"
]
