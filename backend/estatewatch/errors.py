"""
Domain errors raised by the stores and the visitor lifecycle.

Routers translate these into HTTP responses; nothing here is fatal.
"""

from typing import Any, Dict, List, Optional


class EstateWatchError(Exception):
    """Base class for all EstateWatch domain errors"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(EstateWatchError):
    """Bad input to visitor creation"""

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.errors = errors or []


class NotFound(EstateWatchError):
    """No live record matches the requested code or id"""


class WrongDate(EstateWatchError):
    """Access code matched, but the visit is booked for another day"""

    def __init__(self, message: str, visit_date=None, today=None):
        super().__init__(message)
        self.visit_date = visit_date
        self.today = today


class InvalidTransition(EstateWatchError):
    """Status change attempted from a state that does not allow it"""

    def __init__(self, message: str, current_status=None, attempted=None):
        super().__init__(message)
        self.current_status = current_status
        self.attempted = attempted


class DuplicateAccessCode(EstateWatchError):
    """Access code already used by a live (non-expired) record"""


class PermissionDenied(EstateWatchError):
    """Caller identity may not act on this record"""


class StorageUnavailable(EstateWatchError):
    """Persistence backend could not be read or written"""
