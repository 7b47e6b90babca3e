from .storage_backends import (
    StorageBackend, MemoryBackend, JsonFileBackend, DatabaseBackend, create_backend
)
from .session_store import SessionStore
from .visitor_store import VisitorStore
from .visitor_service import VisitorService
from .auth_service import AuthService, CurrentSession
from . import access_policy

__all__ = [
    "StorageBackend", "MemoryBackend", "JsonFileBackend", "DatabaseBackend", "create_backend",
    "SessionStore",
    "VisitorStore",
    "VisitorService",
    "AuthService", "CurrentSession",
    "access_policy"
]
