"""
Persistence backends for the session and visitor stores.

Every backend exposes get/set/clear over JSON-serializable values and raises
StorageUnavailable when the underlying medium fails.
"""

import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from contextvars import ContextVar
from pathlib import Path
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from ..errors import StorageUnavailable

logger = logging.getLogger(__name__)

ROLE_KEY = "estateWatchUserRole"
VISITORS_KEY = "estateWatchResidentVisitors"

# Warnings raised while handling the current request, when one is being collected
_request_warnings: ContextVar[Optional[List[str]]] = ContextVar("storage_warnings", default=None)


@contextmanager
def collect_warnings():
    """Route storage warnings raised in this context into the yielded list"""
    bucket: List[str] = []
    token = _request_warnings.set(bucket)
    try:
        yield bucket
    finally:
        _request_warnings.reset(token)


class StorageBackend(ABC):
    """Key/value persistence interface"""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the stored value, or None if the key was never set"""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Persist a JSON-serializable value under key"""

    @abstractmethod
    def clear(self, key: str) -> None:
        """Remove key; no-op when absent"""


class MemoryBackend(StorageBackend):
    """Process-local backend, also the fallback when persistence fails"""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = {}
        self._lock = threading.Lock()
        for key, value in (initial or {}).items():
            self.set(key, value)

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            raw = self._data.get(key)
        # Stored as JSON text so callers never share mutable state with us
        return json.loads(raw) if raw is not None else None

    def set(self, key: str, value: Any) -> None:
        try:
            raw = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise StorageUnavailable(f"Value for {key} is not JSON-serializable: {e}") from e
        with self._lock:
            self._data[key] = raw

    def clear(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


class JsonFileBackend(StorageBackend):
    """
    All keys in a single JSON document on local disk.

    Writes go to a temp file that is atomically swapped in, so a failed write
    leaves the previous document intact.
    """

    def __init__(self, path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read_all(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageUnavailable(f"Cannot read {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageUnavailable(f"Unexpected document in {self.path}: {type(data).__name__}")
        return data

    def _write_all(self, data: Dict[str, Any]) -> None:
        tmp_path = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=self.path.name, suffix=".tmp", dir=str(self.path.parent))
            tmp_path = Path(tmp_name)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(str(tmp_path), str(self.path))
            tmp_path = None
        except (OSError, TypeError, ValueError) as e:
            raise StorageUnavailable(f"Cannot write {self.path}: {e}") from e
        finally:
            if tmp_path is not None and tmp_path.exists():
                tmp_path.unlink(missing_ok=True)

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            return self._read_all().get(key)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            data = self._read_all()
            data[key] = value
            self._write_all(data)

    def clear(self, key: str) -> None:
        with self._lock:
            data = self._read_all()
            if key in data:
                del data[key]
                self._write_all(data)


class DatabaseBackend(StorageBackend):
    """Keys stored as JSON text in the app_state table"""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def get(self, key: str) -> Optional[Any]:
        from ..models.app_state import StateEntry
        try:
            with self.session_factory() as db:
                entry = db.query(StateEntry).filter(StateEntry.key == key).first()
                raw = entry.value if entry else None
        except SQLAlchemyError as e:
            raise StorageUnavailable(f"Cannot read {key} from database: {e}") from e
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise StorageUnavailable(f"Corrupt value for {key}: {e}") from e

    def set(self, key: str, value: Any) -> None:
        from ..models.app_state import StateEntry
        try:
            raw = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise StorageUnavailable(f"Value for {key} is not JSON-serializable: {e}") from e
        try:
            with self.session_factory() as db:
                entry = db.query(StateEntry).filter(StateEntry.key == key).first()
                if entry:
                    entry.value = raw
                else:
                    db.add(StateEntry(key=key, value=raw))
                db.commit()
        except SQLAlchemyError as e:
            raise StorageUnavailable(f"Cannot write {key} to database: {e}") from e

    def clear(self, key: str) -> None:
        from ..models.app_state import StateEntry
        try:
            with self.session_factory() as db:
                db.query(StateEntry).filter(StateEntry.key == key).delete()
                db.commit()
        except SQLAlchemyError as e:
            raise StorageUnavailable(f"Cannot clear {key} in database: {e}") from e


def create_backend(settings) -> StorageBackend:
    """Build the backend named by settings.STORAGE_BACKEND"""
    kind = settings.STORAGE_BACKEND.lower()

    if kind == "memory":
        return MemoryBackend()
    if kind == "json":
        return JsonFileBackend(settings.STORAGE_PATH)
    if kind == "database":
        from ..database import SessionLocal, init_db
        init_db()
        return DatabaseBackend(SessionLocal)

    raise ValueError(f"Unknown STORAGE_BACKEND: {settings.STORAGE_BACKEND}")


class DegradingStore:
    """
    Base for stores that must survive backend failures.

    The first StorageUnavailable switches the store to a private
    MemoryBackend for the rest of its life and records a warning. Inside
    collect_warnings() the warning goes to that context's list; otherwise
    it is kept on the store for pop_warnings().
    """

    def __init__(self, backend: StorageBackend):
        self.backend = backend
        self.degraded = False
        self._warnings = []

    def _with_backend(self, operation: str, fn):
        try:
            return fn(self.backend)
        except StorageUnavailable as e:
            if self.degraded:
                raise
            self._degrade(operation, e)
            return fn(self.backend)

    def _degrade(self, operation: str, error: StorageUnavailable) -> None:
        message = f"Storage unavailable during {operation}; continuing in memory only ({error.message})"
        logger.error(message)
        self.backend = MemoryBackend()
        self.degraded = True
        bucket = _request_warnings.get()
        (bucket if bucket is not None else self._warnings).append(message)

    def pop_warnings(self):
        """Return and forget warnings raised since the last call"""
        warnings, self._warnings = self._warnings, []
        return warnings
