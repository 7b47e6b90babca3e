import os
import tempfile
from datetime import date, datetime, timedelta, timezone
from pathlib import Path

DB_PATH = Path(tempfile.gettempdir()) / "estatewatch_test.db"

os.environ.setdefault("DATABASE_URL", f"sqlite:///{DB_PATH}")
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("ESTATE_TIMEZONE", "UTC")
os.environ.setdefault("SECRET_KEY", "test-secret-key-strong-value-123456")

import pytest

from estatewatch.errors import StorageUnavailable
from estatewatch.models.visitor import VisitorStatus
from estatewatch.schemas.schemas import VisitorRecord
from estatewatch.services.storage_backends import MemoryBackend, StorageBackend
from estatewatch.services.visitor_service import VisitorService
from estatewatch.services.visitor_store import VisitorStore


NOW = datetime(2024, 6, 15, 10, 0, tzinfo=timezone.utc)
TODAY = date(2024, 6, 15)
TOMORROW = TODAY + timedelta(days=1)
YESTERDAY = TODAY - timedelta(days=1)


class FrozenClock:
    """Callable clock that only moves when told to"""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FailingBackend(StorageBackend):
    """Backend whose medium is gone; optionally only writes fail"""

    def __init__(self, fail_reads: bool = True, data=None):
        self.fail_reads = fail_reads
        self.data = dict(data or {})
        self.calls = 0

    def get(self, key):
        self.calls += 1
        if self.fail_reads:
            raise StorageUnavailable("disk unplugged")
        return self.data.get(key)

    def set(self, key, value):
        self.calls += 1
        raise StorageUnavailable("disk full")

    def clear(self, key):
        self.calls += 1
        raise StorageUnavailable("disk full")


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def backend():
    return MemoryBackend()


@pytest.fixture
def store(backend):
    return VisitorStore(backend)


@pytest.fixture
def service(store, clock):
    return VisitorService(store, now_fn=clock, tz_name="UTC")


@pytest.fixture
def make_record():
    counter = {"n": 0}

    def _make(**overrides) -> VisitorRecord:
        counter["n"] += 1
        n = counter["n"]
        values = {
            "id": f"visitor-{n}",
            "name": f"Visitor {n}",
            "purpose": "Delivery",
            "access_code": f"EW-TEST{n:04d}",
            "authorized_by": "Jane Resident",
            "status": VisitorStatus.PENDING,
            "authorization_date": NOW,
            "visit_date": TODAY,
        }
        values.update(overrides)
        return VisitorRecord(**values)

    return _make
