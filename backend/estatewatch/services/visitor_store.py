"""
Visitor Record Store - the authoritative visitor collection
"""

import logging
import threading
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError

from ..errors import DuplicateAccessCode, NotFound
from ..models.visitor import VisitorStatus
from ..schemas.schemas import VisitorRecord
from .storage_backends import DegradingStore, StorageBackend, VISITORS_KEY

logger = logging.getLogger(__name__)


class VisitorStore(DegradingStore):
    """
    Owns every VisitorRecord, newest first.

    Records are frozen, so handing them out never exposes mutable state.
    Callers that need read-check-write atomicity hold ``store.lock`` around
    the whole sequence; the lock is re-entrant so store methods can be called
    inside it.
    """

    def __init__(self, backend: StorageBackend, key: str = VISITORS_KEY):
        super().__init__(backend)
        self.key = key
        self.lock = threading.RLock()
        self._records: List[VisitorRecord] = self._load()

    def _load(self) -> List[VisitorRecord]:
        raw = self._with_backend("load", lambda b: b.get(self.key))
        if raw is None:
            return []
        if not isinstance(raw, list):
            message = f"Discarding visitor data under {self.key}: expected a list, got {type(raw).__name__}"
            logger.error(message)
            self._warnings.append(message)
            return []

        records = []
        for item in raw:
            try:
                records.append(VisitorRecord.from_storage(item))
            except PydanticValidationError as e:
                message = f"Skipping unreadable visitor entry: {e.error_count()} error(s)"
                logger.warning(message)
                self._warnings.append(message)

        logger.info(f"Loaded {len(records)} visitor records")
        return records

    def _persist(self) -> None:
        payload = [record.to_storage() for record in self._records]
        self._with_backend("save", lambda b: b.set(self.key, payload))

    # ==================== Reads ====================

    def list(self) -> List[VisitorRecord]:
        with self.lock:
            return list(self._records)

    def get(self, record_id: str) -> Optional[VisitorRecord]:
        with self.lock:
            for record in self._records:
                if record.id == record_id:
                    return record
        return None

    def find_by_code(self, access_code: str) -> List[VisitorRecord]:
        """All records carrying this code, newest first"""
        with self.lock:
            return [r for r in self._records if r.access_code == access_code]

    def code_in_use(self, access_code: str) -> bool:
        """True if a live (non-expired) record already holds the code"""
        with self.lock:
            return any(
                r.access_code == access_code and r.status != VisitorStatus.EXPIRED
                for r in self._records
            )

    # ==================== Writes ====================

    def add(self, record: VisitorRecord) -> VisitorRecord:
        with self.lock:
            if self.code_in_use(record.access_code):
                raise DuplicateAccessCode(f"Access code {record.access_code} is already in use")
            if self.get(record.id) is not None:
                raise DuplicateAccessCode(f"Visitor id {record.id} already exists")
            self._records.insert(0, record)
            self._persist()
        return record

    def replace(self, record: VisitorRecord) -> VisitorRecord:
        """Swap in a new version of an existing record, keeping its position"""
        with self.lock:
            for index, existing in enumerate(self._records):
                if existing.id == record.id:
                    self._records[index] = record
                    self._persist()
                    return record
        raise NotFound(f"Visitor {record.id} not found")

    def replace_many(self, records: List[VisitorRecord]) -> None:
        """Replace several records with a single persist"""
        with self.lock:
            by_id = {record.id: record for record in records}
            missing = set(by_id) - {r.id for r in self._records}
            if missing:
                raise NotFound(f"Visitors not found: {sorted(missing)}")
            self._records = [by_id.get(r.id, r) for r in self._records]
            self._persist()

    def remove(self, record_id: str) -> bool:
        """Delete a record; returns False if it was not there"""
        with self.lock:
            remaining = [r for r in self._records if r.id != record_id]
            if len(remaining) == len(self._records):
                return False
            self._records = remaining
            self._persist()
        return True
