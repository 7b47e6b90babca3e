"""
Session/Role Store - the persisted role of one session
"""

import logging
from typing import Optional

from ..models.profile import UserRole
from .storage_backends import DegradingStore, StorageBackend, ROLE_KEY

logger = logging.getLogger(__name__)


class SessionStore(DegradingStore):
    """
    Holds the current authenticated role under a fixed key.

    The API namespaces the key per session so concurrent clients do not share
    a role; a single-device deployment uses the bare ROLE_KEY.
    """

    def __init__(self, backend: StorageBackend, key: str = ROLE_KEY):
        super().__init__(backend)
        self.key = key

    def get_role(self) -> Optional[UserRole]:
        """Current role, or None if never set or cleared"""
        value = self._with_backend("get_role", lambda b: b.get(self.key))
        if value is None:
            return None

        role = UserRole.parse(value)
        if role is None:
            logger.warning(f"Ignoring unknown persisted role {value!r} under {self.key}")
        return role

    def set_role(self, role: UserRole) -> None:
        role = UserRole(role)
        self._with_backend("set_role", lambda b: b.set(self.key, role.value))
        logger.info(f"Session role set: {role.value}")

    def clear_role(self) -> None:
        """Logout"""
        self._with_backend("clear_role", lambda b: b.clear(self.key))
        logger.info(f"Session role cleared for {self.key}")
