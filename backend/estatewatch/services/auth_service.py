"""
Authentication Service - role sessions and JWT tokens

Login is a trusted role selection: there are no credentials. Each login opens
a session whose role lives in a SessionStore keyed by the session id; the
bearer token only carries the session id and display name, so logging out
(clearing the role) invalidates the token immediately.
"""

import secrets
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Tuple

from jose import JWTError, jwt

from ..config import settings
from ..models.profile import UserRole
from ..schemas.auth import SessionUser
from .access_policy import allowed_actions, dashboard_view_for
from .session_store import SessionStore
from .storage_backends import StorageBackend, ROLE_KEY
from .visitor_service import utc_now

logger = logging.getLogger(__name__)

# JWT Settings
ALGORITHM = "HS256"


@dataclass
class CurrentSession:
    """An authenticated request's session"""
    session_id: str
    name: str
    role: UserRole

    @property
    def user(self) -> SessionUser:
        return SessionUser(
            name=self.name,
            role=self.role,
            permissions=[action.value for action in allowed_actions(self.role)],
            dashboard_view=dashboard_view_for(self.role),
        )


class AuthService:
    """Session management on top of a shared storage backend"""

    def __init__(
        self,
        backend: StorageBackend,
        secret_key: Optional[str] = None,
        expire_minutes: Optional[int] = None,
        now_fn: Callable[[], datetime] = utc_now
    ):
        self.backend = backend
        self.secret_key = secret_key or settings.SECRET_KEY
        self.expire_minutes = expire_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES
        self.now_fn = now_fn
        self._sessions: Dict[str, SessionStore] = {}
        self._expiries: Dict[str, datetime] = {}
        self._closed_warnings: List[str] = []
        self._lock = threading.Lock()

    # ==================== Token Handling ====================

    def create_access_token(self, data: dict, expires_delta: Optional[timedelta] = None) -> str:
        """Create JWT access token"""
        expire = self.now_fn() + (expires_delta or timedelta(minutes=self.expire_minutes))
        return self._encode(data, expire)

    def _encode(self, data: dict, expire: datetime) -> str:
        to_encode = data.copy()
        to_encode.update({
            "exp": expire,
            "type": "access"
        })
        return jwt.encode(to_encode, self.secret_key, algorithm=ALGORITHM)

    def decode_token(self, token: str) -> Optional[dict]:
        """Decode and validate JWT token"""
        try:
            return jwt.decode(token, self.secret_key, algorithms=[ALGORITHM])
        except JWTError as e:
            logger.warning(f"Token decode failed: {e}")
            return None

    # ==================== Sessions ====================

    def session_store(self, session_id: str) -> SessionStore:
        """The role store for one session, created on first use"""
        with self._lock:
            store = self._sessions.get(session_id)
            if store is None:
                store = SessionStore(self.backend, key=f"{ROLE_KEY}:{session_id}")
                self._sessions[session_id] = store
            return store

    @property
    def open_sessions(self) -> int:
        with self._lock:
            return len(self._sessions)

    def login(self, role: UserRole, name: Optional[str] = None) -> Tuple[str, CurrentSession]:
        """
        Open a session for the selected role.

        Sessions whose token has expired are closed first, so abandoned
        logins do not accumulate in memory or in the backend.

        Returns:
            Tuple of (access token, session)
        """
        role = UserRole(role)
        session_id = secrets.token_urlsafe(16)
        display_name = (name or "").strip() or role.value

        self.sweep_expired()

        expires_at = self.now_fn() + timedelta(minutes=self.expire_minutes)
        self.session_store(session_id).set_role(role)
        with self._lock:
            self._expiries[session_id] = expires_at

        token = self._encode({"sid": session_id, "name": display_name}, expires_at)
        logger.info(f"Session opened for {display_name} as {role.value}")
        return token, CurrentSession(session_id=session_id, name=display_name, role=role)

    def get_current_session(self, token: str) -> Optional[CurrentSession]:
        """Session for a bearer token, or None if invalid or logged out"""
        payload = self.decode_token(token)
        if not payload or payload.get("type") != "access":
            return None

        session_id = payload.get("sid")
        if not session_id:
            return None

        role = self.session_store(session_id).get_role()
        if role is None:
            self._forget(session_id)
            return None

        # Sessions opened before a restart are only known from their token
        if payload.get("exp") is not None:
            with self._lock:
                self._expiries.setdefault(
                    session_id, datetime.fromtimestamp(payload["exp"], timezone.utc)
                )

        return CurrentSession(
            session_id=session_id,
            name=payload.get("name") or role.value,
            role=role
        )

    def logout(self, session_id: str) -> None:
        self.session_store(session_id).clear_role()
        self._forget(session_id)

    def sweep_expired(self) -> int:
        """Close every tracked session whose token has expired"""
        now = self.now_fn()
        with self._lock:
            expired = [sid for sid, expires_at in self._expiries.items() if expires_at <= now]

        for session_id in expired:
            self.logout(session_id)

        if expired:
            logger.info(f"Closed {len(expired)} expired sessions")
        return len(expired)

    def _forget(self, session_id: str) -> None:
        with self._lock:
            store = self._sessions.pop(session_id, None)
            self._expiries.pop(session_id, None)
            if store is not None:
                self._closed_warnings.extend(store.pop_warnings())

    def pop_warnings(self) -> List[str]:
        """Storage warnings raised by any session store since the last call"""
        with self._lock:
            stores = list(self._sessions.values())
            warnings, self._closed_warnings = self._closed_warnings, []
        for store in stores:
            warnings.extend(store.pop_warnings())
        return warnings
