"""
Session Store - persistence for "who is viewing the client portal".

Two independent scopes:
- durable: the real client session ("remember me"), survives a browser restart
- volatile: the impersonation marker, lives only as long as the browser window

Storage is best effort. When a scope refuses a write (disabled, quota
exceeded) the store logs it once and keeps that scope in memory for the
rest of its lifetime. The portal keeps working, only without persistence.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Protocol

from starlette.requests import Request

from dealer_portal.core.exceptions import StorageUnavailableError
from dealer_portal.core.security import sign_cookie_value, unsign_cookie_value
from dealer_portal.schemas.client import ClientIdentity

logger = logging.getLogger(__name__)

CLIENT_SESSION_KEY = "client-session"
IMPERSONATION_MARKER_KEY = "impersonation-marker"

# Browsers drop cookies larger than this
COOKIE_SIZE_LIMIT = 4096

PENDING_COOKIES_ATTR = "portal_cookies"


class StorageBackend(Protocol):
    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class MemoryStorage:
    """
    Dict-backed storage.
    available=False behaves like storage disabled by the browser; quota
    limits the total size of stored values in bytes.
    """

    def __init__(self, available: bool = True, quota: Optional[int] = None):
        self.available = available
        self.quota = quota
        self.data: Dict[str, str] = {}

    def _check(self) -> None:
        if not self.available:
            raise StorageUnavailableError("storage is disabled")

    def get(self, key: str) -> Optional[str]:
        self._check()
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self._check()
        if self.quota is not None:
            used = sum(len(v.encode()) for k, v in self.data.items() if k != key)
            if used + len(value.encode()) > self.quota:
                raise StorageUnavailableError("storage quota exceeded")
        self.data[key] = value

    def delete(self, key: str) -> None:
        self._check()
        self.data.pop(key, None)


@dataclass
class PendingCookie:
    name: str
    value: Optional[str]  # plain value, None means delete
    signed: Optional[str]
    max_age: Optional[int]
    secure: bool


class CookieStorage:
    """
    Storage scope carried in signed cookies.

    Writes are queued on request.state and written onto the outgoing
    response by session_cookie_middleware. Reads see queued writes first so a
    request observes its own changes. max_age=None makes a browser-session
    cookie.
    """

    def __init__(
        self,
        request: Request,
        cookie_names: Dict[str, str],
        max_age: Optional[int] = None,
        secure: bool = False,
    ):
        self.request = request
        self.cookie_names = cookie_names
        self.max_age = max_age
        self.secure = secure

    def _pending(self) -> Dict[str, PendingCookie]:
        pending = getattr(self.request.state, PENDING_COOKIES_ATTR, None)
        if pending is None:
            pending = {}
            setattr(self.request.state, PENDING_COOKIES_ATTR, pending)
        return pending

    def _cookie_name(self, key: str) -> str:
        return self.cookie_names.get(key, key)

    def get(self, key: str) -> Optional[str]:
        name = self._cookie_name(key)
        queued = self._pending().get(name)
        if queued is not None:
            return queued.value
        raw = self.request.cookies.get(name)
        if not raw:
            return None
        value = unsign_cookie_value(key, raw)
        if value is None:
            logger.debug("Ignoring invalid or expired %s cookie", name)
        return value

    def set(self, key: str, value: str) -> None:
        name = self._cookie_name(key)
        signed = sign_cookie_value(key, value, self.max_age)
        if len(name) + len(signed) > COOKIE_SIZE_LIMIT:
            raise StorageUnavailableError(f"cookie {name} exceeds {COOKIE_SIZE_LIMIT} bytes")
        self._pending()[name] = PendingCookie(name, value, signed, self.max_age, self.secure)

    def delete(self, key: str) -> None:
        name = self._cookie_name(key)
        self._pending()[name] = PendingCookie(name, None, None, None, self.secure)


class SessionStore:
    """Durable client session plus volatile impersonation marker"""

    DURABLE = "durable"
    VOLATILE = "volatile"

    def __init__(self, durable: StorageBackend, volatile: StorageBackend):
        self._backends: Dict[str, StorageBackend] = {
            self.DURABLE: durable,
            self.VOLATILE: volatile,
        }
        self._memory: Dict[str, Dict[str, str]] = {self.DURABLE: {}, self.VOLATILE: {}}
        self._degraded: set[str] = set()

    @property
    def degraded(self) -> bool:
        return bool(self._degraded)

    def _degrade(self, scope: str, error: Exception) -> None:
        if scope not in self._degraded:
            logger.warning(
                "Session storage (%s) unavailable, continuing in memory: %s", scope, error
            )
            self._degraded.add(scope)

    def _read(self, scope: str, key: str) -> Optional[str]:
        if scope in self._degraded:
            return self._memory[scope].get(key)
        try:
            return self._backends[scope].get(key)
        except StorageUnavailableError as e:
            self._degrade(scope, e)
            return self._memory[scope].get(key)

    def _write(self, scope: str, key: str, value: str) -> None:
        if scope not in self._degraded:
            try:
                self._backends[scope].set(key, value)
                return
            except StorageUnavailableError as e:
                self._degrade(scope, e)
        self._memory[scope][key] = value

    def _remove(self, scope: str, key: str) -> None:
        self._memory[scope].pop(key, None)
        try:
            self._backends[scope].delete(key)
        except StorageUnavailableError as e:
            self._degrade(scope, e)

    # Durable client session

    def save_client_session(self, identity: ClientIdentity) -> None:
        self._write(self.DURABLE, CLIENT_SESSION_KEY, identity.to_storage())

    def load_client_session(self) -> Optional[ClientIdentity]:
        raw = self._read(self.DURABLE, CLIENT_SESSION_KEY)
        if not raw:
            return None
        try:
            return ClientIdentity.from_storage(raw)
        except ValueError as e:
            logger.warning("Discarding unreadable client session: %s", e)
            return None

    def clear_client_session(self) -> None:
        self._remove(self.DURABLE, CLIENT_SESSION_KEY)

    # Volatile impersonation marker

    def save_impersonation_marker(self, client_id: str) -> None:
        self._write(self.VOLATILE, IMPERSONATION_MARKER_KEY, client_id)

    def load_impersonation_marker(self) -> Optional[str]:
        return self._read(self.VOLATILE, IMPERSONATION_MARKER_KEY) or None

    def clear_impersonation_marker(self) -> None:
        self._remove(self.VOLATILE, IMPERSONATION_MARKER_KEY)
