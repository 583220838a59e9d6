"""Per-browser session state and the registry that holds it.

A fresh ``SessionState`` is unauthenticated (``user is None``) and loading.
The login flow fills it through the setters; sign-out clears it and removes
it from the registry. Persistence of the identity itself lives with the
hosted auth service.
"""

from __future__ import annotations

import secrets
import time
from threading import Lock
from typing import TYPE_CHECKING, Callable, Dict, Optional, Tuple

from beautypro.config import get_settings
from beautypro.schemas.auth import AuthUser

if TYPE_CHECKING:  # pragma: no cover - import for static analysis only
    from beautypro.views.calendar import CalendarView


class SessionState:
    """Current identity and loading flag for one browser session."""

    def __init__(self) -> None:
        self._user: Optional[AuthUser] = None
        self._access_token: Optional[str] = None
        self._is_loading = True
        self.calendar: Optional["CalendarView"] = None

    @property
    def user(self) -> Optional[AuthUser]:
        return self._user

    @property
    def access_token(self) -> Optional[str]:
        return self._access_token

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    def set_user(self, user: Optional[AuthUser], access_token: Optional[str] = None) -> None:
        self._user = user
        self._access_token = access_token if user is not None else None

    def set_is_loading(self, loading: bool) -> None:
        self._is_loading = loading

    def clear(self) -> None:
        """Drop the identity and any per-session view state."""

        self._user = None
        self._access_token = None
        self.calendar = None


class SessionStore:
    """Thread-safe registry of session states keyed by the session cookie value.

    With an ``idle_timeout`` (seconds), a session not looked up for that long
    is dropped on the next access to the registry.
    """

    def __init__(
        self,
        idle_timeout: Optional[float] = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._sessions: Dict[str, SessionState] = {}
        self._last_seen: Dict[str, float] = {}
        self._idle_timeout = idle_timeout
        self._clock = clock
        self._lock = Lock()

    def create(self) -> Tuple[str, SessionState]:
        session_id = secrets.token_urlsafe(32)
        state = SessionState()
        with self._lock:
            self._evict_idle()
            self._sessions[session_id] = state
            self._last_seen[session_id] = self._clock()
        return session_id, state

    def get(self, session_id: Optional[str]) -> Optional[SessionState]:
        if not session_id:
            return None
        with self._lock:
            self._evict_idle()
            state = self._sessions.get(session_id)
            if state is not None:
                self._last_seen[session_id] = self._clock()
            return state

    def _evict_idle(self) -> None:
        if self._idle_timeout is None:
            return
        cutoff = self._clock() - self._idle_timeout
        for session_id in [key for key, seen in self._last_seen.items() if seen <= cutoff]:
            del self._last_seen[session_id]
            self._sessions.pop(session_id).clear()

    def discard(self, session_id: Optional[str]) -> None:
        if not session_id:
            return
        with self._lock:
            state = self._sessions.pop(session_id, None)
            self._last_seen.pop(session_id, None)
        if state is not None:
            state.clear()

    def clear(self) -> None:
        """Remove every stored session. Intended for tests only."""

        with self._lock:
            self._sessions.clear()
            self._last_seen.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


session_store = SessionStore(get_settings().session_idle_timeout)
"""Module-level registry used by the web routes."""
