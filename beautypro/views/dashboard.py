from __future__ import annotations

import logging
from typing import Optional, Protocol

from beautypro.services.auth import AuthService
from beautypro.services.session import SessionState

logger = logging.getLogger(__name__)


class Navigator(Protocol):
    def push(self, path: str) -> None:
        ...


class RedirectNavigator:
    """Records the last requested location so a route can answer with a redirect."""

    def __init__(self) -> None:
        self.location: Optional[str] = None

    def push(self, path: str) -> None:
        self.location = path


class DashboardShell:
    """Access guard and sign-out for the dashboard."""

    def __init__(
        self,
        session: SessionState,
        navigator: Navigator,
        auth: AuthService,
        *,
        login_path: str = "/auth/login",
    ) -> None:
        self._session = session
        self._navigator = navigator
        self._auth = auth
        self._login_path = login_path

    def mount(self) -> bool:
        """Return True when the session may see the dashboard, else send it to login."""
        if self._session.user is None:
            self._navigator.push(self._login_path)
            return False
        return True

    async def sign_out(self) -> None:
        """End the remote session, then drop the local identity and go to login.

        The local teardown and redirect happen whatever the remote call does;
        its exception, if any, still reaches the caller.
        """
        token = self._session.access_token
        try:
            await self._auth.sign_out(token)
        finally:
            self._session.clear()
            self._navigator.push(self._login_path)
